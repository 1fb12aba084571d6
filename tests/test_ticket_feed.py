"""Tests for ticket rows, the HTTP loader and the snapshot store."""

from __future__ import annotations

import httpx
import pytest
from pydantic import ValidationError

from core import TicketSourceException
from escalation.application import DashboardBoard, TicketRecordDTO, TicketSnapshotStore
from escalation.infrastructure import DashboardConfigManager, HttpTicketLoader, parse_ticket_rows

from support import NOW, DummyLoader, ticket

TICKETS_URL = "http://tickets.test/api/tickets"


def test_record_accepts_source_column_names() -> None:
    record = TicketRecordDTO.model_validate({
        "id": 42,
        "data_criacao": "2024-05-01T11:00:00Z",
        "etapa_numero": 1,
        "data_saida_etapa1": None,
        "nome": "Maria",
        "unrelated": "ignored",
    })

    entity = record.to_entity()

    assert entity.id == "42"
    assert entity.created_at == "2024-05-01T11:00:00Z"
    assert entity.is_awaiting
    assert entity.name == "Maria"


def test_primary_creation_column_wins() -> None:
    record = TicketRecordDTO.model_validate({
        "id": "a",
        "data_criado": "2024-05-01T11:30:00Z",
        "data_criacao": "2024-05-01T10:00:00Z",
        "stage_number": 2,
    })
    assert record.created_at == "2024-05-01T11:30:00Z"


def test_record_requires_stage() -> None:
    with pytest.raises(ValidationError):
        TicketRecordDTO.model_validate({"id": "a"})


def test_parse_ticket_rows_skips_invalid_rows_and_keeps_order() -> None:
    rows = [
        {"id": "b", "etapa_numero": 1},
        {"etapa_numero": 1},
        "garbage",
        {"id": "a", "etapa_numero": 3},
    ]

    assert [t.id for t in parse_ticket_rows(rows)] == ["b", "a"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        [{"id": "t1", "etapa_numero": 1}],
        {"tickets": [{"id": "t1", "etapa_numero": 1}]},
    ],
)
async def test_http_loader_accepts_list_or_envelope(payload: object) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=payload)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    loader = HttpTicketLoader(TICKETS_URL, client=client)

    tickets = await loader.load()
    await client.aclose()

    assert [t.id for t in tickets] == ["t1"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500),
        httpx.Response(200, text="<html>"),
        httpx.Response(200, json={"tickets": "nope"}),
    ],
)
async def test_http_loader_errors_are_ticket_source_errors(response: httpx.Response) -> None:
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: response))
    loader = HttpTicketLoader(TICKETS_URL, client=client)

    with pytest.raises(TicketSourceException):
        await loader.load()
    await client.aclose()


@pytest.mark.asyncio
async def test_snapshot_store_replaces_tickets_wholesale() -> None:
    loader = DummyLoader([ticket("t1", 5)])
    store = TicketSnapshotStore(loader)

    assert await store.refresh() is True
    loader.tickets = [ticket("t2", 1), ticket("t3", 2, stage=2)]
    assert await store.refresh() is True

    assert [t.id for t in store.tickets] == ["t2", "t3"]
    assert [t.id for t in store.awaiting()] == ["t2"]
    assert store.version == 2
    assert store.loaded_at is not None


@pytest.mark.asyncio
async def test_failed_refresh_keeps_previous_snapshot() -> None:
    loader = DummyLoader([ticket("t1", 5)])
    store = TicketSnapshotStore(loader)
    await store.refresh()

    loader.error = TicketSourceException("timeout")
    assert await store.refresh() is False
    loader.error = KeyError("boom")
    assert await store.refresh() is False

    assert [t.id for t in store.tickets] == ["t1"]
    assert store.version == 1


def test_board_rows_follow_current_thresholds(config_manager: DashboardConfigManager) -> None:
    board = DashboardBoard(config_manager)

    rows = board.render([ticket("t1", 3), ticket("t2", 12), ticket("t3", 25), ticket("t4", None)], NOW)

    assert [row.status for row in rows] == ["normal", "warning", "critical", "normal"]
    assert rows[2].elapsed_label == "25 min"
    assert rows[3].elapsed_label == "--"
    assert board.rendered_at == NOW
