"""Tests for correlation ids, error mapping and the JSON log formatter."""

from __future__ import annotations

import json
import logging

import httpx
import pytest
from fastapi import FastAPI

from core import ApplicationException, ConfigurationException, TicketSourceException
from shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler,
)
from shared.infrastructure.logging import (
    CustomJsonFormatter,
    bind_correlation_id,
    reset_correlation_id,
)


def _app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(CorrelationIDMiddleware)
    app.add_exception_handler(ApplicationException, application_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    @app.get("/ok")
    async def ok() -> dict:
        return {"ok": True}

    @app.get("/rejected")
    async def rejected() -> dict:
        raise ApplicationException("ticket id required")

    @app.get("/misconfigured")
    async def misconfigured() -> dict:
        raise ConfigurationException("bad thresholds")

    @app.get("/source-down")
    async def source_down() -> dict:
        raise TicketSourceException("timeout")

    @app.get("/crash")
    async def crash() -> dict:
        raise RuntimeError("boom")

    return app


@pytest.fixture
def client() -> httpx.AsyncClient:
    transport = httpx.ASGITransport(app=_app(), raise_app_exceptions=False)
    return httpx.AsyncClient(transport=transport, base_url="http://dashboard.test")


@pytest.mark.asyncio
async def test_correlation_id_is_echoed(client: httpx.AsyncClient) -> None:
    async with client:
        given = await client.get("/ok", headers={"X-Correlation-ID": "abc-123"})
        generated = await client.get("/ok")

    assert given.headers["X-Correlation-ID"] == "abc-123"
    assert generated.headers["X-Correlation-ID"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("path", "status_code"),
    [("/rejected", 400), ("/source-down", 502), ("/misconfigured", 500)],
)
async def test_application_errors_are_mapped(client: httpx.AsyncClient, path: str, status_code: int) -> None:
    async with client:
        response = await client.get(path, headers={"X-Correlation-ID": "req-1"})

    assert response.status_code == status_code
    assert response.json()["correlation_id"] == "req-1"


@pytest.mark.asyncio
async def test_unhandled_errors_become_500(client: httpx.AsyncClient) -> None:
    async with client:
        response = await client.get("/crash")

    assert response.status_code == 500
    assert response.json()["detail"] == "Internal server error"


def _format(**extra: object) -> dict:
    record = logging.LogRecord("test", logging.INFO, __file__, 1, "hello", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return json.loads(CustomJsonFormatter("%(name)s %(levelname)s %(message)s").format(record))


def test_formatter_uses_bound_correlation_id() -> None:
    token = bind_correlation_id("ctx-9")
    try:
        payload = _format()
    finally:
        reset_correlation_id(token)

    assert payload["correlation_id"] == "ctx-9"
    assert payload["message"] == "hello"
    assert "timestamp" in payload


def test_formatter_redacts_credentials() -> None:
    payload = _format(api_key="sk-1", auth_token="t", sound="senna")

    assert payload["api_key"] == "***REDACTED***"
    assert payload["auth_token"] == "***REDACTED***"
    assert payload["sound"] == "senna"
    assert "correlation_id" not in payload
