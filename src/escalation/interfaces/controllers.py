"""
Dashboard Controllers (API Routes)
===================================

FastAPI routes the dashboard UI uses for alert handling and audio.

Controllers are thin - they delegate to the runtime's services.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, Field

from escalation.application import (
    ActiveAlertResponse,
    BoardResponse,
    DismissAllResponse,
    DismissResponse,
    ToastResponse,
    dismissal_message,
)
from escalation.domain import TimeStatusEvaluator
from notifications.domain import sound_display_name
from shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


class SoundTestRequest(BaseModel):
    """Request to play a sound through the dispatcher."""
    sound: Optional[str] = Field(None, description="Sound name; defaults to the configured one")
    volume: Optional[float] = Field(None, ge=0.0, le=1.0, description="Volume override")


class SoundTestResponse(BaseModel):
    """Outcome of a test playback."""
    sound: str
    display_name: str
    succeeded: bool
    strategy: Optional[str] = None
    attempts: list[str]


# ========== Dependencies ==========

def get_runtime(request: Request):
    """Get the running dashboard runtime."""
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Dashboard runtime not available"
        )
    return runtime


# ========== Route Handlers ==========

@router.get("/board", response_model=BoardResponse, summary="Elapsed-time board")
async def get_board(runtime=Depends(get_runtime)) -> BoardResponse:
    """Rows as of the last display tick."""
    rows = runtime.board.rows
    return BoardResponse(
        tickets=rows,
        awaiting_count=len(runtime.store.awaiting()),
        rendered_at=runtime.board.rendered_at
    )


@router.get("/alert", response_model=ActiveAlertResponse, summary="Active full-screen alert")
async def get_active_alert(runtime=Depends(get_runtime)) -> ActiveAlertResponse:
    ticket = runtime.monitor.active_alert
    last_scan = runtime.monitor.last_scan
    if ticket is None:
        return ActiveAlertResponse(active=False, scanned_at=last_scan.scanned_at if last_scan else None)

    minutes = None
    if last_scan is not None:
        minutes = TimeStatusEvaluator.elapsed_minutes(ticket.created_at, last_scan.scanned_at)
    return ActiveAlertResponse(
        active=True,
        ticket_id=ticket.id,
        name=ticket.name,
        minutes=minutes,
        scanned_at=last_scan.scanned_at if last_scan else None
    )


@router.post(
    "/alert/{ticket_id}/dismiss",
    response_model=DismissResponse,
    summary="Close the full-screen alert for a ticket"
)
async def dismiss_alert(ticket_id: str, runtime=Depends(get_runtime)) -> DismissResponse:
    """
    Suppress a ticket from further full-screen escalation.

    Unknown or already-attended tickets are accepted; the dismissal is simply
    never consulted for them.
    """
    added = runtime.close_alert(ticket_id)
    return DismissResponse(ticket_id=ticket_id, newly_dismissed=added)


@router.post(
    "/alert/dismiss-all",
    response_model=DismissAllResponse,
    summary="Dismiss alerts for every waiting ticket"
)
async def dismiss_all_alerts(runtime=Depends(get_runtime)) -> DismissAllResponse:
    outcome = runtime.dismiss_all()
    return DismissAllResponse(
        dismissed_count=outcome.requested,
        newly_dismissed=outcome.newly_added,
        message=dismissal_message(outcome.requested)
    )


@router.post("/audio/unlock", summary="Forward a user gesture that unlocks audio")
async def unlock_audio(runtime=Depends(get_runtime)) -> dict:
    changed = runtime.unlock_audio()
    return {"unlocked": True, "changed": changed}


@router.get("/audio", summary="Audio subsystem state")
async def audio_state(runtime=Depends(get_runtime)) -> dict:
    return runtime.dispatcher.subsystem.describe()


@router.post("/audio/test", response_model=SoundTestResponse, summary="Play a sound")
async def test_sound(
    payload: SoundTestRequest,
    runtime=Depends(get_runtime)
) -> SoundTestResponse:
    result = await runtime.dispatcher.play(sound=payload.sound, volume=payload.volume)
    return SoundTestResponse(
        sound=result.sound,
        display_name=sound_display_name(result.sound),
        succeeded=result.succeeded,
        strategy=result.strategy,
        attempts=result.attempts
    )


@router.get("/toasts", response_model=list[ToastResponse], summary="Recent advisory messages")
async def recent_toasts(
    limit: int = Query(20, ge=1, le=50),
    runtime=Depends(get_runtime)
) -> list[ToastResponse]:
    return [
        ToastResponse(message=toast.message, level=toast.level, created_at=toast.created_at)
        for toast in runtime.toasts.recent(limit)
    ]


dashboard_router = router
