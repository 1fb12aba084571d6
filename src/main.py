"""
Queue Watch - Main Application
================================

Live service-queue dashboard backend.

Modules:
- Escalation: Wait-time severity, dismissals and the full-screen alert
- Notifications: Sound playback and realtime ticket changes

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities and value objects
- Infrastructure: Config watcher, scheduler, HTTP/SSE clients, audio output
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Configuration and Core
from config import settings
from core import ApplicationException

# Escalation Module
from escalation.infrastructure import DashboardConfigManager
from escalation.interfaces import dashboard_router

# Runtime
from runtime import DashboardRuntime

# Logging and middleware
from shared.infrastructure.logging import setup_logging, get_logger
from shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Load dashboard configuration and watch it
    3. Start the dashboard runtime

    SHUTDOWN:
    1. Stop the dashboard runtime
    2. Stop the config watcher
    """
    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting Queue Watch", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    logger.info("Loading dashboard configuration")
    config_manager = DashboardConfigManager()
    config_manager.load(settings.dashboard_config_path)
    config_manager.start_watching()

    runtime = DashboardRuntime.from_settings(settings, config_manager)
    await runtime.start()

    app.state.settings = settings
    app.state.config_manager = config_manager
    app.state.runtime = runtime

    logger.info("Queue Watch started successfully")

    try:
        yield  # Application runs here
    finally:
        # === SHUTDOWN ===
        logger.info("Shutting down Queue Watch")
        await runtime.stop()
        config_manager.stop_watching()
        logger.info("Queue Watch shutdown complete")


app = FastAPI(
    title="Queue Watch API",
    description="""
    ## Service Queue Escalation Dashboard

    Tracks waiting tickets, escalates the ones waiting too long to a
    full-screen alert and plays notification sounds for new tickets.

    **Endpoints:**
    - `GET /dashboard/board` - Elapsed time and severity per ticket
    - `GET /dashboard/alert` - Ticket currently escalated full screen
    - `POST /dashboard/alert/{id}/dismiss` - Close the alert for a ticket
    - `POST /dashboard/alert/dismiss-all` - Dismiss every waiting ticket
    - `POST /dashboard/audio/unlock` - Forward the unlocking user gesture
    - `POST /dashboard/audio/test` - Play a sound
    - `GET /dashboard/toasts` - Recent advisory messages
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# === Custom Middleware (from shared) ===
app.add_middleware(LoggingMiddleware)
app.add_middleware(CorrelationIDMiddleware)
app.add_exception_handler(ApplicationException, application_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# === Include Module Routers ===
app.include_router(dashboard_router)


@app.get("/health", tags=["Health"])
async def health_check(request: Request):
    """
    Health check endpoint for load balancers and orchestrators.

    Returns runtime, realtime, scheduler and audio state.
    """
    runtime = getattr(request.app.state, "runtime", None)
    checks = {
        "runtime": "running" if runtime and runtime.is_running else "stopped",
        "scheduler": "running" if runtime and runtime.scheduler.is_running else "stopped",
        "realtime": "subscribed" if runtime and runtime.bridge.is_mounted else "disconnected",
        "audio": "unlocked" if runtime and runtime.dispatcher.subsystem.unlocked else "locked",
        "tickets": len(runtime.store.tickets) if runtime else 0,
    }

    return {
        "status": "healthy" if checks["runtime"] == "running" else "degraded",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks
    }


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info"
    )
