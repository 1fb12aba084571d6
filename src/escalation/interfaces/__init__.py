"""
Escalation Interfaces Layer
===========================

Interface adapters (controllers) for the dashboard.

Contains:
- Controllers: FastAPI route handlers

This is the outermost layer - handles HTTP requests/responses and
delegates to application services.
"""

from escalation.interfaces.controllers import dashboard_router

__all__ = ["dashboard_router"]
