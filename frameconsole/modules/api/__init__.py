"""
API Module - Black Box Interface

Purpose: Expose console sessions to the browser console
Interface: create_console_router(), RequestPermissions
Hidden: Route layout, status code mapping, thread pool dispatch
"""

from .models import (
    ContextResponse,
    EvaluateRequest,
    EvaluateResponse,
    SwitchRequest,
    SwitchResponse,
)
from .permissions import RequestPermissions
from .router import SESSION_UNAVAILABLE, create_console_router

__all__ = [
    "ContextResponse",
    "EvaluateRequest",
    "EvaluateResponse",
    "RequestPermissions",
    "SESSION_UNAVAILABLE",
    "SwitchRequest",
    "SwitchResponse",
    "create_console_router",
]
