"""
Session Module - Black Box Interface

Purpose: Keep a console bound to a point of execution between requests
Interface: Session.create(), Session.create_from_source(), evaluate(), switch_to()
Hidden: Context group indexing, evaluator rebuilding, per-session locking

Sessions register themselves with a SessionStore passed in by the caller.
"""

from .errors import ConsoleError, InvalidSwitch, StaleSession, StorageUnavailable
from .session import CONTEXT_KEY, EXCEPTION_KEY, Session

__all__ = [
    "CONTEXT_KEY",
    "ConsoleError",
    "EXCEPTION_KEY",
    "InvalidSwitch",
    "Session",
    "StaleSession",
    "StorageUnavailable",
]
