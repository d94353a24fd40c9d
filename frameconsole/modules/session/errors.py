"""Errors surfaced by console sessions and their storage."""


class ConsoleError(Exception):
    """Base class for console session errors."""


class InvalidSwitch(ConsoleError, LookupError):
    """switch_to() named an unknown group or an out of range frame."""


class StaleSession(ConsoleError):
    """The session was restored from metadata and has no live context."""

    def __init__(self, session_id: str):
        super().__init__(
            f"Session {session_id} was restored from shared storage and has no "
            f"live execution context in this process"
        )
        self.session_id = session_id


class StorageUnavailable(ConsoleError):
    """The distributed session backend failed or returned a bad payload."""
