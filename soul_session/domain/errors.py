"""Error taxonomy for the playback session."""
from __future__ import annotations


class SessionError(Exception):
    """Base class for every error surfaced by the session controller."""

    kind = "session"

    def __init__(self, message: str, *, operation: str | None = None) -> None:
        super().__init__(message)
        self.operation = operation


class NotInitialized(SessionError):
    """A command was issued before the controller finished setup."""

    kind = "not_initialized"


class TrackLoadFailed(SessionError):
    """The output engine rejected a track path."""

    kind = "track_load_failed"

    def __init__(self, message: str, *, path: str | None = None, operation: str | None = None) -> None:
        super().__init__(message, operation=operation)
        self.path = path


class EngineDesync(SessionError):
    """The queue engine did not signal a track change within the timeout."""

    kind = "engine_desync"


class InvalidArgument(SessionError, ValueError):
    """A caller passed an out-of-range index or an unknown identifier."""

    kind = "invalid_argument"


class EngineCommandFailed(SessionError):
    """An engine raised while executing a forwarded command."""

    kind = "engine_command_failed"
