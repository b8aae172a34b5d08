"""Runtime dependency container for a playback session."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from .ports import OutputEnginePort, QueueEnginePort

if TYPE_CHECKING:
    from ..config import AppConfig
    from .bootstrap import SessionServices
    from .session_controller import PlaybackSessionController


@dataclass
class SessionContext:
    """Holds runtime dependencies assembled at startup."""

    config: "AppConfig"
    logger: Any
    queue_engine: QueueEnginePort | None = None
    output_engine: OutputEnginePort | None = None
    controller: "PlaybackSessionController | None" = None

    def bind_services(self, services: "SessionServices") -> None:
        self.queue_engine = services.queue_engine
        self.output_engine = services.output_engine
        self.controller = services.controller

    def require_controller(self) -> "PlaybackSessionController":
        if self.controller is None:
            raise RuntimeError("Session services are not bound yet.")
        return self.controller
