"""Application layer orchestration."""

from .bootstrap import SessionServices, build_queue_engine, initialize_session_services
from .context import SessionContext
from .events import EventEmitter
from .ports import OutputEnginePort, QueueEnginePort
from .session_controller import PlaybackSessionController

__all__ = [
    "EventEmitter",
    "OutputEnginePort",
    "PlaybackSessionController",
    "QueueEnginePort",
    "SessionContext",
    "SessionServices",
    "build_queue_engine",
    "initialize_session_services",
]
