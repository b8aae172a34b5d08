"""Session bootstrap assembly for queue, output and controller services."""
from __future__ import annotations

from dataclasses import dataclass

from ..config import AppConfig
from ..integrations.queue_engine import LocalQueueEngine
from ..integrations.vlc_output import VlcOutputEngine
from .ports import OutputEnginePort, QueueEnginePort
from .session_controller import PlaybackSessionController


@dataclass(frozen=True)
class SessionServices:
    queue_engine: QueueEnginePort
    output_engine: OutputEnginePort
    controller: PlaybackSessionController


def build_queue_engine(config: AppConfig, logger) -> LocalQueueEngine:
    """Create the in-memory queue engine seeded with configured defaults."""
    return LocalQueueEngine(
        history_size=config.history_size,
        volume=config.default_volume,
        shuffle=config.default_shuffle,
        repeat=config.default_repeat,
        logger=logger,
    )


def initialize_session_services(
    *,
    config: AppConfig,
    logger,
    queue_engine: QueueEnginePort | None = None,
    output_engine: OutputEnginePort | None = None,
    vlc_module=None,
) -> SessionServices:
    """Construct both engines and the controller; nothing is initialized yet."""
    if queue_engine is None:
        queue_engine = build_queue_engine(config, logger)
        logger.info(
            "Queue engine: local (history=%s shuffle=%s repeat=%s)",
            config.history_size,
            config.default_shuffle.value,
            config.default_repeat.value,
        )
    if output_engine is None:
        output_engine = VlcOutputEngine(logger=logger, vlc_module=vlc_module)
        logger.info("Output engine: libVLC")

    controller = PlaybackSessionController(
        queue_engine,
        output_engine,
        logger,
        track_change_timeout=config.track_change_timeout_seconds,
        previous_restart_seconds=config.previous_restart_seconds,
    )
    logger.debug(
        "Track change timeout: %s ms, previous restart threshold: %ss",
        config.track_change_timeout_ms,
        config.previous_restart_seconds,
    )
    return SessionServices(
        queue_engine=queue_engine,
        output_engine=output_engine,
        controller=controller,
    )
