"""Configuration loading from environment variables."""
from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from .constants import (
    DEFAULT_HISTORY_SIZE,
    DEFAULT_PREVIOUS_RESTART_SECONDS,
    DEFAULT_TRACK_CHANGE_TIMEOUT_MS,
    DEFAULT_VOLUME,
)
from .domain.models import RepeatMode, ShuffleMode
from .utils import parse_flag_env, parse_number_env


@dataclass(frozen=True)
class AppConfig:
    log_level: str
    file_log_level: str
    log_dir: str
    log_file: str
    file_log_enabled: bool = True
    track_change_timeout_ms: int = DEFAULT_TRACK_CHANGE_TIMEOUT_MS
    default_volume: int = DEFAULT_VOLUME
    history_size: int = DEFAULT_HISTORY_SIZE
    default_shuffle: ShuffleMode = ShuffleMode.OFF
    default_repeat: RepeatMode = RepeatMode.OFF
    previous_restart_seconds: float = DEFAULT_PREVIOUS_RESTART_SECONDS

    @property
    def track_change_timeout_seconds(self) -> float:
        return self.track_change_timeout_ms / 1000.0


def _log_dir() -> str:
    # Relative LOG_DIR values are anchored at the project root.
    log_dir = Path(os.getenv("LOG_DIR", "logs"))
    if not log_dir.is_absolute():
        log_dir = Path(__file__).resolve().parents[1] / log_dir
    return str(log_dir)


def load_config() -> AppConfig:
    file_log_enabled = parse_flag_env("SOUL_FILE_LOG_ENABLED", "1")
    log_dir = _log_dir()
    if file_log_enabled:
        os.makedirs(log_dir, exist_ok=True)
    log_file = os.path.join(
        log_dir, f"session_{datetime.now().strftime('%Y%m%d_%H%M%S_%f')}.log"
    )
    return AppConfig(
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        file_log_level=os.getenv("FILE_LOG_LEVEL", "DEBUG").upper(),
        log_dir=log_dir,
        log_file=log_file,
        file_log_enabled=file_log_enabled,
        track_change_timeout_ms=parse_number_env(
            "SOUL_TRACK_CHANGE_TIMEOUT_MS",
            DEFAULT_TRACK_CHANGE_TIMEOUT_MS,
            min_value=10,
            max_value=10000,
        ),
        default_volume=parse_number_env(
            "SOUL_DEFAULT_VOLUME", DEFAULT_VOLUME, min_value=0, max_value=100
        ),
        history_size=parse_number_env(
            "SOUL_HISTORY_SIZE", DEFAULT_HISTORY_SIZE, min_value=1, max_value=1000
        ),
        default_shuffle=ShuffleMode.parse(os.getenv("SOUL_SHUFFLE", "off")),
        default_repeat=RepeatMode.parse(os.getenv("SOUL_REPEAT", "off")),
        previous_restart_seconds=parse_number_env(
            "SOUL_PREVIOUS_RESTART_SECONDS",
            DEFAULT_PREVIOUS_RESTART_SECONDS,
            cast=float,
            min_value=0.0,
            max_value=60.0,
        ),
    )
