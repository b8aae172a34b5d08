"""Concrete engines behind the session controller ports."""

from .queue_engine import LocalQueueEngine
from .vlc_output import VlcOutputEngine, perceptual_gain, vlc_volume

__all__ = [
    "LocalQueueEngine",
    "VlcOutputEngine",
    "perceptual_gain",
    "vlc_volume",
]
