"""libVLC output engine used by the playback session."""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from typing import Any, Callable

from ..constants import LOGGER_NAME
from ..utils import clamp_volume

try:
    import vlc as _vlc
except Exception:  # pragma: no cover - dependency optional at import time
    _vlc = None

OUTPUT_EVENTS = ("time_update", "ended", "error", "play", "pause", "load_start")


def perceptual_gain(level: float) -> float:
    """Map a 0..100 volume level onto a quadratic gain curve."""
    return (clamp_volume(level) / 100.0) ** 2


def vlc_volume(level: float) -> int:
    return int(round(perceptual_gain(level) * 100))


class VlcOutputEngine:
    """Audio-only libVLC player exposing the output engine callbacks.

    libVLC fires its events on its own threads; they are handed to the asyncio
    loop that last awaited `load_track()` before any listener runs.
    """

    def __init__(
        self,
        *,
        logger=None,
        vlc_module=None,
        platform_name: str | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._vlc = vlc_module if vlc_module is not None else _vlc
        if self._vlc is None:
            raise RuntimeError("python-vlc is not available")
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        platform_value = platform_name if platform_name is not None else sys.platform
        args = ["--no-video"]
        if str(platform_value).startswith("linux"):
            args.insert(0, "--no-xlib")
        self.instance = self._vlc.Instance(args)
        self.player = self.instance.media_player_new()
        self.media = None
        self._loop = loop
        self._level = 100
        self._listeners: dict[str, list[Callable[..., Any]]] = {
            name: [] for name in OUTPUT_EVENTS
        }
        self._attached: list[Any] = []
        self._attach_player_events()

    # Commands

    async def load_track(self, path: str) -> None:
        if not path or not os.path.isfile(path):
            raise FileNotFoundError(path)
        loop = asyncio.get_running_loop()
        self._loop = loop
        self._emit("load_start", path)
        media = await loop.run_in_executor(None, self.instance.media_new, os.path.abspath(path))
        self._release_media()
        self.player.set_media(media)
        self.media = media
        self.logger.debug("VLC media set: %s", path)

    def play(self) -> None:
        if self.media is None:
            raise RuntimeError("No track loaded.")
        rc = int(self.player.play())
        if rc == -1:
            raise RuntimeError("VLC failed to start playback.")

    def pause(self) -> None:
        self.player.set_pause(1)

    def stop(self) -> None:
        self.player.stop()

    def seek(self, position: float) -> None:
        self.player.set_time(int(max(0.0, float(position)) * 1000))

    def set_volume(self, level: float) -> None:
        self._level = clamp_volume(level)
        self.player.audio_set_volume(vlc_volume(self._level))

    @property
    def volume(self) -> int:
        return self._level

    @property
    def position(self) -> float:
        return max(0, int(self.player.get_time() or 0)) / 1000.0

    @property
    def duration(self) -> float:
        return max(0, int(self.player.get_length() or 0)) / 1000.0

    def is_playing(self) -> bool:
        return bool(self.player.is_playing())

    # Subscriptions

    def on_time_update(self, callback: Callable[[float], None]) -> Callable[[], None]:
        return self._subscribe("time_update", callback)

    def on_ended(self, callback: Callable[[], None]) -> Callable[[], None]:
        return self._subscribe("ended", callback)

    def on_error(self, callback: Callable[[Exception], None]) -> Callable[[], None]:
        return self._subscribe("error", callback)

    def on_play(self, callback: Callable[[], None]) -> Callable[[], None]:
        return self._subscribe("play", callback)

    def on_pause(self, callback: Callable[[], None]) -> Callable[[], None]:
        return self._subscribe("pause", callback)

    def on_load_start(self, callback: Callable[[str], None]) -> Callable[[], None]:
        return self._subscribe("load_start", callback)

    def destroy(self) -> None:
        self._detach_player_events()
        for listeners in self._listeners.values():
            listeners.clear()
        try:
            self.player.stop()
        except Exception:
            self.logger.debug("VLC stop during destroy failed", exc_info=True)
        self._release_media()
        try:
            self.player.release()
        except Exception:
            self.logger.debug("VLC player release failed", exc_info=True)
        try:
            self.instance.release()
        except Exception:
            self.logger.debug("VLC instance release failed", exc_info=True)

    # Internals

    def _subscribe(self, event: str, callback: Callable[..., Any]) -> Callable[[], None]:
        listeners = self._listeners[event]
        listeners.append(callback)

        def unsubscribe() -> None:
            if callback in listeners:
                listeners.remove(callback)

        return unsubscribe

    def _emit(self, event: str, *args: Any) -> None:
        for callback in list(self._listeners[event]):
            try:
                callback(*args)
            except Exception:
                self.logger.exception("Output listener for %s failed", event)

    def _dispatch(self, event: str, *args: Any) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            self.logger.debug("Dropping VLC %s event: no event loop", event)
            return
        loop.call_soon_threadsafe(self._emit, event, *args)

    def _attach_player_events(self) -> None:
        event_type = self._vlc.EventType
        handlers = (
            (event_type.MediaPlayerEndReached, self._handle_end_reached),
            (event_type.MediaPlayerEncounteredError, self._handle_error),
            (event_type.MediaPlayerTimeChanged, self._handle_time_changed),
            (event_type.MediaPlayerPlaying, self._handle_playing),
            (event_type.MediaPlayerPaused, self._handle_paused),
        )
        manager = self.player.event_manager()
        for vlc_event, handler in handlers:
            manager.event_attach(vlc_event, handler)
            self._attached.append(vlc_event)

    def _detach_player_events(self) -> None:
        if not self._attached:
            return
        try:
            manager = self.player.event_manager()
            for vlc_event in self._attached:
                manager.event_detach(vlc_event)
        except Exception:
            self.logger.debug("VLC event detach failed", exc_info=True)
        self._attached = []

    def _handle_end_reached(self, _event=None) -> None:
        self._dispatch("ended")

    def _handle_error(self, _event=None) -> None:
        self._dispatch("error", RuntimeError("libVLC reported a playback error"))

    def _handle_time_changed(self, _event=None) -> None:
        self._dispatch("time_update", self.position)

    def _handle_playing(self, _event=None) -> None:
        self._dispatch("play")

    def _handle_paused(self, _event=None) -> None:
        self._dispatch("pause")

    def _release_media(self) -> None:
        if self.media is None:
            return
        try:
            self.media.release()
        except Exception:
            self.logger.debug("VLC media release failed", exc_info=True)
        self.media = None
