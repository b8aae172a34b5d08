"""Ports for the two engines the session controller reconciles."""

from __future__ import annotations

from typing import Callable, Optional, Protocol, Sequence

from ..domain.models import QueueEntry

Unsubscribe = Callable[[], None]


class QueueEnginePort(Protocol):
    """Owns ordering, shuffle, repeat and history; knows nothing about audio.

    `get_state()` reports one of ``stopped``, ``playing``, ``paused`` or
    ``loading``. Callbacks may fire synchronously inside a command.

    Engines may also offer ``mark_playing()``; the controller calls it once
    rendering has actually started so the engine can leave ``loading``.
    """

    def play(self) -> None: ...

    def pause(self) -> None: ...

    def stop(self) -> None: ...

    def next(self) -> None: ...

    def previous(self) -> None: ...

    def get_state(self) -> str: ...

    def load_playlist(self, tracks: Sequence[QueueEntry]) -> None: ...

    def add_to_queue_next(self, track: QueueEntry) -> None: ...

    def add_to_queue_end(self, track: QueueEntry) -> None: ...

    def remove_from_queue(self, index: int) -> Optional[QueueEntry]: ...

    def append_to_queue(self, tracks: Sequence[QueueEntry]) -> None: ...

    def clear_queue(self) -> None: ...

    def get_queue(self) -> list[QueueEntry]: ...

    def get_history(self) -> list[QueueEntry]: ...

    def skip_to_queue_index(self, index: int) -> None: ...

    def set_shuffle(self, mode: str) -> None: ...

    def get_shuffle(self) -> str: ...

    def set_repeat(self, mode: str) -> None: ...

    def get_repeat(self) -> str: ...

    def set_volume(self, level: int) -> None: ...

    def get_volume(self) -> int: ...

    def mute(self) -> None: ...

    def unmute(self) -> None: ...

    def toggle_mute(self) -> None: ...

    def is_muted(self) -> bool: ...

    def queue_length(self) -> int: ...

    def has_next(self) -> bool: ...

    def has_previous(self) -> bool: ...

    def on_state_change(self, callback: Callable[[str], None]) -> None: ...

    def on_track_change(self, callback: Callable[[Optional[QueueEntry]], None]) -> None: ...

    def on_queue_change(self, callback: Callable[[], None]) -> None: ...

    def on_error(self, callback: Callable[[str], None]) -> None: ...


class OutputEnginePort(Protocol):
    """Renders the single track it was told to load; has no notion of a queue."""

    async def load_track(self, path: str) -> None: ...

    def play(self) -> None: ...

    def pause(self) -> None: ...

    def stop(self) -> None: ...

    def seek(self, position: float) -> None: ...

    def set_volume(self, level: float) -> None: ...

    @property
    def position(self) -> float: ...

    @property
    def duration(self) -> float: ...

    def on_time_update(self, callback: Callable[[float], None]) -> Unsubscribe: ...

    def on_ended(self, callback: Callable[[], None]) -> Unsubscribe: ...

    def on_error(self, callback: Callable[[Exception], None]) -> Unsubscribe: ...

    def on_play(self, callback: Callable[[], None]) -> Unsubscribe: ...

    def on_pause(self, callback: Callable[[], None]) -> Unsubscribe: ...

    def on_load_start(self, callback: Callable[[], None]) -> Unsubscribe: ...

    def destroy(self) -> None: ...
