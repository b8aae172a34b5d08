"""In-memory queue engine: ordering, shuffle, repeat and history."""
from __future__ import annotations

import logging
import random
from collections import deque
from typing import Callable, Optional, Sequence

from ..constants import DEFAULT_HISTORY_SIZE, DEFAULT_VOLUME, LOGGER_NAME
from ..domain.models import QueueEntry, RepeatMode, SessionState, ShuffleMode
from ..domain.queue_builder import remove_consecutive_duplicates
from ..domain.shuffle import shuffle_items
from ..utils import clamp_volume


class LocalQueueEngine:
    """Two-tier queue: explicit "play next" entries ahead of the source queue.

    The source queue is consumed by index so that `previous()` can step back
    without reordering anything. The engine has no idea when audio actually
    starts; after a track change it stays `loading` until `mark_playing()`.
    """

    def __init__(
        self,
        *,
        history_size: int = DEFAULT_HISTORY_SIZE,
        volume: int = DEFAULT_VOLUME,
        shuffle: ShuffleMode | str = ShuffleMode.OFF,
        repeat: RepeatMode | str = RepeatMode.OFF,
        rng: Optional[random.Random] = None,
        logger=None,
    ) -> None:
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self._rng = rng or random.Random()
        self._explicit: list[QueueEntry] = []
        self._source: list[QueueEntry] = []
        self._original_source: list[QueueEntry] = []
        self._source_index = 0
        self._history: deque[QueueEntry] = deque(maxlen=max(1, int(history_size)))
        self._current: Optional[QueueEntry] = None
        self._state = SessionState.STOPPED
        self._shuffle = ShuffleMode.parse(shuffle)
        self._repeat = RepeatMode.parse(repeat)
        self._volume = clamp_volume(volume)
        self._muted = False
        self._state_callback: Optional[Callable[[str], None]] = None
        self._track_callback: Optional[Callable[[Optional[QueueEntry]], None]] = None
        self._queue_callback: Optional[Callable[[], None]] = None
        self._error_callback: Optional[Callable[[str], None]] = None

    # Callbacks

    def on_state_change(self, callback: Callable[[str], None]) -> None:
        self._state_callback = callback

    def on_track_change(self, callback: Callable[[Optional[QueueEntry]], None]) -> None:
        self._track_callback = callback

    def on_queue_change(self, callback: Callable[[], None]) -> None:
        self._queue_callback = callback

    def on_error(self, callback: Callable[[str], None]) -> None:
        self._error_callback = callback

    # Transport

    def play(self) -> None:
        if self._state == SessionState.PAUSED:
            self._set_state(SessionState.PLAYING)
        elif self._state == SessionState.PLAYING:
            return
        elif self.queue_length() == 0 and not self._can_repeat():
            self.logger.debug("play() on an empty queue ignored")
        else:
            self._start_next()

    def pause(self) -> None:
        if self._state == SessionState.PLAYING:
            self._set_state(SessionState.PAUSED)

    def stop(self) -> None:
        self._current = None
        self._set_state(SessionState.STOPPED)

    def next(self) -> None:
        self._start_next()

    def previous(self) -> None:
        if self._history:
            previous_track = self._history.pop()
            if self._current is not None:
                self._explicit.insert(0, self._current)
                self._notify_queue()
            self._change_track(previous_track)
        elif self._current is not None:
            self._change_track(self._current)

    def mark_playing(self) -> None:
        if self._state == SessionState.LOADING and self._current is not None:
            self._set_state(SessionState.PLAYING)

    def get_state(self) -> str:
        return self._state.value

    def get_current_track(self) -> Optional[QueueEntry]:
        return self._current

    # Queue management

    def load_playlist(self, tracks: Sequence[QueueEntry]) -> None:
        self._original_source = list(tracks)
        source = shuffle_items(self._original_source, self._shuffle, _artist_of, self._rng)
        self._source = remove_consecutive_duplicates(source)
        self._source_index = 0
        self._history.clear()
        self.logger.debug("Loaded %s entries into the source queue", len(self._source))
        self._notify_queue()

    def append_to_queue(self, tracks: Sequence[QueueEntry]) -> None:
        added = list(tracks)
        self._original_source.extend(added)
        added = shuffle_items(added, self._shuffle, _artist_of, self._rng)
        pending = remove_consecutive_duplicates(self._source[self._source_index:] + added)
        self._source = self._source[: self._source_index] + pending
        self._notify_queue()

    def add_to_queue_next(self, track: QueueEntry) -> None:
        self._explicit.insert(0, track)
        self._notify_queue()

    def add_to_queue_end(self, track: QueueEntry) -> None:
        self._explicit.append(track)
        self._notify_queue()

    def remove_from_queue(self, index: int) -> Optional[QueueEntry]:
        self._check_index(index, "remove_from_queue")
        if index < len(self._explicit):
            removed = self._explicit.pop(index)
        else:
            removed = self._source.pop(self._source_index + index - len(self._explicit))
        self._notify_queue()
        return removed

    def clear_queue(self) -> None:
        self._explicit.clear()
        self._source.clear()
        self._original_source.clear()
        self._source_index = 0
        self._notify_queue()

    def get_queue(self) -> list[QueueEntry]:
        return self._explicit + self._source[self._source_index:]

    def get_history(self) -> list[QueueEntry]:
        return list(self._history)

    def queue_length(self) -> int:
        return len(self._explicit) + max(0, len(self._source) - self._source_index)

    def has_next(self) -> bool:
        return self.queue_length() > 0 or self._can_repeat()

    def has_previous(self) -> bool:
        return bool(self._history) or self._repeat == RepeatMode.ONE

    def skip_to_queue_index(self, index: int) -> None:
        self._check_index(index, "skip_to_queue_index")
        # Skipped entries were never played, so they do not enter history.
        if index < len(self._explicit):
            del self._explicit[:index]
        else:
            self._source_index += index - len(self._explicit)
            self._explicit.clear()
        self._notify_queue()
        self._advance_queue()

    # Shuffle and repeat

    def set_shuffle(self, mode: ShuffleMode | str) -> None:
        parsed = ShuffleMode.parse(mode)
        if parsed == self._shuffle:
            return
        self._shuffle = parsed
        played = self._source[: self._source_index]
        pending = self._source[self._source_index:]
        if parsed == ShuffleMode.OFF:
            pending = _in_original_order(pending, self._original_source)
        else:
            pending = remove_consecutive_duplicates(
                shuffle_items(pending, parsed, _artist_of, self._rng)
            )
        self._source = played + pending
        self.logger.debug("Shuffle mode -> %s", parsed.value)
        self._notify_queue()

    def get_shuffle(self) -> str:
        return self._shuffle.value

    def set_repeat(self, mode: RepeatMode | str) -> None:
        self._repeat = RepeatMode.parse(mode)

    def get_repeat(self) -> str:
        return self._repeat.value

    # Volume

    def set_volume(self, level: int) -> None:
        self._volume = clamp_volume(level)

    def get_volume(self) -> int:
        return self._volume

    def mute(self) -> None:
        self._muted = True

    def unmute(self) -> None:
        self._muted = False

    def toggle_mute(self) -> None:
        self._muted = not self._muted

    def is_muted(self) -> bool:
        return self._muted

    # Internals

    def _can_repeat(self) -> bool:
        if self._repeat == RepeatMode.ONE:
            return self._current is not None
        if self._repeat == RepeatMode.ALL:
            return bool(self._source)
        return False

    def _start_next(self) -> None:
        if self._repeat == RepeatMode.ONE and self._current is not None:
            self._change_track(self._current)
            return
        self._advance_queue()

    def _advance_queue(self) -> None:
        upcoming = self._pop_next()
        if upcoming is None and self._repeat == RepeatMode.ALL and self._source:
            self._reload_source()
            upcoming = self._pop_next()
        if self._current is not None:
            self._history.append(self._current)
        if upcoming is None:
            self.logger.debug("Queue exhausted")
            self._current = None
            self._set_state(SessionState.STOPPED)
            self._notify_track(None)
            return
        self._change_track(upcoming)

    def _change_track(self, track: QueueEntry) -> None:
        self._current = track
        self._set_state(SessionState.LOADING)
        self._notify_track(track)

    def _pop_next(self) -> Optional[QueueEntry]:
        if self._explicit:
            track = self._explicit.pop(0)
        elif self._source_index < len(self._source):
            track = self._source[self._source_index]
            self._source_index += 1
        else:
            return None
        self._notify_queue()
        return track

    def _reload_source(self) -> None:
        self.logger.debug("Repeat all: reloading the source queue")
        source = shuffle_items(self._original_source, self._shuffle, _artist_of, self._rng)
        self._source = remove_consecutive_duplicates(source)
        self._source_index = 0

    def _check_index(self, index: int, operation: str) -> None:
        length = self.queue_length()
        if not 0 <= index < length:
            message = f"{operation}: index {index} out of range for queue of {length}"
            self._notify_error(message)
            raise IndexError(message)

    def _set_state(self, state: SessionState) -> None:
        if state == self._state:
            return
        self._state = state
        if self._state_callback is not None:
            self._state_callback(state.value)

    def _notify_track(self, track: Optional[QueueEntry]) -> None:
        if self._track_callback is not None:
            self._track_callback(track)

    def _notify_queue(self) -> None:
        if self._queue_callback is not None:
            self._queue_callback()

    def _notify_error(self, message: str) -> None:
        self.logger.warning(message)
        if self._error_callback is not None:
            self._error_callback(message)


def _artist_of(entry: QueueEntry) -> str:
    return entry.artist


def _in_original_order(
    pending: list[QueueEntry], original: list[QueueEntry]
) -> list[QueueEntry]:
    remaining = list(pending)
    ordered: list[QueueEntry] = []
    for entry in original:
        if entry in remaining:
            remaining.remove(entry)
            ordered.append(entry)
    # Entries not in the original list (already removed from it) keep their order.
    return ordered + remaining
