"""Linear queue assembly from a library listing."""
from __future__ import annotations

from typing import Callable, Iterable, Optional, Sequence, TypeVar

from .errors import InvalidArgument
from .models import PlaybackContext, QueueEntry, Track, TrackGroup, TrackId

T = TypeVar("T")


def _entry_identity(entry: QueueEntry) -> str:
    return entry.identity_key


def remove_consecutive_duplicates(
    items: Iterable[T],
    key: Callable[[T], object] = _entry_identity,  # type: ignore[assignment]
) -> list[T]:
    """Drop items whose identity equals the previously kept item's identity."""
    kept: list[T] = []
    previous = None
    has_previous = False
    for item in items:
        identity = key(item)
        if has_previous and identity == previous:
            continue
        kept.append(item)
        previous = identity
        has_previous = True
    return kept


def resolve_start_index(
    tracks: Sequence[Track],
    track_id: Optional[TrackId],
    fallback_index: int,
) -> int:
    """Locate the clicked track by id, falling back to the clicked row."""
    if track_id is not None:
        wanted = str(track_id)
        for index, track in enumerate(tracks):
            if str(track.id) == wanted:
                return index
    return fallback_index


def build_queue(
    tracks: Sequence[Track],
    start_index: int,
    context: Optional[PlaybackContext] = None,
) -> list[QueueEntry]:
    """Rotate tracks to begin at start_index and project them to queue entries.

    Tracks without a playable path are dropped, then back-to-back repeats of the
    same track are collapsed. Later recurrences of a track are kept.
    """
    items = list(tracks)
    if not items:
        return []
    if isinstance(start_index, bool) or not isinstance(start_index, int):
        raise InvalidArgument(f"start_index must be an integer, got {start_index!r}")
    if not 0 <= start_index < len(items):
        raise InvalidArgument(
            f"start_index {start_index} is out of range for {len(items)} tracks"
        )
    rotated = items[start_index:] + items[:start_index]
    entries = [
        QueueEntry.from_track(track, context)
        for track in rotated
        if track.playable_path is not None
    ]
    return remove_consecutive_duplicates(entries)


def build_queue_from_groups(
    groups: Sequence[TrackGroup],
    start_index: int,
    context: Optional[PlaybackContext] = None,
) -> list[QueueEntry]:
    return build_queue([group.active_version for group in groups], start_index, context)
