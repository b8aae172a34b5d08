"""Domain logic for track identity, quality ranking and queue assembly."""

from .errors import (
    EngineCommandFailed,
    EngineDesync,
    InvalidArgument,
    NotInitialized,
    SessionError,
    TrackLoadFailed,
)
from .grouping import (
    VersionOverrides,
    deduplicated_tracks,
    format_class,
    group_key,
    group_tracks,
    normalize_for_grouping,
    quality_score,
)
from .models import (
    ContextKind,
    PlaybackContext,
    QueueEntry,
    RepeatMode,
    SessionState,
    ShuffleMode,
    Track,
    TrackGroup,
)
from .queue_builder import (
    build_queue,
    build_queue_from_groups,
    remove_consecutive_duplicates,
    resolve_start_index,
)

__all__ = [
    "ContextKind",
    "EngineCommandFailed",
    "EngineDesync",
    "InvalidArgument",
    "NotInitialized",
    "PlaybackContext",
    "QueueEntry",
    "RepeatMode",
    "SessionError",
    "SessionState",
    "ShuffleMode",
    "Track",
    "TrackGroup",
    "TrackLoadFailed",
    "VersionOverrides",
    "build_queue",
    "build_queue_from_groups",
    "deduplicated_tracks",
    "format_class",
    "group_key",
    "group_tracks",
    "normalize_for_grouping",
    "quality_score",
    "remove_consecutive_duplicates",
    "resolve_start_index",
]
