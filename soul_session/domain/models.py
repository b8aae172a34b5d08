"""Track, group and queue models shared by the session core."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Mapping, Optional, Union

from .errors import InvalidArgument

TrackId = Union[str, int]


class SessionState(str, Enum):
    STOPPED = "stopped"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"

    @classmethod
    def parse(cls, value: Any) -> "SessionState":
        if isinstance(value, cls):
            return value
        normalized = str(value or "").strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        return cls.STOPPED


class ShuffleMode(str, Enum):
    OFF = "off"
    RANDOM = "random"
    SMART = "smart"

    @classmethod
    def parse(cls, value: Any) -> "ShuffleMode":
        if isinstance(value, cls):
            return value
        normalized = str(value or "").strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        raise InvalidArgument(f"Unknown shuffle mode: {value!r}")


class RepeatMode(str, Enum):
    OFF = "off"
    ALL = "all"
    ONE = "one"

    @classmethod
    def parse(cls, value: Any) -> "RepeatMode":
        if isinstance(value, cls):
            return value
        normalized = str(value or "").strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        raise InvalidArgument(f"Unknown repeat mode: {value!r}")


def _first_present(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None and value != "":
            return value
    return None


def _optional_int(value: Any) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class Track:
    """A library track as handed over by the library layer."""

    id: TrackId
    path: Optional[str]
    title: str
    artist: str
    album: Optional[str] = None
    duration: Optional[float] = None
    track_number: Optional[int] = None
    format: Optional[str] = None
    bitrate: Optional[int] = None
    sample_rate: Optional[int] = None
    channels: Optional[int] = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "Track":
        """Build a track from a raw record using either naming convention."""
        track_id = raw.get("id")
        if track_id is None or track_id == "":
            raise InvalidArgument("Track record has no id")
        return cls(
            id=track_id,
            path=_first_present(raw, "path", "file_path", "filePath"),
            title=str(_first_present(raw, "title") or ""),
            artist=str(_first_present(raw, "artist", "artist_name") or ""),
            album=_first_present(raw, "album", "album_title"),
            duration=_optional_float(_first_present(raw, "duration", "duration_seconds")),
            track_number=_optional_int(_first_present(raw, "track_number", "trackNumber")),
            format=_first_present(raw, "format", "file_format"),
            bitrate=_optional_int(_first_present(raw, "bitrate", "bit_rate")),
            sample_rate=_optional_int(_first_present(raw, "sample_rate", "sampleRate")),
            channels=_optional_int(_first_present(raw, "channels")),
        )

    @property
    def playable_path(self) -> Optional[str]:
        if self.path is None:
            return None
        path = str(self.path).strip()
        return path or None


@dataclass(frozen=True)
class TrackGroup:
    """All quality versions of one song, best version first."""

    group_key: str
    versions: tuple[Track, ...]
    active_version: Optional[Track] = None

    def __post_init__(self) -> None:
        versions = tuple(self.versions)
        if not versions:
            raise InvalidArgument(f"Track group {self.group_key!r} has no versions")
        object.__setattr__(self, "versions", versions)
        if self.active_version is None:
            object.__setattr__(self, "active_version", versions[0])
        elif self.active_version not in versions:
            raise InvalidArgument(
                f"Active version {self.active_version.id!r} is not part of group {self.group_key!r}"
            )

    @property
    def best_version(self) -> Track:
        return self.versions[0]

    def find_version(self, track_id: TrackId) -> Optional[Track]:
        wanted = str(track_id)
        for version in self.versions:
            if str(version.id) == wanted:
                return version
        return None

    def with_active_version(self, track_id: TrackId) -> "TrackGroup":
        version = self.find_version(track_id)
        if version is None:
            raise InvalidArgument(
                f"Track {track_id!r} is not a version of group {self.group_key!r}"
            )
        return replace(self, active_version=version)


class ContextKind(str, Enum):
    PLAYLIST = "playlist"
    ALBUM = "album"
    ARTIST = "artist"
    GENRE = "genre"
    LIBRARY = "library"
    SINGLE = "single"


@dataclass(frozen=True)
class PlaybackContext:
    """Which library view produced a queue."""

    kind: ContextKind = ContextKind.SINGLE
    id: Optional[str] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class QueueEntry:
    """Flat, playback-ready projection of a track."""

    track_id: TrackId
    path: str
    title: str
    artist: str
    album: Optional[str] = None
    duration: Optional[float] = None
    track_number: Optional[int] = None
    context: Optional[PlaybackContext] = field(default=None, compare=False)

    @classmethod
    def from_track(cls, track: Track, context: Optional[PlaybackContext] = None) -> "QueueEntry":
        path = track.playable_path
        if path is None:
            raise InvalidArgument(f"Track {track.id!r} has no playable path")
        return cls(
            track_id=track.id,
            path=path,
            title=track.title or "Unknown",
            artist=track.artist or "Unknown Artist",
            album=track.album or None,
            duration=track.duration,
            track_number=track.track_number,
            context=context,
        )

    @property
    def identity_key(self) -> str:
        return str(self.track_id)
