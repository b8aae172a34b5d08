"""Track identity grouping and quality ranking.

Tracks that share a normalized artist and title are treated as the same song
in different encodings. Each group orders its versions by a deterministic
quality score so the best file is picked for playback unless the listener
chose another version explicitly.
"""
from __future__ import annotations

import re
from typing import Iterable, Mapping, Optional

from ..constants import (
    BITRATE_BONUS_CAP,
    DEFAULT_SAMPLE_RATE,
    DSD_BASE_SCORE,
    DSD_FORMATS,
    DSD_PREFIX,
    GROUP_KEY_SEPARATOR,
    LOSSLESS_BASE_SCORE,
    LOSSLESS_FORMATS,
    LOSSY_BASE_SCORES,
    MAX_BITRATE_BONUS_KBPS,
    MAX_SAMPLE_RATE_BONUS_HZ,
    SAMPLE_RATE_BONUS_CAP,
    UNKNOWN_BASE_SCORE,
)
from .models import Track, TrackGroup, TrackId

_PUNCTUATION_RE = re.compile(r"[^\w\s]")
_WHITESPACE_RE = re.compile(r"\s+")

FORMAT_CLASS_DSD = "dsd"
FORMAT_CLASS_LOSSLESS = "lossless"
FORMAT_CLASS_LOSSY = "lossy"
FORMAT_CLASS_UNKNOWN = "unknown"


def normalize_for_grouping(text: Optional[str]) -> str:
    value = (text or "").lower().strip()
    value = _PUNCTUATION_RE.sub("", value)
    return _WHITESPACE_RE.sub(" ", value)


def group_key(track: Track) -> str:
    return (
        normalize_for_grouping(track.artist)
        + GROUP_KEY_SEPARATOR
        + normalize_for_grouping(track.title)
    )


def _format_name(track: Track) -> str:
    return str(track.format or "").strip().upper()


def base_format_score(track: Track) -> int:
    name = _format_name(track)
    if name.startswith(DSD_PREFIX) or name in DSD_FORMATS:
        return DSD_BASE_SCORE
    if name in LOSSLESS_FORMATS:
        return LOSSLESS_BASE_SCORE
    return LOSSY_BASE_SCORES.get(name, UNKNOWN_BASE_SCORE)


def format_class(track: Track) -> str:
    base = base_format_score(track)
    if base == DSD_BASE_SCORE:
        return FORMAT_CLASS_DSD
    if base == LOSSLESS_BASE_SCORE:
        return FORMAT_CLASS_LOSSLESS
    if base == UNKNOWN_BASE_SCORE:
        return FORMAT_CLASS_UNKNOWN
    return FORMAT_CLASS_LOSSY


def quality_score(track: Track) -> float:
    """Score a track version; higher is better."""
    base = base_format_score(track)
    sample_rate = track.sample_rate or DEFAULT_SAMPLE_RATE
    sample_rate_bonus = min(sample_rate / MAX_SAMPLE_RATE_BONUS_HZ * 100, SAMPLE_RATE_BONUS_CAP)
    bitrate_bonus = 0.0
    if base < LOSSLESS_BASE_SCORE:
        bitrate = track.bitrate or 0
        bitrate_bonus = min(bitrate / MAX_BITRATE_BONUS_KBPS * 50, BITRATE_BONUS_CAP)
    return base + sample_rate_bonus + bitrate_bonus


def group_tracks(tracks: Iterable[Track]) -> list[TrackGroup]:
    """Group tracks by identity, keeping the order of first occurrence."""
    ordered = list(tracks)
    members: dict[str, list[Track]] = {}
    keys: list[str] = []
    for track in ordered:
        key = group_key(track)
        keys.append(key)
        members.setdefault(key, []).append(track)

    groups: list[TrackGroup] = []
    seen: set[str] = set()
    for key in keys:
        if key in seen:
            continue
        seen.add(key)
        # sorted() is stable, so equal scores keep encounter order.
        versions = sorted(members[key], key=quality_score, reverse=True)
        groups.append(TrackGroup(group_key=key, versions=tuple(versions)))
    return groups


class VersionOverrides:
    """Explicit version choices keyed by group key.

    This is listener-owned state: the grouper never stores it, callers apply it
    to freshly grouped results.
    """

    def __init__(self, choices: Optional[Mapping[str, TrackId]] = None) -> None:
        self._choices: dict[str, str] = {
            key: str(track_id) for key, track_id in (choices or {}).items()
        }

    def set(self, key: str, track_id: TrackId) -> None:
        self._choices[key] = str(track_id)

    def clear(self, key: Optional[str] = None) -> None:
        if key is None:
            self._choices.clear()
        else:
            self._choices.pop(key, None)

    def get(self, key: str) -> Optional[str]:
        return self._choices.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self._choices

    def __len__(self) -> int:
        return len(self._choices)

    def resolve(self, group: TrackGroup) -> Track:
        chosen = self._choices.get(group.group_key)
        if chosen is not None:
            version = group.find_version(chosen)
            if version is not None:
                return version
        return group.versions[0]

    def apply(self, groups: Iterable[TrackGroup]) -> list[TrackGroup]:
        resolved: list[TrackGroup] = []
        for group in groups:
            active = self.resolve(group)
            if active is group.active_version:
                resolved.append(group)
            else:
                resolved.append(group.with_active_version(active.id))
        return resolved


def deduplicated_tracks(
    tracks: Iterable[Track],
    overrides: Optional[VersionOverrides] = None,
) -> list[Track]:
    """Return one playable version per song, for building queues."""
    groups = group_tracks(tracks)
    if overrides is not None:
        groups = overrides.apply(groups)
    return [group.active_version for group in groups]
