"""Shuffle algorithms for the source queue."""
from __future__ import annotations

import random
from typing import Callable, Optional, Sequence, TypeVar

from .models import ShuffleMode

T = TypeVar("T")


def shuffle_random(items: Sequence[T], rng: Optional[random.Random] = None) -> list[T]:
    shuffled = list(items)
    (rng or random).shuffle(shuffled)
    return shuffled


def shuffle_smart(
    items: Sequence[T],
    artist_of: Callable[[T], str],
    rng: Optional[random.Random] = None,
) -> list[T]:
    """Interleave artists round-robin so one artist rarely plays twice in a row."""
    if len(items) <= 2:
        return shuffle_random(items, rng)
    rng = rng or random.Random()
    by_artist: dict[str, list[T]] = {}
    for item in items:
        by_artist.setdefault(artist_of(item), []).append(item)
    for artist_items in by_artist.values():
        rng.shuffle(artist_items)
    artists = list(by_artist)
    rng.shuffle(artists)

    result: list[T] = []
    depth = 0
    remaining = len(items)
    while remaining:
        for artist in artists:
            artist_items = by_artist[artist]
            if depth < len(artist_items):
                result.append(artist_items[depth])
                remaining -= 1
        depth += 1
    return result


def shuffle_items(
    items: Sequence[T],
    mode: ShuffleMode,
    artist_of: Callable[[T], str],
    rng: Optional[random.Random] = None,
) -> list[T]:
    if mode == ShuffleMode.RANDOM:
        return shuffle_random(items, rng)
    if mode == ShuffleMode.SMART:
        return shuffle_smart(items, artist_of, rng)
    return list(items)
