"""Command line entrypoint: play audio files through a playback session."""
from __future__ import annotations

import argparse
import asyncio
import os
import sys
from pathlib import Path
from typing import Iterable, Sequence

from .application.bootstrap import initialize_session_services
from .application.context import SessionContext
from .config import AppConfig, load_config
from .constants import AUDIO_EXTENSIONS, EVENT_ERROR, EVENT_TRACK_CHANGE
from .domain.errors import SessionError, TrackLoadFailed
from .domain.grouping import group_tracks
from .domain.models import (
    ContextKind,
    PlaybackContext,
    QueueEntry,
    RepeatMode,
    ShuffleMode,
    Track,
)
from .domain.queue_builder import build_queue_from_groups
from .logging_config import setup_logging


def collect_audio_files(paths: Iterable[str]) -> list[str]:
    """Expand files and directories into a sorted list of audio files."""
    found: list[str] = []
    for raw in paths:
        path = Path(raw).expanduser()
        if path.is_dir():
            for root, _dirs, files in os.walk(path):
                for name in sorted(files):
                    if name.lower().endswith(AUDIO_EXTENSIONS):
                        found.append(os.path.join(root, name))
        elif path.is_file() and path.name.lower().endswith(AUDIO_EXTENSIONS):
            found.append(str(path))
    return sorted(dict.fromkeys(found))


def track_from_path(path: str) -> Track:
    """Build a track record from an "Artist - Title.ext" style file name."""
    file_path = Path(path)
    stem = file_path.stem
    artist, sep, title = stem.partition(" - ")
    if not sep:
        artist, title = "", stem
    return Track(
        id=str(file_path),
        path=str(file_path),
        title=title.strip(),
        artist=artist.strip(),
        album=file_path.parent.name or None,
        format=file_path.suffix.lstrip(".").upper() or None,
    )


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Play audio files through a playback session.")
    parser.add_argument("paths", nargs="+", help="Audio files or directories to queue.")
    parser.add_argument("--start-index", type=int, default=0, help="Queue position to start from.")
    parser.add_argument(
        "--shuffle",
        choices=[mode.value for mode in ShuffleMode],
        default=None,
        help="Shuffle mode (defaults to SOUL_SHUFFLE).",
    )
    parser.add_argument(
        "--repeat",
        choices=[mode.value for mode in RepeatMode],
        default=None,
        help="Repeat mode (defaults to SOUL_REPEAT).",
    )
    parser.add_argument(
        "--volume",
        type=int,
        default=None,
        help="Volume 0..100 (defaults to SOUL_DEFAULT_VOLUME).",
    )
    return parser


async def run_session(
    config: AppConfig,
    logger,
    queue: Sequence[QueueEntry],
    *,
    shuffle: str | None = None,
    repeat: str | None = None,
    volume: int | None = None,
    queue_engine=None,
    output_engine=None,
) -> int:
    """Play the queue until it is exhausted and return a process exit code."""
    context = SessionContext(config=config, logger=logger)
    context.bind_services(
        initialize_session_services(
            config=config,
            logger=logger,
            queue_engine=queue_engine,
            output_engine=output_engine,
        )
    )
    controller = context.require_controller()
    finished = asyncio.Event()
    pending: set[asyncio.Task] = set()

    def handle_track_change(track) -> None:
        if track is None:
            finished.set()
        else:
            logger.info("Now playing: %s - %s", track.artist, track.title)

    def handle_error(error) -> None:
        if not isinstance(error, TrackLoadFailed):
            return
        if controller.get_repeat() == RepeatMode.ONE:
            logger.error("Repeated track cannot be played; stopping")
            finished.set()
            return
        logger.warning("Skipping unplayable track: %s", error)
        task = asyncio.get_running_loop().create_task(controller.next())
        pending.add(task)
        task.add_done_callback(pending.discard)

    controller.on(EVENT_TRACK_CHANGE, handle_track_change)
    controller.on(EVENT_ERROR, handle_error)
    try:
        await controller.initialize()
        if shuffle is not None:
            controller.set_shuffle(shuffle)
        if repeat is not None:
            controller.set_repeat(repeat)
        if volume is not None:
            controller.set_volume(volume)
        controller.load_playlist(queue)
        try:
            await controller.play()
        except TrackLoadFailed:
            logger.warning("First track failed to load; advancing")
        await finished.wait()
    except SessionError:
        logger.exception("Playback session failed")
        return 1
    finally:
        for task in list(pending):
            task.cancel()
        controller.destroy()
    logger.info("Queue finished")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    config = load_config()
    logger = setup_logging(config)
    logger.info("Starting playback session")
    if config.file_log_enabled:
        logger.info("Log file: %s", config.log_file)

    files = collect_audio_files(args.paths)
    if not files:
        logger.error("No audio files found in: %s", ", ".join(args.paths))
        return 1
    groups = group_tracks([track_from_path(path) for path in files])
    try:
        queue = build_queue_from_groups(
            groups,
            args.start_index,
            PlaybackContext(kind=ContextKind.LIBRARY, name="command line"),
        )
    except SessionError as exc:
        logger.error("Cannot build queue: %s", exc)
        return 1
    if not queue:
        logger.error("Nothing playable among %s files", len(files))
        return 1
    logger.info("Queued %s tracks from %s files", len(queue), len(files))

    try:
        return asyncio.run(
            run_session(
                config,
                logger,
                queue,
                shuffle=args.shuffle,
                repeat=args.repeat,
                volume=args.volume,
            )
        )
    except RuntimeError as exc:
        logger.error("Playback unavailable: %s", exc)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 0


if __name__ == "__main__":
    sys.exit(main())
