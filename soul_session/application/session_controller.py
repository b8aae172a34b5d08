"""Playback session controller.

Reconciles the queue engine (ordering, shuffle, repeat, history) and the
output engine (rendering, position, volume) into one derived session state
and one ordered event stream. The queue engine never learns when rendering
actually starts, so the controller tracks the audio state itself from output
callbacks and only falls back to the queue engine's report while no track has
been handed to the output engine.
"""
from __future__ import annotations

import asyncio
from typing import Any, Callable, Iterable, Optional

from ..constants import (
    DEFAULT_TRACK_CHANGE_TIMEOUT_MS,
    EVENT_ERROR,
    EVENT_MUTE_CHANGE,
    EVENT_POSITION_UPDATE,
    EVENT_QUEUE_CHANGE,
    EVENT_REPEAT_CHANGE,
    EVENT_SHUFFLE_CHANGE,
    EVENT_STATE_CHANGE,
    EVENT_TRACK_CHANGE,
    EVENT_VOLUME_CHANGE,
    SESSION_EVENTS,
)
from ..domain.errors import (
    EngineCommandFailed,
    EngineDesync,
    InvalidArgument,
    NotInitialized,
    SessionError,
    TrackLoadFailed,
)
from ..domain.models import QueueEntry, RepeatMode, SessionState, ShuffleMode, Track
from ..utils import clamp_volume
from .events import EventEmitter
from .ports import OutputEnginePort, QueueEnginePort


def _as_entry(item: QueueEntry | Track) -> QueueEntry:
    if isinstance(item, QueueEntry):
        return item
    if isinstance(item, Track):
        return QueueEntry.from_track(item)
    raise InvalidArgument(f"Expected a QueueEntry or Track, got {type(item).__name__}")


class PlaybackSessionController:
    def __init__(
        self,
        queue_engine: QueueEnginePort,
        output_engine: OutputEnginePort,
        logger,
        *,
        track_change_timeout: float = DEFAULT_TRACK_CHANGE_TIMEOUT_MS / 1000.0,
        previous_restart_seconds: float = 0.0,
    ) -> None:
        self.queue_engine = queue_engine
        self.output_engine = output_engine
        self.logger = logger
        self.track_change_timeout = max(0.0, float(track_change_timeout))
        self.previous_restart_seconds = max(0.0, float(previous_restart_seconds))
        self._events = EventEmitter(SESSION_EVENTS, logger)
        self._initialized = False
        self._current_track: QueueEntry | None = None
        self._audio_state = SessionState.STOPPED
        self._queue_engine_state = SessionState.STOPPED
        self._handed_off = False
        self._published_state = SessionState.STOPPED
        self._track_change_waiter: asyncio.Future | None = None
        self._load_task: asyncio.Task | None = None
        self._load_generation = 0
        self._output_unsubscribers: list[Callable[[], None]] = []

    # ----------------------------
    # Lifecycle
    # ----------------------------

    async def initialize(self) -> None:
        if self._initialized:
            return
        try:
            self.queue_engine.on_state_change(self._handle_engine_state_change)
            self.queue_engine.on_track_change(self._handle_engine_track_change)
            self.queue_engine.on_queue_change(self._handle_engine_queue_change)
            self.queue_engine.on_error(self._handle_engine_error)
            self._output_unsubscribers = [
                self.output_engine.on_ended(self._handle_track_finished),
                self.output_engine.on_time_update(self._handle_time_update),
                self.output_engine.on_error(self._handle_output_error),
            ]
            self._queue_engine_state = SessionState.parse(self.queue_engine.get_state())
            volume = self.queue_engine.get_volume()
            self.output_engine.set_volume(0 if self.queue_engine.is_muted() else volume)
        except Exception as exc:
            self.logger.exception("Playback session setup failed")
            raise self._reject(
                EngineCommandFailed(f"Session setup failed: {exc}", operation="initialize")
            ) from exc
        self._published_state = self._derived_state()
        self._initialized = True
        self.logger.info(
            "Playback session initialized (engine_state=%s, volume=%s)",
            self._queue_engine_state.value,
            volume,
        )

    @property
    def initialized(self) -> bool:
        return self._initialized

    def destroy(self) -> None:
        if self._initialized:
            try:
                self.stop()
            except SessionError:
                self.logger.warning("Stop during destroy failed; continuing teardown")
        for unsubscribe in self._output_unsubscribers:
            try:
                unsubscribe()
            except Exception:
                self.logger.exception("Failed to detach output engine listener")
        self._output_unsubscribers = []
        try:
            self.output_engine.destroy()
        except Exception:
            self.logger.exception("Output engine teardown failed")
        if self._load_task is not None and not self._load_task.done():
            self._load_task.cancel()
        self._load_task = None
        self._events.clear()
        self._initialized = False
        self.logger.info("Playback session destroyed")

    def on(self, event: str, callback: Callable[..., Any]) -> Callable[[], None]:
        return self._events.on(event, callback)

    # ----------------------------
    # Playback control
    # ----------------------------

    async def play(self) -> None:
        self._ensure_initialized("play")
        if self._audio_state == SessionState.PAUSED:
            load_task = self._load_task
            if load_task is None or load_task.done():
                self._resume()
                return
            # Paused before the track finished loading; let the load start output.
            self.logger.debug("play() resumes a track load still in flight")
            self._audio_state = SessionState.LOADING
            self._publish_state()
            error = await load_task
            if error is not None:
                raise error
            return
        if self._audio_state == SessionState.PLAYING:
            self.logger.debug("play() ignored: already playing")
            return
        load_task = self._load_task
        if self._audio_state == SessionState.LOADING and load_task is not None and not load_task.done():
            self.logger.debug("play() joins the track load already in flight")
            error = await load_task
            if error is not None:
                raise error
            return

        waiter = self._arm_track_change_waiter()
        try:
            self._call_engine("play", self.queue_engine.play)
            reported = SessionState.parse(self._call_engine("get_state", self.queue_engine.get_state))
            self.logger.debug("Queue engine reported %s after play()", reported.value)
            if reported == SessionState.PLAYING and not waiter.done():
                self._call_output("play", self.output_engine.play)
                self._handed_off = True
                self._audio_state = SessionState.PLAYING
                self._publish_state()
                return
            if reported == SessionState.LOADING:
                self._audio_state = SessionState.LOADING
            try:
                await asyncio.wait_for(asyncio.shield(waiter), self.track_change_timeout)
            except asyncio.TimeoutError:
                raise self._desync(reported) from None
        finally:
            self._disarm_track_change_waiter(waiter)

        if waiter.result() is None:
            self.logger.info("play() reached the end of the queue")
            return
        load_task = self._load_task
        if load_task is not None:
            error = await load_task
            if error is not None:
                raise error

    def _resume(self) -> None:
        engine_state = SessionState.parse(self._call_engine("get_state", self.queue_engine.get_state))
        # The queue engine treats play() while loading as "start the next track".
        if engine_state == SessionState.PAUSED:
            self._call_engine("play", self.queue_engine.play)
        else:
            self.logger.debug(
                "Resuming output only; queue engine reports %s", engine_state.value
            )
        self._call_output("play", self.output_engine.play)
        self._audio_state = SessionState.PLAYING
        if engine_state == SessionState.LOADING:
            self._mark_engine_playing()
        self._publish_state()

    def pause(self) -> None:
        self._ensure_initialized("pause")
        if self._audio_state not in (SessionState.PLAYING, SessionState.LOADING):
            self.logger.debug("pause() ignored while %s", self._audio_state.value)
            return
        self._call_engine("pause", self.queue_engine.pause)
        self._call_output("pause", self.output_engine.pause)
        self._audio_state = SessionState.PAUSED
        self._publish_state()

    def stop(self) -> None:
        self._ensure_initialized("stop")
        self._load_generation += 1
        self._call_engine("stop", self.queue_engine.stop)
        self._call_output("stop", self.output_engine.stop)
        self._audio_state = SessionState.STOPPED
        self._publish_state()

    async def next(self) -> None:
        self._ensure_initialized("next")
        self._advance("next", self.queue_engine.next)

    async def previous(self) -> None:
        self._ensure_initialized("previous")
        if (
            self.previous_restart_seconds > 0
            and self._current_track is not None
            and self.get_position() > self.previous_restart_seconds
        ):
            self.logger.debug("previous() restarts the current track")
            self._call_output("seek", self.output_engine.seek, 0.0)
            return
        self._advance("previous", self.queue_engine.previous)

    async def skip_to_queue_index(self, index: int) -> None:
        self._ensure_initialized("skip_to_queue_index")
        self._validate_queue_index(index, "skip_to_queue_index")
        self._advance("skip_to_queue_index", self.queue_engine.skip_to_queue_index, index)

    def _advance(self, operation: str, command: Callable[..., Any], *args: Any) -> None:
        previous_state = self._audio_state
        # Optimistic; the track-change callback settles the real state.
        self._audio_state = SessionState.LOADING
        try:
            self._call_engine(operation, command, *args)
        except SessionError:
            self._audio_state = previous_state
            raise

    # ----------------------------
    # Seek
    # ----------------------------

    def seek(self, position: float) -> None:
        self._ensure_initialized("seek")
        try:
            target = float(position)
        except (TypeError, ValueError):
            raise self._reject(
                InvalidArgument(f"Seek position must be a number, got {position!r}", operation="seek")
            ) from None
        if target < 0:
            raise self._reject(
                InvalidArgument(f"Seek position must not be negative: {target}", operation="seek")
            )
        self._call_output("seek", self.output_engine.seek, target)

    def seek_percent(self, percent: float) -> None:
        self._ensure_initialized("seek_percent")
        try:
            value = float(percent)
        except (TypeError, ValueError):
            raise self._reject(
                InvalidArgument(f"Seek percent must be a number, got {percent!r}", operation="seek_percent")
            ) from None
        value = max(0.0, min(100.0, value))
        self.seek(value / 100.0 * self.get_duration())

    # ----------------------------
    # Queue management
    # ----------------------------

    def add_to_queue_next(self, track: QueueEntry | Track) -> None:
        self._ensure_initialized("add_to_queue_next")
        entry = self._coerce_entry(track, "add_to_queue_next")
        self._call_engine("add_to_queue_next", self.queue_engine.add_to_queue_next, entry)

    def add_to_queue_end(self, track: QueueEntry | Track) -> None:
        self._ensure_initialized("add_to_queue_end")
        entry = self._coerce_entry(track, "add_to_queue_end")
        self._call_engine("add_to_queue_end", self.queue_engine.add_to_queue_end, entry)

    def load_playlist(self, tracks: Iterable[QueueEntry | Track]) -> None:
        self._ensure_initialized("load_playlist")
        entries = [self._coerce_entry(track, "load_playlist") for track in tracks]
        self.logger.info("Loading playlist with %s tracks", len(entries))
        self._call_engine("load_playlist", self.queue_engine.load_playlist, entries)

    def append_to_queue(self, tracks: Iterable[QueueEntry | Track]) -> None:
        self._ensure_initialized("append_to_queue")
        entries = [self._coerce_entry(track, "append_to_queue") for track in tracks]
        self._call_engine("append_to_queue", self.queue_engine.append_to_queue, entries)

    def remove_from_queue(self, index: int) -> Optional[QueueEntry]:
        self._ensure_initialized("remove_from_queue")
        self._validate_queue_index(index, "remove_from_queue")
        return self._call_engine("remove_from_queue", self.queue_engine.remove_from_queue, index)

    def clear_queue(self) -> None:
        self._ensure_initialized("clear_queue")
        self._call_engine("clear_queue", self.queue_engine.clear_queue)

    def get_queue(self) -> list[QueueEntry]:
        self._ensure_initialized("get_queue")
        return list(self._call_engine("get_queue", self.queue_engine.get_queue))

    def queue_length(self) -> int:
        self._ensure_initialized("queue_length")
        return int(self._call_engine("queue_length", self.queue_engine.queue_length))

    def has_next(self) -> bool:
        self._ensure_initialized("has_next")
        return bool(self._call_engine("has_next", self.queue_engine.has_next))

    def has_previous(self) -> bool:
        self._ensure_initialized("has_previous")
        return bool(self._call_engine("has_previous", self.queue_engine.has_previous))

    def get_history(self) -> list[QueueEntry]:
        self._ensure_initialized("get_history")
        return list(self._call_engine("get_history", self.queue_engine.get_history))

    # ----------------------------
    # Shuffle, repeat, volume
    # ----------------------------

    def set_shuffle(self, mode: ShuffleMode | str) -> None:
        self._ensure_initialized("set_shuffle")
        parsed = self._parse_mode(ShuffleMode, mode, "set_shuffle")
        self._call_engine("set_shuffle", self.queue_engine.set_shuffle, parsed.value)
        self._events.emit(EVENT_SHUFFLE_CHANGE, parsed)

    def get_shuffle(self) -> ShuffleMode:
        self._ensure_initialized("get_shuffle")
        raw = self._call_engine("get_shuffle", self.queue_engine.get_shuffle)
        try:
            return ShuffleMode.parse(raw)
        except InvalidArgument:
            return ShuffleMode.OFF

    def set_repeat(self, mode: RepeatMode | str) -> None:
        self._ensure_initialized("set_repeat")
        parsed = self._parse_mode(RepeatMode, mode, "set_repeat")
        self._call_engine("set_repeat", self.queue_engine.set_repeat, parsed.value)
        self._events.emit(EVENT_REPEAT_CHANGE, parsed)

    def get_repeat(self) -> RepeatMode:
        self._ensure_initialized("get_repeat")
        raw = self._call_engine("get_repeat", self.queue_engine.get_repeat)
        try:
            return RepeatMode.parse(raw)
        except InvalidArgument:
            return RepeatMode.OFF

    def set_volume(self, level: float) -> None:
        self._ensure_initialized("set_volume")
        volume = clamp_volume(level)
        self._call_engine("set_volume", self.queue_engine.set_volume, volume)
        if not self._call_engine("is_muted", self.queue_engine.is_muted):
            self._call_output("set_volume", self.output_engine.set_volume, volume)
        self._events.emit(EVENT_VOLUME_CHANGE, volume)

    def get_volume(self) -> int:
        self._ensure_initialized("get_volume")
        return int(self._call_engine("get_volume", self.queue_engine.get_volume))

    def mute(self) -> None:
        self._ensure_initialized("mute")
        self._call_engine("mute", self.queue_engine.mute)
        self._call_output("set_volume", self.output_engine.set_volume, 0)
        self._events.emit(EVENT_MUTE_CHANGE, True)

    def unmute(self) -> None:
        self._ensure_initialized("unmute")
        self._call_engine("unmute", self.queue_engine.unmute)
        volume = self._call_engine("get_volume", self.queue_engine.get_volume)
        self._call_output("set_volume", self.output_engine.set_volume, volume)
        self._events.emit(EVENT_MUTE_CHANGE, False)

    def toggle_mute(self) -> None:
        self._ensure_initialized("toggle_mute")
        self._call_engine("toggle_mute", self.queue_engine.toggle_mute)
        if self._call_engine("is_muted", self.queue_engine.is_muted):
            self._call_output("set_volume", self.output_engine.set_volume, 0)
            self._events.emit(EVENT_MUTE_CHANGE, True)
        else:
            volume = self._call_engine("get_volume", self.queue_engine.get_volume)
            self._call_output("set_volume", self.output_engine.set_volume, volume)
            self._events.emit(EVENT_MUTE_CHANGE, False)

    def get_is_muted(self) -> bool:
        self._ensure_initialized("get_is_muted")
        return bool(self._call_engine("is_muted", self.queue_engine.is_muted))

    # ----------------------------
    # Queries
    # ----------------------------

    def get_state(self) -> SessionState:
        self._ensure_initialized("get_state")
        return self._derived_state()

    def get_current_track(self) -> Optional[QueueEntry]:
        return self._current_track

    def get_position(self) -> float:
        try:
            return float(self.output_engine.position or 0.0)
        except Exception:
            self.logger.exception("Output engine position query failed")
            return 0.0

    def get_duration(self) -> float:
        try:
            return float(self.output_engine.duration or 0.0)
        except Exception:
            self.logger.exception("Output engine duration query failed")
            return 0.0

    # ----------------------------
    # Queue engine callbacks
    # ----------------------------

    def _handle_engine_state_change(self, state: str) -> None:
        self._queue_engine_state = SessionState.parse(state)
        self.logger.debug("Queue engine state -> %s", self._queue_engine_state.value)
        self._publish_state()

    def _handle_engine_track_change(self, track: Optional[QueueEntry]) -> None:
        self._load_generation += 1
        generation = self._load_generation
        if track is None:
            self.logger.info("Queue exhausted; stopping output")
            self._current_track = None
            self._load_task = None
            try:
                self.output_engine.stop()
            except Exception:
                self.logger.exception("Output engine stop failed")
            self._audio_state = SessionState.STOPPED
            self._events.emit(EVENT_TRACK_CHANGE, None)
            self._resolve_track_change_waiter(None)
            self._publish_state()
            return

        self._current_track = track
        self._handed_off = True
        self._audio_state = SessionState.LOADING
        self.logger.info("Track change: %s - %s", track.artist, track.title)
        self._events.emit(EVENT_TRACK_CHANGE, track)
        self._publish_state()
        self._load_task = asyncio.get_running_loop().create_task(
            self._load_and_play(track, generation)
        )
        self._resolve_track_change_waiter(track)

    def _handle_engine_queue_change(self) -> None:
        self._events.emit(EVENT_QUEUE_CHANGE)

    def _handle_engine_error(self, message: str) -> None:
        self.logger.warning("Queue engine error: %s", message)
        self._events.emit(EVENT_ERROR, EngineCommandFailed(str(message), operation="queue_engine"))

    async def _load_and_play(self, track: QueueEntry, generation: int) -> Optional[TrackLoadFailed]:
        try:
            await self.output_engine.load_track(track.path)
            if generation != self._load_generation:
                self.logger.debug("Discarding superseded load of %s", track.path)
                return None
            if self._audio_state != SessionState.LOADING:
                self.logger.debug(
                    "Track loaded while %s; not starting output", self._audio_state.value
                )
                return None
            self.output_engine.play()
        except Exception as exc:
            if generation != self._load_generation:
                self.logger.debug("Ignoring failure of superseded load %s: %s", track.path, exc)
                return None
            self.logger.exception("Failed to load track %s", track.path)
            self._audio_state = SessionState.STOPPED
            error = TrackLoadFailed(
                f"Output engine rejected {track.path}: {exc}",
                path=track.path,
                operation="load_track",
            )
            self._events.emit(EVENT_ERROR, error)
            self._publish_state()
            return error

        self._audio_state = SessionState.PLAYING
        self._mark_engine_playing()
        # The queue engine cannot know rendering started, so publish it here.
        self._publish_state()
        return None

    def _mark_engine_playing(self) -> None:
        mark_playing = getattr(self.queue_engine, "mark_playing", None)
        if callable(mark_playing):
            try:
                mark_playing()
            except Exception:
                self.logger.exception("Queue engine mark_playing failed")

    # ----------------------------
    # Output engine callbacks
    # ----------------------------

    def _handle_track_finished(self) -> None:
        self.logger.debug("Output reported end of track; advancing")
        try:
            self._advance("next", self.queue_engine.next)
        except SessionError:
            self.logger.warning("Auto-advance after end of track failed")

    def _handle_time_update(self, position: float) -> None:
        self._events.emit(EVENT_POSITION_UPDATE, position)

    def _handle_output_error(self, error: Exception) -> None:
        self.logger.error("Output engine error: %s", error)
        path = self._current_track.path if self._current_track is not None else None
        self._audio_state = SessionState.STOPPED
        self._events.emit(
            EVENT_ERROR,
            TrackLoadFailed(f"Output engine error: {error}", path=path, operation="output"),
        )
        self._publish_state()

    # ----------------------------
    # Internals
    # ----------------------------

    def _derived_state(self) -> SessionState:
        if self._handed_off:
            return self._audio_state
        return self._queue_engine_state

    def _publish_state(self) -> None:
        state = self._derived_state()
        if state == self._published_state:
            return
        self._published_state = state
        self.logger.debug("Session state -> %s", state.value)
        self._events.emit(EVENT_STATE_CHANGE, state)

    def _arm_track_change_waiter(self) -> asyncio.Future:
        waiter = asyncio.get_running_loop().create_future()
        self._track_change_waiter = waiter
        return waiter

    def _disarm_track_change_waiter(self, waiter: asyncio.Future) -> None:
        if self._track_change_waiter is waiter:
            self._track_change_waiter = None
        if not waiter.done():
            waiter.cancel()

    def _resolve_track_change_waiter(self, track: Optional[QueueEntry]) -> None:
        waiter = self._track_change_waiter
        if waiter is not None and not waiter.done():
            waiter.set_result(track)

    def _desync(self, reported: SessionState) -> EngineDesync:
        self._audio_state = SessionState.STOPPED
        if reported == SessionState.LOADING:
            # Let a fresh play() start from a clean engine state.
            try:
                self.queue_engine.stop()
            except Exception:
                self.logger.exception("Queue engine stop after desync failed")
        self._publish_state()
        timeout_ms = int(round(self.track_change_timeout * 1000))
        self.logger.error(
            "Queue engine reported %s but signalled no track change within %s ms",
            reported.value,
            timeout_ms,
        )
        return self._reject(
            EngineDesync(
                f"Queue engine did not signal a track change within {timeout_ms} ms",
                operation="play",
            )
        )

    def _ensure_initialized(self, operation: str) -> None:
        if not self._initialized:
            raise self._reject(
                NotInitialized(
                    f"Playback session is not initialized; call initialize() before {operation}()",
                    operation=operation,
                )
            )

    def _validate_queue_index(self, index: int, operation: str) -> None:
        if isinstance(index, bool) or not isinstance(index, int):
            raise self._reject(
                InvalidArgument(f"Queue index must be an integer, got {index!r}", operation=operation)
            )
        length = self.queue_length()
        if not 0 <= index < length:
            raise self._reject(
                InvalidArgument(
                    f"Queue index {index} is out of range for queue of {length}",
                    operation=operation,
                )
            )

    def _coerce_entry(self, item: QueueEntry | Track, operation: str) -> QueueEntry:
        try:
            return _as_entry(item)
        except InvalidArgument as exc:
            exc.operation = operation
            raise self._reject(exc) from None

    def _parse_mode(self, mode_type, value, operation: str):
        try:
            return mode_type.parse(value)
        except InvalidArgument as exc:
            exc.operation = operation
            raise self._reject(exc) from None

    def _call_engine(self, operation: str, command: Callable[..., Any], *args: Any) -> Any:
        try:
            return command(*args)
        except SessionError:
            raise
        except Exception as exc:
            self.logger.exception("Queue engine %s failed", operation)
            raise self._reject(
                EngineCommandFailed(f"Queue engine {operation} failed: {exc}", operation=operation)
            ) from exc

    def _call_output(self, operation: str, command: Callable[..., Any], *args: Any) -> Any:
        try:
            return command(*args)
        except Exception as exc:
            self.logger.exception("Output engine %s failed", operation)
            self._audio_state = SessionState.STOPPED
            self._publish_state()
            raise self._reject(
                EngineCommandFailed(f"Output engine {operation} failed: {exc}", operation=operation)
            ) from exc

    def _reject(self, error: SessionError) -> SessionError:
        self.logger.warning("%s: %s", type(error).__name__, error)
        self._events.emit(EVENT_ERROR, error)
        return error
