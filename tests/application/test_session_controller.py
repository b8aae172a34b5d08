import asyncio

import pytest

from soul_session.application.session_controller import PlaybackSessionController
from soul_session.domain.errors import (
    EngineCommandFailed,
    EngineDesync,
    InvalidArgument,
    NotInitialized,
    TrackLoadFailed,
)
from soul_session.domain.models import QueueEntry, RepeatMode, SessionState, ShuffleMode, Track
from soul_session.integrations.queue_engine import LocalQueueEngine


class _Logger:
    def __init__(self):
        self.messages = []

    def _record(self, level, message, *args, **_kwargs):
        self.messages.append((level, message % args if args else message))

    def debug(self, message, *args, **kwargs):
        self._record("debug", message, *args, **kwargs)

    def info(self, message, *args, **kwargs):
        self._record("info", message, *args, **kwargs)

    def warning(self, message, *args, **kwargs):
        self._record("warning", message, *args, **kwargs)

    def error(self, message, *args, **kwargs):
        self._record("error", message, *args, **kwargs)

    def exception(self, message, *args, **kwargs):
        self._record("exception", message, *args, **kwargs)


def _entry(track_id):
    return QueueEntry(
        track_id=track_id,
        path=f"/music/{track_id}.flac",
        title=f"Song {track_id}",
        artist="Artist",
    )


class _FakeQueueEngine:
    def __init__(self, entries=(), *, state="stopped", volume=80, muted=False):
        self.queue = list(entries)
        self.history = []
        self.current = None
        self.state = state
        self.volume = volume
        self.muted = muted
        self.shuffle = "off"
        self.repeat = "off"
        self.calls = []
        self.fail_commands = set()
        self.emit_track_on_play = True
        self.callbacks = {}

    def _record(self, name, *args):
        self.calls.append((name, *args) if args else name)
        if name in self.fail_commands:
            raise RuntimeError(f"{name} exploded")

    def _set_state(self, state):
        if state == self.state:
            return
        self.state = state
        self.callbacks["state"](state)

    def _advance(self):
        if self.current is not None:
            self.history.append(self.current)
        if not self.queue:
            self.current = None
            self._set_state("stopped")
            self.callbacks["track"](None)
            return
        self.current = self.queue.pop(0)
        self._set_state("loading")
        self.callbacks["track"](self.current)

    def on_state_change(self, callback):
        self.callbacks["state"] = callback

    def on_track_change(self, callback):
        self.callbacks["track"] = callback

    def on_queue_change(self, callback):
        self.callbacks["queue"] = callback

    def on_error(self, callback):
        self.callbacks["error"] = callback

    def play(self):
        self._record("play")
        if self.state == "paused":
            self._set_state("playing")
        elif self.emit_track_on_play and self.queue:
            self._advance()
        elif not self.emit_track_on_play:
            self._set_state("loading")

    def pause(self):
        self._record("pause")
        if self.state == "playing":
            self._set_state("paused")

    def stop(self):
        self._record("stop")
        self.current = None
        self._set_state("stopped")

    def next(self):
        self._record("next")
        self._advance()

    def previous(self):
        self._record("previous")
        if self.history:
            if self.current is not None:
                self.queue.insert(0, self.current)
            self.current = self.history.pop()
            self._set_state("loading")
            self.callbacks["track"](self.current)

    def get_state(self):
        return self.state

    def load_playlist(self, tracks):
        self._record("load_playlist", list(tracks))
        self.queue = list(tracks)
        self.history = []

    def add_to_queue_next(self, track):
        self._record("add_to_queue_next", track)
        self.queue.insert(0, track)

    def add_to_queue_end(self, track):
        self._record("add_to_queue_end", track)
        self.queue.append(track)

    def remove_from_queue(self, index):
        self._record("remove_from_queue", index)
        return self.queue.pop(index)

    def append_to_queue(self, tracks):
        self._record("append_to_queue", list(tracks))
        self.queue.extend(tracks)

    def clear_queue(self):
        self._record("clear_queue")
        self.queue = []

    def get_queue(self):
        return list(self.queue)

    def get_history(self):
        return list(self.history)

    def skip_to_queue_index(self, index):
        self._record("skip_to_queue_index", index)
        del self.queue[:index]
        self._advance()

    def set_shuffle(self, mode):
        self._record("set_shuffle", mode)
        self.shuffle = mode

    def get_shuffle(self):
        return self.shuffle

    def set_repeat(self, mode):
        self._record("set_repeat", mode)
        self.repeat = mode

    def get_repeat(self):
        return self.repeat

    def set_volume(self, level):
        self._record("set_volume", level)
        self.volume = level

    def get_volume(self):
        return self.volume

    def mute(self):
        self.muted = True

    def unmute(self):
        self.muted = False

    def toggle_mute(self):
        self.muted = not self.muted

    def is_muted(self):
        return self.muted

    def queue_length(self):
        return len(self.queue)

    def has_next(self):
        return bool(self.queue)

    def has_previous(self):
        return bool(self.history)


class _MarkingQueueEngine(_FakeQueueEngine):
    def mark_playing(self):
        self.calls.append("mark_playing")
        if self.state == "loading":
            self._set_state("playing")


class _FakeOutputEngine:
    def __init__(self):
        self.calls = []
        self.volumes = []
        self.position = 0.0
        self.duration = 200.0
        self.fail_paths = set()
        self.load_delays = {}
        self.destroyed = False
        self.listeners = {
            name: [] for name in ("time_update", "ended", "error", "play", "pause", "load_start")
        }

    async def load_track(self, path):
        self.calls.append(("load", path))
        delay = self.load_delays.get(path)
        if delay:
            await asyncio.sleep(delay)
        if path in self.fail_paths:
            raise FileNotFoundError(path)

    def play(self):
        self.calls.append("play")

    def pause(self):
        self.calls.append("pause")

    def stop(self):
        self.calls.append("stop")

    def seek(self, position):
        self.calls.append(("seek", position))

    def set_volume(self, level):
        self.volumes.append(level)

    def _subscribe(self, name, callback):
        self.listeners[name].append(callback)
        return lambda: self.listeners[name].remove(callback)

    def on_time_update(self, callback):
        return self._subscribe("time_update", callback)

    def on_ended(self, callback):
        return self._subscribe("ended", callback)

    def on_error(self, callback):
        return self._subscribe("error", callback)

    def on_play(self, callback):
        return self._subscribe("play", callback)

    def on_pause(self, callback):
        return self._subscribe("pause", callback)

    def on_load_start(self, callback):
        return self._subscribe("load_start", callback)

    def fire(self, name, *args):
        for callback in list(self.listeners[name]):
            callback(*args)

    def destroy(self):
        self.destroyed = True

    def play_count(self):
        return self.calls.count("play")


def _controller(queue_engine, output_engine=None, **kwargs):
    kwargs.setdefault("track_change_timeout", 0.05)
    controller = PlaybackSessionController(
        queue_engine,
        output_engine or _FakeOutputEngine(),
        _Logger(),
        **kwargs,
    )
    events = []
    for name in (
        "stateChange",
        "trackChange",
        "positionUpdate",
        "volumeChange",
        "shuffleChange",
        "repeatChange",
        "muteChange",
        "queueChange",
        "error",
    ):
        controller.on(name, lambda *args, _name=name: events.append((_name, *args)))
    return controller, events


def _states(events):
    return [event[1] for event in events if event[0] == "stateChange"]


def _errors(events):
    return [event[1] for event in events if event[0] == "error"]


async def _drain():
    for _ in range(5):
        await asyncio.sleep(0)


def test_commands_before_initialize_raise_not_initialized():
    controller, events = _controller(_FakeQueueEngine([_entry(1)]))

    with pytest.raises(NotInitialized):
        asyncio.run(controller.play())
    with pytest.raises(NotInitialized):
        controller.set_volume(10)
    with pytest.raises(NotInitialized):
        controller.get_state()

    assert [type(error) for error in _errors(events)] == [NotInitialized] * 3
    assert controller.get_current_track() is None


def test_initialize_mirrors_muted_volume_to_output():
    output = _FakeOutputEngine()
    controller, _events = _controller(_FakeQueueEngine(volume=40, muted=True), output)

    asyncio.run(controller.initialize())

    assert controller.initialized is True
    assert output.volumes == [0]
    assert controller.get_state() == SessionState.STOPPED


def test_play_from_stopped_emits_track_change_before_playing():
    queue = _FakeQueueEngine([_entry(1), _entry(2)])
    output = _FakeOutputEngine()
    controller, events = _controller(queue, output)

    async def scenario():
        await controller.initialize()
        await controller.play()

    asyncio.run(scenario())

    assert [event[0] for event in events if event[0] in ("stateChange", "trackChange")] == [
        "stateChange",
        "trackChange",
        "stateChange",
    ]
    assert _states(events) == [SessionState.LOADING, SessionState.PLAYING]
    assert controller.get_state() == SessionState.PLAYING
    assert controller.get_current_track() == _entry(1)
    assert output.calls == [("load", "/music/1.flac"), "play"]
    # The engine itself never leaves loading; the session state does.
    assert queue.get_state() == "loading"


def test_mark_playing_is_called_once_rendering_starts():
    queue = _MarkingQueueEngine([_entry(1)])
    output = _FakeOutputEngine()
    controller, events = _controller(queue, output)

    async def scenario():
        await controller.initialize()
        await controller.play()

    asyncio.run(scenario())

    assert queue.calls[-1] == "mark_playing"
    assert queue.get_state() == "playing"
    assert _states(events) == [SessionState.LOADING, SessionState.PLAYING]


def test_play_while_paused_resumes_output_without_queue_play_when_engine_loading():
    queue = _FakeQueueEngine([_entry(1)])
    output = _FakeOutputEngine()
    controller, events = _controller(queue, output)

    async def scenario():
        await controller.initialize()
        await controller.play()
        controller.pause()
        assert queue.get_state() == "loading"
        assert controller.get_state() == SessionState.PAUSED
        await controller.play()

    asyncio.run(scenario())

    assert queue.calls.count("play") == 1
    assert output.calls[-2:] == ["pause", "play"]
    assert controller.get_state() == SessionState.PLAYING
    assert _states(events)[-2:] == [SessionState.PAUSED, SessionState.PLAYING]


def test_play_while_paused_calls_queue_play_when_engine_reports_paused():
    queue = _MarkingQueueEngine([_entry(1)])
    output = _FakeOutputEngine()
    controller, _events = _controller(queue, output)

    async def scenario():
        await controller.initialize()
        await controller.play()
        controller.pause()
        assert queue.get_state() == "paused"
        await controller.play()

    asyncio.run(scenario())

    assert queue.calls.count("play") == 2
    assert queue.get_state() == "playing"
    assert controller.get_state() == SessionState.PLAYING


def test_play_with_empty_queue_raises_engine_desync_and_stays_stopped():
    queue = _FakeQueueEngine([])
    controller, events = _controller(queue, track_change_timeout=0.01)

    async def scenario():
        await controller.initialize()
        with pytest.raises(EngineDesync):
            await controller.play()

    asyncio.run(scenario())

    assert controller.get_state() == SessionState.STOPPED
    assert _states(events) == []
    assert [type(error) for error in _errors(events)] == [EngineDesync]
    assert "stop" not in queue.calls


def test_play_desync_while_engine_loading_resets_engine():
    queue = _FakeQueueEngine([_entry(1)])
    queue.emit_track_on_play = False
    controller, events = _controller(queue, track_change_timeout=0.01)

    async def scenario():
        await controller.initialize()
        with pytest.raises(EngineDesync):
            await controller.play()

    asyncio.run(scenario())

    assert "stop" in queue.calls
    assert controller.get_state() == SessionState.STOPPED
    assert _states(events) == [SessionState.LOADING, SessionState.STOPPED]


def test_natural_end_of_track_behaves_like_next():
    def run(trigger):
        queue = _FakeQueueEngine([_entry(1), _entry(2), _entry(3)])
        output = _FakeOutputEngine()
        controller, events = _controller(queue, output)

        async def scenario():
            await controller.initialize()
            await controller.play()
            events.clear()
            await trigger(controller, output)
            await _drain()

        asyncio.run(scenario())
        return events, controller, queue

    async def explicit_next(controller, _output):
        await controller.next()

    async def natural_end(_controller_, output):
        output.fire("ended")

    explicit_events, explicit_controller, explicit_queue = run(explicit_next)
    natural_events, natural_controller, natural_queue = run(natural_end)

    assert explicit_events == natural_events
    assert _states(explicit_events) == [SessionState.LOADING, SessionState.PLAYING]
    assert explicit_controller.get_current_track() == natural_controller.get_current_track() == _entry(2)
    assert explicit_queue.history == natural_queue.history == [_entry(1)]


def test_next_at_end_of_queue_stops_output():
    queue = _FakeQueueEngine([_entry(1)])
    output = _FakeOutputEngine()
    controller, events = _controller(queue, output)

    async def scenario():
        await controller.initialize()
        await controller.play()
        await controller.next()
        await _drain()

    asyncio.run(scenario())

    assert ("trackChange", None) in events
    assert output.calls[-1] == "stop"
    assert controller.get_state() == SessionState.STOPPED
    assert controller.get_current_track() is None


def test_track_load_failure_emits_error_and_returns_to_stopped():
    queue = _FakeQueueEngine([_entry(1)])
    output = _FakeOutputEngine()
    output.fail_paths.add("/music/1.flac")
    controller, events = _controller(queue, output)

    async def scenario():
        await controller.initialize()
        with pytest.raises(TrackLoadFailed) as excinfo:
            await controller.play()
        return excinfo.value

    error = asyncio.run(scenario())

    assert error.path == "/music/1.flac"
    assert _errors(events) == [error]
    assert controller.get_state() == SessionState.STOPPED
    assert "play" not in output.calls


def test_superseded_load_is_discarded():
    queue = _FakeQueueEngine([_entry(1), _entry(2)])
    output = _FakeOutputEngine()
    output.load_delays["/music/1.flac"] = 0.05
    controller, _events = _controller(queue, output)

    async def scenario():
        await controller.initialize()
        await controller.next()
        await controller.next()
        await asyncio.sleep(0.1)

    asyncio.run(scenario())

    assert output.calls == [("load", "/music/1.flac"), ("load", "/music/2.flac"), "play"]
    assert controller.get_current_track() == _entry(2)
    assert controller.get_state() == SessionState.PLAYING


def test_pause_during_load_keeps_output_silent():
    queue = _FakeQueueEngine([_entry(1)])
    output = _FakeOutputEngine()
    output.load_delays["/music/1.flac"] = 0.02
    controller, _events = _controller(queue, output)

    async def scenario():
        await controller.initialize()
        await controller.next()
        controller.pause()
        await asyncio.sleep(0.05)

    asyncio.run(scenario())

    assert output.play_count() == 0
    assert controller.get_state() == SessionState.PAUSED


def test_pause_after_stop_is_ignored_and_play_starts_next_track():
    engine = LocalQueueEngine(logger=_Logger())
    output = _FakeOutputEngine()
    controller, events = _controller(engine, output)

    async def scenario():
        await controller.initialize()
        controller.load_playlist([_entry(1), _entry(2)])
        await controller.play()
        controller.stop()
        calls_after_stop = list(output.calls)
        states_after_stop = list(_states(events))
        controller.pause()
        assert output.calls == calls_after_stop
        assert _states(events) == states_after_stop
        assert controller.get_state() == SessionState.STOPPED
        await controller.play()

    asyncio.run(scenario())

    assert SessionState.PAUSED not in _states(events)
    assert controller.get_state() == SessionState.PLAYING
    assert controller.get_current_track() == _entry(2)
    assert engine.get_current_track() == _entry(2)
    assert engine.get_state() == "playing"
    assert output.calls[-2:] == [("load", "/music/2.flac"), "play"]


def test_resume_after_pause_during_load_marks_engine_playing():
    engine = LocalQueueEngine(logger=_Logger())
    output = _FakeOutputEngine()
    output.load_delays["/music/1.flac"] = 0.02
    controller, _events = _controller(engine, output)

    async def scenario():
        await controller.initialize()
        controller.load_playlist([_entry(1)])
        first_play = asyncio.ensure_future(controller.play())
        await asyncio.sleep(0.005)
        controller.pause()
        await first_play
        assert output.play_count() == 0
        assert engine.get_state() == "loading"
        await controller.play()

    asyncio.run(scenario())

    assert output.play_count() == 1
    assert controller.get_state() == SessionState.PLAYING
    assert engine.get_state() == "playing"


def test_play_while_paused_mid_load_waits_for_the_load():
    engine = LocalQueueEngine(logger=_Logger())
    output = _FakeOutputEngine()
    output.load_delays["/music/1.flac"] = 0.02
    controller, events = _controller(engine, output)

    async def scenario():
        await controller.initialize()
        controller.load_playlist([_entry(1)])
        await controller.next()
        await asyncio.sleep(0.005)
        controller.pause()
        await controller.play()

    asyncio.run(scenario())

    assert output.calls == [("load", "/music/1.flac"), "pause", "play"]
    assert controller.get_state() == SessionState.PLAYING
    assert engine.get_state() == "playing"
    assert _states(events)[-2:] == [SessionState.LOADING, SessionState.PLAYING]


def test_previous_restarts_track_past_threshold():
    queue = _FakeQueueEngine([_entry(1), _entry(2)])
    output = _FakeOutputEngine()
    controller, _events = _controller(queue, output, previous_restart_seconds=3.0)

    async def scenario():
        await controller.initialize()
        await controller.play()
        await controller.next()
        await _drain()
        output.position = 12.0
        await controller.previous()
        assert "previous" not in queue.calls
        output.position = 1.0
        await controller.previous()
        await _drain()

    asyncio.run(scenario())

    assert ("seek", 0.0) in output.calls
    assert queue.calls.count("previous") == 1
    assert controller.get_current_track() == _entry(1)


@pytest.mark.parametrize("index", [-1, 2, "1", True, 1.0])
def test_skip_and_remove_reject_invalid_indices(index):
    queue = _FakeQueueEngine([_entry(1), _entry(2)])
    controller, events = _controller(queue)

    async def scenario():
        await controller.initialize()
        with pytest.raises(InvalidArgument):
            await controller.skip_to_queue_index(index)
        with pytest.raises(InvalidArgument):
            controller.remove_from_queue(index)

    asyncio.run(scenario())

    assert [type(error) for error in _errors(events)] == [InvalidArgument, InvalidArgument]
    assert not any(isinstance(call, tuple) and call[0] == "skip_to_queue_index" for call in queue.calls)


def test_skip_to_queue_index_loads_target_track():
    queue = _FakeQueueEngine([_entry(1), _entry(2), _entry(3)])
    output = _FakeOutputEngine()
    controller, _events = _controller(queue, output)

    async def scenario():
        await controller.initialize()
        await controller.skip_to_queue_index(2)
        await _drain()

    asyncio.run(scenario())

    assert controller.get_current_track() == _entry(3)
    assert output.calls == [("load", "/music/3.flac"), "play"]


def test_volume_is_clamped_and_mirrored_only_when_unmuted():
    queue = _FakeQueueEngine()
    output = _FakeOutputEngine()
    controller, events = _controller(queue, output)
    asyncio.run(controller.initialize())

    controller.set_volume(150)
    controller.mute()
    controller.set_volume(30)
    controller.unmute()
    controller.toggle_mute()

    assert queue.volume == 30
    assert output.volumes == [80, 100, 0, 30, 0]
    assert controller.get_is_muted() is True
    assert controller.get_volume() == 30
    assert [event for event in events if event[0] in ("volumeChange", "muteChange")] == [
        ("volumeChange", 100),
        ("muteChange", True),
        ("volumeChange", 30),
        ("muteChange", False),
        ("muteChange", True),
    ]


def test_shuffle_and_repeat_pass_through_and_emit():
    queue = _FakeQueueEngine()
    controller, events = _controller(queue)
    asyncio.run(controller.initialize())

    controller.set_shuffle("smart")
    controller.set_repeat(RepeatMode.ALL)

    assert controller.get_shuffle() is ShuffleMode.SMART
    assert controller.get_repeat() is RepeatMode.ALL
    assert ("shuffleChange", ShuffleMode.SMART) in events
    assert ("repeatChange", RepeatMode.ALL) in events

    with pytest.raises(InvalidArgument):
        controller.set_shuffle("chaotic")
    queue.repeat = "garbage"
    assert controller.get_repeat() is RepeatMode.OFF


def test_seek_validates_input_and_seek_percent_scales_duration():
    output = _FakeOutputEngine()
    controller, events = _controller(_FakeQueueEngine(), output)
    asyncio.run(controller.initialize())

    with pytest.raises(InvalidArgument):
        controller.seek(-1)
    with pytest.raises(InvalidArgument):
        controller.seek("later")
    controller.seek(12)
    controller.seek_percent(50)
    controller.seek_percent(150)

    assert [call for call in output.calls if call[0] == "seek"] == [
        ("seek", 12.0),
        ("seek", 100.0),
        ("seek", 200.0),
    ]
    assert len(_errors(events)) == 2


def test_engine_command_failure_is_wrapped_and_emitted():
    queue = _FakeQueueEngine([_entry(1)])
    queue.fail_commands.add("clear_queue")
    controller, events = _controller(queue)
    asyncio.run(controller.initialize())

    with pytest.raises(EngineCommandFailed) as excinfo:
        controller.clear_queue()

    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert excinfo.value.operation == "clear_queue"
    assert _errors(events) == [excinfo.value]


def test_failed_next_restores_previous_audio_state():
    queue = _FakeQueueEngine([_entry(1), _entry(2)])
    controller, _events = _controller(queue)

    async def scenario():
        await controller.initialize()
        await controller.play()
        queue.fail_commands.add("next")
        with pytest.raises(EngineCommandFailed):
            await controller.next()

    asyncio.run(scenario())

    assert controller.get_state() == SessionState.PLAYING


def test_output_error_stops_session_and_emits_error():
    queue = _FakeQueueEngine([_entry(1)])
    output = _FakeOutputEngine()
    controller, events = _controller(queue, output)

    async def scenario():
        await controller.initialize()
        await controller.play()
        output.fire("error", RuntimeError("device lost"))

    asyncio.run(scenario())

    (error,) = _errors(events)
    assert isinstance(error, TrackLoadFailed)
    assert error.path == "/music/1.flac"
    assert controller.get_state() == SessionState.STOPPED


def test_position_updates_are_forwarded():
    output = _FakeOutputEngine()
    controller, events = _controller(_FakeQueueEngine(), output)
    asyncio.run(controller.initialize())

    output.fire("time_update", 4.5)

    assert ("positionUpdate", 4.5) in events


def test_queue_commands_convert_tracks_and_forward_engine_events():
    queue = _FakeQueueEngine()
    controller, events = _controller(queue)
    asyncio.run(controller.initialize())
    track = Track(id=7, path="/music/7.mp3", title="Seven", artist="Band")

    controller.load_playlist([track, _entry(1)])
    controller.add_to_queue_next(_entry(2))
    controller.add_to_queue_end(track)
    controller.append_to_queue([_entry(3)])
    queue.callbacks["queue"]()

    assert queue.calls[0] == ("load_playlist", [QueueEntry.from_track(track), _entry(1)])
    assert controller.queue_length() == 5
    assert controller.get_queue()[0] == _entry(2)
    assert controller.remove_from_queue(0) == _entry(2)
    assert controller.has_next() is True
    assert controller.has_previous() is False
    assert controller.get_history() == []
    assert ("queueChange",) in events

    with pytest.raises(InvalidArgument):
        controller.load_playlist([Track(id=8, path=None, title="", artist="")])
    with pytest.raises(InvalidArgument):
        controller.add_to_queue_end({"id": 1})

    queue.callbacks["error"]("engine hiccup")
    assert isinstance(_errors(events)[-1], EngineCommandFailed)


def test_destroy_stops_engines_and_detaches_listeners():
    queue = _FakeQueueEngine([_entry(1)])
    output = _FakeOutputEngine()
    controller, events = _controller(queue, output)

    async def scenario():
        await controller.initialize()
        await controller.play()
        controller.destroy()

    asyncio.run(scenario())

    assert output.destroyed is True
    assert "stop" in queue.calls
    assert all(not listeners for listeners in output.listeners.values())
    assert controller.initialized is False
    events.clear()
    with pytest.raises(NotInitialized):
        controller.pause()
    assert events == []


def test_session_with_local_queue_engine_plays_through_the_queue():
    engine = LocalQueueEngine(logger=_Logger())
    output = _FakeOutputEngine()
    controller, events = _controller(engine, output)

    async def scenario():
        await controller.initialize()
        controller.load_playlist([_entry(1), _entry(2)])
        await controller.play()
        assert engine.get_state() == "playing"
        controller.pause()
        assert engine.get_state() == "paused"
        await controller.play()
        assert engine.get_state() == "playing"
        output.fire("ended")
        await _drain()
        assert controller.get_current_track() == _entry(2)
        output.fire("ended")
        await _drain()

    asyncio.run(scenario())

    assert controller.get_state() == SessionState.STOPPED
    assert controller.get_current_track() is None
    assert engine.get_history() == [_entry(1), _entry(2)]
    assert [event[1] for event in events if event[0] == "trackChange"] == [
        _entry(1),
        _entry(2),
        None,
    ]
