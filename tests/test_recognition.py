"""Tests for recognition module (Layer 2b)."""

import asyncio
from unittest.mock import MagicMock, patch

from sentence_practice.models import RecognitionEvent
from sentence_practice.recognition import RESTART_EXHAUSTED, RecognitionSession


class _Recorder:
    def __init__(self):
        self.transcripts = []
        self.errors = []

    def on_transcript(self, text, is_final):
        self.transcripts.append((text, is_final))

    def on_error(self, code):
        self.errors.append(code)


def _session(recognizer, recorder, **kwargs):
    kwargs.setdefault("base_delay", 0)
    return RecognitionSession(
        recognizer,
        on_transcript=recorder.on_transcript,
        on_error=recorder.on_error,
        **kwargs,
    )


def test_start_opens_backend_once(recognizer):
    session = _session(recognizer, _Recorder())
    session.start()
    session.start()
    assert recognizer.starts == 1
    assert session.is_listening
    assert session.should_listen


def test_transcripts_forwarded(recognizer):
    recorder = _Recorder()
    session = _session(recognizer, recorder)
    session.start()
    recognizer.transcript("the cat", is_final=False)
    recognizer.transcript("the cat sat")
    assert recorder.transcripts == [("the cat", False), ("the cat sat", True)]


def test_no_speech_ignored(recognizer):
    recorder = _Recorder()
    session = _session(recognizer, recorder)
    session.start()
    recognizer.error("no-speech")
    assert session.is_listening
    assert recorder.errors == []


def test_fatal_error_stops_listening(recognizer):
    recorder = _Recorder()
    session = _session(recognizer, recorder)
    session.start()
    recognizer.error("not-allowed")
    assert not session.is_listening
    assert not session.should_listen
    assert recognizer.handles[0].stopped
    assert recorder.errors == ["not-allowed"]


def test_fatal_error_during_start_stops_handle():
    """A backend that refuses the microphone inside start() still gets stopped."""
    recorder = _Recorder()
    backend = MagicMock()
    handle = MagicMock()

    def refuse(on_event):
        on_event(RecognitionEvent("error", code="not-allowed"))
        return handle

    backend.start.side_effect = refuse
    session = _session(backend, recorder)
    session.start()

    handle.stop.assert_called_once()
    assert not session.is_listening
    assert not session.should_listen
    assert recorder.errors == ["not-allowed"]


def test_fatal_error_does_not_restart(recognizer):
    """A fatal error followed by the backend's own end never reopens."""
    async def scenario():
        session = _session(recognizer, _Recorder())
        session.start()
        recognizer.error("audio-capture")
        recognizer.end()
        await asyncio.sleep(0.01)

    asyncio.run(scenario())
    assert recognizer.starts == 1


def test_other_error_reported_and_keeps_listening(recognizer):
    recorder = _Recorder()
    session = _session(recognizer, recorder)
    session.start()
    recognizer.error("network")
    assert recorder.errors == ["network"]
    assert session.should_listen


def test_unexpected_end_restarts(recognizer):
    async def scenario():
        session = _session(recognizer, _Recorder())
        session.start()
        recognizer.end()
        assert not session.is_listening
        await asyncio.sleep(0.01)
        return session

    session = asyncio.run(scenario())
    assert recognizer.starts == 2
    assert session.is_listening
    assert session.restart_count == 1


@patch("sentence_practice.recognition.asyncio.get_running_loop")
def test_restart_backoff_doubles(mock_loop, recognizer):
    loop = MagicMock()
    mock_loop.return_value = loop
    session = _session(recognizer, _Recorder(), base_delay=0.5)
    session.start()

    for _ in range(3):
        recognizer.end()
        delay, callback = loop.call_later.call_args[0]
        callback()

    delays = [c[0][0] for c in loop.call_later.call_args_list]
    assert delays == [0.5, 1.0, 2.0]
    assert recognizer.starts == 4


def test_restarts_exhausted(recognizer):
    recorder = _Recorder()

    async def scenario():
        session = _session(recognizer, recorder, max_restarts=2)
        session.start()
        for _ in range(3):
            recognizer.end()
            await asyncio.sleep(0.01)
        return session

    session = asyncio.run(scenario())
    assert recognizer.starts == 3
    assert not session.should_listen
    assert not session.is_listening
    assert recorder.errors == [RESTART_EXHAUSTED]


def test_final_transcript_resets_restart_count(recognizer):
    async def scenario():
        session = _session(recognizer, _Recorder())
        session.start()
        recognizer.end()
        await asyncio.sleep(0.01)
        assert session.restart_count == 1
        recognizer.transcript("hello", is_final=False)
        assert session.restart_count == 1
        recognizer.transcript("hello there")
        assert session.restart_count == 0

    asyncio.run(scenario())


def test_stop_cancels_pending_restart(recognizer):
    async def scenario():
        session = _session(recognizer, _Recorder(), base_delay=0.01)
        session.start()
        recognizer.end()
        session.stop()
        await asyncio.sleep(0.05)

    asyncio.run(scenario())
    assert recognizer.starts == 1


def test_stale_attempt_events_ignored(recognizer):
    recorder = _Recorder()

    async def scenario():
        session = _session(recognizer, recorder)
        session.start()
        recognizer.end()
        await asyncio.sleep(0.01)
        recognizer.transcript("old", which=0)
        recognizer.transcript("new", which=1)

    asyncio.run(scenario())
    assert recorder.transcripts == [("new", True)]


def test_stop_then_start_again(recognizer):
    session = _session(recognizer, _Recorder())
    session.start()
    session.stop()
    assert recognizer.handles[0].stopped
    session.start()
    assert recognizer.starts == 2
    assert session.is_listening
