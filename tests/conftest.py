"""Shared fixtures for sentence practice tests."""

import pytest

from sentence_practice.models import RecognitionEvent, Sentence, SynthesisEvent


class FakeHandle:
    def __init__(self, backend, text):
        self.backend = backend
        self.text = text
        self.cancelled = False
        self.stopped = False

    def cancel(self):
        self.cancelled = True

    def stop(self):
        self.stopped = True


class FakeSynthesisBackend:
    """Records requests; tests drive start/end/error by hand."""

    def __init__(self):
        self.requests = []      # (text, voice, rate)
        self.handles = []
        self._callbacks = []

    def request(self, text, voice, rate, on_event):
        self.requests.append((text, voice, rate))
        handle = FakeHandle(self, text)
        self.handles.append(handle)
        self._callbacks.append(on_event)
        return handle

    @property
    def texts(self):
        return [r[0] for r in self.requests]

    def emit(self, kind, code=None, which=-1):
        self._callbacks[which](SynthesisEvent(kind, code=code))

    def finish(self, which=-1):
        """Play the latest (or given) utterance start to end."""
        self.emit("start", which=which)
        self.emit("end", which=which)


class FakeRecognitionBackend:
    def __init__(self):
        self.starts = 0
        self.handles = []
        self._callbacks = []

    def start(self, on_event):
        self.starts += 1
        handle = FakeHandle(self, "")
        self.handles.append(handle)
        self._callbacks.append(on_event)
        return handle

    def transcript(self, text, is_final=True, which=-1):
        self._callbacks[which](RecognitionEvent("transcript", transcript=text, is_final=is_final))

    def error(self, code, which=-1):
        self._callbacks[which](RecognitionEvent("error", code=code))

    def end(self, which=-1):
        self._callbacks[which](RecognitionEvent("end"))


@pytest.fixture
def synth():
    return FakeSynthesisBackend()


@pytest.fixture
def recognizer():
    return FakeRecognitionBackend()


@pytest.fixture
def sample_sentences():
    """Three short sentences for scheduler/session tests."""
    return [
        Sentence(index=0, text="The cat sat."),
        Sentence(index=1, text="It was warm."),
        Sentence(index=2, text="Then it left."),
    ]


@pytest.fixture
def sample_text():
    return (
        "The cat sat on the mat. It was warm!\n\n"
        "Was it happy? Nobody knows\n\n"
        "The end."
    )
