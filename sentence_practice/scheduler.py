"""Sentence-sequenced playback over a voice synthesis backend.

States: Idle -> Speaking(i) -> (end) -> Speaking(i+1) -> ... -> Idle, with
stop() cancelling from any Speaking state. At most one backend utterance is
in flight at a time. speak_all() never blocks: the next sentence is
scheduled from the previous utterance's "end" event, after a pause timer
that stop() can cancel.
"""

import asyncio
import functools
import logging
from dataclasses import dataclass
from typing import Callable, Protocol

from sentence_practice.constants import SENTENCE_PAUSE_SECONDS
from sentence_practice.models import (
    PlaybackEvent,
    PlaybackSession,
    Sentence,
    SpeechSettings,
    SynthesisEvent,
)
from sentence_practice.segmenter import load_sentences

logger = logging.getLogger(__name__)


class SynthesisHandle(Protocol):
    def cancel(self) -> None: ...


class SynthesisBackend(Protocol):
    def request(
        self,
        text: str,
        voice: str,
        rate: str,
        on_event: Callable[[SynthesisEvent], None],
    ) -> SynthesisHandle: ...


@dataclass
class _Utterance:
    text: str
    sentence_index: int | None
    session: PlaybackSession | None
    handle: SynthesisHandle | None = None


class PlaybackScheduler:
    """Owns the sentence queue and the single in-flight synthesis request.

    Backend events for an utterance that has been superseded or stopped are
    ignored, so a late "end" can never advance a cancelled sequence.
    """

    def __init__(
        self,
        backend: SynthesisBackend,
        settings: SpeechSettings | None = None,
        pause: float = SENTENCE_PAUSE_SECONDS,
        on_event: Callable[[PlaybackEvent], None] | None = None,
    ):
        self._backend = backend
        self.settings = settings or SpeechSettings()
        self.pause = pause
        self._on_event = on_event
        self._sentences: list[Sentence] = []
        self._current_index = 0
        self._speaking = False
        self._utterance: _Utterance | None = None
        self._session: PlaybackSession | None = None

    # --- State ---

    @property
    def sentences(self) -> list[Sentence]:
        return list(self._sentences)

    @property
    def current_sentence_index(self) -> int:
        return self._current_index

    @property
    def is_speaking(self) -> bool:
        return self._speaking

    @property
    def is_busy(self) -> bool:
        """True while an utterance is in flight or a sequence is live."""
        return self._utterance is not None or self._session is not None

    @property
    def session(self) -> PlaybackSession | None:
        return self._session

    def load(self, sentences: list[Sentence] | list[str]) -> None:
        """Replace the sentence queue. Stops playback and rewinds to the first sentence."""
        self.stop()
        self._sentences = _as_sentences(sentences)
        self._current_index = 0

    def set_text(self, text: str) -> None:
        self.load(load_sentences(text))

    # --- Operations ---

    def speak(self, text: str, sentence_index: int | None = None) -> None:
        """Speak a single piece of text, cancelling whatever is playing."""
        self._cancel_session()
        if sentence_index is not None:
            self._current_index = sentence_index
        self._issue(text, sentence_index, self.settings, session=None)

    def speak_current_sentence(self) -> None:
        if not self._sentences:
            logger.debug("Nothing to speak: no sentences loaded")
            return
        if not 0 <= self._current_index < len(self._sentences):
            logger.warning(
                "Ignoring speak of sentence %d (have %d)", self._current_index, len(self._sentences),
            )
            return
        sentence = self._sentences[self._current_index]
        self.speak(sentence.text, sentence.index)

    def speak_all(self, sentences: list[Sentence] | list[str] | None = None, start_index: int = 0) -> None:
        """Speak sentences in order from start_index until the end or stop().

        Must be called from a running event loop.
        """
        self._cancel_session()
        self._cancel_utterance()
        self._speaking = False
        if sentences is not None:
            self._sentences = _as_sentences(sentences)

        loop = asyncio.get_running_loop()
        session = PlaybackSession(
            queue=list(self._sentences),
            cursor=max(start_index, 0),
            token=loop.create_future(),
            settings=self.settings,
        )
        self._session = session
        logger.debug("Starting sequence at %d of %d", start_index, len(session.queue))
        self._step(session)

    def stop(self) -> None:
        """Cancel the sequence, any pending pause and the in-flight utterance.

        Takes effect synchronously: once this returns, no event from the
        cancelled utterance or sequence is acted on.
        """
        was_busy = self.is_busy
        self._cancel_session()
        self._cancel_utterance()
        self._speaking = False
        if was_busy:
            self._emit(PlaybackEvent("stopped", self._current_index))

    def jump_to_sentence(self, index: int) -> None:
        """Move the current sentence; if playing, restart playback there.

        A live speak_all sequence carries on from the new index; a single
        utterance is replaced by the new sentence.
        """
        if not 0 <= index < len(self._sentences):
            logger.warning("Ignoring jump to sentence %d (have %d)", index, len(self._sentences))
            return

        self._current_index = index
        if self._session is not None:
            self.speak_all(start_index=index)
        elif self._speaking or self._utterance is not None:
            self.speak(self._sentences[index].text, index)

    # --- Internals ---

    def _issue(
        self,
        text: str,
        sentence_index: int | None,
        settings: SpeechSettings,
        session: PlaybackSession | None,
    ) -> None:
        self._cancel_utterance()
        self._speaking = False
        utterance = _Utterance(text=text, sentence_index=sentence_index, session=session)
        self._utterance = utterance
        callback = functools.partial(self._on_synthesis_event, utterance)
        handle = self._backend.request(text, settings.voice, settings.rate, callback)
        utterance.handle = handle

    def _on_synthesis_event(self, utterance: _Utterance, event: SynthesisEvent) -> None:
        if utterance is not self._utterance:
            logger.debug("Ignoring %s from a superseded utterance", event.kind)
            return

        if event.kind == "start":
            self._speaking = True
            self._emit(PlaybackEvent("sentence", utterance.sentence_index))
            return

        # "end" or "error": the utterance is over either way
        self._speaking = False
        self._utterance = None
        session = utterance.session

        if event.kind == "error":
            logger.warning("Synthesis error %s on sentence %s", event.code, utterance.sentence_index)
            if session is not None:
                self._end_session(session)
            self._emit(PlaybackEvent("error", utterance.sentence_index, code=event.code))
            return

        if session is not None and not session.cancelled:
            session.cursor += 1
            loop = asyncio.get_running_loop()
            session.timer = loop.call_later(self.pause, self._step, session)

    def _step(self, session: PlaybackSession) -> None:
        session.timer = None
        if session.cancelled or session is not self._session:
            return

        # Blank sentences are skipped without touching the backend
        while session.cursor < len(session.queue) and not session.queue[session.cursor].text.strip():
            session.cursor += 1

        if session.cursor >= len(session.queue):
            logger.debug("Sequence finished")
            self._end_session(session)
            self._emit(PlaybackEvent("finished", self._current_index))
            return

        sentence = session.queue[session.cursor]
        self._current_index = sentence.index
        self._issue(sentence.text, sentence.index, session.settings, session)

    def _end_session(self, session: PlaybackSession) -> None:
        session.cancel()
        if self._session is session:
            self._session = None

    def _cancel_session(self) -> None:
        if self._session is not None:
            self._session.cancel()
            self._session = None

    def _cancel_utterance(self) -> None:
        utterance = self._utterance
        self._utterance = None
        if utterance is not None and utterance.handle is not None:
            utterance.handle.cancel()

    def _emit(self, event: PlaybackEvent) -> None:
        if self._on_event is not None:
            self._on_event(event)


def _as_sentences(sentences: list[Sentence] | list[str]) -> list[Sentence]:
    return [
        s if isinstance(s, Sentence) else Sentence(index=i, text=s)
        for i, s in enumerate(sentences)
    ]
