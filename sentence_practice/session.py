"""Practice session: which sentence is being drilled, and moving on when it's done."""

import logging
from collections.abc import Mapping
from typing import Callable

from sentence_practice.matching import (
    apply_dictation_input,
    is_complete,
    letter_position_at,
    match,
    next_word_position,
)
from sentence_practice.models import MatchResult, PracticeMode, RenderToken, Sentence
from sentence_practice.recognition import RecognitionBackend, RecognitionSession
from sentence_practice.rendering import render_progress
from sentence_practice.scheduler import PlaybackScheduler

logger = logging.getLogger(__name__)


class PracticeSession:
    """Tracks the active practice sentence for one mode.

    Candidate input is kept per sentence id so the caller can persist it;
    the session itself never reads or writes storage.
    """

    def __init__(
        self,
        scheduler: PlaybackScheduler,
        mode: PracticeMode = PracticeMode.DICTATION,
        recognition_backend: RecognitionBackend | None = None,
        on_error: Callable[[str], None] | None = None,
    ):
        self.scheduler = scheduler
        self.mode = mode
        self.is_active = False
        self.active_index: int | None = None
        self._inputs: dict[str, str] = {}
        self._on_error = on_error
        self._recognition = None
        if recognition_backend is not None:
            self._recognition = RecognitionSession(
                recognition_backend,
                on_transcript=self.handle_transcript,
                on_error=self._on_recognition_error,
            )

    @property
    def sentences(self) -> list[Sentence]:
        return self.scheduler.sentences

    @property
    def inputs(self) -> dict[str, str]:
        return dict(self._inputs)

    @property
    def is_listening(self) -> bool:
        return self._recognition is not None and self._recognition.is_listening

    def restore_inputs(self, saved: Mapping[str, str]) -> None:
        """Seed candidate input, e.g. from a store loaded by the caller."""
        self._inputs.update(saved)

    def activate(self) -> None:
        self.is_active = True
        self.active_index = None

    def deactivate(self) -> None:
        self.is_active = False
        self.active_index = None
        self.stop_listening()

    def set_active_sentence(self, index: int | None) -> None:
        if index is not None and not 0 <= index < len(self.sentences):
            logger.warning("Ignoring active sentence %d (have %d)", index, len(self.sentences))
            return
        self.active_index = index

    def on_complete(self) -> int | None:
        """Advance past the active sentence, cueing its successor's audio.

        Returns the new active index, or None once the last sentence is done.
        """
        index = self.active_index
        if index is not None and index < len(self.sentences) - 1:
            next_index = index + 1
            self.active_index = next_index
            self.scheduler.jump_to_sentence(next_index)
            if not self.scheduler.is_busy:
                self.scheduler.speak(self.sentences[next_index].text, next_index)
            return next_index

        logger.info("Practice finished")
        self.active_index = None
        return None

    # --- Candidate input ---

    def candidate_for(self, index: int) -> str:
        return self._inputs.get(self.sentences[index].id, "")

    def update_input(self, index: int, raw: str) -> str:
        """Record new input for a sentence and advance if it completes the active one.

        Dictation input is filtered and auto-spaced first; the stored value
        is returned so the caller can echo and persist it.
        """
        sentence = self.sentences[index]
        if self.mode == PracticeMode.DICTATION:
            candidate = apply_dictation_input(sentence.text, raw)
        else:
            candidate = raw
        self._inputs[sentence.id] = candidate

        if index == self.active_index and is_complete(sentence.text, candidate, self.mode):
            self.on_complete()
        return candidate

    def clear_input(self, index: int) -> None:
        self._inputs.pop(self.sentences[index].id, None)

    def result_for(self, index: int) -> MatchResult:
        return match(self.sentences[index].text, self.candidate_for(index), self.mode)

    def display_for(self, index: int, caret: int | None = None) -> list[RenderToken]:
        """Masked display for a sentence; the active one gets a cursor.

        caret is an offset into the raw candidate (dictation only) and
        defaults to the end of the input.
        """
        candidate = self.candidate_for(index)
        show_cursor = index == self.active_index
        if self.mode == PracticeMode.DICTATION:
            cursor = letter_position_at(candidate, len(candidate) if caret is None else caret)
        else:
            cursor = next_word_position(candidate)
        return render_progress(self.sentences[index].text, candidate, self.mode, show_cursor, cursor)

    # --- Recitation ---

    def start_listening(self) -> None:
        if self._recognition is None:
            logger.warning("No recognition backend configured")
            return
        self._recognition.start()

    def stop_listening(self) -> None:
        if self._recognition is not None:
            self._recognition.stop()

    def handle_transcript(self, transcript: str, is_final: bool) -> None:
        index = self.active_index
        if index is None:
            return
        logger.debug("Transcript for sentence %d (final=%s): %s", index, is_final, transcript)
        self.update_input(index, transcript)

    def _on_recognition_error(self, code: str) -> None:
        if self._on_error is not None:
            self._on_error(code)
