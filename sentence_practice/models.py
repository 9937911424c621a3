"""Data models for sentence practice."""

import asyncio
from dataclasses import dataclass, field
from enum import Enum

from sentence_practice.constants import DEFAULT_VOICE, SENTENCE_ID_PREFIX_LENGTH, TTS_RATE


class PracticeMode(str, Enum):
    DICTATION = "dictation"     # typed, compared letter by letter
    RECITATION = "recitation"   # spoken, compared word by word


class MatchStatus(str, Enum):
    CORRECT = "correct"
    PARTIAL = "partial"
    INCORRECT = "incorrect"
    MISSING = "missing"         # target word with no candidate word yet


class TokenKind(str, Enum):
    LITERAL = "literal"         # whitespace or punctuation, shown as-is
    HIDDEN = "hidden"           # letter not typed yet
    REVEALED = "revealed"       # typed letter / spoken word with correctness
    CURSOR = "cursor"           # current input position
    PENDING = "pending"         # future word in recitation, shown dimmed


def sentence_id(text: str, index: int) -> str:
    """Deterministic key for a sentence: index plus the first 50 chars of its trimmed text."""
    return f"{index}-{text.strip()[:SENTENCE_ID_PREFIX_LENGTH]}"


@dataclass(frozen=True)
class Sentence:
    index: int
    text: str

    @property
    def id(self) -> str:
        return sentence_id(self.text, self.index)


@dataclass(frozen=True)
class SpeechSettings:
    """Voice and rate captured when a playback step is issued."""
    voice: str = DEFAULT_VOICE
    rate: str = TTS_RATE


@dataclass
class PlaybackSession:
    """A live speak_all sequence.

    The token is an asyncio future used purely as a cancellation flag: the
    sequence is cancelled once ``token.cancelled()`` is true.
    """
    queue: list[Sentence]
    cursor: int
    token: asyncio.Future
    settings: SpeechSettings
    timer: asyncio.TimerHandle | None = None

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled()

    def cancel(self) -> None:
        self.token.cancel()
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None


@dataclass(frozen=True)
class SynthesisEvent:
    kind: str                   # "start", "end" or "error"
    code: str | None = None     # error code for kind == "error"


@dataclass(frozen=True)
class RecognitionEvent:
    kind: str                   # "transcript", "error" or "end"
    transcript: str = ""
    is_final: bool = False
    code: str | None = None


@dataclass(frozen=True)
class PlaybackEvent:
    """Something the scheduler reports back to its owner."""
    kind: str                   # "sentence", "finished", "stopped" or "error"
    sentence_index: int | None = None
    code: str | None = None


@dataclass(frozen=True)
class WordMatch:
    target: str
    spoken: str
    similarity: float
    status: MatchStatus


@dataclass
class MatchResult:
    per_unit_correct: list[bool]
    total_units: int
    correct_units: int
    accuracy: float             # percentage, 0–100
    is_complete: bool = False
    partial_units: int = 0
    word_matches: list[WordMatch] = field(default_factory=list)


@dataclass(frozen=True)
class RenderToken:
    kind: TokenKind
    text: str = ""
    correct: bool | None = None
    status: MatchStatus | None = None
    similarity_pct: int | None = None
    typed: str | None = None    # candidate letter shown under a cursor


@dataclass(frozen=True)
class ProgressStats:
    total_characters: int
    typed_characters: int
    correct_characters: int
    progress_percentage: int


@dataclass(frozen=True)
class OverallProgress:
    total_sentences: int
    completed_sentences: int
    completion_rate: float
    average_accuracy: float = 0.0
    overall_accuracy: float = 0.0
    total_words: int = 0
    total_correct_words: int = 0


@dataclass(frozen=True)
class WrongWord:
    word: str                   # target word as written
    typed: str                  # the learner's letters for that word
    sentence: str
