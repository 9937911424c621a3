"""Compare a learner's typed or spoken input against a target sentence.

Dictation compares letters by position; recitation compares words by
position using normalized edit distance. Every function here is pure and
safe to call on each keystroke or transcript update. Malformed or empty
input never raises, it just scores zero.
"""

import re
from collections.abc import Mapping

import Levenshtein

from sentence_practice.constants import PARTIAL_MATCH_THRESHOLD
from sentence_practice.models import (
    MatchResult,
    MatchStatus,
    OverallProgress,
    PracticeMode,
    ProgressStats,
    WordMatch,
    WrongWord,
    sentence_id,
)

_NON_LETTER_RE = re.compile(r"[^a-zA-Z]")
_NON_DICTATION_RE = re.compile(r"[^a-zA-Z\s]")
_LOWER_WORD_RE = re.compile(r"[a-z]+")


# --- Dictation (character level) ---

def letters_only(text: str) -> str:
    return _NON_LETTER_RE.sub("", text)


def clean_words(text: str) -> list[str]:
    """Whitespace-separated words of text reduced to their letters."""
    words = (letters_only(w) for w in text.split())
    return [w for w in words if w]


def filter_dictation_input(raw: str) -> str:
    """Drop everything but letters and whitespace from typed input."""
    return _NON_DICTATION_RE.sub("", raw)


def target_letter_count(target: str) -> int:
    return len(letters_only(target))


def next_character_position(candidate: str) -> int:
    return len(letters_only(candidate))


def letter_position_at(candidate: str, caret: int) -> int:
    """Convert a caret offset inside the raw input into a letter index."""
    return len(letters_only(candidate[:caret]))


def check_completion(target: str, candidate: str) -> bool:
    """True when every target word has been typed, in order, ignoring case."""
    target_words = clean_words(target)
    typed_words = filter_dictation_input(candidate).split()
    return (
        len(target_words) > 0
        and len(target_words) == len(typed_words)
        and all(t.lower() == u.lower() for t, u in zip(target_words, typed_words))
    )


def should_auto_space(target: str, candidate: str) -> bool:
    """Whether a space should be appended after the word just typed.

    Only when the last typed word matches its target word exactly, more
    words remain, and the input does not already end in whitespace.
    """
    if not candidate.strip() or candidate[-1].isspace():
        return False

    target_words = clean_words(target)
    typed_words = filter_dictation_input(candidate).split()
    if not typed_words:
        return False

    position = len(typed_words) - 1
    if position >= len(target_words) - 1:
        return False
    return typed_words[position].lower() == target_words[position].lower()


def truncate_to_target_length(candidate: str, max_letters: int) -> str:
    """Cap the number of letters in candidate, keeping whitespace in place."""
    if len(letters_only(candidate)) <= max_letters:
        return candidate

    result = []
    letters = 0
    for char in candidate:
        if letters >= max_letters:
            break
        if char.isspace():
            result.append(char)
        elif char.isalpha():
            result.append(char)
            letters += 1
    return "".join(result)


def apply_dictation_input(target: str, raw: str) -> str:
    """Turn a raw keystroke result into the candidate that should be kept.

    Filters invalid characters, refuses to grow past the target's letter
    count, and appends the automatic space after a correctly typed word.
    """
    filtered = filter_dictation_input(raw)
    limit = target_letter_count(target)
    if len(letters_only(filtered)) > limit:
        return truncate_to_target_length(filtered, limit)
    if should_auto_space(target, filtered):
        return filtered + " "
    return filtered


def match_characters(target: str, candidate: str) -> MatchResult:
    """Letter-by-letter comparison, case-insensitive, spaces ignored."""
    target_letters = letters_only(target)
    typed_letters = letters_only(candidate)

    per_unit = [
        i < len(typed_letters) and typed_letters[i].lower() == char.lower()
        for i, char in enumerate(target_letters)
    ]
    total = len(target_letters)
    correct = sum(per_unit)
    accuracy = round(correct / total * 100) if total else 0
    return MatchResult(
        per_unit_correct=per_unit,
        total_units=total,
        correct_units=correct,
        accuracy=accuracy,
        is_complete=check_completion(target, candidate),
    )


def progress_stats(target: str, candidate: str) -> ProgressStats:
    result = match_characters(target, candidate)
    return ProgressStats(
        total_characters=result.total_units,
        typed_characters=len(letters_only(candidate)),
        correct_characters=result.correct_units,
        progress_percentage=int(result.accuracy),
    )


def validate_dictation_input(target: str, candidate: str) -> tuple[list[str], int]:
    """Return (errors, completion percentage) for a dictation candidate."""
    errors = []
    if _NON_DICTATION_RE.search(candidate):
        errors.append("Input contains invalid characters. Only letters and spaces are allowed.")
    if len(letters_only(candidate)) > target_letter_count(target):
        errors.append("Input is longer than the target text.")
    return errors, progress_stats(target, candidate).progress_percentage


def detect_wrong_words(target: str, candidate: str) -> list[WrongWord]:
    """Target words whose typed letters contain at least one mistake.

    Walks the target the same way the character renderer does, so a word
    is reported exactly when some of its letters would be shown as wrong.
    """
    if not target.strip() or not candidate.strip():
        return []

    typed_letters = letters_only(candidate)
    letter_index = 0
    wrong = []
    seen = set()

    for token in target.split():
        word = letters_only(token)
        if not word:
            continue
        typed = typed_letters[letter_index:letter_index + len(word)]
        letter_index += len(word)
        if not typed:
            break
        if typed.lower() != word[:len(typed)].lower():
            display = token.strip(".,;:!?\"()[]")
            key = (display, typed)
            if key not in seen:
                seen.add(key)
                wrong.append(WrongWord(word=display, typed=typed, sentence=target))
    return wrong


# --- Recitation (word level) ---

def target_words(text: str) -> list[str]:
    """Lowercase alphabetic runs of the target sentence."""
    return _LOWER_WORD_RE.findall(text.lower())


def spoken_words(text: str) -> list[str]:
    return text.lower().split()


def similarity(a: str, b: str) -> float:
    """Normalized edit-distance similarity in [0, 1]; two empty strings are identical."""
    max_len = max(len(a), len(b))
    if max_len == 0:
        return 1.0
    return (max_len - Levenshtein.distance(a, b)) / max_len


def classify(score: float) -> MatchStatus:
    if score == 1:
        return MatchStatus.CORRECT
    if score >= PARTIAL_MATCH_THRESHOLD:
        return MatchStatus.PARTIAL
    return MatchStatus.INCORRECT


def compare_word(target_word: str, spoken: str) -> WordMatch:
    if not spoken:
        return WordMatch(target=target_word, spoken="", similarity=0.0, status=MatchStatus.MISSING)
    score = similarity(target_word, spoken)
    return WordMatch(target=target_word, spoken=spoken, similarity=score, status=classify(score))


def match_words(target: str, candidate: str) -> MatchResult:
    """Compare spoken words to target words position by position.

    There is no re-alignment: a skipped or extra word shifts every later
    position.
    """
    expected = target_words(target)
    spoken = spoken_words(candidate)

    matches = [
        compare_word(word, spoken[i] if i < len(spoken) else "")
        for i, word in enumerate(expected)
    ]
    per_unit = [m.status == MatchStatus.CORRECT for m in matches]
    total = len(expected)
    correct = sum(per_unit)
    partial = sum(1 for m in matches if m.status == MatchStatus.PARTIAL)

    return MatchResult(
        per_unit_correct=per_unit,
        total_units=total,
        correct_units=correct,
        accuracy=correct / total * 100 if total else 0.0,
        is_complete=total > 0 and len(spoken) == total and correct == total,
        partial_units=partial,
        word_matches=matches,
    )


def check_recitation_completion(target: str, candidate: str) -> bool:
    return match_words(target, candidate).is_complete


def next_word_position(candidate: str) -> int:
    return len(spoken_words(candidate))


def recitation_progress(target: str, candidate: str) -> float:
    """Share of target words that have been spoken at all, capped at 100."""
    total = len(target_words(target))
    if total == 0:
        return 0.0
    return min(len(spoken_words(candidate)) / total * 100, 100.0)


# --- Shared ---

def match(target: str, candidate: str, mode: PracticeMode) -> MatchResult:
    if mode == PracticeMode.RECITATION:
        return match_words(target, candidate)
    return match_characters(target, candidate)


def is_complete(target: str, candidate: str, mode: PracticeMode) -> bool:
    if mode == PracticeMode.RECITATION:
        return check_recitation_completion(target, candidate)
    return check_completion(target, candidate)


def overall_dictation_progress(sentences: list[str], inputs: Mapping[str, str]) -> OverallProgress:
    """Roll up completion over every sentence using saved candidate input."""
    completed = sum(
        1 for i, s in enumerate(sentences)
        if check_completion(s, inputs.get(sentence_id(s, i), ""))
    )
    total = len(sentences)
    return OverallProgress(
        total_sentences=total,
        completed_sentences=completed,
        completion_rate=round(completed / total * 100) if total else 0,
    )


def overall_recitation_progress(sentences: list[str], inputs: Mapping[str, str]) -> OverallProgress:
    """Roll up completion and accuracy over sentences that have been attempted."""
    attempted = 0
    completed = 0
    accuracy_sum = 0.0
    total_words = 0
    correct_words = 0

    for i, sentence in enumerate(sentences):
        candidate = inputs.get(sentence_id(sentence, i), "")
        if not candidate.strip():
            continue
        attempted += 1
        result = match_words(sentence, candidate)
        if result.is_complete:
            completed += 1
        accuracy_sum += result.accuracy
        total_words += result.total_units
        correct_words += result.correct_units

    total = len(sentences)
    return OverallProgress(
        total_sentences=total,
        completed_sentences=completed,
        completion_rate=completed / total * 100 if total else 0.0,
        average_accuracy=accuracy_sum / attempted if attempted else 0.0,
        overall_accuracy=correct_words / total_words * 100 if total_words else 0.0,
        total_words=total_words,
        total_correct_words=correct_words,
    )
