"""Build the masked progress display for a target sentence.

The display is a flat list of RenderTokens derived from the target text,
the candidate input and an optional cursor. It holds no state between
calls and is rebuilt from scratch on every input change.
"""

import re

from sentence_practice.matching import compare_word, letters_only, spoken_words
from sentence_practice.models import MatchStatus, PracticeMode, RenderToken, TokenKind

NBSP = "\u00a0"

_WHITESPACE_SPLIT_RE = re.compile(r"(\s+)")


def _tokens(target: str) -> list[str]:
    return [t for t in _WHITESPACE_SPLIT_RE.split(target) if t]


def render_characters(
    target: str,
    candidate: str = "",
    show_cursor: bool = False,
    cursor_position: int | None = None,
) -> list[RenderToken]:
    """Dictation display: one token per letter, punctuation passed through.

    cursor_position is a letter index (spaces excluded), as produced by
    matching.letter_position_at().
    """
    typed = re.sub(r"\s+", "", candidate)
    letter_index = 0
    display = []

    for token in _tokens(target):
        if not token.strip():
            display.append(RenderToken(TokenKind.LITERAL, NBSP))
            continue
        if not letters_only(token):
            display.append(RenderToken(TokenKind.LITERAL, token))
            continue

        for char in token:
            if not char.isascii() or not char.isalpha():
                display.append(RenderToken(TokenKind.LITERAL, char))
                continue

            typed_char = typed[letter_index] if letter_index < len(typed) else None
            correct = None if typed_char is None else typed_char.lower() == char.lower()

            if show_cursor and letter_index == cursor_position:
                display.append(RenderToken(TokenKind.CURSOR, char, correct=correct, typed=typed_char))
            elif typed_char is not None:
                display.append(RenderToken(TokenKind.REVEALED, typed_char, correct=correct))
            else:
                display.append(RenderToken(TokenKind.HIDDEN))
            letter_index += 1

    return display


def render_words(
    target: str,
    candidate: str = "",
    show_cursor: bool = False,
    cursor_position: int | None = None,
) -> list[RenderToken]:
    """Recitation display: one token per target word.

    Spoken words are revealed in place of the target word with their match
    status; non-correct matches also carry the similarity percentage.
    """
    spoken = spoken_words(candidate)
    word_index = 0
    display = []

    for token in _tokens(target):
        if not token.strip():
            display.append(RenderToken(TokenKind.LITERAL, NBSP))
            continue
        clean = letters_only(token).lower()
        if not clean:
            display.append(RenderToken(TokenKind.LITERAL, token))
            continue

        said = spoken[word_index] if word_index < len(spoken) else ""
        if said:
            result = compare_word(clean, said)
            correct = result.status == MatchStatus.CORRECT
            display.append(RenderToken(
                TokenKind.REVEALED,
                said,
                correct=correct,
                status=result.status,
                similarity_pct=None if correct else round(result.similarity * 100),
            ))
        elif show_cursor and word_index == cursor_position:
            display.append(RenderToken(TokenKind.CURSOR, token, status=MatchStatus.MISSING))
        else:
            display.append(RenderToken(TokenKind.PENDING, token))
        word_index += 1

    return display


def render_progress(
    target: str,
    candidate: str,
    mode: PracticeMode,
    show_cursor: bool = False,
    cursor_position: int | None = None,
) -> list[RenderToken]:
    if mode == PracticeMode.RECITATION:
        return render_words(target, candidate, show_cursor, cursor_position)
    return render_characters(target, candidate, show_cursor, cursor_position)


def _plain(token: RenderToken) -> str:
    if token.kind == TokenKind.LITERAL:
        return token.text.replace(NBSP, " ")
    if token.kind == TokenKind.HIDDEN:
        return "_"
    if token.kind == TokenKind.PENDING:
        return token.text
    if token.kind == TokenKind.CURSOR:
        if token.typed is not None:
            return "|" + token.typed
        if token.status == MatchStatus.MISSING:
            return "|" + token.text
        return "|_"

    # Revealed
    if token.correct:
        return token.text
    if token.status == MatchStatus.PARTIAL:
        return f"~{token.text}({token.similarity_pct}%)"
    if token.similarity_pct is not None:
        return f"[{token.text}]({token.similarity_pct}%)"
    return f"[{token.text}]"


def to_plain_text(display: list[RenderToken]) -> str:
    """Render a display for a terminal.

    Hidden letters print as "_", the cursor as "|", wrong input in
    brackets and partial word matches with a leading "~".
    """
    return "".join(_plain(token) for token in display)
