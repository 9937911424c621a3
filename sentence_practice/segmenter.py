"""Split loaded text into ordered, punctuation-terminated sentences."""

import re

from sentence_practice.models import Sentence, sentence_id

# Whitespace that follows a sentence-terminal mark
_SENTENCE_BREAK_RE = re.compile(r"(?<=[.!?])\s+")
_PARAGRAPH_BREAK_RE = re.compile(r"\n\s*\n")
_TERMINAL_RE = re.compile(r"[.!?]$")
_NON_WORD_RE = re.compile(r"[^A-Za-z']")


def split_sentences(text: str) -> list[str]:
    """Split text into a flat list of sentences.

    Fragments are trimmed, empty ones dropped, and a period is appended to
    any fragment that does not already end in . ! or ?.
    """
    if not text.strip():
        return []

    sentences = []
    for fragment in _SENTENCE_BREAK_RE.split(text):
        fragment = fragment.strip()
        if not fragment:
            continue
        if not _TERMINAL_RE.search(fragment):
            fragment += "."
        sentences.append(fragment)
    return sentences


def load_sentences(text: str) -> list[Sentence]:
    """Segment text into indexed Sentence objects."""
    return [Sentence(index=i, text=s) for i, s in enumerate(split_sentences(text))]


def split_paragraphs(text: str) -> list[str]:
    """Split text on blank lines, dropping empty paragraphs."""
    return [p.strip() for p in _PARAGRAPH_BREAK_RE.split(text) if p.strip()]


def group_by_paragraph(text: str) -> list[list[Sentence]]:
    """Lay the flat sentence list back out into paragraphs.

    Each paragraph is segmented on its own and its sentences are matched to
    the flat list by trimmed-text equality, so indexes stay global. When the
    same sentence text occurs twice, the later index wins; an unmatched
    sentence falls back to index 0.
    """
    index_by_text = {s.text.strip(): s.index for s in load_sentences(text)}

    paragraphs = []
    for paragraph in split_paragraphs(text):
        paragraphs.append([
            Sentence(index=index_by_text.get(s.strip(), 0), text=s)
            for s in split_sentences(paragraph)
        ])
    return paragraphs


def clean_word(token: str) -> str:
    """Strip a clicked/spoken token down to letters and apostrophes."""
    return _NON_WORD_RE.sub("", token)
