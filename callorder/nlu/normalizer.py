"""Transcript clean-up applied before any matching."""

from __future__ import annotations

import re

FILLER_PHRASES = (
    "thank you very much",
    "thank you",
    "thanks",
    "please",
    "good morning",
    "good afternoon",
    "good evening",
    "hello",
    "hi",
    "hey",
    "um",
    "uh",
    "erm",
)

# Apostrophes are already dropped when these are matched ("i'd" -> "id").
REQUEST_PHRASES = (
    "i would like to have",
    "i would like",
    "id like",
    "i want",
    "i will take",
    "i will have",
    "ill take",
    "ill have",
    "can i have",
    "can i get",
    "could i have",
    "could i get",
    "may i have",
    "give me",
    "let me get",
    "let me have",
)

_APOSTROPHES_RE = re.compile(r"['’‘`]")
_CLAUSE_RE = re.compile(r"\s*[;.,!?]+\s*")
_PUNCT_RE = re.compile(r"[^a-z0-9,\s]+")
_SPACES_RE = re.compile(r"\s+")
_FILLER_RE = re.compile(
    r"\b(?:" + "|".join(re.escape(p) for p in FILLER_PHRASES) + r")\b"
)
_REQUEST_RE = re.compile(
    r"^(?:" + "|".join(re.escape(p) for p in REQUEST_PHRASES) + r")\b\s*"
)
_TOKEN_RE = re.compile(r"[a-z0-9]+")


def _tidy(text: str) -> str:
    text = _SPACES_RE.sub(" ", text)
    text = re.sub(r"\s*,\s*", ", ", text)
    text = re.sub(r"(?:,\s*){2,}", ", ", text)
    return text.strip(" ,")


def normalize(transcript: str | None) -> str:
    """Lowercase, punctuation-stripped transcript with fillers removed.

    Clause delimiters are unified to commas and kept so the extractor can
    segment on them.
    """

    if not transcript:
        return ""
    text = transcript.lower()
    text = _APOSTROPHES_RE.sub("", text)
    text = _CLAUSE_RE.sub(", ", text)
    text = _PUNCT_RE.sub(" ", text)
    text = _FILLER_RE.sub(" ", text)
    text = _tidy(text)
    text = _REQUEST_RE.sub("", text, count=1)
    return _tidy(text)


def tokens(text: str) -> list[str]:
    return _TOKEN_RE.findall(text)
