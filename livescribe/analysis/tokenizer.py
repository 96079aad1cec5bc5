"""Word tokenizer shared by topic extraction and extractive summarization."""

import re
from typing import Iterator

# Stopwords and discourse fillers that never count as content
FILLER_WORDS = frozenset([
    "um", "uh", "ah", "oh", "er", "like", "yeah", "okay", "ok", "so", "well",
    "and", "the", "a", "an", "i", "you", "it", "is", "to", "of", "in", "that",
    "for", "on", "with", "as", "be", "was", "are", "this", "but", "or", "at",
    "by", "we", "they", "have", "from",
])

MIN_TOKEN_LENGTH = 3

_NON_WORD_CHARS = re.compile(r"[^a-z0-9'\s-]")
_EDGE_MARKS = re.compile(r"^['-]+|['-]+$")


def is_analyzable(token: str) -> bool:
    """Check whether a cleaned token should take part in frequency analysis."""
    return (
        len(token) >= MIN_TOKEN_LENGTH
        and not token.isdigit()
        and token not in FILLER_WORDS
    )


def iter_tokens(text: str) -> Iterator[str]:
    """Yield the analyzable lowercase words of a text.

    Punctuation other than apostrophes and hyphens is treated as whitespace.
    Apostrophes and hyphens at either end of a word are stripped before the
    length, numeric and filler checks.
    """
    cleaned = _NON_WORD_CHARS.sub(" ", (text or "").lower())
    for raw in cleaned.split():
        token = _EDGE_MARKS.sub("", raw)
        if is_analyzable(token):
            yield token


class WordTokens:
    """Re-iterable token view over a text; each iteration starts from the top."""

    def __init__(self, text: str):
        self.text = text or ""

    def __iter__(self) -> Iterator[str]:
        return iter_tokens(self.text)

    def __repr__(self) -> str:
        preview = self.text[:30]
        return f"WordTokens({preview!r})"


def tokenize(text: str) -> WordTokens:
    """Tokenize text into a lazy, restartable sequence of analyzable words."""
    return WordTokens(text)
