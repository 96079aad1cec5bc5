"""Local extractive summary: picks the most informative transcript sentences."""

import math
import re
from typing import Dict, List

from ..analysis.tokenizer import tokenize

_SENTENCE_BREAK = re.compile(r"[.!?]+\s+")

MIN_SENTENCES = 2
MAX_SENTENCES = 5
SENTENCE_RATIO = 0.2


def split_sentences(text: str) -> List[str]:
    """Split text on terminal punctuation followed by whitespace."""
    return [part.strip() for part in _SENTENCE_BREAK.split(text or "") if part.strip()]


def _sentence_score(sentence: str, frequencies: Dict[str, int]) -> float:
    # Raw tokens, so words the tokenizer filters out score zero
    words = sentence.lower().split()
    return sum(frequencies.get(word, 0) for word in words) / max(len(words), 1)


def summarize_extractive(text: str) -> str:
    """Summarize text by selecting its highest-scoring sentences.

    Each sentence is scored by the average corpus frequency of its words.
    Between two and five sentences are kept (a fifth of the transcript),
    best first, joined with ". " and closed with a period.

    Args:
        text: Full transcript text

    Returns:
        Summary text, or an empty string when the text has no sentences
    """
    sentences = split_sentences(text)
    if not sentences:
        return ""

    frequencies: Dict[str, int] = {}
    for token in tokenize(text):
        frequencies[token] = frequencies.get(token, 0) + 1

    ranked = sorted(sentences, key=lambda s: _sentence_score(s, frequencies), reverse=True)
    take = min(MAX_SENTENCES, max(MIN_SENTENCES, math.floor(len(sentences) * SENTENCE_RATIO)))
    selected = ranked[:take]

    return ". ".join(selected) + "."
