"""Text analysis for live transcripts."""

from .tokenizer import FILLER_WORDS, WordTokens, tokenize, is_analyzable
from .topics import TopicExtractor, extract_topics

__all__ = [
    "FILLER_WORDS",
    "WordTokens",
    "tokenize",
    "is_analyzable",
    "TopicExtractor",
    "extract_topics",
]
