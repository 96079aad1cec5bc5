"""Topic-related data models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class TopicCandidate:
    """A ranked keyword or two-word phrase detected in the transcript."""
    phrase: str
    score: int         # Frequency-derived weight, unbounded
    confidence: float  # Normalized score in [0, 0.99] scaled by content density
