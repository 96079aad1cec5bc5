"""Topic extraction over an accumulating transcript.

Topics are ranked from word and two-word phrase frequencies. Phrases that
repeat are weighted double so that multi-word topics win over the single
words they contain. Counts are carried across chunks by ``TopicExtractor``
so each new chunk only costs its own tokens; the ranking it produces is
identical to recomputing everything from the joined transcript.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from ..models.topics import TopicCandidate
from .tokenizer import tokenize

logger = logging.getLogger(__name__)

MIN_OCCURRENCES = 2
BIGRAM_WEIGHT = 2
MAX_CONFIDENCE = 0.99


class TopicExtractor:
    """Keeps unigram and bigram counts for a transcript, chunk by chunk."""

    def __init__(self):
        self.unigrams: Dict[str, int] = {}
        self.bigrams: Dict[str, int] = {}
        self.chunks_seen = 0
        self._last_token: Optional[str] = None

    def reset(self) -> None:
        """Forget all counts, ready for a new transcript."""
        self.unigrams = {}
        self.bigrams = {}
        self.chunks_seen = 0
        self._last_token = None

    def add_text(self, text: str) -> None:
        """Count the tokens of one more chunk of transcript text.

        The last token of the previous chunk pairs with the first token of
        this one, as if the chunk texts had been joined with a space.

        Args:
            text: Transcribed text of the chunk (may be empty)
        """
        previous = self._last_token
        for token in tokenize(text):
            self.unigrams[token] = self.unigrams.get(token, 0) + 1
            if previous is not None:
                phrase = f"{previous} {token}"
                self.bigrams[phrase] = self.bigrams.get(phrase, 0) + 1
            previous = token
        self._last_token = previous
        self.chunks_seen += 1

    def candidates(self) -> List[Tuple[str, int]]:
        """Build unranked (phrase, score) candidates in first-seen order."""
        candidates: List[Tuple[str, int]] = []
        phrases: List[str] = []

        for phrase, count in self.bigrams.items():
            if count >= MIN_OCCURRENCES:
                candidates.append((phrase, count * BIGRAM_WEIGHT))
                phrases.append(phrase)

        for word, count in self.unigrams.items():
            if count < MIN_OCCURRENCES:
                continue
            # Skip words already covered by a chosen phrase
            if any(word in phrase for phrase in phrases):
                continue
            candidates.append((word, count))

        return candidates

    def rank(self, max_topics: int, content_density: float) -> List[TopicCandidate]:
        """Rank the current candidates.

        Args:
            max_topics: Number of topics to keep
            content_density: Multiplier applied to normalized scores

        Returns:
            Topics ordered by score, highest first
        """
        ranked = sorted(self.candidates(), key=lambda item: item[1], reverse=True)
        top = ranked[:max_topics]
        max_score = top[0][1] if top else 1

        return [
            TopicCandidate(
                phrase=phrase,
                score=score,
                confidence=min(MAX_CONFIDENCE, (score / max_score) * content_density),
            )
            for phrase, score in top
        ]

    def topics(self, settings) -> List[TopicCandidate]:
        """Rank topics, or return none until enough chunks have arrived."""
        if self.chunks_seen < settings.min_chunks_per_topic:
            return []
        return self.rank(settings.max_topics, settings.content_density)


def extract_topics(chunk_texts: Iterable[str], settings) -> List[TopicCandidate]:
    """Extract ranked topics from a whole transcript.

    Args:
        chunk_texts: Text of every chunk in arrival order
        settings: SessionSettings supplying min_chunks_per_topic, max_topics
            and content_density

    Returns:
        Ordered topic candidates; empty while the transcript has fewer
        chunks than ``settings.min_chunks_per_topic``
    """
    texts = list(chunk_texts)
    if len(texts) < settings.min_chunks_per_topic:
        return []

    extractor = TopicExtractor()
    extractor.add_text(" ".join(texts))
    topics = extractor.rank(settings.max_topics, settings.content_density)
    logger.debug(f"Extracted {len(topics)} topics from {len(texts)} chunks")
    return topics
