"""Session-related data models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .topics import TopicCandidate


class SessionState(Enum):
    """Lifecycle state of a live session."""
    IDLE = "idle"
    RECORDING = "recording"


def format_elapsed(seconds: float) -> str:
    """Format a number of seconds as a ``mm:ss`` label."""
    total = max(0, int(seconds))
    minutes, secs = divmod(total, 60)
    return f"{minutes:02d}:{secs:02d}"


@dataclass(frozen=True)
class Chunk:
    """One transcribed audio segment in the session transcript."""
    index: int                            # Arrival sequence number
    text: str
    elapsed_label: str                    # mm:ss captured when the chunk arrived
    recorder_chunk: Optional[int] = None  # Segment number reported by the recorder
    path: Optional[str] = None
    size: Optional[int] = None


@dataclass
class Session:
    """Live recording session state owned by the session controller."""
    state: SessionState = SessionState.IDLE
    started_at: Optional[float] = None
    transcript: List[Chunk] = field(default_factory=list)
    pending_chunk_index: Optional[int] = None
    topics: List[TopicCandidate] = field(default_factory=list)
    summary: str = ""
    error: Optional[str] = None
    elapsed_label: str = "00:00"
    is_summarizing: bool = False

    @property
    def is_recording(self) -> bool:
        return self.state is SessionState.RECORDING

    @property
    def chunk_count(self) -> int:
        return len(self.transcript)

    def chunk_texts(self) -> List[str]:
        return [chunk.text for chunk in self.transcript]

    def full_text(self) -> str:
        """Chunk texts joined with single spaces, in arrival order."""
        return " ".join(self.chunk_texts())

    def word_count(self) -> int:
        return sum(len(chunk.text.split()) for chunk in self.transcript)
