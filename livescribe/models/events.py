"""Event models published by the external recorder."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class ChunkEvent:
    """A transcribed segment reported by the recorder."""
    chunk: int                  # Segment number as counted by the recorder
    text: str
    path: Optional[str] = None  # Segment audio file, when the recorder keeps one
    size: Optional[int] = None  # Segment file size in bytes


@dataclass
class RecorderErrorEvent:
    """An error reported by the recorder while a session is running."""
    message: str
    timestamp: datetime = field(default_factory=datetime.now)
