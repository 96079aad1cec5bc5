"""Data models for the LiveScribe application."""

from .session import SessionState, Chunk, Session, format_elapsed
from .topics import TopicCandidate
from .events import ChunkEvent, RecorderErrorEvent

__all__ = [
    "SessionState",
    "Chunk",
    "Session",
    "format_elapsed",
    "TopicCandidate",
    "ChunkEvent",
    "RecorderErrorEvent",
]
