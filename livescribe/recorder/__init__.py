"""External segmented recorder adapters for LiveScribe."""

from .base import AbstractRecorder, RecorderStartError, RecorderStopError
from .publisher import RecorderEventPublisher, CHUNK_TOPIC, ERROR_TOPIC
from .whisper import WhisperTranscriber, WhisperError
from .segmented import SegmentedRecorder

__all__ = [
    "AbstractRecorder",
    "RecorderStartError",
    "RecorderStopError",
    "RecorderEventPublisher",
    "CHUNK_TOPIC",
    "ERROR_TOPIC",
    "WhisperTranscriber",
    "WhisperError",
    "SegmentedRecorder",
]
