"""Abstract base class for external segmented recorders."""

from abc import ABC, abstractmethod
from typing import Optional


class RecorderStartError(Exception):
    """The recorder could not be launched."""


class RecorderStopError(Exception):
    """The recorder could not be stopped cleanly."""


class AbstractRecorder(ABC):
    """Controls an external recorder that emits one transcribed chunk per segment.

    Chunks and errors are not returned from these methods; the recorder
    publishes them through a RecorderEventPublisher as they happen.
    """

    @abstractmethod
    async def start(self, preference: str, segment_seconds: int) -> Optional[str]:
        """Start recording.

        Args:
            preference: One of "auto", "arecord" or "ffmpeg"
            segment_seconds: Length of each recorded segment

        Returns:
            Optional description of where segments are written

        Raises:
            RecorderStartError: If the recorder could not be started
        """
        pass

    @abstractmethod
    async def stop(self) -> None:
        """Stop recording.

        Raises:
            RecorderStopError: If the recorder could not be stopped
        """
        pass

    async def close(self) -> None:
        """Release any processes or tasks still held by the recorder."""
        return None
