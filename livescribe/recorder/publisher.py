"""Recorder event publisher for pub/sub event publishing."""

import logging
from pubsub import pub

from ..models.events import ChunkEvent, RecorderErrorEvent

logger = logging.getLogger(__name__)

CHUNK_TOPIC = "recorder.chunk"
ERROR_TOPIC = "recorder.error"


class RecorderEventPublisher:
    """Publishes recorder chunk and error events using pubsub.pub."""

    def __init__(self, chunk_topic: str = CHUNK_TOPIC, error_topic: str = ERROR_TOPIC):
        """Initialize recorder event publisher.

        Args:
            chunk_topic: Pub/sub topic name for transcribed chunks
            error_topic: Pub/sub topic name for recorder errors
        """
        self.chunk_topic = chunk_topic
        self.error_topic = error_topic
        logger.info(f"RecorderEventPublisher initialized with topics: {chunk_topic}, {error_topic}")

    def publish_chunk(self, event: ChunkEvent) -> None:
        """Publish a transcribed chunk.

        Args:
            event: ChunkEvent to publish
        """
        pub.sendMessage(self.chunk_topic, event=event)
        logger.debug(f"Published chunk {event.chunk} ({len(event.text)} chars)")

    def publish_error(self, message: str) -> None:
        """Publish a recorder error message."""
        pub.sendMessage(self.error_topic, event=RecorderErrorEvent(message=message))
        logger.debug(f"Published recorder error: {message}")
