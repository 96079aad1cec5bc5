"""Session controller that drives a live transcription session.

The controller owns the session state and is its only mutator. Everything
runs on one asyncio event loop: recorder events reach the controller
through pypubsub and are bridged into one asyncio queue per event
category, then handled one at a time. Event handlers never await, so the
only points where another handler can run are the recorder start/stop
calls, summarization and the one-second tick.
"""

import asyncio
import logging
import time
from typing import Callable, Optional

from pubsub import pub

from ..analysis.topics import TopicExtractor
from ..config.settings import SessionSettings
from ..models.events import ChunkEvent, RecorderErrorEvent
from ..models.session import Chunk, Session, SessionState, format_elapsed
from ..recorder.base import AbstractRecorder
from ..recorder.publisher import CHUNK_TOPIC, ERROR_TOPIC
from ..summarization.ollama_client import OllamaUnreachableError
from ..summarization.summarizer import TranscriptSummarizer
from .export_service import ExportError, export_json, transcript_text

logger = logging.getLogger(__name__)

TICK_INTERVAL = 1.0


class SessionController:
    """Runs the Idle/Recording state machine for one live session."""

    def __init__(self,
                 settings: SessionSettings,
                 recorder: AbstractRecorder,
                 summarizer: Optional[TranscriptSummarizer] = None,
                 file_manager=None,
                 chunk_topic: str = CHUNK_TOPIC,
                 error_topic: str = ERROR_TOPIC,
                 clock: Callable[[], float] = time.monotonic,
                 tick_interval: float = TICK_INTERVAL):
        """Initialize session controller.

        Args:
            settings: Session settings, read on every operation
            recorder: External recorder to start and stop
            summarizer: Summarizer for stop-time and on-demand summaries
            file_manager: FileManager used by save_export
            chunk_topic: Pub/sub topic carrying ChunkEvents
            error_topic: Pub/sub topic carrying RecorderErrorEvents
            clock: Monotonic time source in seconds
            tick_interval: Seconds between elapsed-time ticks
        """
        self.settings = settings
        self.recorder = recorder
        self.summarizer = summarizer or TranscriptSummarizer()
        self.file_manager = file_manager
        self.chunk_topic = chunk_topic
        self.error_topic = error_topic
        self.clock = clock
        self.tick_interval = tick_interval

        self.session = Session()
        self.topic_extractor = TopicExtractor()
        self.topic_recomputations = 0
        # Chunks covered by the latest summary request
        self.summarized_chunks = 0

        self.chunk_queue: Optional[asyncio.Queue] = None
        self.error_queue: Optional[asyncio.Queue] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._tick_task: Optional[asyncio.Task] = None

        self._transition_in_progress = False
        self._ever_started = False
        self._summary_request_id = 0

        logger.info("SessionController initialized")

    # ------------------------------------------------------------------
    # Event channels

    def attach(self) -> None:
        """Subscribe to recorder topics; must be called from the running loop."""
        self._loop = asyncio.get_running_loop()
        self.chunk_queue = asyncio.Queue()
        self.error_queue = asyncio.Queue()
        pub.subscribe(self._on_chunk_message, self.chunk_topic)
        pub.subscribe(self._on_error_message, self.error_topic)
        logger.info(f"SessionController subscribed to {self.chunk_topic}, {self.error_topic}")

    def detach(self) -> None:
        """Unsubscribe from recorder topics and stop the ticker."""
        for listener, topic in ((self._on_chunk_message, self.chunk_topic),
                                (self._on_error_message, self.error_topic)):
            try:
                pub.unsubscribe(listener, topic)
            except Exception as e:
                logger.warning(f"Error during unsubscribe from {topic}: {e}")
        self._cancel_ticker()
        self._loop = None
        logger.info("SessionController detached")

    def _on_chunk_message(self, event: ChunkEvent) -> None:
        self._enqueue(self.chunk_queue, event)

    def _on_error_message(self, event: RecorderErrorEvent) -> None:
        self._enqueue(self.error_queue, event)

    def _enqueue(self, queue: Optional[asyncio.Queue], event) -> None:
        # Publishers may live on other threads
        if self._loop is None or self._loop.is_closed() or queue is None:
            logger.warning(f"Dropping recorder event, controller not attached: {event}")
            return
        self._loop.call_soon_threadsafe(queue.put_nowait, event)

    async def run(self) -> None:
        """Handle queued recorder events until cancelled."""
        if self.chunk_queue is None:
            self.attach()
        await asyncio.gather(
            self._drain(self.chunk_queue, self.handle_chunk),
            self._drain(self.error_queue, self.handle_error),
        )

    async def _drain(self, queue: asyncio.Queue, handler) -> None:
        while True:
            event = await queue.get()
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Error handling recorder event {event}: {e}", exc_info=True)
            finally:
                queue.task_done()

    def process_pending(self) -> int:
        """Handle every event already queued, without waiting for more.

        Returns:
            Number of events handled
        """
        handled = 0
        for queue, handler in ((self.chunk_queue, self.handle_chunk),
                               (self.error_queue, self.handle_error)):
            while queue is not None and not queue.empty():
                handler(queue.get_nowait())
                queue.task_done()
                handled += 1
        return handled

    # ------------------------------------------------------------------
    # Transitions

    async def start(self) -> bool:
        """Start a new recording session.

        Returns:
            True if the session is now recording
        """
        session = self.session
        if session.state is not SessionState.IDLE or self._transition_in_progress:
            logger.warning("Start ignored: a session is already recording")
            return False

        session.error = None
        session.transcript = []
        session.topics = []
        session.summary = ""
        session.elapsed_label = "00:00"
        session.pending_chunk_index = 0
        session.is_summarizing = False
        self.topic_extractor.reset()
        self.summarized_chunks = 0
        # Results of summaries still in flight belong to the old transcript
        self._summary_request_id += 1
        self._ever_started = True

        self._transition_in_progress = True
        try:
            await self.recorder.start(self.settings.recorder_preference, self.settings.segment_seconds)
        except Exception as e:
            logger.error(f"Error starting recorder: {e}")
            session.error = f"Failed to start: {e}"
            session.pending_chunk_index = None
            return False
        finally:
            self._transition_in_progress = False

        session.state = SessionState.RECORDING
        session.started_at = self.clock()
        self._start_ticker()

        logger.info(f"Recording started ({self.settings.recorder_preference}, "
                    f"{self.settings.segment_seconds}s segments)")
        return True

    async def stop(self) -> bool:
        """Stop the recording session, then auto-summarize if enabled.

        The session returns to Idle even if the recorder fails to stop.

        Returns:
            True if a recording session was stopped
        """
        session = self.session
        if session.state is not SessionState.RECORDING or self._transition_in_progress:
            logger.warning("Stop ignored: not recording")
            return False

        self._transition_in_progress = True
        try:
            await self.recorder.stop()
        except Exception as e:
            logger.error(f"Error stopping recorder: {e}")
            session.error = f"Failed to stop: {e}"
        finally:
            session.state = SessionState.IDLE
            session.started_at = None
            session.pending_chunk_index = None
            self._cancel_ticker()
            self._transition_in_progress = False

        logger.info(f"Recording stopped with {session.chunk_count} chunks")

        if self.settings.auto_summary and session.transcript:
            await self.summarize()
        return True

    def clear(self) -> bool:
        """Empty transcript, topics and summary of an idle session.

        Returns:
            True if the session was cleared
        """
        session = self.session
        if session.state is not SessionState.IDLE or self._transition_in_progress:
            logger.warning("Clear ignored: session is recording")
            return False

        session.transcript = []
        session.topics = []
        session.summary = ""
        session.is_summarizing = False
        self.topic_extractor.reset()
        self.summarized_chunks = 0
        self._summary_request_id += 1
        logger.info("Session cleared")
        return True

    # ------------------------------------------------------------------
    # Recorder events

    def handle_chunk(self, event: ChunkEvent) -> Optional[Chunk]:
        """Append a transcribed chunk and recompute topics.

        Returns:
            The appended chunk, or None if the event was rejected
        """
        session = self.session
        if session.state is SessionState.IDLE and not self._ever_started:
            logger.warning(f"Ignoring chunk {event.chunk}: no session has been started")
            return None
        if session.state is SessionState.IDLE and self._transition_in_progress:
            # Left over from the previous recorder while the new one starts
            logger.warning(f"Ignoring chunk {event.chunk}: a new session is starting")
            return None

        if session.transcript:
            previous = session.transcript[-1].recorder_chunk
            if previous is not None and event.chunk <= previous:
                logger.warning(f"Recorder chunk {event.chunk} arrived after chunk {previous}; "
                               f"keeping arrival order")

        chunk = Chunk(
            index=len(session.transcript),
            text=event.text or "",
            elapsed_label=self._current_elapsed_label(),
            recorder_chunk=event.chunk,
            path=event.path,
            size=event.size,
        )
        session.transcript.append(chunk)
        session.pending_chunk_index = None
        session.error = None

        self._recompute_topics(chunk)
        logger.info(f"Chunk #{chunk.index} at {chunk.elapsed_label}: '{chunk.text[:60]}'")
        return chunk

    def handle_error(self, event: RecorderErrorEvent) -> None:
        """Surface a recorder error; the session state is left unchanged."""
        self.session.error = event.message
        self.session.pending_chunk_index = None
        logger.warning(f"Recorder error: {event.message}")

    def _recompute_topics(self, chunk: Chunk) -> None:
        self.topic_extractor.add_text(chunk.text)
        self.session.topics = self.topic_extractor.topics(self.settings)
        self.topic_recomputations += 1
        logger.debug(f"Topics: {[t.phrase for t in self.session.topics]}")

    # ------------------------------------------------------------------
    # Elapsed time

    def _elapsed_seconds(self) -> int:
        if self.session.started_at is None:
            return 0
        return int(self.clock() - self.session.started_at)

    def _current_elapsed_label(self) -> str:
        if self.session.started_at is None:
            return self.session.elapsed_label
        return format_elapsed(self._elapsed_seconds())

    def tick(self) -> None:
        """Refresh the elapsed label and predict the next pending chunk."""
        session = self.session
        if session.state is not SessionState.RECORDING or session.started_at is None:
            return

        seconds = self._elapsed_seconds()
        session.elapsed_label = format_elapsed(seconds)

        expected_chunk = seconds // self.settings.segment_seconds
        if expected_chunk > len(session.transcript):
            session.pending_chunk_index = expected_chunk

    def _start_ticker(self) -> None:
        self._cancel_ticker()
        self._tick_task = asyncio.create_task(self._tick_loop())

    def _cancel_ticker(self) -> None:
        if self._tick_task and not self._tick_task.done():
            self._tick_task.cancel()
        self._tick_task = None

    async def _tick_loop(self) -> None:
        while self.session.state is SessionState.RECORDING:
            await asyncio.sleep(self.tick_interval)
            self.tick()

    # ------------------------------------------------------------------
    # Summary and export

    async def summarize(self) -> str:
        """Summarize the current transcript and make it the session summary.

        Failures become the summary text. If another summary is requested
        (or the transcript is replaced) before this one resolves, this
        result is discarded.

        Returns:
            The current session summary
        """
        session = self.session
        self._summary_request_id += 1
        request_id = self._summary_request_id
        self.summarized_chunks = session.chunk_count

        session.is_summarizing = True
        try:
            summary = await self.summarizer.summarize(session.full_text(), self.settings)
        except OllamaUnreachableError as e:
            logger.error(f"Summarization failed: {e}")
            summary = f"⚠️ Cannot connect to Ollama at {e.url}. Is Ollama running?"
        except Exception as e:
            logger.error(f"Summarization failed: {e}")
            summary = f"⚠️ {e}"

        if request_id != self._summary_request_id:
            logger.info(f"Discarding stale summary #{request_id}")
            return session.summary

        session.is_summarizing = False
        session.summary = summary
        logger.info(f"Summary updated ({len(summary)} chars)")
        return summary

    def export_json(self) -> Optional[str]:
        """Serialize the session, surfacing failures as the session error."""
        try:
            return export_json(self.session, self.settings.segment_seconds)
        except ExportError as e:
            logger.error(f"Export failed: {e}")
            self.session.error = f"Export failed: {e}"
            return None

    def save_export(self, path: Optional[str] = None) -> Optional[str]:
        """Serialize the session and write it through the file manager.

        Args:
            path: Destination file; the file manager picks one if omitted

        Returns:
            Path of the written file, or None on failure
        """
        content = self.export_json()
        if content is None:
            return None
        if self.file_manager is None:
            self.session.error = "Export failed: no file manager configured"
            logger.error(self.session.error)
            return None

        try:
            return self.file_manager.save_export(content, path)
        except ExportError as e:
            logger.error(f"Export failed: {e}")
            self.session.error = f"Export failed: {e}"
            return None

    def copy_text(self) -> str:
        return transcript_text(self.session)
