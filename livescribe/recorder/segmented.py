"""Segmented live recorder built on arecord or ffmpeg plus whisper.

Audio is written as numbered WAV segments (``chunk-0000.wav``, ...) in a
per-session cache directory. Each finished segment is queued for
transcription; a single worker transcribes segments one at a time so
chunk events are published in segment order.

Two capture modes are supported:

- arecord: one arecord process per segment. Each segment records a few
  extra seconds so that speech at the boundary is not lost.
- ffmpeg: one long-running ffmpeg process using the segment muxer. A
  segment is complete once the next one appears or ffmpeg has exited.
"""

import asyncio
import logging
import shutil
from pathlib import Path
from typing import List, Optional

from ..models.events import ChunkEvent
from .base import AbstractRecorder, RecorderStartError, RecorderStopError
from .publisher import RecorderEventPublisher
from .whisper import WhisperError

logger = logging.getLogger(__name__)

MIN_SEGMENT_SECONDS = 5
MAX_SEGMENT_SECONDS = 60
CONTEXT_SECONDS = 3
MIN_SEGMENT_BYTES = 1000
POLL_INTERVAL = 0.2
SEGMENT_TIMEOUT_PADDING = 10
STOP_TIMEOUT = 5.0


class SegmentedRecorder(AbstractRecorder):
    """Records fixed-length segments and publishes their transcriptions."""

    def __init__(self, transcriber, publisher: RecorderEventPublisher, cache_dir: str):
        """Initialize segmented recorder.

        Args:
            transcriber: Object with an async ``transcribe(path) -> str``
            publisher: Publisher for chunk and error events
            cache_dir: Directory for segment files; wiped on every start
        """
        self.transcriber = transcriber
        self.publisher = publisher
        self.cache_dir = Path(cache_dir)

        self.active = False
        self.mode: Optional[str] = None
        self._process: Optional[asyncio.subprocess.Process] = None
        self._spawn: Optional[asyncio.Future] = None
        self._record_task: Optional[asyncio.Task] = None
        self._transcribe_task: Optional[asyncio.Task] = None
        self._segments: Optional[asyncio.Queue] = None

        logger.info(f"SegmentedRecorder initialized with cache dir: {self.cache_dir}")

    @staticmethod
    def resolve_mode(preference: str) -> str:
        """Pick the capture tool; ffmpeg is used only when asked for and installed."""
        if preference == "ffmpeg":
            if shutil.which("ffmpeg"):
                return "ffmpeg"
            logger.warning("ffmpeg requested but not found on PATH, falling back to arecord")
        return "arecord"

    def segment_path(self, index: int) -> Path:
        return self.cache_dir / f"chunk-{index:04d}.wav"

    def arecord_command(self, path: Path, duration: int) -> List[str]:
        return [
            "arecord", "-f", "S16_LE", "-r", "16000", "-c", "1",
            "-d", str(duration), str(path),
        ]

    def ffmpeg_command(self, segment_len: int) -> List[str]:
        return [
            "ffmpeg", "-hide_banner", "-loglevel", "error",
            "-f", "alsa", "-i", "default",
            "-ac", "1", "-ar", "16000",
            "-f", "segment",
            "-segment_time", str(segment_len),
            "-reset_timestamps", "1",
            "-segment_start_number", "0",
            str(self.cache_dir / "chunk-%04d.wav"),
        ]

    async def start(self, preference: str, segment_seconds: int) -> Optional[str]:
        if self.active:
            raise RecorderStartError("Live recording already in progress")

        # Drop whatever is left of the previous session
        await self._cancel_tasks()

        segment_len = max(MIN_SEGMENT_SECONDS, min(MAX_SEGMENT_SECONDS, int(segment_seconds)))

        try:
            if self.cache_dir.exists():
                shutil.rmtree(self.cache_dir)
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise RecorderStartError(f"Failed to create cache directory: {e}")

        mode = self.resolve_mode(preference)
        if mode == "ffmpeg":
            try:
                self._process = await asyncio.create_subprocess_exec(
                    *self.ffmpeg_command(segment_len),
                    stdout=asyncio.subprocess.DEVNULL,
                    stderr=asyncio.subprocess.DEVNULL,
                )
            except OSError as e:
                raise RecorderStartError(f"Failed to start ffmpeg: {e}")

        self.mode = mode
        self.active = True
        self._segments = asyncio.Queue()
        self._transcribe_task = asyncio.create_task(self._transcription_worker())
        if mode == "ffmpeg":
            self._record_task = asyncio.create_task(self._ffmpeg_loop(segment_len))
        else:
            self._record_task = asyncio.create_task(self._arecord_loop(segment_len))

        logger.info(f"Live recording started ({mode}, {segment_len}s segments)")
        return str(self.cache_dir)

    async def stop(self) -> None:
        if not self.active:
            raise RecorderStopError("No live recording in progress")

        self.active = False
        try:
            await self._await_spawn()
            await self._terminate_process()
        except OSError as e:
            raise RecorderStopError(f"Failed to stop {self.mode}: {e}")

        # Segments already recorded are still transcribed and published
        logger.info("Live recording stopped")

    async def close(self) -> None:
        self.active = False
        try:
            await self._await_spawn()
            await self._terminate_process()
        except OSError as e:
            logger.warning(f"Error terminating recorder process: {e}")
        await self._cancel_tasks()
        logger.info("SegmentedRecorder closed")

    async def _await_spawn(self) -> None:
        """Wait for an arecord launch in flight so stop() can terminate it."""
        spawn = self._spawn
        if spawn is None:
            return
        try:
            self._process = await spawn
        except OSError:
            # The record loop reports the launch failure
            logger.debug("arecord failed to launch while stopping")

    async def _terminate_process(self) -> None:
        process = self._process
        if process is None or process.returncode is not None:
            return

        try:
            process.terminate()
        except ProcessLookupError:
            return

        try:
            await asyncio.wait_for(process.wait(), timeout=STOP_TIMEOUT)
        except asyncio.TimeoutError:
            logger.warning(f"{self.mode} did not exit after SIGTERM, killing it")
            process.kill()
            await process.wait()

    async def _cancel_tasks(self) -> None:
        tasks = [t for t in (self._record_task, self._transcribe_task) if t and not t.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._record_task = None
        self._transcribe_task = None

    def _process_exited(self) -> bool:
        return self._process is None or self._process.returncode is not None

    def _segment_complete(self, index: int) -> bool:
        if self.segment_path(index + 1).exists():
            return True
        return self._process_exited() and self.segment_path(index).exists()

    async def _arecord_loop(self, segment_len: int) -> None:
        index = 0
        try:
            while self.active:
                path = self.segment_path(index)
                self._spawn = asyncio.ensure_future(asyncio.create_subprocess_exec(
                    *self.arecord_command(path, segment_len + CONTEXT_SECONDS),
                    stdout=asyncio.subprocess.DEVNULL,
                    stderr=asyncio.subprocess.PIPE,
                ))
                try:
                    self._process = await self._spawn
                except OSError as e:
                    if self.active:
                        self.publisher.publish_error(f"Failed to record chunk: {e}")
                    break
                finally:
                    self._spawn = None

                # No segment process may outlive a stop() that raced the launch
                if not self.active:
                    await self._terminate_process()

                _, stderr = await self._process.communicate()
                stopped = not self.active

                if self._process.returncode != 0 and not stopped:
                    logger.error(f"arecord failed: {stderr.decode('utf-8', errors='replace').strip()}")
                    self.publisher.publish_error("Chunk recording failed")
                    break

                # A segment cut short by stop() is kept only if it holds real audio
                if path.exists() and (not stopped or path.stat().st_size > MIN_SEGMENT_BYTES):
                    self._segments.put_nowait((index, path))
                index += 1
        finally:
            self._process = None
            self._segments.put_nowait(None)

    async def _ffmpeg_loop(self, segment_len: int) -> None:
        index = 0
        timeout = segment_len + SEGMENT_TIMEOUT_PADDING
        try:
            while True:
                waited = 0.0
                while not self._segment_complete(index):
                    if self._process_exited():
                        if self.active:
                            code = self._process.returncode if self._process else None
                            self.publisher.publish_error(f"ffmpeg exited unexpectedly (code {code})")
                        return
                    await asyncio.sleep(POLL_INTERVAL)
                    waited += POLL_INTERVAL
                    if waited > timeout:
                        logger.warning(f"Segment {index} did not complete within {timeout}s")
                        break

                path = self.segment_path(index)
                if path.exists() and path.stat().st_size > MIN_SEGMENT_BYTES:
                    self._segments.put_nowait((index, path))
                else:
                    logger.warning(f"Skipping segment {index}: no usable audio")
                index += 1
        finally:
            self._segments.put_nowait(None)

    async def _transcription_worker(self) -> None:
        while True:
            item = await self._segments.get()
            if item is None:
                break
            index, path = item
            await self.transcribe_segment(index, path)

    async def transcribe_segment(self, index: int, path: Path) -> None:
        """Transcribe one segment file and publish the result or the error."""
        size = path.stat().st_size if path.exists() else 0
        try:
            text = await self.transcriber.transcribe(str(path))
        except WhisperError as e:
            logger.error(f"Transcription of segment {index} failed: {e}")
            self.publisher.publish_error(f"Transcription error: {e}")
            return

        self.publisher.publish_chunk(ChunkEvent(chunk=index, text=text, path=str(path), size=size))
