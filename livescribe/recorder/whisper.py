"""Runs the whisper CLI binary on recorded segment files."""

import asyncio
import logging
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

MIN_AUDIO_BYTES = 100
MAX_THREADS = 4


class WhisperError(Exception):
    """Transcription of a segment failed."""


class WhisperTranscriber:
    """Transcribes WAV files with an external whisper CLI."""

    def __init__(self, binary_path: str, model_path: Optional[str] = None, threads: Optional[int] = None):
        """Initialize whisper transcriber.

        Args:
            binary_path: Path to the whisper CLI executable
            model_path: Path to the ggml model file
            threads: Worker threads for whisper; defaults to CPU count capped at 4
        """
        self.binary_path = binary_path
        self.model_path = model_path
        self.threads = threads or min(os.cpu_count() or 2, MAX_THREADS)

        logger.info(f"WhisperTranscriber initialized: {binary_path} (model: {model_path}, threads: {self.threads})")

    def build_command(self, audio_path: str) -> list:
        command = [self.binary_path]
        if self.model_path:
            command += ["-m", self.model_path]
        command += ["-f", audio_path, "-t", str(self.threads), "--no-timestamps"]
        return command

    async def transcribe(self, audio_path: str) -> str:
        """Transcribe one audio file.

        Args:
            audio_path: Path to the segment WAV file

        Returns:
            Transcribed text, trimmed

        Raises:
            WhisperError: If the file is missing or too small, or whisper fails
        """
        path = Path(audio_path)
        if not path.exists():
            raise WhisperError(f"Audio file not found: {audio_path}")

        file_size = path.stat().st_size
        if file_size < MIN_AUDIO_BYTES:
            raise WhisperError(f"Audio file too small ({file_size} bytes). Recording may have failed.")

        try:
            process = await asyncio.create_subprocess_exec(
                *self.build_command(str(path)),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise WhisperError(f"Failed to run whisper: {e}")

        stdout, stderr = await process.communicate()
        out_text = stdout.decode("utf-8", errors="replace")
        err_text = stderr.decode("utf-8", errors="replace")

        if process.returncode != 0:
            if err_text.strip():
                message = err_text.strip()
            elif out_text.strip():
                message = out_text.strip()
            else:
                message = f"Unknown error (exit code: {process.returncode})"
            logger.error(f"Whisper error: {message}")
            raise WhisperError(f"Whisper failed: {message}")

        return out_text.strip()
