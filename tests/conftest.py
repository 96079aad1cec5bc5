"""Pytest configuration and fixtures for LiveScribe tests."""

import pytest
import tempfile
import logging
import itertools
from pathlib import Path

from livescribe.config.settings import SessionSettings
from livescribe.recorder.base import AbstractRecorder, RecorderStartError, RecorderStopError


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

_topic_ids = itertools.count()


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without external processes")
    config.addinivalue_line("markers", "integration: tests wiring several components together")


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def settings():
    """Default session settings with topics enabled from the first chunk."""
    return SessionSettings(min_chunks_per_topic=1)


@pytest.fixture
def topics():
    """Unique pub/sub topic names so tests never share subscribers."""
    n = next(_topic_ids)
    return {"chunk": f"test{n}.chunk", "error": f"test{n}.error"}


class FakeRecorder(AbstractRecorder):
    """Recorder double that records calls and can be told to fail."""

    def __init__(self, fail_start: bool = False, fail_stop: bool = False):
        self.fail_start = fail_start
        self.fail_stop = fail_stop
        self.start_calls = []
        self.stop_calls = 0

    async def start(self, preference, segment_seconds):
        self.start_calls.append((preference, segment_seconds))
        if self.fail_start:
            raise RecorderStartError("arecord not found")
        return None

    async def stop(self):
        self.stop_calls += 1
        if self.fail_stop:
            raise RecorderStopError("process did not exit")


@pytest.fixture
def fake_recorder():
    return FakeRecorder()


class FakeSummarizer:
    """Summarizer double returning canned results in call order."""

    def __init__(self, result="A short summary.", error=None):
        self.result = result
        self.error = error
        self.calls = []

    async def summarize(self, text, settings):
        self.calls.append(text)
        if self.error:
            raise self.error
        return self.result


@pytest.fixture
def fake_summarizer():
    return FakeSummarizer()


@pytest.fixture
def config_file(temp_data_dir):
    """Write a minimal LiveScribe YAML config and return its path."""
    path = Path(temp_data_dir) / "livescribe.yaml"
    path.write_text(
        "storage:\n"
        "  data_directory: data\n"
        "logging:\n"
        "  level: DEBUG\n"
        "  file_path: data/logs/test.log\n"
        "  console_output: false\n"
        "whisper:\n"
        "  binary_path: bin/whisper-cli\n"
        "  model_path: /models/ggml-base.en.bin\n"
        "session:\n"
        "  segment_seconds: 10\n"
        "  ollama_model: llama3\n",
        encoding="utf-8",
    )
    return str(path)
