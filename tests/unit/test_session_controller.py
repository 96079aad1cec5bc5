"""Unit tests for SessionController."""

import asyncio
import json
from pathlib import Path

import pytest

from livescribe.config.settings import SessionSettings
from livescribe.models.events import ChunkEvent, RecorderErrorEvent
from livescribe.models.session import SessionState
from livescribe.recorder.publisher import RecorderEventPublisher
from livescribe.services.session_controller import SessionController
from livescribe.storage.file_manager import FileManager
from livescribe.summarization.ollama_client import OllamaServiceError, OllamaUnreachableError


class FakeClock:
    """Monotonic clock the test moves by hand."""

    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def make_controller(settings, recorder, summarizer, clock=None, **kwargs):
    # A long tick interval keeps the background ticker out of the way
    return SessionController(
        settings=settings,
        recorder=recorder,
        summarizer=summarizer,
        clock=clock or FakeClock(),
        tick_interval=3600,
        **kwargs,
    )


@pytest.mark.unit
class TestStateMachine:
    """Start/stop/clear transitions."""

    def test_start_from_idle(self, settings, fake_recorder, fake_summarizer):
        """Test start moves to Recording and passes recorder settings."""
        clock = FakeClock(50.0)
        settings.segment_seconds = 10
        controller = make_controller(settings, fake_recorder, fake_summarizer, clock)

        async def scenario():
            started = await controller.start()
            controller.detach()
            return started

        assert asyncio.run(scenario()) is True
        session = controller.session
        assert session.state is SessionState.RECORDING
        assert session.started_at == 50.0
        assert session.pending_chunk_index == 0
        assert session.elapsed_label == "00:00"
        assert fake_recorder.start_calls == [("auto", 10)]

    def test_start_while_recording_rejected(self, settings, fake_recorder, fake_summarizer):
        """Test a second start is a rejected no-op."""
        controller = make_controller(settings, fake_recorder, fake_summarizer)

        async def scenario():
            await controller.start()
            second = await controller.start()
            controller.detach()
            return second

        assert asyncio.run(scenario()) is False
        assert controller.session.state is SessionState.RECORDING
        assert len(fake_recorder.start_calls) == 1

    def test_stop_while_idle_rejected(self, settings, fake_recorder, fake_summarizer):
        """Test stop without a recording is a rejected no-op."""
        controller = make_controller(settings, fake_recorder, fake_summarizer)

        assert asyncio.run(controller.stop()) is False
        assert controller.session.state is SessionState.IDLE
        assert fake_recorder.stop_calls == 0

    def test_start_failure_stays_idle(self, settings, fake_recorder, fake_summarizer):
        """Test a recorder launch failure is surfaced and leaves the session idle."""
        fake_recorder.fail_start = True
        controller = make_controller(settings, fake_recorder, fake_summarizer)

        assert asyncio.run(controller.start()) is False
        session = controller.session
        assert session.state is SessionState.IDLE
        assert session.error == "Failed to start: arecord not found"
        assert session.pending_chunk_index is None
        assert session.started_at is None

    def test_stop_failure_forces_idle(self, settings, fake_recorder, fake_summarizer):
        """Test a recorder stop failure still returns the session to idle."""
        fake_recorder.fail_stop = True
        controller = make_controller(settings, fake_recorder, fake_summarizer)

        async def scenario():
            await controller.start()
            return await controller.stop()

        assert asyncio.run(scenario()) is True
        session = controller.session
        assert session.state is SessionState.IDLE
        assert session.error == "Failed to stop: process did not exit"
        assert session.started_at is None
        assert session.pending_chunk_index is None
        assert fake_recorder.stop_calls == 1

    def test_start_clears_previous_session(self, settings, fake_recorder, fake_summarizer):
        """Test a new start empties transcript, topics, summary and error."""
        controller = make_controller(settings, fake_recorder, fake_summarizer)

        async def scenario():
            await controller.start()
            controller.handle_chunk(ChunkEvent(chunk=0, text="budget budget budget"))
            await controller.stop()
            await controller.summarize()
            controller.session.error = "old error"
            await controller.start()
            controller.detach()

        asyncio.run(scenario())
        session = controller.session
        assert session.transcript == []
        assert session.topics == []
        assert session.summary == ""
        assert session.error is None
        assert controller.topic_extractor.chunks_seen == 0

    def test_clear_only_when_idle(self, settings, fake_recorder, fake_summarizer):
        """Test clear is rejected while recording and empties an idle session."""
        controller = make_controller(settings, fake_recorder, fake_summarizer)

        async def scenario():
            await controller.start()
            controller.handle_chunk(ChunkEvent(chunk=0, text="budget budget budget"))
            rejected = controller.clear()
            await controller.stop()
            return rejected, controller.clear()

        rejected, cleared = asyncio.run(scenario())
        assert rejected is False
        assert cleared is True
        assert controller.session.transcript == []
        assert controller.session.topics == []
        assert controller.session.summary == ""


@pytest.mark.unit
class TestRecorderEvents:
    """Chunk and error event handling."""

    def test_chunk_appends_one_chunk_and_recomputes_once(self, settings, fake_recorder, fake_summarizer):
        """Test each chunk adds exactly one Chunk and one topic recomputation."""
        clock = FakeClock()
        controller = make_controller(settings, fake_recorder, fake_summarizer, clock)

        async def scenario():
            await controller.start()
            controller.session.error = "transient"
            clock.advance(7)
            controller.handle_chunk(ChunkEvent(chunk=0, text="the battery life is great", path="/tmp/a.wav", size=2048))
            clock.advance(5)
            controller.handle_chunk(ChunkEvent(chunk=1, text="the battery life is amazing"))
            controller.detach()

        asyncio.run(scenario())
        session = controller.session
        assert [c.index for c in session.transcript] == [0, 1]
        assert [c.elapsed_label for c in session.transcript] == ["00:07", "00:12"]
        assert session.transcript[0].path == "/tmp/a.wav"
        assert session.transcript[0].size == 2048
        assert controller.topic_recomputations == 2
        assert session.pending_chunk_index is None
        assert session.error is None
        assert session.topics[0].phrase == "battery life"

    def test_chunk_before_first_start_ignored(self, settings, fake_recorder, fake_summarizer):
        """Test chunks are rejected until a session has been started."""
        controller = make_controller(settings, fake_recorder, fake_summarizer)

        assert controller.handle_chunk(ChunkEvent(chunk=0, text="hello")) is None
        assert controller.session.transcript == []
        assert controller.topic_recomputations == 0

    def test_late_chunk_after_stop_accepted(self, settings, fake_recorder, fake_summarizer):
        """Test a chunk arriving while the recorder winds down is kept."""
        controller = make_controller(settings, fake_recorder, fake_summarizer)

        async def scenario():
            await controller.start()
            await controller.stop()
            return controller.handle_chunk(ChunkEvent(chunk=0, text="final words"))

        chunk = asyncio.run(scenario())
        assert chunk is not None
        assert controller.session.chunk_count == 1

    def test_chunk_while_starting_ignored(self, settings, fake_recorder, fake_summarizer):
        """Test a chunk queued by the old recorder is dropped while the new one starts."""
        controller = make_controller(settings, fake_recorder, fake_summarizer)
        recorder_start = fake_recorder.start

        async def slow_start(preference, segment_seconds):
            await release.wait()
            return await recorder_start(preference, segment_seconds)

        fake_recorder.start = slow_start

        async def scenario():
            nonlocal release
            release = asyncio.Event()
            starting = asyncio.create_task(controller.start())
            await asyncio.sleep(0)
            stale = controller.handle_chunk(ChunkEvent(chunk=7, text="previous session words"))
            release.set()
            started = await starting
            fresh = controller.handle_chunk(ChunkEvent(chunk=0, text="new session words"))
            controller.detach()
            return stale, started, fresh

        release = None
        stale, started, fresh = asyncio.run(scenario())

        assert stale is None
        assert started is True
        assert fresh is not None
        assert [c.text for c in controller.session.transcript] == ["new session words"]
        assert controller.topic_recomputations == 1

    def test_out_of_order_chunk_keeps_arrival_order(self, settings, fake_recorder, fake_summarizer):
        """Test recorder numbering is recorded but never used to reorder."""
        controller = make_controller(settings, fake_recorder, fake_summarizer)

        async def scenario():
            await controller.start()
            controller.handle_chunk(ChunkEvent(chunk=3, text="third"))
            controller.handle_chunk(ChunkEvent(chunk=2, text="second"))
            controller.detach()

        asyncio.run(scenario())
        transcript = controller.session.transcript
        assert [(c.index, c.recorder_chunk, c.text) for c in transcript] == [(0, 3, "third"), (1, 2, "second")]

    def test_error_event_keeps_state(self, settings, fake_recorder, fake_summarizer):
        """Test a recorder error is surfaced without stopping the session."""
        controller = make_controller(settings, fake_recorder, fake_summarizer)

        async def scenario():
            await controller.start()
            controller.handle_error(RecorderErrorEvent(message="Chunk recording failed"))
            controller.detach()

        asyncio.run(scenario())
        assert controller.session.state is SessionState.RECORDING
        assert controller.session.error == "Chunk recording failed"
        assert controller.session.pending_chunk_index is None

    def test_tick_predicts_pending_chunk(self, settings, fake_recorder, fake_summarizer):
        """Test the tick updates the elapsed label and the pending marker."""
        clock = FakeClock()
        controller = make_controller(settings, fake_recorder, fake_summarizer, clock)

        async def scenario():
            await controller.start()
            clock.advance(12)
            controller.tick()
            pending_before = controller.session.pending_chunk_index

            controller.handle_chunk(ChunkEvent(chunk=0, text="one"))
            controller.handle_chunk(ChunkEvent(chunk=1, text="two"))
            controller.tick()
            pending_after = controller.session.pending_chunk_index
            controller.detach()
            return pending_before, pending_after

        pending_before, pending_after = asyncio.run(scenario())
        assert controller.session.elapsed_label == "00:12"
        assert pending_before == 2
        assert pending_after is None

    def test_tick_ignored_when_idle(self, settings, fake_recorder, fake_summarizer):
        """Test ticks do nothing outside a recording."""
        controller = make_controller(settings, fake_recorder, fake_summarizer)
        controller.tick()

        assert controller.session.elapsed_label == "00:00"
        assert controller.session.pending_chunk_index is None


@pytest.mark.unit
class TestEventChannels:
    """Pub/sub to asyncio queue bridge."""

    def test_published_events_reach_controller(self, settings, fake_recorder, fake_summarizer, topics):
        """Test published chunk and error events are queued and handled."""
        controller = make_controller(settings, fake_recorder, fake_summarizer,
                                     chunk_topic=topics["chunk"], error_topic=topics["error"])
        publisher = RecorderEventPublisher(topics["chunk"], topics["error"])

        async def scenario():
            controller.attach()
            await controller.start()
            publisher.publish_chunk(ChunkEvent(chunk=0, text="queued chunk"))
            publisher.publish_error("Transcription error: boom")
            # Let the call_soon_threadsafe callbacks run
            await asyncio.sleep(0)
            handled = controller.process_pending()
            controller.detach()
            return handled

        assert asyncio.run(scenario()) == 2
        assert controller.session.chunk_texts() == ["queued chunk"]
        assert controller.session.error == "Transcription error: boom"

    def test_run_drains_queues(self, settings, fake_recorder, fake_summarizer, topics):
        """Test the run loop handles events as they are published."""
        controller = make_controller(settings, fake_recorder, fake_summarizer,
                                     chunk_topic=topics["chunk"], error_topic=topics["error"])
        publisher = RecorderEventPublisher(topics["chunk"], topics["error"])

        async def scenario():
            controller.attach()
            runner = asyncio.create_task(controller.run())
            await controller.start()
            for n in range(3):
                publisher.publish_chunk(ChunkEvent(chunk=n, text=f"chunk {n}"))
            await asyncio.sleep(0)
            await controller.chunk_queue.join()
            runner.cancel()
            await asyncio.gather(runner, return_exceptions=True)
            controller.detach()

        asyncio.run(scenario())
        assert controller.session.chunk_count == 3

    def test_detached_controller_ignores_events(self, settings, fake_recorder, fake_summarizer, topics):
        """Test no events are queued after detach."""
        controller = make_controller(settings, fake_recorder, fake_summarizer,
                                     chunk_topic=topics["chunk"], error_topic=topics["error"])
        publisher = RecorderEventPublisher(topics["chunk"], topics["error"])

        async def scenario():
            controller.attach()
            controller.detach()
            publisher.publish_chunk(ChunkEvent(chunk=0, text="too late"))
            await asyncio.sleep(0)
            return controller.process_pending()

        assert asyncio.run(scenario()) == 0


class StaleFirstSummarizer:
    """First call blocks until released and returns a stale result."""

    def __init__(self):
        self.release = None
        self.calls = 0

    async def summarize(self, text, settings):
        self.calls += 1
        if self.calls == 1:
            await self.release.wait()
            return "stale summary"
        return "fresh summary"


@pytest.mark.unit
class TestSummaries:
    """Summarization and export through the controller."""

    def test_auto_summary_on_stop(self, fake_recorder, fake_summarizer):
        """Test stop summarizes a non-empty transcript when enabled."""
        settings = SessionSettings(auto_summary=True)
        controller = make_controller(settings, fake_recorder, fake_summarizer)

        async def scenario():
            await controller.start()
            controller.handle_chunk(ChunkEvent(chunk=0, text="First point."))
            controller.handle_chunk(ChunkEvent(chunk=1, text="Second point."))
            await controller.stop()

        asyncio.run(scenario())
        assert fake_summarizer.calls == ["First point. Second point."]
        assert controller.session.summary == "A short summary."
        assert controller.session.is_summarizing is False

    def test_no_auto_summary_for_empty_transcript(self, fake_recorder, fake_summarizer):
        """Test an empty transcript is never summarized on stop."""
        settings = SessionSettings(auto_summary=True)
        controller = make_controller(settings, fake_recorder, fake_summarizer)

        async def scenario():
            await controller.start()
            await controller.stop()

        asyncio.run(scenario())
        assert fake_summarizer.calls == []

    def test_no_auto_summary_when_disabled(self, settings, fake_recorder, fake_summarizer):
        """Test stop leaves the summary alone by default."""
        controller = make_controller(settings, fake_recorder, fake_summarizer)

        async def scenario():
            await controller.start()
            controller.handle_chunk(ChunkEvent(chunk=0, text="Something said."))
            await controller.stop()

        asyncio.run(scenario())
        assert fake_summarizer.calls == []
        assert controller.session.summary == ""

    def test_unreachable_service_message(self, settings, fake_recorder, fake_summarizer):
        """Test an unreachable service becomes a hint naming the URL."""
        fake_summarizer.error = OllamaUnreachableError("http://gpu-box:11434", "refused")
        controller = make_controller(settings, fake_recorder, fake_summarizer)

        summary = asyncio.run(controller.summarize())

        assert summary == "⚠️ Cannot connect to Ollama at http://gpu-box:11434. Is Ollama running?"
        assert controller.session.summary == summary
        assert controller.session.is_summarizing is False

    def test_service_error_message(self, settings, fake_recorder, fake_summarizer):
        """Test other failures become the raw message."""
        fake_summarizer.error = OllamaServiceError(500, "out of memory")
        controller = make_controller(settings, fake_recorder, fake_summarizer)

        assert asyncio.run(controller.summarize()) == "⚠️ Ollama error: 500 - out of memory"

    def test_stale_summary_discarded(self, settings, fake_recorder):
        """Test a slow earlier summary never replaces a newer one."""
        summarizer = StaleFirstSummarizer()
        controller = make_controller(settings, fake_recorder, summarizer)

        async def scenario():
            summarizer.release = asyncio.Event()
            first = asyncio.create_task(controller.summarize())
            await asyncio.sleep(0)
            second = await controller.summarize()
            summarizer.release.set()
            return second, await first

        second, first = asyncio.run(scenario())
        assert second == "fresh summary"
        assert first == "fresh summary"
        assert controller.session.summary == "fresh summary"
        assert controller.session.is_summarizing is False

    def test_export_json(self, settings, fake_recorder, fake_summarizer):
        """Test the controller export matches the session."""
        controller = make_controller(settings, fake_recorder, fake_summarizer)

        async def scenario():
            await controller.start()
            controller.handle_chunk(ChunkEvent(chunk=0, text="alpha"))
            controller.handle_chunk(ChunkEvent(chunk=1, text="beta"))
            await controller.stop()

        asyncio.run(scenario())
        data = json.loads(controller.export_json())
        assert data["metadata"]["chunks_count"] == 2
        assert data["metadata"]["duration"] == 10
        assert data["full_text"] == "alpha beta"
        assert controller.copy_text() == "alpha\n\nbeta"

    def test_export_empty_sets_error(self, settings, fake_recorder, fake_summarizer):
        """Test exporting an empty session is surfaced as an error."""
        controller = make_controller(settings, fake_recorder, fake_summarizer)

        assert controller.export_json() is None
        assert controller.session.error.startswith("Export failed: ")

    def test_save_export(self, settings, fake_recorder, fake_summarizer, temp_data_dir):
        """Test exports are written through the file manager."""
        file_manager = FileManager(temp_data_dir)
        controller = make_controller(settings, fake_recorder, fake_summarizer, file_manager=file_manager)

        async def scenario():
            await controller.start()
            controller.handle_chunk(ChunkEvent(chunk=0, text="saved words"))
            await controller.stop()

        asyncio.run(scenario())
        path = controller.save_export()

        assert path is not None
        assert json.loads(Path(path).read_text(encoding="utf-8"))["full_text"] == "saved words"
