"""Main application entry point for LiveScribe."""

import sys
import time
import signal
import asyncio
import argparse
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from rich.console import Console
from rich.live import Live

from . import __version__
from .config import LiveScribeConfig
from .recorder import RecorderEventPublisher, SegmentedRecorder, WhisperTranscriber
from .services import SessionController
from .storage import FileManager
from .summarization import OllamaClient, SummarizationError, TranscriptSummarizer
from .ui import render_status

logger = logging.getLogger(__name__)


class Server:

    def __init__(self, config_path: Optional[str], log_level: Optional[str] = None):
        # Load configuration
        self.config = LiveScribeConfig(config_path)
        # Set up logging (command line level wins over config)
        log_level = log_level or self.config.get('logging.level', 'INFO')
        setup_logging(self.config, log_level)
        self.console = Console()
        self.should_exit = False

    def init(self, overrides: Optional[Dict[str, Any]] = None):
        # Initialize services
        logger.info("Initializing services...")

        self.file_manager = FileManager(self.config.get_data_directory())
        self.settings_store = self.config.create_settings_store()
        self.settings = self.settings_store.load()
        if overrides:
            self.settings_store.update(self.settings, **overrides)

        whisper = self.config.get_whisper_paths()
        transcriber = WhisperTranscriber(
            binary_path=whisper["binary_path"],
            model_path=whisper["model_path"],
            threads=self.config.get('whisper.threads'),
        )
        self.publisher = RecorderEventPublisher()
        self.recorder = SegmentedRecorder(
            transcriber=transcriber,
            publisher=self.publisher,
            cache_dir=str(self.file_manager.live_session_dir()),
        )
        self.controller = SessionController(
            settings=self.settings,
            recorder=self.recorder,
            summarizer=TranscriptSummarizer(),
            file_manager=self.file_manager,
        )

        logger.info(f"Session settings: {self.settings.to_dict()}")

    def request_exit(self) -> None:
        logger.info("Exit requested")
        self.should_exit = True

    async def run(self, duration: Optional[int], export_path: Optional[str] = None) -> int:
        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, self.request_exit)
        except NotImplementedError:
            logger.debug("Signal handlers not supported on this platform")

        controller = self.controller
        controller.attach()
        events_task = asyncio.create_task(controller.run())
        try:
            if not await controller.start():
                self.console.print(f"[bold red]❌ {controller.session.error}[/bold red]")
                return 1

            deadline = time.monotonic() + duration if duration else None
            settle_seconds = self.config.get('recorder.settle_seconds', 3)

            with Live(render_status(controller.session, self.settings),
                      console=self.console, refresh_per_second=4) as live:
                while not self.should_exit:
                    if deadline is not None and time.monotonic() >= deadline:
                        break
                    await asyncio.sleep(0.25)
                    live.update(render_status(controller.session, self.settings))

                await controller.stop()
                await self.settle(settle_seconds)
                live.update(render_status(controller.session, self.settings))

            self._export(export_path)
            return 0
        finally:
            events_task.cancel()
            await asyncio.gather(events_task, return_exceptions=True)
            controller.detach()
            await self.recorder.close()

    async def settle(self, settle_seconds: float) -> None:
        """Wait for segments recorded before the stop, then refresh the auto summary."""
        controller = self.controller

        logger.info(f"Waiting {settle_seconds}s for pending transcriptions...")
        await asyncio.sleep(settle_seconds)

        late_chunks = controller.session.chunk_count - controller.summarized_chunks
        if self.settings.auto_summary and late_chunks > 0:
            logger.info(f"{late_chunks} chunks arrived after stop, summarizing again")
            await controller.summarize()

    def clear_cache(self) -> None:
        """Remove segment files left behind by earlier sessions."""
        file_manager = FileManager(self.config.get_data_directory())
        file_manager.clear_cache()
        self.console.print(f"🧹 Cleared {file_manager.cache_dir}")

    def _export(self, export_path: Optional[str]) -> None:
        controller = self.controller
        if not controller.session.transcript:
            self.console.print("Nothing recorded, skipping export")
            return

        if export_path or self.settings.use_file_export:
            saved = controller.save_export(export_path)
            if saved:
                self.console.print(f"✅ Transcript exported to {saved}")
            else:
                self.console.print(f"[bold red]❌ {controller.session.error}[/bold red]")
        else:
            content = controller.export_json()
            if content is not None:
                print(content)


def setup_logging(config, level: str = "INFO") -> None:

    """Set up logging configuration from YAML config."""
    # Get log file path from config
    log_file_path = config.get('logging.file_path', 'data/logs/livescribe.log')
    console_output = config.get('logging.console_output', True)

    # Create logs directory if it doesn't exist
    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    # Set up handlers
    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    # Console handler - only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)  # Only show warnings and above on console
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    # Log startup
    logger = logging.getLogger(__name__)
    logger.info("="*50)
    logger.info("LiveScribe application starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("="*50)


async def check_ollama(url: str, model: str) -> int:
    """Print the models available on the configured Ollama service."""
    try:
        models = await OllamaClient(url, model).list_models()
    except SummarizationError as e:
        print(f"❌ Cannot reach Ollama at {url}. Is it running? ({e})")
        return 1

    print(f"✅ Connected! Models: {', '.join(models) or 'none'}")
    if model and model not in models:
        print(f"   Model {model} not installed. Run: ollama pull {model}")
    return 0


def _settings_overrides(args) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if args.recorder:
        overrides["recorder_preference"] = args.recorder
    if args.segment_seconds is not None:
        overrides["segment_seconds"] = args.segment_seconds
    if args.auto_summary:
        overrides["auto_summary"] = True
    return overrides


def main() -> None:
    """Main entry point for LiveScribe application."""
    parser = argparse.ArgumentParser(
        description="LiveScribe - Live transcription with topics and summaries",
        epilog="Press Ctrl+C to stop recording"
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: livescribe.yaml)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: from config, else INFO)"
    )

    parser.add_argument(
        "--duration",
        type=int,
        help="Stop recording after this many seconds (default: until Ctrl+C)"
    )

    parser.add_argument(
        "--recorder",
        choices=["auto", "arecord", "ffmpeg"],
        help="Recorder to use (saved to settings)"
    )

    parser.add_argument(
        "--segment-seconds",
        type=int,
        help="Segment length in seconds, 5-60 (saved to settings)"
    )

    parser.add_argument(
        "--auto-summary",
        action="store_true",
        help="Summarize the transcript when recording stops (saved to settings)"
    )

    parser.add_argument(
        "--export",
        type=str,
        help="Write the JSON export to this path"
    )

    parser.add_argument(
        "--check-ollama",
        action="store_true",
        help="Check the connection to the Ollama service and exit"
    )

    parser.add_argument(
        "--clear-cache",
        action="store_true",
        help="Remove leftover recorder segment files and exit"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"LiveScribe v{__version__}"
    )

    args = parser.parse_args()

    try:
        server = Server(args.config, args.log_level)
        if args.check_ollama:
            settings = server.config.create_settings_store().load()
            sys.exit(asyncio.run(check_ollama(settings.ollama_url, settings.ollama_model)))
        if args.clear_cache:
            server.clear_cache()
            sys.exit(0)

        server.init(_settings_overrides(args))
        exit_code = asyncio.run(server.run(args.duration, args.export))
    except KeyboardInterrupt:
        print("\n👋 Goodbye!")
        exit_code = 0
    except Exception as e:
        print(f"❌ Error: {e}")
        logging.error(f"Application error: {e}")
        sys.exit(1)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
