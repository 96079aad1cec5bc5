"""LiveScribe - live transcription sessions with topics and summaries."""

__version__ = "0.1.0"
