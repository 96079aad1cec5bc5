"""Services layer for LiveScribe application logic."""

from .session_controller import SessionController
from .export_service import ExportError, build_export, export_json, transcript_text

__all__ = [
    "SessionController",
    "ExportError",
    "build_export",
    "export_json",
    "transcript_text",
]
