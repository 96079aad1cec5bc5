"""File storage for LiveScribe."""

from .file_manager import FileManager

__all__ = ["FileManager"]
