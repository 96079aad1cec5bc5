"""File management module for session exports and recorder scratch space."""

import logging
import shutil
import time
from pathlib import Path
from typing import Optional

from ..services.export_service import ExportError

logger = logging.getLogger(__name__)


class FileManager:
    """Manages file storage for exported transcripts, logs and live segments."""

    def __init__(self, data_dir: str = "./data"):
        """Initialize file manager with data directory.

        Args:
            data_dir: Base directory for storing all data
        """
        self.data_dir = Path(data_dir)
        self.exports_dir = self.data_dir / "exports"
        self.logs_dir = self.data_dir / "logs"
        self.cache_dir = self.data_dir / "cache"

        # Create directory structure
        self._ensure_directories()

        logger.info(f"FileManager initialized with data_dir: {self.data_dir}")

    def _ensure_directories(self) -> None:
        """Ensure all required directories exist."""
        for directory in [self.data_dir, self.exports_dir, self.logs_dir, self.cache_dir]:
            directory.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Ensured directory exists: {directory}")

    def live_session_dir(self) -> Path:
        """Scratch directory the recorder writes live segments into."""
        return self.cache_dir / "live-session"

    def default_export_name(self) -> str:
        """Export file name stamped with the current time in milliseconds."""
        return f"transcript-{int(time.time() * 1000)}.json"

    def save_export(self, content: str, path: Optional[str] = None) -> str:
        """Write an export document to disk.

        Args:
            content: Serialized export JSON
            path: Destination file; defaults to a timestamped file in exports/

        Returns:
            Full path to the saved file

        Raises:
            ExportError: If the file cannot be written
        """
        export_path = Path(path) if path else self.exports_dir / self.default_export_name()

        try:
            export_path.parent.mkdir(parents=True, exist_ok=True)
            with open(export_path, 'w', encoding='utf-8') as f:
                f.write(content)
        except OSError as e:
            logger.error(f"Error saving export: {e}")
            raise ExportError(f"Failed to write {export_path}: {e}")

        logger.info(f"Export saved: {export_path} ({len(content)} chars)")
        return str(export_path)

    def clear_cache(self) -> None:
        """Remove recorder scratch files left by earlier sessions."""
        shutil.rmtree(self.cache_dir, ignore_errors=True)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
