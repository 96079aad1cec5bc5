"""Session settings with validated ranges, and their persistence."""

import logging
import math
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)


def _round_half_up(value: float) -> int:
    return int(math.floor(float(value) + 0.5))


class _Bounded:
    """Numeric setting clamped into its valid range on every write."""

    def __init__(self, minimum: Optional[float] = None, maximum: Optional[float] = None,
                 integer: bool = False, minimum_from: Optional[str] = None):
        self.minimum = minimum
        self.maximum = maximum
        self.integer = integer
        self.minimum_from = minimum_from

    def __set_name__(self, owner, name):
        self.name = name
        self.attr = f"_{name}"

    def __get__(self, obj, objtype=None):
        if obj is None:
            return self
        return getattr(obj, self.attr)

    def __set__(self, obj, value):
        value = _round_half_up(value) if self.integer else float(value)

        minimum = self.minimum
        if self.minimum_from:
            minimum = getattr(obj, self.minimum_from)
        if minimum is not None:
            value = max(minimum, value)
        if self.maximum is not None:
            value = min(self.maximum, value)

        setattr(obj, self.attr, value)


class SessionSettings:
    """Process-wide session settings.

    Numeric settings are clamped to their valid range whenever they are
    assigned, so a settings object never holds an out-of-range value.
    Reading a setting never validates or changes it.
    """

    DEFAULTS: Dict[str, Any] = {
        "min_chunks_per_topic": 2,
        "min_phrase_words": 2,
        "max_phrase_words": 6,
        "content_density": 0.6,
        "max_topics": 15,
        "use_file_export": True,
        "auto_summary": False,
        "ollama_url": "http://localhost:11434",
        "ollama_model": "phi3:mini",
        "llm_max_tokens": 256,
        "llm_temperature": 0.7,
        "recorder_preference": "auto",
        "segment_seconds": 5,
    }

    RECORDER_PREFERENCES = ("auto", "arecord", "ffmpeg")

    min_chunks_per_topic = _Bounded(minimum=1, integer=True)
    min_phrase_words = _Bounded(minimum=1, integer=True)
    max_phrase_words = _Bounded(integer=True, minimum_from="min_phrase_words")
    content_density = _Bounded(minimum=0.1, maximum=0.95)
    max_topics = _Bounded(minimum=5, integer=True)
    llm_max_tokens = _Bounded(minimum=64, integer=True)
    llm_temperature = _Bounded(minimum=0.0, maximum=1.5)
    segment_seconds = _Bounded(minimum=5, maximum=60, integer=True)

    def __init__(self, **overrides: Any):
        values = dict(self.DEFAULTS)
        for key, value in overrides.items():
            if key not in self.DEFAULTS:
                logger.warning(f"Ignoring unknown setting: {key}")
                continue
            values[key] = value

        # DEFAULTS order matters: min_phrase_words before max_phrase_words
        for key in self.DEFAULTS:
            setattr(self, key, values[key])

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "SessionSettings":
        return cls(**(data or {}))

    def to_dict(self) -> Dict[str, Any]:
        return {key: getattr(self, key) for key in self.DEFAULTS}

    def update(self, **changes: Any) -> None:
        """Assign several settings at once (each one clamped)."""
        for key, value in changes.items():
            if key not in self.DEFAULTS:
                raise KeyError(f"Unknown setting: {key}")
            setattr(self, key, value)

    def __eq__(self, other) -> bool:
        if not isinstance(other, SessionSettings):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"SessionSettings({self.to_dict()!r})"


class SettingsStore:
    """Loads session settings at start-up and saves them on every change."""

    def __init__(self, path: str, defaults: Optional[Dict[str, Any]] = None):
        """Initialize settings store.

        Args:
            path: YAML file holding the flat settings mapping
            defaults: Values used for keys missing from the file
        """
        self.path = Path(path)
        self.defaults = dict(defaults or {})

    def load(self) -> SessionSettings:
        """Load settings, falling back to defaults when the file is missing or unreadable."""
        data: Dict[str, Any] = dict(self.defaults)

        if self.path.exists():
            try:
                with open(self.path, 'r', encoding='utf-8') as f:
                    stored = yaml.safe_load(f) or {}
                if isinstance(stored, dict):
                    data.update(stored)
                else:
                    logger.warning(f"Settings file {self.path} is not a mapping, using defaults")
            except (OSError, yaml.YAMLError) as e:
                logger.error(f"Error loading settings from {self.path}: {e}")

        settings = SessionSettings.from_dict(data)
        logger.info(f"Session settings loaded: {settings.to_dict()}")
        return settings

    def save(self, settings: SessionSettings) -> None:
        """Write settings to the store file."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(settings.to_dict(), f, default_flow_style=False, sort_keys=False)
        logger.debug(f"Session settings saved to {self.path}")

    def update(self, settings: SessionSettings, **changes: Any) -> SessionSettings:
        """Apply changes to settings and persist them.

        Args:
            settings: Settings object to modify in place
            **changes: Setting names and new values

        Returns:
            The same settings object, after clamping
        """
        settings.update(**changes)
        self.save(settings)
        return settings
