"""
Narration Data Models

Enumerations, settings and result types shared by the narration pipeline.
"""

import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, Dict, Iterator, List, Optional

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .exceptions import ConfigurationError, ValidationError

TRANSCRIPT_SIZE = 10
AUTO_INTERVALS_MS = (2000, 4000, 8000)
SPEECH_RATE_RANGE = (0.5, 2.0)


class Mode(str, Enum):
    GENERAL = "general"
    TEXT = "text"
    SOCIAL = "social"
    NAVIGATION = "navigation"
    SHOPPING = "shopping"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ")


class Verbosity(str, Enum):
    MINIMAL = "minimal"
    STANDARD = "standard"
    DETAILED = "detailed"


class Priority(str, Enum):
    URGENT = "urgent"
    NORMAL = "normal"


def resolve_mode(value: Optional[str] = None) -> Mode:
    """Mode named by ``value``, or by AV_MODE when ``value`` is empty."""
    if isinstance(value, Mode):
        return value
    if not value:
        from .config import config
        value = config.get("AV_MODE", "general")
    try:
        return Mode(value.strip().lower())
    except ValueError as e:
        raise ConfigurationError(f"Unknown mode: {value}") from e


@dataclass(frozen=True)
class NarrationResult:
    """One analysed frame, as spoken and shown in the transcript."""
    text: str
    priority: Priority = Priority.NORMAL
    timestamp: float = field(default_factory=time.time)

    @property
    def is_urgent(self) -> bool:
        return self.priority is Priority.URGENT

    def to_dict(self) -> Dict:
        return {
            "text": self.text,
            "priority": self.priority.value,
            "timestamp": self.timestamp,
        }


class NarrationSettings(BaseModel):
    """User settings read by the scheduler and the speech arbiter.

    Immutable: every change produces a new value via ``with_changes``.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    verbosity: Verbosity = Verbosity.STANDARD
    speech_rate: float = Field(default=1.0, ge=SPEECH_RATE_RANGE[0], le=SPEECH_RATE_RANGE[1])
    auto_narration: bool = False
    auto_interval_ms: int = 4000

    @field_validator("auto_interval_ms")
    @classmethod
    def _check_interval(cls, value: int) -> int:
        if value not in AUTO_INTERVALS_MS:
            raise ValueError(f"auto_interval_ms must be one of {AUTO_INTERVALS_MS}")
        return value

    @property
    def auto_interval(self) -> float:
        """Auto-narration period in seconds."""
        return self.auto_interval_ms / 1000.0

    def with_changes(self, **changes) -> "NarrationSettings":
        """Return a validated copy with ``changes`` applied."""
        return self.create(**{**self.model_dump(), **changes})

    @classmethod
    def create(cls, **values) -> "NarrationSettings":
        """Build settings, raising our ValidationError on bad input."""
        try:
            return cls(**values)
        except pydantic.ValidationError as e:
            raise ValidationError(str(e)) from e

    @classmethod
    def from_env(cls) -> "NarrationSettings":
        """Load from environment/.env"""
        from .config import config

        return cls.create(
            verbosity=config.get("AV_VERBOSITY", "standard").lower(),
            speech_rate=config.get_float("AV_SPEECH_RATE", 1.0),
            auto_narration=config.get_bool("AV_AUTO_NARRATION"),
            auto_interval_ms=config.get_int("AV_AUTO_INTERVAL_MS", 4000),
        )


class TranscriptLog:
    """Rolling narration history, newest first, capped at ``maxlen``."""

    def __init__(self, maxlen: int = TRANSCRIPT_SIZE):
        self._entries: Deque[NarrationResult] = deque(maxlen=maxlen)

    def add(self, result: NarrationResult) -> None:
        # appendleft on a bounded deque evicts from the right (oldest)
        self._entries.appendleft(result)

    @property
    def latest(self) -> Optional[NarrationResult]:
        return self._entries[0] if self._entries else None

    @property
    def maxlen(self) -> int:
        return self._entries.maxlen

    def entries(self) -> List[NarrationResult]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __iter__(self) -> Iterator[NarrationResult]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)
