"""Transcription events published to session subscribers."""

from dataclasses import dataclass, fields
from typing import Any, Dict, Optional


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


@dataclass(frozen=True)
class TranscriptionEvent:
    """Base class; `to_dict()` gives the tagged wire form {"event": ..., "data": {...}}."""

    @property
    def event(self) -> str:
        name = type(self).__name__
        return name[0].lower() + name[1:]

    def to_dict(self) -> Dict[str, Any]:
        data = {_camel(f.name): getattr(self, f.name) for f in fields(self)}
        return {"event": self.event, "data": data}


@dataclass(frozen=True)
class Starting(TranscriptionEvent):
    """Transcriber model is being loaded."""


@dataclass(frozen=True)
class LoadingProgress(TranscriptionEvent):
    progress: float  # 0.0 to 1.0


@dataclass(frozen=True)
class TranscriptionStarted(TranscriptionEvent):
    device_id: int


@dataclass(frozen=True)
class TranscriptionData(TranscriptionEvent):
    device_id: int
    text: str
    confidence: Optional[float]
    duration_s: float = 0.0


@dataclass(frozen=True)
class Error(TranscriptionEvent):
    message: str


@dataclass(frozen=True)
class Stopped(TranscriptionEvent):
    """All device pipelines were stopped."""
