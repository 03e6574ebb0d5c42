"""Audio subsystem data types and configuration."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..rechunker.types import RechunkerConfig


@dataclass(frozen=True)
class AudioFormat:
    """Audio capture format."""
    sample_rate: int = 16000
    channels: int = 1
    dtype: str = "float32"  # sounddevice dtype name


@dataclass(frozen=True)
class FrameConfig:
    """Frame-level audio processing configuration."""
    frame_ms: int = 32  # 512 samples at 16 kHz, one Silero window
    max_frames_queue: int = 400


@dataclass(frozen=True)
class DetectorConfig:
    """Silero voice-activity detector configuration."""
    onnx: bool = True
    sample_rate: int = 16000  # Silero supports 8000 and 16000


@dataclass(frozen=True)
class SegmenterConfig:
    """Rechunking worker configuration."""
    rechunker: RechunkerConfig = field(default_factory=RechunkerConfig)
    flush_on_stop: bool = False
    max_utterances_queue: int = 20


@dataclass(frozen=True)
class TranscriberConfig:
    """faster-whisper transcriber configuration."""
    model_size: str = "base"
    device: str = "cpu"
    compute_type: str = "default"
    language: str | None = None  # None = auto-detect
