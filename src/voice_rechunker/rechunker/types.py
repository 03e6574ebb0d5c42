"""Rechunker data types and configuration."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

import numpy as np

NANOS_PER_SECOND = 1_000_000_000
NANOS_PER_MS = 1_000_000


class ConfigurationError(ValueError):
    """Raised when a rechunker configuration cannot be used."""


class InvalidFrameError(ValueError):
    """Raised when an upstream frame has no usable duration or probability."""


class RunState(Enum):
    """Rechunker run state."""
    IDLE = auto()    # Collecting pre-roll, waiting for speech
    IN_RUN = auto()  # Buffering a detected utterance


class ChunkReason(Enum):
    """Why a chunk was emitted."""
    END_THRESHOLD = auto()  # Window average fell below the decaying end threshold
    MAX_DURATION = auto()   # Voice run exceeded max_duration
    FLUSH = auto()          # Caller forced emission
    END_OF_STREAM = auto()  # Upstream ended mid-run


@dataclass(frozen=True)
class Frame:
    """Interleaved float audio samples with their format."""
    samples: np.ndarray  # shape: (sample_count,) float32, interleaved
    channel_count: int = 1
    sample_rate: int = 16000

    @property
    def sample_count(self) -> int:
        return int(self.samples.size)

    @property
    def duration_ns(self) -> int:
        """Frame duration in whole nanoseconds (0 if the format is unusable)."""
        if self.sample_rate <= 0 or self.channel_count <= 0:
            return 0
        return self.sample_count * NANOS_PER_SECOND // (self.sample_rate * self.channel_count)

    @property
    def duration_s(self) -> float:
        return self.duration_ns / NANOS_PER_SECOND

    def same_format(self, other: "Frame") -> bool:
        return self.channel_count == other.channel_count and self.sample_rate == other.sample_rate


@dataclass(frozen=True)
class ProbabilityAnnotatedFrame:
    """A frame paired with the voice-activity probability assigned by a detector."""
    frame: Frame
    probability: float

    @property
    def duration_ns(self) -> int:
        return self.frame.duration_ns

    def validated(self) -> "ProbabilityAnnotatedFrame":
        """
        Return a frame safe to feed into window accounting.

        Raises:
            InvalidFrameError: zero duration or a non-finite probability.
        """
        if self.frame.duration_ns <= 0:
            raise InvalidFrameError(
                f"frame has no duration (samples={self.frame.sample_count}, "
                f"channels={self.frame.channel_count}, rate={self.frame.sample_rate})"
            )
        if self.frame.sample_count % self.frame.channel_count != 0:
            raise InvalidFrameError(
                f"{self.frame.sample_count} samples do not divide into {self.frame.channel_count} channels"
            )
        if not math.isfinite(self.probability):
            raise InvalidFrameError(f"probability is not finite: {self.probability}")
        if 0.0 <= self.probability <= 1.0:
            return self
        return ProbabilityAnnotatedFrame(frame=self.frame, probability=min(1.0, max(0.0, self.probability)))


@dataclass(frozen=True)
class OutputChunk:
    """One emitted utterance buffer."""
    samples: np.ndarray  # concatenated interleaved float32 samples
    channel_count: int
    sample_rate: int
    duration_in_voice_ns: int = 0
    reason: Optional[ChunkReason] = None

    @property
    def duration_ns(self) -> int:
        return self.samples.size * NANOS_PER_SECOND // (self.sample_rate * self.channel_count)

    @property
    def duration_s(self) -> float:
        return self.duration_ns / NANOS_PER_SECOND

    def mono(self) -> np.ndarray:
        """Mix interleaved samples down to one channel."""
        if self.channel_count == 1:
            return self.samples
        return self.samples.reshape(-1, self.channel_count).mean(axis=1).astype(np.float32)


@dataclass(frozen=True)
class RechunkerConfig:
    """Voice-activity rechunking configuration (durations in milliseconds)."""
    start_threshold: float = 0.6
    start_window_ms: float = 250
    end_threshold: float = 0.3
    end_window_ms: float = 100
    time_before_speech_ms: float = 750
    max_duration_ms: float = 10000
    decay_factor: float = 3.0

    def __post_init__(self) -> None:
        for name in (
            "start_threshold", "start_window_ms", "end_threshold", "end_window_ms",
            "time_before_speech_ms", "max_duration_ms", "decay_factor",
        ):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or not math.isfinite(value):
                raise ConfigurationError(f"{name} must be a finite number, got {value!r}")

        if not 0.0 <= self.start_threshold <= 1.0:
            raise ConfigurationError(f"start_threshold must be in [0, 1], got {self.start_threshold}")
        # end_threshold is a divisor inside ln(V / end_threshold)
        if not 0.0 < self.end_threshold <= 1.0:
            raise ConfigurationError(f"end_threshold must be in (0, 1], got {self.end_threshold}")
        for name in ("start_window_ms", "end_window_ms", "time_before_speech_ms", "max_duration_ms"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive, got {getattr(self, name)}")
        if self.decay_factor <= 0:
            raise ConfigurationError(f"decay_factor must be positive, got {self.decay_factor}")

    @property
    def start_window_ns(self) -> int:
        return round(self.start_window_ms * NANOS_PER_MS)

    @property
    def end_window_ns(self) -> int:
        return round(self.end_window_ms * NANOS_PER_MS)

    @property
    def time_before_speech_ns(self) -> int:
        return round(self.time_before_speech_ms * NANOS_PER_MS)

    @property
    def max_duration_ns(self) -> int:
        return round(self.max_duration_ms * NANOS_PER_MS)


@dataclass
class RechunkerStats:
    """Duration accounting for one rechunker session."""
    input_ns: int = 0
    emitted_ns: int = 0
    discarded_ns: int = 0
    rejected_frames: int = 0
    chunks_emitted: int = 0
