"""Voice-activity-gated audio rechunking."""

from .types import (
    ChunkReason,
    ConfigurationError,
    Frame,
    InvalidFrameError,
    OutputChunk,
    ProbabilityAnnotatedFrame,
    RechunkerConfig,
    RechunkerStats,
    RunState,
)
from .window import RollingWindowAccumulator
from .preroll import PreRollBuffer
from .threshold import DecayingEndThresholdCalculator
from .state_machine import VoiceActivityRechunker
from .stream import rechunk, arechunk

__all__ = [
    "ChunkReason",
    "ConfigurationError",
    "Frame",
    "InvalidFrameError",
    "OutputChunk",
    "ProbabilityAnnotatedFrame",
    "RechunkerConfig",
    "RechunkerStats",
    "RunState",
    "RollingWindowAccumulator",
    "PreRollBuffer",
    "DecayingEndThresholdCalculator",
    "VoiceActivityRechunker",
    "rechunk",
    "arechunk",
]
