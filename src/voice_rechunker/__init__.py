"""Voice-activity-gated audio rechunking and live transcription."""

from .rechunker import (
    ChunkReason,
    ConfigurationError,
    Frame,
    InvalidFrameError,
    OutputChunk,
    ProbabilityAnnotatedFrame,
    RechunkerConfig,
    RunState,
    VoiceActivityRechunker,
    arechunk,
    rechunk,
)

__version__ = "0.1.0"

__all__ = [
    "ChunkReason",
    "ConfigurationError",
    "Frame",
    "InvalidFrameError",
    "OutputChunk",
    "ProbabilityAnnotatedFrame",
    "RechunkerConfig",
    "RunState",
    "VoiceActivityRechunker",
    "arechunk",
    "rechunk",
]
