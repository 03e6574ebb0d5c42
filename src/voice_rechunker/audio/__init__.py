"""Audio subsystem: capture, voice-activity annotation, rechunking and transcription.

Mic, SileroProbabilityDetector and ASR are imported from their modules directly
so that importing this package does not load sounddevice, torch or faster-whisper.
"""

from .types import AudioFormat, FrameConfig, DetectorConfig, SegmenterConfig, TranscriberConfig
from .segmenter import RechunkerWorker, Utterance, ProbabilityDetector

__all__ = [
    "AudioFormat",
    "FrameConfig",
    "DetectorConfig",
    "SegmenterConfig",
    "TranscriberConfig",
    "RechunkerWorker",
    "Utterance",
    "ProbabilityDetector",
]
