"""Silero VAD-based voice activity probability annotation."""

from __future__ import annotations

import logging

import numpy as np
import torch
from silero_vad import load_silero_vad

from ..rechunker.types import Frame, ProbabilityAnnotatedFrame
from .types import DetectorConfig

logger = logging.getLogger(__name__)


class SileroProbabilityDetector:
    """
    Assigns each frame the speech probability reported by Silero VAD.

    Silero scores fixed windows (512 samples at 16 kHz, 256 at 8 kHz), so audio is
    mixed down to mono and carried across frames until a whole window is available.
    A frame that completes no window reuses the last known probability.
    """

    def __init__(self, cfg: DetectorConfig = DetectorConfig()):
        """
        Initialize SileroProbabilityDetector.

        Args:
            cfg: Detector configuration
        """
        self._cfg = cfg
        self._carry = np.array([], dtype=np.float32)
        self._carry_rate: int | None = None
        self._last_probability = 0.0

        # Model initialization - load immediately, fail fast if not available
        self._model = load_silero_vad(onnx=cfg.onnx)

    @staticmethod
    def window_size(sample_rate: int) -> int:
        """Samples per Silero window at the given rate."""
        if sample_rate == 8000:
            return 256
        if sample_rate % 16000 == 0:
            # Silero decimates multiples of 16 kHz itself
            return 512 * (sample_rate // 16000)
        raise ValueError(f"Unsupported sample rate for Silero VAD: {sample_rate}")

    def _mono(self, frame: Frame) -> np.ndarray:
        if frame.channel_count == 1:
            return frame.samples.astype(np.float32, copy=False)
        return frame.samples.reshape(-1, frame.channel_count).mean(axis=1).astype(np.float32)

    def _score(self, window: np.ndarray, sample_rate: int) -> float:
        return float(self._model(torch.from_numpy(window), sample_rate).item())

    def annotate(self, frame: Frame) -> ProbabilityAnnotatedFrame:
        """Score a frame; returns it paired with its voice-activity probability."""
        size = self.window_size(frame.sample_rate)
        if self._carry_rate != frame.sample_rate:
            self.reset()
            self._carry_rate = frame.sample_rate

        self._carry = np.concatenate([self._carry, self._mono(frame)])

        scores = []
        while len(self._carry) >= size:
            window = self._carry[:size]
            self._carry = self._carry[size:]
            scores.append(self._score(window, frame.sample_rate))

        if scores:
            self._last_probability = float(np.mean(scores))

        return ProbabilityAnnotatedFrame(frame=frame, probability=self._last_probability)

    def reset(self) -> None:
        """Forget carried audio and model state (new stream or format)."""
        self._carry = np.array([], dtype=np.float32)
        self._carry_rate = None
        self._last_probability = 0.0
        self._model.reset_states()
