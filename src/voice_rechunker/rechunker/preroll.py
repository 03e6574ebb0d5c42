"""Frame buffer holding pre-roll while idle and the voice run once speech starts."""

from __future__ import annotations

from collections import deque
from typing import Optional

import numpy as np

from .types import Frame


class PreRollBuffer:
    """
    Single frame buffer shared by pre-roll and voice run.

    While idle, frames are trimmed from the front (whole frames only) once the
    idle portion reaches `time_before_speech_ns`. When a run starts the buffer
    is kept as is and becomes the head of the utterance.
    """

    def __init__(self, time_before_speech_ns: int):
        self._time_before_speech_ns = time_before_speech_ns
        self._frames: deque[Frame] = deque()
        self._idle_ns = 0
        self._buffered_ns = 0

    def append(self, frame: Frame) -> None:
        self._frames.append(frame)
        self._buffered_ns += frame.duration_ns

    def append_idle(self, frame: Frame) -> int:
        """
        Append an idle frame and trim stale lead-in.

        Returns:
            Duration in nanoseconds of the frames trimmed from the front.
        """
        self.append(frame)
        self._idle_ns += frame.duration_ns
        return self.trim()

    def trim(self) -> int:
        trimmed_ns = 0
        while self._frames and self._idle_ns >= self._time_before_speech_ns:
            stale = self._frames.popleft()
            self._idle_ns -= stale.duration_ns
            self._buffered_ns -= stale.duration_ns
            trimmed_ns += stale.duration_ns
        return trimmed_ns

    @property
    def idle_ns(self) -> int:
        """Buffered duration accumulated while idle."""
        return self._idle_ns

    @property
    def buffered_ns(self) -> int:
        return self._buffered_ns

    @property
    def format_frame(self) -> Optional[Frame]:
        """Oldest buffered frame, which fixes the buffer's channel count and sample rate."""
        return self._frames[0] if self._frames else None

    def __len__(self) -> int:
        return len(self._frames)

    def drain(self) -> np.ndarray:
        """Concatenate every buffered frame and empty the buffer."""
        if self._frames:
            samples = np.concatenate([f.samples for f in self._frames]).astype(np.float32, copy=False)
        else:
            samples = np.array([], dtype=np.float32)
        self.clear()
        return samples

    def clear(self) -> int:
        """Drop every buffered frame; returns the dropped duration in nanoseconds."""
        dropped_ns = self._buffered_ns
        self._frames.clear()
        self._idle_ns = 0
        self._buffered_ns = 0
        return dropped_ns
