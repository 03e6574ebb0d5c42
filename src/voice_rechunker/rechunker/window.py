"""Trailing time-window average of voice-activity probabilities."""

from __future__ import annotations

import math
from collections import deque

from .types import NANOS_PER_SECOND


class RollingWindowAccumulator:
    """
    Keeps (probability, duration) samples covering a trailing time window.

    Samples are appended on the right and evicted from the left after each
    insertion, against whatever horizon the caller passes for that insertion.
    Probability mass evicted while a voice run is active is kept in
    `before_window_sum` so the run's lifetime average stays recoverable.

    The window average is summed exactly (math.fsum) over retained samples, so
    a constant probability averages to exactly that probability and strict
    threshold comparisons are not flipped by accumulated rounding.
    """

    def __init__(self):
        self._samples: deque[tuple[float, int]] = deque()
        self._duration_ns = 0
        self._observed_ns = 0
        self.before_window_sum = 0.0

    def add(self, probability: float, duration_ns: int, target_window_ns: int, in_run: bool = False) -> None:
        """
        Append a sample and evict the oldest ones while the window exceeds its horizon.

        The newest sample is never evicted, so the window may exceed the horizon
        by at most one sample's duration.
        """
        self._samples.append((probability, duration_ns))
        self._duration_ns += duration_ns
        self._observed_ns += duration_ns

        while self._duration_ns > target_window_ns and len(self._samples) > 1:
            self._evict_oldest(in_run)

    def _evict_oldest(self, in_run: bool) -> None:
        probability, duration_ns = self._samples.popleft()
        if in_run:
            self.before_window_sum += probability * duration_ns / NANOS_PER_SECOND
        self._duration_ns -= duration_ns

    def _weighted_sum_ns(self) -> float:
        return math.fsum(p * d for p, d in self._samples)

    def average(self) -> float:
        """Duration-weighted mean probability of retained samples (NaN when empty)."""
        if self._duration_ns == 0:
            return float("nan")
        return self._weighted_sum_ns() / self._duration_ns

    @property
    def window_sum(self) -> float:
        """Probability mass (probability x seconds) of retained samples."""
        return self._weighted_sum_ns() / NANOS_PER_SECOND

    @property
    def duration_ns(self) -> int:
        return self._duration_ns

    @property
    def observed_ns(self) -> int:
        """Total duration added since the window was last cleared."""
        return self._observed_ns

    def __len__(self) -> int:
        return len(self._samples)

    def reset_run(self) -> None:
        """Forget mass evicted during a previous run."""
        self.before_window_sum = 0.0

    def clear(self) -> None:
        self._samples.clear()
        self._duration_ns = 0
        self._observed_ns = 0
        self.before_window_sum = 0.0
