"""Adaptive end-of-run threshold."""

from __future__ import annotations

import math

from .types import NANOS_PER_SECOND, RechunkerConfig

# math.exp overflows just above 709
_MAX_EXPONENT = 700.0


class DecayingEndThresholdCalculator:
    """
    End threshold that moves exponentially from `end_threshold` toward the
    run's own average probability, reaching it around `max_duration`.

        V = (window_sum + before_window_sum) / (duration_in_voice + time_before_speech)
        k = decay_factor * ln(V / end_threshold) / max_duration
        threshold(t) = end_threshold * e^(k * t)

    A run averaging above `end_threshold` gets a rising cutoff (tolerates brief
    dips mid-sentence); a run averaging below it gets a falling one.
    """

    def __init__(self, config: RechunkerConfig):
        self._end_threshold = config.end_threshold
        self._decay_factor = config.decay_factor
        self._max_duration_s = config.max_duration_ns / NANOS_PER_SECOND
        self._time_before_speech_s = config.time_before_speech_ns / NANOS_PER_SECOND

    def voice_average(self, probability_mass: float, duration_in_voice_s: float) -> float:
        """Lifetime average probability of the current run, lead-in included."""
        denominator = duration_in_voice_s + self._time_before_speech_s
        if denominator <= 0:
            return 0.0
        return probability_mass / denominator

    def threshold(self, probability_mass: float, duration_in_voice_s: float) -> float:
        if duration_in_voice_s == 0:
            return self._end_threshold

        voice_average = self.voice_average(probability_mass, duration_in_voice_s)
        if voice_average <= 0:
            # ln(0+) -> -inf, so the threshold collapses to zero
            return 0.0

        k = self._decay_factor * math.log(voice_average / self._end_threshold) / self._max_duration_s
        exponent = k * duration_in_voice_s
        if exponent > _MAX_EXPONENT:
            return math.inf
        return self._end_threshold * math.exp(exponent)
