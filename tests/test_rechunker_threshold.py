"""Tests for DecayingEndThresholdCalculator."""

import math

import pytest

from voice_rechunker.rechunker.threshold import DecayingEndThresholdCalculator
from voice_rechunker.rechunker.types import RechunkerConfig


class TestDecayingEndThreshold:
    @pytest.fixture
    def calculator(self, default_config):
        return DecayingEndThresholdCalculator(default_config)

    def test_base_case_is_exactly_end_threshold(self, calculator):
        assert calculator.threshold(probability_mass=0.5, duration_in_voice_s=0.0) == 0.3

    def test_voice_average_includes_pre_roll_in_denominator(self, calculator):
        # 0.9 probability for 0.25 s of voice + 0.75 s of configured lead-in
        assert calculator.voice_average(0.9, 0.25) == pytest.approx(0.9)

    def test_rises_when_run_average_is_above_end_threshold(self, calculator):
        mass = 0.9 * 1.75  # run average 0.9 over 1 s voice + 0.75 s lead-in
        threshold = calculator.threshold(mass, 1.0)
        expected_k = 3.0 * math.log(0.9 / 0.3) / 10.0
        assert threshold == pytest.approx(0.3 * math.exp(expected_k * 1.0))
        assert threshold > 0.3

    def test_falls_when_run_average_is_below_end_threshold(self, calculator):
        mass = 0.1 * 1.75
        assert calculator.threshold(mass, 1.0) < 0.3

    def test_flat_when_run_average_equals_end_threshold(self, calculator):
        mass = 0.3 * 2.75
        assert calculator.threshold(mass, 2.0) == pytest.approx(0.3)

    def test_reaches_run_average_at_max_duration_with_unit_decay(self):
        calculator = DecayingEndThresholdCalculator(RechunkerConfig(decay_factor=1.0, max_duration_ms=2000))
        mass = 0.8 * (2.0 + 0.75)
        assert calculator.threshold(mass, 2.0) == pytest.approx(0.8)

    def test_zero_mass_does_not_take_log_of_zero(self, calculator):
        assert calculator.threshold(0.0, 0.5) == 0.0
        assert calculator.threshold(0.0, 0.0) == 0.3

    def test_huge_exponent_saturates(self):
        cfg = RechunkerConfig(end_threshold=1e-9, decay_factor=1e6, max_duration_ms=1)
        calculator = DecayingEndThresholdCalculator(cfg)
        assert calculator.threshold(1.0, 5.0) == math.inf
