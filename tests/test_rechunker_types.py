"""Tests for rechunker data types and configuration validation."""

import math

import numpy as np
import pytest

from voice_rechunker.rechunker.types import (
    ConfigurationError,
    Frame,
    InvalidFrameError,
    OutputChunk,
    ProbabilityAnnotatedFrame,
    RechunkerConfig,
)


class TestFrame:
    def test_duration_of_mono_frame(self):
        frame = Frame(samples=np.zeros(1600, dtype=np.float32), channel_count=1, sample_rate=16000)
        assert frame.duration_ns == 100_000_000
        assert frame.duration_s == pytest.approx(0.1)

    def test_duration_counts_interleaved_channels(self):
        frame = Frame(samples=np.zeros(3200, dtype=np.float32), channel_count=2, sample_rate=16000)
        assert frame.duration_ns == 100_000_000

    def test_unusable_format_has_zero_duration(self):
        frame = Frame(samples=np.zeros(1600, dtype=np.float32), channel_count=1, sample_rate=0)
        assert frame.duration_ns == 0

    def test_same_format(self):
        a = Frame(samples=np.zeros(10, dtype=np.float32), channel_count=1, sample_rate=16000)
        b = Frame(samples=np.ones(20, dtype=np.float32), channel_count=1, sample_rate=16000)
        c = Frame(samples=np.ones(20, dtype=np.float32), channel_count=2, sample_rate=16000)
        assert a.same_format(b)
        assert not a.same_format(c)


class TestAnnotatedFrameValidation:
    def test_valid_frame_is_returned_unchanged(self, frame_factory):
        annotated = frame_factory(0.4)
        assert annotated.validated() is annotated

    def test_empty_frame_is_rejected(self):
        annotated = ProbabilityAnnotatedFrame(
            frame=Frame(samples=np.array([], dtype=np.float32)), probability=0.5
        )
        with pytest.raises(InvalidFrameError):
            annotated.validated()

    def test_partial_multichannel_frame_is_rejected(self):
        annotated = ProbabilityAnnotatedFrame(
            frame=Frame(samples=np.zeros(1601, dtype=np.float32), channel_count=2), probability=0.5
        )
        with pytest.raises(InvalidFrameError):
            annotated.validated()

    def test_nan_probability_is_rejected(self, frame_factory):
        annotated = ProbabilityAnnotatedFrame(frame=frame_factory(0.5).frame, probability=math.nan)
        with pytest.raises(InvalidFrameError):
            annotated.validated()

    @pytest.mark.parametrize("probability, expected", [(1.5, 1.0), (-0.2, 0.0)])
    def test_out_of_range_probability_is_clamped(self, frame_factory, probability, expected):
        annotated = ProbabilityAnnotatedFrame(frame=frame_factory(0.5).frame, probability=probability)
        assert annotated.validated().probability == expected


class TestOutputChunk:
    def test_mono_mixdown(self):
        samples = np.array([0.0, 1.0, 0.5, 0.5], dtype=np.float32)
        chunk = OutputChunk(samples=samples, channel_count=2, sample_rate=16000)
        np.testing.assert_allclose(chunk.mono(), [0.5, 0.5])

    def test_duration(self):
        chunk = OutputChunk(samples=np.zeros(8000, dtype=np.float32), channel_count=1, sample_rate=16000)
        assert chunk.duration_s == pytest.approx(0.5)


class TestRechunkerConfig:
    def test_defaults_match_desktop_application(self):
        cfg = RechunkerConfig()
        assert cfg.start_threshold == 0.6
        assert cfg.start_window_ms == 250
        assert cfg.end_threshold == 0.3
        assert cfg.end_window_ms == 100
        assert cfg.time_before_speech_ms == 750
        assert cfg.max_duration_ms == 10000
        assert cfg.decay_factor == 3.0

    def test_nanosecond_conversions(self):
        cfg = RechunkerConfig(start_window_ms=250, max_duration_ms=1500.5)
        assert cfg.start_window_ns == 250_000_000
        assert cfg.max_duration_ns == 1_500_500_000

    @pytest.mark.parametrize("value", [0, -1])
    def test_pre_roll_must_be_positive(self, value):
        with pytest.raises(ConfigurationError, match="time_before_speech_ms"):
            RechunkerConfig(time_before_speech_ms=value)

    @pytest.mark.parametrize("overrides", [
        {"start_threshold": 1.2},
        {"start_threshold": -0.1},
        {"end_threshold": 0.0},
        {"end_threshold": 1.01},
        {"start_window_ms": 0},
        {"end_window_ms": -5},
        {"max_duration_ms": 0},
        {"time_before_speech_ms": -1},
        {"time_before_speech_ms": 0},
        {"decay_factor": 0},
        {"decay_factor": -1.0},
        {"decay_factor": math.inf},
        {"end_threshold": math.nan},
        {"start_window_ms": "250"},
    ])
    def test_invalid_values_raise_configuration_error(self, overrides):
        with pytest.raises(ConfigurationError):
            RechunkerConfig(**overrides)

    def test_configuration_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            RechunkerConfig(decay_factor=0)
