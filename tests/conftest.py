import pytest
import numpy as np

from voice_rechunker.rechunker.types import Frame, ProbabilityAnnotatedFrame, RechunkerConfig


def make_frame(probability, frame_ms=100, sample_rate=16000, channels=1, value=None):
    """
    Annotated frame whose samples are all `value` (defaults to the probability),
    so chunk contents show which frames ended up in them.
    """
    n_samples = int(sample_rate * frame_ms / 1000) * channels
    fill = probability if value is None else value
    samples = np.full(n_samples, fill, dtype=np.float32)
    return ProbabilityAnnotatedFrame(
        frame=Frame(samples=samples, channel_count=channels, sample_rate=sample_rate),
        probability=probability,
    )


def make_frames(probabilities, **kwargs):
    return [make_frame(p, **kwargs) for p in probabilities]


@pytest.fixture
def frame_factory():
    """Factory for probability-annotated frames (100 ms at 16 kHz mono by default)."""
    return make_frame


@pytest.fixture
def frames_factory():
    return make_frames


@pytest.fixture
def default_config():
    """Rechunker configuration the desktop application ships with."""
    return RechunkerConfig(
        start_threshold=0.6,
        start_window_ms=250,
        end_threshold=0.3,
        end_window_ms=100,
        time_before_speech_ms=750,
        max_duration_ms=10000,
        decay_factor=3.0,
    )


@pytest.fixture
def random_probabilities():
    """Deterministic noisy speech/silence probability track (100 ms frames)."""
    rng = np.random.default_rng(1234)
    track = []
    for _ in range(12):
        speech = rng.random() < 0.5
        length = int(rng.integers(3, 40))
        base = 0.85 if speech else 0.1
        track.extend(np.clip(base + rng.normal(0, 0.15, size=length), 0.0, 1.0).tolist())
    return track


class SampleValueDetector:
    """Detector stand-in using each frame's first sample as its speech probability."""

    def __init__(self):
        self.calls = 0

    def annotate(self, frame):
        self.calls += 1
        return ProbabilityAnnotatedFrame(frame=frame, probability=float(frame.samples[0]))
