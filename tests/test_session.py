"""Tests for TranscriptionSession with fake audio sources, detector and transcriber."""

import threading

import pytest
from unittest.mock import MagicMock

from voice_rechunker.audio.types import SegmenterConfig
from voice_rechunker.core.events import (
    Error,
    LoadingProgress,
    Starting,
    Stopped,
    TranscriptionData,
    TranscriptionStarted,
)
from voice_rechunker.transcription.session import SessionConfig, TranscriptionSession

from .conftest import SampleValueDetector, make_frames


class FakeSource:
    """Audio source whose frames are pushed by the test after the session starts."""

    def __init__(self, device_id, frames_queue, stop_signal):
        self.device_id = device_id
        self.frames_queue = frames_queue
        self.stop_signal = stop_signal
        self.started = False
        self.joined = False

    def start(self):
        self.started = True

    def join(self, timeout=None):
        self.joined = True

    def feed(self, probabilities):
        for annotated in make_frames(probabilities):
            self.frames_queue.put(annotated.frame)
        self.frames_queue.join()


class EventRecorder:
    def __init__(self):
        self.events = []
        self._lock = threading.Lock()
        self._data = threading.Event()

    def __call__(self, event):
        with self._lock:
            self.events.append(event)
        if isinstance(event, (TranscriptionData, Error)):
            self._data.set()

    def wait_for_data(self, timeout=2.0):
        return self._data.wait(timeout)

    def of_type(self, cls):
        with self._lock:
            return [e for e in self.events if isinstance(e, cls)]


class TestTranscriptionSession:
    @pytest.fixture
    def transcriber(self):
        transcriber = MagicMock()
        transcriber.transcribe_chunk.return_value = ("hello there", "en", 0.9)
        return transcriber

    @pytest.fixture
    def sources(self):
        return {}

    def make_session(self, transcriber, sources, flush_on_stop=False, transcriber_factory=None):
        def source_factory(device_id, frames_queue, stop_signal):
            source = FakeSource(device_id, frames_queue, stop_signal)
            sources[device_id] = source
            return source

        cfg = SessionConfig(segmenter=SegmenterConfig(flush_on_stop=flush_on_stop))
        return TranscriptionSession(
            cfg,
            transcriber_factory=transcriber_factory or (lambda _cfg: transcriber),
            detector_factory=lambda _cfg: SampleValueDetector(),
            source_factory=source_factory,
        )

    def test_start_and_stop_event_sequence(self, transcriber, sources):
        session = self.make_session(transcriber, sources)
        recorder = EventRecorder()
        session.subscribe("test", recorder)

        session.start([0, 5])
        assert session.is_running
        assert session.active_devices == [0, 5]
        assert all(source.started for source in sources.values())

        session.stop()
        assert not session.is_running
        assert all(source.joined for source in sources.values())
        assert recorder.events == [
            Stopped(),
            Starting(),
            LoadingProgress(progress=0.0),
            LoadingProgress(progress=1.0),
            TranscriptionStarted(device_id=0),
            TranscriptionStarted(device_id=5),
            Stopped(),
        ]

    def test_utterance_is_transcribed(self, transcriber, sources):
        session = self.make_session(transcriber, sources)
        recorder = EventRecorder()
        session.subscribe("test", recorder)
        session.start([3])

        try:
            sources[3].feed([0.9] * 10 + [0.05] * 5)
            assert recorder.wait_for_data()
        finally:
            session.stop()

        data = recorder.of_type(TranscriptionData)
        assert len(data) == 1
        assert data[0].device_id == 3
        assert data[0].text == "hello there"
        assert data[0].confidence == 0.9
        assert data[0].duration_s == pytest.approx(1.1)

    def test_unfinished_run_is_flushed_on_stop(self, transcriber, sources):
        session = self.make_session(transcriber, sources, flush_on_stop=True)
        recorder = EventRecorder()
        session.subscribe("test", recorder)
        session.start([-1])

        sources[-1].feed([0.9] * 5)
        session.stop()

        assert len(recorder.of_type(TranscriptionData)) == 1
        assert isinstance(recorder.events[-1], Stopped)

    def test_unfinished_run_is_discarded_by_default(self, transcriber, sources):
        session = self.make_session(transcriber, sources)
        recorder = EventRecorder()
        session.subscribe("test", recorder)
        session.start([-1])

        sources[-1].feed([0.9] * 5)
        session.stop()

        assert recorder.of_type(TranscriptionData) == []
        transcriber.transcribe_chunk.assert_not_called()

    def test_blank_transcript_is_not_published(self, transcriber, sources):
        transcriber.transcribe_chunk.return_value = ("  ", "en", 0.4)
        session = self.make_session(transcriber, sources, flush_on_stop=True)
        recorder = EventRecorder()
        session.subscribe("test", recorder)
        session.start([0])

        sources[0].feed([0.9] * 5)
        session.stop()

        transcriber.transcribe_chunk.assert_called_once()
        assert recorder.of_type(TranscriptionData) == []

    def test_transcriber_failure_publishes_error(self, transcriber, sources):
        transcriber.transcribe_chunk.side_effect = RuntimeError("decoder crashed")
        session = self.make_session(transcriber, sources)
        recorder = EventRecorder()
        session.subscribe("test", recorder)
        session.start([0])

        try:
            sources[0].feed([0.9] * 10 + [0.05] * 5)
            assert recorder.wait_for_data()
        finally:
            session.stop()

        errors = recorder.of_type(Error)
        assert len(errors) == 1
        assert "decoder crashed" in errors[0].message

    def test_model_load_failure(self, transcriber, sources):
        def failing_factory(_cfg):
            raise RuntimeError("model not found")

        session = self.make_session(transcriber, sources, transcriber_factory=failing_factory)
        recorder = EventRecorder()
        session.subscribe("test", recorder)

        with pytest.raises(RuntimeError):
            session.start([0])

        assert not session.is_running
        assert sources == {}
        assert recorder.events == [
            Stopped(),
            Starting(),
            LoadingProgress(progress=0.0),
            Error(message="Failed to load model: model not found"),
        ]

    def test_model_is_loaded_once(self, transcriber, sources):
        factory = MagicMock(return_value=transcriber)
        session = self.make_session(transcriber, sources, transcriber_factory=factory)
        recorder = EventRecorder()
        session.subscribe("test", recorder)

        session.start([0])
        session.start([1])
        session.stop()

        factory.assert_called_once()
        loading = [e for e in recorder.events if isinstance(e, LoadingProgress)]
        assert loading == [LoadingProgress(progress=0.0), LoadingProgress(progress=1.0)]

    def test_restart_replaces_devices(self, transcriber, sources):
        session = self.make_session(transcriber, sources)
        session.start([0])
        first = sources[0]

        session.start([1, 2])

        assert first.joined
        assert first.stop_signal.is_set()
        assert session.active_devices == [1, 2]
        session.stop()

    def test_failing_subscriber_does_not_block_others(self, transcriber, sources):
        session = self.make_session(transcriber, sources)
        recorder = EventRecorder()
        session.subscribe("broken", MagicMock(side_effect=RuntimeError("boom")))
        session.subscribe("test", recorder)

        session.start([0])
        session.stop()

        assert len(recorder.of_type(Stopped)) == 2

    def test_unsubscribe(self, transcriber, sources):
        session = self.make_session(transcriber, sources)
        recorder = EventRecorder()
        session.subscribe("test", recorder)
        session.unsubscribe("test")
        session.unsubscribe("never-subscribed")

        session.start([0])
        session.stop()

        assert recorder.events == []
