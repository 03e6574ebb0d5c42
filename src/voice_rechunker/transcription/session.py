"""Transcription session: per-device capture pipelines feeding one transcriber."""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass, field
from typing import Callable, Optional, Protocol, Sequence

from ..audio.segmenter import ProbabilityDetector, RechunkerWorker, Utterance
from ..audio.types import AudioFormat, DetectorConfig, FrameConfig, SegmenterConfig, TranscriberConfig
from ..core.events import (
    Error,
    LoadingProgress,
    Starting,
    Stopped,
    TranscriptionData,
    TranscriptionEvent,
    TranscriptionStarted,
)
from ..core.shutdown import GracefulShutdown, StopSignal
from ..core.worker import QueueWorker
from ..rechunker.types import Frame, OutputChunk

logger = logging.getLogger("TranscriptionSession")

Listener = Callable[[TranscriptionEvent], None]


class Transcriber(Protocol):
    def transcribe_chunk(self, chunk: OutputChunk) -> tuple[str, Optional[str], Optional[float]]:
        ...


class AudioSource(Protocol):
    def start(self) -> None:
        ...

    def join(self, timeout: Optional[float] = None) -> None:
        ...


AudioSourceFactory = Callable[[int, "queue.Queue[Frame]", StopSignal], AudioSource]


@dataclass(frozen=True)
class SessionConfig:
    """Configuration for a transcription session."""
    audio_format: AudioFormat = AudioFormat()
    frame: FrameConfig = FrameConfig()
    detector: DetectorConfig = DetectorConfig()
    segmenter: SegmenterConfig = field(default_factory=SegmenterConfig)
    transcriber: TranscriberConfig = TranscriberConfig()
    join_timeout_s: float = 2.0


class TranscriptionWorker(QueueWorker[Utterance]):
    """Consumes Utterance items, transcribes them and publishes TranscriptionData events."""

    def __init__(
        self,
        stop_signal: StopSignal,
        utterance_queue: "queue.Queue[Utterance]",
        transcriber: Transcriber,
        publish: Listener,
        drain_on_stop: bool = False,
    ):
        super().__init__(
            name="TranscriptionThread",
            stop_signal=stop_signal,
            input_queue=utterance_queue,
            poll_interval_s=0.1,
        )
        self._transcriber = transcriber
        self._publish = publish
        self._drain_on_stop = drain_on_stop

    def handle(self, utterance: Utterance) -> None:
        try:
            text, language, confidence = self._transcriber.transcribe_chunk(utterance.chunk)
        except Exception as e:
            logger.error(f"Transcription failed for device {utterance.device_id}: {e}", exc_info=True)
            self._publish(Error(message=f"Transcription failed: {e}"))
            return

        # Skip blank text
        if not text or not text.strip():
            return

        logger.debug(f"device {utterance.device_id} [{language}]: {text}")
        self._publish(TranscriptionData(
            device_id=utterance.device_id,
            text=text,
            confidence=confidence,
            duration_s=utterance.chunk.duration_s,
        ))

    def cleanup(self) -> None:
        if not self._drain_on_stop:
            return
        while True:
            try:
                utterance = self._input_queue.get_nowait()
            except queue.Empty:
                break
            try:
                self.handle(utterance)
            finally:
                self._input_queue.task_done()


def _default_transcriber(cfg: TranscriberConfig) -> Transcriber:
    from ..audio.asr import ASR
    return ASR(cfg)


def _default_detector(cfg: DetectorConfig) -> ProbabilityDetector:
    from ..audio.vad import SileroProbabilityDetector
    return SileroProbabilityDetector(cfg)


class TranscriptionSession:
    """
    Owns the running capture pipelines and the subscriber list.

    Each device gets Mic -> RechunkerWorker; all devices share one utterance
    queue and one TranscriptionWorker. Starting always stops what is running.
    """

    def __init__(
        self,
        cfg: SessionConfig = SessionConfig(),
        transcriber_factory: Callable[[TranscriberConfig], Transcriber] = _default_transcriber,
        detector_factory: Callable[[DetectorConfig], ProbabilityDetector] = _default_detector,
        source_factory: Optional[AudioSourceFactory] = None,
    ):
        self._cfg = cfg
        self._transcriber_factory = transcriber_factory
        self._detector_factory = detector_factory
        self._source_factory = source_factory or self._mic_source

        self._listeners: dict[str, Listener] = {}
        self._listeners_lock = threading.Lock()

        self._transcriber: Optional[Transcriber] = None
        self._capture_signal: Optional[GracefulShutdown] = None
        self._transcription_signal: Optional[GracefulShutdown] = None
        self._sources: dict[int, AudioSource] = {}
        self._workers: dict[int, RechunkerWorker] = {}
        self._transcription_worker: Optional[TranscriptionWorker] = None

    @property
    def active_devices(self) -> list[int]:
        return sorted(self._workers)

    @property
    def is_running(self) -> bool:
        return self._transcription_worker is not None

    def subscribe(self, name: str, listener: Listener) -> None:
        with self._listeners_lock:
            self._listeners[name] = listener

    def unsubscribe(self, name: str) -> None:
        with self._listeners_lock:
            self._listeners.pop(name, None)

    def publish(self, event: TranscriptionEvent) -> None:
        """Deliver an event to every subscriber; a failing subscriber does not block the others."""
        with self._listeners_lock:
            listeners = list(self._listeners.items())
        logger.info(f"Sending event to {len(listeners)} subscribers: {event}")
        for name, listener in listeners:
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Subscriber {name} failed to handle {event.event}: {e}", exc_info=True)

    def start(self, device_ids: Sequence[int]) -> None:
        """Start one capture pipeline per device id (negative id = default input)."""
        self.stop()
        self.publish(Starting())

        if self._transcriber is None:
            self.publish(LoadingProgress(progress=0.0))
            try:
                self._transcriber = self._transcriber_factory(self._cfg.transcriber)
            except Exception as e:
                logger.error(f"Failed to load model: {e}")
                self.publish(Error(message=f"Failed to load model: {e}"))
                raise
            self.publish(LoadingProgress(progress=1.0))

        self._capture_signal = GracefulShutdown()
        self._transcription_signal = GracefulShutdown()
        utterance_queue: queue.Queue[Utterance] = queue.Queue(
            maxsize=self._cfg.segmenter.max_utterances_queue
        )

        self._transcription_worker = TranscriptionWorker(
            stop_signal=self._transcription_signal,
            utterance_queue=utterance_queue,
            transcriber=self._transcriber,
            publish=self.publish,
            drain_on_stop=self._cfg.segmenter.flush_on_stop,
        )
        self._transcription_worker.start()

        for device_id in device_ids:
            frames_queue: queue.Queue[Frame] = queue.Queue(maxsize=self._cfg.frame.max_frames_queue)
            source = self._source_factory(device_id, frames_queue, self._capture_signal)
            worker = RechunkerWorker(
                stop_signal=self._capture_signal,
                cfg=self._cfg.segmenter,
                frames_queue=frames_queue,
                utterance_queue=utterance_queue,
                detector=self._detector_factory(self._cfg.detector),
                device_id=device_id,
            )
            source.start()
            worker.start()
            self._sources[device_id] = source
            self._workers[device_id] = worker
            logger.info(f"Transcription started for device {device_id}")
            self.publish(TranscriptionStarted(device_id=device_id))

    def stop(self) -> None:
        """Stop every pipeline. Capture stops first so flushed utterances can still be transcribed."""
        if self._capture_signal is not None:
            self._capture_signal.stop()
        for device_id, source in self._sources.items():
            logger.info(f"Stopping transcription for device {device_id}")
            source.join(timeout=self._cfg.join_timeout_s)
        for worker in self._workers.values():
            worker.join(timeout=self._cfg.join_timeout_s)

        if self._transcription_signal is not None:
            self._transcription_signal.stop()
        if self._transcription_worker is not None:
            self._transcription_worker.join(timeout=self._cfg.join_timeout_s)

        self._sources.clear()
        self._workers.clear()
        self._transcription_worker = None
        self._capture_signal = None
        self._transcription_signal = None
        self.publish(Stopped())

    def _mic_source(self, device_id: int, frames_queue: "queue.Queue[Frame]", stop_signal: StopSignal) -> AudioSource:
        from ..audio.mic import Mic
        return Mic(
            stop_signal=stop_signal,
            audio_format=self._cfg.audio_format,
            frame_cfg=self._cfg.frame,
            frames_queue=frames_queue,
            device=device_id,
        )
