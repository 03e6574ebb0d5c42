"""Utterance segmentation: voice-activity annotation + rechunking on a worker thread."""

from __future__ import annotations

import logging
import queue
import time
from dataclasses import dataclass
from typing import Optional, Protocol

from ..core.shutdown import StopSignal
from ..core.worker import QueueWorker, put_drop_oldest
from ..rechunker.state_machine import VoiceActivityRechunker
from ..rechunker.types import Frame, OutputChunk, ProbabilityAnnotatedFrame

from .types import SegmenterConfig

logger = logging.getLogger(__name__)


class ProbabilityDetector(Protocol):
    def annotate(self, frame: Frame) -> ProbabilityAnnotatedFrame:
        ...


@dataclass(frozen=True)
class Utterance:
    """One rechunked utterance from a capture device."""
    device_id: int
    chunk: OutputChunk
    ended_at_s: float


class RechunkerWorker(QueueWorker[Frame]):
    """
    Consumes Frame stream, annotates each frame with a voice-activity probability
    and produces Utterance items through a VoiceActivityRechunker.

    On stop, a voice run in progress is discarded unless `flush_on_stop` is set.
    """

    def __init__(
            self,
            stop_signal: StopSignal,
            cfg: SegmenterConfig,
            frames_queue: queue.Queue[Frame],
            utterance_queue: queue.Queue[Utterance],
            detector: ProbabilityDetector,
            device_id: int = -1,
    ):
        super().__init__(
            name=f"RechunkerThread-{device_id}",
            stop_signal=stop_signal,
            input_queue=frames_queue,
            poll_interval_s=0.1,
        )
        self._cfg = cfg
        self._utterance_queue = utterance_queue
        self._detector = detector
        self._device_id = device_id
        self._rechunker = VoiceActivityRechunker(cfg.rechunker)
        self.dropped_utterances = 0

    @property
    def rechunker(self) -> VoiceActivityRechunker:
        return self._rechunker

    def handle(self, item: Frame) -> None:
        """Handle one Frame; may emit an Utterance."""
        try:
            annotated = self._detector.annotate(item)
        except ValueError as e:
            logger.warning(f"Skipping frame the detector cannot score: {e}")
            return
        chunk = self._rechunker.push(annotated)
        if chunk is not None:
            self._publish(chunk)

    def cleanup(self) -> None:
        """Flush or discard the in-progress voice run on shutdown."""
        if self._cfg.flush_on_stop:
            chunk = self._rechunker.flush()
            if chunk is not None:
                self._publish(chunk)
        self._rechunker.reset()

    def _publish(self, chunk: OutputChunk) -> None:
        utterance = Utterance(device_id=self._device_id, chunk=chunk, ended_at_s=time.time())
        if put_drop_oldest(self._utterance_queue, utterance):
            self.dropped_utterances += 1
            logger.warning("Utterance queue is full, dropped oldest utterance")
