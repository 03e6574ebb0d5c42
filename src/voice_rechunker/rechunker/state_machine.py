"""Voice-activity-gated rechunking state machine."""

from __future__ import annotations

import logging
from typing import Optional

from .preroll import PreRollBuffer
from .threshold import DecayingEndThresholdCalculator
from .types import (
    NANOS_PER_SECOND,
    ChunkReason,
    Frame,
    InvalidFrameError,
    OutputChunk,
    ProbabilityAnnotatedFrame,
    RechunkerConfig,
    RechunkerStats,
    RunState,
)
from .window import RollingWindowAccumulator

logger = logging.getLogger(__name__)


class VoiceActivityRechunker:
    """
    Re-segments a stream of probability-annotated frames into utterance chunks.

    Synchronous and single-owner: call `push()` once per upstream frame and
    forward any returned chunk downstream. At most one chunk comes out per call.

    Per frame:
    1. Add (probability, duration) to the rolling window, using the horizon of
       the current state (start window while idle, end window while in a run).
    2. While idle, enter a run once the window has seen at least a start window
       of audio and its average is strictly above `start_threshold`.
    3. Buffer the frame. Idle frames are trimmed to `time_before_speech`; a new
       run keeps whatever pre-roll is buffered.
    4. In a run started on an earlier frame, emit when the window average drops
       strictly below the decaying end threshold or the run is strictly longer
       than `max_duration`.
    """

    def __init__(self, config: Optional[RechunkerConfig] = None):
        self._cfg = config or RechunkerConfig()
        self._window = RollingWindowAccumulator()
        self._buffer = PreRollBuffer(self._cfg.time_before_speech_ns)
        self._end_threshold = DecayingEndThresholdCalculator(self._cfg)

        self._state = RunState.IDLE
        self._duration_in_voice_ns = 0
        self._last_preroll_ns = 0
        self._stats = RechunkerStats()

    @property
    def config(self) -> RechunkerConfig:
        return self._cfg

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def in_run(self) -> bool:
        return self._state is RunState.IN_RUN

    @property
    def duration_in_voice_s(self) -> float:
        return self._duration_in_voice_ns / NANOS_PER_SECOND

    @property
    def buffered_duration_s(self) -> float:
        return self._buffer.buffered_ns / NANOS_PER_SECOND

    @property
    def last_preroll_s(self) -> float:
        """Idle audio that was buffered when the latest run started."""
        return self._last_preroll_ns / NANOS_PER_SECOND

    @property
    def stats(self) -> RechunkerStats:
        return self._stats

    def window_average(self) -> float:
        return self._window.average()

    def decaying_end_threshold(self) -> float:
        probability_mass = self._window.window_sum + self._window.before_window_sum
        return self._end_threshold.threshold(probability_mass, self.duration_in_voice_s)

    def push(self, annotated: ProbabilityAnnotatedFrame) -> Optional[OutputChunk]:
        """Advance by one frame; returns a chunk when a voice run just ended."""
        try:
            annotated = annotated.validated()
        except InvalidFrameError as e:
            self._stats.rejected_frames += 1
            logger.warning("Skipping invalid frame: %s", e)
            return None

        frame = annotated.frame
        if not self._accept_format(frame):
            return None

        duration_ns = frame.duration_ns
        self._stats.input_ns += duration_ns

        was_in_run = self.in_run
        self._window.add(annotated.probability, duration_ns, self._target_window_ns(), in_run=was_in_run)

        if not was_in_run and self._should_start():
            self._start_run()

        if not self.in_run:
            self._stats.discarded_ns += self._buffer.append_idle(frame)
            return None

        self._buffer.append(frame)
        self._duration_in_voice_ns += duration_ns

        # One transition per frame: a run cannot end on the frame that started it
        if not was_in_run:
            return None

        reason = self._end_reason()
        if reason is None:
            return None
        return self._finish_run(reason)

    def flush(self) -> Optional[OutputChunk]:
        """Force out the current voice run, if any, and resume idling."""
        if not self.in_run:
            return None
        return self._finish_run(ChunkReason.FLUSH)

    def finish(self) -> Optional[OutputChunk]:
        """
        Handle upstream end-of-stream.

        A run in progress is emitted as a final chunk; idle pre-roll is discarded.
        The rechunker is left in its initial state.
        """
        if self.in_run:
            return self._finish_run(ChunkReason.END_OF_STREAM)
        self.reset()
        return None

    def reset(self) -> None:
        """Discard all buffered audio without emitting anything."""
        dropped_ns = self._buffer.clear()
        if dropped_ns and self.in_run:
            logger.info("Discarding unfinished voice run (%.3fs buffered)", dropped_ns / NANOS_PER_SECOND)
        self._stats.discarded_ns += dropped_ns
        self._window.clear()
        self._duration_in_voice_ns = 0
        self._state = RunState.IDLE

    def _target_window_ns(self) -> int:
        if self.in_run:
            return self._cfg.end_window_ns
        return self._cfg.start_window_ns

    def _accept_format(self, frame: Frame) -> bool:
        head = self._buffer.format_frame
        if head is None or head.same_format(frame):
            return True

        if self.in_run:
            self._stats.rejected_frames += 1
            logger.warning(
                "Skipping frame with format %dch@%dHz inside a %dch@%dHz voice run",
                frame.channel_count, frame.sample_rate, head.channel_count, head.sample_rate,
            )
            return False

        logger.info(
            "Audio format changed to %dch@%dHz, dropping pre-roll",
            frame.channel_count, frame.sample_rate,
        )
        self._stats.discarded_ns += self._buffer.clear()
        return True

    def _should_start(self) -> bool:
        if self._window.observed_ns < self._cfg.start_window_ns:
            return False
        return self._window.average() > self._cfg.start_threshold

    def _start_run(self) -> None:
        self._state = RunState.IN_RUN
        self._duration_in_voice_ns = 0
        self._window.reset_run()
        self._last_preroll_ns = self._buffer.idle_ns
        logger.debug(
            "Voice run started: window average %.3f, pre-roll %.3fs",
            self._window.average(), self.last_preroll_s,
        )

    def _end_reason(self) -> Optional[ChunkReason]:
        if self._window.average() < self.decaying_end_threshold():
            return ChunkReason.END_THRESHOLD
        if self._duration_in_voice_ns > self._cfg.max_duration_ns:
            return ChunkReason.MAX_DURATION
        return None

    def _finish_run(self, reason: ChunkReason) -> OutputChunk:
        head = self._buffer.format_frame
        emitted_ns = self._buffer.buffered_ns
        chunk = OutputChunk(
            samples=self._buffer.drain(),
            channel_count=head.channel_count,
            sample_rate=head.sample_rate,
            duration_in_voice_ns=self._duration_in_voice_ns,
            reason=reason,
        )

        self._stats.emitted_ns += emitted_ns
        self._stats.chunks_emitted += 1
        logger.info(
            "Voice run ended (%s): chunk %.3fs, in voice %.3fs",
            reason.name, emitted_ns / NANOS_PER_SECOND, self.duration_in_voice_s,
        )

        self._window.clear()
        self._duration_in_voice_ns = 0
        self._state = RunState.IDLE
        return chunk
