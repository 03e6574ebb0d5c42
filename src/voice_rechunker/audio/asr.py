"""ASR (Automatic Speech Recognition) of rechunked utterances using faster-whisper."""

from __future__ import annotations

import logging
import math
import re
import time
from typing import Optional

import numpy as np
from faster_whisper import WhisperModel
from scipy import signal

from ..rechunker.types import OutputChunk
from .types import TranscriberConfig

logger = logging.getLogger("ASR")

WHISPER_SAMPLE_RATE = 16000

# Common Whisper hallucination phrases to strip from transcript start/end (case-insensitive)
_HALLUCINATION_PHRASES = (
    "thank you",
    "thanks for watching",
    "thanks for listening",
)
_HALLUCINATION_LEAD_PATTERNS = tuple(
    re.compile(r"^\s*[.,!?]*\s*" + re.escape(p) + r"[.,!?\s]*", re.IGNORECASE)
    for p in _HALLUCINATION_PHRASES
)
_HALLUCINATION_TRAIL_PATTERNS = tuple(
    re.compile(r"[.,!?\s]*" + re.escape(p) + r"\s*[.,!?]*\s*$", re.IGNORECASE)
    for p in _HALLUCINATION_PHRASES
)
# Reduce noise from faster-whisper
logging.getLogger("faster_whisper").setLevel(logging.WARNING)


def _strip_hallucination_phrases(text: str) -> str:
    """
    Remove common Whisper hallucination phrases from start and end of text.
    Case-insensitive; allows optional punctuation/whitespace around phrases.
    """
    t = text.strip()
    while True:
        changed = False
        for lead_re, trail_re in zip(_HALLUCINATION_LEAD_PATTERNS, _HALLUCINATION_TRAIL_PATTERNS):
            t_new = lead_re.sub("", t).strip()
            t_new = trail_re.sub("", t_new).strip()
            if t_new != t:
                t = t_new
                changed = True
                break
        if not changed:
            break
    return t


def _resample(pcm: np.ndarray, sample_rate: int) -> np.ndarray:
    """Polyphase (anti-aliased) resampling to Whisper's 16 kHz input rate."""
    if sample_rate == WHISPER_SAMPLE_RATE or pcm.size == 0:
        return pcm
    g = math.gcd(WHISPER_SAMPLE_RATE, sample_rate)
    return signal.resample_poly(pcm, WHISPER_SAMPLE_RATE // g, sample_rate // g).astype(np.float32)


class ASR:
    """
    Automatic Speech Recognition using faster-whisper.

    Transcribes one rechunked utterance at a time. Model is loaded once and cached by Hugging Face.
    """

    def __init__(self, cfg: TranscriberConfig = TranscriberConfig()):
        logger.info("Loading ASR model: %s (device=%s)", cfg.model_size, cfg.device)
        self._cfg = cfg
        self._model = WhisperModel(
            cfg.model_size,
            device=cfg.device,
            compute_type=cfg.compute_type,
        )

    def transcribe(
        self,
        pcm: np.ndarray,
        sample_rate: int,
    ) -> tuple[str, Optional[str], Optional[float]]:
        """
        Transcribe audio to text.

        Args:
            pcm: Mono float32 audio.
            sample_rate: Sample rate of pcm; resampled to 16 kHz when different.

        Returns:
            (text, language, confidence). Empty pcm returns ("", None, None).
        """
        if pcm.size == 0:
            return ("", None, None)

        started_at = time.time()
        segments, info = self._model.transcribe(
            _resample(pcm, sample_rate),
            language=self._cfg.language,
            vad_filter=False,
            log_progress=False,
        )
        text = " ".join(s.text.strip() for s in segments).strip()
        text = _strip_hallucination_phrases(text)
        language = getattr(info, "language", None)
        confidence = getattr(info, "language_probability", None)

        logger.info("ASR finished in %.3fs", time.time() - started_at)
        return (text, language, confidence)

    def transcribe_chunk(self, chunk: OutputChunk) -> tuple[str, Optional[str], Optional[float]]:
        """Transcribe an emitted chunk, mixing multi-channel audio down to mono."""
        return self.transcribe(chunk.mono(), chunk.sample_rate)
