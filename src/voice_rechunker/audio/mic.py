"""Microphone audio capture."""

from __future__ import annotations

import threading
import queue
import time
import logging
from typing import Optional

import numpy as np
import sounddevice as sd

from ..core.shutdown import StopSignal
from ..rechunker.types import Frame

from .types import AudioFormat, FrameConfig

logger = logging.getLogger(__name__)

DEFAULT_DEVICE_ID = -1


def list_input_devices() -> list[tuple[int, str]]:
    """Return (device id, name) for every device with input channels."""
    devices = sd.query_devices()
    return [
        (index, device["name"])
        for index, device in enumerate(devices)
        if device.get("max_input_channels", 0) > 0
    ]


class Mic(threading.Thread):
    """
    Continuously captures microphone audio and pushes Frame into frames_queue.

    Important: keep callback/lightweight; no VAD/rechunking here.
    A negative device id selects the system default input.
    """

    def __init__(
        self,
        stop_signal: StopSignal,
        audio_format: AudioFormat,
        frame_cfg: FrameConfig,
        frames_queue: queue.Queue[Frame],
        device: Optional[int] = None,
    ):
        super().__init__(name=f"MicThread-{device}", daemon=True)
        self._stop_signal = stop_signal
        self._audio_format = audio_format
        self._frame_cfg = frame_cfg
        self._frames_queue = frames_queue
        self._device = None if device is None or device < 0 else device
        self.dropped_frames = 0

    def run(self) -> None:
        """Start microphone capture loop."""
        # Calculate blocksize (number of samples per channel per frame)
        blocksize = int(self._audio_format.sample_rate * self._frame_cfg.frame_ms / 1000)

        # Convert dtype string to numpy dtype
        dtype_map = {
            "float32": np.float32,
            "int16": np.int16,
            "int32": np.int32,
        }
        dtype = dtype_map.get(self._audio_format.dtype, np.float32)
        scale = {np.int16: 32768.0, np.int32: 2147483648.0}.get(dtype, 1.0)

        def audio_callback(indata, frames, time_info, status):
            """Callback function for sounddevice audio stream."""
            if status:
                logger.warning(f"Audio callback status: {status}")

            # indata shape is (frames, channels); row-major flatten interleaves channels
            samples = np.ascontiguousarray(indata).reshape(-1).astype(np.float32) / scale

            frame = Frame(
                samples=samples,
                channel_count=indata.shape[1] if indata.ndim > 1 else 1,
                sample_rate=self._audio_format.sample_rate,
            )

            # Put frame into queue (non-blocking)
            try:
                self._frames_queue.put_nowait(frame)
            except queue.Full:
                self.dropped_frames += 1
                logger.warning("Frames queue is full, dropping audio frame")

        try:
            with sd.InputStream(
                callback=audio_callback,
                samplerate=self._audio_format.sample_rate,
                channels=self._audio_format.channels,
                blocksize=blocksize,
                dtype=dtype,
                device=self._device,
            ):
                # Keep running until stop signal is set
                while not self._stop_signal.is_set():
                    time.sleep(0.1)
        except Exception as e:
            logger.error(f"Error in microphone capture: {e}", exc_info=True)
        finally:
            logger.info("Microphone capture stopped")
