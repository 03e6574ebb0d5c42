"""Reusable worker thread utilities."""

from __future__ import annotations

import logging
import threading
import queue
from typing import Generic, TypeVar

from .shutdown import StopSignal

T = TypeVar("T")

logger = logging.getLogger(__name__)


class QueueWorker(threading.Thread, Generic[T]):
    """
    Base class for a queue-consuming worker thread.

    This keeps lifecycle + polling logic consistent and reduces duplication across worker threads.
    Subclasses implement `handle(item)` and may override `cleanup()`, which runs
    once on the worker thread after the stop signal is observed.
    """

    def __init__(
        self,
        *,
        name: str,
        stop_signal: StopSignal,
        input_queue: "queue.Queue[T]",
        poll_interval_s: float = 0.1,
        daemon: bool = True,
    ):
        super().__init__(name=name, daemon=daemon)
        self._stop_signal = stop_signal
        self._input_queue = input_queue
        self._poll_interval_s = poll_interval_s

    def run(self) -> None:
        try:
            while not self._stop_signal.is_set():
                try:
                    item = self._input_queue.get(timeout=self._poll_interval_s)
                except queue.Empty:
                    continue

                try:
                    self.handle(item)
                finally:
                    self._input_queue.task_done()
        finally:
            self.cleanup()
            logger.debug(f"{self.name}: stopped")

    def handle(self, item: T) -> None:
        raise NotImplementedError

    def cleanup(self) -> None:
        """Hook for subclasses; called once when the worker stops."""


def put_drop_oldest(target: "queue.Queue[T]", item: T) -> bool:
    """
    Put without blocking; when the queue is full, drop its oldest item first.

    Returns:
        True if an older item was dropped to make room.
    """
    try:
        target.put_nowait(item)
        return False
    except queue.Full:
        try:
            target.get_nowait()  # Remove oldest
            target.task_done()
        except queue.Empty:
            # Queue became empty between checks, just add
            pass
        target.put_nowait(item)
        return True
