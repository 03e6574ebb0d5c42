import threading
from typing import Protocol


class StopSignal(Protocol):
    """Anything worker threads can poll to know when to stop."""

    def is_set(self) -> bool:
        ...


class GracefulShutdown:
    def __init__(self):
        self.stop_event = threading.Event()

    def stop(self):
        self.stop_event.set()

    def is_set(self):
        return self.stop_event.is_set()

    def wait(self, timeout=None):
        return self.stop_event.wait(timeout)
