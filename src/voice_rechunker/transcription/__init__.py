from .session import SessionConfig, TranscriptionSession, TranscriptionWorker

__all__ = ["SessionConfig", "TranscriptionSession", "TranscriptionWorker"]
