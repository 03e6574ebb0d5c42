"""Pull loops driving a rechunker from an upstream frame source."""

from __future__ import annotations

from typing import AsyncIterable, AsyncIterator, Iterable, Iterator, Optional

from .state_machine import VoiceActivityRechunker
from .types import OutputChunk, ProbabilityAnnotatedFrame, RechunkerConfig


def rechunk(
    frames: Iterable[ProbabilityAnnotatedFrame],
    rechunker: Optional[VoiceActivityRechunker] = None,
    config: Optional[RechunkerConfig] = None,
) -> Iterator[OutputChunk]:
    """
    Yield utterance chunks from a frame iterable.

    When the iterable is exhausted a run still in progress is yielded as a
    final chunk. Closing the generator early discards buffered audio.
    """
    rechunker = rechunker or VoiceActivityRechunker(config)
    for frame in frames:
        chunk = rechunker.push(frame)
        if chunk is not None:
            yield chunk

    final = rechunker.finish()
    if final is not None:
        yield final


async def arechunk(
    frames: AsyncIterable[ProbabilityAnnotatedFrame],
    rechunker: Optional[VoiceActivityRechunker] = None,
    config: Optional[RechunkerConfig] = None,
) -> AsyncIterator[OutputChunk]:
    """Async variant of `rechunk`; only awaiting the next upstream frame suspends."""
    rechunker = rechunker or VoiceActivityRechunker(config)
    async for frame in frames:
        chunk = rechunker.push(frame)
        if chunk is not None:
            yield chunk

    final = rechunker.finish()
    if final is not None:
        yield final
