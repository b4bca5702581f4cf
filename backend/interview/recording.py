"""
Transient answer recording: accumulates captured fragments for one question.
"""
import asyncio
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class EncodedClip:
    """A finished answer clip ready for upload."""
    data: bytes
    mime_type: str
    fragment_count: int

    @property
    def size(self) -> int:
        return len(self.data)


class Recording:
    """
    Bounded, push-based channel from the capture source into one clip.

    The capture callback pushes fragments without blocking; the channel is
    drained synchronously when the recording is finalized. Fragments arriving
    while the channel is full are dropped and counted.
    """

    def __init__(self, mime_type: str = "audio/webm", max_pending_fragments: int = 4096):
        self.mime_type = mime_type
        self._channel: asyncio.Queue = asyncio.Queue(maxsize=max_pending_fragments)
        self._closed = False
        self.dropped_fragments = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        return self._channel.qsize()

    def push(self, fragment: bytes) -> None:
        """Fragment callback handed to the capture source."""
        if self._closed or not fragment:
            return
        try:
            self._channel.put_nowait(bytes(fragment))
        except asyncio.QueueFull:
            self.dropped_fragments += 1
            logger.warning(f"Recording buffer full, dropped fragment of {len(fragment)} bytes")

    def _drain(self) -> list:
        chunks = []
        while True:
            try:
                chunks.append(self._channel.get_nowait())
            except asyncio.QueueEmpty:
                return chunks

    def finalize(self) -> EncodedClip:
        """Close the channel and join every buffered fragment into one clip."""
        self._closed = True
        chunks = self._drain()
        clip = EncodedClip(data=b"".join(chunks), mime_type=self.mime_type, fragment_count=len(chunks))
        logger.info(f"Recording finalized: {clip.fragment_count} fragments, {clip.size} bytes")
        if self.dropped_fragments:
            logger.warning(f"Recording lost {self.dropped_fragments} fragments to a full buffer")
        return clip

    def discard(self) -> None:
        """Close the channel and throw away anything buffered."""
        self._closed = True
        dropped = self._drain()
        if dropped:
            logger.info(f"Discarded recording with {len(dropped)} buffered fragments")
