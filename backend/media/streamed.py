"""
Capture fed by a remote client.

The browser owns the physical camera and microphone and posts its
MediaRecorder chunks to the service; the server side only sees the resulting
fragment stream.
"""
import logging

from .capture import MediaCapture, MediaDevicePlatform, MediaDeviceError, PermissionDenied

logger = logging.getLogger(__name__)


class StreamedCapture(MediaCapture):
    """Capture whose fragments are fed in by the HTTP layer."""

    def __init__(self, video: bool = True, audio: bool = True):
        super().__init__(video=video, audio=audio)
        self.fragments_received = 0

    def feed(self, fragment: bytes) -> bool:
        """
        Deliver a client fragment to the active recording.

        Returns:
            True if a recording accepted the fragment
        """
        if self.released:
            return False
        if not self._deliver(fragment):
            logger.debug(f"Ignoring {len(fragment)} byte fragment: not recording")
            return False
        self.fragments_received += 1
        return True

    def _close(self) -> None:
        logger.debug(f"Streamed capture closed after {self.fragments_received} fragments")


class StreamedDevicePlatform(MediaDevicePlatform):
    """
    Device platform for a browser client.

    Whether getUserMedia succeeded is decided on the client, which reports it
    when it initializes the session.
    """

    def __init__(self, granted: bool = True):
        self.granted = granted

    async def acquire(self, video: bool = True, audio: bool = True) -> StreamedCapture:
        if not self.granted:
            raise PermissionDenied("Camera/microphone access was denied by the client")
        if not video and not audio:
            raise MediaDeviceError("At least one of video or audio must be requested")
        return StreamedCapture(video=video, audio=audio)
