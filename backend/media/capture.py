"""
Media device platform interface: camera/microphone capture handles.
"""
import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

logger = logging.getLogger(__name__)

FragmentCallback = Callable[[bytes], None]


class MediaDeviceError(Exception):
    """The platform could not provide a capture device."""


class PermissionDenied(MediaDeviceError):
    """The user or platform refused camera/microphone access."""


class MediaCapture(ABC):
    """
    A live audio/video input resource.

    While started, the capture delivers binary fragments to the registered
    callback. `release()` is idempotent and frees the underlying device.
    """

    def __init__(self, video: bool = True, audio: bool = True):
        self.video = video
        self.audio = audio
        self._released = False
        self._on_fragment: Optional[FragmentCallback] = None

    @property
    def released(self) -> bool:
        return self._released

    @property
    def is_capturing(self) -> bool:
        return self._on_fragment is not None

    def start(self, on_fragment: FragmentCallback) -> None:
        """Begin delivering fragments to on_fragment."""
        if self._released:
            raise MediaDeviceError("Cannot start a released capture")
        self._on_fragment = on_fragment
        self._begin()

    async def stop(self) -> None:
        """Stop capturing after the final fragments have been delivered."""
        if self._on_fragment is None:
            return
        try:
            await self._flush()
        finally:
            self._on_fragment = None

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._on_fragment = None
        self._close()
        logger.info("Media capture released")

    def _deliver(self, fragment: bytes) -> bool:
        if self._on_fragment is None:
            return False
        self._on_fragment(fragment)
        return True

    def _begin(self) -> None:
        """Hook called after start(); platforms open their encoder here."""

    async def _flush(self) -> None:
        """Hook called on stop(); platforms push any trailing fragment here."""

    @abstractmethod
    def _close(self) -> None:
        """Free the underlying device."""


class MediaDevicePlatform(ABC):
    """Grants exclusive access to camera/microphone capture."""

    @abstractmethod
    async def acquire(self, video: bool = True, audio: bool = True) -> MediaCapture:
        """
        Acquire a capture handle.

        Raises:
            PermissionDenied: if access was refused
            MediaDeviceError: if no suitable device is available
        """
