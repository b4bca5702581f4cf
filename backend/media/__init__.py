"""
Media capture module: device platform interface and the client-streamed capture.
"""

from .capture import MediaCapture, MediaDevicePlatform, MediaDeviceError, PermissionDenied
from .streamed import StreamedCapture, StreamedDevicePlatform

__all__ = [
    'MediaCapture',
    'MediaDevicePlatform',
    'MediaDeviceError',
    'PermissionDenied',
    'StreamedCapture',
    'StreamedDevicePlatform',
]
