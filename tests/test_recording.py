"""
Recording accumulator and media capture tests.
"""
import pytest

from interview.recording import Recording
from media.capture import MediaDeviceError, PermissionDenied
from media.streamed import StreamedCapture, StreamedDevicePlatform


async def test_finalize_joins_fragments_in_order():
    recording = Recording(mime_type="audio/webm")
    recording.push(b"one")
    recording.push(b"")
    recording.push(bytearray(b"two"))

    clip = recording.finalize()

    assert clip.data == b"onetwo"
    assert clip.fragment_count == 2
    assert clip.mime_type == "audio/webm"
    assert clip.size == 6


async def test_full_buffer_drops_fragments():
    recording = Recording(max_pending_fragments=2)
    for fragment in (b"a", b"b", b"c"):
        recording.push(fragment)

    assert recording.dropped_fragments == 1
    assert recording.finalize().data == b"ab"


async def test_push_after_finalize_is_ignored():
    recording = Recording()
    recording.push(b"a")
    recording.finalize()

    recording.push(b"late")

    assert recording.pending == 0
    assert recording.closed


async def test_discard_drops_buffered_fragments():
    recording = Recording()
    recording.push(b"a")

    recording.discard()

    assert recording.pending == 0
    assert recording.finalize().data == b""


async def test_streamed_capture_feeds_active_recording():
    capture = StreamedCapture()
    recording = Recording()

    assert capture.feed(b"early") is False
    capture.start(recording.push)
    assert capture.feed(b"chunk") is True
    await capture.stop()
    assert capture.feed(b"late") is False

    assert recording.finalize().data == b"chunk"
    assert capture.fragments_received == 1


async def test_streamed_capture_release_is_idempotent():
    capture = StreamedCapture()
    capture.release()
    capture.release()

    assert capture.released
    assert capture.feed(b"chunk") is False
    with pytest.raises(MediaDeviceError):
        capture.start(lambda fragment: None)


async def test_streamed_platform_respects_client_permission():
    with pytest.raises(PermissionDenied):
        await StreamedDevicePlatform(granted=False).acquire()
    with pytest.raises(MediaDeviceError):
        await StreamedDevicePlatform().acquire(video=False, audio=False)

    capture = await StreamedDevicePlatform().acquire(video=False, audio=True)
    assert capture.audio and not capture.video
