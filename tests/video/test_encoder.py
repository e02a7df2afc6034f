import os

import imageio_ffmpeg
import numpy as np
import pytest

from still_motion.bin_config import has_encoder, resolve_ffmpeg
from still_motion.encoder import ABORTED, FINALIZED, VideoEncoderSink
from still_motion.errors import EncoderInitFailure, EncoderStateError, EncodingFailure

FF = resolve_ffmpeg()

pytestmark = pytest.mark.skipif(
    FF is None or not has_encoder(FF, "libvpx-vp9"), reason="requires ffmpeg with libvpx-vp9"
)

W, H = 64, 36


def _frames(n):
    for i in range(n):
        f = np.zeros((H, W, 3), dtype=np.uint8)
        f[:, : (i * 4) % W] = (200, 40, 40)
        yield f


def test_encode_roundtrip_frame_count(tmp_path):
    with VideoEncoderSink(profile="preview") as sink:
        sink.open(30, W, H)
        for f in _frames(12):
            sink.push_frame(f)
        video = sink.finalize()
    assert sink.state == FINALIZED
    assert video.media_type == "video/webm"
    assert video.frame_count == 12
    assert video.data[:4] == b"\x1a\x45\xdf\xa3"  # EBML header
    out = tmp_path / "clip.webm"
    video.save(out)
    nframes, _ = imageio_ffmpeg.count_frames_and_secs(str(out))
    assert nframes == 12


def test_push_after_finalize_is_error():
    sink = VideoEncoderSink(profile="preview").open(30, W, H)
    sink.push_frame(next(_frames(1)))
    sink.finalize()
    with pytest.raises(EncoderStateError):
        sink.push_frame(next(_frames(1)))
    with pytest.raises(EncoderStateError):
        sink.finalize()


def test_push_before_open_is_error():
    with pytest.raises(EncoderStateError):
        VideoEncoderSink().push_frame(np.zeros((H, W, 3), dtype=np.uint8))


def test_finalize_without_frames_fails_and_aborts():
    sink = VideoEncoderSink(profile="preview").open(30, W, H)
    with pytest.raises(EncodingFailure):
        sink.finalize()
    assert sink.state == ABORTED


def test_mis_sized_frame_rejected():
    with VideoEncoderSink(profile="preview") as sink:
        sink.open(30, W, H)
        with pytest.raises(EncodingFailure):
            sink.push_frame(np.zeros((H + 2, W, 3), dtype=np.uint8))
    assert sink.state == ABORTED


def test_abort_discards_partial_output():
    sink = VideoEncoderSink(profile="preview").open(30, W, H)
    tmpdir = sink._tmpdir
    for f in _frames(3):
        sink.push_frame(f)
    sink.abort()
    sink.abort()
    assert sink.state == ABORTED
    assert tmpdir and not os.path.exists(tmpdir)
    with pytest.raises(EncoderStateError):
        sink.push_frame(next(_frames(1)))


def test_context_manager_aborts_on_error():
    with pytest.raises(RuntimeError):
        with VideoEncoderSink(profile="preview") as sink:
            sink.open(30, W, H)
            sink.push_frame(next(_frames(1)))
            raise RuntimeError("boom")
    assert sink.state == ABORTED


def test_missing_ffmpeg(tmp_path):
    with pytest.raises(EncoderInitFailure):
        VideoEncoderSink(ffmpeg=str(tmp_path / "no-ffmpeg")).open(30, W, H)


def test_open_twice_is_error():
    sink = VideoEncoderSink(profile="preview").open(30, W, H)
    try:
        with pytest.raises(EncoderStateError):
            sink.open(30, W, H)
    finally:
        sink.abort()
