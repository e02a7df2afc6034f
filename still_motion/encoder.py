"""Video encoder sink: ordered RGB frames in, one WebM byte stream out."""
from __future__ import annotations

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass

import numpy as np
from moviepy.video.io.ffmpeg_writer import FFMPEG_VideoWriter

from .bin_config import has_encoder, resolve_ffmpeg, use_ffmpeg
from .config import CODEC, DEFAULT_PROFILE, export_profile
from .errors import EncoderInitFailure, EncoderStateError, EncodingFailure

NEW = "new"
OPEN = "open"
FINALIZED = "finalized"
ABORTED = "aborted"


@dataclass(frozen=True)
class EncodedVideo:
    """Encoded video bytes and the media type they should be served as."""

    data: bytes
    media_type: str
    frame_count: int
    frame_rate: int
    width: int
    height: int

    @property
    def duration(self) -> float:
        return self.frame_count / self.frame_rate

    def save(self, path) -> str:
        with open(path, "wb") as fh:
            fh.write(self.data)
        return str(path)


class VideoEncoderSink:
    """Single-writer encoder with an explicit open/push/finalize lifecycle.

    Frames must be pushed in display order; the sink does not reorder them.
    ``abort`` discards everything written so far. Used as a context manager the
    sink aborts itself if the block exits while it is still open.
    """

    def __init__(self, profile: str = DEFAULT_PROFILE, ffmpeg: str | None = None):
        self._settings = export_profile(profile)
        self._ffmpeg = ffmpeg
        self._writer = None
        self._tmpdir = None
        self._path = None
        self.size = None
        self.frame_rate = None
        self.frame_count = 0
        self.state = NEW

    def __enter__(self) -> "VideoEncoderSink":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if self.state == OPEN:
            self.abort()
        return False

    def open(self, frame_rate: int, width: int, height: int) -> "VideoEncoderSink":
        if self.state != NEW:
            raise EncoderStateError(f"cannot open a {self.state} sink")
        if frame_rate < 1 or width < 1 or height < 1:
            raise EncoderInitFailure(f"invalid stream geometry {width}x{height}@{frame_rate}")
        binary = resolve_ffmpeg(self._ffmpeg)
        if binary is None:
            raise EncoderInitFailure("ffmpeg executable not found")
        if not has_encoder(binary, CODEC):
            raise EncoderInitFailure(f"{binary} has no {CODEC} encoder")
        use_ffmpeg(binary)
        try:
            self._tmpdir = tempfile.mkdtemp(prefix="still_motion_")
            self._path = os.path.join(self._tmpdir, "video" + self._settings["ext"])
            self._writer = FFMPEG_VideoWriter(
                self._path,
                (width, height),
                frame_rate,
                codec=self._settings["codec"],
                ffmpeg_params=self._settings["ffmpeg_params"],
            )
        except (OSError, ValueError) as exc:
            self._cleanup()
            raise EncoderInitFailure(f"could not start {CODEC} encoder: {exc}") from exc
        self.size = (width, height)
        self.frame_rate = frame_rate
        self.state = OPEN
        logging.info("encoder open: %s %dx%d@%d -> %s", CODEC, width, height, frame_rate, self._path)
        return self

    def push_frame(self, frame: np.ndarray) -> None:
        if self.state != OPEN:
            raise EncoderStateError(f"push_frame on a {self.state} sink")
        w, h = self.size
        if frame.shape != (h, w, 3) or frame.dtype != np.uint8:
            raise EncodingFailure(
                f"frame {self.frame_count} is {frame.shape}/{frame.dtype}, expected ({h}, {w}, 3)/uint8"
            )
        try:
            self._writer.write_frame(np.ascontiguousarray(frame))
        except (OSError, ValueError) as exc:
            self.abort()
            raise EncodingFailure(f"encoder failed at frame {self.frame_count}: {exc}") from exc
        self.frame_count += 1

    def finalize(self) -> EncodedVideo:
        """Flush the encoder and return the finished stream."""
        if self.state != OPEN:
            raise EncoderStateError(f"finalize on a {self.state} sink")
        if self.frame_count == 0:
            self.abort()
            raise EncodingFailure("finalize called before any frame was pushed")
        proc = getattr(self._writer, "proc", None)
        try:
            self._writer.close()
            self._writer = None
            if proc is not None and proc.returncode:
                raise EncodingFailure(f"ffmpeg exited with status {proc.returncode}")
            with open(self._path, "rb") as fh:
                data = fh.read()
        except OSError as exc:
            self.abort()
            raise EncodingFailure(f"could not flush encoder: {exc}") from exc
        except EncodingFailure:
            self.abort()
            raise
        if not data:
            self.abort()
            raise EncodingFailure("encoder produced an empty stream")
        self._cleanup()
        self.state = FINALIZED
        w, h = self.size
        logging.info("encoder finalized: %d frames, %d bytes", self.frame_count, len(data))
        return EncodedVideo(
            data=data,
            media_type=self._settings["media_type"],
            frame_count=self.frame_count,
            frame_rate=self.frame_rate,
            width=w,
            height=h,
        )

    def abort(self) -> None:
        """Discard buffered state without producing output. Idempotent."""
        if self.state in (FINALIZED, ABORTED):
            return
        writer, self._writer = self._writer, None
        proc = getattr(writer, "proc", None)
        if proc is not None:
            # The partial stream is discarded, never flushed.
            if proc.poll() is None:
                proc.kill()
            for pipe in (proc.stdin, proc.stderr):
                if pipe is None:
                    continue
                try:
                    pipe.close()
                except OSError as exc:
                    logging.debug("closing aborted encoder pipe: %s", exc)
            proc.wait()
            writer.proc = None
        self._cleanup()
        if self.state == OPEN:
            logging.info("encoder aborted after %d frames", self.frame_count)
        self.state = ABORTED

    def _cleanup(self) -> None:
        if self._tmpdir:
            shutil.rmtree(self._tmpdir, ignore_errors=True)
        self._tmpdir = None
        self._path = None
