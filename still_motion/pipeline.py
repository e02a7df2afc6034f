"""End-to-end image to video operation."""
from __future__ import annotations

import asyncio
import logging
import threading
from typing import Callable, Generator, Iterator, Optional, Tuple

import numpy as np
from PIL import Image

from .config import RenderConfig
from .encoder import EncodedVideo, VideoEncoderSink
from .errors import (
    EncoderInitFailure,
    EncodingFailure,
    FrameRenderFailure,
    ImageDecodeFailure,
    ProgressReportFailure,
    RenderCancelled,
    VideoGenerationError,
)
from .sequencer import generate_frames, total_frames
from .source import SourceImage

ProgressFn = Callable[[int, int], None]


def _as_source(image) -> SourceImage:
    if isinstance(image, SourceImage):
        if image.width < 1 or image.height < 1:
            raise ImageDecodeFailure(f"zero-area image {image.width}x{image.height}")
        return image
    if isinstance(image, Image.Image):
        return SourceImage.from_pil(image)
    if isinstance(image, np.ndarray):
        return SourceImage.from_array(image)
    raise ImageDecodeFailure(f"unsupported image type {type(image).__name__}")


def _rendered(frames: Iterator[Tuple[int, np.ndarray]]) -> Iterator[Tuple[int, np.ndarray]]:
    """Re-raise anything the renderer throws as :class:`FrameRenderFailure`."""
    index = 0
    while True:
        try:
            item = next(frames)
        except StopIteration:
            return
        except VideoGenerationError:
            raise
        except Exception as exc:
            raise FrameRenderFailure(f"rendering frame {index} failed: {exc}") from exc
        index = item[0] + 1
        yield item


def _encoding(step, *args):
    """Call a sink *step*, reporting foreign exceptions as :class:`EncodingFailure`."""
    try:
        return step(*args)
    except VideoGenerationError:
        raise
    except Exception as exc:
        raise EncodingFailure(f"encoder step {step.__name__} failed: {exc}") from exc


def _run(
    image,
    config: RenderConfig,
    workers: int | None,
    progress: Optional[ProgressFn],
    cancel: Optional[threading.Event],
    ffmpeg: str | None,
) -> Generator[int, None, EncodedVideo]:
    config.check()
    source = _as_source(image)
    total = total_frames(config)
    try:
        frames = generate_frames(source, config, workers=workers)
    except VideoGenerationError:
        raise
    except Exception as exc:
        raise FrameRenderFailure(f"preparing renderer failed: {exc}") from exc
    logging.info(
        "rendering %s %dx%d, %d frames (%s, %dx%d source)",
        config.effect.value,
        config.output_width,
        config.output_height,
        total,
        config.profile,
        source.width,
        source.height,
    )
    sink = VideoEncoderSink(profile=config.profile, ffmpeg=ffmpeg)
    try:
        sink.open(config.frame_rate, config.output_width, config.output_height)
    except VideoGenerationError:
        raise
    except Exception as exc:
        sink.abort()
        raise EncoderInitFailure(f"could not open encoder: {exc}") from exc
    with sink:
        try:
            for index, frame in _rendered(frames):
                if cancel is not None and cancel.is_set():
                    raise RenderCancelled(f"cancelled before frame {index}")
                _encoding(sink.push_frame, frame)
                if progress is not None:
                    try:
                        progress(index + 1, total)
                    except Exception as exc:
                        raise ProgressReportFailure(f"progress callback failed: {exc}") from exc
                yield index
        finally:
            frames.close()
        return _encoding(sink.finalize)


def _log_failure(exc: VideoGenerationError) -> None:
    if isinstance(exc, RenderCancelled):
        logging.info("video generation cancelled: %s", exc)
    else:
        logging.error("video generation failed (%s): %s", type(exc).__name__, exc)


def generate_video(
    image,
    config: RenderConfig,
    *,
    workers: int | None = None,
    progress: Optional[ProgressFn] = None,
    cancel: Optional[threading.Event] = None,
    ffmpeg: str | None = None,
) -> EncodedVideo:
    """Render *image* under ``config.effect`` and return the encoded video.

    Raises exactly one :class:`VideoGenerationError` subclass on failure; no
    partial output is ever returned. ``cancel`` is checked between frames.
    """
    steps = _run(image, config, workers, progress, cancel, ffmpeg)
    try:
        while True:
            next(steps)
    except StopIteration as done:
        return done.value
    except VideoGenerationError as exc:
        _log_failure(exc)
        raise
    finally:
        steps.close()


async def generate_video_async(
    image,
    config: RenderConfig,
    *,
    progress: Optional[ProgressFn] = None,
    cancel: Optional[threading.Event] = None,
    ffmpeg: str | None = None,
) -> EncodedVideo:
    """Like :func:`generate_video` but yields to the event loop after every frame."""
    steps = _run(image, config, None, progress, cancel, ffmpeg)
    try:
        while True:
            next(steps)
            await asyncio.sleep(0)
    except StopIteration as done:
        return done.value
    except VideoGenerationError as exc:
        _log_failure(exc)
        raise
    finally:
        steps.close()
