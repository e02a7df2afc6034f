"""Error kinds raised by the still_motion pipeline."""
from __future__ import annotations


class VideoGenerationError(Exception):
    """Base class for every failure surfaced by :func:`generate_video`."""


class InvalidConfig(VideoGenerationError, ValueError):
    """Render configuration is out of range or names an unknown effect."""


class ImageDecodeFailure(VideoGenerationError):
    """Source image could not be interpreted as a non-empty bitmap."""


class EncoderInitFailure(VideoGenerationError):
    """The video encoder could not be started in this environment."""


class EncodingFailure(VideoGenerationError):
    """The encoder failed while frames were being written or flushed."""


class EncoderStateError(EncodingFailure):
    """A sink operation was called in the wrong lifecycle state."""


class FrameRenderFailure(VideoGenerationError):
    """Rasterizing a frame failed."""


class RenderCancelled(VideoGenerationError):
    """The render was aborted between frames by the caller."""


class ProgressReportFailure(VideoGenerationError):
    """The caller's progress callback raised."""
