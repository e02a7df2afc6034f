"""Rasterize single frames of the source image under a placement."""
from __future__ import annotations

import logging
import math

import cv2
import numpy as np

from .effects import Placement, aspect_fit
from .errors import FrameRenderFailure
from .source import SourceImage

# Largest zoom any effect applies; bounds the working resolution.
MAX_EFFECT_SCALE = 1.5


def _edge_coverage(pos: np.ndarray, extent: int, px: float) -> np.ndarray:
    """Fraction of a canvas pixel lying inside ``[0, extent]`` along one axis.

    *pos* is the pixel centre in source coordinates and *px* the canvas pixels
    per source pixel along that axis.
    """
    inside = np.minimum(0.5, pos * px) + np.minimum(0.5, (extent - pos) * px)
    return np.clip(inside, 0.0, 1.0)


def _coverage(M: np.ndarray, w: int, h: int, canvas_w: int, canvas_h: int) -> np.ndarray:
    """Area coverage of every canvas pixel by the warped image rectangle."""
    inv = cv2.invertAffineTransform(M)
    xs = np.arange(canvas_w, dtype=np.float64)[None, :]
    ys = np.arange(canvas_h, dtype=np.float64)[:, None]
    u = inv[0, 0] * xs + inv[0, 1] * ys + inv[0, 2] + 0.5
    v = inv[1, 0] * xs + inv[1, 1] * ys + inv[1, 2] + 0.5
    kx = math.hypot(M[0, 0], M[1, 0])
    ky = math.hypot(M[0, 1], M[1, 1])
    return _edge_coverage(u, w, kx) * _edge_coverage(v, h, ky)


def _composite(pixels: np.ndarray, placement: Placement, canvas_w: int, canvas_h: int) -> np.ndarray:
    h, w = pixels.shape[:2]
    M = placement.matrix(w, h, canvas_w, canvas_h)
    # Colour is sampled clamp-to-edge; coverage decides how much of it shows.
    colour = cv2.warpAffine(
        pixels,
        M,
        (canvas_w, canvas_h),
        flags=cv2.INTER_LINEAR,
        borderMode=cv2.BORDER_REPLICATE,
    )
    weight = (_coverage(M, w, h, canvas_w, canvas_h) * placement.opacity).astype(np.float32)
    frame = colour[..., :3].astype(np.float32) * weight[..., None]
    return np.clip(np.rint(frame), 0, 255).astype(np.uint8)


def _checked(frame: np.ndarray, canvas_w: int, canvas_h: int) -> np.ndarray:
    if frame.shape != (canvas_h, canvas_w, 3):
        raise FrameRenderFailure(
            f"rendered frame is {frame.shape}, expected ({canvas_h}, {canvas_w}, 3)"
        )
    return frame


def render_frame(
    source: SourceImage, placement: Placement, canvas_w: int, canvas_h: int
) -> np.ndarray:
    """Return a fresh ``(canvas_h, canvas_w, 3)`` RGB frame on black."""
    return _checked(_composite(source.pixels, placement, canvas_w, canvas_h), canvas_w, canvas_h)


class FrameRenderer:
    """Renderer bound to one source image and canvas size for one render.

    Large sources are downsampled once with ``INTER_AREA`` to the biggest size
    any effect can display, so per-frame warps do not alias.
    """

    def __init__(self, source: SourceImage, canvas_w: int, canvas_h: int):
        self.source = source
        self.canvas_w = canvas_w
        self.canvas_h = canvas_h
        self._pixels = self._working_pixels()

    def _working_pixels(self) -> np.ndarray:
        _, _, fit_w, fit_h = aspect_fit(
            self.canvas_w, self.canvas_h, self.source.width, self.source.height
        )
        need_w = max(1, int(np.ceil(fit_w * MAX_EFFECT_SCALE)))
        need_h = max(1, int(np.ceil(fit_h * MAX_EFFECT_SCALE)))
        if self.source.width <= need_w or self.source.height <= need_h:
            return self.source.pixels
        logging.info(
            "downsampling source %dx%d -> %dx%d",
            self.source.width,
            self.source.height,
            need_w,
            need_h,
        )
        return cv2.resize(self.source.pixels, (need_w, need_h), interpolation=cv2.INTER_AREA)

    def render(self, placement: Placement) -> np.ndarray:
        frame = _composite(self._pixels, placement, self.canvas_w, self.canvas_h)
        return _checked(frame, self.canvas_w, self.canvas_h)
