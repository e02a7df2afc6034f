"""Decoded source image handed to the renderer."""
from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from PIL import Image, ImageOps

from .errors import ImageDecodeFailure


def _premultiply(arr: np.ndarray) -> np.ndarray:
    """Return RGBA *arr* with RGB channels pre-multiplied by alpha."""
    rgb = arr[..., :3].astype(np.float32)
    alpha = arr[..., 3:4].astype(np.float32) / 255.0
    out = arr.copy()
    out[..., :3] = np.rint(rgb * alpha).astype(np.uint8)
    return out


@dataclass(frozen=True)
class SourceImage:
    """Read-only RGBA bitmap with premultiplied colour."""

    pixels: np.ndarray

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> tuple[int, int]:
        return (self.width, self.height)

    @classmethod
    def from_array(cls, arr: np.ndarray) -> "SourceImage":
        """Wrap a ``uint8`` gray, RGB or straight-alpha RGBA array."""
        arr = np.asarray(arr)
        if arr.dtype != np.uint8:
            raise ImageDecodeFailure(f"expected uint8 pixels, got {arr.dtype}")
        if arr.ndim == 2:
            arr = arr[..., None]
        if arr.ndim != 3 or arr.shape[2] not in (1, 3, 4):
            raise ImageDecodeFailure(f"unsupported pixel layout {arr.shape}")
        h, w = arr.shape[:2]
        if w < 1 or h < 1:
            raise ImageDecodeFailure(f"zero-area image {w}x{h}")
        if arr.shape[2] == 1:
            arr = np.repeat(arr, 3, axis=2)
        if arr.shape[2] == 3:
            alpha = np.full((h, w, 1), 255, dtype=np.uint8)
            rgba = np.concatenate([arr, alpha], axis=2)
        else:
            rgba = _premultiply(arr)
        rgba = np.ascontiguousarray(rgba)
        rgba.setflags(write=False)
        return cls(rgba)

    @classmethod
    def from_pil(cls, img: Image.Image) -> "SourceImage":
        if img.width < 1 or img.height < 1:
            raise ImageDecodeFailure(f"zero-area image {img.width}x{img.height}")
        return cls.from_array(np.array(img.convert("RGBA")))


def load_image(path) -> SourceImage:
    """Decode the image file at *path*, honouring EXIF orientation."""
    try:
        with Image.open(path) as img:
            img.load()
            img = ImageOps.exif_transpose(img)
            src = SourceImage.from_pil(img)
    except (OSError, Image.DecompressionBombError, ValueError) as exc:
        raise ImageDecodeFailure(f"cannot decode image {path}: {exc}") from exc
    logging.info("loaded %s (%dx%d)", path, src.width, src.height)
    return src
