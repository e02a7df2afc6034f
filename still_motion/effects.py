"""Effect transforms mapping render progress to an image placement.

Every effect starts from the same aspect-fit rectangle (the image scaled to fit
inside the canvas and centred) and layers a zoom, pan, rotation or opacity
change on top of it. All functions here are pure.
"""
from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from .errors import InvalidConfig


class Effect(str, enum.Enum):
    ZOOM_IN = "zoom-in"
    ZOOM_OUT = "zoom-out"
    PAN_LEFT = "pan-left"
    PAN_RIGHT = "pan-right"
    PAN_UP = "pan-up"
    PAN_DOWN = "pan-down"
    ROTATE = "rotate"
    FADE = "fade"


ZOOM_SPAN = 0.5
PAN_SCALE = 1.2
PAN_SPAN = 0.2
FADE_FLOOR = 0.1

Rect = Tuple[float, float, float, float]

_BY_NAME = {e.value: e for e in Effect}


def effect_names() -> List[str]:
    """Return accepted effect names in declaration order."""
    return [e.value for e in Effect]


def lookup_effect(value) -> Optional[Effect]:
    """Return the :class:`Effect` named by *value*, or ``None`` if there is none."""
    if isinstance(value, Effect):
        return value
    return _BY_NAME.get(str(value).strip().lower())


def parse_effect(value) -> Effect:
    """Return the :class:`Effect` named by *value*.

    Unknown names raise :class:`InvalidConfig` instead of falling back to a
    static frame.
    """
    effect = lookup_effect(value)
    if effect is None:
        raise InvalidConfig(
            f"unknown effect {value!r}; expected one of {', '.join(effect_names())}"
        )
    return effect


@dataclass(frozen=True)
class Placement:
    """Where and how the source image lands on the canvas for one frame.

    ``x``/``y``/``width``/``height`` describe the aspect-fit rectangle. The
    rectangle is then scaled and rotated about the canvas centre and shifted by
    ``offset_x``/``offset_y`` canvas pixels.
    """

    x: float
    y: float
    width: float
    height: float
    scale: float = 1.0
    rotation: float = 0.0
    offset_x: float = 0.0
    offset_y: float = 0.0
    opacity: float = 1.0

    def affine(self, image_w: int, image_h: int, canvas_w: int, canvas_h: int) -> np.ndarray:
        """Return the 3x3 matrix mapping continuous image coordinates to canvas."""
        fit = np.array(
            [
                [self.width / image_w, 0.0, self.x],
                [0.0, self.height / image_h, self.y],
                [0.0, 0.0, 1.0],
            ]
        )
        cx, cy = canvas_w / 2.0, canvas_h / 2.0
        c = math.cos(self.rotation) * self.scale
        s = math.sin(self.rotation) * self.scale
        about = np.array(
            [
                [c, -s, cx - c * cx + s * cy + self.offset_x],
                [s, c, cy - s * cx - c * cy + self.offset_y],
                [0.0, 0.0, 1.0],
            ]
        )
        return about @ fit

    def matrix(self, image_w: int, image_h: int, canvas_w: int, canvas_h: int) -> np.ndarray:
        """Return the 2x3 matrix in pixel-index coordinates for ``cv2.warpAffine``."""
        to_cont = np.array([[1.0, 0.0, 0.5], [0.0, 1.0, 0.5], [0.0, 0.0, 1.0]])
        to_index = np.array([[1.0, 0.0, -0.5], [0.0, 1.0, -0.5], [0.0, 0.0, 1.0]])
        m = to_index @ self.affine(image_w, image_h, canvas_w, canvas_h) @ to_cont
        return m[:2].astype(np.float64)


def aspect_fit(canvas_w: int, canvas_h: int, image_w: int, image_h: int) -> Rect:
    """Return ``(x, y, w, h)`` of the largest centred rect with the image aspect."""
    img_aspect = image_w / image_h
    canvas_aspect = canvas_w / canvas_h
    draw_w = float(canvas_w)
    draw_h = float(canvas_h)
    if img_aspect > canvas_aspect:
        draw_h = canvas_w / img_aspect
    else:
        draw_w = canvas_h * img_aspect
    return ((canvas_w - draw_w) / 2, (canvas_h - draw_h) / 2, draw_w, draw_h)


def _zoom_in(p: float, w: int, h: int) -> dict:
    return {"scale": 1.0 + ZOOM_SPAN * p}


def _zoom_out(p: float, w: int, h: int) -> dict:
    return {"scale": (1.0 + ZOOM_SPAN) - ZOOM_SPAN * p}


def _pan_left(p: float, w: int, h: int) -> dict:
    return {"scale": PAN_SCALE, "offset_x": -PAN_SPAN * p * w}


def _pan_right(p: float, w: int, h: int) -> dict:
    return {"scale": PAN_SCALE, "offset_x": PAN_SPAN * p * w}


def _pan_up(p: float, w: int, h: int) -> dict:
    return {"scale": PAN_SCALE, "offset_y": -PAN_SPAN * p * h}


def _pan_down(p: float, w: int, h: int) -> dict:
    return {"scale": PAN_SCALE, "offset_y": PAN_SPAN * p * h}


def _rotate(p: float, w: int, h: int) -> dict:
    return {"rotation": p * math.pi * 2}


def _fade(p: float, w: int, h: int) -> dict:
    alpha = p * 2 if p < 0.5 else (1 - p) * 2
    return {"opacity": max(FADE_FLOOR, alpha)}


_HANDLERS: Dict[Effect, Callable[[float, int, int], dict]] = {
    Effect.ZOOM_IN: _zoom_in,
    Effect.ZOOM_OUT: _zoom_out,
    Effect.PAN_LEFT: _pan_left,
    Effect.PAN_RIGHT: _pan_right,
    Effect.PAN_UP: _pan_up,
    Effect.PAN_DOWN: _pan_down,
    Effect.ROTATE: _rotate,
    Effect.FADE: _fade,
}

_missing = set(Effect) - set(_HANDLERS)
if _missing:  # pragma: no cover - guards edits to Effect
    raise RuntimeError(f"effects without a handler: {sorted(e.value for e in _missing)}")


def identity_placement(canvas_w: int, canvas_h: int, image_w: int, image_h: int) -> Placement:
    """Static placement: aspect-fit rectangle, no zoom, pan, rotation or fade."""
    return Placement(*aspect_fit(canvas_w, canvas_h, image_w, image_h))


def compute_placement(
    effect,
    progress: float,
    canvas_w: int,
    canvas_h: int,
    image_w: int,
    image_h: int,
) -> Placement:
    """Return the :class:`Placement` of *effect* at *progress* in ``[0, 1]``."""
    effect = parse_effect(effect)
    if not 0.0 <= progress <= 1.0:
        raise ValueError(f"progress must be within [0,1], got {progress}")
    if min(canvas_w, canvas_h, image_w, image_h) < 1:
        raise ValueError("canvas and image dimensions must be >= 1")
    rect = aspect_fit(canvas_w, canvas_h, image_w, image_h)
    return Placement(*rect, **_HANDLERS[effect](progress, canvas_w, canvas_h))
