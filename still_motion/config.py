"""Configuration helpers for still_motion."""
from __future__ import annotations

import numbers
import os
from dataclasses import dataclass
from typing import Dict, List

from .effects import Effect, lookup_effect, parse_effect
from .errors import InvalidConfig

FRAME_RATE = 30
OUTPUT_SIZE = (1280, 720)
MIN_DURATION = 1
MAX_DURATION = 10
DEFAULT_DURATION = 3

# One fixed output format: VP9 in WebM
CODEC = "libvpx-vp9"
CONTAINER_EXT = ".webm"
MEDIA_TYPE = "video/webm"

IMAGE_EXTS = {".jpg", ".jpeg", ".png", ".bmp", ".webp", ".gif", ".tif", ".tiff"}

EXPORT_PROFILES: Dict[str, Dict[str, str]] = {
    "preview": {"crf": "40", "deadline": "realtime", "cpu_used": "8"},
    "social": {"crf": "32", "deadline": "good", "cpu_used": "4"},
    "quality": {"crf": "24", "deadline": "good", "cpu_used": "1"},
}

DEFAULT_PROFILE = os.environ.get("STILL_MOTION_PROFILE") or "social"


def export_profile(profile: str) -> Dict[str, object]:
    """Return encoder settings for the given export *profile*."""
    try:
        base = EXPORT_PROFILES[profile]
    except KeyError:
        raise InvalidConfig(
            f"unknown export profile {profile!r}; expected one of {', '.join(EXPORT_PROFILES)}"
        ) from None
    ffmpeg_params = [
        "-pix_fmt", "yuv420p",
        "-crf", base["crf"],
        "-b:v", "0",
        "-deadline", base["deadline"],
        "-cpu-used", base["cpu_used"],
        "-threads", "1",
    ]
    return {
        "codec": CODEC,
        "ffmpeg_params": ffmpeg_params,
        "media_type": MEDIA_TYPE,
        "ext": CONTAINER_EXT,
    }


@dataclass(frozen=True)
class RenderConfig:
    """Parameters of one render.

    ``frame_rate`` and the output size default to the product constants; they
    are fields so that tests can render on a smaller canvas.
    """

    duration_seconds: int = DEFAULT_DURATION
    effect: Effect = Effect.ZOOM_IN
    frame_rate: int = FRAME_RATE
    output_width: int = OUTPUT_SIZE[0]
    output_height: int = OUTPUT_SIZE[1]
    profile: str = DEFAULT_PROFILE

    def __post_init__(self) -> None:
        # Accept effect names; unknown ones stay as given and fail validation.
        effect = lookup_effect(self.effect)
        if effect is not None:
            object.__setattr__(self, "effect", effect)

    @classmethod
    def from_options(
        cls,
        duration_seconds: int = DEFAULT_DURATION,
        effect="zoom-in",
        profile: str | None = None,
    ) -> "RenderConfig":
        """Build a config from user-facing values, parsing the effect name."""
        return cls(
            duration_seconds=duration_seconds,
            effect=parse_effect(effect),
            profile=profile or DEFAULT_PROFILE,
        )

    def validate(self) -> List[str]:
        """Return human readable errors; an empty list means the config is usable."""
        errors: List[str] = []
        d = self.duration_seconds
        if isinstance(d, bool) or not isinstance(d, numbers.Integral):
            errors.append(f"duration must be a whole number of seconds, got {d!r}")
        elif not MIN_DURATION <= d <= MAX_DURATION:
            errors.append(
                f"duration {d}s out of range [{MIN_DURATION},{MAX_DURATION}]"
            )
        if not isinstance(self.effect, Effect):
            errors.append(f"unknown effect {self.effect!r}")
        if self.frame_rate < 1:
            errors.append("frame rate must be >= 1")
        if self.output_width < 2 or self.output_height < 2:
            errors.append("output size must be at least 2x2")
        elif self.output_width % 2 or self.output_height % 2:
            errors.append("output size must be even for yuv420p")
        if self.profile not in EXPORT_PROFILES:
            errors.append(f"unknown export profile {self.profile!r}")
        return errors

    def check(self) -> None:
        """Raise :class:`InvalidConfig` listing every validation error."""
        errors = self.validate()
        if errors:
            raise InvalidConfig("; ".join(errors))
