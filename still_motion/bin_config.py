"""Helpers to resolve the ffmpeg executable used for encoding.

Resolution honours an explicit CLI argument, the ``FFMPEG_BINARY`` environment
variable, the binary bundled with ``imageio-ffmpeg`` and finally a search on
``PATH``. The chosen binary is handed to moviepy so its writer uses it.
"""
from __future__ import annotations

import functools
import logging
import os
import shutil
import subprocess
from typing import Optional

import imageio_ffmpeg
from moviepy.video.io import ffmpeg_writer

try:
    from moviepy.config import change_settings
except ImportError:  # moviepy >=2.0
    change_settings = None

# Values moviepy treats as "find it yourself" rather than a path
_MOVIEPY_SENTINELS = {"ffmpeg-imageio", "auto-detect"}


def _validate_binary(path: str | None) -> Optional[str]:
    """Return *path* if it points to an existing executable."""
    if not path or path in _MOVIEPY_SENTINELS:
        return None
    if os.path.isfile(path):
        return path
    return shutil.which(path)


def _bundled_ffmpeg() -> Optional[str]:
    try:
        return imageio_ffmpeg.get_ffmpeg_exe()
    except RuntimeError:
        return None


def use_ffmpeg(path: str) -> None:
    """Point moviepy's video writer at *path*."""
    os.environ["FFMPEG_BINARY"] = path
    if change_settings:
        change_settings({"FFMPEG_BINARY": path})
    else:
        ffmpeg_writer.FFMPEG_BINARY = path


def resolve_ffmpeg(cli_path: str | None = None) -> Optional[str]:
    """Resolve path to the ffmpeg executable.

    Resolution order:
    1. explicit ``cli_path`` argument (e.g. ``--ffmpeg``)
    2. ``FFMPEG_BINARY`` environment variable
    3. the binary shipped with ``imageio-ffmpeg``
    4. ``ffmpeg`` discovered on ``PATH``
    An explicit ``cli_path`` that does not exist is not replaced by a
    fallback; ``None`` is returned instead.
    """
    if cli_path:
        return _validate_binary(cli_path)
    candidates = [
        os.environ.get("FFMPEG_BINARY"),
        _bundled_ffmpeg(),
        shutil.which("ffmpeg"),
    ]
    for cand in candidates:
        path = _validate_binary(cand)
        if path:
            return path
    return None


@functools.lru_cache(maxsize=None)
def has_encoder(binary: str, encoder: str) -> bool:
    """Return True if *binary* lists *encoder* in ``ffmpeg -encoders``."""
    try:
        r = subprocess.run(
            [binary, "-hide_banner", "-encoders"],
            capture_output=True,
            text=True,
            timeout=10,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        logging.warning("probing %s failed: %s", binary, exc)
        return False
    if r.returncode != 0:
        return False
    return any(
        len(parts) > 1 and parts[1] == encoder
        for parts in (line.split() for line in r.stdout.splitlines())
    )
