"""Argument validation helpers for the still_motion CLI."""
from __future__ import annotations

from argparse import Namespace
from typing import List

from .config import RenderConfig
from .effects import Effect, parse_effect
from .errors import InvalidConfig


def validate_args(args: Namespace) -> List[str]:
    """Validate parsed CLI arguments.

    Returns a list of human readable error messages. The caller should abort
    if the list is non-empty.
    """
    errors: List[str] = []
    effect = Effect.ZOOM_IN
    try:
        effect = parse_effect(args.effect)
    except InvalidConfig as exc:
        errors.append(f"--effect: {exc}")
    config = RenderConfig(
        duration_seconds=args.duration, effect=effect, profile=args.profile
    )
    for msg in config.validate():
        if msg.startswith("duration"):
            errors.append(f"--duration: {msg}")
        elif "profile" in msg:
            errors.append(f"--profile: {msg}")
        else:
            errors.append(msg)
    if args.workers < 0:
        errors.append("--workers must be >= 0")
    return errors
