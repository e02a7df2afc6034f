"""Command line interface for still_motion."""
from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

import yaml

from .config import CONTAINER_EXT, DEFAULT_DURATION, DEFAULT_PROFILE, EXPORT_PROFILES, RenderConfig
from .effects import effect_names
from .errors import ImageDecodeFailure, VideoGenerationError
from .pipeline import generate_video
from .source import load_image
from .validate import validate_args

# Shown to users for every failure; the specific kind is only logged.
FAILURE_MESSAGE = "Failed to generate video. Please try again."


def _nonneg_int(x: str) -> int:
    v = int(x)
    if v < 0:
        raise argparse.ArgumentTypeError("--workers must be >= 0")
    return v


def _resolve_out_path(output_arg: str | None, image_path: str, effect: str) -> str:
    """Return a path that does not overwrite an existing file.

    *output_arg* may be a file path or a directory; by default the video is
    written next to the image as ``<stem>-<effect>.webm``.
    """
    default_name = f"{Path(image_path).stem}-{effect}{CONTAINER_EXT}"
    if output_arg:
        if output_arg.endswith(os.sep) or os.path.isdir(output_arg):
            out = os.path.join(output_arg, default_name)
        else:
            out = output_arg
    else:
        out = os.path.join(os.path.dirname(os.path.abspath(image_path)), default_name)

    os.makedirs(os.path.dirname(os.path.abspath(out)), exist_ok=True)

    if not os.path.exists(out):
        return out
    root, ext = os.path.splitext(out)
    i = 2
    while True:
        cand = f"{root}_{i}{ext}"
        if not os.path.exists(cand):
            return cand
        i += 1


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Turn a still image into a short animated video")
    parser.add_argument("image", help="Input image (PNG, JPG, WEBP, ...)")
    parser.add_argument("--preset", action="append", default=[], help="Path to YAML preset overriding defaults")
    parser.add_argument("--effect", choices=effect_names(), default="zoom-in", help="Animation effect")
    parser.add_argument("--duration", type=int, default=DEFAULT_DURATION, help="Video length in seconds (1-10)")
    parser.add_argument(
        "--profile",
        choices=list(EXPORT_PROFILES),
        default=DEFAULT_PROFILE,
        help="Export quality profile",
    )
    parser.add_argument(
        "--output",
        help="Path to WebM file or output directory. If existing, a counter is appended.",
    )
    parser.add_argument(
        "--workers",
        type=_nonneg_int,
        default=0,
        help="Render frames on N threads (0 = sequential)",
    )
    parser.add_argument("--ffmpeg", help="Path to ffmpeg binary")
    parser.add_argument("--validate", action="store_true", help="Validate arguments and exit")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress")

    prelim, _ = parser.parse_known_args(argv)
    for path in prelim.preset:
        with open(path, "r", encoding="utf8") as fh:
            data = yaml.safe_load(fh) or {}
        parser.set_defaults(**{k.replace("-", "_"): v for k, v in data.items()})

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(levelname)s %(message)s",
    )
    errs = validate_args(args)
    if errs:
        for e in errs:
            print(f"validation error: {e}", file=sys.stderr)
        raise SystemExit(1)
    if args.validate:
        return

    config = RenderConfig.from_options(args.duration, args.effect, args.profile)

    def _report(done: int, total: int) -> None:
        if done % config.frame_rate == 0 or done == total:
            logging.info("rendered %d/%d frames", done, total)

    try:
        image = load_image(args.image)
    except ImageDecodeFailure as exc:
        logging.error("could not read %s: %s", args.image, exc)
        raise SystemExit(FAILURE_MESSAGE) from None
    try:
        video = generate_video(
            image,
            config,
            workers=args.workers or None,
            progress=_report,
            ffmpeg=args.ffmpeg,
        )
    except VideoGenerationError:
        raise SystemExit(FAILURE_MESSAGE) from None

    out_path = _resolve_out_path(args.output, args.image, config.effect.value)
    video.save(out_path)
    logging.info("wrote %s (%s, %.1fs)", out_path, video.media_type, video.duration)
    print(out_path)


if __name__ == "__main__":
    main()
