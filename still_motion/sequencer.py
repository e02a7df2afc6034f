"""Frame sequencing: frame count, progress values and ordered rendering."""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Iterator, List, Tuple

import numpy as np

from .config import RenderConfig
from .effects import Placement, compute_placement
from .errors import InvalidConfig
from .renderer import FrameRenderer
from .source import SourceImage


def total_frames(config: RenderConfig) -> int:
    """Return ``duration_seconds * frame_rate``; at least one frame is required."""
    total = int(config.duration_seconds) * int(config.frame_rate)
    if total < 1:
        raise InvalidConfig(f"render needs at least one frame, got {total}")
    return total


def progress_values(total: int) -> List[float]:
    """Progress of each frame: ``i / total``, so the last frame stays below 1."""
    if total < 1:
        raise InvalidConfig(f"render needs at least one frame, got {total}")
    return [i / total for i in range(total)]


def placements(source: SourceImage, config: RenderConfig) -> List[Tuple[int, Placement]]:
    """Return ``(index, placement)`` for every frame of the render."""
    return [
        (
            i,
            compute_placement(
                config.effect,
                p,
                config.output_width,
                config.output_height,
                source.width,
                source.height,
            ),
        )
        for i, p in enumerate(progress_values(total_frames(config)))
    ]


def _sequential(renderer: FrameRenderer, steps) -> Iterator[Tuple[int, np.ndarray]]:
    for index, placement in steps:
        yield index, renderer.render(placement)


def _parallel(renderer: FrameRenderer, steps, workers: int) -> Iterator[Tuple[int, np.ndarray]]:
    # Bounded windows keep memory flat; map() returns results in input order.
    window = workers * 2
    with ThreadPoolExecutor(max_workers=workers) as pool:
        for start in range(0, len(steps), window):
            batch = steps[start : start + window]
            frames = pool.map(renderer.render, [pl for _, pl in batch])
            for (index, _), frame in zip(batch, frames):
                yield index, frame


def generate_frames(
    source: SourceImage,
    config: RenderConfig,
    workers: int | None = None,
) -> Iterator[Tuple[int, np.ndarray]]:
    """Yield ``(index, frame)`` in strictly increasing index order.

    Frame count and placements are computed before the first frame is
    rendered, so an invalid config fails without emitting anything. With
    ``workers > 1`` frames are rasterized on a thread pool and re-sequenced.
    """
    steps = placements(source, config)
    renderer = FrameRenderer(source, config.output_width, config.output_height)
    if workers and workers > 1:
        return _parallel(renderer, steps, workers)
    return _sequential(renderer, steps)
