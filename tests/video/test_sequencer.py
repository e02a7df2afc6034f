import numpy as np
import pytest

from still_motion.config import RenderConfig
from still_motion.effects import Effect
from still_motion.errors import InvalidConfig
from still_motion.sequencer import generate_frames, placements, progress_values, total_frames
from still_motion.source import SourceImage


def _cfg(duration=1, effect=Effect.ZOOM_IN, **kw):
    kw.setdefault("output_width", 32)
    kw.setdefault("output_height", 18)
    return RenderConfig(duration_seconds=duration, effect=effect, **kw)


def _src():
    arr = np.zeros((3, 3, 3), dtype=np.uint8)
    arr[..., 0] = 255
    return SourceImage.from_array(arr)


@pytest.mark.parametrize("duration", range(1, 11))
def test_total_frames_is_duration_times_rate(duration):
    assert total_frames(RenderConfig(duration_seconds=duration)) == duration * 30


def test_progress_never_reaches_one():
    values = progress_values(30)
    assert values[0] == 0.0
    assert values[-1] == 29 / 30
    assert len(values) == 30


def test_progress_guard():
    with pytest.raises(InvalidConfig):
        progress_values(0)


@pytest.mark.parametrize("duration", [0, -2])
def test_no_frames_for_non_positive_duration(duration):
    with pytest.raises(InvalidConfig):
        generate_frames(_src(), _cfg(duration))


def test_frames_strictly_ordered_and_complete():
    frames = list(generate_frames(_src(), _cfg(1)))
    assert [i for i, _ in frames] == list(range(30))
    assert all(f.shape == (18, 32, 3) for _, f in frames)


def test_zoom_in_end_to_end_placements():
    steps = placements(_src(), RenderConfig(duration_seconds=1, effect=Effect.ZOOM_IN))
    assert len(steps) == 30
    first, last = steps[0][1], steps[-1][1]
    assert first.scale == 1.0
    assert (first.x, first.y, first.width, first.height) == (280.0, 0.0, 720.0, 720.0)
    assert last.scale == pytest.approx(1 + 0.5 * 29 / 30)
    assert last.scale == pytest.approx(1.483, abs=1e-3)


@pytest.mark.parametrize("effect", list(Effect))
def test_parallel_matches_sequential(effect):
    seq = list(generate_frames(_src(), _cfg(1, effect)))
    par = list(generate_frames(_src(), _cfg(1, effect), workers=4))
    assert [i for i, _ in par] == [i for i, _ in seq]
    assert all(np.array_equal(a, b) for (_, a), (_, b) in zip(seq, par))
