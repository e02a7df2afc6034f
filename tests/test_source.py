import numpy as np
import pytest
from PIL import Image

from still_motion.errors import ImageDecodeFailure
from still_motion.source import SourceImage, load_image


def test_from_array_rgb_adds_opaque_alpha():
    src = SourceImage.from_array(np.zeros((2, 5, 3), dtype=np.uint8))
    assert src.size == (5, 2)
    assert src.pixels.shape == (2, 5, 4)
    assert np.all(src.pixels[..., 3] == 255)


def test_pixels_are_read_only():
    src = SourceImage.from_array(np.zeros((2, 2, 3), dtype=np.uint8))
    with pytest.raises(ValueError):
        src.pixels[0, 0, 0] = 1


def test_straight_alpha_is_premultiplied():
    arr = np.array([[[200, 100, 50, 128]]], dtype=np.uint8)
    src = SourceImage.from_array(arr)
    assert src.pixels[0, 0].tolist() == [100, 50, 25, 128]


def test_gray_is_expanded():
    src = SourceImage.from_array(np.full((3, 4), 9, dtype=np.uint8))
    assert src.pixels.shape == (3, 4, 4)
    assert src.pixels[0, 0].tolist() == [9, 9, 9, 255]


@pytest.mark.parametrize("shape", [(0, 4, 3), (4, 0, 3)])
def test_zero_area_rejected(shape):
    with pytest.raises(ImageDecodeFailure):
        SourceImage.from_array(np.zeros(shape, dtype=np.uint8))


def test_wrong_dtype_rejected():
    with pytest.raises(ImageDecodeFailure):
        SourceImage.from_array(np.zeros((2, 2, 3), dtype=np.float32))


def test_load_image(tmp_path):
    path = tmp_path / "red.png"
    Image.new("RGB", (6, 4), (255, 0, 0)).save(path)
    src = load_image(path)
    assert src.size == (6, 4)
    assert src.pixels[0, 0].tolist() == [255, 0, 0, 255]


def test_load_image_garbage(tmp_path):
    path = tmp_path / "broken.png"
    path.write_bytes(b"not an image")
    with pytest.raises(ImageDecodeFailure):
        load_image(path)


def test_load_image_missing(tmp_path):
    with pytest.raises(ImageDecodeFailure):
        load_image(tmp_path / "missing.jpg")
