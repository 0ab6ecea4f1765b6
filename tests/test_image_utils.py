import cv2
import numpy as np
import pytest

from compression.exceptions import InvalidRequest
from utils.image_utils import (
    Dimensions,
    Percentage,
    default_target_kb,
    detect_mime_type,
    format_file_size,
    get_image_info,
    load_image,
    rasterize,
    resolve_dimensions,
    to_bytes,
    validate_upload,
)


ALLOWED = ["image/jpeg", "image/jpg", "image/png", "image/webp"]


def png_bytes(width: int = 40, height: int = 20) -> bytes:
    image = np.full((height, width, 3), 127, dtype=np.uint8)
    _, buffer = cv2.imencode(".png", image)
    return buffer.tobytes()


def test_no_resize_keeps_dimensions() -> None:
    assert resolve_dimensions(800, 600) == (800, 600)
    assert resolve_dimensions(800, 600, Dimensions()) == (800, 600)


def test_percentage_resize_rounds_half_up() -> None:
    assert resolve_dimensions(800, 600, Percentage(50)) == (400, 300)
    assert resolve_dimensions(101, 51, Percentage(50)) == (51, 26)


def test_fit_within_box_uses_smaller_ratio() -> None:
    assert resolve_dimensions(800, 600, Dimensions(width=400, height=400)) == (400, 300)
    assert resolve_dimensions(600, 800, Dimensions(width=400, height=400)) == (300, 400)


def test_single_dimension_derives_the_other() -> None:
    assert resolve_dimensions(800, 600, Dimensions(width=400)) == (400, 300)
    assert resolve_dimensions(800, 600, Dimensions(height=150)) == (200, 150)


def test_without_aspect_dimensions_are_literal() -> None:
    spec = Dimensions(width=100, height=100, maintain_aspect=False)
    assert resolve_dimensions(800, 600, spec) == (100, 100)
    assert resolve_dimensions(800, 600, Dimensions(width=100, maintain_aspect=False)) == (100, 600)


def test_tiny_results_stay_at_least_one_pixel() -> None:
    assert resolve_dimensions(1000, 2, Percentage(1)) == (10, 1)


@pytest.mark.parametrize("spec", [Percentage(0), Percentage(-5), Dimensions(width=-1)])
def test_non_positive_resize_is_rejected(spec) -> None:
    with pytest.raises(InvalidRequest):
        resolve_dimensions(100, 100, spec)


def test_rasterize_returns_fresh_buffer() -> None:
    image = np.zeros((20, 40, 3), dtype=np.uint8)
    same = rasterize(image)
    same.bitmap[0, 0] = 255

    assert (same.width, same.height) == (40, 20)
    assert image[0, 0, 0] == 0

    smaller = rasterize(image, Dimensions(width=20))
    assert smaller.bitmap.shape == (10, 20, 3)
    assert (smaller.width, smaller.height) == (20, 10)

    larger = rasterize(image, Percentage(200))
    assert larger.bitmap.shape == (40, 80, 3)


def test_load_image_from_bytes_and_errors() -> None:
    image = load_image(png_bytes())
    assert image.shape == (20, 40, 3)

    with pytest.raises(InvalidRequest):
        load_image(b"not an image")
    with pytest.raises(InvalidRequest):
        load_image(b"")
    with pytest.raises(InvalidRequest):
        load_image(12345)


def test_detect_mime_type() -> None:
    assert detect_mime_type(png_bytes()) == "image/png"
    assert detect_mime_type(b"garbage") is None


def test_validate_upload() -> None:
    data = png_bytes()
    assert validate_upload(data, "image/png", ALLOWED, 1024 * 1024) == "image/png"
    assert validate_upload(data, None, ALLOWED, 1024 * 1024) == "image/png"

    with pytest.raises(InvalidRequest, match="Unsupported file type"):
        validate_upload(data, "image/gif", ALLOWED, 1024 * 1024)
    with pytest.raises(InvalidRequest, match="File too large"):
        validate_upload(data, "image/png", ALLOWED, 10)


def test_to_bytes() -> None:
    assert to_bytes(500, "KB") == 512_000
    assert to_bytes(1.5, "mb") == 1_572_864
    with pytest.raises(InvalidRequest):
        to_bytes(1, "parsecs")


@pytest.mark.parametrize("num_bytes,expected", [
    (0, "0 B"),
    (512, "512 B"),
    (1024, "1 KB"),
    (1536, "1.5 KB"),
    (2 * 1024 * 1024, "2 MB"),
    (50 * 1024 * 1024, "50 MB"),
])
def test_format_file_size(num_bytes: int, expected: str) -> None:
    assert format_file_size(num_bytes) == expected


@pytest.mark.parametrize("size_bytes,expected", [
    (0, 100),
    (50 * 1024, 100),
    (201 * 1024, 100),
    (1024 * 1024, 512),
    (1024 * 1024 + 1023, 512),
    (5 * 1024 * 1024, 2560),
])
def test_default_target_kb(size_bytes: int, expected: int) -> None:
    assert default_target_kb(size_bytes) == expected


def test_get_image_info() -> None:
    color = load_image(png_bytes(width=40, height=20))
    assert get_image_info(color) == {"width": 40, "height": 20, "channels": 3, "aspect_ratio": 2.0}

    gray = np.zeros((30, 10), dtype=np.uint8)
    info = get_image_info(gray)
    assert (info["width"], info["height"], info["channels"]) == (10, 30, 1)
    assert info["aspect_ratio"] == pytest.approx(0.333)
