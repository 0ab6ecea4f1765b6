import pytest

from compression.formats import (
    FormatKind,
    classify_format,
    extension_for,
    is_quality_adjustable,
)


@pytest.mark.parametrize("fmt", ["image/jpeg", "image/jpg", "image/webp", " IMAGE/JPEG "])
def test_lossy_formats_are_quality_adjustable(fmt: str) -> None:
    assert classify_format(fmt) is FormatKind.QUALITY_ADJUSTABLE
    assert is_quality_adjustable(fmt)


def test_png_is_qualityless() -> None:
    assert classify_format("image/png") is FormatKind.QUALITYLESS
    assert not is_quality_adjustable("Image/PNG")


def test_unknown_format_falls_back_to_quality_adjustable() -> None:
    assert classify_format("image/avif") is FormatKind.QUALITY_ADJUSTABLE
    assert classify_format("") is FormatKind.QUALITY_ADJUSTABLE


def test_extensions() -> None:
    assert extension_for("image/jpeg") == ".jpg"
    assert extension_for("image/jpg") == ".jpg"
    assert extension_for("image/png") == ".png"
    assert extension_for("image/webp") == ".webp"
    assert extension_for("image/bmp") == ".bmp"
