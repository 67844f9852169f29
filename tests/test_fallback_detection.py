"""Tests for the model-free coarse packet rectangle."""

from PIL import Image

from conftest import make_textured_packet
from seedcrop.fallback_detection import fallback_edge_crop
from seedcrop.geometry import Rect


def test_fallback_edge_crop_wraps_textured_packet(textured_packet_image) -> None:
    result = fallback_edge_crop(textured_packet_image)

    assert result is not None
    # Packet bounds plus up to 6% margin per side.
    assert result.rect.contains(Rect(100, 80, 300, 220))
    assert Rect(60, 50, 340, 250).contains(result.rect)
    assert result.crop.size == (result.rect.width, result.rect.height)


def test_fallback_edge_crop_downscales_large_images() -> None:
    image = make_textured_packet(size=(1800, 1200), packet=(500, 400, 1300, 800), seed=2)

    result = fallback_edge_crop(image, margin_ratio=0.0)

    assert result is not None
    assert abs(result.rect.left - 500) <= 6
    assert abs(result.rect.right - 1300) <= 6
    assert abs(result.rect.top - 400) <= 6
    assert abs(result.rect.bottom - 800) <= 6


def test_fallback_edge_crop_returns_none_when_border_swallows_image() -> None:
    image = Image.new("RGB", (100, 80), (40, 40, 40))

    assert fallback_edge_crop(image, border_ignore_ratio=0.5) is None


def test_fallback_edge_crop_respects_safe_border() -> None:
    image = make_textured_packet(size=(200, 200), packet=(0, 0, 200, 200), seed=4)

    result = fallback_edge_crop(image, border_ignore_ratio=0.0, center_bias=0.0)

    assert result is not None
    assert result.rect.left >= 4 and result.rect.top >= 4
    assert result.rect.right <= 196 and result.rect.bottom <= 196


def test_fallback_edge_crop_handles_very_elongated_images() -> None:
    """A 2 px short side still downscales to at least one row."""
    assert fallback_edge_crop(Image.new("RGB", (1901, 2), (90, 90, 90))) is None
    assert fallback_edge_crop(Image.new("RGB", (3, 2400), (90, 90, 90))) is None
