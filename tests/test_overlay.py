"""Tests for the dashed rectangle preview."""

import numpy as np
from PIL import Image

from seedcrop.geometry import Rect
from seedcrop.overlay import ACCENT_COLOR, draw_overlay


def test_draw_overlay_returns_new_image_and_keeps_source() -> None:
    source = Image.new("RGB", (200, 200), (255, 255, 255))
    before = np.asarray(source).copy()

    out = draw_overlay(source, Rect(20, 20, 180, 180))

    assert out is not source
    assert out.size == source.size
    assert np.array_equal(np.asarray(source), before)


def test_draw_overlay_dashes_inside_the_rect() -> None:
    out = draw_overlay(Image.new("RGB", (200, 200), (255, 255, 255)), Rect(20, 20, 180, 180))
    pixels = out.load()

    # First dash runs from x=27 to x=55 on the top edge, then a 16 px gap.
    assert pixels[40, 27] == ACCENT_COLOR
    assert pixels[63, 27] == (255, 255, 255)
    # Outside the rect and deep inside it stay untouched.
    assert pixels[10, 10] == (255, 255, 255)
    assert pixels[100, 100] == (255, 255, 255)
    assert pixels[190, 100] == (255, 255, 255)


def test_draw_overlay_keeps_alpha_images_rgba() -> None:
    out = draw_overlay(Image.new("RGBA", (120, 90), (0, 0, 0, 0)), Rect(0, 0, 120, 90))

    assert out.mode == "RGBA"
    assert out.getpixel((20, 7)) == ACCENT_COLOR + (255,)


def test_draw_overlay_handles_rect_thinner_than_stroke() -> None:
    out = draw_overlay(Image.new("L", (50, 50), 0), Rect(10, 10, 16, 40))

    assert out.mode == "RGB"
    assert out.size == (50, 50)


def test_draw_overlay_fills_outer_corner_where_a_dash_turns() -> None:
    out = draw_overlay(Image.new("RGB", (200, 200), (255, 255, 255)), Rect(20, 20, 180, 180))
    pixels = out.load()

    # The fourth top dash runs from x=159 past the corner at (173, 27) down to y=41.
    assert pixels[177, 22] == ACCENT_COLOR
    assert pixels[179, 20] == ACCENT_COLOR
    assert pixels[160, 40] == (255, 255, 255)
