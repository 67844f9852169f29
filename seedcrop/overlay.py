"""Dashed outline preview of a refined rectangle."""

from __future__ import annotations

from PIL import Image, ImageDraw

from .geometry import Rect

STROKE_WIDTH = 14
DASH_ON = 28
DASH_OFF = 16
ACCENT_COLOR = (0x9C, 0x27, 0xB0)


def _dash_paths(
    points: list[tuple[float, float]], on: float, off: float
) -> list[list[tuple[float, float]]]:
    # Walk the closed path keeping the dash phase across corners. A dash that
    # runs past a corner stays one polyline on the next edge.
    paths: list[list[tuple[float, float]]] = []
    current: list[tuple[float, float]] | None = None
    period = on + off
    phase = 0.0
    for (x0, y0), (x1, y1) in zip(points, points[1:]):
        length = abs(x1 - x0) + abs(y1 - y0)  # axis-aligned edges only
        if length == 0:
            continue
        dx = (x1 - x0) / length
        dy = (y1 - y0) / length
        pos = 0.0
        while pos < length:
            in_dash = phase < on
            step = (on - phase) if in_dash else (period - phase)
            end = min(length, pos + step)
            if in_dash:
                if current is None:
                    current = [(x0 + dx * pos, y0 + dy * pos)]
                    paths.append(current)
                current.append((x0 + dx * end, y0 + dy * end))
            else:
                current = None
            phase = (phase + end - pos) % period
            pos = end
    return paths


def draw_overlay(
    image: Image.Image,
    rect: Rect,
    color: tuple[int, int, int] = ACCENT_COLOR,
    width: int = STROKE_WIDTH,
) -> Image.Image:
    """Return a copy of image with rect stroked as a dashed outline.

    The path is inset by half the stroke so the line stays inside rect.
    """
    # convert() always returns a new image, even for an unchanged mode.
    out = image.convert("RGBA" if "A" in image.getbands() else "RGB")
    half = width / 2.0
    left, top = rect.left + half, rect.top + half
    right, bottom = rect.right - half, rect.bottom - half
    if right < left:
        left = right = (rect.left + rect.right) / 2.0
    if bottom < top:
        top = bottom = (rect.top + rect.bottom) / 2.0

    corners = [(left, top), (right, top), (right, bottom), (left, bottom), (left, top)]
    draw = ImageDraw.Draw(out)
    fill = color + (255,) if out.mode == "RGBA" else color
    for path in _dash_paths(corners, DASH_ON, DASH_OFF):
        draw.line(path, fill=fill, width=width)
        # Miter join: a right-angle turn fills the stroke square at the corner.
        for x, y in path[1:-1]:
            draw.rectangle([x - half, y - half, x + half - 1, y + half - 1], fill=fill)
    return out
