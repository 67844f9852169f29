"""Axis-aligned rectangle type shared by the refinement pipeline."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

Size = tuple[int, int]


def clamp(value: int, low: int, high: int) -> int:
    """Clamp value into [low, high]; low wins when the range is empty."""
    return max(low, min(value, high))


@dataclass(frozen=True)
class Rect:
    """Rectangle with exclusive right/bottom edges."""

    left: int
    top: int
    right: int
    bottom: int

    @property
    def width(self) -> int:
        return self.right - self.left

    @property
    def height(self) -> int:
        return self.bottom - self.top

    @property
    def area(self) -> int:
        return max(0, self.width) * max(0, self.height)

    def as_tuple(self) -> tuple[int, int, int, int]:
        return (self.left, self.top, self.right, self.bottom)

    def contains(self, other: Rect) -> bool:
        return (
            self.left <= other.left
            and self.top <= other.top
            and other.right <= self.right
            and other.bottom <= self.bottom
        )

    def clip_to(self, size: Size) -> Rect:
        """Clip into a width x height image keeping at least one pixel."""
        width, height = size
        left = clamp(self.left, 0, width - 1)
        top = clamp(self.top, 0, height - 1)
        right = clamp(self.right, left + 1, width)
        bottom = clamp(self.bottom, top + 1, height)
        return Rect(left, top, right, bottom)

    @classmethod
    def from_iterable(cls, values: Iterable[int]) -> Rect:
        parts = [int(v) for v in values]
        if len(parts) != 4:
            raise ValueError(f"Expected 4 integers, got {len(parts)}.")
        return cls(*parts)


def parse_rect(text: str) -> Rect:
    """Parse 'left,top,right,bottom' into a Rect.

    Raises:
        ValueError: If the text does not hold four integers.
    """
    return Rect.from_iterable(part.strip() for part in text.split(","))
