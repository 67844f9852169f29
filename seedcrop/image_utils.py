"""Shared image helpers: loading, sample buffers and region extraction."""

from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO

import numpy as np
from PIL import Image, ImageOps

from .geometry import Rect

MIN_REGION_SIZE = 4


@dataclass(frozen=True)
class PixelRegion:
    """RGB(A) samples of the sub-rectangle under analysis (h x w x channels)."""

    samples: np.ndarray

    @property
    def width(self) -> int:
        return int(self.samples.shape[1])

    @property
    def height(self) -> int:
        return int(self.samples.shape[0])


def load_image(path: str) -> Image.Image:
    """Load image and apply EXIF transpose."""
    return ImageOps.exif_transpose(Image.open(path))


def open_image_bytes(data: bytes) -> Image.Image:
    """Decode uploaded bytes and apply EXIF transpose."""
    return ImageOps.exif_transpose(Image.open(BytesIO(data)))


def to_samples(image: Image.Image) -> np.ndarray:
    """Return an h x w x 3 (or x 4 for alpha images) uint8 array."""
    if image.mode not in ("RGB", "RGBA"):
        image = image.convert("RGBA" if "A" in image.getbands() else "RGB")
    return np.asarray(image, dtype=np.uint8)


def extract_region(samples: np.ndarray, rect: Rect) -> PixelRegion:
    """Copy the rect's samples, coercing the region to at least 4x4.

    Pixels past the image border (only reachable after the coercion) repeat
    the nearest edge pixel.
    """
    w = max(rect.width, MIN_REGION_SIZE)
    h = max(rect.height, MIN_REGION_SIZE)
    image_h, image_w = samples.shape[:2]
    x0 = max(0, min(rect.left, image_w - 1))
    y0 = max(0, min(rect.top, image_h - 1))
    block = samples[y0 : y0 + h, x0 : x0 + w]
    pad_y = h - block.shape[0]
    pad_x = w - block.shape[1]
    if pad_x or pad_y:
        pad = [(0, pad_y), (0, pad_x)] + [(0, 0)] * (block.ndim - 2)
        block = np.pad(block, pad, mode="edge")
    region = np.array(block, copy=True)
    region.setflags(write=False)
    return PixelRegion(samples=region)


def crop_image(image: Image.Image, rect: Rect) -> Image.Image:
    """Crop with the rect's exclusive right/bottom, matching PIL's box."""
    return image.crop(rect.as_tuple())
