from __future__ import annotations

import logging
from dataclasses import dataclass

import cv2
import numpy as np
from PIL import Image

from .edge_refinement import gradient_magnitude, luminance
from .geometry import Rect
from .image_utils import crop_image, to_samples

logger = logging.getLogger(__name__)

MAX_SIDE = 900
CENTER_PENALTY_GAIN = 1.8

DEFAULT_PERCENTILE = 0.92
DEFAULT_BORDER_IGNORE_RATIO = 0.08
DEFAULT_CENTER_BIAS = 0.15
DEFAULT_MARGIN_RATIO = 0.06
DEFAULT_SAFE_BORDER_RATIO = 0.02


@dataclass(frozen=True)
class FallbackResult:
    rect: Rect
    crop: Image.Image


def _center_weights(height: int, width: int, center_bias: float) -> np.ndarray:
    # Radial penalty: 1 at the center, falling off toward the corners.
    cx = (width - 1) / 2.0
    cy = (height - 1) / 2.0
    xs = (np.arange(width, dtype=np.float64) - cx) / max(cx, 1e-6)
    ys = (np.arange(height, dtype=np.float64) - cy) / max(cy, 1e-6)
    dist = np.hypot(xs[None, :], ys[:, None])
    return np.clip(1.0 - dist * center_bias * CENTER_PENALTY_GAIN, 0.0, 1.0)


def fallback_edge_crop(
    pil_image: Image.Image,
    percentile: float = DEFAULT_PERCENTILE,
    border_ignore_ratio: float = DEFAULT_BORDER_IGNORE_RATIO,
    center_bias: float = DEFAULT_CENTER_BIAS,
    margin_ratio: float = DEFAULT_MARGIN_RATIO,
    safe_border_ratio: float = DEFAULT_SAFE_BORDER_RATIO,
) -> FallbackResult | None:
    """Estimate the packet rectangle from strong gradients without a detector.

    Returns None when the ignored border swallows the image or no pixel
    reaches the gradient threshold.
    """
    arr = to_samples(pil_image)
    height, width = arr.shape[:2]

    scale = 1.0
    if max(height, width) > MAX_SIDE:
        # Downscale for speed; scale back later.
        scale = MAX_SIDE / max(height, width)
        # Keep at least one pixel on the short side of very elongated images.
        target = (max(1, int(width * scale)), max(1, int(height * scale)))
        arr = cv2.resize(arr, target, interpolation=cv2.INTER_AREA)
    work_h, work_w = arr.shape[:2]

    mag = gradient_magnitude(luminance(arr))
    if center_bias > 0:
        mag = mag * _center_weights(work_h, work_w, center_bias)

    bx = int(work_w * border_ignore_ratio)
    by = int(work_h * border_ignore_ratio)
    if bx >= work_w // 2 or by >= work_h // 2:
        return None
    roi = mag[by : work_h - by, bx : work_w - bx]
    if roi.size == 0:
        return None

    # Order statistic of the ROI magnitudes.
    flat = np.sort(roi, axis=None)
    thr = flat[min(max(int(flat.size * percentile), 0), flat.size - 1)]
    ys, xs = np.nonzero(roi >= thr)
    if xs.size == 0:
        return None
    min_x, max_x = int(xs.min()) + bx, int(xs.max()) + bx
    min_y, max_y = int(ys.min()) + by, int(ys.max()) + by

    # Back to full-resolution coordinates (inclusive bounds).
    left = int(min_x / scale)
    top = int(min_y / scale)
    right = int(max_x / scale)
    bottom = int(max_y / scale)

    safe_l = int(width * safe_border_ratio)
    safe_t = int(height * safe_border_ratio)
    safe_r = width - 1 - safe_l
    safe_b = height - 1 - safe_t
    left = max(left, safe_l)
    top = max(top, safe_t)
    right = min(right, safe_r)
    bottom = min(bottom, safe_b)

    mx = max(0, min(int(width * margin_ratio), left - safe_l, safe_r - right))
    my = max(0, min(int(height * margin_ratio), top - safe_t, safe_b - bottom))
    left -= mx
    top -= my
    right += mx
    bottom += my

    rect = Rect(left, top, left + max(right - left + 1, 1), top + max(bottom - top + 1, 1))
    rect = rect.clip_to((width, height))
    logger.debug(f"Fallback edge crop: threshold={thr:.1f}, rect={rect.as_tuple()}")
    return FallbackResult(rect=rect, crop=crop_image(pil_image, rect))
