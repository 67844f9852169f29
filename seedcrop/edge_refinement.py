from __future__ import annotations

import logging
from dataclasses import dataclass

import cv2
import numpy as np
from PIL import Image

from .config import RefineConfig
from .geometry import Rect, Size, clamp
from .image_utils import PixelRegion, extract_region, to_samples

logger = logging.getLogger(__name__)

LUMA_WEIGHTS = (0.299, 0.587, 0.114)
MIN_DEPTH = 2


@dataclass(frozen=True)
class SideProfiles:
    """Gradient sums per side, index 0 nearest the rectangle edge."""

    left: np.ndarray
    right: np.ndarray
    top: np.ndarray
    bottom: np.ndarray


@dataclass(frozen=True)
class SideInsets:
    left: int
    right: int
    top: int
    bottom: int


@dataclass(frozen=True)
class EdgeAnalysis:
    depth: int
    profiles: SideProfiles  # smoothed
    insets: SideInsets


def luminance(samples: np.ndarray) -> np.ndarray:
    """Integer luma of RGB(A) samples; alpha is ignored."""
    if samples.ndim == 2:
        return samples.astype(np.int32)
    rgb = samples[..., :3].astype(np.float64)
    wr, wg, wb = LUMA_WEIGHTS
    return (wr * rgb[..., 0] + wg * rgb[..., 1] + wb * rgb[..., 2]).astype(np.int32)


def gradient_magnitude(lum: np.ndarray) -> np.ndarray:
    """Sobel magnitude over interior pixels; the 1-pixel border stays zero."""
    h, w = lum.shape
    mag = np.zeros((h, w), dtype=np.float64)
    if h < 3 or w < 3:
        return mag
    src = lum.astype(np.float32)
    gx = cv2.Sobel(src, cv2.CV_32F, 1, 0, ksize=3)[1:-1, 1:-1].astype(np.float64)
    gy = cv2.Sobel(src, cv2.CV_32F, 0, 1, ksize=3)[1:-1, 1:-1].astype(np.float64)
    mag[1:-1, 1:-1] = np.sqrt(gx * gx + gy * gy)
    return mag


def scan_depth(width: int, height: int, scan_fraction: float) -> int:
    short_side = min(width, height)
    return clamp(int(short_side * scan_fraction), MIN_DEPTH, short_side // 3)


def directional_profiles(mag: np.ndarray, depth: int) -> SideProfiles:
    h, w = mag.shape
    # Column sums over interior rows, row sums over interior columns.
    col_sums = mag[1 : h - 1, :].sum(axis=0)
    row_sums = mag[:, 1 : w - 1].sum(axis=1)
    steps = np.arange(depth)
    return SideProfiles(
        left=col_sums[np.clip(1 + steps, 1, w - 2)],
        right=col_sums[np.clip(w - 2 - steps, 1, w - 2)],
        top=row_sums[np.clip(1 + steps, 1, h - 2)],
        bottom=row_sums[np.clip(h - 2 - steps, 1, h - 2)],
    )


def smooth_profile(profile: np.ndarray, window: int) -> np.ndarray:
    """Centered moving average; at the ends only in-range neighbours count."""
    values = np.asarray(profile, dtype=np.float64)
    if window <= 1 or values.size == 0:
        return values
    half = window // 2
    n = values.size
    csum = np.concatenate(([0.0], np.cumsum(values)))
    idx = np.arange(n)
    lo = np.clip(idx - half, 0, n)
    hi = np.clip(idx + half + 1, 0, n)
    return (csum[hi] - csum[lo]) / (hi - lo)


def locate_edge(profile: np.ndarray, percentile: float) -> int:
    """First index reaching percentile * peak, scanning inward."""
    if profile.size == 0:
        return 0
    peak = float(profile.max())
    if peak <= 0:
        return 0
    hits = np.flatnonzero(profile >= peak * percentile)
    if hits.size:
        return int(hits[0])
    return int(np.argmax(profile))


def analyze_region(region: PixelRegion, config: RefineConfig) -> EdgeAnalysis:
    """Compute the smoothed side profiles and raw insets for a region."""
    mag = gradient_magnitude(luminance(region.samples))
    depth = scan_depth(region.width, region.height, config.scan_fraction)
    raw = directional_profiles(mag, depth)
    smoothed = SideProfiles(
        left=smooth_profile(raw.left, config.smooth_window),
        right=smooth_profile(raw.right, config.smooth_window),
        top=smooth_profile(raw.top, config.smooth_window),
        bottom=smooth_profile(raw.bottom, config.smooth_window),
    )
    insets = SideInsets(
        left=locate_edge(smoothed.left, config.percentile),
        right=locate_edge(smoothed.right, config.percentile),
        top=locate_edge(smoothed.top, config.percentile),
        bottom=locate_edge(smoothed.bottom, config.percentile),
    )
    return EdgeAnalysis(depth=depth, profiles=smoothed, insets=insets)


def clamp_rect(
    rect: Rect,
    insets: SideInsets,
    region_size: Size,
    image_size: Size,
    config: RefineConfig,
) -> Rect:
    """Apply capped insets to rect and keep it a valid rect inside the image."""
    region_w, region_h = region_size
    image_w, image_h = image_size
    max_inset_x = max(0, int(region_w * config.max_inset_ratio_x))
    max_inset_y = max(0, int(region_h * config.max_inset_ratio_y))

    left = clamp(rect.left + min(insets.left, max_inset_x), 0, image_w - 1)
    right = clamp(rect.right - min(insets.right, max_inset_x), left + 1, image_w)
    top = clamp(rect.top + min(insets.top, max_inset_y), 0, image_h - 1)
    bottom = clamp(rect.bottom - min(insets.bottom, max_inset_y), top + 1, image_h)
    return Rect(left, top, right, bottom)


def refine(region: PixelRegion, rect: Rect, config: RefineConfig, image_size: Size) -> Rect:
    """Tighten rect toward the nearest strong edge on each side.

    Args:
        region: Samples under rect (at least 4x4)
        rect: Coarse rectangle in source image coordinates
        config: Refinement tuning values
        image_size: (width, height) of the source image

    Returns:
        Refined rectangle; equal to rect when no edge signal is found
    """
    analysis = analyze_region(region, config)
    refined = clamp_rect(rect, analysis.insets, (region.width, region.height), image_size, config)
    logger.debug(
        f"Refined {rect.as_tuple()} -> {refined.as_tuple()} "
        f"(depth={analysis.depth}, insets={analysis.insets})"
    )
    return refined


def refine_rect(
    image: Image.Image | np.ndarray,
    rect: Rect,
    config: RefineConfig | None = None,
) -> Rect:
    """Refine rect against a PIL image or an h x w x C sample array."""
    config = config or RefineConfig()
    samples = to_samples(image) if isinstance(image, Image.Image) else image
    image_size = (int(samples.shape[1]), int(samples.shape[0]))
    coarse = rect.clip_to(image_size)
    region = extract_region(samples, coarse)
    return refine(region, coarse, config, image_size)
