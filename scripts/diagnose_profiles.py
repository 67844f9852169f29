"""Diagnostic tool to inspect the per-side edge profiles behind a refinement."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

import numpy as np
from PIL import Image, ImageOps

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from seedcrop.config import RefineConfig
from seedcrop.edge_refinement import analyze_region, clamp_rect
from seedcrop.geometry import parse_rect
from seedcrop.image_utils import extract_region, to_samples


def _format_profile(profile: np.ndarray) -> str:
    peak = float(profile.max()) if profile.size else 0.0
    if peak <= 0:
        return "flat"
    return " ".join(f"{v / peak:.2f}" for v in profile)


def analyze_edge_profiles(image_path: Path, rect_text: str, config: RefineConfig) -> None:
    """Print the smoothed profiles (normalized to their peak) and picked insets."""
    with Image.open(image_path) as im:
        im_upright = ImageOps.exif_transpose(im)
        samples = to_samples(im_upright)

    height, width = samples.shape[:2]
    rect = parse_rect(rect_text).clip_to((width, height))
    region = extract_region(samples, rect)
    analysis = analyze_region(region, config)
    refined = clamp_rect(rect, analysis.insets, (region.width, region.height), (width, height), config)

    print(f"\n{'='*60}")
    print(f"Image: {image_path.name} ({width}x{height})")
    print(f"Rect: {rect.as_tuple()} -> {refined.as_tuple()}")
    print(f"Scan depth: {analysis.depth}")
    print(f"{'='*60}")

    for side in ("left", "right", "top", "bottom"):
        profile = getattr(analysis.profiles, side)
        inset = getattr(analysis.insets, side)
        print(f"\n{side.capitalize()} edge:")
        print(f"  Profile: {_format_profile(profile)}")
        print(f"  Raw inset: {inset}")


def main() -> int:
    parser = argparse.ArgumentParser(description="Show edge profiles for a rect in an image.")
    parser.add_argument("image", type=Path, help="Path to image file")
    parser.add_argument("rect", help="Coarse rect 'left,top,right,bottom'")
    parser.add_argument("--scan-fraction", type=float, default=RefineConfig.scan_fraction)
    parser.add_argument("--percentile", type=float, default=RefineConfig.percentile)
    parser.add_argument("--smooth-window", type=int, default=RefineConfig.smooth_window)
    args = parser.parse_args()

    config = RefineConfig(
        scan_fraction=args.scan_fraction,
        percentile=args.percentile,
        smooth_window=args.smooth_window,
    )
    try:
        analyze_edge_profiles(args.image, args.rect, config)
    except ValueError as exc:
        print(f"Invalid input: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
