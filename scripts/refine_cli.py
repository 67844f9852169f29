from __future__ import annotations

import argparse
import sys
from pathlib import Path

from PIL import Image, ImageOps

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from seedcrop.config import RefineConfig
from seedcrop.edge_refinement import refine_rect
from seedcrop.geometry import Rect, parse_rect
from seedcrop.overlay import draw_overlay
from seedcrop.packet_crop import crop_packet


def _is_image_path(path: Path) -> bool:
    return path.suffix.lower() in {".jpg", ".jpeg", ".png", ".webp", ".tif", ".tiff"}


def _process_image(src_path: Path, rect: Rect | None, config: RefineConfig) -> Path:
    dst_path = src_path.with_name(f"{src_path.stem}_refined{src_path.suffix}")
    with Image.open(src_path) as im:
        im_upright = ImageOps.exif_transpose(im)
        if rect is None:
            packet = crop_packet(im_upright)
            refined, preview = packet.rect, packet.overlay
        else:
            refined = refine_rect(im_upright, rect, config)
            preview = draw_overlay(im_upright, refined)
        if dst_path.suffix.lower() in {".jpg", ".jpeg"}:
            preview = preview.convert("RGB")
        preview.save(dst_path)
    print(f"{src_path.name}: {refined.as_tuple()}")
    return dst_path


def main() -> int:
    parser = argparse.ArgumentParser(description="Snap a packet rectangle to its edges and save a preview.")
    parser.add_argument("path", help="Path to an image file or a directory of images")
    parser.add_argument(
        "--rect",
        default=None,
        help="Coarse rect 'left,top,right,bottom'; omitted = detect it with the fallback detector",
    )
    parser.add_argument("--scan-fraction", type=float, default=RefineConfig.scan_fraction)
    parser.add_argument("--percentile", type=float, default=RefineConfig.percentile)
    parser.add_argument("--smooth-window", type=int, default=RefineConfig.smooth_window)
    parser.add_argument("--max-inset-x", type=float, default=RefineConfig.max_inset_ratio_x)
    parser.add_argument("--max-inset-y", type=float, default=RefineConfig.max_inset_ratio_y)
    args = parser.parse_args()

    try:
        rect = parse_rect(args.rect) if args.rect else None
    except ValueError as exc:
        raise SystemExit(f"Invalid --rect: {exc}") from exc
    config = RefineConfig(
        scan_fraction=args.scan_fraction,
        percentile=args.percentile,
        smooth_window=args.smooth_window,
        max_inset_ratio_x=args.max_inset_x,
        max_inset_ratio_y=args.max_inset_y,
    )

    src_path = Path(args.path)
    if not src_path.exists():
        raise SystemExit(f"Input path not found: {src_path}")

    outputs = []
    if src_path.is_dir():
        for entry in sorted(src_path.iterdir()):
            if entry.is_file() and _is_image_path(entry) and "_refined" not in entry.stem:
                outputs.append(_process_image(entry, rect, config))
    else:
        if not _is_image_path(src_path):
            raise SystemExit(f"Unsupported file type: {src_path.suffix}")
        outputs.append(_process_image(src_path, rect, config))

    for out_path in outputs:
        print(out_path)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
