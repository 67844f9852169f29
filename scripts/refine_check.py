from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from PIL import Image, ImageOps

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from seedcrop.config import RefineConfig
from seedcrop.edge_refinement import refine_rect
from seedcrop.geometry import Rect


def relative_errors(
    actual: Rect,
    expected: Rect,
    width: int,
    height: int,
) -> tuple[float, float, float, float]:
    dl = abs(actual.left - expected.left) / width
    dr = abs(actual.right - expected.right) / width
    dt = abs(actual.top - expected.top) / height
    db = abs(actual.bottom - expected.bottom) / height
    return dl, dr, dt, db


def _read_rect(value: object) -> Rect | None:
    if isinstance(value, list) and len(value) == 4:
        return Rect.from_iterable(value)
    if isinstance(value, dict):
        return Rect(int(value["left"]), int(value["top"]), int(value["right"]), int(value["bottom"]))
    return None


def main() -> int:
    parser = argparse.ArgumentParser(description="Validate edge refinement against expected rectangles.")
    parser.add_argument(
        "--data-dir",
        default=ROOT / "tests" / "debug",
        type=Path,
        help="Directory containing image files and matching JSON metadata ('rect' and 'expected')",
    )
    parser.add_argument(
        "--tolerance",
        default=0.02,
        type=float,
        help="Max allowed relative error per side (fraction of width/height)",
    )
    args = parser.parse_args()

    total = 0
    failures = 0

    json_paths = sorted(args.data_dir.glob("*.json"))
    if not json_paths:
        print(f"No JSON metadata files found in {args.data_dir}")
        return 1

    image_exts = (".jpg", ".jpeg", ".png", ".webp", ".tif", ".tiff")
    config = RefineConfig()

    for json_path in json_paths:
        with json_path.open("r", encoding="utf-8") as handle:
            metadata = json.load(handle)
        initial = _read_rect(metadata.get("rect"))
        expected = _read_rect(metadata.get("expected"))
        if initial is None or expected is None:
            print(f"[SKIP] {json_path.name} missing rect/expected")
            continue

        image_path = None
        for ext in image_exts:
            candidate = json_path.with_suffix(ext)
            if candidate.exists():
                image_path = candidate
                break

        if image_path is None:
            print(f"[MISSING] {json_path.stem} (no matching image)")
            failures += 1
            total += 1
            continue

        with Image.open(image_path) as im:
            im_upright = ImageOps.exif_transpose(im)
            actual = refine_rect(im_upright, initial, config)
            width, height = im_upright.size

        errors = relative_errors(actual, expected, width, height)
        max_error = max(errors)
        ok = max_error <= args.tolerance
        status = "OK" if ok else "FAIL"
        print(
            f"[{status}] {image_path.name} actual={actual.as_tuple()} "
            f"expected={expected.as_tuple()} max_error={max_error:.3f} tol={args.tolerance:.3f}"
        )

        total += 1
        if not ok:
            failures += 1

    print(f"Done. {total - failures}/{total} passed.")
    return 0 if failures == 0 else 1


if __name__ == "__main__":
    raise SystemExit(main())
