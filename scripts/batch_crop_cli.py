from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from seedcrop.batch import refine_batch
from seedcrop.config import PipelineSettings, load_config

IMAGE_EXTS = {".jpg", ".jpeg", ".png", ".webp", ".tif", ".tiff"}


def _iter_image_files(root: Path):
    for path in sorted(root.rglob("*")):
        if path.is_file() and path.suffix.lower() in IMAGE_EXTS:
            yield str(path)


def main() -> int:
    parser = argparse.ArgumentParser(description="Crop seed packets out of every image in a directory")
    parser.add_argument("input_dir", type=Path, help="Directory of packet photos")
    parser.add_argument("--output-dir", type=Path, default=None, help="Where crops and overlays are written")
    parser.add_argument(
        "--data-dir",
        default=None,
        help="Directory holding config.json (default: SEEDCROP_DATA_DIR, else built-in defaults)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="0 = auto, 1 = sequential, N = parallel (default: batch_workers from config)",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    if not args.input_dir.is_dir():
        print(f"Input directory not found: {args.input_dir}", file=sys.stderr)
        return 1

    settings = PipelineSettings()
    workers = 0
    try:
        config = load_config(args.data_dir)
        settings = config.pipeline
        workers = config.batch_workers
    except RuntimeError:
        pass  # no data dir: built-in defaults
    if args.workers is not None:
        workers = args.workers

    results, errors = refine_batch(
        _iter_image_files(args.input_dir),
        settings=settings,
        output_dir=str(args.output_dir) if args.output_dir else None,
        workers=workers,
    )

    print(json.dumps({"results": results, "errors": errors}, indent=2, sort_keys=True))
    return 0 if not errors else 1


if __name__ == "__main__":
    raise SystemExit(main())
