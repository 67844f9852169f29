from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Iterator
from concurrent.futures import ProcessPoolExecutor, as_completed
from typing import Any

from .config import PipelineSettings
from .image_utils import load_image
from .packet_crop import crop_packet

logger = logging.getLogger(__name__)

# Default batch size for worker processing
BATCH_SIZE = 20


def _output_paths(path: str, output_dir: str) -> tuple[str, str]:
    stem, ext = os.path.splitext(os.path.basename(path))
    ext = ext if ext.lower() in (".jpg", ".jpeg", ".png") else ".png"
    return (
        os.path.join(output_dir, f"{stem}_crop{ext}"),
        os.path.join(output_dir, f"{stem}_overlay{ext}"),
    )


def _save(image, path: str) -> None:
    if path.lower().endswith((".jpg", ".jpeg")) and image.mode != "RGB":
        image = image.convert("RGB")
    image.save(path)


def _process_image_batch(
    paths: list[str],
    settings: PipelineSettings,
    output_dir: str | None,
) -> tuple[list[dict[str, Any]], list[str]]:
    """
    Crop a batch of image paths in a worker process.

    Args:
        paths: List of file paths to process
        settings: Pipeline settings shared by every image
        output_dir: Directory for crop/overlay files, or None to skip saving

    Returns:
        Tuple of (results, errors) where:
        - results: List of dicts with path, source and rectangles
        - errors: List of error messages for failed images
    """
    results = []
    errors = []

    for path in paths:
        try:
            with load_image(path) as image:
                packet = crop_packet(image, settings=settings)
                result: dict[str, Any] = {
                    "path": path,
                    "source": packet.source,
                    "coarse_rect": list(packet.coarse_rect.as_tuple()),
                    "rect": list(packet.rect.as_tuple()),
                }
                if output_dir:
                    crop_path, overlay_path = _output_paths(path, output_dir)
                    _save(packet.crop, crop_path)
                    _save(packet.overlay, overlay_path)
                    result["crop_path"] = crop_path
                    result["overlay_path"] = overlay_path
            results.append(result)
        except Exception as exc:
            error_msg = f"{path}: {exc}"
            errors.append(error_msg)

    return results, errors


def _iter_batches(paths: Iterable[str], batch_size: int) -> Iterator[list[str]]:
    """
    Yield batches of paths as they're discovered.

    Args:
        paths: Iterable of file paths
        batch_size: Number of paths per batch

    Yields:
        Lists of paths, each containing up to batch_size items
    """
    batch = []
    for path in paths:
        batch.append(path)
        if len(batch) >= batch_size:
            yield batch
            batch = []

    # Don't forget final partial batch
    if batch:
        yield batch


def refine_batch_sequential(
    paths: Iterable[str],
    settings: PipelineSettings | None = None,
    output_dir: str | None = None,
) -> tuple[list[dict[str, Any]], list[str]]:
    """Crop images one by one in the current process."""
    settings = settings or PipelineSettings()
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
    results, errors = _process_image_batch(list(paths), settings, output_dir)
    logger.info(f"Processed {len(results) + len(errors)} files sequentially")
    return results, errors


def refine_batch_parallel(
    paths: Iterable[str],
    settings: PipelineSettings | None = None,
    output_dir: str | None = None,
    workers: int = 0,
    batch_size: int = BATCH_SIZE,
) -> tuple[list[dict[str, Any]], list[str]]:
    """
    Crop many images using parallel processing.

    Args:
        paths: Iterable of image file paths to process
        settings: Pipeline settings shared by every image
        output_dir: Directory for crop/overlay files, or None to skip saving
        workers: Number of worker processes (0 = auto detect)
        batch_size: Number of files per batch

    Returns:
        Tuple of (results, errors), results sorted by path
    """
    settings = settings or PipelineSettings()
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)

    # Determine worker count
    max_workers = max(1, (os.cpu_count() or 2) - 1)

    if workers <= 0:
        # Auto-detect: use cpu_count - 1
        workers = max_workers
    else:
        # Always cap at cpu_count - 1, regardless of config
        workers = min(workers, max_workers)

    logger.info(f"Cropping with {workers} worker processes (max available: {max_workers})")

    all_results: list[dict[str, Any]] = []
    all_errors: list[str] = []
    processed_count = 0
    last_logged = 0

    with ProcessPoolExecutor(max_workers=workers) as executor:
        futures = [
            executor.submit(_process_image_batch, batch, settings, output_dir)
            for batch in _iter_batches(paths, batch_size)
        ]

        # Collect results as they complete
        for future in as_completed(futures):
            try:
                results, errors = future.result(timeout=300)  # 5 min timeout per batch
                all_results.extend(results)
                all_errors.extend(errors)
                processed_count += len(results) + len(errors)

                # Log progress every 100 files
                if processed_count // 100 > last_logged:
                    logger.info(f"Processed {processed_count} files...")
                    last_logged = processed_count // 100

            except TimeoutError:
                logger.error("Batch processing timed out")
                all_errors.append("Batch timeout error")
            except Exception as exc:
                logger.error(f"Worker process error: {exc}")
                all_errors.append(f"Worker error: {exc}")

    all_results.sort(key=lambda r: r["path"])
    return all_results, all_errors


def refine_batch(
    paths: Iterable[str],
    settings: PipelineSettings | None = None,
    output_dir: str | None = None,
    workers: int = 0,
) -> tuple[list[dict[str, Any]], list[str]]:
    """Dispatch on workers: 1 runs sequentially, anything else in parallel."""
    # Materialized so the sequential fallback can walk the paths again.
    paths = list(paths)
    if workers == 1:
        logger.info("Using sequential processing (workers=1)")
        return refine_batch_sequential(paths, settings, output_dir)
    try:
        return refine_batch_parallel(paths, settings, output_dir, workers=workers)
    except Exception as exc:
        logger.warning(f"Parallel processing failed ({exc}), falling back to sequential")
        return refine_batch_sequential(paths, settings, output_dir)
