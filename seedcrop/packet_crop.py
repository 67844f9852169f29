"""End-to-end packet crop: coarse rect, margin, edge refinement, crop, overlay."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from PIL import Image

from .candidates import DetectedBox, expand_with_margin, rank_candidates
from .config import PipelineSettings
from .edge_refinement import refine_rect
from .fallback_detection import fallback_edge_crop
from .geometry import Rect
from .image_utils import crop_image
from .overlay import draw_overlay

logger = logging.getLogger(__name__)

SOURCE_DETECTOR = "detector"
SOURCE_FALLBACK = "fallback"
SOURCE_FULL = "full"


@dataclass(frozen=True)
class PacketCrop:
    source: str  # which step produced coarse_rect
    coarse_rect: Rect
    pre_rect: Rect  # coarse_rect plus margin, input to refinement
    rect: Rect
    crop: Image.Image
    overlay: Image.Image


def choose_coarse_rect(
    image: Image.Image,
    boxes: Sequence[DetectedBox] | None,
    settings: PipelineSettings,
) -> tuple[Rect, str]:
    """Pick the best detector box, else the fallback estimate, else the full image."""
    size = image.size
    detection = settings.detection
    if boxes:
        ranked = rank_candidates(
            boxes,
            size,
            min_area_ratio=detection.min_area_ratio,
            ar_min=detection.ar_min,
            ar_max=detection.ar_max,
            center_bias=detection.center_bias,
        )
        if ranked:
            return ranked[0].rect, SOURCE_DETECTOR
        logger.info(f"No detector box passed the filters ({len(boxes)} given)")

    if detection.use_fallback:
        result = fallback_edge_crop(image)
        if result is not None:
            return result.rect, SOURCE_FALLBACK
        logger.info("Fallback edge crop found no rectangle")

    return Rect(0, 0, size[0], size[1]), SOURCE_FULL


def crop_packet(
    image: Image.Image,
    boxes: Sequence[DetectedBox] | None = None,
    settings: PipelineSettings | None = None,
) -> PacketCrop:
    """Run the packet crop pipeline on an upright image."""
    settings = settings or PipelineSettings()
    coarse, source = choose_coarse_rect(image, boxes, settings)
    pre = expand_with_margin(coarse, image.size, settings.detection.margin_ratio)
    rect = refine_rect(image, pre, settings.refine)
    logger.info(f"Packet crop ({source}): {coarse.as_tuple()} -> {rect.as_tuple()}")
    return PacketCrop(
        source=source,
        coarse_rect=coarse,
        pre_rect=pre,
        rect=rect,
        crop=crop_image(image, rect),
        overlay=draw_overlay(image, rect),
    )
