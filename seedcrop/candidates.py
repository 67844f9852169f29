"""Ranking of externally detected object boxes as coarse packet rectangles."""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from .geometry import Rect, Size, clamp

LABEL_WEIGHTS = {
    "food": 1.25,
    "home goods": 1.15,
    "fashion goods": 0.95,
    "place": 0.85,
}
LABEL_FACTOR_MIN = 0.7
LABEL_FACTOR_MAX = 1.6

Label = tuple[str, float]


@dataclass(frozen=True)
class DetectedBox:
    rect: Rect
    labels: list[Label] = field(default_factory=list)


@dataclass(frozen=True)
class OuterCandidate:
    rect: Rect
    area: int
    center_dist_norm: float  # 0 = centered, 1 = at the edge
    score: float
    labels: list[Label]
    label_factor: float


def label_factor(labels: Sequence[Label]) -> float:
    """Confidence-weighted boost for packet-like classifier labels."""
    if not labels:
        return 1.0
    factor = 1.0
    for text, confidence in labels:
        weight = LABEL_WEIGHTS.get(text.lower(), 1.0)
        factor += (weight - 1.0) * confidence
    return min(max(factor, LABEL_FACTOR_MIN), LABEL_FACTOR_MAX)


def _clamp_box(rect: Rect, size: Size) -> Rect:
    width, height = size
    return Rect(
        clamp(rect.left, 0, width - 1),
        clamp(rect.top, 0, height - 1),
        clamp(rect.right, 1, width),
        clamp(rect.bottom, 1, height),
    )


def rank_candidates(
    boxes: Iterable[DetectedBox],
    image_size: Size,
    min_area_ratio: float | None = None,
    ar_min: float | None = None,
    ar_max: float | None = None,
    center_bias: float = 0.0,
) -> list[OuterCandidate]:
    """Filter and score detector boxes, best first.

    Args:
        boxes: Detector output in image coordinates
        image_size: (width, height) of the image
        min_area_ratio: Minimum box area as a fraction of the image (None disables)
        ar_min: Minimum long/short side ratio (None disables)
        ar_max: Maximum long/short side ratio (None disables)
        center_bias: 0..1 penalty weight for boxes far from the image center

    Returns:
        Candidates sorted by descending score
    """
    width, height = image_size
    image_area = float(width * height)
    candidates = []
    for box in boxes:
        rect = _clamp_box(box.rect, image_size)
        if rect.width <= 0 or rect.height <= 0:
            continue
        area = rect.width * rect.height
        if min_area_ratio is not None and area / image_area < min_area_ratio:
            continue

        # Orientation-independent aspect ratio.
        ar = max(rect.width, rect.height) / min(rect.width, rect.height)
        if ar_min is not None and ar < ar_min:
            continue
        if ar_max is not None and ar > ar_max:
            continue

        dx = (rect.left + rect.right) / 2.0 / width - 0.5
        dy = (rect.top + rect.bottom) / 2.0 / height - 0.5
        center_penalty = min(max(1.0 - math.hypot(dx, dy) * 2.0 * center_bias, 0.0), 1.0)
        factor = label_factor(box.labels)
        candidates.append(
            OuterCandidate(
                rect=rect,
                area=area,
                center_dist_norm=1.0 - center_penalty,
                score=area * center_penalty * factor,
                labels=list(box.labels),
                label_factor=factor,
            )
        )
    return sorted(candidates, key=lambda c: c.score, reverse=True)


def expand_with_margin(rect: Rect, image_size: Size, margin_ratio: float) -> Rect:
    """Pad a detector rect before edge refinement so the true edge is inside it."""
    width, height = image_size
    return Rect(
        max(int(rect.left - width * margin_ratio), 0),
        max(int(rect.top - height * margin_ratio), 0),
        min(int(rect.right + width * margin_ratio), width),
        min(int(rect.bottom + height * margin_ratio), height),
    )


def parse_boxes(raw: Iterable[dict]) -> list[DetectedBox]:
    """Build DetectedBox values from JSON-like dicts.

    Each item needs "rect": [l, t, r, b] and may carry
    "labels": [{"text": str, "confidence": float}, ...].

    Raises:
        ValueError: If an item is malformed.
    """
    boxes = []
    for item in raw:
        if not isinstance(item, dict) or "rect" not in item:
            raise ValueError(f"Box must be an object with a 'rect': {item!r}")
        try:
            labels = [
                (str(label["text"]), float(label.get("confidence", 1.0)))
                for label in item.get("labels") or []
            ]
        except (KeyError, TypeError, AttributeError) as exc:
            raise ValueError(f"Invalid labels in box: {item!r}") from exc
        boxes.append(DetectedBox(rect=Rect.from_iterable(item["rect"]), labels=labels))
    return boxes
