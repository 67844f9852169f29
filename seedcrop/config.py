from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields, replace
from typing import Any

DEFAULT_SCAN_FRACTION = 0.06
DEFAULT_PERCENTILE = 0.88
DEFAULT_SMOOTH_WINDOW = 5
DEFAULT_MAX_INSET_RATIO = 0.15

DEFAULT_MIN_AREA_RATIO = 0.20
DEFAULT_AR_MIN = 1.0
DEFAULT_AR_MAX = 2.5
DEFAULT_CENTER_BIAS = 0.20
DEFAULT_MARGIN_RATIO = 0.06

DEFAULT_BATCH_WORKERS = 0  # 0 = auto (cpu_count - 1), 1 = sequential, N = parallel with N workers


@dataclass(frozen=True)
class RefineConfig:
    """Tuning values for snapping a rectangle to the packet edges."""

    scan_fraction: float = DEFAULT_SCAN_FRACTION  # profile depth as fraction of min(w, h)
    percentile: float = DEFAULT_PERCENTILE  # threshold fraction of the profile peak
    smooth_window: int = DEFAULT_SMOOTH_WINDOW
    max_inset_ratio_x: float = DEFAULT_MAX_INSET_RATIO
    max_inset_ratio_y: float = DEFAULT_MAX_INSET_RATIO


@dataclass(frozen=True)
class DetectionSettings:
    """How a coarse rectangle is chosen and padded before refinement."""

    min_area_ratio: float | None = DEFAULT_MIN_AREA_RATIO
    ar_min: float | None = DEFAULT_AR_MIN
    ar_max: float | None = DEFAULT_AR_MAX
    center_bias: float = DEFAULT_CENTER_BIAS
    margin_ratio: float = DEFAULT_MARGIN_RATIO
    use_fallback: bool = True


@dataclass(frozen=True)
class PipelineSettings:
    refine: RefineConfig = field(default_factory=RefineConfig)
    detection: DetectionSettings = field(default_factory=DetectionSettings)


@dataclass(frozen=True)
class AppConfig:
    data_dir: str
    pipeline: PipelineSettings = field(default_factory=PipelineSettings)
    debug_dir: str = ""  # Defaults to data_dir/debug, but overridable in config
    batch_workers: int = DEFAULT_BATCH_WORKERS


def _override(base: Any, raw: dict[str, Any] | None) -> Any:
    """Return a copy of a frozen dataclass with known keys from raw applied."""
    if not raw:
        return base
    updates = {}
    for f in fields(base):
        if f.name in raw:
            value = raw[f.name]
            current = getattr(base, f.name)
            if value is None:
                updates[f.name] = None
            elif isinstance(current, bool):
                updates[f.name] = bool(value)
            elif isinstance(current, int):
                updates[f.name] = int(value)
            else:
                updates[f.name] = float(value)
    return replace(base, **updates)


def load_config(data_dir: str | None = None) -> AppConfig:
    """Load configuration from SEEDCROP_DATA_DIR.

    Args:
        data_dir: Optional override for data directory. If None, uses SEEDCROP_DATA_DIR env var.

    Returns:
        AppConfig with refine/detection settings from data_dir/config.json when present.

    Raises:
        RuntimeError: If SEEDCROP_DATA_DIR is not set and data_dir is not provided.
    """
    if data_dir is None:
        data_dir = os.environ.get("SEEDCROP_DATA_DIR")
        if not data_dir:
            raise RuntimeError(
                "SEEDCROP_DATA_DIR environment variable is required but not set. "
                "Please set it to the directory containing config.json."
            )
    config_path = os.path.join(data_dir, "config.json")

    # Default values
    refine = RefineConfig()
    detection = DetectionSettings()
    debug_dir = os.path.join(data_dir, "debug")  # Default to data_dir/debug
    batch_workers = DEFAULT_BATCH_WORKERS

    # Load config file if it exists
    if os.path.exists(config_path):
        with open(config_path, encoding="utf-8") as f:
            raw = json.load(f)

        refine = _override(refine, raw.get("refine"))
        detection = _override(detection, raw.get("detection"))
        batch_workers = int(raw.get("batch_workers", DEFAULT_BATCH_WORKERS))

        # debug_dir can be overridden in config, otherwise defaults to data_dir/debug
        if "debug_dir" in raw and raw["debug_dir"]:
            debug_dir = raw["debug_dir"]

    return AppConfig(
        data_dir=data_dir,
        pipeline=PipelineSettings(refine=refine, detection=detection),
        debug_dir=debug_dir,
        batch_workers=batch_workers,
    )
