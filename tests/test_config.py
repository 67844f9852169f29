"""Tests for loading settings from the data directory."""

import json

import pytest

from seedcrop.config import DEFAULT_SCAN_FRACTION, RefineConfig, load_config


def test_load_config_defaults_without_file(tmp_path) -> None:
    config = load_config(str(tmp_path))

    assert config.data_dir == str(tmp_path)
    assert config.debug_dir == str(tmp_path / "debug")
    assert config.batch_workers == 0
    assert config.pipeline.refine == RefineConfig()
    assert config.pipeline.refine.scan_fraction == DEFAULT_SCAN_FRACTION


def test_load_config_applies_overrides(tmp_path) -> None:
    (tmp_path / "config.json").write_text(
        json.dumps(
            {
                "refine": {"scan_fraction": 0.1, "max_inset_ratio_y": 0.3, "smooth_window": "7"},
                "detection": {"min_area_ratio": None, "use_fallback": False, "unknown": 1},
                "batch_workers": 2,
                "debug_dir": "/tmp/seedcrop-debug",
            }
        ),
        encoding="utf-8",
    )

    config = load_config(str(tmp_path))

    assert config.pipeline.refine.scan_fraction == pytest.approx(0.1)
    assert config.pipeline.refine.max_inset_ratio_y == pytest.approx(0.3)
    assert config.pipeline.refine.smooth_window == 7
    assert config.pipeline.refine.percentile == pytest.approx(0.88)
    assert config.pipeline.detection.min_area_ratio is None
    assert config.pipeline.detection.use_fallback is False
    assert config.batch_workers == 2
    assert config.debug_dir == "/tmp/seedcrop-debug"


def test_load_config_requires_data_dir(monkeypatch) -> None:
    monkeypatch.delenv("SEEDCROP_DATA_DIR", raising=False)

    with pytest.raises(RuntimeError):
        load_config()


def test_load_config_reads_env(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("SEEDCROP_DATA_DIR", str(tmp_path))

    assert load_config().data_dir == str(tmp_path)
