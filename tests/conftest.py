"""Pytest bootstrap helpers and synthetic packet photos shared by all tests."""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

import numpy as np
import pytest
from PIL import Image


def _append_repo_root() -> None:
    """Ensure repository root is present in import path."""
    repo_root = Path(__file__).resolve().parents[1]
    repo_root_text = str(repo_root)
    if repo_root_text in sys.path:
        return
    sys.path.insert(0, repo_root_text)


_append_repo_root()

# seedcrop.main loads its config at import time.
os.environ.setdefault("SEEDCROP_DATA_DIR", tempfile.mkdtemp(prefix="seedcrop-tests-"))


def make_packet_samples(
    size: tuple[int, int] = (200, 200),
    packet: tuple[int, int, int, int] = (60, 60, 140, 140),
    background: int = 30,
    foreground: int = 220,
) -> np.ndarray:
    """Flat dark background with a flat bright packet (exclusive right/bottom)."""
    width, height = size
    samples = np.full((height, width, 3), background, dtype=np.uint8)
    left, top, right, bottom = packet
    samples[top:bottom, left:right] = foreground
    return samples


def make_textured_packet(
    size: tuple[int, int] = (400, 300),
    packet: tuple[int, int, int, int] = (100, 80, 300, 220),
    background: int = 30,
    seed: int = 0,
) -> Image.Image:
    """Flat background with a printed-looking (random texture) packet."""
    width, height = size
    rng = np.random.default_rng(seed)
    samples = np.full((height, width, 3), background, dtype=np.uint8)
    left, top, right, bottom = packet
    samples[top:bottom, left:right] = rng.integers(0, 256, size=(bottom - top, right - left, 3), dtype=np.uint8)
    return Image.fromarray(samples, "RGB")


@pytest.fixture
def packet_image() -> Image.Image:
    return Image.fromarray(make_packet_samples(), "RGB")


@pytest.fixture
def textured_packet_image() -> Image.Image:
    return make_textured_packet()
