from __future__ import annotations

import json
import logging
import os
import random
import string
from dataclasses import asdict, replace
from io import BytesIO
from typing import Any

from fastapi import FastAPI, File, Form, HTTPException, Query, UploadFile
from fastapi.responses import JSONResponse, Response
from PIL import Image
from pydantic import BaseModel

from .candidates import DetectedBox, parse_boxes
from .config import AppConfig, RefineConfig, load_config
from .edge_refinement import refine_rect
from .geometry import Rect, parse_rect
from .image_utils import open_image_bytes
from .overlay import draw_overlay
from .packet_crop import crop_packet

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


app = FastAPI(title="SeedCrop", version="0.1.0")

VERSION_FILE = os.path.join(os.path.dirname(__file__), "..", "VERSION")


def _read_version() -> str:
    """Read version from VERSION file."""
    try:
        with open(VERSION_FILE, encoding="utf-8") as f:
            return f.read().strip()
    except Exception as exc:
        logger.warning(f"Failed to read VERSION file: {exc}")
        return "unknown"


_VERSION = _read_version()


class RefineResponse(BaseModel):
    initial_rect: tuple[int, int, int, int]
    rect: tuple[int, int, int, int]


class DetectResponse(BaseModel):
    source: str
    coarse_rect: tuple[int, int, int, int]
    pre_rect: tuple[int, int, int, int]
    rect: tuple[int, int, int, int]


def _load_app_config() -> AppConfig:
    data_dir = os.environ.get("SEEDCROP_DATA_DIR")
    return load_config(data_dir)


_CONFIG = _load_app_config()


def _open_uploaded_image(file: UploadFile) -> Image.Image:
    try:
        data = file.file.read()
        image = open_image_bytes(data)
        image.load()
        return image
    except Exception as exc:
        logger.error(f"Failed to open uploaded image: {exc}")
        raise HTTPException(status_code=400, detail=f"Invalid image: {exc}") from exc


def _parse_rect(rect: str | None, field: str = "rect") -> Rect | None:
    if not rect:
        return None
    try:
        return parse_rect(rect)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid {field}: {exc}") from exc


def _require_rect(rect: str | None, image: Image.Image) -> Rect:
    parsed = _parse_rect(rect)
    if parsed is None:
        raise HTTPException(status_code=400, detail="rect is required as 'left,top,right,bottom'.")
    width, height = image.size
    if parsed.width <= 0 or parsed.height <= 0 or parsed.left >= width or parsed.top >= height:
        raise HTTPException(status_code=400, detail=f"rect {parsed.as_tuple()} is outside the image.")
    return parsed


def _parse_boxes(boxes: str | None) -> list[DetectedBox] | None:
    if not boxes:
        return None
    try:
        raw = json.loads(boxes)
        if not isinstance(raw, list):
            raise ValueError("Expected a JSON list of boxes.")
        return parse_boxes(raw)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Invalid boxes: {exc}") from exc


def _refine_config(
    scan_fraction: float | None,
    percentile: float | None,
    smooth_window: int | None,
    max_inset_ratio_x: float | None,
    max_inset_ratio_y: float | None,
) -> RefineConfig:
    overrides = {
        "scan_fraction": scan_fraction,
        "percentile": percentile,
        "smooth_window": smooth_window,
        "max_inset_ratio_x": max_inset_ratio_x,
        "max_inset_ratio_y": max_inset_ratio_y,
    }
    return replace(
        _CONFIG.pipeline.refine,
        **{key: value for key, value in overrides.items() if value is not None},
    )


def _image_response(image: Image.Image, fmt: str) -> Response:
    buf = BytesIO()
    if fmt == "JPEG" and image.mode != "RGB":
        image = image.convert("RGB")
    image.save(buf, fmt)
    media_type = "image/jpeg" if fmt == "JPEG" else "image/png"
    return Response(content=buf.getvalue(), media_type=media_type)


def _random_id(length: int = 8) -> str:
    alphabet = string.ascii_lowercase + string.digits
    return "".join(random.choice(alphabet) for _ in range(length))


@app.get("/api/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/api/refine", response_model=RefineResponse)
async def refine_endpoint(
    file: UploadFile = File(...),
    rect: str | None = Form(None, description="Coarse rect as 'left,top,right,bottom'."),
    scan_fraction: float | None = Query(None, gt=0, le=1),
    percentile: float | None = Query(None, gt=0, le=1),
    smooth_window: int | None = Query(None, ge=1, le=51),
    max_inset_ratio_x: float | None = Query(None, ge=0, le=0.5),
    max_inset_ratio_y: float | None = Query(None, ge=0, le=0.5),
) -> RefineResponse:
    image = _open_uploaded_image(file)
    initial = _require_rect(rect, image)
    config = _refine_config(
        scan_fraction, percentile, smooth_window, max_inset_ratio_x, max_inset_ratio_y
    )
    refined = refine_rect(image, initial, config)
    return RefineResponse(initial_rect=initial.as_tuple(), rect=refined.as_tuple())


@app.post("/api/detect", response_model=DetectResponse)
async def detect_endpoint(
    file: UploadFile = File(...),
    boxes: str | None = Form(None, description="Optional JSON list of detector boxes."),
) -> DetectResponse:
    image = _open_uploaded_image(file)
    packet = crop_packet(image, _parse_boxes(boxes), _CONFIG.pipeline)
    return DetectResponse(
        source=packet.source,
        coarse_rect=packet.coarse_rect.as_tuple(),
        pre_rect=packet.pre_rect.as_tuple(),
        rect=packet.rect.as_tuple(),
    )


@app.post("/api/overlay")
async def overlay_endpoint(
    file: UploadFile = File(...),
    rect: str | None = Form(None),
) -> Response:
    image = _open_uploaded_image(file)
    return _image_response(draw_overlay(image, _require_rect(rect, image)), "PNG")


@app.post("/api/crop")
async def crop_endpoint(
    file: UploadFile = File(...),
    boxes: str | None = Form(None),
) -> Response:
    image = _open_uploaded_image(file)
    packet = crop_packet(image, _parse_boxes(boxes), _CONFIG.pipeline)
    response = _image_response(packet.crop, "JPEG")
    response.headers["X-Packet-Rect"] = ",".join(str(v) for v in packet.rect.as_tuple())
    return response


@app.get("/api/config")
def get_config() -> JSONResponse:
    return JSONResponse(
        {
            "version": _VERSION,
            "refine": asdict(_CONFIG.pipeline.refine),
            "detection": asdict(_CONFIG.pipeline.detection),
            "debug_dir": _CONFIG.debug_dir,
            "batch_workers": _CONFIG.batch_workers,
        }
    )


@app.post("/api/debug")
async def debug_image(
    file: UploadFile = File(...),
    rect: str | None = Form(None),
    refined_rect: str | None = Form(None),
) -> dict[str, str | None]:
    if not _CONFIG.debug_dir:
        raise HTTPException(status_code=400, detail="Debug directory is not configured.")
    image = _open_uploaded_image(file)
    initial = _parse_rect(rect)
    refined = _parse_rect(refined_rect, "refined_rect")
    os.makedirs(_CONFIG.debug_dir, exist_ok=True)
    image_id = _random_id()
    image_path = os.path.join(_CONFIG.debug_dir, f"{image_id}.jpg")
    json_path = os.path.join(_CONFIG.debug_dir, f"{image_id}.json")

    if image.mode != "RGB":
        image = image.convert("RGB")
    image.save(image_path, "JPEG", quality=90)

    payload: dict[str, Any] = {
        "rect": list(initial.as_tuple()) if initial else None,
        "expected": list(refined.as_tuple()) if refined else None,
    }
    with open(json_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, sort_keys=True)

    return {"id": image_id, "image": image_path, "meta": json_path}
