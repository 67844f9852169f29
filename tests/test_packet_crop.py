"""Tests for the end-to-end packet crop pipeline."""

from dataclasses import replace

from PIL import Image

from seedcrop.candidates import DetectedBox
from seedcrop.config import DetectionSettings, PipelineSettings
from seedcrop.geometry import Rect
from seedcrop.packet_crop import (
    SOURCE_DETECTOR,
    SOURCE_FALLBACK,
    SOURCE_FULL,
    choose_coarse_rect,
    crop_packet,
)


def test_crop_packet_uses_best_detector_box(textured_packet_image) -> None:
    box = DetectedBox(Rect(90, 70, 310, 230), labels=[("Food", 0.8)])

    packet = crop_packet(textured_packet_image, [box])

    assert packet.source == SOURCE_DETECTOR
    assert packet.coarse_rect == box.rect
    assert packet.pre_rect == Rect(66, 52, 334, 248)
    assert packet.pre_rect.contains(packet.rect)
    assert packet.crop.size == (packet.rect.width, packet.rect.height)
    assert packet.overlay.size == textured_packet_image.size


def test_crop_packet_falls_back_when_boxes_are_filtered(textured_packet_image) -> None:
    tiny = DetectedBox(Rect(0, 0, 20, 20))

    packet = crop_packet(textured_packet_image, [tiny])

    assert packet.source == SOURCE_FALLBACK
    assert packet.coarse_rect.contains(Rect(100, 80, 300, 220))


def test_crop_packet_uses_full_image_without_any_rect() -> None:
    image = Image.new("RGB", (120, 80), (90, 90, 90))
    settings = PipelineSettings(detection=DetectionSettings(use_fallback=False))

    packet = crop_packet(image, None, settings)

    assert packet.source == SOURCE_FULL
    assert packet.coarse_rect == Rect(0, 0, 120, 80)
    assert packet.rect == Rect(0, 0, 120, 80)


def test_choose_coarse_rect_honours_detection_settings(textured_packet_image) -> None:
    wide = DetectedBox(Rect(20, 100, 380, 200))  # aspect ratio 3.6
    settings = PipelineSettings()

    _, source = choose_coarse_rect(textured_packet_image, [wide], settings)
    relaxed = replace(settings, detection=replace(settings.detection, ar_max=None))
    rect, relaxed_source = choose_coarse_rect(textured_packet_image, [wide], relaxed)

    assert source == SOURCE_FALLBACK
    assert relaxed_source == SOURCE_DETECTOR
    assert rect == wide.rect


def test_crop_packet_elongated_image_falls_back_to_full_frame() -> None:
    image = Image.new("RGB", (1901, 2), (90, 90, 90))

    packet = crop_packet(image)

    assert packet.source == SOURCE_FULL
    assert packet.rect == Rect(0, 0, 1901, 2)
    assert packet.crop.size == (1901, 2)
