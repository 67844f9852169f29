"""Tests for cropping many files at once."""

import os

from seedcrop.batch import refine_batch, refine_batch_parallel, refine_batch_sequential


def _write_inputs(tmp_path, textured_packet_image, packet_image) -> list[str]:
    first = tmp_path / "a_packet.png"
    second = tmp_path / "b_packet.jpg"
    broken = tmp_path / "c_broken.png"
    textured_packet_image.save(first)
    packet_image.save(second)
    broken.write_bytes(b"not an image")
    return [str(first), str(second), str(broken)]


def test_refine_batch_sequential_collects_results_and_errors(
    tmp_path, textured_packet_image, packet_image
) -> None:
    paths = _write_inputs(tmp_path, textured_packet_image, packet_image)
    out_dir = tmp_path / "out"

    results, errors = refine_batch_sequential(paths, output_dir=str(out_dir))

    assert [r["path"] for r in results] == paths[:2]
    assert len(errors) == 1 and errors[0].startswith(paths[2])
    for result in results:
        assert result["source"] in {"fallback", "full"}
        assert os.path.exists(result["crop_path"])
        assert os.path.exists(result["overlay_path"])
    assert (out_dir / "b_packet_crop.jpg").exists()


def test_refine_batch_parallel_matches_sequential(tmp_path, textured_packet_image, packet_image) -> None:
    paths = _write_inputs(tmp_path, textured_packet_image, packet_image)

    parallel, parallel_errors = refine_batch_parallel(paths, workers=2, batch_size=1)
    sequential, _ = refine_batch_sequential(paths)

    assert parallel == sequential
    assert len(parallel_errors) == 1


def test_refine_batch_workers_one_runs_sequentially(tmp_path, textured_packet_image, packet_image) -> None:
    paths = _write_inputs(tmp_path, textured_packet_image, packet_image)

    results, errors = refine_batch(iter(paths), workers=1)

    assert len(results) == 2
    assert len(errors) == 1
