from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from yuv_psnr.comparison import compare_yuv_files  # noqa: E402
from yuv_psnr.errors import InputOpenError  # noqa: E402
from yuv_psnr.models import MISSING_TIMESTAMP, ComparisonOptions, FrameGeometry, FrameOrder  # noqa: E402
from tests.generate_test_yuv import (  # noqa: E402
    GOLDEN_HEIGHT,
    GOLDEN_PSNR,
    GOLDEN_WIDTH,
    create_degraded_yuv,
    create_golden_pair,
    create_synthetic_yuv,
)

GOLDEN_GEOMETRY = FrameGeometry(width=GOLDEN_WIDTH, height=GOLDEN_HEIGHT)


def _golden_options(tmp_path: Path, **overrides) -> ComparisonOptions:
    reference, candidate = create_golden_pair(tmp_path)
    params = dict(reference_path=reference, candidate_path=candidate, geometry=GOLDEN_GEOMETRY)
    params.update(overrides)
    return ComparisonOptions(**params)


def test_golden_pair_psnr_values(tmp_path: Path) -> None:
    report = compare_yuv_files(_golden_options(tmp_path))

    assert report.frames_compared == 3
    for frame, expected in zip(report.frames, GOLDEN_PSNR):
        assert abs(frame.psnr - expected) <= 0.005
    assert [frame.frame_index for frame in report.frames] == [0, 1, 2]


def test_golden_pair_ignores_swapped_dimensions(tmp_path: Path) -> None:
    # Luma size is the same with width and height swapped.
    report = compare_yuv_files(_golden_options(tmp_path, geometry=FrameGeometry(width=144, height=176)))
    assert [round(value, 2) for value in report.psnr_values] == list(GOLDEN_PSNR)


def test_missing_metadata_prints_sentinels(tmp_path: Path) -> None:
    report = compare_yuv_files(_golden_options(tmp_path, timestamps_path=tmp_path / "nope.txt"))
    assert all(frame.decode_timestamp == MISSING_TIMESTAMP for frame in report.frames)
    assert all(frame.presentation_timestamp == MISSING_TIMESTAMP for frame in report.frames)
    assert [round(value, 2) for value in report.psnr_values] == list(GOLDEN_PSNR)


@pytest.mark.parametrize(
    "frame_order,expected",
    [
        (FrameOrder.CODING, [(0, 3), (1, 1), (2, 2)]),
        (FrameOrder.DISPLAY, [(1, 1), (2, 2), (0, 3)]),
    ],
)
def test_metadata_annotation_by_frame_order(tmp_path: Path, frame_order: FrameOrder, expected) -> None:
    metadata = tmp_path / "dts_pts_test_values.txt"
    metadata.write_text("3,0\n1,1\n2,2\n", encoding="utf-8")

    report = compare_yuv_files(_golden_options(tmp_path, timestamps_path=metadata, frame_order=frame_order))

    assert [(f.decode_timestamp, f.presentation_timestamp) for f in report.frames] == expected
    assert [round(value, 2) for value in report.psnr_values] == list(GOLDEN_PSNR)


def test_unequal_lengths_compare_common_prefix(tmp_path: Path) -> None:
    reference = create_synthetic_yuv(tmp_path / "ref.yuv", frame_count=6)
    candidate = create_degraded_yuv(reference, tmp_path / "cand.yuv", frame_count=4)
    options = ComparisonOptions(
        reference_path=reference,
        candidate_path=candidate,
        geometry=FrameGeometry(width=64, height=48),
        workers=3,
    )

    report = compare_yuv_files(options)

    assert (report.reference_frames, report.candidate_frames) == (6, 4)
    assert report.frames_compared == 4
    assert all(0.0 < value < 100.0 for value in report.psnr_values)


def test_worker_counts_produce_identical_results(tmp_path: Path) -> None:
    reference = create_synthetic_yuv(tmp_path / "ref.yuv", frame_count=10)
    candidate = create_degraded_yuv(reference, tmp_path / "cand.yuv")
    results = []
    for workers in (1, 2, 8):
        options = ComparisonOptions(
            reference_path=reference,
            candidate_path=candidate,
            geometry=FrameGeometry(width=64, height=48),
            workers=workers,
        )
        results.append(compare_yuv_files(options).psnr_values)
    assert results[0] == results[1] == results[2]
    assert len(results[0]) == 10


def test_identical_files_score_sentinel(tmp_path: Path) -> None:
    reference = create_synthetic_yuv(tmp_path / "ref.yuv", frame_count=3)
    options = ComparisonOptions(reference_path=reference, candidate_path=reference, geometry=FrameGeometry(64, 48))
    assert compare_yuv_files(options).psnr_values == [100.0, 100.0, 100.0]


def test_missing_input_fails_before_processing(tmp_path: Path) -> None:
    reference = create_synthetic_yuv(tmp_path / "ref.yuv", frame_count=1)
    options = ComparisonOptions(
        reference_path=reference,
        candidate_path=tmp_path / "missing.yuv",
        geometry=FrameGeometry(64, 48),
    )
    with pytest.raises(InputOpenError):
        compare_yuv_files(options)


def test_progress_callback_reports_completion(tmp_path: Path) -> None:
    reference = create_synthetic_yuv(tmp_path / "ref.yuv", frame_count=30, width=16, height=16)
    messages: list[str] = []
    options = ComparisonOptions(
        reference_path=reference,
        candidate_path=reference,
        geometry=FrameGeometry(16, 16),
        workers=2,
    )

    compare_yuv_files(options, progress_cb=messages.append)

    assert messages[0] == "Queued 25/30 frames"
    assert messages[-1] == "Scored 30 frames with 2 workers"


def test_report_to_dict_summarizes_run(tmp_path: Path) -> None:
    report = compare_yuv_files(_golden_options(tmp_path, workers=2))
    data = report.to_dict()
    assert data["frames_compared"] == 3
    assert data["workers"] == 2
    assert data["frame_order"] == "display"
    assert [frame["psnr"] for frame in data["frames"]] == list(GOLDEN_PSNR)
    assert data["average_psnr"] == pytest.approx(sum(GOLDEN_PSNR) / 3, abs=0.01)
