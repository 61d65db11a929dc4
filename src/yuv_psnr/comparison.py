from __future__ import annotations

import logging
from typing import Callable

from yuv_psnr.engine import FrameDispatchEngine, Scorer
from yuv_psnr.models import ComparisonOptions, ComparisonReport
from yuv_psnr.reader import FramePairReader
from yuv_psnr.scorer import calc_luma_psnr
from yuv_psnr.timestamps import annotate_scores, order_timestamps, read_timestamps

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]

PROGRESS_EVERY = 25


def calculate_psnr(
    reader: FramePairReader,
    workers: int | None = None,
    progress_cb: ProgressCallback | None = None,
    scorer: Scorer = calc_luma_psnr,
) -> list[float]:
    frame_count = reader.frames_to_compare()
    with FrameDispatchEngine(frame_count, workers=workers, scorer=scorer) as engine:
        for frame_index, ref_luma, cand_luma in reader.iter_luma_pairs(frame_count):
            engine.submit(frame_index, ref_luma, cand_luma)
            submitted = frame_index + 1
            if progress_cb and submitted % PROGRESS_EVERY == 0:
                progress_cb(f"Queued {submitted}/{frame_count} frames")
        values = engine.finalize()
    if progress_cb:
        progress_cb(f"Scored {len(values)} frames with {engine.workers} workers")
    return values


def compare_yuv_files(
    options: ComparisonOptions,
    progress_cb: ProgressCallback | None = None,
) -> ComparisonReport:
    workers = options.normalized_workers()
    with FramePairReader.open(
        options.reference_path,
        options.candidate_path,
        options.geometry,
        strict=options.strict_reads,
    ) as reader:
        reference_frames, candidate_frames = reader.frame_counts()
        if reference_frames != candidate_frames:
            logger.info(
                "Frame counts differ (reference %d, candidate %d); comparing %d",
                reference_frames,
                candidate_frames,
                min(reference_frames, candidate_frames),
            )
        psnr_values = calculate_psnr(reader, workers=workers, progress_cb=progress_cb)

    records = order_timestamps(read_timestamps(options.timestamps_path), options.frame_order)
    if records and len(records) != len(psnr_values):
        logger.warning("%d timestamp records for %d compared frames", len(records), len(psnr_values))

    report = ComparisonReport(
        reference_path=options.reference_path,
        candidate_path=options.candidate_path,
        geometry=options.geometry,
        frames=annotate_scores(psnr_values, records),
        workers=workers,
        frame_order=options.frame_order,
        reference_frames=reference_frames,
        candidate_frames=candidate_frames,
    )
    average = report.average_psnr()
    if average is not None:
        logger.info("Compared %d frames, average luma PSNR %.2f dB", report.frames_compared, average)
    return report
