from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import TextIO

from yuv_psnr.comparison import compare_yuv_files
from yuv_psnr.errors import PsnrError
from yuv_psnr.models import ComparisonOptions, ComparisonReport, FrameGeometry, FrameOrder

logger = logging.getLogger(__name__)

USAGE = "%(prog)s -w WIDTH -h HEIGHT -r REF_YUV -c COMPR_YUV [-v] [-d PTSDTS] [-coding-order]"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="yuv-psnr",
        usage=USAGE,
        description="Per-frame luma PSNR between a reference and a compressed YUV420 (8-bit) file.",
        add_help=False,
    )
    parser.add_argument("--help", action="help", help="Show this help message and exit")
    parser.add_argument("-w", dest="width", type=int, default=1280, help="Width of video")
    parser.add_argument("-h", dest="height", type=int, default=720, help="Height of video")
    parser.add_argument("-r", dest="reference", default="input.yuv", help="Reference YUV")
    parser.add_argument("-c", dest="candidate", default="output.yuv", help="Compressed/Output YUV")
    parser.add_argument(
        "-d",
        dest="timestamps",
        default="",
        help="File containing PTS,DTS values for each picture as csv (PTS,DTS)",
    )
    parser.add_argument("-v", dest="verbose", action="store_true", help="Verbose output")
    parser.add_argument(
        "-coding-order",
        "--coding-order",
        dest="coding_order",
        action="store_true",
        help="Assume YUV in coding order",
    )
    parser.add_argument("-j", "--workers", type=int, default=None, help="Number of scoring threads (default: CPU count)")
    parser.add_argument("--report-json", default=None, help="Also write the results to this path (json)")
    return parser


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def format_frame_line(frame_index: int, dts: int, pts: int, psnr: float) -> str:
    return f"PSNR for frame {frame_index} DTS {dts:10d} PTS {pts:10d} is {psnr:3.2f}"


def write_report(report: ComparisonReport, out: TextIO) -> None:
    for frame in report.frames:
        out.write(
            format_frame_line(frame.frame_index, frame.decode_timestamp, frame.presentation_timestamp, frame.psnr)
            + "\n"
        )


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if args.verbose:
        print(f"Number of CPU cores {os.cpu_count()}")

    try:
        options = ComparisonOptions(
            reference_path=Path(args.reference),
            candidate_path=Path(args.candidate),
            geometry=FrameGeometry(width=args.width, height=args.height),
            timestamps_path=Path(args.timestamps) if args.timestamps else None,
            frame_order=FrameOrder.CODING if args.coding_order else FrameOrder.DISPLAY,
            workers=args.workers,
        )
        report = compare_yuv_files(options, progress_cb=logger.debug if args.verbose else None)
    except (PsnrError, OSError) as exc:
        print(f"[yuv-psnr] error: {exc}", file=sys.stderr)
        return 2

    write_report(report, sys.stdout)

    if args.report_json:
        report_path = Path(args.report_json)
        report_path.write_text(
            json.dumps(report.to_dict(), indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
        logger.info("Report written to %s", report_path.resolve())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
