from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Callable, Iterable, Sequence

from yuv_psnr.models import MISSING_TIMESTAMP, FrameOrder, FrameScore, TimestampRecord

logger = logging.getLogger(__name__)

TimestampKey = Callable[[TimestampRecord], int]

SORT_KEYS: dict[str, TimestampKey] = {
    "decode": lambda record: record.decode_timestamp,
    "presentation": lambda record: record.presentation_timestamp,
}

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1
_DECIMAL_RE = re.compile(r"[+-]?[0-9]+")


def _parse_timestamp(text: str, label: str, line_number: int) -> int:
    stripped = text.strip()
    if _DECIMAL_RE.fullmatch(stripped):
        value = int(stripped)
        if INT64_MIN <= value <= INT64_MAX:
            return value
        logger.warning("Line %d: %s %r does not fit in 64 bits", line_number, label, text)
        return MISSING_TIMESTAMP
    logger.warning("Line %d: cannot parse %s %r", line_number, label, text)
    return MISSING_TIMESTAMP


def parse_timestamp_line(line: str, line_number: int = 0) -> TimestampRecord:
    fields = line.split(",")
    if len(fields) == 1:
        # Legacy single-column files carry decode timestamps only.
        decode = _parse_timestamp(fields[0], "DTS", line_number)
        return TimestampRecord(decode_timestamp=decode, presentation_timestamp=decode)
    if len(fields) > 2:
        logger.warning("Line %d: expected PTS,DTS but found %d fields", line_number, len(fields))
    presentation = _parse_timestamp(fields[0], "PTS", line_number)
    decode = _parse_timestamp(fields[1], "DTS", line_number)
    return TimestampRecord(decode_timestamp=decode, presentation_timestamp=presentation)


def parse_timestamp_lines(lines: Iterable[str]) -> list[TimestampRecord]:
    stripped = [line.rstrip("\r\n") for line in lines]
    # Only trailing blank lines are dropped; inner ones keep their frame slot.
    while stripped and not stripped[-1].strip():
        stripped.pop()
    records: list[TimestampRecord] = []
    for line_number, line in enumerate(stripped, start=1):
        if not line.strip():
            logger.warning("Line %d: blank record, timestamps set to %d", line_number, MISSING_TIMESTAMP)
            records.append(TimestampRecord(MISSING_TIMESTAMP, MISSING_TIMESTAMP))
            continue
        records.append(parse_timestamp_line(line, line_number))
    return records


def read_timestamps(path: Path | None) -> list[TimestampRecord]:
    if path is None:
        return []
    try:
        with open(path, "r", encoding="utf-8") as handle:
            records = parse_timestamp_lines(handle)
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Timestamp file %s unavailable, timestamps will print as %d: %s", path, MISSING_TIMESTAMP, exc)
        return []
    logger.debug("Read %d timestamp records from %s", len(records), path)
    return records


def sort_timestamps(records: Sequence[TimestampRecord], key: str | TimestampKey) -> list[TimestampRecord]:
    if isinstance(key, str):
        try:
            key = SORT_KEYS[key]
        except KeyError:
            raise ValueError(f"Unknown timestamp sort key {key!r}, expected one of {sorted(SORT_KEYS)}") from None
    # sorted() is stable, so equal keys keep their coding order.
    return sorted(records, key=key)


def order_timestamps(records: Sequence[TimestampRecord], frame_order: FrameOrder) -> list[TimestampRecord]:
    if frame_order == FrameOrder.DISPLAY:
        return sort_timestamps(records, "presentation")
    return list(records)


def annotate_scores(psnr_values: Sequence[float], records: Sequence[TimestampRecord]) -> list[FrameScore]:
    scores: list[FrameScore] = []
    for frame_index, psnr in enumerate(psnr_values):
        score = FrameScore(frame_index=frame_index, psnr=psnr)
        if frame_index < len(records):
            score.decode_timestamp = records[frame_index].decode_timestamp
            score.presentation_timestamp = records[frame_index].presentation_timestamp
        scores.append(score)
    return scores
