from __future__ import annotations

import io
import logging
import os
from pathlib import Path
from typing import BinaryIO, Iterator

import numpy as np

from yuv_psnr.errors import InputOpenError, TruncatedFrameError
from yuv_psnr.models import FrameGeometry

logger = logging.getLogger(__name__)


def count_whole_frames(stream: BinaryIO, frame_size: int) -> int:
    try:
        size = os.fstat(stream.fileno()).st_size
    except (AttributeError, OSError, io.UnsupportedOperation):
        position = stream.tell()
        size = stream.seek(0, io.SEEK_END)
        stream.seek(position, io.SEEK_SET)
    return int(size // frame_size)


def open_yuv_input(path: Path) -> BinaryIO:
    path = Path(path)
    if path.is_dir():
        raise InputOpenError(path, "is a directory")
    try:
        return open(path, "rb")
    except OSError as exc:
        raise InputOpenError(path, exc.strerror or str(exc)) from exc


class FramePairReader:
    """Reads luma planes of a reference and a candidate YUV420 stream in lockstep."""

    def __init__(
        self,
        reference: BinaryIO,
        candidate: BinaryIO,
        geometry: FrameGeometry,
        strict: bool = True,
        reference_name: str = "reference",
        candidate_name: str = "candidate",
    ) -> None:
        self.reference = reference
        self.candidate = candidate
        self.geometry = geometry
        self.strict = strict
        self.reference_name = reference_name
        self.candidate_name = candidate_name
        self._owned: list[BinaryIO] = []

    @classmethod
    def open(cls, reference_path: Path, candidate_path: Path, geometry: FrameGeometry, strict: bool = True) -> "FramePairReader":
        reference = open_yuv_input(reference_path)
        try:
            candidate = open_yuv_input(candidate_path)
        except InputOpenError:
            reference.close()
            raise
        reader = cls(
            reference,
            candidate,
            geometry,
            strict=strict,
            reference_name=str(reference_path),
            candidate_name=str(candidate_path),
        )
        reader._owned = [reference, candidate]
        return reader

    def close(self) -> None:
        for stream in self._owned:
            stream.close()
        self._owned = []

    def __enter__(self) -> "FramePairReader":
        return self

    def __exit__(self, *_exc) -> None:
        self.close()

    def frame_counts(self) -> tuple[int, int]:
        frame_size = self.geometry.frame_size
        return count_whole_frames(self.reference, frame_size), count_whole_frames(self.candidate, frame_size)

    def frames_to_compare(self) -> int:
        return min(self.frame_counts())

    def _read_luma(self, stream: BinaryIO, name: str, frame_index: int) -> np.ndarray:
        expected = self.geometry.luma_size
        data = stream.read(expected)
        if len(data) != expected:
            if self.strict:
                raise TruncatedFrameError(name, frame_index, expected, len(data))
            logger.warning("Short read in %s at frame %d: %d of %d bytes", name, frame_index, len(data), expected)
            # Lenient mode scores the missing tail as zero samples.
            data = data.ljust(expected, b"\x00")
        stream.seek(self.geometry.chroma_size, io.SEEK_CUR)
        return np.frombuffer(data, dtype=np.uint8)

    def iter_luma_pairs(self, frame_count: int | None = None) -> Iterator[tuple[int, np.ndarray, np.ndarray]]:
        if frame_count is None:
            frame_count = self.frames_to_compare()
        for frame_index in range(frame_count):
            ref_luma = self._read_luma(self.reference, self.reference_name, frame_index)
            cand_luma = self._read_luma(self.candidate, self.candidate_name, frame_index)
            yield frame_index, ref_luma, cand_luma
