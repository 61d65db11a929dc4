from __future__ import annotations

import math

import numpy as np

from yuv_psnr.errors import BufferMismatchError

MAX_SAMPLE_VALUE = 255.0
IDENTICAL_PSNR = 100.0


def _as_samples(buffer: bytes | bytearray | memoryview | np.ndarray) -> np.ndarray:
    if isinstance(buffer, np.ndarray):
        if buffer.dtype != np.uint8:
            raise BufferMismatchError(f"Luma buffer must hold 8-bit samples, got dtype {buffer.dtype}")
        return buffer.reshape(-1)
    return np.frombuffer(buffer, dtype=np.uint8)


def calc_luma_psnr(reference, candidate) -> float:
    ref = _as_samples(reference)
    cand = _as_samples(candidate)
    if ref.size == 0:
        raise BufferMismatchError("Luma buffers must not be empty")
    if ref.size != cand.size:
        raise BufferMismatchError(f"Luma buffer sizes differ: {ref.size} vs {cand.size}")

    diff = ref.astype(np.float64) - cand.astype(np.float64)
    noise = float(np.dot(diff, diff))
    if noise == 0:
        # Identical planes are clamped rather than reported as infinite.
        return IDENTICAL_PSNR
    return 10 * math.log10(MAX_SAMPLE_VALUE * MAX_SAMPLE_VALUE * ref.size / noise)
