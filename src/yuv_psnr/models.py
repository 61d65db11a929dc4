from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from yuv_psnr.engine import default_worker_count
from yuv_psnr.errors import InvalidGeometryError

MISSING_TIMESTAMP = -1


class FrameOrder(str, Enum):
    CODING = "coding"
    DISPLAY = "display"


@dataclass(frozen=True, slots=True)
class FrameGeometry:
    width: int = 1280
    height: int = 720

    def __post_init__(self) -> None:
        for name in ("width", "height"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidGeometryError(f"{name} must be an integer, got {value!r}")
            if value <= 0:
                raise InvalidGeometryError(f"{name} must be positive, got {value}")

    @property
    def luma_size(self) -> int:
        return self.width * self.height

    @property
    def chroma_size(self) -> int:
        # U and V planes together, each a quarter of the luma plane.
        return (self.width * self.height) // 2

    @property
    def frame_size(self) -> int:
        return self.luma_size + self.chroma_size


@dataclass(frozen=True, slots=True)
class TimestampRecord:
    decode_timestamp: int
    presentation_timestamp: int


@dataclass(frozen=True, slots=True)
class ComparisonOptions:
    reference_path: Path = Path("input.yuv")
    candidate_path: Path = Path("output.yuv")
    geometry: FrameGeometry = field(default_factory=FrameGeometry)
    timestamps_path: Path | None = None
    frame_order: FrameOrder = FrameOrder.DISPLAY
    workers: int | None = None
    strict_reads: bool = True

    def normalized_workers(self) -> int:
        if self.workers is None:
            return default_worker_count()
        return max(1, int(self.workers))


@dataclass(slots=True)
class FrameScore:
    frame_index: int
    psnr: float
    decode_timestamp: int = MISSING_TIMESTAMP
    presentation_timestamp: int = MISSING_TIMESTAMP


@dataclass(slots=True)
class ComparisonReport:
    reference_path: Path
    candidate_path: Path
    geometry: FrameGeometry
    frames: list[FrameScore]
    workers: int
    frame_order: FrameOrder
    reference_frames: int
    candidate_frames: int

    @property
    def frames_compared(self) -> int:
        return len(self.frames)

    @property
    def psnr_values(self) -> list[float]:
        return [frame.psnr for frame in self.frames]

    def average_psnr(self) -> float | None:
        if not self.frames:
            return None
        return sum(self.psnr_values) / len(self.frames)

    def to_dict(self) -> dict[str, object]:
        return {
            "reference": str(self.reference_path),
            "candidate": str(self.candidate_path),
            "geometry": {"width": self.geometry.width, "height": self.geometry.height},
            "reference_frames": self.reference_frames,
            "candidate_frames": self.candidate_frames,
            "frames_compared": self.frames_compared,
            "workers": self.workers,
            "frame_order": self.frame_order.value,
            "average_psnr": self.average_psnr(),
            "frames": [
                {
                    "frame": frame.frame_index,
                    "dts": frame.decode_timestamp,
                    "pts": frame.presentation_timestamp,
                    "psnr": round(frame.psnr, 2),
                }
                for frame in self.frames
            ],
        }
