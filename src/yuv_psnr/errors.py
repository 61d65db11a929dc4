from __future__ import annotations


class PsnrError(RuntimeError):
    pass


class InvalidGeometryError(PsnrError, ValueError):
    pass


class InputOpenError(PsnrError):
    def __init__(self, path, reason: str) -> None:
        super().__init__(f"Cannot open input {path}: {reason}")
        self.path = path


class TruncatedFrameError(PsnrError):
    def __init__(self, path, frame_index: int, expected: int, actual: int) -> None:
        super().__init__(
            f"Short read in {path} at frame {frame_index}: expected {expected} luma bytes, got {actual}"
        )
        self.path = path
        self.frame_index = frame_index
        self.expected = expected
        self.actual = actual


class BufferMismatchError(PsnrError, ValueError):
    pass


class EngineStateError(PsnrError):
    pass
