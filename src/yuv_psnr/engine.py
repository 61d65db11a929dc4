from __future__ import annotations

import logging
import os
import queue
import threading
from enum import Enum
from typing import Callable

import numpy as np

from yuv_psnr.errors import EngineStateError
from yuv_psnr.scorer import calc_luma_psnr

logger = logging.getLogger(__name__)

Scorer = Callable[[np.ndarray, np.ndarray], float]


class EngineState(str, Enum):
    CREATED = "created"
    ACCEPTING = "accepting"
    DRAINING = "draining"
    FINALIZED = "finalized"


def default_worker_count() -> int:
    return max(1, os.cpu_count() or 1)


class FrameDispatchEngine:
    """Fixed pool of scoring threads fed by a bounded task queue.

    Every submitted frame is scored by exactly one worker, which writes the
    value into the slot matching its frame index. Slots are only read back
    after :meth:`finalize` has joined every worker, so no per-slot locking is
    needed. Frames must be submitted in increasing index order starting at 0.
    """

    def __init__(
        self,
        frame_count: int,
        workers: int | None = None,
        scorer: Scorer = calc_luma_psnr,
        queue_size: int | None = None,
    ) -> None:
        if frame_count < 0:
            raise EngineStateError(f"frame_count must not be negative, got {frame_count}")
        self.frame_count = frame_count
        self.workers = default_worker_count() if workers is None else max(1, int(workers))
        self.state = EngineState.CREATED
        self.results: list[float | None] = [None] * frame_count
        # Diagnostic only: which worker scored each frame.
        self.worker_ids: list[int | None] = [None] * frame_count
        self._errors: list[BaseException | None] = [None] * frame_count
        self._scorer = scorer
        self._tasks: queue.Queue[tuple[int, np.ndarray, np.ndarray] | None] = queue.Queue(
            maxsize=max(self.workers, queue_size or 0)
        )
        self._threads: list[threading.Thread] = []
        self._next_index = 0

    def start(self) -> None:
        if self.state is not EngineState.CREATED:
            raise EngineStateError(f"Cannot start engine in state {self.state.value}")
        for worker_id in range(1, self.workers + 1):
            thread = threading.Thread(
                target=self._worker_loop,
                args=(worker_id,),
                name=f"psnr-worker-{worker_id}",
                daemon=True,
            )
            thread.start()
            self._threads.append(thread)
        self.state = EngineState.ACCEPTING
        logger.debug("Started %d workers for %d frames", self.workers, self.frame_count)

    def submit(self, frame_index: int, reference: np.ndarray, candidate: np.ndarray) -> None:
        if self.state is EngineState.CREATED:
            self.start()
        if self.state is not EngineState.ACCEPTING:
            raise EngineStateError(f"Cannot submit frame {frame_index}: engine is {self.state.value}")
        if frame_index != self._next_index:
            raise EngineStateError(f"Expected frame {self._next_index}, got {frame_index}")
        if frame_index >= self.frame_count:
            raise EngineStateError(f"Frame {frame_index} is outside the {self.frame_count} result slots")
        # Blocks while the queue is full.
        self._tasks.put((frame_index, reference, candidate))
        self._next_index += 1

    def _worker_loop(self, worker_id: int) -> None:
        while True:
            task = self._tasks.get()
            if task is None:
                break
            frame_index, reference, candidate = task
            try:
                self.results[frame_index] = self._scorer(reference, candidate)
            except Exception as exc:
                logger.error("Worker %d failed on frame %d: %s", worker_id, frame_index, exc)
                self._errors[frame_index] = exc
            self.worker_ids[frame_index] = worker_id
            logger.debug("Worker %d scored frame %d", worker_id, frame_index)
        logger.debug("Worker %d exiting", worker_id)

    def close(self) -> None:
        if self.state is EngineState.FINALIZED:
            return
        self.state = EngineState.DRAINING
        for _ in self._threads:
            self._tasks.put(None)
        for thread in self._threads:
            thread.join()
        self.state = EngineState.FINALIZED

    def finalize(self) -> list[float]:
        self.close()
        for exc in self._errors:
            if exc is not None:
                raise exc
        if self._next_index != self.frame_count:
            raise EngineStateError(f"Only {self._next_index} of {self.frame_count} frames were submitted")
        return [float(value) for value in self.results]

    def __enter__(self) -> "FrameDispatchEngine":
        self.start()
        return self

    def __exit__(self, *_exc) -> None:
        self.close()
