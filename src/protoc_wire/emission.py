"""Concurrent emission of generated files.

A fixed number of workers drain a shared WorkQueue. A worker that fails stops
draining and reports its failure as the outcome of its future; its siblings
keep running. Once every worker has finished, the first failure in worker
submission order is raised as a CompileError. An interrupt stops every worker
after its current file and is raised as CompileInterrupted.
"""

from __future__ import annotations

import os
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import List

from protoc_wire.generator.base import Generator
from protoc_wire.logger import WireLogger
from protoc_wire.work_queue import WorkQueue

MAX_WRITE_CONCURRENCY = 8


class CompileError(Exception):
    """Raised when a type cannot be generated or its file cannot be written."""


class CompileInterrupted(Exception):
    """Raised when emission is interrupted before every worker finished."""


class FileSink:
    """Writes generated sources under ``out_dir``, or only reports them in dry-run mode."""

    def __init__(self, out_dir: str, log: WireLogger, dry_run: bool = False):
        self.out_dir = out_dir
        self.dry_run = dry_run
        self._log = log

    def write(self, path: str, source: str) -> None:
        if self.dry_run:
            self._log.artifact(self.out_dir, path)
            return

        target = Path(self.out_dir) / path
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8", newline="\n") as f:
            f.write(source)
        self._log.artifact(self.out_dir, path)


class EmissionPool:
    def __init__(
        self,
        generator: Generator,
        sink: FileSink,
        max_workers: int = MAX_WRITE_CONCURRENCY,
    ):
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        self._generator = generator
        self._sink = sink
        self._max_workers = max_workers

    def run(self, work: WorkQueue) -> List[str]:
        """Drain ``work`` with the pool's workers and return every emitted path."""
        stop = threading.Event()
        executor = ThreadPoolExecutor(
            max_workers=self._max_workers, thread_name_prefix="protoc-wire"
        )
        futures: List[Future] = []
        try:
            for _ in range(self._max_workers):
                futures.append(executor.submit(self._drain, work, stop))
            wait(futures)
        except KeyboardInterrupt as e:
            # Running workers finish their current file, then stop polling.
            stop.set()
            executor.shutdown(wait=False, cancel_futures=True)
            raise CompileInterrupted("Interrupted while writing generated files") from e
        executor.shutdown(wait=True)

        emitted: List[str] = []
        for future in futures:
            error = future.exception()
            if error is not None:
                raise CompileError(f"{type(error).__name__}: {error}") from error
            emitted.extend(future.result())
        return emitted

    def _drain(self, work: WorkQueue, stop: threading.Event) -> List[str]:
        emitted: List[str] = []
        while not stop.is_set():
            t = work.poll()
            if t is None:
                break
            path, source = self._generator.generate(t)
            self._sink.write(path, source)
            emitted.append(os.path.join(self._sink.out_dir, path))
        return emitted
