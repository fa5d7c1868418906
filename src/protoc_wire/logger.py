from __future__ import annotations

import sys
import threading
from abc import ABC, abstractmethod
from typing import List, Tuple


class WireLogger(ABC):
    """Receives the compiler's diagnostics.

    ``info`` messages are informational and suppressed in quiet mode.
    ``artifact`` reports one emitted file; it is called from worker threads.
    """

    @abstractmethod
    def set_quiet(self, quiet: bool) -> None:
        ...

    @abstractmethod
    def info(self, message: str) -> None:
        ...

    @abstractmethod
    def artifact(self, out_dir: str, path: str) -> None:
        ...


class ConsoleWireLogger(WireLogger):
    """Prints diagnostics to stdout."""

    def __init__(self, quiet: bool = False):
        self._quiet = quiet
        self._lock = threading.Lock()

    def set_quiet(self, quiet: bool) -> None:
        self._quiet = quiet

    def info(self, message: str) -> None:
        if self._quiet:
            return
        with self._lock:
            print(message)

    def artifact(self, out_dir: str, path: str) -> None:
        with self._lock:
            if self._quiet:
                print(path)
            else:
                print(f"Writing {path} to {out_dir}")
            sys.stdout.flush()


class RecordingWireLogger(WireLogger):
    """Collects diagnostics in memory, for tests and embedding."""

    def __init__(self) -> None:
        self.quiet = False
        self.messages: List[str] = []
        self.artifacts: List[Tuple[str, str]] = []
        self._lock = threading.Lock()

    def set_quiet(self, quiet: bool) -> None:
        self.quiet = quiet

    def info(self, message: str) -> None:
        if not self.quiet:
            with self._lock:
                self.messages.append(message)

    def artifact(self, out_dir: str, path: str) -> None:
        with self._lock:
            self.artifacts.append((out_dir, path))
