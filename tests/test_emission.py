import os
import threading
import time

import pytest

from protoc_wire import emission
from protoc_wire.emission import (
    MAX_WRITE_CONCURRENCY,
    CompileError,
    CompileInterrupted,
    EmissionPool,
    FileSink,
)
from protoc_wire.logger import RecordingWireLogger
from protoc_wire.models import TypeDefinition, TypeKind
from protoc_wire.work_queue import WorkQueue


class _StubGenerator:
    """Renders each type to ``<package dirs>/<Name>.txt`` holding its name."""

    def __init__(self, failing=()):
        self.failing = set(failing)

    def generate(self, t):
        if t.name in self.failing:
            raise RuntimeError(f"cannot generate {t.name}")
        return t.name.replace(".", "/") + ".txt", f"// {t.name}\n"


def _types(count):
    return [TypeDefinition(name=f"pkg.Type{i}", kind=TypeKind.MESSAGE) for i in range(count)]


def _read_tree(root):
    contents = {}
    for dirpath, _, filenames in os.walk(root):
        for fn in filenames:
            path = os.path.join(dirpath, fn)
            with open(path, encoding="utf-8") as f:
                contents[os.path.relpath(path, root)] = f.read()
    return contents


class TestFileSink:
    def test_writes_under_out_dir(self, tmp_path):
        log = RecordingWireLogger()
        FileSink(str(tmp_path), log).write("a/b/C.java", "class C {}\n")
        assert (tmp_path / "a" / "b" / "C.java").read_text(encoding="utf-8") == "class C {}\n"
        assert log.artifacts == [(str(tmp_path), "a/b/C.java")]

    def test_overwrites_existing_file(self, tmp_path):
        sink = FileSink(str(tmp_path), RecordingWireLogger())
        sink.write("C.java", "old contents that are longer\n")
        sink.write("C.java", "new\n")
        assert (tmp_path / "C.java").read_text(encoding="utf-8") == "new\n"

    def test_dry_run_touches_nothing(self, tmp_path):
        out_dir = tmp_path / "out"
        log = RecordingWireLogger()
        FileSink(str(out_dir), log, dry_run=True).write("a/C.java", "class C {}\n")
        assert not out_dir.exists()
        assert log.artifacts == [(str(out_dir), "a/C.java")]


class TestEmissionPool:
    def test_default_worker_count(self):
        assert MAX_WRITE_CONCURRENCY == 8

    def test_rejects_non_positive_worker_count(self, tmp_path):
        sink = FileSink(str(tmp_path), RecordingWireLogger())
        with pytest.raises(ValueError):
            EmissionPool(_StubGenerator(), sink, max_workers=0)

    @pytest.mark.parametrize("workers", [1, 2, 3, 5, 8, 13])
    def test_queue_exhaustion(self, tmp_path, workers):
        types = _types(5)
        log = RecordingWireLogger()
        pool = EmissionPool(_StubGenerator(), FileSink(str(tmp_path), log), max_workers=workers)

        emitted = pool.run(WorkQueue(types))

        assert len(emitted) == 5
        assert len(set(emitted)) == 5
        assert sorted(p for _, p in log.artifacts) == sorted(
            f"pkg/Type{i}.txt" for i in range(5)
        )
        for path in emitted:
            assert os.path.isfile(path)

    def test_empty_queue(self, tmp_path):
        pool = EmissionPool(_StubGenerator(), FileSink(str(tmp_path), RecordingWireLogger()))
        assert pool.run(WorkQueue()) == []

    def test_output_independent_of_worker_count(self, tmp_path):
        types = _types(40)
        single = tmp_path / "single"
        many = tmp_path / "many"

        EmissionPool(_StubGenerator(), FileSink(str(single), RecordingWireLogger()), 1).run(
            WorkQueue(types)
        )
        EmissionPool(_StubGenerator(), FileSink(str(many), RecordingWireLogger()), 8).run(
            WorkQueue(types)
        )

        assert _read_tree(single) == _read_tree(many)
        assert len(_read_tree(single)) == 40

    def test_dry_run_writes_nothing(self, tmp_path):
        out_dir = tmp_path / "out"
        log = RecordingWireLogger()
        pool = EmissionPool(_StubGenerator(), FileSink(str(out_dir), log, dry_run=True))

        emitted = pool.run(WorkQueue(_types(10)))

        assert len(emitted) == 10
        assert len(log.artifacts) == 10
        assert not out_dir.exists()


class TestEmissionFailures:
    def test_failure_raised_after_siblings_finish(self, tmp_path):
        types = _types(10)
        log = RecordingWireLogger()
        generator = _StubGenerator(failing=["pkg.Type3"])
        pool = EmissionPool(generator, FileSink(str(tmp_path), log), max_workers=4)

        with pytest.raises(CompileError, match="cannot generate pkg.Type3") as excinfo:
            pool.run(WorkQueue(types))

        assert isinstance(excinfo.value.__cause__, RuntimeError)
        written = sorted(p for _, p in log.artifacts)
        assert written == sorted(f"pkg/Type{i}.txt" for i in range(10) if i != 3)

    def test_single_worker_stops_at_first_failure(self, tmp_path):
        log = RecordingWireLogger()
        generator = _StubGenerator(failing=["pkg.Type0"])
        pool = EmissionPool(generator, FileSink(str(tmp_path), log), max_workers=1)

        with pytest.raises(CompileError, match="pkg.Type0"):
            pool.run(WorkQueue(_types(3)))

        assert log.artifacts == []

    def test_sink_failure_is_a_compile_error(self, tmp_path):
        blocker = tmp_path / "pkg"
        blocker.write_text("a file where a directory is needed", encoding="utf-8")
        pool = EmissionPool(_StubGenerator(), FileSink(str(tmp_path), RecordingWireLogger()), 2)

        with pytest.raises(CompileError) as excinfo:
            pool.run(WorkQueue(_types(2)))
        assert isinstance(excinfo.value.__cause__, OSError)

    def test_error_message_names_exception_type(self, tmp_path):
        class _MissingGenerator:
            def generate(self, t):
                raise KeyError(t.name)

        pool = EmissionPool(_MissingGenerator(), FileSink(str(tmp_path), RecordingWireLogger()), 1)
        with pytest.raises(CompileError, match=r"^KeyError: 'pkg.Type0'$"):
            pool.run(WorkQueue(_types(1)))


class _GatedGenerator(_StubGenerator):
    """Blocks every call until ``gate`` is set, counting calls as they start."""

    def __init__(self):
        super().__init__()
        self.gate = threading.Event()
        self.calls = 0
        self._lock = threading.Lock()

    def generate(self, t):
        with self._lock:
            self.calls += 1
        self.gate.wait(timeout=10)
        return super().generate(t)


def _wait_until(condition, timeout=10.0):
    deadline = time.monotonic() + timeout
    while not condition():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached in time")
        time.sleep(0.01)


class TestEmissionInterrupt:
    def test_interrupt_stops_workers_after_current_file(self, tmp_path, monkeypatch):
        workers = 4
        work = WorkQueue(_types(100))
        log = RecordingWireLogger()
        generator = _GatedGenerator()

        def interrupted_wait(futures):
            _wait_until(lambda: generator.calls == workers)
            raise KeyboardInterrupt

        monkeypatch.setattr(emission, "wait", interrupted_wait)
        pool = EmissionPool(generator, FileSink(str(tmp_path), log), max_workers=workers)

        with pytest.raises(CompileInterrupted) as excinfo:
            pool.run(work)
        assert isinstance(excinfo.value.__cause__, KeyboardInterrupt)

        generator.gate.set()
        _wait_until(lambda: len(log.artifacts) == workers)
        time.sleep(0.2)
        assert len(log.artifacts) == workers
        assert generator.calls == workers
        assert len(work) == 100 - workers

    def test_interrupt_is_not_a_compile_error(self):
        assert not issubclass(CompileInterrupted, CompileError)
