from __future__ import annotations

import queue
from typing import Iterable, Optional, Sequence

from protoc_wire.models import TypeDefinition
from protoc_wire.schema import Schema

# Emitted only when named explicitly, or when no file allow-list is given.
DESCRIPTOR_PROTO = "google/protobuf/descriptor.proto"


class WorkQueue:
    """Unordered, thread-safe collection of types awaiting emission.

    The queue is filled once before any consumer starts, so ``poll`` never
    waits: it returns None as soon as the queue is exhausted. Each item is
    handed to exactly one caller.
    """

    def __init__(self, types: Iterable[TypeDefinition] = ()):
        self._queue: queue.SimpleQueue = queue.SimpleQueue()
        for t in types:
            self._queue.put(t)

    def add(self, t: TypeDefinition) -> None:
        self._queue.put(t)

    def poll(self) -> Optional[TypeDefinition]:
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return None

    def __len__(self) -> int:
        return self._queue.qsize()


def populate(
    schema: Schema,
    source_file_names: Sequence[str] = (),
    named_files_only: bool = False,
) -> WorkQueue:
    """Queue the top-level types of every proto file selected for emission.

    When ``source_file_names`` is non-empty, files it does not name are still
    emitted unless ``named_files_only`` is set or the file is descriptor.proto.
    """
    allowed = set(source_file_names)
    work = WorkQueue()
    for proto_file in schema.proto_files:
        if allowed and proto_file.path not in allowed:
            if named_files_only or proto_file.path == DESCRIPTOR_PROTO:
                continue
        for t in proto_file.types:
            work.add(t)
    return work
