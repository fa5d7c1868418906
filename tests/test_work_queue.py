import threading

from protoc_wire.models import ProtoFile, TypeDefinition, TypeKind
from protoc_wire.schema import Schema
from protoc_wire.work_queue import DESCRIPTOR_PROTO, WorkQueue, populate


def _file(path, *type_names):
    return ProtoFile(
        path=path,
        types=tuple(TypeDefinition(name=n, kind=TypeKind.MESSAGE, location=path) for n in type_names),
    )


def _drain(work):
    names = []
    while True:
        t = work.poll()
        if t is None:
            return names
        names.append(t.name)


def _schema():
    return Schema([
        _file("a.proto", "a.A1", "a.A2"),
        _file("b.proto", "b.B"),
        _file(DESCRIPTOR_PROTO, "google.protobuf.FileDescriptorProto"),
    ])


class TestWorkQueue:
    def test_poll_on_empty_queue_returns_none(self):
        assert WorkQueue().poll() is None

    def test_each_item_polled_once(self):
        types = [TypeDefinition(name=f"t.T{i}", kind=TypeKind.MESSAGE) for i in range(5)]
        work = WorkQueue(types)
        assert len(work) == 5
        assert sorted(_drain(work)) == sorted(t.name for t in types)
        assert work.poll() is None
        assert len(work) == 0

    def test_concurrent_consumers_claim_each_item_exactly_once(self):
        types = [TypeDefinition(name=f"t.T{i}", kind=TypeKind.MESSAGE) for i in range(500)]
        work = WorkQueue(types)
        claimed = [[] for _ in range(8)]
        threads = [
            threading.Thread(target=lambda out=out: out.extend(_drain(work)))
            for out in claimed
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        all_claimed = [name for out in claimed for name in out]
        assert len(all_claimed) == 500
        assert set(all_claimed) == {t.name for t in types}


class TestPopulate:
    def test_no_allow_list_queues_everything(self):
        work = populate(_schema())
        assert sorted(_drain(work)) == [
            "a.A1", "a.A2", "b.B", "google.protobuf.FileDescriptorProto",
        ]

    def test_allow_list_still_queues_unnamed_files(self):
        work = populate(_schema(), ["a.proto"])
        assert sorted(_drain(work)) == ["a.A1", "a.A2", "b.B"]

    def test_named_files_only(self):
        work = populate(_schema(), ["a.proto"], named_files_only=True)
        assert sorted(_drain(work)) == ["a.A1", "a.A2"]

    def test_descriptor_emitted_when_named(self):
        work = populate(_schema(), [DESCRIPTOR_PROTO], named_files_only=True)
        assert _drain(work) == ["google.protobuf.FileDescriptorProto"]

    def test_only_top_level_types_are_queued(self):
        outer = TypeDefinition(
            name="a.Outer",
            kind=TypeKind.MESSAGE,
            nested_types=(TypeDefinition(name="a.Outer.Inner", kind=TypeKind.MESSAGE),),
        )
        schema = Schema([ProtoFile(path="a.proto", types=(outer,))])
        assert _drain(populate(schema)) == ["a.Outer"]

    def test_empty_schema(self):
        assert populate(Schema([])).poll() is None
