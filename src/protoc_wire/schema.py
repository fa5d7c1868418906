from __future__ import annotations

from typing import Dict, Iterable, Iterator, Optional, Tuple

from protoc_wire.identifier_set import IdentifierSet
from protoc_wire.models import ProtoFile, TypeDefinition


class Schema:
    """An immutable set of linked proto files.

    Every dependency edge resolves to a type of the same schema, except for
    references to types that were removed by an exclude rule during pruning.
    """

    def __init__(self, proto_files: Iterable[ProtoFile]):
        self._proto_files: Tuple[ProtoFile, ...] = tuple(proto_files)
        self._types_by_name: Dict[str, TypeDefinition] = {}
        self._files_by_type: Dict[str, ProtoFile] = {}
        for proto_file in self._proto_files:
            for top_level in proto_file.types:
                for t in top_level.walk():
                    self._types_by_name[t.name] = t
                    self._files_by_type[t.name] = proto_file

    @property
    def proto_files(self) -> Tuple[ProtoFile, ...]:
        return self._proto_files

    def proto_file(self, path: str) -> Optional[ProtoFile]:
        for proto_file in self._proto_files:
            if proto_file.path == path:
                return proto_file
        return None

    def get_type(self, name: str) -> Optional[TypeDefinition]:
        return self._types_by_name.get(name)

    def file_of(self, type_name: str) -> Optional[ProtoFile]:
        """Return the proto file declaring ``type_name``, nested types included."""
        return self._files_by_type.get(type_name)

    def types(self) -> Iterator[TypeDefinition]:
        """Yield every type of the schema, nested types included."""
        for proto_file in self._proto_files:
            for top_level in proto_file.types:
                yield from top_level.walk()

    def prune(self, identifier_set: IdentifierSet) -> Schema:
        """Return a schema retaining only the types selected by ``identifier_set``.

        Roots are the types (and members) the set includes; everything they
        transitively depend on is kept unless an exclude rule matches it.
        """
        if identifier_set.is_empty():
            return self
        from protoc_wire.pruner import Pruner

        return Pruner(self, identifier_set).prune()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Schema):
            return NotImplemented
        return self._proto_files == other._proto_files

    def __hash__(self) -> int:
        return hash(self._proto_files)

    def __repr__(self) -> str:
        return f"Schema({[f.path for f in self._proto_files]})"
