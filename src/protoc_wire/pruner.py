"""Mark-and-sweep pruning of a schema.

The mark phase seeds a work list with the root types and members selected by
an IdentifierSet, then follows dependency edges until nothing new is reached.
The sweep phase rebuilds the schema keeping only marked types and members.
Exclusion is absolute: an excluded type is dropped even when a retained type
depends on it, leaving that reference dangling.
"""

from __future__ import annotations

from collections import deque
from dataclasses import replace
from typing import Deque, Dict, List, Optional, Set

from protoc_wire.identifier_set import IdentifierSet
from protoc_wire.models import ProtoFile, TypeDefinition, TypeKind
from protoc_wire.schema import Schema


class MarkSet:
    """Types and members marked as reachable.

    A type marked as a whole retains all of its members. A type that was
    rooted through ``Type#member`` rules retains only those members.
    """

    def __init__(self, schema: Schema, identifier_set: IdentifierSet):
        self._schema = schema
        self._identifier_set = identifier_set
        self._types: Set[str] = set()
        self._members: Dict[str, Set[str]] = {}

    def root(self, type_name: str) -> None:
        self._types.add(type_name)

    def root_member(self, type_name: str, member: str) -> None:
        self._types.add(type_name)
        self._members.setdefault(type_name, set()).add(member)

    def mark(self, type_name: str) -> bool:
        """Mark a reachable type. Returns True if it was not marked before."""
        if self.is_excluded(type_name):
            return False
        if type_name in self._types:
            return False
        self._types.add(type_name)
        return True

    def contains(self, type_name: str) -> bool:
        return type_name in self._types

    def contains_member(self, type_name: str, member: str) -> bool:
        if self._identifier_set.excludes(f"{type_name}#{member}"):
            return False
        if type_name in self._members:
            return member in self._members[type_name]
        return type_name in self._types

    def is_excluded(self, type_name: str) -> bool:
        """True if the type, or any type enclosing it, matches an exclude rule."""
        name: Optional[str] = type_name
        while name is not None:
            if self._identifier_set.excludes(name):
                return True
            name = self._enclosing_type(name)
        return False

    def _enclosing_type(self, type_name: str) -> Optional[str]:
        if "." not in type_name:
            return None
        parent = type_name.rsplit(".", 1)[0]
        if self._schema.get_type(parent) is None:
            return None
        return parent


class Pruner:
    def __init__(self, schema: Schema, identifier_set: IdentifierSet):
        self._schema = schema
        self._identifier_set = identifier_set
        self._marks = MarkSet(schema, identifier_set)
        self._queue: Deque[str] = deque()

    def prune(self) -> Schema:
        self._mark_roots()
        self._mark_reachable()
        return self._retain_all()

    # -- mark --

    def _mark_roots(self) -> None:
        for t in self._schema.types():
            if self._marks.is_excluded(t.name):
                continue
            if self._identifier_set.includes(t.name):
                self._marks.root(t.name)
                self._queue.append(t.name)
                continue

            rooted = False
            for member in t.member_names():
                if self._identifier_set.includes(f"{t.name}#{member}"):
                    self._marks.root_member(t.name, member)
                    rooted = True
            if rooted:
                self._queue.append(t.name)

    def _mark_reachable(self) -> None:
        while self._queue:
            type_name = self._queue.popleft()
            t = self._schema.get_type(type_name)
            if t is None:
                # A dangling reference left by an earlier prune.
                continue
            for member in t.member_names():
                if not self._marks.contains_member(type_name, member):
                    continue
                for dependency in t.member_dependencies(member):
                    if self._marks.mark(dependency):
                        self._queue.append(dependency)

    # -- sweep --

    def _retain_all(self) -> Schema:
        retained_files: List[ProtoFile] = []
        for proto_file in self._schema.proto_files:
            types = tuple(
                r for r in (self._retain(t) for t in proto_file.types) if r is not None
            )
            if types:
                retained_files.append(replace(proto_file, types=types))
        return Schema(retained_files)

    def _retain(self, t: TypeDefinition) -> Optional[TypeDefinition]:
        nested = tuple(
            r for r in (self._retain(n) for n in t.nested_types) if r is not None
        )

        if not self._marks.contains(t.name):
            if not nested:
                return None
            return TypeDefinition(
                name=t.name,
                kind=TypeKind.ENCLOSING,
                location=t.location,
                nested_types=nested,
            )

        return replace(
            t,
            fields=tuple(f for f in t.fields if self._marks.contains_member(t.name, f.name)),
            constants=tuple(
                c for c in t.constants if self._marks.contains_member(t.name, c.name)
            ),
            rpcs=tuple(r for r in t.rpcs if self._marks.contains_member(t.name, r.name)),
            nested_types=nested,
        )
