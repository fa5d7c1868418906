from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Optional, Tuple

# Proto scalar types; any other field type is a reference to a declared type.
SCALAR_TYPES = frozenset({
    "int32", "sint32", "sfixed32", "uint32", "fixed32",
    "int64", "sint64", "sfixed64", "uint64", "fixed64",
    "float", "double", "bool", "string", "bytes",
})


def is_scalar(type_name: str) -> bool:
    return type_name in SCALAR_TYPES


class TypeKind(Enum):
    MESSAGE = auto()
    ENUM = auto()
    SERVICE = auto()
    # A type kept only because it encloses retained nested types.
    ENCLOSING = auto()


class Label(Enum):
    OPTIONAL = "optional"
    REQUIRED = "required"
    REPEATED = "repeated"


@dataclass(frozen=True)
class Field:
    name: str
    tag: int
    type_name: str
    label: Optional[Label] = None
    key_type: Optional[str] = None
    oneof: Optional[str] = None

    @property
    def is_repeated(self) -> bool:
        return self.label is Label.REPEATED

    @property
    def is_map(self) -> bool:
        return self.key_type is not None

    @property
    def is_required(self) -> bool:
        return self.label is Label.REQUIRED


@dataclass(frozen=True)
class EnumConstant:
    name: str
    tag: int


@dataclass(frozen=True)
class Rpc:
    name: str
    request_type: str
    response_type: str
    request_streaming: bool = False
    response_streaming: bool = False


@dataclass(frozen=True)
class TypeDefinition:
    """A message, enum or service, identified by its fully-qualified name."""

    name: str
    kind: TypeKind
    location: str = ""
    fields: Tuple[Field, ...] = ()
    constants: Tuple[EnumConstant, ...] = ()
    rpcs: Tuple[Rpc, ...] = ()
    nested_types: Tuple[TypeDefinition, ...] = ()

    @property
    def simple_name(self) -> str:
        return self.name.rsplit(".", 1)[-1]

    def member_names(self) -> List[str]:
        """Names addressable with a ``Type#member`` identifier."""
        if self.kind is TypeKind.MESSAGE:
            return [f.name for f in self.fields]
        if self.kind is TypeKind.ENUM:
            return [c.name for c in self.constants]
        if self.kind is TypeKind.SERVICE:
            return [r.name for r in self.rpcs]
        return []

    def member_dependencies(self, member: str) -> List[str]:
        """Fully-qualified names of the types referenced by one member."""
        for f in self.fields:
            if f.name == member:
                return [t for t in (f.key_type, f.type_name) if t and not is_scalar(t)]
        for rpc in self.rpcs:
            if rpc.name == member:
                return [rpc.request_type, rpc.response_type]
        return []

    def dependencies(self) -> List[str]:
        """Outgoing dependency edges, in declaration order and without duplicates."""
        seen: List[str] = []
        for member in self.member_names():
            for dep in self.member_dependencies(member):
                if dep not in seen:
                    seen.append(dep)
        return seen

    def walk(self):
        """Yield this type followed by all of its nested types, depth first."""
        yield self
        for nested in self.nested_types:
            yield from nested.walk()


@dataclass(frozen=True)
class ProtoFile:
    """A parsed .proto source unit."""

    path: str
    package: Optional[str] = None
    java_package: Optional[str] = None
    imports: Tuple[str, ...] = ()
    types: Tuple[TypeDefinition, ...] = field(default_factory=tuple)

    @property
    def target_package(self) -> str:
        """Package of generated code: ``java_package`` if set, else the proto package."""
        return self.java_package or self.package or ""
