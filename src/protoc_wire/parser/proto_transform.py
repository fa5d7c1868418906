"""Transform proto AST nodes into the schema's TypeDefinition model.

Transformation happens in two passes over all loaded files: the names every
file declares are collected first, then each file's type references are
resolved against that set using protobuf scoping rules.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Set

from protoc_wire.models import (
    EnumConstant,
    Field,
    Label,
    ProtoFile,
    Rpc,
    TypeDefinition,
    TypeKind,
    is_scalar,
)

from .proto_ast import ProtoEnum, ProtoFile as ProtoFileNode, ProtoMessage, ProtoService


class LinkError(Exception):
    """Raised when a type reference cannot be resolved."""


def _qualify(scope: Optional[str], name: str) -> str:
    return f"{scope}.{name}" if scope else name


def declared_names(ast: ProtoFileNode) -> List[str]:
    """Return the fully-qualified names of every type declared in ``ast``."""
    names: List[str] = []

    def visit_message(node: ProtoMessage, scope: Optional[str]) -> None:
        name = _qualify(scope, node.name)
        names.append(name)
        for nested in node.nested_messages:
            visit_message(nested, name)
        for nested_enum in node.nested_enums:
            names.append(_qualify(name, nested_enum.name))

    for decl in ast.declarations:
        if isinstance(decl, ProtoMessage):
            visit_message(decl, ast.package)
        else:
            names.append(_qualify(ast.package, decl.name))
    return names


def resolve_type(reference: str, scope: Optional[str], known_names: Set[str]) -> str:
    """Resolve a type reference as written in ``scope`` to a fully-qualified name.

    Scalars resolve to themselves. A leading dot marks an absolute name;
    otherwise the reference is tried in the innermost scope first, then in
    each enclosing scope.
    """
    if is_scalar(reference):
        return reference
    if reference.startswith("."):
        absolute = reference[1:]
        if absolute in known_names:
            return absolute
        raise LinkError(f"unable to resolve {reference}")

    parts = scope.split(".") if scope else []
    for i in range(len(parts), -1, -1):
        candidate = _qualify(".".join(parts[:i]), reference)
        if candidate in known_names:
            return candidate
    raise LinkError(
        f"unable to resolve {reference}" + (f" in {scope}" if scope else "")
    )


def transform_proto(ast: ProtoFileNode, path: str, known_names: Iterable[str]) -> ProtoFile:
    """Transform a parsed file into a linked ProtoFile."""
    known = set(known_names)
    types: List[TypeDefinition] = []
    for decl in ast.declarations:
        if isinstance(decl, ProtoMessage):
            types.append(_transform_message(decl, ast.package, path, known))
        elif isinstance(decl, ProtoEnum):
            types.append(_transform_enum(decl, ast.package, path))
        elif isinstance(decl, ProtoService):
            types.append(_transform_service(decl, ast.package, path, known))

    return ProtoFile(
        path=path,
        package=ast.package,
        java_package=ast.options.get("java_package"),
        imports=tuple(ast.imports),
        types=tuple(types),
    )


def _transform_message(
    node: ProtoMessage, scope: Optional[str], path: str, known: Set[str]
) -> TypeDefinition:
    name = _qualify(scope, node.name)
    try:
        fields = tuple(
            Field(
                name=f.field_name,
                tag=f.field_number,
                type_name=resolve_type(f.type_name, name, known),
                label=Label(f.label) if f.label else None,
                key_type=f.key_type,
                oneof=f.oneof,
            )
            for f in node.fields
        )
    except LinkError as e:
        raise LinkError(f"{path}: {e} (message {name})") from e

    nested: List[TypeDefinition] = [
        _transform_message(n, name, path, known) for n in node.nested_messages
    ]
    nested.extend(_transform_enum(e, name, path) for e in node.nested_enums)

    return TypeDefinition(
        name=name,
        kind=TypeKind.MESSAGE,
        location=path,
        fields=fields,
        nested_types=tuple(nested),
    )


def _transform_enum(node: ProtoEnum, scope: Optional[str], path: str) -> TypeDefinition:
    return TypeDefinition(
        name=_qualify(scope, node.name),
        kind=TypeKind.ENUM,
        location=path,
        constants=tuple(EnumConstant(v.name, v.number) for v in node.values),
    )


def _transform_service(
    node: ProtoService, scope: Optional[str], path: str, known: Set[str]
) -> TypeDefinition:
    name = _qualify(scope, node.name)
    try:
        rpcs = tuple(
            Rpc(
                name=r.name,
                request_type=resolve_type(r.input_type, scope, known),
                response_type=resolve_type(r.output_type, scope, known),
                request_streaming=r.client_streaming,
                response_streaming=r.server_streaming,
            )
            for r in node.rpcs
        )
    except LinkError as e:
        raise LinkError(f"{path}: {e} (service {name})") from e

    return TypeDefinition(name=name, kind=TypeKind.SERVICE, location=path, rpcs=rpcs)
