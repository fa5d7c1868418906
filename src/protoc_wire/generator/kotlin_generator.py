from __future__ import annotations

from typing import Dict, List, Optional, Set, Tuple

from protoc_wire.generator.base import CODE_GENERATED_BY_WIRE, Generator, to_camel
from protoc_wire.models import Field, TypeDefinition, TypeKind, is_scalar
from protoc_wire.profile import Profile
from protoc_wire.schema import Schema

KOTLIN_TYPE_MAP: Dict[str, str] = {
    "int32": "Int",
    "sint32": "Int",
    "sfixed32": "Int",
    "uint32": "Int",
    "fixed32": "Int",
    "int64": "Long",
    "sint64": "Long",
    "sfixed64": "Long",
    "uint64": "Long",
    "fixed64": "Long",
    "float": "Float",
    "double": "Double",
    "bool": "Boolean",
    "string": "String",
    "bytes": "ByteString",
}

KOTLIN_KEYWORDS = frozenset({
    "as", "break", "class", "continue", "do", "else", "false", "for", "fun",
    "if", "in", "interface", "is", "null", "object", "package", "return",
    "super", "this", "throw", "true", "try", "typealias", "typeof", "val",
    "var", "when", "while",
})


def kotlin_name(proto_name: str) -> str:
    name = to_camel(proto_name)
    return f"`{name}`" if name in KOTLIN_KEYWORDS else name


class KotlinGenerator(Generator):
    """Generates one Kotlin source file per top-level type."""

    file_extension = ".kt"

    def __init__(
        self,
        schema: Schema,
        profile: Optional[Profile] = None,
        emit_android: bool = False,
    ):
        super().__init__(schema, profile)
        self.emit_android = emit_android

    def generate(self, t: TypeDefinition) -> Tuple[str, str]:
        package = self.package_of(t)
        imports: Set[str] = set()
        body = self._render_type(t, package, imports)

        template = self._env.get_template("kotlin_file.kt.j2")
        source = template.render(
            generated_by=CODE_GENERATED_BY_WIRE,
            source_file=t.location,
            package=package,
            imports=sorted(imports),
            body=body,
        )
        return self.output_path(t), source

    def _render_type(self, t: TypeDefinition, package: str, imports: Set[str]) -> str:
        if t.kind is TypeKind.MESSAGE:
            return self._render_message(t, package, imports)
        if t.kind is TypeKind.ENUM:
            template = self._env.get_template("kotlin_enum.kt.j2")
            return template.render(class_name=t.simple_name, constants=t.constants).rstrip("\n")
        if t.kind is TypeKind.SERVICE:
            return self._render_service(t, package, imports)

        template = self._env.get_template("kotlin_enclosing.kt.j2")
        return template.render(
            class_name=t.simple_name,
            nested_types=self._render_nested(t, package, imports),
        ).rstrip("\n")

    def _render_nested(self, t: TypeDefinition, package: str, imports: Set[str]) -> List[str]:
        return [self._render_type(n, package, imports) for n in t.nested_types]

    def _render_message(self, t: TypeDefinition, package: str, imports: Set[str]) -> str:
        if self.emit_android:
            imports.add("android.os.Parcelable")
            imports.add("kotlinx.parcelize.Parcelize")

        template = self._env.get_template("kotlin_message.kt.j2")
        return template.render(
            class_name=t.simple_name,
            fields=[self._field_view(f, package, imports) for f in t.fields],
            parcelable=self.emit_android,
            supertypes=" : Parcelable" if self.emit_android else "",
            nested_types=self._render_nested(t, package, imports),
        ).rstrip("\n")

    def _field_view(self, f: Field, package: str, imports: Set[str]) -> Dict:
        value_type = self._element_type(f.type_name, package, imports)
        if f.is_map:
            key_type = self._element_type(f.key_type, package, imports)
            kotlin_type, default = f"Map<{key_type}, {value_type}>", " = emptyMap()"
        elif f.is_repeated:
            kotlin_type, default = f"List<{value_type}>", " = emptyList()"
        elif f.is_required:
            kotlin_type, default = value_type, ""
        else:
            kotlin_type, default = f"{value_type}?", " = null"
        return {
            "name": kotlin_name(f.name),
            "kotlin_type": kotlin_type,
            "default_suffix": default,
        }

    def _element_type(self, type_name: str, package: str, imports: Set[str]) -> str:
        if is_scalar(type_name):
            if type_name == "bytes":
                imports.add("okio.ByteString")
            return KOTLIN_TYPE_MAP[type_name]
        return self.type_reference(type_name, package)

    def _render_service(self, t: TypeDefinition, package: str, imports: Set[str]) -> str:
        rpcs = []
        for rpc in t.rpcs:
            request = self._element_type(rpc.request_type, package, imports)
            response = self._element_type(rpc.response_type, package, imports)
            rpcs.append({
                "method": kotlin_name(rpc.name),
                "request": f"Sequence<{request}>" if rpc.request_streaming else request,
                "response": f"Sequence<{response}>" if rpc.response_streaming else response,
            })

        template = self._env.get_template("kotlin_service.kt.j2")
        return template.render(class_name=t.simple_name, rpcs=rpcs).rstrip("\n")
