from __future__ import annotations

from typing import Dict, List, Optional, Set, Tuple

from protoc_wire.generator.base import CODE_GENERATED_BY_WIRE, Generator, to_camel
from protoc_wire.models import Field, TypeDefinition, TypeKind, is_scalar
from protoc_wire.profile import Profile
from protoc_wire.schema import Schema

# Proto type -> Java boxed type
PRIMITIVE_TYPE_MAP: Dict[str, str] = {
    "int32": "Integer",
    "sint32": "Integer",
    "sfixed32": "Integer",
    "uint32": "Integer",
    "fixed32": "Integer",
    "int64": "Long",
    "sint64": "Long",
    "sfixed64": "Long",
    "uint64": "Long",
    "fixed64": "Long",
    "float": "Float",
    "double": "Double",
    "bool": "Boolean",
    "string": "String",
    "bytes": "byte[]",
}

JAVA_KEYWORDS = frozenset({
    "abstract", "assert", "boolean", "break", "byte", "case", "catch", "char",
    "class", "const", "continue", "default", "do", "double", "else", "enum",
    "extends", "final", "finally", "float", "for", "goto", "if", "implements",
    "import", "instanceof", "int", "interface", "long", "native", "new",
    "package", "private", "protected", "public", "return", "short", "static",
    "strictfp", "super", "switch", "synchronized", "this", "throw", "throws",
    "transient", "try", "void", "volatile", "while", "true", "false", "null",
})


def java_name(proto_name: str) -> str:
    name = to_camel(proto_name)
    return f"{name}_" if name in JAVA_KEYWORDS else name


class JavaGenerator(Generator):
    """Generates one Java source file per top-level type."""

    file_extension = ".java"

    def __init__(
        self,
        schema: Schema,
        profile: Optional[Profile] = None,
        emit_android: bool = False,
        emit_android_annotations: bool = False,
        emit_compact: bool = False,
    ):
        super().__init__(schema, profile)
        self.emit_android = emit_android
        # Android output implies the nullability annotations.
        self.emit_android_annotations = emit_android_annotations or emit_android
        self.emit_compact = emit_compact

    def generate(self, t: TypeDefinition) -> Tuple[str, str]:
        package = self.package_of(t)
        imports: Set[str] = set()
        body = self._render_type(t, package, imports, nested=False)

        template = self._env.get_template("java_file.java.j2")
        source = template.render(
            generated_by=CODE_GENERATED_BY_WIRE,
            source_file=t.location,
            package=package,
            imports=sorted(imports),
            body=body,
        )
        return self.output_path(t), source

    def _render_type(
        self, t: TypeDefinition, package: str, imports: Set[str], nested: bool
    ) -> str:
        if t.kind is TypeKind.MESSAGE:
            return self._render_message(t, package, imports, nested)
        if t.kind is TypeKind.ENUM:
            return self._render_enum(t)
        if t.kind is TypeKind.SERVICE:
            return self._render_service(t, package, imports)
        return self._render_enclosing(t, package, imports, nested)

    def _render_nested(self, t: TypeDefinition, package: str, imports: Set[str]) -> List[str]:
        return [self._render_type(n, package, imports, nested=True) for n in t.nested_types]

    def _render_message(
        self, t: TypeDefinition, package: str, imports: Set[str], nested: bool
    ) -> str:
        class_name = t.simple_name
        fields = [self._field_view(f, package, imports) for f in t.fields]
        names = [f["name"] for f in fields]

        if fields and not self.emit_compact:
            imports.add("java.util.Objects")
        if self.emit_android:
            imports.add("android.os.Parcel")
            imports.add("android.os.Parcelable")

        declaration = "public static final class" if nested else "public final class"
        declaration = f"{declaration} {class_name}"
        if self.emit_android:
            declaration += " implements Parcelable"

        if names:
            to_string = " + ".join(
                [f'"{class_name}{{{names[0]}=" + {names[0]}']
                + [f'", {n}=" + {n}' for n in names[1:]]
            ) + ' + "}"'
        else:
            to_string = f'"{class_name}{{}}"'

        template = self._env.get_template("java_message.java.j2")
        return template.render(
            declaration=declaration,
            class_name=class_name,
            fields=fields,
            constructor_params=", ".join(f"{f['java_type']} {f['name']}" for f in fields),
            compact=self.emit_compact,
            parcelable=self.emit_android,
            equals_expr=" && ".join(f"Objects.equals({n}, o.{n})" for n in names) or "true",
            hash_expr=f"Objects.hash({', '.join(names)})" if names else "0",
            to_string_expr=to_string,
            nested_types=self._render_nested(t, package, imports),
        ).rstrip("\n")

    def _field_view(self, f: Field, package: str, imports: Set[str]) -> Dict:
        nullable = (
            self.emit_android_annotations
            and not f.is_required
            and not f.is_repeated
            and not f.is_map
        )
        if nullable:
            imports.add("android.support.annotation.Nullable")
        # Profile-mapped types are encoded by the adapter the profile names.
        adapter = None if is_scalar(f.type_name) else self.profile.adapter(f.type_name)
        if adapter:
            imports.add("com.squareup.wire.WireField")
        return {
            "name": java_name(f.name),
            "java_type": self._java_type(f, package, imports),
            "nullable": nullable,
            "adapter": adapter,
            "tag": f.tag,
        }

    def _java_type(self, f: Field, package: str, imports: Set[str]) -> str:
        value_type = self._element_type(f.type_name, package)
        if f.is_map:
            imports.add("java.util.Map")
            key_type = self._element_type(f.key_type, package)
            return f"Map<{key_type}, {value_type}>"
        if f.is_repeated:
            imports.add("java.util.List")
            return f"List<{value_type}>"
        return value_type

    def _element_type(self, type_name: str, package: str) -> str:
        if is_scalar(type_name):
            return PRIMITIVE_TYPE_MAP[type_name]
        return self.type_reference(type_name, package)

    def _render_enum(self, t: TypeDefinition) -> str:
        distinct = []
        seen_tags: Set[int] = set()
        for c in t.constants:
            if c.tag not in seen_tags:
                seen_tags.add(c.tag)
                distinct.append(c)

        template = self._env.get_template("java_enum.java.j2")
        return template.render(
            declaration=f"public enum {t.simple_name}",
            class_name=t.simple_name,
            constants=t.constants,
            distinct_constants=distinct,
        ).rstrip("\n")

    def _render_service(self, t: TypeDefinition, package: str, imports: Set[str]) -> str:
        rpcs = []
        for rpc in t.rpcs:
            request = self._element_type(rpc.request_type, package)
            response = self._element_type(rpc.response_type, package)
            if rpc.request_streaming or rpc.response_streaming:
                imports.add("java.util.Iterator")
            rpcs.append({
                "method": java_name(rpc.name),
                "request": f"Iterator<{request}>" if rpc.request_streaming else request,
                "response": f"Iterator<{response}>" if rpc.response_streaming else response,
            })

        template = self._env.get_template("java_service.java.j2")
        return template.render(
            declaration=f"public interface {t.simple_name}",
            rpcs=rpcs,
        ).rstrip("\n")

    def _render_enclosing(
        self, t: TypeDefinition, package: str, imports: Set[str], nested: bool
    ) -> str:
        declaration = "public static final class" if nested else "public final class"
        template = self._env.get_template("java_enclosing.java.j2")
        return template.render(
            declaration=f"{declaration} {t.simple_name}",
            class_name=t.simple_name,
            nested_types=self._render_nested(t, package, imports),
        ).rstrip("\n")
