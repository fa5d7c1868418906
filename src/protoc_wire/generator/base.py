from __future__ import annotations

import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Tuple

from jinja2 import Environment, FileSystemLoader

from protoc_wire.models import TypeDefinition
from protoc_wire.profile import Profile
from protoc_wire.schema import Schema

CODE_GENERATED_BY_WIRE = "Code generated by Wire protocol buffer compiler, do not edit."


def _get_template_env() -> Environment:
    template_dir = Path(__file__).parent.parent / "templates"
    return Environment(
        loader=FileSystemLoader(str(template_dir)),
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def to_camel(name: str) -> str:
    # Convert snake_case or kebab-case to lowerCamelCase
    parts = re.split(r"[_\-]", name)
    if not parts:
        return name
    first = parts[0][:1].lower() + parts[0][1:] if parts[0] else ""
    rest = ''.join(p[:1].upper() + p[1:] for p in parts[1:] if p)
    return first + rest or name


class Generator(ABC):
    """Renders one top-level type into a (relative path, source text) pair.

    Implementations must be pure: the same type always renders to the same
    output, the schema is never modified and no files are touched.
    """

    file_extension = ""

    def __init__(self, schema: Schema, profile: Optional[Profile] = None):
        self.schema = schema
        self.profile = profile or Profile()
        self._env = _get_template_env()
        self._class_names = self._build_class_names()

    def _build_class_names(self) -> Dict[str, str]:
        """Map every proto type name to the qualified name of its generated class."""
        names: Dict[str, str] = {}

        def visit(t: TypeDefinition, enclosing_class: str) -> None:
            names[t.name] = f"{enclosing_class}.{t.simple_name}" if enclosing_class else t.simple_name
            for nested in t.nested_types:
                visit(nested, names[t.name])

        for proto_file in self.schema.proto_files:
            for t in proto_file.types:
                visit(t, proto_file.target_package)
        return names

    def class_name(self, proto_type: str) -> str:
        """Qualified class name for ``proto_type``, honoring profile targets."""
        target = self.profile.target(proto_type)
        if target is not None:
            return target
        if proto_type in self._class_names:
            return self._class_names[proto_type]
        # Dangling reference to a type removed by an exclude rule.
        return proto_type

    def type_reference(self, proto_type: str, package: str) -> str:
        """Class name for ``proto_type`` as written in a file of ``package``.

        Classes of the same package are referenced without their package.
        """
        qualified = self.class_name(proto_type)
        if self.profile.target(proto_type) is not None or not package:
            return qualified
        declaring = self.schema.file_of(proto_type)
        same_package = (
            declaring.target_package == package if declaring is not None
            else qualified.startswith(package + ".")
        )
        if same_package and qualified.startswith(package + "."):
            return qualified[len(package) + 1:]
        return qualified

    def output_path(self, t: TypeDefinition) -> str:
        proto_file = self.schema.file_of(t.name)
        package = proto_file.target_package if proto_file else ""
        file_name = f"{t.simple_name}{self.file_extension}"
        if not package:
            return file_name
        return "/".join(package.split(".") + [file_name])

    def package_of(self, t: TypeDefinition) -> str:
        proto_file = self.schema.file_of(t.name)
        return proto_file.target_package if proto_file else ""

    @abstractmethod
    def generate(self, t: TypeDefinition) -> Tuple[str, str]:
        """Return the relative output path and source text for ``t``."""
