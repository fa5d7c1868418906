from __future__ import annotations

import os
from collections import deque
from pathlib import Path
from typing import Deque, Dict, List, Set

from protoc_wire.models import ProtoFile
from protoc_wire.parser.proto_ast import ProtoFile as ProtoFileNode
from protoc_wire.parser.proto_ast_parser import ProtoParseError
from protoc_wire.parser.proto_parser import parse_proto_file
from protoc_wire.parser.proto_transform import LinkError, declared_names, transform_proto
from protoc_wire.schema import Schema


class LoadError(Exception):
    """Raised when a schema file is missing, unreadable or cannot be linked."""


def _find_proto_files(root: str) -> List[str]:
    """Return every .proto file under ``root``, relative to it, sorted."""
    files: List[str] = []
    for dirpath, _, filenames in os.walk(root):
        for fn in filenames:
            if fn.lower().endswith(".proto"):
                rel = os.path.relpath(os.path.join(dirpath, fn), root)
                files.append(Path(rel).as_posix())
    # Sort for deterministic output
    files.sort()
    return files


class SchemaLoader:
    """Loads .proto files from a set of source roots into a linked Schema.

    With no explicit protos, every .proto file under every root is loaded.
    Otherwise the named protos and everything they transitively import are
    loaded. Proto names are paths relative to a source root, such as
    ``squareup/dinosaurs/dinosaur.proto``.
    """

    def __init__(self) -> None:
        self._sources: List[str] = []
        self._protos: List[str] = []

    def add_source(self, path: str) -> SchemaLoader:
        self._sources.append(path)
        return self

    def add_proto(self, name: str) -> SchemaLoader:
        self._protos.append(name)
        return self

    def load(self) -> Schema:
        for source in self._sources:
            if not os.path.isdir(source):
                raise LoadError(f"Source root is not a directory: {source}")

        names: List[str] = list(self._protos)
        if not names:
            for source in self._sources:
                names.extend(_find_proto_files(source))

        parsed = self._parse_all(names)

        known: Set[str] = set()
        for ast in parsed.values():
            known.update(declared_names(ast))

        proto_files: List[ProtoFile] = []
        for path in sorted(parsed):
            try:
                proto_files.append(transform_proto(parsed[path], path, known))
            except LinkError as e:
                raise LoadError(str(e)) from e
        return Schema(proto_files)

    def _parse_all(self, names: List[str]) -> Dict[str, ProtoFileNode]:
        parsed: Dict[str, ProtoFileNode] = {}
        queue: Deque[str] = deque(names)
        while queue:
            name = queue.popleft()
            if name in parsed:
                continue
            file_path = self._locate(name)
            try:
                ast = parse_proto_file(file_path)
            except ProtoParseError as e:
                raise LoadError(f"Failed to parse {file_path}: {e}") from e
            except (OSError, UnicodeDecodeError) as e:
                raise LoadError(f"Failed to read {file_path}: {e}") from e
            parsed[name] = ast
            queue.extend(ast.imports)
        return parsed

    def _locate(self, name: str) -> str:
        for source in self._sources:
            candidate = os.path.join(source, name)
            if os.path.isfile(candidate):
                return candidate
        raise LoadError(f"Failed to locate {name} in {self._sources}")
