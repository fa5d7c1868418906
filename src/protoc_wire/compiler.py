"""Drives one compile from loaded protos to written sources.

The pipeline loads every proto under the configured proto paths, prunes the
schema when include or exclude rules are given, queues the types to emit and
drains that queue with an EmissionPool.

Each backend reads its own profile from the proto paths: ``java.wire`` (or
``android.wire`` with ``--android``) for Java and ``kotlin.wire`` for Kotlin.
Type targets in a profile replace references in the generated code of that
backend only.
"""

from __future__ import annotations

from typing import List, Optional

from protoc_wire.config import JAVA_BACKEND, CompilerConfig
from protoc_wire.emission import EmissionPool, FileSink
from protoc_wire.generator.base import Generator
from protoc_wire.generator.java_generator import JavaGenerator
from protoc_wire.generator.kotlin_generator import KotlinGenerator
from protoc_wire.loader import SchemaLoader
from protoc_wire.logger import ConsoleWireLogger, WireLogger
from protoc_wire.profile import ProfileLoader
from protoc_wire.schema import Schema
from protoc_wire.work_queue import populate


class WireCompiler:
    """Runs one compile: load, prune, queue, generate and write."""

    def __init__(self, config: CompilerConfig, log: Optional[WireLogger] = None):
        self.config = config
        self.log = log or ConsoleWireLogger()
        self.log.set_quiet(config.quiet)

    def compile(self) -> List[str]:
        """Compile the configured protos and return the paths of the emitted files."""
        schema = self._load_schema()
        schema = self._prune(schema)

        work = populate(schema, self.config.source_file_names, self.config.named_files_only)
        generator = self._select_generator(schema)
        sink = FileSink(self.config.out_dir, self.log, dry_run=self.config.dry_run)

        pool = EmissionPool(generator, sink, self.config.max_write_concurrency)
        return pool.run(work)

    def _load_schema(self) -> Schema:
        loader = SchemaLoader()
        for proto_path in self.config.proto_paths:
            loader.add_source(proto_path)
        for source_file_name in self.config.source_file_names:
            loader.add_proto(source_file_name)
        return loader.load()

    def _prune(self, schema: Schema) -> Schema:
        identifier_set = self.config.identifier_set()
        if identifier_set.is_empty():
            return schema

        self.log.info("Analyzing dependencies of root types.")
        pruned = schema.prune(identifier_set)
        for rule in identifier_set.unused_includes():
            self.log.info(f"Unused include: {rule}")
        for rule in identifier_set.unused_excludes():
            self.log.info(f"Unused exclude: {rule}")
        return pruned

    def _select_generator(self, schema: Schema) -> Generator:
        if self.config.backend == JAVA_BACKEND:
            profile_name = "android" if self.config.emit_android else "java"
            profile = ProfileLoader(profile_name).load(self.config.proto_paths)
            return JavaGenerator(
                schema,
                profile,
                emit_android=self.config.emit_android,
                emit_android_annotations=self.config.emit_android_annotations,
                emit_compact=self.config.emit_compact,
            )

        profile = ProfileLoader("kotlin").load(self.config.proto_paths)
        return KotlinGenerator(schema, profile, emit_android=self.config.emit_android)
