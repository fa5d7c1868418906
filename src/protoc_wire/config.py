"""Compiler configuration and command line parsing.

Usage::

    protoc-wire --proto_path=<path> --java_out=<path>
        [--files=<protos.include>]
        [--includes=<message_name>[,<message_name>...]]
        [--excludes=<message_name>[,<message_name>...]]
        [--quiet] [--dry_run] [--named_files_only]
        [--android] [--android-annotations] [--compact]
        [file [file...]]

Exactly one of ``--java_out`` or ``--kotlin_out`` must be given. ``--excludes``
takes precedence over ``--includes``.
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from protoc_wire.emission import MAX_WRITE_CONCURRENCY
from protoc_wire.identifier_set import IdentifierSet, IllegalIdentifierError, validate_rule

JAVA_BACKEND = "java"
KOTLIN_BACKEND = "kotlin"


class ConfigError(Exception):
    """Raised for invalid configuration, before any schema is loaded."""


@dataclass(frozen=True)
class CompilerConfig:
    proto_paths: Tuple[str, ...] = (".",)
    java_out: Optional[str] = None
    kotlin_out: Optional[str] = None
    source_file_names: Tuple[str, ...] = ()
    includes: Tuple[str, ...] = ()
    excludes: Tuple[str, ...] = ()
    quiet: bool = False
    dry_run: bool = False
    named_files_only: bool = False
    emit_android: bool = False
    emit_android_annotations: bool = False
    emit_compact: bool = False
    max_write_concurrency: int = MAX_WRITE_CONCURRENCY

    def __post_init__(self) -> None:
        if (self.java_out is not None) == (self.kotlin_out is not None):
            raise ConfigError("Only one of --java_out or --kotlin_out flag must be specified")
        if self.max_write_concurrency < 1:
            raise ConfigError(
                f"max_write_concurrency must be at least 1, got {self.max_write_concurrency}"
            )
        try:
            for rule in self.includes + self.excludes:
                validate_rule(rule)
        except IllegalIdentifierError as e:
            raise ConfigError(str(e)) from e

    @property
    def backend(self) -> str:
        return JAVA_BACKEND if self.java_out is not None else KOTLIN_BACKEND

    @property
    def out_dir(self) -> str:
        return self.java_out if self.java_out is not None else self.kotlin_out

    def identifier_set(self) -> IdentifierSet:
        """A fresh identifier set; each one tracks its own rule usage."""
        return IdentifierSet(self.includes, self.excludes)


def _split_rules(values: Optional[List[str]]) -> Tuple[str, ...]:
    rules: List[str] = []
    for value in values or []:
        rules.extend(r.strip() for r in value.split(","))
    return tuple(rules)


def _read_files_list(path: str) -> List[str]:
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Error processing argument --files={path}: {e}") from e
    return [line.strip() for line in text.split("\n") if line.strip()]


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="protoc-wire",
        description="Generate Java or Kotlin sources from .proto files",
    )
    parser.add_argument(
        "--proto_path",
        action="append",
        help="Directory to search for .proto files (repeatable, defaults to .)",
    )
    parser.add_argument("--java_out", help="Output directory for generated Java sources")
    parser.add_argument("--kotlin_out", help="Output directory for generated Kotlin sources")
    parser.add_argument("--files", help="File listing the .proto files to compile, one per line")
    parser.add_argument(
        "--includes",
        action="append",
        help="Comma-separated root types, members or package wildcards to keep",
    )
    parser.add_argument(
        "--excludes",
        action="append",
        help="Comma-separated types, members or package wildcards to drop; wins over --includes",
    )
    parser.add_argument("--quiet", action="store_true", help="Suppress informational output")
    parser.add_argument(
        "--dry_run",
        action="store_true",
        help="Print the files that would be generated without writing them",
    )
    parser.add_argument(
        "--named_files_only",
        action="store_true",
        help="Only emit types from the files named on the command line or in --files",
    )
    parser.add_argument("--android", action="store_true", help="Emit Parcelable messages")
    parser.add_argument(
        "--android-annotations",
        dest="android_annotations",
        action="store_true",
        help="Annotate optional fields with @Nullable (Java only)",
    )
    parser.add_argument(
        "--compact",
        action="store_true",
        help="Omit generated equals, hashCode and toString methods (Java only)",
    )
    parser.add_argument("files_args", nargs="*", metavar="file", help=".proto file to compile")
    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> CompilerConfig:
    args = build_arg_parser().parse_args(argv)

    source_file_names: List[str] = []
    if args.files:
        source_file_names.extend(_read_files_list(args.files))
    source_file_names.extend(args.files_args)

    return CompilerConfig(
        proto_paths=tuple(args.proto_path or ["."]),
        java_out=args.java_out,
        kotlin_out=args.kotlin_out,
        source_file_names=tuple(source_file_names),
        includes=_split_rules(args.includes),
        excludes=_split_rules(args.excludes),
        quiet=args.quiet,
        dry_run=args.dry_run,
        named_files_only=args.named_files_only,
        emit_android=args.android,
        emit_android_annotations=args.android_annotations,
        emit_compact=args.compact,
    )
