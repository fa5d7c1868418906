"""Backend profiles: per-backend overrides loaded from ``<name>.wire`` files.

A profile maps proto types to existing target classes, so generated code
refers to the target instead of a generated class::

    syntax = "wire2";
    package squareup.dinosaurs;

    type squareup.geology.Period {
      target java.time.Period using com.example.PeriodAdapter#ADAPTER;
    }
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional

_TYPE_BLOCK_RE = re.compile(
    r"\btype\s+(\.?[A-Za-z_][\w\.]*)\s*\{\s*"
    r"target\s+([A-Za-z_][\w\.]*)"
    r"(?:\s+using\s+([A-Za-z_][\w\.]*(?:#[A-Za-z_]\w*)?))?\s*;\s*\}"
)
_PACKAGE_RE = re.compile(r"\bpackage\s+([A-Za-z_][\w\.]*)\s*;")


class ProfileError(Exception):
    """Raised when a profile file is unreadable or contradicts another one."""


@dataclass(frozen=True)
class TypeConfig:
    type_name: str
    target: str
    adapter: Optional[str] = None
    source: str = ""


class Profile:
    """Read-only type overrides for one backend. An empty profile changes nothing."""

    def __init__(self, type_configs: Iterable[TypeConfig] = ()):
        self._by_type: Dict[str, TypeConfig] = {c.type_name: c for c in type_configs}

    def target(self, type_name: str) -> Optional[str]:
        config = self._by_type.get(type_name)
        return config.target if config else None

    def adapter(self, type_name: str) -> Optional[str]:
        config = self._by_type.get(type_name)
        return config.adapter if config else None

    def __len__(self) -> int:
        return len(self._by_type)


def parse_profile(text: str, source: str = "") -> List[TypeConfig]:
    """Parse the type blocks of a .wire profile."""
    text = re.sub(r"//.*", "", text)
    package_match = _PACKAGE_RE.search(text)
    package = package_match.group(1) if package_match else None

    configs: List[TypeConfig] = []
    for m in _TYPE_BLOCK_RE.finditer(text):
        type_name = m.group(1)
        if type_name.startswith("."):
            type_name = type_name[1:]
        elif package and "." not in type_name:
            type_name = f"{package}.{type_name}"
        configs.append(TypeConfig(type_name, m.group(2), m.group(3), source))
    return configs


class ProfileLoader:
    """Finds every ``<name>.wire`` file under the proto_path roots and merges them."""

    def __init__(self, name: str):
        self.name = name

    def _find_profile_files(self, roots: Iterable[str]) -> List[str]:
        file_name = f"{self.name}.wire"
        files: List[str] = []
        for root in roots:
            for dirpath, _, filenames in os.walk(root):
                if file_name in filenames:
                    files.append(os.path.join(dirpath, file_name))
        files.sort()
        return files

    def load(self, roots: Iterable[str]) -> Profile:
        configs: Dict[str, TypeConfig] = {}
        for path in self._find_profile_files(roots):
            try:
                text = Path(path).read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                raise ProfileError(f"Failed to read profile {path}: {e}") from e
            for config in parse_profile(text, source=path):
                existing = configs.get(config.type_name)
                if existing is not None and existing.target != config.target:
                    raise ProfileError(
                        f"Conflicting targets for {config.type_name}: "
                        f"{existing.target} ({existing.source}) and "
                        f"{config.target} ({config.source})"
                    )
                configs[config.type_name] = config
        return Profile(configs.values())
