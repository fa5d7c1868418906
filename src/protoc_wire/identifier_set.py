"""Include/exclude rules used to select the root types of a schema.

A rule is one of:

  squareup.dinosaurs.Dinosaur           a type
  squareup.dinosaurs.Dinosaur.Period    a nested type
  squareup.dinosaurs.Dinosaur#name      a member (field, enum constant or rpc)
  squareup.dinosaurs.*                  every type in a package and its subpackages

Identifiers are matched by walking outwards from the most specific form:
``a.b.C#d`` -> ``a.b.C`` -> ``a.b.*`` -> ``a.*``. Exclusion always takes
precedence over inclusion.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Set


class IllegalIdentifierError(ValueError):
    """Raised for an include or exclude rule that is not a valid identifier."""


_RULE_RE = re.compile(
    r"^[A-Za-z_]\w*(\.[A-Za-z_]\w*)*(\.\*|#[A-Za-z_]\w*)?$"
)


def validate_rule(rule: str) -> str:
    """Return ``rule`` unchanged, or raise IllegalIdentifierError if it is malformed."""
    if not _RULE_RE.match(rule):
        raise IllegalIdentifierError(f"Illegal identifier: {rule!r}")
    return rule


def enclosing(identifier: str) -> Optional[str]:
    """Return the next less specific rule that could match ``identifier``.

    >>> enclosing("a.b.C#d")
    'a.b.C'
    >>> enclosing("a.b.C")
    'a.b.*'
    >>> enclosing("a.b.*")
    'a.*'
    >>> enclosing("a.*") is None
    True
    """
    hash_index = identifier.rfind("#")
    if hash_index != -1:
        return identifier[:hash_index]

    end = len(identifier) - 2 if identifier.endswith(".*") else len(identifier)
    dot_index = identifier.rfind(".", 0, end)
    if dot_index != -1:
        return identifier[:dot_index] + ".*"
    return None


class IdentifierSet:
    """A set of include and exclude rules, tracking which rules were used.

    Usage tracking makes this object stateful: every evaluation through
    :meth:`includes` or :meth:`excludes` records the rule that decided it.
    """

    def __init__(self, includes: Iterable[str] = (), excludes: Iterable[str] = ()):
        self._includes = frozenset(validate_rule(r) for r in includes)
        self._excludes = frozenset(validate_rule(r) for r in excludes)
        self._used_includes: Set[str] = set()
        self._used_excludes: Set[str] = set()

    def is_empty(self) -> bool:
        return not self._includes and not self._excludes

    def includes(self, identifier: str) -> bool:
        """True if ``identifier`` should be a root of the pruned schema."""
        exclude_match = self._innermost_match(identifier, self._excludes)
        if exclude_match is not None:
            self._used_excludes.add(exclude_match)
            return False

        if not self._includes:
            return True

        include_match = self._innermost_match(identifier, self._includes)
        if include_match is not None:
            self._used_includes.add(include_match)
            return True
        return False

    def excludes(self, identifier: str) -> bool:
        """True if ``identifier`` must be dropped even when it is reachable."""
        exclude_match = self._innermost_match(identifier, self._excludes)
        if exclude_match is not None:
            self._used_excludes.add(exclude_match)
            return True
        return False

    def unused_includes(self) -> List[str]:
        return sorted(self._includes - self._used_includes)

    def unused_excludes(self) -> List[str]:
        return sorted(self._excludes - self._used_excludes)

    @staticmethod
    def _innermost_match(identifier: str, rules: frozenset) -> Optional[str]:
        if not rules:
            return None
        rule: Optional[str] = identifier
        while rule is not None:
            if rule in rules:
                return rule
            rule = enclosing(rule)
        return None

    def __repr__(self) -> str:
        return (
            f"IdentifierSet(includes={sorted(self._includes)}, "
            f"excludes={sorted(self._excludes)})"
        )
