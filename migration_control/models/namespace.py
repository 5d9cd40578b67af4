"""
Namespace filter models for the Migration Control plane.

This module defines the Pydantic models for namespace patterns and the
include/exclude filter that decides which collections are replicated.
A namespace is a ``database.collection`` pair; a pattern is either a
literal namespace or ``database.*`` covering every collection of a database.
"""

import re
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from migration_control.core.exceptions import InvalidPatternError

NAMESPACE_SEPARATOR = "."
WILDCARD = "*"

_DATABASE_RE = re.compile(r"^[A-Za-z0-9_-]+$")
_COLLECTION_RE = re.compile(r"^[A-Za-z0-9_-][A-Za-z0-9_$-]*$")


class NamespacePattern(BaseModel):
    """A single ``database.collection`` or ``database.*`` pattern."""
    model_config = ConfigDict(frozen=True)

    database: str
    collection: str

    @property
    def is_wildcard(self) -> bool:
        return self.collection == WILDCARD

    def matches(self, database: str, collection: str) -> bool:
        """Check whether a concrete namespace is covered by this pattern."""
        if database != self.database:
            return False
        return self.is_wildcard or collection == self.collection

    def __str__(self) -> str:
        return f"{self.database}{NAMESPACE_SEPARATOR}{self.collection}"


class NamespaceFilter(BaseModel):
    """
    Effective replication scope of a migration.

    Include and exclude patterns are kept in first-seen order without
    duplicates. Order never changes the outcome: a namespace is replicated
    iff the include set is empty or one include pattern covers it, and no
    exclude pattern covers it.
    """
    model_config = ConfigDict(frozen=True)

    include: Tuple[NamespacePattern, ...] = ()
    exclude: Tuple[NamespacePattern, ...] = ()

    @property
    def includes_all(self) -> bool:
        return not self.include

    def is_excluded(self, database: str, collection: str) -> bool:
        return any(p.matches(database, collection) for p in self.exclude)

    def is_included(self, database: str, collection: str) -> bool:
        if self.includes_all:
            return True
        return any(p.matches(database, collection) for p in self.include)

    def matches(self, database: str, collection: str) -> bool:
        """Check whether ``database.collection`` takes part in replication."""
        if self.is_excluded(database, collection):
            return False
        return self.is_included(database, collection)

    def to_payload(self) -> Dict[str, List[str]]:
        return {
            "includeNamespaces": [str(p) for p in self.include],
            "excludeNamespaces": [str(p) for p in self.exclude],
        }


def parse_pattern(text: str) -> NamespacePattern:
    """
    Parse a namespace pattern.

    Args:
        text: Pattern such as ``db1.orders`` or ``db4.*``. Surrounding
            whitespace is ignored.

    Returns:
        The parsed pattern.

    Raises:
        InvalidPatternError: If the text is not exactly two non-empty tokens
            separated by a single dot, or a token has disallowed characters.
    """
    if not isinstance(text, str):
        raise InvalidPatternError(repr(text), "pattern must be a string")

    candidate = text.strip()
    if not candidate:
        raise InvalidPatternError(text, "empty pattern")

    separators = candidate.count(NAMESPACE_SEPARATOR)
    if separators != 1:
        raise InvalidPatternError(
            text,
            f"expected exactly one '{NAMESPACE_SEPARATOR}' separator, found {separators}"
        )

    database, collection = candidate.split(NAMESPACE_SEPARATOR)
    if not database:
        raise InvalidPatternError(text, "empty database name")
    if not collection:
        raise InvalidPatternError(text, "empty collection name")
    if not _DATABASE_RE.match(database):
        raise InvalidPatternError(text, f"invalid database name '{database}'")
    if collection != WILDCARD and not _COLLECTION_RE.match(collection):
        raise InvalidPatternError(text, f"invalid collection name '{collection}'")

    return NamespacePattern(database=database, collection=collection)


def _parse_all(
    entries: Iterable[str],
    invalid: List[Tuple[str, InvalidPatternError]]
) -> Tuple[NamespacePattern, ...]:
    patterns: List[NamespacePattern] = []
    for entry in entries:
        try:
            pattern = parse_pattern(entry)
        except InvalidPatternError as e:
            invalid.append((entry, e))
            continue
        if pattern not in patterns:
            patterns.append(pattern)
    return tuple(patterns)


def build_filter(
    include: Optional[Iterable[str]] = None,
    exclude: Optional[Iterable[str]] = None
) -> NamespaceFilter:
    """
    Build a namespace filter from raw include and exclude lists.

    Every entry is parsed. If any entry is malformed nothing is built and
    the first failure is raised, listing all malformed entries in
    ``details["invalid"]``. Duplicate entries are dropped.

    Raises:
        InvalidPatternError: If any entry in either list is malformed.
    """
    invalid: List[Tuple[str, InvalidPatternError]] = []
    include_patterns = _parse_all(include or (), invalid)
    exclude_patterns = _parse_all(exclude or (), invalid)

    if invalid:
        first_entry, first_error = invalid[0]
        raise InvalidPatternError(
            first_entry,
            first_error.reason,
            invalid=[str(entry) for entry, _ in invalid]
        )

    return NamespaceFilter(include=include_patterns, exclude=exclude_patterns)


def matches(namespace_filter: NamespaceFilter, database: str, collection: str) -> bool:
    """Module-level form of :meth:`NamespaceFilter.matches`."""
    return namespace_filter.matches(database, collection)
