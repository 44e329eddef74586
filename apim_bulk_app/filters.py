"""
Filter evaluation for bulk export and import batches.

A batch run is narrowed by up to four kinds of filters, built once from the
command-line flags into an immutable `FilterSet`:

    --filter 'Payment*'          name glob patterns (any one must match)
    --api 'PizzaShackAPI:1.0.0'  explicit selectors, Name:Version or
                                 Name:Version:Provider (any one must match)
    --provider admin             exact provider
    --status PUBLISHED           exact lifecycle status

Categories are combined with AND. An entity whose provider or status is empty
never satisfies a provider or status filter. With no filters configured every
entity matches.

Example:
    >>> fs = build_filter_set(name_patterns=["Payment*"], status="PUBLISHED")
    >>> matches(Entity("PaymentAPI", "1.0.0", "admin", "PUBLISHED"), fs)
    True
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from .errors import FilterError


@dataclass(frozen=True)
class Entity:
    """One remote API or one discovered local archive."""

    name: str
    version: str
    provider: str = ""
    status: str = ""
    # Path of the archive for entities discovered on disk.
    source: Optional[str] = None

    @property
    def label(self) -> str:
        return f"{self.name} (v{self.version})"


@dataclass(frozen=True)
class Selector:
    name: str
    version: str
    provider: Optional[str] = None

    def accepts(self, entity: Entity) -> bool:
        if entity.name != self.name or entity.version != self.version:
            return False
        # Name:Version selectors match regardless of provider.
        return self.provider is None or entity.provider == self.provider

    def __str__(self) -> str:
        parts = [self.name, self.version]
        if self.provider is not None:
            parts.append(self.provider)
        return ":".join(parts)


@dataclass(frozen=True)
class FilterSet:
    name_patterns: Tuple[str, ...] = ()
    selectors: Tuple[Selector, ...] = ()
    provider_equals: Optional[str] = None
    status_equals: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not (
            self.name_patterns
            or self.selectors
            or self.provider_equals
            or self.status_equals
        )

    def describe(self) -> list[str]:
        """Human-readable lines describing the active filters."""
        lines = []
        if self.name_patterns:
            lines.append("Name patterns: " + " ".join(self.name_patterns))
        if self.selectors:
            lines.append("Specific APIs: " + " ".join(str(s) for s in self.selectors))
        if self.provider_equals:
            lines.append(f"Provider: {self.provider_equals}")
        if self.status_equals:
            lines.append(f"Status: {self.status_equals}")
        return lines


def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """
    Translates a shell-style glob into an anchored, case-sensitive regex.

    Only `*` (any run of characters, including none) and `?` (exactly one
    character) are special; every other character is matched literally.

    Args:
        pattern: The glob pattern, e.g. 'Payment*'.

    Returns:
        A compiled regular expression that must match the whole name.
    """
    parts = []
    for ch in pattern:
        if ch == "*":
            parts.append(".*")
        elif ch == "?":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    return re.compile("".join(parts), re.DOTALL)


def glob_match(name: str, pattern: str) -> bool:
    """True if the whole of `name` matches the glob `pattern`."""
    return glob_to_regex(pattern).fullmatch(name) is not None


def parse_selector(raw: str) -> Selector:
    """
    Parses a 'Name:Version' or 'Name:Version:Provider' selector.

    Raises:
        FilterError: If the selector has the wrong number of fields or an
            empty field.
    """
    fields = raw.split(":")
    if len(fields) not in (2, 3):
        raise FilterError(
            f"Invalid API selector '{raw}'. Use Name:Version or Name:Version:Provider."
        )
    if not all(fields):
        raise FilterError(f"Invalid API selector '{raw}': fields must not be empty.")
    return Selector(*fields)


def build_filter_set(
    name_patterns: Optional[Iterable[str]] = None,
    selectors: Optional[Iterable[str]] = None,
    provider: Optional[str] = None,
    status: Optional[str] = None,
) -> FilterSet:
    """Builds a FilterSet from raw flag values, validating every selector."""
    return FilterSet(
        name_patterns=tuple(name_patterns or ()),
        selectors=tuple(parse_selector(s) for s in (selectors or ())),
        provider_equals=provider or None,
        status_equals=status or None,
    )


def matches(entity: Entity, filter_set: FilterSet) -> bool:
    """
    Decides whether an entity takes part in the batch.

    Checks run in a fixed order: explicit selectors, provider, status, then
    name patterns. The first failing category excludes the entity.
    """
    if filter_set.selectors and not any(
        s.accepts(entity) for s in filter_set.selectors
    ):
        return False

    if filter_set.provider_equals and entity.provider != filter_set.provider_equals:
        return False

    if filter_set.status_equals and entity.status != filter_set.status_equals:
        return False

    if filter_set.name_patterns and not any(
        glob_match(entity.name, p) for p in filter_set.name_patterns
    ):
        return False

    return True
