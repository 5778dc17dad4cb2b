"""Per-pass memo of parsed route templates.

Entries are keyed by the occurrence (a :class:`SourceLocation` or any other
hashable identity the host supplies), not by template text: two identical
strings at two places are still two diagnostics.
"""

from __future__ import annotations

import logging
import threading
import weakref
from collections.abc import Hashable
from dataclasses import dataclass
from typing import ClassVar, TypeAlias

from routeclash.analysis.model import AnalysisUnit
from routeclash.analysis.route_template import (
    TemplateSyntaxError,
    TemplateTree,
    parse_template,
)
from routeclash.invariants import never, require_not_none

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParsedTemplate:
    tree: TemplateTree

    @property
    def template(self) -> str:
        return self.tree.text


@dataclass(frozen=True)
class InvalidTemplate:
    error: TemplateSyntaxError

    @property
    def template(self) -> str:
        return self.error.template


CachedTemplate: TypeAlias = ParsedTemplate | InvalidTemplate


@dataclass(frozen=True)
class UsageCacheStats:
    entries: int
    hits: int
    misses: int


class RouteUsageCache:
    _units: ClassVar[weakref.WeakKeyDictionary[AnalysisUnit, "RouteUsageCache"]] = (
        weakref.WeakKeyDictionary()
    )
    _units_lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self) -> None:
        self._entries: dict[Hashable, CachedTemplate] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @classmethod
    def for_unit(cls, unit: AnalysisUnit) -> "RouteUsageCache":
        """Return the cache bound to ``unit``, creating it on first use."""
        with cls._units_lock:
            cache = cls._units.get(unit)
            if cache is None:
                cache = cls()
                cls._units[unit] = cache
                logger.debug("created route usage cache for unit %r", unit.name)
            return cache

    def get(self, location_key: Hashable, text: str) -> CachedTemplate:
        cached = self._entries.get(location_key)
        if cached is None:
            # Parsing is pure, so racing workers may both compute; the first
            # published value wins and every caller returns that one.
            result = parse_template(text)
            if result.tree is not None:
                computed: CachedTemplate = ParsedTemplate(result.tree)
            else:
                error = require_not_none(
                    result.error,
                    reason="parse result carries neither tree nor error",
                    template=text,
                )
                computed = InvalidTemplate(error)
            with self._lock:
                cached = self._entries.setdefault(location_key, computed)
                if cached is computed:
                    self._misses += 1
                else:
                    self._hits += 1
        else:
            with self._lock:
                self._hits += 1
        if cached.template != text:
            never(
                "location key reused for a different template",
                location=location_key,
                cached=cached.template,
                requested=text,
            )
        return cached

    def stats(self) -> UsageCacheStats:
        with self._lock:
            return UsageCacheStats(
                entries=len(self._entries), hits=self._hits, misses=self._misses
            )

    def __len__(self) -> int:
        return len(self._entries)
