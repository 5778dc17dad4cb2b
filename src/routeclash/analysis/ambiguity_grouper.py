from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from routeclash.analysis.model import RouteDeclaration
from routeclash.analysis.pattern_comparer import equivalent
from routeclash.analysis.route_template import TemplateTree
from routeclash.analysis.usage_cache import CachedTemplate, ParsedTemplate


@dataclass(frozen=True)
class ResolvedDeclaration:
    """A declaration paired with its cached template and its input position."""

    position: int
    declaration: RouteDeclaration
    template: CachedTemplate

    @property
    def tree(self) -> TemplateTree | None:
        if isinstance(self.template, ParsedTemplate):
            return self.template.tree
        return None


@dataclass(frozen=True)
class AmbiguityClass:
    members: tuple[ResolvedDeclaration, ...]

    @property
    def display_text(self) -> str:
        tree = self.members[0].tree
        return str(tree) if tree is not None else self.members[0].declaration.template_text

    @property
    def declarations(self) -> tuple[RouteDeclaration, ...]:
        return tuple(member.declaration for member in self.members)


def verbs_overlap(first: Iterable[str], second: Iterable[str]) -> bool:
    """An empty verb set accepts any verb and therefore overlaps everything."""
    left = frozenset(first)
    right = frozenset(second)
    if not left or not right:
        return True
    return not left.isdisjoint(right)


def routes_conflict(first: ResolvedDeclaration, second: ResolvedDeclaration) -> bool:
    first_tree = first.tree
    second_tree = second.tree
    if first_tree is None or second_tree is None:
        return False
    if not verbs_overlap(first.declaration.verbs, second.declaration.verbs):
        return False
    return equivalent(first_tree, second_tree)


class _DisjointSet:
    """Union-find whose roots are always the lowest index in their set."""

    def __init__(self, size: int) -> None:
        self._parent = list(range(size))

    def find(self, index: int) -> int:
        parent = self._parent
        while parent[index] != index:
            parent[index] = parent[parent[index]]
            index = parent[index]
        return index

    def union(self, first: int, second: int) -> None:
        first_root = self.find(first)
        second_root = self.find(second)
        if first_root == second_root:
            return
        if first_root < second_root:
            self._parent[second_root] = first_root
        else:
            self._parent[first_root] = second_root


def group_and_flag(resolved: Sequence[ResolvedDeclaration]) -> list[AmbiguityClass]:
    """Partition one container's declarations into ambiguity classes.

    Unparseable declarations are skipped. Two declarations are connected when
    their templates are equivalent and their verb sets overlap; the classes are
    the connected components with at least two members. Action identity plays
    no part, so one action declaring the same template twice is ambiguous with
    itself. Members keep input order and classes are ordered by their first
    member.
    """
    routes = [item for item in resolved if item.tree is not None]
    components = _DisjointSet(len(routes))
    for i in range(len(routes)):
        for j in range(i + 1, len(routes)):
            if components.find(i) == components.find(j):
                continue
            if routes_conflict(routes[i], routes[j]):
                components.union(i, j)

    grouped: dict[int, list[ResolvedDeclaration]] = {}
    for index, route in enumerate(routes):
        grouped.setdefault(components.find(index), []).append(route)
    return [
        AmbiguityClass(members=tuple(members))
        for members in grouped.values()
        if len(members) >= 2
    ]
