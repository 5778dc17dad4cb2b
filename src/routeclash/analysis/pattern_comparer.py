"""Structural equivalence between route templates.

Two templates are equivalent when no observer that ignores parameter
constraints could prove them disjoint:

* segments are aligned by position;
* a parameter on either side matches anything at that position;
* literals match case-insensitively;
* a catch-all absorbs zero or more trailing segments of the other template;
* trailing optional parameters may be present or absent.

The relation is reflexive and symmetric but not transitive
(``/a/{x}`` ~ ``/{y}/b`` ~ ``/c/{z}``, yet ``/a/{x}`` !~ ``/c/{z}``), which is why
the grouper connects components instead of bucketing on a key.

:func:`pattern_hash` is constant for every well-formed tree, so it never
partitions anything; bucketing is done by the grouper's pairwise union-find.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence

from routeclash.analysis.route_template import (
    LiteralSegment,
    ParameterSegment,
    Segment,
    TemplateTree,
)
from routeclash.invariants import never

# A root catch-all is equivalent to every template, so any hash that agrees
# with `equivalent` for all trees must be the same for all trees.
_PATTERN_HASH = hash(("routeclash", "route-pattern"))


def equivalent(a: TemplateTree, b: TemplateTree) -> bool:
    check_tree_shape(a)
    check_tree_shape(b)
    if _aligned(a.segments, b.segments):
        return True
    for left in _elided_forms(a.segments):
        for right in _elided_forms(b.segments):
            if _aligned(left, right):
                return True
    return False


def pattern_hash(tree: TemplateTree) -> int:
    check_tree_shape(tree)
    return _PATTERN_HASH


class AmbiguousPatternComparer:
    """Equality/hash pair over templates for callers that want one object."""

    def equals(self, a: TemplateTree, b: TemplateTree) -> bool:
        return equivalent(a, b)

    def hash(self, tree: TemplateTree) -> int:
        return pattern_hash(tree)


COMPARER = AmbiguousPatternComparer()


def check_tree_shape(tree: TemplateTree) -> None:
    positions = [
        index
        for index, segment in enumerate(tree.segments)
        if _is_catch_all(segment)
    ]
    if len(positions) > 1:
        never(
            "template tree carries more than one catch-all",
            template=str(tree),
            positions=positions,
        )
    if positions and positions[0] != len(tree.segments) - 1:
        never(
            "catch-all parameter is not the last segment",
            template=str(tree),
            position=positions[0],
        )


def segments_match(x: Segment, y: Segment) -> bool:
    match (x, y):
        case (ParameterSegment(), LiteralSegment() | ParameterSegment()):
            return True
        case (LiteralSegment(), ParameterSegment()):
            return True
        case (LiteralSegment(), LiteralSegment()):
            return x.folded == y.folded
        case _:
            never(
                "unexpected segment kind",
                left=type(x).__name__,
                right=type(y).__name__,
            )


def _aligned(left: Sequence[Segment], right: Sequence[Segment]) -> bool:
    for x, y in zip(left, right):
        if _is_catch_all(x) or _is_catch_all(y):
            return True
        if not segments_match(x, y):
            return False
    if len(left) == len(right):
        return True
    shorter = min(len(left), len(right))
    longer = left if len(left) > len(right) else right
    return _is_catch_all(longer[shorter])


def _elided_forms(segments: tuple[Segment, ...]) -> Iterator[tuple[Segment, ...]]:
    """Yield the template with 0..n of its trailing optional parameters dropped."""
    yield segments
    end = len(segments)
    while end > 0 and _is_elidable(segments[end - 1]):
        end -= 1
        yield segments[:end]


def _is_elidable(segment: Segment) -> bool:
    return (
        isinstance(segment, ParameterSegment)
        and segment.is_optional
        and not segment.is_catch_all
    )


def _is_catch_all(segment: Segment) -> bool:
    return isinstance(segment, ParameterSegment) and segment.is_catch_all
