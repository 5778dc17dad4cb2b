from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field


@dataclass(frozen=True)
class SourceLocation:
    """Identity of one syntactic occurrence of a route template."""

    path: str
    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        return f"{self.path}:{self.line}:{self.column}"


def normalize_verbs(verbs: Iterable[str]) -> frozenset[str]:
    return frozenset(verb.strip().upper() for verb in verbs if verb and verb.strip())


@dataclass(frozen=True)
class RouteDeclaration:
    """One candidate route handed over by the host.

    An empty ``verbs`` set means the declaration accepts any HTTP verb.
    """

    action_id: str
    template_text: str
    location: SourceLocation
    verbs: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        object.__setattr__(self, "verbs", normalize_verbs(self.verbs))


@dataclass(frozen=True)
class RouteContainer:
    container_id: str
    declarations: tuple[RouteDeclaration, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "declarations", tuple(self.declarations))


@dataclass(eq=False)
class AnalysisUnit:
    """One whole-program pass. Compared by identity so caches can key on it."""

    containers: tuple[RouteContainer, ...] = ()
    name: str = ""

    def __post_init__(self) -> None:
        self.containers = tuple(self.containers)
