from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from routeclash.analysis.ambiguity_grouper import AmbiguityClass, ResolvedDeclaration
from routeclash.analysis.model import SourceLocation
from routeclash.analysis.route_template import TemplateSyntaxError
from routeclash.analysis.usage_cache import InvalidTemplate
from routeclash.invariants import never


@dataclass(frozen=True)
class DiagnosticDescriptor:
    rule_id: str
    title: str
    message_format: str

    def format(self, *args: object) -> str:
        return self.message_format.format(*args)


AMBIGUOUS_ACTION_ROUTE = DiagnosticDescriptor(
    rule_id="RC0001",
    title="Route conflict detected between controller actions",
    message_format=(
        "Route '{0}' conflicts with another action route. An HTTP request that "
        "matches multiple routes results in an ambiguous match error. Fix the "
        "conflict by changing the route's pattern, HTTP method, or route "
        "constraints."
    ),
)

INVALID_ROUTE_TEMPLATE = DiagnosticDescriptor(
    rule_id="RC0002",
    title="Route template is not valid",
    message_format="Route '{0}' is not a valid route template: {1}",
)


@dataclass(frozen=True)
class RouteFinding:
    rule_id: str
    container_id: str
    action_id: str
    location: SourceLocation
    display_text: str
    message: str

    def render(self) -> str:
        return f"{self.location}: {self.rule_id} {self.message} [{self.container_id}.{self.action_id}]"


def ambiguity_findings(
    container_id: str, classes: Iterable[AmbiguityClass]
) -> tuple[RouteFinding, ...]:
    """One finding per member of every class, in declaration input order."""
    flagged: list[tuple[int, RouteFinding]] = []
    for ambiguity_class in classes:
        if len(ambiguity_class.members) < 2:
            never(
                "ambiguity class with fewer than two members",
                container=container_id,
                size=len(ambiguity_class.members),
            )
        display_text = ambiguity_class.display_text
        message = AMBIGUOUS_ACTION_ROUTE.format(display_text)
        for member in ambiguity_class.members:
            flagged.append(
                (
                    member.position,
                    RouteFinding(
                        rule_id=AMBIGUOUS_ACTION_ROUTE.rule_id,
                        container_id=container_id,
                        action_id=member.declaration.action_id,
                        location=member.declaration.location,
                        display_text=display_text,
                        message=message,
                    ),
                )
            )
    flagged.sort(key=lambda entry: entry[0])
    return tuple(finding for _, finding in flagged)


def invalid_template_finding(
    container_id: str, resolved: ResolvedDeclaration
) -> RouteFinding:
    template = resolved.template
    if not isinstance(template, InvalidTemplate):
        never(
            "invalid-template finding requested for a parsed template",
            container=container_id,
            template=resolved.declaration.template_text,
        )
    error: TemplateSyntaxError = template.error
    return RouteFinding(
        rule_id=INVALID_ROUTE_TEMPLATE.rule_id,
        container_id=container_id,
        action_id=resolved.declaration.action_id,
        location=resolved.declaration.location,
        display_text=resolved.declaration.template_text,
        message=INVALID_ROUTE_TEMPLATE.format(
            resolved.declaration.template_text, error.message
        ),
    )
