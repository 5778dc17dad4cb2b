"""Read the host's declaration payload into an :class:`AnalysisUnit`.

The payload is JSON::

    {"version": 1,
     "containers": [
        {"id": "WeatherForecastController",
         "declarations": [
            {"action": "Get", "template": "/a", "attribute": "HttpGet",
             "location": {"path": "Controllers/Weather.cs", "line": 6, "column": 12}}]}]}

``verbs`` and ``attribute`` are both optional; their verb sets are unioned.
A declaration without a location gets a synthetic one naming its container
and position, so every occurrence keeps a distinct identity. Two declarations
that name the same location are rejected.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path

from pydantic import ValidationError

from routeclash.analysis.model import (
    AnalysisUnit,
    RouteContainer,
    RouteDeclaration,
    SourceLocation,
    normalize_verbs,
)
from routeclash.exceptions import DeclarationPayloadError
from routeclash.ingest.attributes import verbs_for_attribute
from routeclash.schema import DeclarationPayloadDTO, RouteContainerDTO

PAYLOAD_VERSION = 1


def unit_from_payload(payload: Mapping[str, object]) -> AnalysisUnit:
    try:
        dto = DeclarationPayloadDTO.model_validate(payload)
    except ValidationError as exc:
        raise DeclarationPayloadError(f"Invalid declaration payload: {exc}") from exc
    if dto.version != PAYLOAD_VERSION:
        raise DeclarationPayloadError(
            "Unsupported declaration payload "
            f"version={dto.version!r}; expected {PAYLOAD_VERSION}"
        )
    containers = tuple(_container(entry) for entry in dto.containers)
    _check_distinct_locations(containers)
    return AnalysisUnit(containers=containers, name=dto.name)


def load_declarations(path: Path) -> AnalysisUnit:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise DeclarationPayloadError(f"Cannot read {path}: {exc}") from exc
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise DeclarationPayloadError(f"{path} is not valid JSON: {exc}") from exc
    if not isinstance(payload, Mapping):
        raise DeclarationPayloadError("Declaration payload must be a JSON object.")
    unit = unit_from_payload(payload)
    if not unit.name:
        unit.name = str(path)
    return unit


def _container(entry: RouteContainerDTO) -> RouteContainer:
    declarations: list[RouteDeclaration] = []
    for index, item in enumerate(entry.declarations):
        verbs = set(normalize_verbs(item.verbs))
        if item.attribute is not None:
            verbs |= verbs_for_attribute(item.attribute)
        if item.location is not None:
            location = SourceLocation(
                path=item.location.path,
                line=item.location.line,
                column=item.location.column,
            )
        else:
            location = SourceLocation(path=f"<{entry.id}>", line=index + 1)
        declarations.append(
            RouteDeclaration(
                action_id=item.action,
                template_text=item.template,
                location=location,
                verbs=frozenset(verbs),
            )
        )
    return RouteContainer(container_id=entry.id, declarations=tuple(declarations))


def _check_distinct_locations(containers: tuple[RouteContainer, ...]) -> None:
    # The parse cache is keyed by location; one location is one occurrence.
    owners: dict[SourceLocation, str] = {}
    for container in containers:
        for declaration in container.declarations:
            owner = f"{container.container_id}.{declaration.action_id}"
            previous = owners.get(declaration.location)
            if previous is not None:
                raise DeclarationPayloadError(
                    f"Duplicate declaration location {declaration.location} "
                    f"({previous} and {owner}); every declaration needs its own "
                    "path, line and column."
                )
            owners[declaration.location] = owner
