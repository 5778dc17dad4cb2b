from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from routeclash import cli
from routeclash.analysis.model import SourceLocation
from routeclash.analysis.route_analysis import run_analysis
from routeclash.exceptions import DeclarationPayloadError
from routeclash.ingest.attributes import RouteAttributeKind, verbs_for_attribute
from routeclash.ingest.declarations import load_declarations, unit_from_payload


@pytest.mark.parametrize(
    ("kind", "verbs"),
    [
        (RouteAttributeKind.ROUTE, frozenset()),
        (RouteAttributeKind.HTTP_GET, frozenset({"GET"})),
        (RouteAttributeKind.HTTP_DELETE, frozenset({"DELETE"})),
        (RouteAttributeKind.HTTP_PUT, frozenset({"PUT"})),
        (RouteAttributeKind.HTTP_OPTIONS, frozenset({"OPTIONS"})),
    ],
)
def test_attribute_kinds_map_to_verbs(kind: RouteAttributeKind, verbs: frozenset[str]) -> None:
    assert verbs_for_attribute(kind) == verbs


def test_payload_becomes_analysis_unit(write_payload) -> None:
    path = write_payload(
        [
            {
                "id": "WeatherForecastController",
                "declarations": [
                    {
                        "action": "Get",
                        "template": "/a",
                        "attribute": "HttpGet",
                        "verbs": ["post"],
                        "location": {"path": "Weather.cs", "line": 6, "column": 12},
                    },
                    {"action": "Put", "template": "/b"},
                ],
            }
        ]
    )
    unit = load_declarations(path)
    assert unit.name == str(path)
    (controller,) = unit.containers
    assert controller.container_id == "WeatherForecastController"
    first, second = controller.declarations
    assert first.verbs == frozenset({"GET", "POST"})
    assert first.location == SourceLocation("Weather.cs", 6, 12)
    assert second.verbs == frozenset()
    assert second.location == SourceLocation("<WeatherForecastController>", 2, 0)


def test_payload_name_is_kept() -> None:
    unit = unit_from_payload({"version": 1, "name": "build-42", "containers": []})
    assert unit.name == "build-42"
    assert unit.containers == ()


def test_unsupported_version_is_rejected(write_payload) -> None:
    with pytest.raises(DeclarationPayloadError, match="version"):
        load_declarations(write_payload([], version=2))


def test_unknown_attribute_is_rejected() -> None:
    payload = {
        "containers": [
            {"id": "C", "declarations": [{"action": "A", "template": "/", "attribute": "HttpTrace"}]}
        ]
    }
    with pytest.raises(DeclarationPayloadError):
        unit_from_payload(payload)


def test_locations_without_line_and_column_collide_and_are_rejected() -> None:
    payload = {
        "containers": [
            {
                "id": "Home",
                "declarations": [
                    {"action": "A", "template": "/a", "location": {"path": "Home.cs"}},
                    {"action": "B", "template": "/b", "location": {"path": "Home.cs"}},
                    {"action": "C", "template": "/a", "location": {"path": "Home.cs"}},
                ],
            }
        ]
    }
    with pytest.raises(DeclarationPayloadError, match="Duplicate declaration location Home.cs:0:0"):
        unit_from_payload(payload)


def test_location_shared_across_containers_is_rejected() -> None:
    location = {"path": "Shared.cs", "line": 3, "column": 1}
    payload = {
        "containers": [
            {"id": "First", "declarations": [{"action": "A", "template": "/a", "location": location}]},
            {"id": "Second", "declarations": [{"action": "B", "template": "/a", "location": location}]},
        ]
    }
    with pytest.raises(DeclarationPayloadError, match=r"First\.A and Second\.B"):
        unit_from_payload(payload)


def test_distinct_locations_in_one_file_are_analyzed() -> None:
    unit = unit_from_payload(
        {
            "containers": [
                {
                    "id": "Home",
                    "declarations": [
                        {"action": "A", "template": "/a", "location": {"path": "Home.cs", "line": 1}},
                        {"action": "B", "template": "/b", "location": {"path": "Home.cs", "line": 2}},
                        {"action": "C", "template": "/a", "location": {"path": "Home.cs", "line": 3}},
                    ],
                }
            ]
        }
    )
    report = run_analysis(unit)
    assert report.failed_containers == []
    assert [finding.action_id for finding in report.findings] == ["A", "C"]


def test_duplicate_location_exits_with_bad_input(write_payload, tmp_path: Path) -> None:
    path = write_payload(
        [
            {
                "id": "Home",
                "declarations": [
                    {"action": "A", "template": "/a", "location": {"path": "Home.cs"}},
                    {"action": "B", "template": "/b", "location": {"path": "Home.cs"}},
                ],
            }
        ]
    )
    result = CliRunner().invoke(cli.app, ["check", str(path), "--root", str(tmp_path)])
    assert result.exit_code == cli.EXIT_BAD_INPUT
    assert "Duplicate declaration location" in result.output


def test_missing_file_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(DeclarationPayloadError, match="Cannot read"):
        load_declarations(tmp_path / "absent.json")


def test_non_json_and_non_object_payloads_are_rejected(tmp_path: Path) -> None:
    garbage = tmp_path / "garbage.json"
    garbage.write_text("{not json", encoding="utf-8")
    with pytest.raises(DeclarationPayloadError, match="not valid JSON"):
        load_declarations(garbage)

    listing = tmp_path / "list.json"
    listing.write_text("[]", encoding="utf-8")
    with pytest.raises(DeclarationPayloadError, match="JSON object"):
        load_declarations(listing)
