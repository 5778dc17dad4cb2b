from __future__ import annotations

import logging

from routeclash.analysis.model import AnalysisUnit, RouteContainer
from routeclash.analysis.route_analysis import ScratchPool, analyze_container, run_analysis
from routeclash.analysis.usage_cache import RouteUsageCache
from routeclash.cancellation import CancellationToken, Deadline, cancellation_scope
from tests.route_helpers import container, declaration


class _CancelAfter(CancellationToken):
    """Reports cancellation once ``allowed`` checks have passed."""

    def __init__(self, allowed: int) -> None:
        super().__init__()
        self._allowed = allowed

    @property
    def cancelled(self) -> bool:
        if self._allowed <= 0:
            return True
        self._allowed -= 1
        return False


def _unit(*containers: RouteContainer) -> AnalysisUnit:
    return AnalysisUnit(containers=containers, name="test")


def _many_containers(count: int) -> AnalysisUnit:
    return _unit(
        *(
            container(
                f"C{index}",
                [
                    ("Get", "/items/{id}", ["GET"]),
                    ("Find", f"/items/{index}", []),
                    ("Post", "/items", ["POST"]),
                ],
            )
            for index in range(count)
        )
    )


def test_same_route_on_different_actions_flags_both() -> None:
    report = run_analysis(
        _unit(container("WeatherForecastController", [("Get", "/a", []), ("Put", "/a", [])]))
    )
    assert [finding.action_id for finding in report.findings] == ["Get", "Put"]
    assert [finding.location.line for finding in report.findings] == [1, 2]
    assert {finding.display_text for finding in report.findings} == {"/a"}
    assert not report.clean


def test_different_routes_are_clean() -> None:
    report = run_analysis(
        _unit(container("WeatherForecastController", [("Get", "/a", []), ("Put", "/b", [])]))
    )
    assert report.findings == []
    assert report.clean
    assert report.analyzed_containers == 1


def test_one_action_with_duplicate_route_is_flagged() -> None:
    report = run_analysis(_unit(container("HomeController", [("Index", "/", []), ("Index", "/", [])])))
    assert [finding.action_id for finding in report.findings] == ["Index", "Index"]


def test_invalid_templates_are_reported_separately() -> None:
    unit = _unit(container("Home", [("Broken", "/a/{", []), ("Fine", "/a", [])]))
    report = run_analysis(unit)
    assert report.findings == []
    assert [finding.rule_id for finding in report.template_errors] == ["RC0002"]
    assert report.clean

    quiet = run_analysis(unit, report_invalid_templates=False)
    assert quiet.template_errors == []


def test_containers_are_isolated() -> None:
    report = run_analysis(
        _unit(
            container("First", [("A", "/shared", [])]),
            container("Second", [("B", "/shared", [])]),
        )
    )
    assert report.findings == []
    assert report.analyzed_containers == 2


def test_parallel_pass_matches_sequential_pass() -> None:
    sequential = run_analysis(_many_containers(12), workers=1)
    parallel = run_analysis(_many_containers(12), workers=4)
    assert parallel.findings == sequential.findings
    assert parallel.analyzed_containers == sequential.analyzed_containers == 12
    assert len(parallel.findings) == 24


def test_pre_cancelled_token_produces_no_findings() -> None:
    token = CancellationToken()
    token.cancel()
    report = run_analysis(_many_containers(3), cancellation=token)
    assert report.cancelled
    assert report.findings == []
    assert report.analyzed_containers == 0


def test_cancellation_mid_pass_keeps_finished_containers() -> None:
    report = run_analysis(_many_containers(4), cancellation=_CancelAfter(2))
    assert report.cancelled
    assert report.analyzed_containers == 2
    assert {finding.container_id for finding in report.findings} == {"C0", "C1"}


def test_expired_deadline_cancels_the_pass() -> None:
    token = CancellationToken(deadline=Deadline(deadline_ns=0))
    report = run_analysis(_many_containers(2), cancellation=token)
    assert report.cancelled
    assert report.analyzed_containers == 0


def test_context_token_is_honoured() -> None:
    token = CancellationToken()
    token.cancel()
    with cancellation_scope(token):
        report = run_analysis(_many_containers(2))
    assert report.cancelled


def test_internal_failure_is_logged_and_isolated(caplog) -> None:
    broken = RouteContainer(
        container_id="Broken",
        declarations=(
            declaration("A", "/a", path="Shared.cs", line=1),
            declaration("B", "/b", path="Shared.cs", line=1),
        ),
    )
    healthy = container("Healthy", [("X", "/x", []), ("Y", "/x", [])])
    with caplog.at_level(logging.ERROR, logger="routeclash.analysis.route_analysis"):
        report = run_analysis(_unit(broken, healthy))
    assert report.failed_containers == ["Broken"]
    assert [finding.container_id for finding in report.findings] == ["Healthy", "Healthy"]
    assert report.analyzed_containers == 1
    assert not report.clean
    assert any("Broken" in record.getMessage() for record in caplog.records)


def test_cache_is_reused_across_runs_of_one_unit() -> None:
    unit = _many_containers(2)
    run_analysis(unit)
    cache = RouteUsageCache.for_unit(unit)
    misses = cache.stats().misses
    run_analysis(unit)
    assert cache.stats().misses == misses
    assert cache.stats().hits >= 6


def test_analyze_container_directly() -> None:
    cache = RouteUsageCache()
    report = analyze_container(
        container("Orders", [("Get", "/orders/{id}", ["GET"]), ("Head", "/orders/1", ["HEAD"])]),
        cache=cache,
    )
    assert report.container_id == "Orders"
    assert report.findings == ()


def test_scratch_pool_recycles_cleared_buffers() -> None:
    pool = ScratchPool()
    with pool.borrow() as first:
        first.append("stale")  # type: ignore[arg-type]
        first_id = id(first)
    with pool.borrow() as second:
        assert id(second) == first_id
        assert second == []
