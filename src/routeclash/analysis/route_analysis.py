"""Whole-pass driver: one task per container, shared usage cache."""

from __future__ import annotations

import concurrent.futures
import logging
import queue
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum

from routeclash.analysis.ambiguity_grouper import ResolvedDeclaration, group_and_flag
from routeclash.analysis.diagnostics import (
    RouteFinding,
    ambiguity_findings,
    invalid_template_finding,
)
from routeclash.analysis.model import AnalysisUnit, RouteContainer
from routeclash.analysis.usage_cache import InvalidTemplate, RouteUsageCache
from routeclash.cancellation import CancellationToken, active_token, check_cancelled
from routeclash.exceptions import AnalysisCancelled, InternalInvariantError
from routeclash.invariants import never

logger = logging.getLogger(__name__)


class ScratchPool:
    """Recycles per-task lists. A borrowed list is never shared by two tasks."""

    def __init__(self) -> None:
        self._free: queue.SimpleQueue[list[ResolvedDeclaration]] = queue.SimpleQueue()

    @contextmanager
    def borrow(self) -> Iterator[list[ResolvedDeclaration]]:
        try:
            buffer = self._free.get_nowait()
        except queue.Empty:
            buffer = []
        try:
            yield buffer
        finally:
            buffer.clear()
            self._free.put(buffer)


@dataclass(frozen=True)
class ContainerReport:
    container_id: str
    findings: tuple[RouteFinding, ...] = ()
    template_errors: tuple[RouteFinding, ...] = ()


@dataclass
class AnalysisReport:
    findings: list[RouteFinding] = field(default_factory=list)
    template_errors: list[RouteFinding] = field(default_factory=list)
    failed_containers: list[str] = field(default_factory=list)
    analyzed_containers: int = 0
    cancelled: bool = False

    @property
    def clean(self) -> bool:
        return not self.findings and not self.failed_containers


class _Status(str, Enum):
    DONE = "done"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class _TaskOutcome:
    container_id: str
    status: _Status
    report: ContainerReport | None = None


def analyze_container(
    container: RouteContainer,
    *,
    cache: RouteUsageCache,
    pool: ScratchPool | None = None,
    report_invalid_templates: bool = True,
) -> ContainerReport:
    pool = pool if pool is not None else ScratchPool()
    with pool.borrow() as scratch:
        for position, declaration in enumerate(container.declarations):
            scratch.append(
                ResolvedDeclaration(
                    position=position,
                    declaration=declaration,
                    template=cache.get(declaration.location, declaration.template_text),
                )
            )
        classes = group_and_flag(scratch)
        findings = ambiguity_findings(container.container_id, classes)
        template_errors: tuple[RouteFinding, ...] = ()
        if report_invalid_templates:
            template_errors = tuple(
                invalid_template_finding(container.container_id, item)
                for item in scratch
                if isinstance(item.template, InvalidTemplate)
            )
    return ContainerReport(
        container_id=container.container_id,
        findings=findings,
        template_errors=template_errors,
    )


def run_analysis(
    unit: AnalysisUnit,
    *,
    workers: int = 1,
    cancellation: CancellationToken | None = None,
    cache: RouteUsageCache | None = None,
    report_invalid_templates: bool = True,
) -> AnalysisReport:
    """Analyze every container of ``unit`` and collect the findings.

    Containers run on a thread pool when ``workers > 1``. Cancellation is
    checked before each container starts; a cancelled pass keeps whatever was
    already produced. An internal invariant failure is logged and recorded
    against its container and the pass continues with the others.
    """
    token = cancellation if cancellation is not None else active_token()
    if token is None:
        token = CancellationToken()
    cache = cache if cache is not None else RouteUsageCache.for_unit(unit)
    pool = ScratchPool()

    def task(container: RouteContainer) -> _TaskOutcome:
        try:
            check_cancelled(token)
            report = analyze_container(
                container,
                cache=cache,
                pool=pool,
                report_invalid_templates=report_invalid_templates,
            )
        except AnalysisCancelled:
            return _TaskOutcome(container.container_id, _Status.CANCELLED)
        except InternalInvariantError:
            logger.exception(
                "route analysis failed for container %s", container.container_id
            )
            return _TaskOutcome(container.container_id, _Status.FAILED)
        return _TaskOutcome(container.container_id, _Status.DONE, report)

    result = AnalysisReport()
    if workers > 1 and len(unit.containers) > 1:
        with concurrent.futures.ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="routeclash"
        ) as executor:
            _collect(result, executor.map(task, unit.containers))
    else:
        _collect(result, map(task, unit.containers))

    stats = cache.stats()
    logger.debug(
        "route usage cache: %d entries, %d hits, %d misses",
        stats.entries,
        stats.hits,
        stats.misses,
    )
    if result.cancelled:
        logger.warning(
            "route analysis cancelled after %d of %d containers",
            result.analyzed_containers,
            len(unit.containers),
        )
    return result


def _collect(result: AnalysisReport, outcomes: Iterable[_TaskOutcome]) -> None:
    for outcome in outcomes:
        match outcome.status:
            case _Status.DONE if outcome.report is not None:
                result.analyzed_containers += 1
                result.findings.extend(outcome.report.findings)
                result.template_errors.extend(outcome.report.template_errors)
            case _Status.FAILED:
                result.failed_containers.append(outcome.container_id)
            case _Status.CANCELLED:
                result.cancelled = True
            case _:
                never(
                    "unexpected container outcome",
                    container=outcome.container_id,
                    status=outcome.status,
                )
