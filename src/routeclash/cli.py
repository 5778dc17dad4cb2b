from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional

import typer

from routeclash.analysis.ambiguity_grouper import verbs_overlap
from routeclash.analysis.diagnostics import RouteFinding
from routeclash.analysis.model import normalize_verbs
from routeclash.analysis.pattern_comparer import equivalent
from routeclash.analysis.route_analysis import AnalysisReport, run_analysis
from routeclash.analysis.route_template import (
    LiteralSegment,
    ParameterSegment,
    TemplateSyntaxError,
    TemplateTree,
    parse_template,
    parse_template_strict,
)
from routeclash.cancellation import CancellationToken, Deadline, parse_duration_ms
from routeclash.config import analysis_defaults, resolve_settings
from routeclash.exceptions import DeclarationPayloadError
from routeclash.ingest.declarations import load_declarations
from routeclash.schema import AnalysisReportDTO, RouteFindingDTO, SourceLocationDTO

app = typer.Typer(add_completion=False)

EXIT_OK = 0
EXIT_FINDINGS = 1
EXIT_BAD_INPUT = 2


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Detect ambiguous route declarations within controllers."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command()
def check(
    payload: Path = typer.Argument(..., help="JSON file with the declared routes."),
    json_output: bool = typer.Option(False, "--json", help="Emit the report as JSON."),
    workers: Optional[int] = typer.Option(None, "--workers", min=1),
    timeout: Optional[str] = typer.Option(
        None, "--timeout", help="Cancel the pass after this long (e.g. 30s, 500ms)."
    ),
    root: Path = typer.Option(Path("."), "--root"),
    config: Optional[Path] = typer.Option(None, "--config"),
    fail_on_findings: Optional[bool] = typer.Option(
        None, "--fail-on-findings/--no-fail-on-findings"
    ),
) -> None:
    """Report every route declaration that belongs to an ambiguity class."""
    if timeout is not None:
        try:
            parse_duration_ms(timeout)
        except ValueError as exc:
            typer.echo(f"Invalid --timeout: {exc}", err=True)
            raise typer.Exit(code=EXIT_BAD_INPUT)
    settings = resolve_settings(
        analysis_defaults(root=root, config_path=config),
        {
            "workers": workers,
            "timeout": timeout,
            "fail_on_findings": fail_on_findings,
        },
    )
    try:
        unit = load_declarations(payload)
    except DeclarationPayloadError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=EXIT_BAD_INPUT)

    token = CancellationToken(
        deadline=Deadline.from_timeout_ms(settings.timeout_ms)
        if settings.timeout_ms is not None
        else None
    )
    report = run_analysis(
        unit,
        workers=settings.workers,
        cancellation=token,
        report_invalid_templates=settings.report_invalid_templates,
    )
    if json_output:
        typer.echo(json.dumps(report_dto(report).model_dump(), indent=2))
    else:
        _echo_report(report)
    if settings.fail_on_findings and not report.clean:
        raise typer.Exit(code=EXIT_FINDINGS)
    raise typer.Exit(code=EXIT_OK)


@app.command()
def parse(template: str = typer.Argument(...)) -> None:
    """Show how a route template is split into segments."""
    try:
        tree = parse_template_strict(template)
    except TemplateSyntaxError as exc:
        typer.echo(f"error[{exc.kind.value}]: {exc}", err=True)
        raise typer.Exit(code=EXIT_BAD_INPUT)
    typer.echo(tree.canonical)
    for line in describe_segments(tree):
        typer.echo(f"  {line}")


@app.command()
def compare(
    first: str = typer.Argument(...),
    second: str = typer.Argument(...),
    verbs_first: List[str] = typer.Option([], "--verbs-a"),
    verbs_second: List[str] = typer.Option([], "--verbs-b"),
) -> None:
    """Tell whether two declarations would be reported as ambiguous."""
    trees: list[TemplateTree] = []
    for template in (first, second):
        result = parse_template(template)
        if result.tree is None:
            typer.echo(f"error: {result.error}", err=True)
            raise typer.Exit(code=EXIT_BAD_INPUT)
        trees.append(result.tree)
    same_pattern = equivalent(trees[0], trees[1])
    overlap = verbs_overlap(_split_verbs(verbs_first), _split_verbs(verbs_second))
    typer.echo(f"pattern equivalent: {'yes' if same_pattern else 'no'}")
    typer.echo(f"verbs overlap: {'yes' if overlap else 'no'}")
    conflict = same_pattern and overlap
    typer.echo("conflict" if conflict else "no conflict")
    raise typer.Exit(code=EXIT_FINDINGS if conflict else EXIT_OK)


def describe_segments(tree: TemplateTree) -> list[str]:
    lines: list[str] = []
    for segment in tree.segments:
        match segment:
            case LiteralSegment(text=text):
                lines.append(f"literal {text}")
            case ParameterSegment() as parameter:
                flags = [
                    label
                    for label, enabled in (
                        ("optional", parameter.is_optional),
                        ("catch-all", parameter.is_catch_all),
                        ("default", parameter.has_default),
                    )
                    if enabled
                ]
                flags.extend(f"constraint={value}" for value in parameter.constraints)
                suffix = f" ({', '.join(flags)})" if flags else ""
                lines.append(f"parameter {parameter.name}{suffix}")
    return lines


def report_dto(report: AnalysisReport) -> AnalysisReportDTO:
    return AnalysisReportDTO(
        findings=[_finding_dto(finding) for finding in report.findings],
        template_errors=[_finding_dto(finding) for finding in report.template_errors],
        failed_containers=list(report.failed_containers),
        analyzed_containers=report.analyzed_containers,
        cancelled=report.cancelled,
    )


def _finding_dto(finding: RouteFinding) -> RouteFindingDTO:
    return RouteFindingDTO(
        rule_id=finding.rule_id,
        container=finding.container_id,
        action=finding.action_id,
        location=SourceLocationDTO(
            path=finding.location.path,
            line=finding.location.line,
            column=finding.location.column,
        ),
        display_text=finding.display_text,
        message=finding.message,
    )


def _echo_report(report: AnalysisReport) -> None:
    for finding in report.template_errors:
        typer.echo(finding.render())
    for finding in report.findings:
        typer.echo(finding.render())
    for container_id in report.failed_containers:
        typer.echo(f"internal error while analyzing {container_id}", err=True)
    if report.cancelled:
        typer.echo(
            f"analysis cancelled after {report.analyzed_containers} container(s)",
            err=True,
        )
    typer.echo(
        f"{len(report.findings)} ambiguous route(s) in "
        f"{report.analyzed_containers} container(s)"
    )


def _split_verbs(values: list[str]) -> frozenset[str]:
    return normalize_verbs(part for value in values for part in value.split(","))


if __name__ == "__main__":  # pragma: no cover
    app()
