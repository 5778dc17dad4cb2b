from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import date, datetime, time
from pathlib import Path
from typing import TypeAlias
import tomllib

from routeclash.cancellation import parse_duration_ms

DEFAULT_CONFIG_NAME = "routeclash.toml"
TIMEOUT_ENV = "ROUTECLASH_TIMEOUT"
WORKERS_ENV = "ROUTECLASH_WORKERS"

TomlScalar: TypeAlias = str | int | float | bool | None | date | datetime | time
TomlValue: TypeAlias = TomlScalar | list["TomlValue"] | dict[str, "TomlValue"]
TomlTable: TypeAlias = dict[str, TomlValue]


@dataclass(frozen=True)
class AnalysisSettings:
    workers: int = 1
    timeout_ms: int | None = None
    fail_on_findings: bool = True
    report_invalid_templates: bool = True


def _load_toml(path: Path) -> TomlTable:
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    except OSError:
        return {}
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


def load_config(root: Path | None = None, config_path: Path | None = None) -> TomlTable:
    if config_path is None:
        base = root if root is not None else Path.cwd()
        config_path = base / DEFAULT_CONFIG_NAME
    return _load_toml(config_path)


def analysis_defaults(
    root: Path | None = None, config_path: Path | None = None
) -> TomlTable:
    data = load_config(root=root, config_path=config_path)
    section = data.get("analysis", {})
    return section if isinstance(section, dict) else {}


def env_defaults() -> TomlTable:
    values: TomlTable = {}
    workers = os.getenv(WORKERS_ENV, "").strip()
    if workers:
        values["workers"] = workers
    timeout = os.getenv(TIMEOUT_ENV, "").strip()
    if timeout:
        values["timeout"] = timeout
    return values


def _as_bool(value: TomlValue, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return default


def _as_workers(value: TomlValue) -> int:
    if isinstance(value, bool):
        return 1
    try:
        workers = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 1
    return max(workers, 1)


def _as_timeout_ms(value: TomlValue) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    try:
        millis = parse_duration_ms(str(value))
    except ValueError:
        return None
    return millis if millis > 0 else None


def merge_payload(payload: TomlTable, defaults: TomlTable) -> TomlTable:
    merged = dict(defaults)
    for key, value in payload.items():
        if value is None:
            continue
        merged[key] = value
    return merged


def resolve_settings(section: TomlTable, overrides: TomlTable | None = None) -> AnalysisSettings:
    """Combine the config file section, the environment and CLI overrides.

    Precedence, lowest first: file, environment, overrides.
    """
    merged = merge_payload(env_defaults(), section)
    merged = merge_payload(overrides or {}, merged)
    return AnalysisSettings(
        workers=_as_workers(merged.get("workers", 1)),
        timeout_ms=_as_timeout_ms(merged.get("timeout")),
        fail_on_findings=_as_bool(merged.get("fail_on_findings"), True),
        report_invalid_templates=_as_bool(merged.get("report_invalid_templates"), True),
    )
