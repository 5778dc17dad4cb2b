"""Invariant markers.

Branches that the parser and grouper contracts make unreachable call
:func:`never`. Reaching one raises :class:`InternalInvariantError` carrying the
keyword payload so the defect can be reported with context.
"""

from __future__ import annotations

from typing import NoReturn, TypeVar

from routeclash.exceptions import InternalInvariantError

T = TypeVar("T")


def never(reason: str = "", **env: object) -> NoReturn:
    """Mark a code path as intentionally unreachable."""
    raise InternalInvariantError(reason or "never() marker reached", env=env)


def require_not_none(value: T | None, *, reason: str = "", **env: object) -> T:
    if value is None:
        never(reason or "required value is None", **env)
    return value
