from __future__ import annotations

import re
import threading
import time
from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Iterator

from routeclash.exceptions import AnalysisCancelled
from routeclash.invariants import never

_DURATION_TOKEN_RE = re.compile(r"(?P<value>\d+(?:\.\d+)?)(?P<unit>ns|us|ms|s|m|h)")
_DURATION_UNIT_NS: dict[str, Decimal] = {
    "ns": Decimal("1"),
    "us": Decimal("1000"),
    "ms": Decimal("1000000"),
    "s": Decimal("1000000000"),
    "m": Decimal("60000000000"),
    "h": Decimal("3600000000000"),
}


@dataclass(frozen=True)
class Deadline:
    deadline_ns: int

    @classmethod
    def from_timeout_ticks(cls, ticks: int, tick_ns: int) -> "Deadline":
        ticks_value = int(ticks)
        tick_ns_value = int(tick_ns)
        if ticks_value < 0:
            never("invalid timeout ticks", ticks=ticks)
        if tick_ns_value <= 0:
            never("invalid timeout tick_ns", tick_ns=tick_ns)
        return cls(deadline_ns=time.monotonic_ns() + ticks_value * tick_ns_value)

    @classmethod
    def from_timeout_ms(cls, milliseconds: int) -> "Deadline":
        return cls.from_timeout_ticks(milliseconds, 1_000_000)

    def expired(self) -> bool:
        return time.monotonic_ns() >= self.deadline_ns


@dataclass
class CancellationToken:
    """Cooperative cancellation signal shared by every task of one pass.

    The host cancels explicitly with :meth:`cancel`, or implicitly by giving
    the token a :class:`Deadline`. Checks happen between containers, never in
    the middle of parsing a template.
    """

    deadline: Deadline | None = None
    _event: threading.Event = field(default_factory=threading.Event, repr=False)

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self.deadline is not None and self.deadline.expired():
            self._event.set()
            return True
        return False

    def check(self) -> None:
        if self.cancelled:
            if self.deadline is not None and self.deadline.expired():
                raise AnalysisCancelled("Analysis timed out.")
            raise AnalysisCancelled()


_cancellation_var: ContextVar[CancellationToken | None] = ContextVar(
    "routeclash_cancellation", default=None
)


def active_token() -> CancellationToken | None:
    return _cancellation_var.get()


def set_cancellation(token: CancellationToken | None) -> Token[CancellationToken | None]:
    return _cancellation_var.set(token)


def reset_cancellation(token: Token[CancellationToken | None]) -> None:
    _cancellation_var.reset(token)


@contextmanager
def cancellation_scope(token: CancellationToken | None) -> Iterator[CancellationToken | None]:
    scope_token = set_cancellation(token)
    try:
        yield token
    finally:
        reset_cancellation(scope_token)


def check_cancelled(token: CancellationToken | None = None) -> None:
    """Raise AnalysisCancelled if the given (or context-active) token fired."""
    if token is None:
        token = active_token()
    if token is not None:
        token.check()


def parse_duration_ms(text: str) -> int:
    """Parse ``"1500ms"``, ``"30s"`` or ``"1m30s"`` into whole milliseconds.

    A bare integer is read as milliseconds. Sub-millisecond totals round up so
    that a positive duration never becomes a zero timeout.
    """
    raw = str(text).strip().lower()
    if not raw:
        raise ValueError("empty duration")
    if raw.isdigit():
        return int(raw)
    position = 0
    total_ns = Decimal(0)
    for match in _DURATION_TOKEN_RE.finditer(raw):
        if match.start() != position:
            raise ValueError(f"invalid duration: {text!r}")
        try:
            value = Decimal(match.group("value"))
        except InvalidOperation as exc:
            raise ValueError(f"invalid duration: {text!r}") from exc
        total_ns += value * _DURATION_UNIT_NS[match.group("unit")]
        position = match.end()
    if position != len(raw):
        raise ValueError(f"invalid duration: {text!r}")
    millis = total_ns / Decimal(1_000_000)
    whole = int(millis)
    if millis > whole:
        whole += 1
    return whole
