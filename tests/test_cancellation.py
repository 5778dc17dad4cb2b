from __future__ import annotations

import pytest

from routeclash.cancellation import (
    CancellationToken,
    Deadline,
    active_token,
    cancellation_scope,
    check_cancelled,
    parse_duration_ms,
)
from routeclash.exceptions import AnalysisCancelled, InternalInvariantError


def test_token_cancels_explicitly() -> None:
    token = CancellationToken()
    assert not token.cancelled
    token.check()
    token.cancel()
    assert token.cancelled
    with pytest.raises(AnalysisCancelled, match="cancelled"):
        token.check()


def test_expired_deadline_reports_timeout() -> None:
    token = CancellationToken(deadline=Deadline(deadline_ns=0))
    with pytest.raises(AnalysisCancelled) as excinfo:
        token.check()
    assert excinfo.value.reason == "Analysis timed out."


def test_future_deadline_does_not_fire() -> None:
    token = CancellationToken(deadline=Deadline.from_timeout_ms(60_000))
    assert not token.cancelled


def test_negative_timeout_is_an_invariant_violation() -> None:
    with pytest.raises(InternalInvariantError):
        Deadline.from_timeout_ticks(-1, 1_000_000)
    with pytest.raises(InternalInvariantError):
        Deadline.from_timeout_ticks(1, 0)


def test_scope_installs_and_restores_token() -> None:
    token = CancellationToken()
    assert active_token() is None
    with cancellation_scope(token):
        assert active_token() is token
        token.cancel()
        with pytest.raises(AnalysisCancelled):
            check_cancelled()
    assert active_token() is None
    check_cancelled()


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("1500", 1500),
        ("1500ms", 1500),
        ("30s", 30_000),
        ("1m30s", 90_000),
        ("2h", 7_200_000),
        ("1.5s", 1500),
        ("1us", 1),
        (" 10S ", 10_000),
    ],
)
def test_parse_duration_ms(text: str, expected: int) -> None:
    assert parse_duration_ms(text) == expected


@pytest.mark.parametrize("text", ["", "   ", "ten", "5d", "1s2", "s"])
def test_parse_duration_rejects_garbage(text: str) -> None:
    with pytest.raises(ValueError):
        parse_duration_ms(text)
