"""Exception types raised by routeclash."""

from __future__ import annotations

from collections.abc import Mapping


class RouteclashError(Exception):
    """Base class for every error routeclash raises on purpose."""


class InternalInvariantError(RouteclashError, RuntimeError):
    """A code path that the parser/grouper contracts declare unreachable was hit.

    This is a defect, never a recoverable condition. The pass driver logs it
    and moves on to the next container, but it is never swallowed silently.
    """

    def __init__(self, reason: str, *, env: Mapping[str, object] | None = None):
        super().__init__(reason)
        self.reason = reason
        self.env = dict(env or {})

    def __str__(self) -> str:
        if not self.env:
            return self.reason
        details = ", ".join(f"{key}={value!r}" for key, value in self.env.items())
        return f"{self.reason} ({details})"


class AnalysisCancelled(RouteclashError):
    """Raised by cancellation checks once the active token is cancelled."""

    def __init__(self, reason: str = "Analysis cancelled.") -> None:
        super().__init__(reason)
        self.reason = reason


class DeclarationPayloadError(RouteclashError, ValueError):
    """The host-supplied declaration payload could not be read."""
