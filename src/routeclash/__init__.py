"""routeclash package root."""

from routeclash.exceptions import (
    AnalysisCancelled,
    InternalInvariantError,
    RouteclashError,
)
from routeclash.invariants import never

__all__ = [
    "__version__",
    "AnalysisCancelled",
    "InternalInvariantError",
    "RouteclashError",
    "never",
]

__version__ = "0.1.0"
