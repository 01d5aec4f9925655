"""Engine exception types."""

from __future__ import annotations

from typing import Any


class SailsimError(Exception):
    """Base class for engine failures surfaced to callers."""


class FrameMismatchError(SailsimError, ValueError):
    """Two state vectors from different frames were combined without conversion."""

    def __init__(self, expected: Any, got: Any, ctx: str = "") -> None:
        where = f" in {ctx}" if ctx else ""
        super().__init__(f"frame mismatch{where}: expected {expected}, got {got}")
        self.expected = expected
        self.got = got


class NonFiniteStateError(SailsimError, ArithmeticError):
    """NaN or infinity appeared in a physics result.

    ``last_good`` holds the most recent finite value the caller can fall back to.
    """

    def __init__(self, message: str, last_good: Any = None) -> None:
        super().__init__(message)
        self.last_good = last_good


class AsymptoticLimitError(NonFiniteStateError):
    """Hyperbolic anomaly evaluated at or beyond the asymptote."""


class ReentrantStepError(SailsimError, RuntimeError):
    """A time-advancing call was made while another was still running."""


class DuplicateTickError(ReentrantStepError):
    """The same logical tick was advanced twice."""
