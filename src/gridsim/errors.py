from __future__ import annotations


class GridsimError(Exception):
    """Base class for simulator errors."""
    pass


class DataError(GridsimError):
    """Raised when historical metrics or roster input is malformed or insufficient."""
    pass


class NotReady(GridsimError):
    """Raised when a readiness-gated component is queried before it has loaded."""
    pass


class InvariantViolation(GridsimError):
    """Raised when the game state leaves its legal domain (e.g. a 5th down)."""
    pass
