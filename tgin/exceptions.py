"""Exception types raised by the truncated GIN sampler."""
from __future__ import annotations


class TGINError(Exception):
    """Base class for all sampler errors."""


class InvalidParameter(TGINError, ValueError):
    """Raised for alpha <= 2, tau <= 0, non-finite inputs or a degenerate rectangle."""


class UnsupportedAlgorithm(TGINError, ValueError):
    """Raised when the bounding-rectangle algorithm name is not recognised."""


class SamplingError(TGINError, RuntimeError):
    """Raised when a draw exceeds an explicit ``max_trials`` budget."""


__all__ = ["TGINError", "InvalidParameter", "UnsupportedAlgorithm", "SamplingError"]
