# tgin/utils/typing.py
from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, Union

import numpy as np

from tgin.exceptions import InvalidParameter, UnsupportedAlgorithm


class Sign(str, Enum):
    """Half-line sampled: ``POSITIVE`` for z > 0, ``NEGATIVE`` for z < 0."""

    POSITIVE = "positive"
    NEGATIVE = "negative"

    @property
    def factor(self) -> float:
        return 1.0 if self is Sign.POSITIVE else -1.0

    @classmethod
    def coerce(cls, value: Union["Sign", bool, str]) -> "Sign":
        if isinstance(value, cls):
            return value
        # True selects the positive half-line
        if isinstance(value, (bool, np.bool_)):
            return cls.POSITIVE if value else cls.NEGATIVE
        if isinstance(value, str):
            key = value.strip().lower()
            if key in {"positive", "pos", "+", "true"}:
                return cls.POSITIVE
            if key in {"negative", "neg", "-", "false"}:
                return cls.NEGATIVE
        raise InvalidParameter(f"sign must be a bool or 'positive'/'negative', got {value!r}")


class Algorithm(str, Enum):
    """Bounding-rectangle construction for the ratio-of-uniforms step."""

    HORMANN = "hormann"  # Hörmann & Leydold (2014)
    LEYDOLD = "leydold"  # Leydold (2001)

    @classmethod
    def coerce(cls, value: Union["Algorithm", str]) -> "Algorithm":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            for member in cls:
                if member.value == key:
                    return member
        raise UnsupportedAlgorithm(f"algo should be either 'hormann' or 'leydold', got {value!r}")


class KernelDensity(Protocol):
    """Standardized truncated GIN kernel evaluator.

    Must be deterministic and pure. It may differ from
    :func:`tgin.inference.kernel.tgin_kernel` by a constant factor only: the
    bounding rectangle takes the mode and its extremes from the GIN kernel,
    so any other shape would not be covered.
    """

    def __call__(
        self,
        z: float,
        alpha: float,
        mt: float,
        sign: Sign,
        log: bool = False,
    ) -> float:
        ...


@dataclass(frozen=True)
class TGINParameters:
    """Shape ``alpha``, location ``mu`` and scale ``tau`` of the GIN law."""

    alpha: float
    mu: float
    tau: float

    def __post_init__(self) -> None:
        for name in ("alpha", "mu", "tau"):
            value = getattr(self, name)
            if not isinstance(value, (int, float, np.integer, np.floating)) or isinstance(value, bool):
                raise InvalidParameter(f"{name} must be a real number, got {value!r}")
            if not math.isfinite(float(value)):
                raise InvalidParameter(f"{name} must be finite, got {value!r}")
        if self.alpha <= 2:
            raise InvalidParameter("alpha should be greater than 2")
        if self.tau <= 0:
            raise InvalidParameter("tau should be greater than 0")

    @property
    def mt(self) -> float:
        """Standardized location ``mu / tau``."""
        return float(self.mu) / float(self.tau)
