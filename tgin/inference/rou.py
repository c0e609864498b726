"""Ratio-of-uniforms acceptance-rejection draws for the truncated GIN kernel."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from numpy.random import Generator

from tgin.exceptions import InvalidParameter, SamplingError
from tgin.inference.kernel import tgin_kernel
from tgin.inference.rectangle import BoundingRectangle
from tgin.utils.logging_utils import progress
from tgin.utils.typing import KernelDensity


@dataclass(frozen=True)
class DrawResult:
    """One accepted standardized value and the attempts it took (``trials >= 1``)."""

    value: float
    trials: int
    u: float
    v: float

    def satisfies(self, rectangle: BoundingRectangle, density: KernelDensity = tgin_kernel) -> bool:
        """Re-check the acceptance inequality for the recorded ``(u, v)`` pair."""
        if not (self.v > 0.0 and rectangle.u_lower <= self.u <= rectangle.u_bound):
            return False
        if not math.isclose(rectangle.sign.factor * self.value, self.u / self.v + rectangle.center):
            return False
        log_fz = density(self.value, rectangle.alpha, rectangle.mt, rectangle.sign, log=True)
        return 2.0 * math.log(self.v) <= log_fz - rectangle.log_scale


def validate_max_trials(max_trials: Optional[int]) -> None:
    if max_trials is not None and (isinstance(max_trials, bool) or int(max_trials) < 1):
        raise InvalidParameter(f"max_trials must be a positive integer or None, got {max_trials!r}")


def draw_one(
    rectangle: BoundingRectangle,
    rng: Generator,
    density: KernelDensity = tgin_kernel,
    *,
    max_trials: Optional[int] = None,
) -> DrawResult:
    """Draw a single standardized value by ratio-of-uniforms.

    Each attempt draws ``u ~ U(u_lower, u_bound)`` and ``v ~ U(0, v_bound)``,
    maps them to ``z = sign * (u / v + center)`` and accepts when
    ``2 log v <= log f(z) - log_scale``. Loops until acceptance unless
    ``max_trials`` is set.
    """
    validate_max_trials(max_trials)
    u_lower = rectangle.u_lower
    u_width = rectangle.u_bound - rectangle.u_lower
    v_bound = rectangle.v_bound
    center = rectangle.center
    factor = rectangle.sign.factor
    log_scale = rectangle.log_scale
    alpha, mt, sign = rectangle.alpha, rectangle.mt, rectangle.sign

    trials = 0
    while True:
        trials += 1
        u = u_lower + u_width * rng.random()
        v = v_bound * rng.random()
        if v > 0.0:
            x = u / v + center
            if x > 0.0:
                z = factor * x
                log_fz = density(z, alpha, mt, sign, log=True)
                if 2.0 * math.log(v) <= log_fz - log_scale:
                    return DrawResult(value=z, trials=trials, u=u, v=v)
        if max_trials is not None and trials >= max_trials:
            raise SamplingError(
                f"no acceptance after {trials} ratio-of-uniforms trials "
                f"(alpha={alpha}, mt={mt}, sign={sign.value})"
            )


def draw_many(
    rectangle: BoundingRectangle,
    size: int,
    rng: Generator,
    density: KernelDensity = tgin_kernel,
    *,
    max_trials: Optional[int] = None,
    show_progress: bool = False,
) -> Tuple[np.ndarray, np.ndarray]:
    """Draw ``size`` standardized values sequentially, reusing one rectangle.

    Returns ``(values, trials)`` as float and int arrays.
    """
    values = np.empty(size, dtype=float)
    trials = np.empty(size, dtype=np.int64)
    steps = range(size)
    if show_progress:
        steps = progress(steps, total=size, desc="RoU draws")
    for i in steps:
        draw = draw_one(rectangle, rng, density, max_trials=max_trials)
        values[i] = draw.value
        trials[i] = draw.trials
    return values, trials


__all__ = ["DrawResult", "draw_many", "draw_one"]
