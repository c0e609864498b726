"""Acceptance-rate and goodness-of-fit diagnostics for ratio-of-uniforms draws."""
from __future__ import annotations

import math
from typing import Dict, Union

import numpy as np
from scipy import stats

from tgin.inference.kernel import log_normalizer, ptgin
from tgin.inference.rectangle import BoundingRectangle
from tgin.utils.typing import Sign

Array = np.ndarray


def acceptance_summary(trials: Array) -> Dict[str, float]:
    """Summarise per-draw trial counts (each >= 1)."""
    arr = np.asarray(trials, dtype=float)
    if arr.ndim != 1:
        raise ValueError("trials must be a 1-D array of per-draw attempt counts")
    if arr.size == 0:
        return {"draws": 0, "avg_arate": math.nan, "mean_trials": math.nan, "max_trials": 0}
    if np.any(arr < 1):
        raise ValueError("trial counts start at 1 for a first-attempt acceptance")
    return {
        "draws": int(arr.size),
        "avg_arate": float(np.mean(1.0 / arr)),
        "mean_trials": float(arr.mean()),
        "max_trials": int(arr.max()),
    }


def expected_acceptance_rate(rectangle: BoundingRectangle) -> float:
    """Area of the ratio-of-uniforms region divided by the rectangle area.

    The region under ``sqrt(f)`` has area ``0.5 * integral(f)``; ``f`` is the
    standardized kernel scaled by ``exp(-log_scale)``, so the rectangle must
    have been built on :func:`tgin.inference.kernel.tgin_kernel`.
    """
    log_area = log_normalizer(rectangle.alpha, rectangle.mt, rectangle.sign)
    return 0.5 * math.exp(log_area - rectangle.log_scale) / rectangle.area


def ks_check(
    values: Array,
    alpha: float,
    mu: float,
    tau: float,
    sign: Union[Sign, bool, str],
) -> Dict[str, float]:
    """One-sample Kolmogorov-Smirnov test of draws against the truncated GIN CDF."""
    x = np.asarray(values, dtype=float)
    if x.size == 0:
        raise ValueError("ks_check needs at least one draw")
    result = stats.kstest(x, lambda q: ptgin(q, alpha, mu, tau, sign))
    return {"statistic": float(result.statistic), "pvalue": float(result.pvalue)}
