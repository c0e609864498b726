"""Truncated generalized inverse normal (GIN) density utilities.

On the positive half-line the standardized kernel is

    k(z; alpha, mt) = z^(-alpha) * exp(-0.5 * (1/z - mt)^2),  z > 0,

and the negative half-line is its mirror image: with ``x = -z`` the kernel
becomes the positive one with ``mt`` replaced by ``-mt``.  The original scale
follows from ``x = z / tau`` with ``mt = mu / tau``.

Integrals are taken in the reciprocal variable ``y = 1/|z|``, where the
integrand ``y^(alpha - 2) * exp(-0.5 * (y - m)^2)`` is log-concave with
curvature of at least one, so the mass sits within a few units of its peak.

For a negative location the constant factor ``exp(-m^2 / 2)`` is left out of
the kernel (``-0.5 y^2 + m y`` instead of ``-0.5 (y - m)^2``).  Near the mode
the log kernel then stays of order ``alpha log|m|`` instead of ``-m^2 / 2``,
which keeps ratio-of-uniforms tests accurate for large ``|mt|``.  Every
helper here shares the convention, and :func:`dtgin` restores the factor
when it returns the unnormalised kernel.
"""
from __future__ import annotations

import math
from typing import Tuple, Union

import numpy as np
from scipy import integrate

from tgin.exceptions import InvalidParameter
from tgin.utils.typing import Sign, TGINParameters

ArrayLike = Union[float, np.ndarray]

_REACH = 40.0
_QUAD_KW = dict(epsabs=1e-15, epsrel=1e-10, limit=200)


def _check_shape(alpha: float, mt: float) -> None:
    if not (math.isfinite(alpha) and alpha > 2):
        raise InvalidParameter("alpha should be greater than 2")
    if not math.isfinite(mt):
        raise InvalidParameter(f"standardized location must be finite, got {mt!r}")


def positive_root(b: float, c: float) -> float:
    """Positive root of ``y^2 - b*y - c = 0`` for ``c > 0``, free of cancellation."""
    disc = math.hypot(b, 2.0 * math.sqrt(c))
    if b >= 0.0:
        return 0.5 * (b + disc)
    return 2.0 * c / (disc - b)


def _log_gauss(y: ArrayLike, loc: float) -> ArrayLike:
    """``-(y - loc)^2 / 2``, less the constant ``-loc^2 / 2`` when ``loc < 0``."""
    if loc > 0.0:
        d = y - loc
        return -0.5 * d * d
    return y * (loc - 0.5 * y)


def dropped_log_constant(loc: float) -> float:
    """Log of the factor left out of the kernel for location ``loc``."""
    shift = min(loc, 0.0)
    return -0.5 * shift * shift


def log_magnitude_kernel(x: float, alpha: float, loc: float) -> float:
    """Log kernel of the magnitude ``x > 0``; ``-inf`` elsewhere.

    Equals ``-alpha log x - (1/x - loc)^2 / 2 - dropped_log_constant(loc)``.
    """
    if not x > 0.0:
        return -math.inf
    return -alpha * math.log(x) + _log_gauss(1.0 / x, loc)


def tgin_kernel(z: float, alpha: float, mt: float, sign: Sign, log: bool = False) -> float:
    """Unnormalized standardized truncated GIN kernel.

    Zero (``-inf`` on log scale) off the chosen half-line and at ``z = 0``,
    which is the kernel's limiting value there.  For ``sign * mt < 0`` the
    value carries the extra factor ``exp(mt^2 / 2)``, see the module notes.
    """
    factor = Sign.coerce(sign).factor
    value = log_magnitude_kernel(factor * z, alpha, factor * mt)
    return value if log else math.exp(value)


def kernel_mode(alpha: float, loc: float) -> float:
    """Mode of the positive-half kernel with location ``loc``."""
    return 1.0 / positive_root(loc, alpha)


def _reciprocal_profile(alpha: float, loc: float) -> Tuple[float, float, float]:
    """Peak location, log peak value and curvature width of the reciprocal integrand."""
    beta = alpha - 2.0
    y0 = positive_root(loc, beta)
    peak = beta * math.log(y0) + _log_gauss(y0, loc)
    width = 1.0 / math.sqrt(beta / (y0 * y0) + 1.0)
    return y0, peak, width


def _breakpoints(y0: float, width: float) -> np.ndarray:
    lower = max(0.0, y0 - _REACH * width)
    upper = y0 + _REACH
    steps = width * 4.0 ** np.arange(8)
    pts = np.concatenate(([lower], y0 - steps[::-1], [y0], y0 + steps, [upper]))
    return np.unique(pts[(pts >= lower) & (pts <= upper)])


def _reciprocal_upper_mass(alpha: float, loc: float, cuts: np.ndarray) -> Tuple[np.ndarray, float, float]:
    """Peak-scaled mass of the reciprocal integrand above each cut.

    Returns ``(mass_above_cuts, total_mass, log_peak)``.
    """
    beta = alpha - 2.0
    y0, peak, width = _reciprocal_profile(alpha, loc)

    def integrand(y: float) -> float:
        if y <= 0.0:
            return 0.0
        return math.exp(beta * math.log(y) + _log_gauss(y, loc) - peak)

    cuts = np.asarray(cuts, dtype=float)
    finite = cuts[np.isfinite(cuts) & (cuts > 0.0)]
    grid = np.unique(np.concatenate((_breakpoints(y0, width), finite)))
    pieces = np.array(
        [integrate.quad(integrand, a, b, **_QUAD_KW)[0] for a, b in zip(grid[:-1], grid[1:])],
        dtype=float,
    )
    above = np.concatenate((np.cumsum(pieces[::-1])[::-1], [0.0]))
    total = float(above[0])

    idx = np.minimum(np.searchsorted(grid, np.clip(cuts, grid[0], grid[-1])), grid.size - 1)
    mass = above[idx]
    mass = np.where(cuts <= grid[0], total, mass)
    mass = np.where(np.isposinf(cuts), 0.0, mass)
    return mass, total, peak


def log_normalizer(alpha: float, mt: float, sign: Sign) -> float:
    """Log of the standardized kernel's integral over the sampled half-line.

    Consistent with :func:`tgin_kernel`, so it omits the same constant.
    """
    _check_shape(alpha, mt)
    loc = Sign.coerce(sign).factor * mt
    _, total, peak = _reciprocal_upper_mass(alpha, loc, np.empty(0))
    return peak + math.log(total)


def magnitude_cdf(x: ArrayLike, alpha: float, loc: float) -> np.ndarray:
    """``P(X <= x)`` for the positive-half standardized law with location ``loc``."""
    _check_shape(alpha, loc)
    x = np.atleast_1d(np.asarray(x, dtype=float))
    with np.errstate(divide="ignore"):
        cuts = np.where(x > 0.0, 1.0 / np.where(x > 0.0, x, 1.0), np.inf)
    mass, total, _ = _reciprocal_upper_mass(alpha, loc, cuts)
    return np.clip(mass / total, 0.0, 1.0)


def mode_cdf(alpha: float, loc: float) -> float:
    """Probability mass below the mode of the positive-half kernel."""
    return float(magnitude_cdf(kernel_mode(alpha, loc), alpha, loc)[0])


def _scalar_or_array(values: np.ndarray, like) -> ArrayLike:
    if np.ndim(like) == 0:
        return float(values.reshape(-1)[0])
    return values


def dtgin(
    x: ArrayLike,
    alpha: float,
    mu: float,
    tau: float,
    sign: Union[Sign, bool, str],
    log: bool = False,
    normalize: bool = True,
) -> ArrayLike:
    """Density of the truncated GIN distribution on the original scale.

    With ``normalize=False`` the kernel ``|x|^(-alpha) exp(-(1/x - mu)^2 / (2 tau^2))``
    is returned without its normalising constant.
    """
    params = TGINParameters(alpha, mu, tau)
    sign = Sign.coerce(sign)
    factor = sign.factor
    loc = factor * params.mt

    arr = np.asarray(x, dtype=float)
    mag = factor * arr * params.tau
    positive = mag > 0.0
    safe = np.where(positive, mag, 1.0)
    with np.errstate(divide="ignore", over="ignore"):
        logk = np.where(positive, -params.alpha * np.log(safe) + _log_gauss(1.0 / safe, loc), -np.inf)

    if normalize:
        out = math.log(params.tau) + logk - log_normalizer(params.alpha, params.mt, sign)
    else:
        out = params.alpha * math.log(params.tau) + logk + dropped_log_constant(loc)
    if not log:
        out = np.exp(out)
    return _scalar_or_array(np.asarray(out, dtype=float), x)


def ptgin(
    q: ArrayLike,
    alpha: float,
    mu: float,
    tau: float,
    sign: Union[Sign, bool, str],
) -> ArrayLike:
    """Cumulative distribution function of the truncated GIN distribution."""
    params = TGINParameters(alpha, mu, tau)
    sign = Sign.coerce(sign)
    z = np.atleast_1d(np.asarray(q, dtype=float)) * params.tau

    if sign is Sign.POSITIVE:
        out = np.where(z > 0.0, magnitude_cdf(np.abs(z), params.alpha, params.mt), 0.0)
    else:
        # Z = -X with X on the positive half and location -mt
        upper = magnitude_cdf(np.abs(z), params.alpha, -params.mt)
        out = np.where(z < 0.0, 1.0 - upper, 1.0)
    return _scalar_or_array(np.asarray(out, dtype=float), q)


__all__ = [
    "dropped_log_constant",
    "dtgin",
    "kernel_mode",
    "log_magnitude_kernel",
    "log_normalizer",
    "magnitude_cdf",
    "mode_cdf",
    "positive_root",
    "ptgin",
    "tgin_kernel",
]
