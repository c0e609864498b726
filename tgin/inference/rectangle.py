"""Bounding rectangles for ratio-of-uniforms sampling of the truncated GIN kernel.

For a density ``f`` on the magnitude ``x = |z| > 0`` and a centre ``c`` the
ratio-of-uniforms region is

    {(u, v) : 0 < v <= sqrt(f(u/v + c))},

whose image of a point ``x`` is ``((x - c) sqrt(f(x)), sqrt(f(x)))``.  The
kernel is scaled by its value at the mode (``log_scale``), so ``v_bound`` is 1
and large ``alpha`` or ``|mt|`` never overflow.

Two constructions are offered:

* Hörmann & Leydold (2014): the minimal rectangle, both without a mode shift
  (closed form) and with the mode shift.  The extremes of ``(x - m) sqrt(f(x))``
  are the roots of a cubic in the relative offset ``x / m - 1``, bracketed on
  each side of the mode and found with Brent's method.  The smaller rectangle
  is kept.
* Leydold (2001): simple ratio-of-uniforms for T_{-1/2}-concave densities,
  using the area below the kernel and its CDF at the mode.  The GIN kernel
  ``f^{-1/2}`` is convex on each half-line for every ``alpha > 2``.
"""
from __future__ import annotations

import logging
import math
import sys
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Union

from scipy import optimize

from tgin.exceptions import InvalidParameter
from tgin.inference.kernel import (
    log_magnitude_kernel,
    log_normalizer,
    mode_cdf,
    positive_root,
    tgin_kernel,
)
from tgin.utils.typing import Algorithm, KernelDensity, Sign

logger = logging.getLogger(__name__)

_XTOL = sys.float_info.min
_BRENT_MAXITER = 200
# relative step in 1/x used to check that a density peaks at the GIN mode
_PEAK_PROBE = 1e-3


@dataclass(frozen=True)
class BoundingRectangle:
    """Read-only rectangle ``[u_lower, u_bound] x [0, v_bound]`` for one parameter set."""

    u_lower: float
    u_bound: float
    v_bound: float
    center: float
    log_scale: float
    alpha: float
    mt: float
    sign: Sign
    algorithm: Algorithm

    @property
    def area(self) -> float:
        return (self.u_bound - self.u_lower) * self.v_bound

    def image(self, z: float, density: KernelDensity = tgin_kernel) -> Tuple[float, float]:
        """Ratio-of-uniforms coordinates ``(u, v)`` of the point ``z``."""
        log_fz = density(z, self.alpha, self.mt, self.sign, log=True)
        if log_fz == -math.inf:
            return 0.0, 0.0
        v = math.exp(0.5 * (log_fz - self.log_scale))
        u = (self.sign.factor * z - self.center) * v
        return u, v

    def covers(self, z: float, density: KernelDensity = tgin_kernel, rtol: float = 1e-9) -> bool:
        u, v = self.image(z, density)
        u_slack = rtol * (self.u_bound - self.u_lower)
        return (
            v <= self.v_bound * (1.0 + rtol)
            and self.u_lower - u_slack <= u <= self.u_bound + u_slack
        )


def _shift_polynomial(alpha: float, w: float) -> Callable[[float], float]:
    """Stationarity condition of ``(x - m) sqrt(f(x))`` in ``d = x / m - 1``.

    With ``w = 1/m`` it reads ``2 + 6d + (6 - alpha) d^2 - (w d)^2 + (2 - alpha) d^3 = 0``.
    The value is 2 at ``d = 0`` and ``-w^2`` at ``d = -1``, and it tends to
    ``-inf`` as ``d`` grows, so one root lies on each side of the mode.
    """

    def poly(d: float) -> float:
        wd = w * d
        return 2.0 + d * (6.0 + d * ((6.0 - alpha) + (2.0 - alpha) * d)) - wd * wd

    return poly


def _shift_offsets(alpha: float, w: float) -> Optional[Tuple[float, float]]:
    """Relative offsets ``(d_minus, d_plus)`` of the extremes around the mode, or ``None``."""
    poly = _shift_polynomial(alpha, w)
    hi = 1.0
    while math.isfinite(hi) and poly(hi) >= 0.0:
        hi *= 2.0
    if not (math.isfinite(hi) and poly(hi) < 0.0 and poly(-1.0) < 0.0):
        return None
    d_minus = optimize.brentq(poly, -1.0, 0.0, xtol=_XTOL, maxiter=_BRENT_MAXITER)
    d_plus = optimize.brentq(poly, 0.0, hi, xtol=_XTOL, maxiter=_BRENT_MAXITER)
    if not (-1.0 < d_minus < 0.0 < d_plus):
        return None
    return d_minus, d_plus


def _hormann_leydold_bounds(
    alpha: float,
    loc: float,
    w: float,
    scaled_root: Callable[[float], float],
) -> Tuple[float, float, float]:
    """Minimal rectangle, with or without the mode shift, whichever is smaller."""
    # Without shift: u = x sqrt(f(x)) peaks at 1/x = (loc + sqrt(loc^2 + 4(alpha - 2))) / 2.
    x_star = 1.0 / positive_root(loc, alpha - 2.0)
    plain = (0.0, x_star * scaled_root(x_star), 0.0)

    offsets = _shift_offsets(alpha, w)
    if offsets is None:
        return plain
    mode = 1.0 / w
    x_minus = mode * (1.0 + offsets[0])
    x_plus = mode * (1.0 + offsets[1])
    shifted = (
        (x_minus - mode) * scaled_root(x_minus),
        (x_plus - mode) * scaled_root(x_plus),
        mode,
    )
    width = shifted[1] - shifted[0]
    if not (math.isfinite(width) and width > 0.0 and shifted[0] < 0.0 < shifted[1]):
        return plain
    if width <= plain[1] - plain[0]:
        return shifted
    return plain


def _leydold_bounds(alpha: float, loc: float, mode: float) -> Tuple[float, float, float]:
    """Simple ratio-of-uniforms rectangle from the area and the CDF at the mode."""
    log_area = log_normalizer(alpha, loc, Sign.POSITIVE)
    area = math.exp(log_area - log_magnitude_kernel(mode, alpha, loc))
    below = mode_cdf(alpha, loc)
    return -below * area, (1.0 - below) * area, mode


def build_rectangle(
    alpha: float,
    mt: float,
    sign: Union[Sign, bool, str],
    algorithm: Union[Algorithm, str] = Algorithm.HORMANN,
    density: KernelDensity = tgin_kernel,
) -> BoundingRectangle:
    """Build the bounding rectangle for ``(alpha, mt, sign, algorithm)``.

    Pure and deterministic. Raises :class:`InvalidParameter` for ``alpha <= 2``,
    a non-finite location or a degenerate rectangle, and
    :class:`UnsupportedAlgorithm` for unknown algorithm names.

    ``density`` only supplies kernel values.  The mode, the extremes of the
    shifted rectangle and the Leydold area and CDF come from the GIN kernel
    itself, so ``density`` must equal :func:`tgin_kernel` up to a constant
    factor.  A density that does not peak at the GIN mode is rejected with
    :class:`InvalidParameter`.
    """
    algorithm = Algorithm.coerce(algorithm)
    sign = Sign.coerce(sign)
    alpha = float(alpha)
    mt = float(mt)
    if not (math.isfinite(alpha) and alpha > 2):
        raise InvalidParameter("alpha should be greater than 2")
    if not math.isfinite(mt):
        raise InvalidParameter(f"standardized location must be finite, got {mt!r}")

    factor = sign.factor
    loc = factor * mt
    w = positive_root(loc, alpha)
    mode = 1.0 / w
    log_scale = density(factor * mode, alpha, mt, sign, log=True)
    if not math.isfinite(log_scale):
        raise InvalidParameter(f"kernel is not finite at its mode (log value {log_scale!r})")
    tol = 1e-12 * max(1.0, abs(log_scale))
    for y in (w * (1.0 - _PEAK_PROBE), w * (1.0 + _PEAK_PROBE)):
        if density(factor / y, alpha, mt, sign, log=True) > log_scale + tol:
            raise InvalidParameter(
                f"density does not peak at the GIN mode {factor * mode!r}; "
                "only constant multiples of the GIN kernel are supported"
            )

    def scaled_root(x: float) -> float:
        return math.exp(0.5 * (density(factor * x, alpha, mt, sign, log=True) - log_scale))

    if algorithm is Algorithm.HORMANN:
        u_lower, u_bound, center = _hormann_leydold_bounds(alpha, loc, w, scaled_root)
    else:
        u_lower, u_bound, center = _leydold_bounds(alpha, loc, mode)

    rect = BoundingRectangle(
        u_lower=float(u_lower),
        u_bound=float(u_bound),
        v_bound=1.0,
        center=float(center),
        log_scale=float(log_scale),
        alpha=alpha,
        mt=mt,
        sign=sign,
        algorithm=algorithm,
    )
    if not (math.isfinite(rect.area) and rect.area > 0.0 and rect.u_lower <= 0.0 <= rect.u_bound):
        raise InvalidParameter(
            f"degenerate bounding rectangle for alpha={alpha}, mt={mt}: "
            f"u in [{rect.u_lower}, {rect.u_bound}], v in [0, {rect.v_bound}]"
        )
    logger.debug(
        "%s rectangle (alpha=%.4g, mt=%.4g, %s): u=[%.6g, %.6g] center=%.6g",
        algorithm.value, alpha, mt, sign.value, rect.u_lower, rect.u_bound, rect.center,
    )
    return rect


__all__ = ["BoundingRectangle", "build_rectangle"]
