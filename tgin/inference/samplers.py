"""Batch sampling from the truncated generalized inverse normal distribution."""
from __future__ import annotations

import logging
import numbers
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Union

import numpy as np
from numpy.random import Generator

from tgin.exceptions import InvalidParameter
from tgin.inference.kernel import tgin_kernel
from tgin.inference.rectangle import BoundingRectangle, build_rectangle
from tgin.inference.rou import draw_many, validate_max_trials
from tgin.utils.seed import SeedLike, make_rng, spawn_rngs
from tgin.utils.typing import Algorithm, KernelDensity, Sign, TGINParameters

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TGINDraws:
    """Draws on the requested scale plus per-draw ratio-of-uniforms trial counts."""

    value: np.ndarray
    trials: np.ndarray
    algorithm: Algorithm
    sign: Sign
    params: Optional[TGINParameters] = None
    rectangle: Optional[BoundingRectangle] = field(default=None, repr=False)

    @property
    def avg_arate(self) -> float:
        """Average of ``1 / trials``; an estimate of the acceptance rate."""
        if self.trials.size == 0:
            return float("nan")
        return float(np.mean(1.0 / self.trials))

    @property
    def ARiters(self) -> np.ndarray:
        return self.trials

    def __len__(self) -> int:
        return int(self.value.size)

    def __array__(self, dtype=None, copy=None):
        return np.asarray(self.value, dtype=dtype)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "value": self.value.tolist(),
            "avg_arate": self.avg_arate,
            "ARiters": self.trials.tolist(),
            "algorithm": self.algorithm.value,
            "sign": self.sign.value,
        }


def _check_size(size: Any) -> int:
    if isinstance(size, bool) or not isinstance(size, numbers.Integral) or size < 0:
        raise InvalidParameter(f"size must be a non-negative integer, got {size!r}")
    return int(size)


def _check_jobs(n_jobs: Any) -> int:
    if isinstance(n_jobs, bool) or not isinstance(n_jobs, numbers.Integral) or n_jobs < 1:
        raise InvalidParameter(f"n_jobs must be a positive integer, got {n_jobs!r}")
    return int(n_jobs)


def _draw_parallel(
    rectangle: BoundingRectangle,
    size: int,
    rng: Generator,
    density: KernelDensity,
    n_jobs: int,
    max_trials: Optional[int],
) -> Tuple[np.ndarray, np.ndarray]:
    """Split the batch into contiguous chunks, each with its own child generator."""
    chunks = [len(c) for c in np.array_split(np.arange(size), n_jobs) if c.size]
    children = spawn_rngs(rng, len(chunks))

    def _execute(task: Tuple[int, Generator]) -> Tuple[np.ndarray, np.ndarray]:
        n, child = task
        return draw_many(rectangle, n, child, density, max_trials=max_trials)

    with ThreadPoolExecutor(max_workers=len(chunks)) as executor:
        parts = list(executor.map(_execute, zip(chunks, children)))
    values = np.concatenate([p[0] for p in parts])
    trials = np.concatenate([p[1] for p in parts])
    return values, trials


def rtgin(
    size: int,
    alpha: float,
    mu: float,
    tau: float,
    sign: Union[Sign, bool, str],
    algo: Union[Algorithm, str] = "hormann",
    verbose: bool = False,
    *,
    rng: SeedLike = None,
    n_jobs: int = 1,
    density: KernelDensity = tgin_kernel,
    max_trials: Optional[int] = None,
    show_progress: bool = False,
) -> TGINDraws:
    """Draw ``size`` values from the GIN distribution truncated to one half-line.

    Parameters
    ----------
    size : int
        Number of draws; ``0`` returns an empty result without touching the
        random generator or the density.
    alpha, mu, tau : float
        Shape (``alpha > 2``), location and scale (``tau > 0``).
    sign : Sign, bool or str
        ``True``/``"positive"`` samples ``z > 0``, ``False``/``"negative"`` samples ``z < 0``.
    algo : {"hormann", "leydold"}
        Bounding rectangle: Hörmann & Leydold (2014) or Leydold (2001).
    verbose : bool
        Log the average acceptance rate and trial counts of the batch.
    rng : int, SeedSequence or numpy.random.Generator, optional
        Source of uniforms; a Generator is used (and advanced) in place.
    n_jobs : int
        Number of worker threads; each owns a child generator spawned from ``rng``.
    density : callable
        Standardized kernel evaluator, see :class:`tgin.utils.typing.KernelDensity`.
    max_trials : int, optional
        Per-draw attempt budget; unbounded when ``None``.

    Returns
    -------
    TGINDraws
        ``value`` holds the draws on the ``(mu, tau)`` scale, ``trials`` the
        attempts per draw; ``avg_arate`` averages ``1 / trials``.
    """
    params = TGINParameters(alpha, mu, tau)
    algorithm = Algorithm.coerce(algo)
    sign = Sign.coerce(sign)
    size = _check_size(size)
    n_jobs = _check_jobs(n_jobs)
    validate_max_trials(max_trials)

    if size == 0:
        return TGINDraws(
            value=np.empty(0, dtype=float),
            trials=np.empty(0, dtype=np.int64),
            algorithm=algorithm,
            sign=sign,
            params=params,
        )

    rectangle = build_rectangle(params.alpha, params.mt, sign, algorithm, density)
    generator = make_rng(rng)
    if n_jobs == 1 or size < 2:
        z, trials = draw_many(
            rectangle, size, generator, density, max_trials=max_trials, show_progress=show_progress
        )
    else:
        z, trials = _draw_parallel(rectangle, size, generator, density, n_jobs, max_trials)

    result = TGINDraws(
        value=z / params.tau,
        trials=trials,
        algorithm=algorithm,
        sign=sign,
        params=params,
        rectangle=rectangle,
    )
    if verbose:
        logger.info(
            "rtgin: %d draws (alpha=%.4g, mu=%.4g, tau=%.4g, %s, %s) avg_arate=%.4f, "
            "mean trials=%.3f, max trials=%d",
            size, params.alpha, params.mu, params.tau, sign.value, algorithm.value,
            result.avg_arate, float(np.mean(trials)), int(np.max(trials)),
        )
    return result


__all__ = ["TGINDraws", "rtgin"]
