from __future__ import annotations

import math

import numpy as np
import numpy.testing as npt
import pytest

from tgin.exceptions import InvalidParameter, SamplingError
from tgin.inference.kernel import tgin_kernel
from tgin.inference.rectangle import build_rectangle
from tgin.inference.rou import DrawResult, draw_many, draw_one
from tgin.utils.typing import Sign


class CountingKernel:
    """Delegates to the real kernel and records how often it is evaluated."""

    def __init__(self, offset: float = 0.0) -> None:
        self.calls = 0
        self.offset = offset

    def __call__(self, z, alpha, mt, sign, log=False):
        self.calls += 1
        value = tgin_kernel(z, alpha, mt, sign, log=True) + self.offset
        return value if log else math.exp(value)


@pytest.mark.parametrize("algorithm", ["hormann", "leydold"])
@pytest.mark.parametrize("sign", [Sign.POSITIVE, Sign.NEGATIVE])
def test_accepted_draws_satisfy_acceptance_inequality(sign, algorithm):
    rect = build_rectangle(3.5, 0.8, sign, algorithm)
    rng = np.random.default_rng(2024)
    for _ in range(500):
        draw = draw_one(rect, rng)
        assert isinstance(draw, DrawResult)
        assert draw.trials >= 1
        assert sign.factor * draw.value > 0.0
        assert draw.satisfies(rect)
        assert rect.covers(draw.value)


def test_satisfies_detects_a_rejected_pair():
    rect = build_rectangle(4.0, 0.0, True, "hormann")
    draw = draw_one(rect, np.random.default_rng(1))
    # push v to the top of the rectangle; the same ratio now lies outside the region
    forged = DrawResult(value=draw.value, trials=draw.trials, u=draw.u / draw.v, v=1.0)
    far = DrawResult(value=50.0, trials=1, u=(50.0 - rect.center) * 0.9, v=0.9)
    assert not far.satisfies(rect)
    assert not forged.satisfies(rect)


def test_draw_one_is_reproducible_for_a_fixed_seed():
    rect = build_rectangle(6.0, -1.0, False, "leydold")
    a = [draw_one(rect, np.random.default_rng(7)) for _ in range(3)]
    b = [draw_one(rect, np.random.default_rng(7)) for _ in range(3)]
    assert a == b


def test_draw_many_returns_values_and_trial_counts():
    rect = build_rectangle(3.0, 2.0, True, "hormann")
    values, trials = draw_many(rect, 2000, np.random.default_rng(11))
    assert values.shape == (2000,) and trials.shape == (2000,)
    assert values.dtype == float and np.issubdtype(trials.dtype, np.integer)
    assert np.all(values > 0.0)
    assert trials.min() >= 1
    assert np.any(trials == 1)


def test_density_is_called_at_most_once_per_trial():
    rect = build_rectangle(4.0, 0.5, True, "leydold")
    kernel = CountingKernel()
    values, trials = draw_many(rect, 300, np.random.default_rng(5), kernel)
    assert 0 < kernel.calls <= int(trials.sum())


def test_scaled_mock_kernel_reproduces_draws():
    kernel = CountingKernel(offset=-30.0)
    base_rect = build_rectangle(5.0, 1.0, True, "hormann")
    mock_rect = build_rectangle(5.0, 1.0, True, "hormann", density=kernel)
    base, base_trials = draw_many(base_rect, 400, np.random.default_rng(99))
    mocked, mock_trials = draw_many(mock_rect, 400, np.random.default_rng(99), kernel)
    npt.assert_allclose(mocked, base, rtol=1e-12)
    npt.assert_array_equal(mock_trials, base_trials)


def test_max_trials_budget_raises_sampling_error():
    rect = build_rectangle(3.0, 0.0, True, "hormann")
    never = CountingKernel(offset=-1e6)
    with pytest.raises(SamplingError):
        draw_one(rect, np.random.default_rng(0), never, max_trials=25)
    assert never.calls <= 25


@pytest.mark.parametrize("bad", [0, -3, True])
def test_max_trials_must_be_positive(bad):
    rect = build_rectangle(3.0, 0.0, True, "hormann")
    with pytest.raises(InvalidParameter):
        draw_one(rect, np.random.default_rng(0), max_trials=bad)
