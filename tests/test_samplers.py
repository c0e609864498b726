from __future__ import annotations

import logging
import math

import numpy as np
import numpy.testing as npt
import pytest
from scipy import stats

from tgin.diagnostics.acceptance import expected_acceptance_rate, ks_check
from tgin.exceptions import InvalidParameter, UnsupportedAlgorithm
from tgin.inference.kernel import tgin_kernel
from tgin.inference.samplers import TGINDraws, rtgin
from tgin.utils.typing import Algorithm, Sign


class CountingKernel:
    def __init__(self) -> None:
        self.calls = 0

    def __call__(self, z, alpha, mt, sign, log=False):
        self.calls += 1
        return tgin_kernel(z, alpha, mt, sign, log=log)


@pytest.mark.parametrize(
    "alpha, tau",
    [(2.0, 1.0), (1.5, 1.0), (3.0, 0.0), (3.0, -1.0), (float("nan"), 1.0), (3.0, float("inf"))],
)
def test_invalid_parameters_fail_before_any_draw(alpha, tau):
    rng = np.random.default_rng(3)
    state = rng.bit_generator.state
    kernel = CountingKernel()
    with pytest.raises(InvalidParameter):
        rtgin(10, alpha, 0.0, tau, True, rng=rng, density=kernel)
    assert rng.bit_generator.state == state
    assert kernel.calls == 0


def test_unknown_algorithm_fails_before_any_random_number():
    rng = np.random.default_rng(3)
    state = rng.bit_generator.state
    kernel = CountingKernel()
    with pytest.raises(UnsupportedAlgorithm):
        rtgin(10, 3.0, 0.0, 1.0, True, algo="devroye", rng=rng, density=kernel)
    assert rng.bit_generator.state == state
    assert kernel.calls == 0


@pytest.mark.parametrize("size", [-1, 2.5, "10", True])
def test_invalid_size_raises(size):
    with pytest.raises(InvalidParameter):
        rtgin(size, 3.0, 0.0, 1.0, True)


def test_size_zero_returns_empty_result_without_work():
    rng = np.random.default_rng(3)
    state = rng.bit_generator.state
    kernel = CountingKernel()
    result = rtgin(0, 5.0, 0.0, 1.0, True, rng=rng, density=kernel)
    assert isinstance(result, TGINDraws)
    assert len(result) == 0
    assert result.value.shape == (0,) and result.trials.shape == (0,)
    assert math.isnan(result.avg_arate)
    assert kernel.calls == 0
    assert rng.bit_generator.state == state


def test_fixed_seed_gives_bit_identical_output():
    a = rtgin(500, 4.0, 0.7, 1.3, True, rng=2024)
    b = rtgin(500, 4.0, 0.7, 1.3, True, rng=2024)
    npt.assert_array_equal(a.value, b.value)
    npt.assert_array_equal(a.trials, b.trials)
    c = rtgin(500, 4.0, 0.7, 1.3, True, rng=2025)
    assert not np.array_equal(a.value, c.value)


def test_parallel_draws_are_reproducible_and_complete():
    a = rtgin(1001, 3.5, -0.4, 2.0, False, rng=77, n_jobs=4)
    b = rtgin(1001, 3.5, -0.4, 2.0, False, rng=77, n_jobs=4)
    assert len(a) == 1001
    npt.assert_array_equal(a.value, b.value)
    assert np.all(a.value < 0.0)
    assert a.trials.min() >= 1


@pytest.mark.parametrize("bad", [0, -2, 1.5])
def test_invalid_job_count_raises(bad):
    with pytest.raises(InvalidParameter):
        rtgin(10, 3.0, 0.0, 1.0, True, n_jobs=bad)


@pytest.mark.parametrize("sign", [True, False])
def test_draws_lie_on_requested_half_line(sign):
    result = rtgin(300, 3.0, 0.0, 1.0, sign, rng=0)
    if sign:
        assert np.all(result.value > 0.0)
        assert result.sign is Sign.POSITIVE
    else:
        assert np.all(result.value < 0.0)
        assert result.sign is Sign.NEGATIVE


@pytest.mark.parametrize("algo", ["hormann", "leydold"])
def test_trial_counts_track_expected_acceptance_rate(algo):
    n = 20000
    result = rtgin(n, 5.0, 0.5, 1.0, True, algo=algo, rng=10)
    p = expected_acceptance_rate(result.rectangle)
    # trials per draw are geometric with success probability p
    sd = math.sqrt(1.0 - p) / p
    assert abs(result.trials.mean() - 1.0 / p) < 6.0 * sd / math.sqrt(n)
    expected_inverse = 1.0 if p >= 1.0 else -p * math.log(p) / (1.0 - p)
    assert 0.0 < result.avg_arate <= 1.0
    assert abs(result.avg_arate - expected_inverse) < 0.03


def test_leydold_batch_acceptance_is_one_half():
    result = rtgin(20000, 3.0, -1.0, 1.0, False, algo=Algorithm.LEYDOLD, rng=4)
    npt.assert_allclose(1.0 / result.trials.mean(), 0.5, atol=0.02)


def test_scale_invariance_matches_standardized_draws():
    alpha, mu, tau = 4.0, 1.5, 2.5
    scaled = rtgin(400, alpha, mu, tau, True, rng=31)
    standard = rtgin(400, alpha, mu / tau, 1.0, True, rng=31)
    npt.assert_allclose(scaled.value * tau, standard.value, rtol=1e-12)

    independent = rtgin(3000, alpha, mu / tau, 1.0, True, rng=32).value / tau
    direct = rtgin(3000, alpha, mu, tau, True, rng=33).value
    assert stats.ks_2samp(independent, direct).pvalue > 1e-3


@pytest.mark.parametrize("algo", ["hormann", "leydold"])
@pytest.mark.parametrize("sign", [True, False])
def test_draws_follow_truncated_gin_distribution(sign, algo):
    alpha, mu, tau = 5.0, 0.8, 1.2
    result = rtgin(3000, alpha, mu, tau, sign, algo=algo, rng=123456)
    ks = ks_check(result.value, alpha, mu, tau, sign)
    assert ks["pvalue"] > 1e-3


@pytest.mark.parametrize("alpha, mu", [(2.5, 1e3), (3.0, 3e3), (3.0, 1e6), (3.0, -1e6)])
def test_large_standardized_locations_sample_correctly(alpha, mu):
    result = rtgin(2000, alpha, mu, 1.0, True, rng=77)
    assert np.all(result.value > 0.0)
    p = expected_acceptance_rate(result.rectangle)
    assert 0.5 - 1e-9 <= p <= 1.0
    assert abs(1.0 / result.trials.mean() - p) < 0.05
    ks = ks_check(result.value, alpha, mu, 1.0, True)
    assert ks["pvalue"] > 1e-3


def test_result_exposes_trial_metadata():
    result = rtgin(50, 5.0, 0.0, 1.0, True, rng=1)
    npt.assert_array_equal(result.ARiters, result.trials)
    npt.assert_allclose(result.avg_arate, np.mean(1.0 / result.trials))
    npt.assert_array_equal(np.asarray(result), result.value)
    payload = result.to_dict()
    assert set(payload) == {"value", "avg_arate", "ARiters", "algorithm", "sign"}
    assert payload["algorithm"] == "hormann" and payload["sign"] == "positive"
    assert len(payload["value"]) == 50


def test_verbose_logs_acceptance_summary(caplog, monkeypatch):
    monkeypatch.setattr(logging.getLogger("tgin"), "propagate", True)
    with caplog.at_level(logging.INFO, logger="tgin.inference.samplers"):
        rtgin(20, 5.0, 0.0, 1.0, True, verbose=True, rng=1)
    assert any("avg_arate" in rec.getMessage() for rec in caplog.records)
