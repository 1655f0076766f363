# tests/sde/test_cir.py
import numpy as np
import pytest

from cirfit.errors import InvalidInputError
from cirfit.sde.integrators import cir_euler_step, standard_normal_draws
from cirfit.sde.processes.cir import cir_euler_path, simulate
from cirfit.sde.schemas import ParameterSet


def test_simulate_daily_year_scenario():
    params = ParameterSet(kappa=2.0, theta=20.0, sigma=1.0)
    path = simulate(params, 1.0 / 252.0, 252, 20.0, 456)

    assert path.values.shape == (253,)
    assert path.values[0] == 20.0
    assert np.all(path.values >= 0.0)
    assert path.seed == 456
    assert path.params == params


def test_simulate_is_deterministic():
    params = ParameterSet(kappa=1.2, theta=0.04, sigma=0.12)
    a = simulate(params, 1.0 / 252.0, 500, 0.03, 2021)
    b = simulate(params, 1.0 / 252.0, 500, 0.03, 2021)
    c = simulate(params, 1.0 / 252.0, 500, 0.03, 2022)

    assert np.array_equal(a.values, b.values)
    assert not np.array_equal(a.values, c.values)


def test_simulate_nonnegative_when_feller_violated():
    # 2 * kappa * theta = 0.002 << sigma^2 = 0.25: the floor is hit often
    params = ParameterSet(kappa=0.5, theta=0.002, sigma=0.5)
    for seed in range(20):
        path = simulate(params, 1.0 / 12.0, 400, 0.002, seed)
        assert np.all(path.values >= 0.0)


def test_simulate_matches_step_by_step_recursion():
    params = ParameterSet(kappa=0.9, theta=0.03, sigma=0.11)
    dt, n, r0, seed = 1.0 / 252.0, 120, 0.02, 99

    expected = [r0]
    for z in standard_normal_draws(seed, n):
        expected.append(
            cir_euler_step(expected[-1], float(z), params.kappa, params.theta, params.sigma, dt)
        )

    path = simulate(params, dt, n, r0, seed)
    assert np.array_equal(path.values, np.array(expected))


def test_draws_are_restartable_by_step_index():
    full = standard_normal_draws(7, 100)
    head = standard_normal_draws(7, 40)
    assert np.array_equal(full[:40], head)


def test_fold_consumes_draws_in_order():
    params = ParameterSet(kappa=1.0, theta=1.0, sigma=0.0001)
    out = cir_euler_path(params, 0.5, 0.0, [0.0, 0.0])
    # zero noise: r1 = 0.5, r2 = 0.5 + 0.5 * 0.5 = 0.75
    assert np.allclose(out, [0.0, 0.5, 0.75])


def test_simulate_accepts_tuple_and_mapping_params():
    a = simulate((2.0, 20.0, 1.0), 0.01, 10, 20.0, 1)
    b = simulate({"kappa": 2.0, "theta": 20.0, "sigma": 1.0}, 0.01, 10, 20.0, 1)
    assert np.array_equal(a.values, b.values)


def test_simulate_seed_pairs_give_distinct_streams():
    params = ParameterSet(kappa=1.0, theta=10.0, sigma=0.5)
    a = simulate(params, 0.01, 50, 10.0, (5, 0))
    b = simulate(params, 0.01, 50, 10.0, (5, 1))
    assert a.seed == (5, 0)
    assert not np.array_equal(a.values, b.values)


@pytest.mark.parametrize(
    "params",
    [(0.0, 1.0, 1.0), (1.0, -1.0, 1.0), (1.0, 1.0, 0.0), (1.0, float("nan"), 1.0)],
)
def test_simulate_rejects_nonpositive_params(params):
    with pytest.raises(InvalidInputError):
        simulate(params, 0.01, 10, 1.0, 0)


def test_simulate_rejects_params_that_skipped_validation():
    bad = ParameterSet.model_construct(kappa=-1.0, theta=1.0, sigma=1.0)
    with pytest.raises(InvalidInputError):
        simulate(bad, 0.01, 10, 1.0, 0)


def test_simulate_rejects_bad_dt_steps_and_r0():
    params = ParameterSet(kappa=1.0, theta=1.0, sigma=0.1)
    with pytest.raises(InvalidInputError):
        simulate(params, 0.0, 10, 1.0, 0)
    with pytest.raises(InvalidInputError):
        simulate(params, -0.1, 10, 1.0, 0)
    with pytest.raises(InvalidInputError):
        simulate(params, 0.01, 0, 1.0, 0)
    with pytest.raises(InvalidInputError):
        simulate(params, 0.01, 10, -1.0, 0)
    with pytest.raises(ValueError):
        simulate(params, 0.01, 10, float("inf"), 0)


@pytest.mark.parametrize("seed", [-1, (-5, 0), (5, -1), 1.5, "7", (1, 2, 3)])
def test_simulate_rejects_bad_seeds(seed):
    params = ParameterSet(kappa=1.0, theta=1.0, sigma=0.1)
    with pytest.raises(InvalidInputError):
        simulate(params, 0.01, 10, 1.0, seed)


def test_simulate_allows_zero_start():
    params = ParameterSet(kappa=1.0, theta=1.0, sigma=0.1)
    path = simulate(params, 0.01, 10, 0.0, 0)
    assert path.values[0] == 0.0
    # drift pulls a zero state up deterministically on the first step
    assert path.values[1] == pytest.approx(0.01)


def test_simulated_path_is_read_only():
    path = simulate((1.0, 1.0, 0.1), 0.01, 10, 1.0, 0)
    with pytest.raises(ValueError):
        path.values[0] = 5.0
