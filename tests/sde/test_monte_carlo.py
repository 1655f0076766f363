# tests/sde/test_monte_carlo.py
import numpy as np
import pytest

from cirfit.errors import InvalidInputError
from cirfit.sde.monte_carlo import monte_carlo, summarize_paths
from cirfit.sde.processes.cir import simulate
from cirfit.sde.schemas import ParameterSet


def test_ensemble_starts_at_r0_with_zero_spread():
    ens = monte_carlo((1.0, 10.0, 0.5), 1.0 / 252.0, 504, 10.0, 40, 1234)

    first = ens.summary.loc[0]
    assert first["mean"] == 10.0
    assert first["sd"] == 0.0
    assert first["lower"] == 10.0
    assert first["upper"] == 10.0

    assert ens.n_paths == 40
    assert ens.values.shape == (40, 505)
    assert list(ens.summary.columns) == ["mean", "sd", "lower", "upper"]
    assert len(ens.summary) == 505


def test_single_path_ensemble_has_zero_sd():
    ens = monte_carlo((1.0, 10.0, 0.5), 0.01, 50, 10.0, 1, 7)
    assert np.all(ens.summary["sd"] == 0.0)
    assert np.array_equal(ens.summary["mean"].to_numpy(), ens.paths[0].values)


def test_ensemble_is_reproducible_from_master_seed():
    a = monte_carlo((2.0, 20.0, 1.0), 0.01, 100, 20.0, 8, 99)
    b = monte_carlo((2.0, 20.0, 1.0), 0.01, 100, 20.0, 8, 99)
    c = monte_carlo((2.0, 20.0, 1.0), 0.01, 100, 20.0, 8, 100)

    assert np.array_equal(a.values, b.values)
    assert not np.array_equal(a.values, c.values)


def test_threaded_ensemble_matches_sequential():
    seq = monte_carlo((2.0, 20.0, 1.0), 0.01, 100, 20.0, 16, 5)
    par = monte_carlo((2.0, 20.0, 1.0), 0.01, 100, 20.0, 16, 5, max_workers=4)

    assert np.array_equal(seq.values, par.values)
    assert [p.seed for p in par.paths] == [(5, k) for k in range(16)]


def test_runs_are_distinct_and_match_simulate():
    params = ParameterSet(kappa=2.0, theta=20.0, sigma=1.0)
    ens = monte_carlo(params, 0.01, 60, 20.0, 5, 11)

    rows = {tuple(p.values) for p in ens.paths}
    assert len(rows) == 5

    third = simulate(params, 0.01, 60, 20.0, (11, 2))
    assert np.array_equal(ens.paths[2].values, third.values)
    assert np.all(ens.values >= 0.0)


def test_summary_envelope():
    values = np.array([[1.0, 2.0, 4.0], [1.0, 4.0, 8.0]])
    summary = summarize_paths(values)

    assert np.allclose(summary["mean"], [1.0, 3.0, 6.0])
    assert np.allclose(summary["sd"], [0.0, 1.0, 2.0])
    assert np.allclose(summary["upper"] - summary["mean"], 1.96 * summary["sd"])
    assert np.allclose(summary["mean"] - summary["lower"], 1.96 * summary["sd"])
    assert summary.index.name == "step"


@pytest.mark.parametrize("r0, M", [(0.1, 3), (0.07, 40), (0.03, 7)])
def test_summary_start_is_exact_for_short_rate_levels(r0, M):
    ens = monte_carlo((1.0, 10.0, 0.5), 0.01, 5, r0, M, 1)

    first = ens.summary.iloc[0]
    assert first["mean"] == r0
    assert first["sd"] == 0.0
    assert first["lower"] == r0 and first["upper"] == r0


def test_ensemble_summary_cannot_be_mutated():
    ens = monte_carlo((1.0, 10.0, 0.5), 0.01, 5, 10.0, 3, 1)

    frame = ens.summary
    frame.loc[0, "mean"] = 999.0
    assert ens.summary.loc[0, "mean"] == 10.0

    with pytest.raises(ValueError):
        ens.statistics[0, 0] = 999.0


@pytest.mark.parametrize("M", [0, -3])
def test_monte_carlo_rejects_bad_path_count(M):
    with pytest.raises(InvalidInputError):
        monte_carlo((1.0, 1.0, 0.1), 0.01, 10, 1.0, M, 0)


def test_monte_carlo_rejects_bad_params():
    with pytest.raises(InvalidInputError):
        monte_carlo((1.0, 0.0, 0.1), 0.01, 10, 1.0, 5, 0)


@pytest.mark.parametrize("master_seed", [-5, 2.5, None])
def test_monte_carlo_rejects_bad_master_seed(master_seed):
    with pytest.raises(InvalidInputError):
        monte_carlo((1.0, 1.0, 0.1), 0.01, 10, 1.0, 4, master_seed, max_workers=2)
