from __future__ import annotations

import json
from pathlib import Path

import numpy as np
import pandas as pd

from cirfit.runner.run import run_from_config
from cirfit.sde.processes.cir import simulate
from cirfit.sde.schemas import ConvergenceStatus


def _write_rates(tmp_path: Path, n: int = 300) -> Path:
    path = simulate((2.0, 20.0, 1.0), 1.0 / 252.0, n - 1, 20.0, 314)
    df = pd.DataFrame(
        {
            "timestamp": pd.bdate_range("2023-01-02", periods=n),
            "close": path.values,
        }
    )
    data_path = tmp_path / "rates.csv"
    df.to_csv(data_path, index=False)
    return data_path


def test_run_from_config(tmp_path: Path):
    data_path = _write_rates(tmp_path)
    out_dir = tmp_path / "out"

    cfg = {
        "name": "test_run",
        "data": {"path": str(data_path), "value_column": "close"},
        "simulation": {"seed": 456, "n_paths": 12, "master_seed": 3, "max_workers": 2},
    }
    cfg_path = tmp_path / "cfg.json"
    cfg_path.write_text(json.dumps(cfg))

    result = run_from_config(cfg_path, save_dir=out_dir)

    assert isinstance(result.estimation.status, ConvergenceStatus)
    assert result.validation_path.values.shape == (300,)
    assert result.validation_path.values[0] == result.series.values[0]
    assert result.ensemble.values.shape == (12, 300)
    assert result.residuals.shape == (299,)
    assert np.isfinite(result.fit.rmse)

    payload = json.loads((out_dir / "params.json").read_text())
    assert payload["name"] == "test_run"
    assert set(payload["params"]) == {"kappa", "theta", "sigma"}
    assert payload["status"] == result.estimation.status.value
    assert payload["fit"]["rmse"] == result.fit.rmse

    summary = pd.read_csv(out_dir / "ensemble_summary.csv", index_col="step")
    assert list(summary.columns) == ["mean", "sd", "lower", "upper"]
    assert summary.loc[0, "sd"] == 0.0

    validation = pd.read_csv(out_dir / "validation_path.csv")
    assert len(validation) == 300


def test_run_without_save_dir_writes_nothing(tmp_path: Path):
    data_path = _write_rates(tmp_path, n=80)
    cfg_path = tmp_path / "cfg.yaml"
    cfg_path.write_text(
        f"""
data:
  path: "{data_path.as_posix()}"
estimation:
  initial_guess: {{kappa: 1.0, theta: 20.0, sigma: 1.0}}
simulation:
  n_paths: 3
"""
    )
    result = run_from_config(cfg_path)

    assert result.ensemble.n_paths == 3
    assert sorted(p.name for p in tmp_path.iterdir()) == ["cfg.yaml", "rates.csv"]
