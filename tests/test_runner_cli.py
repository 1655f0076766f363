from __future__ import annotations

import json
from pathlib import Path

import pandas as pd

from cirfit import __version__
from cirfit.cli import main
from cirfit.sde.processes.cir import simulate


def test_cli_version(capsys):
    main(["version"])
    assert capsys.readouterr().out.strip() == __version__


def test_cli_simulate_prints_path(capsys):
    main(["simulate", "--kappa", "2", "--theta", "20", "--sigma", "1", "--r0", "20", "--n", "5", "--seed", "456"])
    lines = capsys.readouterr().out.strip().splitlines()

    expected = simulate((2.0, 20.0, 1.0), 1.0 / 252.0, 5, 20.0, 456).values
    assert len(lines) == 6
    assert lines[0] == "0,20"
    assert float(lines[-1].split(",")[1]) == float(f"{expected[-1]:.10g}")


def test_cli_run(tmp_path: Path, capsys):
    path = simulate((2.0, 20.0, 1.0), 1.0 / 252.0, 99, 20.0, 1)
    data_path = tmp_path / "rates.csv"
    pd.DataFrame(
        {"timestamp": pd.bdate_range("2024-01-01", periods=100), "close": path.values}
    ).to_csv(data_path, index=False)

    cfg_path = tmp_path / "cfg.json"
    cfg_path.write_text(
        json.dumps({"data": {"path": str(data_path)}, "simulation": {"n_paths": 4}})
    )

    main(["--log-level", "WARNING", "run", str(cfg_path), "--save-dir", str(tmp_path / "out")])

    out = capsys.readouterr().out
    assert "Calibration Complete" in out
    assert (tmp_path / "out" / "params.json").exists()
