from __future__ import annotations

import argparse
import logging

from cirfit import __version__
from cirfit.runner.run import run_from_config
from cirfit.sde.diagnostics import feller
from cirfit.sde.processes.cir import simulate


# ============================================================
# Command: run
# ============================================================


def cmd_run(args):
    print(f"[cirfit] Calibrating from config: {args.config}")
    result = run_from_config(args.config, save_dir=args.save_dir)
    est = result.estimation
    p = est.params

    print("\n========== Calibration Complete ==========")
    print(f"kappa: {p.kappa:.6f}")
    print(f"theta: {p.theta:.6f}")
    print(f"sigma: {p.sigma:.6f}")
    if est.std_errors is not None:
        se = est.std_errors
        print(f"std errors: kappa={se['kappa']:.6f} theta={se['theta']:.6f} sigma={se['sigma']:.6f}")
    else:
        print("std errors: unavailable")
    print(f"NLL: {est.nll:.4f}  status: {est.status.value}")
    print(f"Feller stable: {result.feller_check.is_stable} (margin {result.feller_check.margin:.6f})")
    print(f"RMSE: {result.fit.rmse:.6f}  MAE: {result.fit.mae:.6f}")
    print("==========================================\n")


# ============================================================
# Command: simulate
# ============================================================


def cmd_simulate(args):
    params = {"kappa": args.kappa, "theta": args.theta, "sigma": args.sigma}
    path = simulate(params, args.dt, args.n, args.r0, args.seed)
    check = feller(params)
    if not check.is_stable:
        print(f"[cirfit] warning: Feller condition violated (margin {check.margin:.6f})")
    for i, v in enumerate(path.values):
        print(f"{i},{v:.10g}")


# ============================================================
# Command: version
# ============================================================


def cmd_version(args):
    print(__version__)


# ============================================================
# Main CLI
# ============================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cirfit")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # ------------------------------------------------------------------
    # run
    # ------------------------------------------------------------------
    p_run = sub.add_parser("run", help="Calibrate and validate from a config file")
    p_run.add_argument("config", help="Path to config YAML/JSON")
    p_run.add_argument(
        "--save-dir", required=False, default=None, help="Directory to save results"
    )
    p_run.set_defaults(func=cmd_run)

    # ------------------------------------------------------------------
    # simulate
    # ------------------------------------------------------------------
    p_sim = sub.add_parser("simulate", help="Print one simulated CIR path as CSV")
    p_sim.add_argument("--kappa", type=float, required=True)
    p_sim.add_argument("--theta", type=float, required=True)
    p_sim.add_argument("--sigma", type=float, required=True)
    p_sim.add_argument("--dt", type=float, default=1.0 / 252.0)
    p_sim.add_argument("--n", type=int, default=252)
    p_sim.add_argument("--r0", type=float, required=True)
    p_sim.add_argument("--seed", type=int, default=456)
    p_sim.set_defaults(func=cmd_simulate)

    # ------------------------------------------------------------------
    # version
    # ------------------------------------------------------------------
    p_ver = sub.add_parser("version", help="Show version")
    p_ver.set_defaults(func=cmd_version)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args.func(args)


if __name__ == "__main__":
    main()
