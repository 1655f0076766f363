# scripts/run_synthetic_calibration.py
import logging

from cirfit import estimate, feller, fit_metrics, monte_carlo, simulate
from cirfit.sde.schemas import ParameterSet


def main():
    logging.basicConfig(level=logging.INFO)

    true = ParameterSet(kappa=2.0, theta=20.0, sigma=1.0)
    dt, n, r0 = 1.0 / 252.0, 5000, 20.0

    observed = simulate(true, dt, n, r0, seed=2025)
    result = estimate(observed.values, dt)
    print("True:     ", true.model_dump())
    print("Estimated:", result.params.model_dump(), result.status.value)
    print("Std errs: ", result.std_errors)
    print("Feller:   ", feller(result.params))

    replay = simulate(result.params, dt, n, r0, seed=456)
    print("Fit:      ", fit_metrics(observed.values, replay.values).as_dict())

    ensemble = monte_carlo(result.params, dt, 504, r0, 200, master_seed=7, max_workers=4)
    print(ensemble.summary.iloc[[0, 126, 252, 504]])


if __name__ == "__main__":
    main()
