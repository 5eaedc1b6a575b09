#!/usr/bin/env python3
"""Coasting through a sensor dropout and gating outliers.

A target moves at constant velocity.  Between ``--dropout-start`` and
``--dropout-end`` no measurement arrives and the filter coasts on
:meth:`~lkf.KalmanFilter.predict` alone, so the position uncertainty grows.
Every measurement is first tried with the non-mutating
:meth:`~lkf.KalmanFilter.correct_to`; a measurement whose normalised
innovation exceeds ``--gate`` sigmas is rejected and the filter keeps its
prediction.

Usage:
    python coasting.py
    python coasting.py --outlier-every 7 --gate 3
"""

import argparse

import numpy as np

from lkf import KalmanFilter, ProcessSimulator, constant_velocity_model


def innovation_sigmas(kf, measurement):
    """Innovation of *measurement* against the current prior, in sigmas."""
    H = kf.model.measurement_map
    S = H @ kf.P @ H.T + kf.model.measurement_noise_cov
    y = measurement - H @ kf.x
    return float(np.sqrt(y @ np.linalg.solve(S, y)))


def run(steps=60, dropout=(20, 35), outlier_every=0, gate=4.0, seed=42):
    model = constant_velocity_model(process_noise=1e-4, measurement_noise=0.25)
    sim = ProcessSimulator(seed=seed)
    kf = KalmanFilter(model).initialize(np.zeros(2), np.eye(2))
    truth = np.array([0.0, 1.0])

    print(f"{'k':>3}  {'true':>8}  {'meas':>8}  {'est':>8}  {'std':>6}  status")
    for k in range(steps):
        truth, _ = sim.advance(truth, model)
        kf.predict()

        if dropout[0] <= k < dropout[1]:
            z, status = None, "coast"
        else:
            z = sim.measure(truth, model)
            if outlier_every and k % outlier_every == 0:
                z = z + 10.0
            sigmas = innovation_sigmas(kf, z)
            if sigmas > gate:
                status = f"gated ({sigmas:.1f} sigma)"
            else:
                x_post, _ = kf.correct_to(z)
                status = f"update ({x_post[0] - kf.x[0]:+.3f})"
                kf.correct(z)

        meas = "-" if z is None else f"{z[0]:8.3f}"
        print(
            f"{k:3d}  {truth[0]:8.3f}  {meas:>8}  {kf.x[0]:8.3f}  "
            f"{np.sqrt(kf.P[0, 0]):6.3f}  {status}"
        )
    return kf


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--steps", type=int, default=60)
    parser.add_argument("--dropout-start", type=int, default=20)
    parser.add_argument("--dropout-end", type=int, default=35)
    parser.add_argument("--outlier-every", type=int, default=0,
                        help="inject a +10 outlier every N steps (0 disables)")
    parser.add_argument("--gate", type=float, default=4.0,
                        help="reject measurements beyond this many sigmas")
    parser.add_argument("--seed", type=int, default=42)
    args = parser.parse_args()

    run(
        steps=args.steps,
        dropout=(args.dropout_start, args.dropout_end),
        outlier_every=args.outlier_every,
        gate=args.gate,
        seed=args.seed,
    )


if __name__ == "__main__":
    main()
