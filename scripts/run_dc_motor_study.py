#!/usr/bin/env python
"""
Run the DC motor identification and control study from the command line.

Examples
--------
    python scripts/run_dc_motor_study.py
    python scripts/run_dc_motor_study.py --signal chirp --noise-std 0.005 \\
        --csv samples.csv --plots figures/
"""

import argparse
import logging
from pathlib import Path

from ctrlopt.systems import DCMotorParameters
from ctrlopt.visualization import ControlPlotter
from ctrlopt.workflows import DCMotorStudyConfig, run_dc_motor_study, summarize_study


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])

    motor = parser.add_argument_group("motor constants")
    motor.add_argument("--J", type=float, default=0.01, help="rotor inertia [kg m^2]")
    motor.add_argument("--b", type=float, default=0.1, help="viscous friction [N m s]")
    motor.add_argument("--K", type=float, default=0.01, help="motor constant [N m/A]")
    motor.add_argument("--R", type=float, default=1.0, help="armature resistance [ohm]")
    motor.add_argument("--L", type=float, default=0.5, help="armature inductance [H]")

    experiment = parser.add_argument_group("experiment")
    experiment.add_argument("--dt", type=float, default=0.05)
    experiment.add_argument("--duration", type=float, default=20.0)
    experiment.add_argument("--signal", choices=["prbs", "step", "chirp"], default="prbs")
    experiment.add_argument("--noise-std", type=float, default=0.001)
    experiment.add_argument("--seed", type=int, default=0)
    experiment.add_argument("--csv", type=str, default=None, help="write samples to this CSV file")

    design = parser.add_argument_group("identification and design")
    design.add_argument("--split", type=float, default=0.5, help="identification share")
    design.add_argument("--nb", type=int, default=2)
    design.add_argument("--nf", type=int, default=2)
    design.add_argument("--nk", type=int, default=1)
    design.add_argument(
        "--poles", type=float, nargs="+", default=[-8.0, -12.0], help="closed-loop poles"
    )

    parser.add_argument("--plots", type=Path, default=None, help="directory for HTML figures")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    params = DCMotorParameters(J=args.J, b=args.b, K=args.K, R=args.R, L=args.L)
    config = DCMotorStudyConfig(
        dt=args.dt,
        duration=args.duration,
        signal=args.signal,
        noise_std=args.noise_std,
        seed=args.seed,
        split_fraction=args.split,
        nb=args.nb,
        nf=args.nf,
        nk=args.nk,
        desired_poles=tuple(args.poles),
        csv_path=args.csv,
    )
    study = run_dc_motor_study(params, config)

    print("=" * 70)
    print("DC Motor Study")
    print("=" * 70)
    print(summarize_study(study))

    if args.plots is not None:
        args.plots.mkdir(parents=True, exist_ok=True)
        plotter = ControlPlotter()
        simulation = study["closed_loop"]["simulation"]
        figures = {
            "validation": plotter.plot_identification_comparison(
                study["validation_data"], study["validation"]
            ),
            "residuals": plotter.plot_residual_analysis(study["residuals"]),
            "root_locus": plotter.plot_root_locus(study["root_locus"]),
            "closed_loop_poles": plotter.plot_eigenvalue_map(
                study["pole_placement"]["achieved_poles"]
            ),
            "step_response": plotter.plot_step_response(
                simulation["t"], simulation["y"], info=study["closed_loop"]["step_info"]
            ),
        }
        for name, fig in figures.items():
            fig.write_html(args.plots / f"{name}.html")
        print(f"Figures written to {args.plots}/")


if __name__ == "__main__":
    main()
