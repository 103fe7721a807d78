# Copyright (C) 2025 Gil Benezer
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""
DC Motor Study - End-to-End Identification and Control Pipeline

Runs the full chain on the motor speed loop:

    physical constants → state-space model → excitation → simulation
    → noisy samples → (CSV round-trip) → identification / validation split
    → output-error fit → validation → root locus → pole placement
    → closed-loop step response

Each stage delegates to the corresponding ctrlopt module; this module only
wires them together and records the intermediate results.

Usage
-----
>>> from ctrlopt.systems import DCMotorParameters
>>> from ctrlopt.workflows import DCMotorStudyConfig, run_dc_motor_study
>>> study = run_dc_motor_study(DCMotorParameters(), DCMotorStudyConfig(noise_std=0.002))
>>> print(summarize_study(study))
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import control
import numpy as np
from typing_extensions import TypedDict

from ctrlopt.control import (
    compute_root_locus,
    design_pole_placement,
    simulate_state_feedback,
)
from ctrlopt.identification import (
    compare,
    fit_oe,
    residual_analysis,
    split_data,
    to_transfer_function,
)
from ctrlopt.io import read_samples, write_samples
from ctrlopt.simulation import (
    add_measurement_noise,
    chirp_signal,
    prbs_signal,
    simulate,
    step_signal,
)
from ctrlopt.systems import DCMotor, DCMotorParameters, LinearSystem
from ctrlopt.types.control_classical import (
    ClosedLoopResult,
    PolePlacementResult,
    RootLocusResult,
)
from ctrlopt.types.identification import OEModelResult, ResidualAnalysis, ValidationResult
from ctrlopt.types.trajectories import SampleData, SimulationResult

logger = logging.getLogger(__name__)

SIGNALS = ("prbs", "step", "chirp")


# ============================================================================
# Configuration and Result
# ============================================================================


@dataclass
class DCMotorStudyConfig:
    """
    Settings for ``run_dc_motor_study``.

    Attributes
    ----------
    dt : float
        Sample period of the experiment [s]
    duration : float
        Experiment length [s]
    signal : str
        Excitation: 'prbs', 'step' or 'chirp'
    amplitude : float
        Excitation amplitude [V]
    noise_std : float
        Standard deviation of the additive output noise
    seed : Optional[int]
        Seed for the PRBS and the noise
    split_fraction : float
        Share of samples used for identification
    nb, nf, nk : int
        Output-error orders and input delay
    desired_poles : Tuple[float, ...]
        Closed-loop poles for the speed state feedback
    closed_loop_duration : float
        Length of the closed-loop step response [s]
    csv_path : Optional[str]
        When set, samples are written here and read back before fitting
    """

    dt: float = 0.05
    duration: float = 20.0
    signal: str = "prbs"
    amplitude: float = 1.0
    noise_std: float = 0.001
    seed: Optional[int] = 0
    split_fraction: float = 0.5
    nb: int = 2
    nf: int = 2
    nk: int = 1
    desired_poles: Tuple[float, ...] = (-8.0, -12.0)
    closed_loop_duration: float = 2.0
    csv_path: Optional[str] = None

    def __post_init__(self):
        if self.dt <= 0:
            raise ValueError(f"dt must be positive, got {self.dt}")
        if self.duration < 10 * self.dt:
            raise ValueError(f"duration {self.duration} is shorter than 10 samples of dt={self.dt}")
        if self.signal not in SIGNALS:
            raise ValueError(f"signal must be one of {SIGNALS}, got '{self.signal}'")
        if self.noise_std < 0:
            raise ValueError(f"noise_std must be non-negative, got {self.noise_std}")
        if not 0.0 < self.split_fraction < 1.0:
            raise ValueError(f"split_fraction must be in (0, 1), got {self.split_fraction}")
        if self.nb < 1 or self.nf < 0 or self.nk < 0:
            raise ValueError(f"Invalid orders nb={self.nb}, nf={self.nf}, nk={self.nk}")
        if self.closed_loop_duration <= 0:
            raise ValueError(f"closed_loop_duration must be positive, got {self.closed_loop_duration}")
        self.desired_poles = tuple(self.desired_poles)


class DCMotorStudy(TypedDict, total=False):
    """
    Every intermediate result of the study.

    Fields
    ------
    motor : DCMotor
        Motor with the parameters used
    plant : LinearSystem
        Speed state-space model [θ̇, i]
    simulation : SimulationResult
        Noise-free open-loop response to the excitation
    data : SampleData
        Noisy samples the identification used (after the CSV round-trip
        when one was requested)
    csv_path : Path
        Where the samples were written; only with config.csv_path
    identification_data, validation_data : SampleData
        The two parts of the split
    model : OEModelResult
        Output-error fit on the identification part
    validation : ValidationResult
        Simulation of the model against the validation part
    residuals : ResidualAnalysis
        Whiteness / independence tests of the validation residuals
    root_locus : RootLocusResult
        Locus of the physical speed transfer function under proportional gain
    pole_placement : PolePlacementResult
        State feedback for config.desired_poles
    closed_loop : ClosedLoopResult
        Prescaled unit-step response under that feedback
    """

    motor: DCMotor
    plant: LinearSystem
    simulation: SimulationResult
    data: SampleData
    csv_path: Path
    identification_data: SampleData
    validation_data: SampleData
    model: OEModelResult
    validation: ValidationResult
    residuals: ResidualAnalysis
    root_locus: RootLocusResult
    pole_placement: PolePlacementResult
    closed_loop: ClosedLoopResult


# ============================================================================
# Pipeline
# ============================================================================


def excitation_signal(config: DCMotorStudyConfig, t: np.ndarray) -> np.ndarray:
    """Input samples for the configured excitation."""
    if config.signal == "prbs":
        return prbs_signal(t, amplitude=config.amplitude, seed=config.seed)
    if config.signal == "chirp":
        return chirp_signal(t, amplitude=config.amplitude)
    return step_signal(t, amplitude=config.amplitude, t_step=config.dt)


def run_dc_motor_study(
    params: Optional[DCMotorParameters] = None,
    config: Optional[DCMotorStudyConfig] = None,
) -> DCMotorStudy:
    """
    Run the motor identification and control pipeline.

    Parameters
    ----------
    params : Optional[DCMotorParameters]
        Physical constants; defaults if None
    config : Optional[DCMotorStudyConfig]
        Experiment, identification and design settings; defaults if None

    Returns
    -------
    DCMotorStudy
        Intermediate results of every stage

    Raises
    ------
    ValueError
        From any stage whose inputs are invalid (for instance desired poles
        of the wrong count)
    """
    if config is None:
        config = DCMotorStudyConfig()
    motor = DCMotor(params)
    plant = motor.speed_state_space()
    logger.info(f"Study on {motor!r}, open-loop poles {plant.poles()}")

    n_samples = int(round(config.duration / config.dt)) + 1
    t = np.arange(n_samples) * config.dt
    u = excitation_signal(config, t)
    simulation = simulate(plant, t, u)
    y = add_measurement_noise(simulation["y"], config.noise_std, seed=config.seed)
    data: SampleData = {"t": t, "u": u, "y": y, "dt": config.dt}

    study: DCMotorStudy = {"motor": motor, "plant": plant, "simulation": simulation}

    if config.csv_path is not None:
        path = write_samples(config.csv_path, data)
        data = read_samples(path)
        study["csv_path"] = path

    identification_data, validation_data = split_data(data, config.split_fraction)
    model = fit_oe(identification_data, nb=config.nb, nf=config.nf, nk=config.nk)
    validation = compare(model, validation_data, horizon=0)
    residuals = residual_analysis(
        validation["prediction"]["residuals"], u=validation_data["u"]
    )
    logger.info(
        f"Identified OE({config.nb},{config.nf},{config.nk}): "
        f"validation fit {validation['fit_percentage']:.1f}%, "
        f"residuals white: {residuals['is_white']}"
    )

    root_locus = compute_root_locus(motor.speed_transfer_function())
    placement = design_pole_placement(plant.A, plant.B, np.asarray(config.desired_poles))
    t_cl = np.arange(0.0, config.closed_loop_duration + config.dt / 2, config.dt / 5)
    closed = simulate_state_feedback(plant, placement["gain"], t_cl)
    logger.info(
        f"Pole placement gain {placement['gain'].ravel()}, "
        f"closed-loop settling time {closed['step_info']['settling_time']:.3f} s"
    )

    study.update(
        {
            "data": data,
            "identification_data": identification_data,
            "validation_data": validation_data,
            "model": model,
            "validation": validation,
            "residuals": residuals,
            "root_locus": root_locus,
            "pole_placement": placement,
            "closed_loop": closed,
        }
    )
    return study


def summarize_study(study: DCMotorStudy) -> str:
    """Plain-text report of the main figures of a study."""
    model = study["model"]
    validation = study["validation"]
    placement = study["pole_placement"]
    info = study["closed_loop"]["step_info"]
    identified = to_transfer_function(model)
    stable_range = study["root_locus"].get("stable_gain_range")

    lines = [
        f"Motor: {study['motor']!r}",
        f"Open-loop poles: {np.round(study['plant'].poles(), 4)}",
        f"Samples: {len(study['data']['t'])} at dt={study['data']['dt']:g} s",
        f"Identified model: B={np.round(model['B'], 5)}, F={np.round(model['F'], 5)}",
        f"Identified poles: {np.round(control.poles(identified), 4)}",
        f"Validation fit: {validation['fit_percentage']:.2f}% "
        f"(VAF {validation['vaf']:.2f}%, beats baseline: {validation['beats_baseline']})",
        f"Residuals white: {study['residuals']['is_white']}, "
        f"independent of input: {study['residuals']['is_independent']}",
        f"Root locus stable gain range: {stable_range}",
        f"State feedback gain: {np.round(placement['gain'].ravel(), 4)}",
        f"Closed-loop poles: {np.round(placement['achieved_poles'], 4)}",
        f"Step: rise {info['rise_time']:.3f} s, settling {info['settling_time']:.3f} s, "
        f"overshoot {info['overshoot']:.2f}%",
    ]
    if "csv_path" in study:
        lines.insert(3, f"Samples written to {study['csv_path']}")
    return "\n".join(lines)


__all__ = [
    "DCMotorStudyConfig",
    "DCMotorStudy",
    "excitation_signal",
    "run_dc_motor_study",
    "summarize_study",
]
