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
DC Motor Model

Armature-controlled DC motor with a rigid rotor and viscous friction.

Physical Model
--------------
Mechanical:  J θ̈ + b θ̇ = K i
Electrical:  L di/dt + R i = V - K θ̇

with torque constant and back-EMF constant equal (K = Kt = Ke, SI units).

Transfer functions (input: armature voltage V):

    θ̇(s)/V(s) = K / ((Js + b)(Ls + R) + K²)
    θ(s)/V(s)  = K / (s ((Js + b)(Ls + R) + K²))

State space, speed model (x = [θ̇, i], y = θ̇):

    A = [[-b/J,  K/J],      B = [[0  ],
         [-K/L, -R/L]]           [1/L]]

Position model (x = [θ, θ̇, i], y = θ) adds an integrator.

Usage
-----
>>> motor = DCMotor()                     # default tutorial constants
>>> G = motor.speed_transfer_function()
>>> sys = motor.speed_state_space()
>>> motor.dc_gain()
0.0999...
"""

from dataclasses import dataclass, fields
from typing import Optional

import control
import numpy as np

from ctrlopt.systems.linear_system import LinearSystem


@dataclass
class DCMotorParameters:
    """
    Physical constants of the motor.

    Attributes
    ----------
    J : float
        Rotor moment of inertia [kg m²]
    b : float
        Viscous friction constant [N m s]
    K : float
        Motor torque / back-EMF constant [N m/A] = [V s/rad]
    R : float
        Armature resistance [Ω]
    L : float
        Armature inductance [H]
    """

    J: float = 0.01
    b: float = 0.1
    K: float = 0.01
    R: float = 1.0
    L: float = 0.5

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if not np.isfinite(value) or value <= 0:
                raise ValueError(f"Motor parameter {f.name} must be positive and finite, got {value}")


# ============================================================================
# Builders
# ============================================================================


def _characteristic_polynomial(params: DCMotorParameters) -> np.ndarray:
    """(Js + b)(Ls + R) + K², descending powers of s."""
    J, b, K, R, L = params.J, params.b, params.K, params.R, params.L
    return np.array([J * L, J * R + b * L, b * R + K**2])


def speed_transfer_function(params: DCMotorParameters) -> control.TransferFunction:
    """Voltage to angular speed, θ̇(s)/V(s)."""
    return control.tf([params.K], _characteristic_polynomial(params))


def position_transfer_function(params: DCMotorParameters) -> control.TransferFunction:
    """Voltage to shaft angle, θ(s)/V(s)."""
    den = np.append(_characteristic_polynomial(params), 0.0)
    return control.tf([params.K], den)


def speed_state_space(params: DCMotorParameters) -> LinearSystem:
    """Speed model with states [θ̇, i] and output θ̇."""
    J, b, K, R, L = params.J, params.b, params.K, params.R, params.L
    A = np.array([[-b / J, K / J], [-K / L, -R / L]])
    B = np.array([[0.0], [1.0 / L]])
    C = np.array([[1.0, 0.0]])
    D = np.array([[0.0]])
    return LinearSystem(A, B, C, D)


def position_state_space(params: DCMotorParameters) -> LinearSystem:
    """Position model with states [θ, θ̇, i] and output θ."""
    J, b, K, R, L = params.J, params.b, params.K, params.R, params.L
    A = np.array(
        [
            [0.0, 1.0, 0.0],
            [0.0, -b / J, K / J],
            [0.0, -K / L, -R / L],
        ]
    )
    B = np.array([[0.0], [0.0], [1.0 / L]])
    C = np.array([[1.0, 0.0, 0.0]])
    D = np.array([[0.0]])
    return LinearSystem(A, B, C, D)


class DCMotor:
    """
    DC motor model builder.

    Thin object wrapper bundling the parameters with the builder
    functions above.

    Examples
    --------
    >>> motor = DCMotor(DCMotorParameters(J=0.02))
    >>> sys = motor.position_state_space()
    >>> sys.nx
    3
    """

    def __init__(self, params: Optional[DCMotorParameters] = None):
        self.params = params if params is not None else DCMotorParameters()

    def speed_transfer_function(self) -> control.TransferFunction:
        return speed_transfer_function(self.params)

    def position_transfer_function(self) -> control.TransferFunction:
        return position_transfer_function(self.params)

    def speed_state_space(self) -> LinearSystem:
        return speed_state_space(self.params)

    def position_state_space(self) -> LinearSystem:
        return position_state_space(self.params)

    def dc_gain(self) -> float:
        """Steady-state speed per volt, K / (bR + K²)."""
        p = self.params
        return p.K / (p.b * p.R + p.K**2)

    def __repr__(self) -> str:
        p = self.params
        return f"DCMotor(J={p.J}, b={p.b}, K={p.K}, R={p.R}, L={p.L})"
