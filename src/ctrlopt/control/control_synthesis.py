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
Control Synthesis Wrapper

Thin wrapper around classical control functions for system composition.

Carries the time domain ('continuous' or 'discrete') of the parent
system so callers need not repeat it, and delegates every computation to
the pure functions in classical_control_functions.py.

Design Philosophy
-----------------
- Composition not inheritance
- Thin wrapper (no state besides system_type, no caching)
- Routes to pure functions

Usage
-----
>>> from ctrlopt.control import ControlSynthesis
>>>
>>> synthesis = ControlSynthesis(system_type='continuous')
>>> result = synthesis.design_pole_placement(A, B, [-5 + 1j, -5 - 1j])
>>>
>>> # Typical usage - via system composition
>>> motor = DCMotor().speed_state_space()
>>> result = motor.control.design_lqr(motor.A, motor.B, Q, R)
"""

from typing import Optional, Sequence

from ctrlopt.types.control_classical import (
    LQRResult,
    LuenbergerObserverResult,
    PolePlacementResult,
    StabilityInfo,
)
from ctrlopt.types.core import (
    CostMatrix,
    GainMatrix,
    InputMatrix,
    OutputMatrix,
    StateMatrix,
)


class ControlSynthesis:
    """
    Control synthesis wrapper for system composition.

    Attributes
    ----------
    system_type : str
        'continuous' or 'discrete', used for every design and analysis call

    Examples
    --------
    >>> motor = DCMotor().speed_state_space()
    >>> placement = motor.control.design_pole_placement(motor.A, motor.B, [-5, -6])
    >>> Nbar = motor.control.reference_prescale(motor.A, motor.B, motor.C, placement['gain'])
    """

    def __init__(self, system_type: str = "continuous"):
        if system_type not in ("continuous", "discrete"):
            raise ValueError(f"system_type must be 'continuous' or 'discrete', got '{system_type}'")
        self.system_type = system_type

    def design_lqr(
        self,
        A: StateMatrix,
        B: InputMatrix,
        Q: StateMatrix,
        R: InputMatrix,
        N: Optional[InputMatrix] = None,
    ) -> LQRResult:
        """
        Design LQR controller for the wrapper's time domain.

        See Also
        --------
        classical_control_functions.design_lqr
        """
        from ctrlopt.control.classical_control_functions import design_lqr

        return design_lqr(A, B, Q, R, N, system_type=self.system_type)

    def design_pole_placement(
        self, A: StateMatrix, B: InputMatrix, poles: Sequence[complex]
    ) -> PolePlacementResult:
        from ctrlopt.control.classical_control_functions import design_pole_placement

        return design_pole_placement(A, B, poles)

    def design_observer(
        self, A: StateMatrix, C: OutputMatrix, poles: Sequence[complex]
    ) -> LuenbergerObserverResult:
        from ctrlopt.control.classical_control_functions import design_observer

        return design_observer(A, C, poles)

    def reference_prescale(
        self, A: StateMatrix, B: InputMatrix, C: OutputMatrix, K: GainMatrix, D=None
    ) -> float:
        from ctrlopt.control.classical_control_functions import reference_prescale

        return reference_prescale(A, B, C, K, D, system_type=self.system_type)

    def analyze_stability(self, A: StateMatrix, tolerance: float = 1e-10) -> StabilityInfo:
        from ctrlopt.control.classical_control_functions import analyze_stability

        return analyze_stability(A, system_type=self.system_type, tolerance=tolerance)

    def solve_lyapunov(self, A: StateMatrix, Q: CostMatrix) -> CostMatrix:
        from ctrlopt.control.classical_control_functions import solve_lyapunov

        return solve_lyapunov(A, Q, system_type=self.system_type)

    def __repr__(self) -> str:
        return f"ControlSynthesis(system_type='{self.system_type}')"
