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
Integrator Base Class

Abstract interface for numerical integration of continuous-time systems.

An integrator wraps any callable ``system(x, u) -> dx/dt`` (LinearSystem
satisfies this) and advances it either by single steps or over an
interval under a control policy ``u_func(t, x)``. Results are
IntegrationResult TypedDicts.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Dict, Optional

import numpy as np

from ctrlopt.types.core import (
    ControlVector,
    DynamicsFunction,
    ScalarLike,
    StateVector,
)
from ctrlopt.types.trajectories import IntegrationResult, TimePoints, TimeSpan


class StepMode(Enum):
    """
    Integration step mode.

    Attributes
    ----------
    FIXED : str
        Constant step dt
    ADAPTIVE : str
        Step adjusted from local error estimates
    """

    FIXED = "fixed"
    ADAPTIVE = "adaptive"


class IntegratorBase(ABC):
    """
    Abstract base class for numerical integrators.

    All integrators must implement:
    - step(): Single integration step
    - integrate(): Multi-step integration over interval
    - name: Integrator name for display

    Examples
    --------
    >>> integrator = ScipyIntegrator(motor, method='RK45')
    >>> result = integrator.integrate(
    ...     x0=np.zeros(2),
    ...     u_func=lambda t, x: np.array([1.0]),
    ...     t_span=(0.0, 3.0)
    ... )
    >>> t, x_traj = result["t"], result["x"]
    """

    def __init__(
        self,
        system: DynamicsFunction,
        dt: Optional[ScalarLike] = None,
        step_mode: StepMode = StepMode.FIXED,
        **options,
    ):
        """
        Initialize integrator.

        Parameters
        ----------
        system : DynamicsFunction
            Callable system(x, u) returning dx/dt
        dt : Optional[float]
            Time step:
            - FIXED mode: Required, constant step size
            - ADAPTIVE mode: Initial guess, will be adjusted
        step_mode : StepMode
            FIXED or ADAPTIVE stepping
        **options : dict
            - rtol : float
                Relative tolerance (adaptive only, default: 1e-6)
            - atol : float
                Absolute tolerance (adaptive only, default: 1e-8)
            - max_step : float
                Maximum step size (adaptive only)

        Raises
        ------
        ValueError
            If FIXED mode specified without dt
        """
        self.system = system
        self.dt = dt
        self.step_mode = step_mode
        self.options = options

        if step_mode == StepMode.FIXED and dt is None:
            raise ValueError(
                "Time step dt is required for FIXED step mode. Specify dt in constructor."
            )

        if step_mode == StepMode.ADAPTIVE and dt is None:
            self.dt = 0.01

        self.rtol = options.get("rtol", 1e-6)
        self.atol = options.get("atol", 1e-8)

        self._stats = {
            "total_steps": 0,
            "total_fev": 0,
            "total_time": 0.0,
        }

    @abstractmethod
    def step(
        self, x: StateVector, u: Optional[ControlVector] = None, dt: Optional[ScalarLike] = None
    ) -> StateVector:
        """
        Take one integration step: x(t) → x(t + dt).

        The control input is held constant over the step.
        """

    @abstractmethod
    def integrate(
        self,
        x0: StateVector,
        u_func: Callable[[ScalarLike, StateVector], Optional[ControlVector]],
        t_span: TimeSpan,
        t_eval: Optional[TimePoints] = None,
        dense_output: bool = False,
    ) -> IntegrationResult:
        """
        Integrate over time interval with control policy.

        Parameters
        ----------
        x0 : np.ndarray
            Initial state (nx,)
        u_func : Callable[[float, np.ndarray], np.ndarray]
            Control policy: (t, x) → u
        t_span : Tuple[float, float]
            Integration interval (t_start, t_end)
        t_eval : Optional[np.ndarray]
            Specific times at which to store solution
        dense_output : bool
            If True, return dense interpolated solution (adaptive only)

        Returns
        -------
        IntegrationResult
            Time-major trajectory and solver diagnostics
        """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable integrator name."""

    # ========================================================================
    # Common Utilities
    # ========================================================================

    def _evaluate_dynamics(self, x: StateVector, u: Optional[ControlVector]) -> np.ndarray:
        """Evaluate system dynamics, counting function evaluations."""
        self._stats["total_fev"] += 1
        return self.system(x, u)

    def get_stats(self) -> Dict[str, Any]:
        """
        Get integration statistics.

        Returns
        -------
        dict
            'total_steps', 'total_fev', 'total_time', 'avg_fev_per_step'
        """
        avg_fev = self._stats["total_fev"] / max(1, self._stats["total_steps"])
        return {
            **self._stats,
            "avg_fev_per_step": avg_fev,
        }

    def reset_stats(self):
        """Reset integration statistics to zero."""
        self._stats["total_steps"] = 0
        self._stats["total_fev"] = 0
        self._stats["total_time"] = 0.0

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(dt={self.dt}, mode={self.step_mode.value})"

    def __str__(self) -> str:
        return f"{self.name} (dt={self.dt:.4f})"
