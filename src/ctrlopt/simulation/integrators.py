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
Integrators

ScipyIntegrator: adaptive integration through scipy.integrate.solve_ivp.
RK4Integrator: classic fixed-step 4th-order Runge-Kutta.

Both hold the control input constant over each step, which is how a
sampled actuator (zero-order hold) drives the motor between samples.
"""

import time
from typing import Callable, Optional

import numpy as np
from scipy.integrate import solve_ivp

from ctrlopt.simulation.integrator_base import IntegratorBase, StepMode
from ctrlopt.types.core import ControlVector, DynamicsFunction, ScalarLike, StateVector
from ctrlopt.types.trajectories import IntegrationResult, TimePoints, TimeSpan

VALID_METHODS = ["RK45", "RK23", "DOP853", "Radau", "BDF", "LSODA"]


class ScipyIntegrator(IntegratorBase):
    """
    Adaptive integrator using scipy.integrate.solve_ivp.

    Available Methods:
    ------------------
    **Explicit (Non-Stiff):**
    - 'RK45': Dormand-Prince 5(4) [DEFAULT]
    - 'RK23': Bogacki-Shampine 3(2)
    - 'DOP853': Dormand-Prince 8(5,3)

    **Implicit (Stiff):**
    - 'Radau': Implicit Runge-Kutta
    - 'BDF': Backward Differentiation Formula

    **Automatic:**
    - 'LSODA': Switches between Adams and BDF

    The DC motor is mildly stiff when L/R is much smaller than J/b; RK45
    is still adequate at the default tolerances.

    Examples
    --------
    >>> integrator = ScipyIntegrator(motor, method='RK45', rtol=1e-8)
    >>> result = integrator.integrate(
    ...     x0=np.zeros(2),
    ...     u_func=lambda t, x: np.array([1.0]),
    ...     t_span=(0.0, 3.0)
    ... )
    >>> result["success"]
    True
    """

    def __init__(
        self,
        system: DynamicsFunction,
        dt: Optional[ScalarLike] = 0.01,
        method: str = "RK45",
        **options,
    ):
        """
        Initialize scipy adaptive integrator.

        Parameters
        ----------
        system : DynamicsFunction
            Callable system(x, u) → dx/dt
        dt : Optional[float]
            Initial time step guess (kept for API consistency)
        method : str
            Solver method: 'RK45', 'RK23', 'DOP853', 'Radau', 'BDF', 'LSODA'
        **options : dict
            - rtol: Relative tolerance (default: 1e-6)
            - atol: Absolute tolerance (default: 1e-8)
            - max_step: Maximum step size (default: inf)
            - first_step: Initial step size (default: auto)

        Raises
        ------
        ValueError
            If method is unknown
        """
        super().__init__(system, dt, StepMode.ADAPTIVE, **options)

        if method not in VALID_METHODS:
            raise ValueError(f"Invalid method '{method}'. Choose from: {VALID_METHODS}")

        self.method = method

    def step(
        self, x: StateVector, u: Optional[ControlVector] = None, dt: Optional[ScalarLike] = None
    ) -> StateVector:
        """
        Integrate from 0 to dt with u held constant and return the final state.
        """
        dt = dt if dt is not None else self.dt

        result = self.integrate(
            x0=x,
            u_func=lambda t, x_cur: u,
            t_span=(0.0, dt),
            t_eval=np.array([0.0, dt]),
        )
        return result["x"][-1]

    def integrate(
        self,
        x0: StateVector,
        u_func: Callable[[ScalarLike, StateVector], Optional[ControlVector]],
        t_span: TimeSpan,
        t_eval: Optional[TimePoints] = None,
        dense_output: bool = False,
    ) -> IntegrationResult:
        """
        Integrate using scipy.solve_ivp with adaptive stepping.

        Returns
        -------
        IntegrationResult
            t (T,), x (T, nx), success, message, nfev, nsteps,
            integration_time, solver, status, and sol when dense_output
        """
        start_time = time.time()

        def ode_func(t: float, x: np.ndarray) -> np.ndarray:
            return self._evaluate_dynamics(x, u_func(t, x))

        sol = solve_ivp(
            fun=ode_func,
            t_span=t_span,
            y0=np.asarray(x0, dtype=float),
            method=self.method,
            t_eval=t_eval,
            dense_output=dense_output,
            rtol=self.rtol,
            atol=self.atol,
            max_step=self.options.get("max_step", np.inf),
            first_step=self.options.get("first_step", None),
        )

        elapsed = time.time() - start_time
        self._stats["total_time"] += elapsed
        # scipy does not report accepted steps separately
        self._stats["total_steps"] += sol.nfev

        result: IntegrationResult = {
            "t": sol.t,
            "x": sol.y.T,
            "success": sol.success,
            "message": sol.message,
            "nfev": sol.nfev,
            "nsteps": sol.nfev,
            "integration_time": elapsed,
            "solver": self.name,
            "status": sol.status,
        }

        if dense_output and sol.sol is not None:
            result["sol"] = sol.sol

        return result

    @property
    def name(self) -> str:
        stiff_indicator = " (Stiff)" if self.method in ["Radau", "BDF"] else ""
        auto_indicator = " (Auto-Stiffness)" if self.method == "LSODA" else ""
        return f"scipy.{self.method}{stiff_indicator}{auto_indicator}"

    def __repr__(self) -> str:
        return (
            f"ScipyIntegrator(method='{self.method}', "
            f"rtol={self.rtol:.1e}, atol={self.atol:.1e})"
        )


class RK4Integrator(IntegratorBase):
    """
    Classic 4th-order Runge-Kutta integrator.

    Algorithm:
        k1 = f(x_k, u_k)
        k2 = f(x_k + 0.5*dt*k1, u_k)
        k3 = f(x_k + 0.5*dt*k2, u_k)
        k4 = f(x_k + dt*k3, u_k)
        x_{k+1} = x_k + (dt/6) * (k1 + 2*k2 + 2*k3 + k4)

    Useful when a fixed computational cost per sample matters more than
    error control.
    """

    def __init__(self, system: DynamicsFunction, dt: ScalarLike, **options):
        super().__init__(system, dt, StepMode.FIXED, **options)

    def step(
        self, x: StateVector, u: Optional[ControlVector] = None, dt: Optional[ScalarLike] = None
    ) -> StateVector:
        dt = dt if dt is not None else self.dt
        x = np.asarray(x, dtype=float)

        k1 = self._evaluate_dynamics(x, u)
        k2 = self._evaluate_dynamics(x + 0.5 * dt * k1, u)
        k3 = self._evaluate_dynamics(x + 0.5 * dt * k2, u)
        k4 = self._evaluate_dynamics(x + dt * k3, u)

        self._stats["total_steps"] += 1
        return x + (dt / 6.0) * (k1 + 2 * k2 + 2 * k3 + k4)

    def integrate(
        self,
        x0: StateVector,
        u_func: Callable[[ScalarLike, StateVector], Optional[ControlVector]],
        t_span: TimeSpan,
        t_eval: Optional[TimePoints] = None,
        dense_output: bool = False,
    ) -> IntegrationResult:
        """
        Integrate with fixed RK4 steps on t_eval (uniform grid with dt if None).

        dense_output is ignored.
        """
        start_time = time.time()
        t0, tf = t_span

        if t_eval is None:
            num_steps = int(np.ceil((tf - t0) / self.dt))
            t_eval = np.linspace(t0, tf, num_steps + 1)
        t_points = np.asarray(t_eval, dtype=float)

        x = np.asarray(x0, dtype=float)
        trajectory = [x]
        fev_before = self._stats["total_fev"]

        for i in range(len(t_points) - 1):
            t = float(t_points[i])
            x = self.step(x, u_func(t, x), dt=float(t_points[i + 1] - t))
            trajectory.append(x)

        elapsed = time.time() - start_time
        self._stats["total_time"] += elapsed

        return {
            "t": t_points,
            "x": np.stack(trajectory),
            "success": bool(np.all(np.isfinite(trajectory[-1]))),
            "message": "Integration completed",
            "nfev": self._stats["total_fev"] - fev_before,
            "nsteps": len(t_points) - 1,
            "integration_time": elapsed,
            "solver": self.name,
        }

    @property
    def name(self) -> str:
        return "RK4 (Fixed Step)"
