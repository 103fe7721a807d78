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
Simulator

Forward simulation of a model under a sampled input signal.

Continuous state-space models are integrated segment by segment with the
input held constant between samples (zero-order hold), so the sampled
output of a continuous simulation agrees with the ZOH-discretized model
up to integration tolerance. Discrete models are iterated directly.
Transfer functions are delegated to control.forced_response.

Usage
-----
>>> t = np.arange(0, 3, 0.01)
>>> result = simulate(motor.speed_state_space(), t, u=np.ones_like(t))
>>> result["y"][-1]
0.0999...
"""

from typing import Optional

import control
import numpy as np

from ctrlopt.simulation.integrators import RK4Integrator, ScipyIntegrator
from ctrlopt.systems.linear_system import LinearSystem
from ctrlopt.types.core import ArrayLike, StateVector
from ctrlopt.types.trajectories import SimulationResult


def _input_matrix(u: Optional[ArrayLike], n_samples: int, nu: int) -> np.ndarray:
    """Coerce an input signal to shape (T, nu)."""
    if u is None:
        return np.zeros((n_samples, nu))
    u = np.asarray(u, dtype=float)
    if u.ndim == 1:
        u = u[:, np.newaxis]
    if u.shape != (n_samples, nu):
        raise ValueError(f"u must have shape ({n_samples}, {nu}) or ({n_samples},), got {u.shape}")
    return u


def _squeeze_channels(arr: np.ndarray) -> np.ndarray:
    return arr[:, 0] if arr.shape[1] == 1 else arr


def _time_grid(t: ArrayLike) -> np.ndarray:
    t = np.asarray(t, dtype=float)
    if t.ndim != 1 or t.size < 2:
        raise ValueError(f"t must be a 1D array with at least 2 samples, got shape {t.shape}")
    if np.any(np.diff(t) <= 0):
        raise ValueError("t must be strictly increasing")
    return t


def simulate(
    system: LinearSystem,
    t: ArrayLike,
    u: Optional[ArrayLike] = None,
    x0: Optional[StateVector] = None,
    method: str = "RK45",
    **options,
) -> SimulationResult:
    """
    Simulate a state-space model over the sample instants t.

    Parameters
    ----------
    system : LinearSystem
        Continuous or discrete model
    t : ArrayLike
        Sample instants (T,), strictly increasing. For discrete systems
        the spacing must equal system.dt
    u : Optional[ArrayLike]
        Input samples (T,) or (T, nu); zero if None
    x0 : Optional[np.ndarray]
        Initial state, zero if None
    method : str
        'RK4' for fixed-step integration, otherwise a solve_ivp method
        (continuous systems only)
    **options
        Integrator options (rtol, atol, max_step)

    Returns
    -------
    SimulationResult
        t, x (T, nx), y, u, success, solver

    Raises
    ------
    ValueError
        On shape mismatch, non-increasing time, or a discrete system
        simulated on a grid that does not match its sample period
    """
    t = _time_grid(t)
    n_samples = len(t)
    U = _input_matrix(u, n_samples, system.nu)
    x = np.zeros(system.nx) if x0 is None else np.asarray(x0, dtype=float)
    if x.shape != (system.nx,):
        raise ValueError(f"x0 must have shape ({system.nx},), got {x.shape}")

    X = np.empty((n_samples, system.nx))
    X[0] = x
    success = True

    if system.is_discrete:
        if not np.allclose(np.diff(t), system.dt, rtol=1e-6, atol=1e-12):
            raise ValueError(f"Time grid spacing must equal the sample period dt={system.dt}")
        for k in range(n_samples - 1):
            X[k + 1] = system(X[k], U[k])
        solver = "discrete recursion"
    else:
        if method == "RK4":
            integrator = RK4Integrator(system, dt=float(np.min(np.diff(t))), **options)
        else:
            integrator = ScipyIntegrator(system, method=method, **options)
        for k in range(n_samples - 1):
            u_k = U[k]
            segment = integrator.integrate(
                X[k],
                lambda t_, x_: u_k,
                (t[k], t[k + 1]),
                t_eval=np.array([t[k], t[k + 1]]),
            )
            success = success and bool(segment["success"])
            X[k + 1] = segment["x"][-1]
        solver = integrator.name

    Y = X @ system.C.T + U @ system.D.T

    return {
        "t": t,
        "x": X,
        "y": _squeeze_channels(Y),
        "u": _squeeze_channels(U),
        "success": success,
        "solver": solver,
    }


def simulate_transfer_function(
    sys: control.TransferFunction,
    t: ArrayLike,
    u: Optional[ArrayLike] = None,
) -> SimulationResult:
    """
    Simulate a SISO transfer function with control.forced_response.

    Parameters
    ----------
    sys : control.TransferFunction
        Continuous or discrete transfer function
    t : ArrayLike
        Sample instants (T,); for discrete systems multiples of sys.dt
    u : Optional[ArrayLike]
        Input samples (T,), zero if None

    Returns
    -------
    SimulationResult
        t, y, u (no state trajectory), success, solver
    """
    t = _time_grid(t)
    u = np.zeros_like(t) if u is None else np.asarray(u, dtype=float)
    if u.shape != t.shape:
        raise ValueError(f"u must have shape {t.shape}, got {u.shape}")

    response = control.forced_response(sys, T=t, U=u)
    y = np.squeeze(np.asarray(response.outputs))

    return {
        "t": np.asarray(response.time),
        "y": y,
        "u": u,
        "success": bool(np.all(np.isfinite(y))),
        "solver": "control.forced_response",
    }
