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
Trajectory and Sample Types

Result types for simulation and sampled experiment data.

Shape Convention
----------------
Time-major ordering throughout:
- t: (T,)
- x: (T, nx)
- y: (T,) for single-output systems, (T, ny) otherwise
- u: (T,) for single-input systems, (T, nu) otherwise

Single-channel signals are kept one-dimensional so they can be passed
straight to scipy.signal and python-control routines.
"""

from typing import Any, Tuple

import numpy as np
from typing_extensions import TypedDict

TimePoints = np.ndarray
"""Sample instants, shape (T,), strictly increasing."""

TimeSpan = Tuple[float, float]
"""Integration interval (t_start, t_end)."""

SignalArray = np.ndarray
"""Sampled signal, shape (T,) or (T, n)."""


class IntegrationResult(TypedDict, total=False):
    """
    Result from continuous-time ODE integration.

    Attributes
    ----------
    t : np.ndarray
        Time points (T,)
    x : np.ndarray
        State trajectory (T, nx)
    success : bool
        Whether integration succeeded
    message : str
        Solver status message
    nfev : int
        Number of function evaluations
    nsteps : int
        Number of integration steps
    integration_time : float
        Wall time in seconds
    solver : str
        Name of solver used
    sol : Any
        Dense output object (only if requested)
    """

    t: np.ndarray
    x: np.ndarray
    success: bool
    message: str
    nfev: int
    nsteps: int
    integration_time: float
    solver: str
    status: int
    sol: Any


class SimulationResult(TypedDict, total=False):
    """
    Sampled response of a model to an input signal.

    Produced by the simulator for both state-space and transfer-function
    models. ``x`` is absent when the model has no state representation
    (transfer-function simulation through python-control).

    Attributes
    ----------
    t : np.ndarray
        Sample instants (T,)
    x : np.ndarray
        State samples (T, nx)
    y : np.ndarray
        Output samples (T,) or (T, ny)
    u : np.ndarray
        Input samples (T,) or (T, nu)
    success : bool
        Whether every integration segment succeeded
    solver : str
        Integrator or library routine used

    Examples
    --------
    >>> result: SimulationResult = simulate(motor, t, u)
    >>> result["y"].shape
    (1001,)
    """

    t: np.ndarray
    x: np.ndarray
    y: np.ndarray
    u: np.ndarray
    success: bool
    solver: str


class SampleData(TypedDict):
    """
    Uniformly sampled input/output experiment record.

    This is what a CSV file holds and what the identification engine
    consumes.

    Attributes
    ----------
    t : np.ndarray
        Sample instants (T,)
    u : np.ndarray
        Input samples (T,) or (T, nu)
    y : np.ndarray
        Output samples (T,) or (T, ny)
    dt : float
        Sample period
    """

    t: np.ndarray
    u: np.ndarray
    y: np.ndarray
    dt: float


__all__ = [
    "TimePoints",
    "TimeSpan",
    "SignalArray",
    "IntegrationResult",
    "SimulationResult",
    "SampleData",
]
