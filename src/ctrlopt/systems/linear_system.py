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
Linear System

State-space container shared by the simulator, the control designer and
the identification engine.

    Continuous:  ẋ = Ax + Bu,        y = Cx + Du
    Discrete:    x[k+1] = Ax[k] + Bu[k],  y[k] = Cx[k] + Du[k]

A LinearSystem is callable with the signature integrators expect,
``system(x, u) -> dx/dt`` (or the next state for discrete systems), and
converts to and from python-control objects so that transfer-function
manipulation, feedback interconnection and step analysis stay in the
control library.

Usage
-----
>>> sys = LinearSystem(A=[[0, 1], [-2, -3]], B=[[0], [1]], C=[[1, 0]])
>>> sys.poles()
array([-1.+0.j, -2.+0.j])
>>> sysd = sys.discretize(0.1)
>>> sysd.is_discrete
True
"""

from typing import Optional

import control
import numpy as np
from scipy import signal

from ctrlopt.types.core import (
    ArrayLike,
    ControlVector,
    GainMatrix,
    OutputVector,
    StateVector,
)


def _as_matrix(M: ArrayLike, name: str) -> np.ndarray:
    arr = np.atleast_2d(np.asarray(M, dtype=float))
    if arr.ndim != 2:
        raise ValueError(f"{name} must be 2D, got shape {arr.shape}")
    return arr


class LinearSystem:
    """
    Linear time-invariant system in state-space form.

    Attributes
    ----------
    A, B, C, D : np.ndarray
        State-space matrices with conformable dimensions
    dt : Optional[float]
        Sample period, None for continuous time
    nx, nu, ny : int
        State, input and output dimensions

    Examples
    --------
    >>> motor = LinearSystem(A, B, C)
    >>> dx = motor(np.zeros(2), np.array([1.0]))
    """

    def __init__(
        self,
        A: ArrayLike,
        B: ArrayLike,
        C: Optional[ArrayLike] = None,
        D: Optional[ArrayLike] = None,
        dt: Optional[float] = None,
    ):
        """
        Initialize and validate a state-space model.

        Parameters
        ----------
        A : ArrayLike
            State matrix (nx, nx)
        B : ArrayLike
            Input matrix (nx, nu)
        C : Optional[ArrayLike]
            Output matrix (ny, nx), identity if None (full state output)
        D : Optional[ArrayLike]
            Feedthrough (ny, nu), zero if None
        dt : Optional[float]
            Sample period (> 0) for discrete systems

        Raises
        ------
        ValueError
            If dimensions are not conformable or dt is not positive
        """
        A = _as_matrix(A, "A")
        nx = A.shape[0]
        if A.shape != (nx, nx):
            raise ValueError(f"A must be square, got shape {A.shape}")

        B = np.asarray(B, dtype=float)
        if B.ndim == 1 and B.size == nx:
            # Single-input column given as a flat vector
            B = B.reshape(nx, 1)
        if B.ndim != 2 or B.shape[0] != nx:
            raise ValueError(f"B must have {nx} rows, got shape {B.shape}")
        nu = B.shape[1]

        C = np.eye(nx) if C is None else _as_matrix(C, "C")
        if C.shape[1] != nx:
            raise ValueError(f"C must have {nx} columns, got shape {C.shape}")
        ny = C.shape[0]

        D = np.zeros((ny, nu)) if D is None else _as_matrix(D, "D")
        if D.shape != (ny, nu):
            raise ValueError(f"D must be ({ny}, {nu}), got shape {D.shape}")

        if dt is not None and dt <= 0:
            raise ValueError(f"dt must be positive for discrete systems, got {dt}")

        self.A = A
        self.B = B
        self.C = C
        self.D = D
        self.dt = None if dt is None else float(dt)

    # ========================================================================
    # Properties
    # ========================================================================

    @property
    def nx(self) -> int:
        return self.A.shape[0]

    @property
    def nu(self) -> int:
        return self.B.shape[1]

    @property
    def ny(self) -> int:
        return self.C.shape[0]

    @property
    def is_discrete(self) -> bool:
        return self.dt is not None

    @property
    def system_type(self) -> str:
        """'discrete' or 'continuous', the string the control functions take."""
        return "discrete" if self.is_discrete else "continuous"

    # ========================================================================
    # Evaluation
    # ========================================================================

    def _input(self, u: Optional[ControlVector]) -> np.ndarray:
        if u is None:
            return np.zeros(self.nu)
        u = np.atleast_1d(np.asarray(u, dtype=float))
        if u.shape != (self.nu,):
            raise ValueError(f"u must have shape ({self.nu},), got {u.shape}")
        return u

    def __call__(self, x: StateVector, u: Optional[ControlVector] = None) -> StateVector:
        """
        Evaluate the dynamics.

        Returns ẋ for continuous systems and x[k+1] for discrete systems.
        ``u=None`` is treated as zero input.
        """
        x = np.asarray(x, dtype=float)
        return self.A @ x + self.B @ self._input(u)

    def output(self, x: StateVector, u: Optional[ControlVector] = None) -> OutputVector:
        """Evaluate y = Cx + Du."""
        x = np.asarray(x, dtype=float)
        return self.C @ x + self.D @ self._input(u)

    def poles(self) -> np.ndarray:
        """Eigenvalues of A."""
        return np.linalg.eigvals(self.A)

    # ========================================================================
    # Conversion
    # ========================================================================

    def discretize(self, dt: float, method: str = "zoh") -> "LinearSystem":
        """
        Discretize a continuous model with scipy.signal.cont2discrete.

        Parameters
        ----------
        dt : float
            Sample period
        method : str
            'zoh' (default), 'foh', 'bilinear', 'euler', 'backward_diff'

        Raises
        ------
        ValueError
            If the system is already discrete
        """
        if self.is_discrete:
            raise ValueError(f"System is already discrete (dt={self.dt})")
        Ad, Bd, Cd, Dd, _ = signal.cont2discrete((self.A, self.B, self.C, self.D), dt, method=method)
        return LinearSystem(Ad, Bd, Cd, Dd, dt=dt)

    def to_control(self) -> control.StateSpace:
        """Convert to a python-control StateSpace (dt=0 for continuous)."""
        dt = 0 if self.dt is None else self.dt
        return control.ss(self.A, self.B, self.C, self.D, dt)

    def transfer_function(self) -> control.TransferFunction:
        """Transfer function of the model via python-control."""
        return control.ss2tf(self.to_control())

    @classmethod
    def from_control(cls, sys) -> "LinearSystem":
        """
        Build from a python-control StateSpace or TransferFunction.

        Transfer functions are realized with control.tf2ss.
        """
        if isinstance(sys, control.TransferFunction):
            sys = control.tf2ss(sys)
        dt = sys.dt
        # python-control uses 0 for continuous and True for an unspecified period
        if dt is True:
            raise ValueError("Discrete system has no numeric sample period (dt=True)")
        if dt is None or dt == 0:
            dt = None
        return cls(sys.A, sys.B, sys.C, sys.D, dt=dt)

    @classmethod
    def from_transfer_function(
        cls, num: ArrayLike, den: ArrayLike, dt: Optional[float] = None
    ) -> "LinearSystem":
        """Realize num(s)/den(s) (or num(z)/den(z) when dt is given)."""
        tf = control.tf(num, den) if dt is None else control.tf(num, den, dt)
        return cls.from_control(tf)

    def with_state_feedback(self, K: GainMatrix, prescale: float = 1.0) -> "LinearSystem":
        """
        Closed loop under u = -Kx + N̄r.

        The returned system has the reference r as its input:
            A_cl = A - BK,  B_cl = B N̄,  C_cl = C - DK,  D_cl = D N̄
        """
        K = _as_matrix(K, "K")
        if K.shape != (self.nu, self.nx):
            raise ValueError(f"K must be ({self.nu}, {self.nx}), got shape {K.shape}")
        return LinearSystem(
            self.A - self.B @ K,
            self.B * prescale,
            self.C - self.D @ K,
            self.D * prescale,
            dt=self.dt,
        )

    # Kept below every annotation that names the control module; inside the
    # class body this property shadows it.
    @property
    def control(self):
        """ControlSynthesis bound to this system's time domain."""
        from ctrlopt.control.control_synthesis import ControlSynthesis

        return ControlSynthesis(system_type=self.system_type)

    def __repr__(self) -> str:
        kind = f"dt={self.dt}" if self.is_discrete else "continuous"
        return f"LinearSystem(nx={self.nx}, nu={self.nu}, ny={self.ny}, {kind})"
