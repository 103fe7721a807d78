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
Classical Control Theory Functions

Pure stateless functions for classical control design and analysis:

**Control Design:**
- Linear Quadratic Regulator (LQR) - continuous and discrete
- Pole placement (eigenvalue assignment) and Luenberger observers
- Reference prescaling for unit DC gain
- Root locus and root-locus gain selection

**System Analysis:**
- Stability analysis - eigenvalue-based
- Controllability - rank test
- Observability - rank test
- Lyapunov equations and controllability Gramians
- Step-response characteristics

All functions are pure (no side effects, no state) and work like scipy.

Mathematical Background
-----------------------
LQR minimizes:
    J = ∫₀^∞ (x'Qx + u'Ru) dt  (continuous)
    J = Σₖ₌₀^∞ (x'Qx + u'Ru)     (discrete)

Solution via algebraic Riccati equation (ARE):
    Continuous: A'P + PA - PBR⁻¹B'P + Q = 0
    Discrete:   P = A'PA - A'PB(R + B'PB)⁻¹B'PA + Q

Optimal gain: K = R⁻¹B'P (continuous), K = (R + B'PB)⁻¹B'PA (discrete)

Pole placement: choose K so that eig(A - BK) equals the requested set.
Possible for any set closed under conjugation iff (A, B) is controllable.
The observer gain L is the transpose of the placement gain for the dual
pair (A', C').

Root locus: for the loop k·N(s)/D(s) under unity negative feedback the
closed-loop poles are the roots of D(s) + k N(s) as k runs over [0, ∞).
A point s lies on the locus with gain k = -D(s)/N(s) when that ratio is
real and positive.

Stability:
    Continuous: All Re(λ) < 0 (left half-plane)
    Discrete:   All |λ| < 1 (inside unit circle)

Controllability: rank([B AB A²B ... Aⁿ⁻¹B]) = n
Observability:   rank([C; CA; CA²; ...; CAⁿ⁻¹]) = n

Usage
-----
>>> from ctrlopt.control import design_pole_placement, compute_root_locus
>>> import numpy as np
>>>
>>> A = np.array([[-10.0, 1.0], [-0.02, -2.0]])
>>> B = np.array([[0.0], [2.0]])
>>> result = design_pole_placement(A, B, [-5 + 1j, -5 - 1j])
>>> K = result['gain']
>>>
>>> locus = compute_root_locus([0.01], [0.005, 0.06, 0.1001])
>>> locus['stable_gain_range']
"""

from typing import Optional, Sequence, Tuple, Union

import control
import numpy as np
from scipy import linalg, optimize, signal

from ctrlopt.simulation.simulator import simulate
from ctrlopt.systems.linear_system import LinearSystem
from ctrlopt.types.control_classical import (
    ClosedLoopResult,
    ControllabilityInfo,
    LQRResult,
    LuenbergerObserverResult,
    ObservabilityInfo,
    PolePlacementResult,
    RootLocusResult,
    StabilityInfo,
    StepInfo,
)
from ctrlopt.types.core import (
    ArrayLike,
    CostMatrix,
    GainMatrix,
    InputMatrix,
    OutputMatrix,
    PolynomialCoefficients,
    StateMatrix,
    StateVector,
)

SystemLike = Union[LinearSystem, control.StateSpace, control.TransferFunction]

# Stand-in for a closed-loop pole at infinity
_FAR_POLE = 1e12 + 0j

# ============================================================================
# Internal Helpers
# ============================================================================


def _check_system_type(system_type: str):
    if system_type not in ("continuous", "discrete"):
        raise ValueError(f"system_type must be 'continuous' or 'discrete', got '{system_type}'")


def _check_pair(A: np.ndarray, B: np.ndarray, b_name: str = "B"):
    if A.ndim != 2 or A.shape[0] != A.shape[1]:
        raise ValueError(f"A must be square, got shape {A.shape}")
    if B.ndim != 2 or B.shape[0] != A.shape[0]:
        raise ValueError(f"{b_name} must have {A.shape[0]} rows, got shape {B.shape}")


def _as_2d(M: ArrayLike) -> np.ndarray:
    M = np.asarray(M, dtype=float)
    return M[:, np.newaxis] if M.ndim == 1 else M


def _stability_margin(eigenvalues: np.ndarray, system_type: str) -> float:
    if system_type == "continuous":
        return float(-np.max(np.real(eigenvalues)))
    return float(1.0 - np.max(np.abs(eigenvalues)))


def _match_poles(desired: np.ndarray, achieved: np.ndarray) -> np.ndarray:
    """Reorder achieved so achieved[i] is the closest unused pole to desired[i]."""
    distance = np.abs(desired[:, np.newaxis] - achieved[np.newaxis, :])
    _, columns = optimize.linear_sum_assignment(distance)
    return achieved[columns]


def _to_control(system: SystemLike):
    if isinstance(system, LinearSystem):
        return system.to_control()
    return system


def _siso_polynomials(
    num: Union[PolynomialCoefficients, control.TransferFunction],
    den: Optional[PolynomialCoefficients],
) -> Tuple[np.ndarray, np.ndarray]:
    """Descending-power numerator and denominator, leading zeros stripped."""
    if isinstance(num, control.TransferFunction):
        if num.ninputs != 1 or num.noutputs != 1:
            raise ValueError("Root locus requires a SISO transfer function")
        tf_num, tf_den = control.tfdata(num)
        num, den = tf_num[0][0], tf_den[0][0]
    if den is None:
        raise ValueError("den is required when num is a coefficient array")
    num = np.trim_zeros(np.atleast_1d(np.asarray(num, dtype=float)), "f")
    den = np.trim_zeros(np.atleast_1d(np.asarray(den, dtype=float)), "f")
    if num.size == 0 or den.size == 0:
        raise ValueError("num and den must have a nonzero coefficient")
    if num.size > den.size:
        raise ValueError(
            f"Open loop must be proper: numerator degree {num.size - 1} exceeds "
            f"denominator degree {den.size - 1}"
        )
    return num, den


def _characteristic_roots(num: np.ndarray, den: np.ndarray, gain: float) -> np.ndarray:
    padded = np.concatenate([np.zeros(den.size - num.size), num])
    return np.roots(den + gain * padded)


# ============================================================================
# LQR - Linear Quadratic Regulator
# ============================================================================


def design_lqr(
    A: StateMatrix,
    B: InputMatrix,
    Q: StateMatrix,
    R: InputMatrix,
    N: Optional[InputMatrix] = None,
    system_type: str = "discrete",
) -> LQRResult:
    """
    Design Linear Quadratic Regulator (LQR) controller.

    Minimizes cost functional:
        Continuous: J = ∫₀^∞ (x'Qx + u'Ru + 2x'Nu) dt
        Discrete:   J = Σₖ₌₀^∞ (x[k]'Qx[k] + u[k]'Ru[k] + 2x[k]'Nu[k])

    Solves algebraic Riccati equation (ARE):
        Continuous (CARE): A'P + PA - (PB + N)R⁻¹(B'P + N') + Q = 0
        Discrete (DARE):   P = A'PA - (A'PB + N)(R + B'PB)⁻¹(B'PA + N') + Q

    Optimal control law:
        Continuous: u = -Kx where K = R⁻¹(B'P + N')
        Discrete:   u[k] = -Kx[k] where K = (R + B'PB)⁻¹(B'PA + N')

    Parameters
    ----------
    A : StateMatrix
        State matrix (nx, nx)
    B : InputMatrix
        Input matrix (nx, nu)
    Q : StateMatrix
        State cost matrix (nx, nx), must be positive semi-definite (Q ≥ 0)
    R : InputMatrix
        Control cost matrix (nu, nu), must be positive definite (R > 0)
    N : Optional[InputMatrix]
        Cross-coupling matrix (nx, nu), optional. Default is zero.
    system_type : str
        'continuous' or 'discrete', default 'discrete'

    Returns
    -------
    LQRResult
        Dictionary containing:
            - gain: Optimal feedback gain K (nu, nx)
            - cost_to_go: Riccati solution P (nx, nx)
            - closed_loop_eigenvalues: Eigenvalues of (A - BK)
            - stability_margin: Distance from stability boundary
              * Continuous: -max(Re(λ)) (positive = stable)
              * Discrete: 1 - max(|λ|) (positive = stable)

    Raises
    ------
    ValueError
        If matrices have incompatible shapes or invalid system_type
    LinAlgError
        If Riccati equation has no solution (system may be unstabilizable)

    Examples
    --------
    Speed loop of the DC motor, penalizing speed error:

    >>> motor = DCMotor().speed_state_space()
    >>> result = design_lqr(motor.A, motor.B, np.diag([100.0, 1.0]), np.array([[1.0]]),
    ...                     system_type='continuous')
    >>> result['stability_margin'] > 0
    True

    Notes
    -----
    - Stabilizability of (A, B) and detectability of (Q, A) are required
      for a stabilizing solution.
    - Uses scipy's solve_continuous_are / solve_discrete_are.

    See Also
    --------
    design_pole_placement : Direct eigenvalue assignment
    analyze_controllability : Test controllability of (A, B)
    """
    _check_system_type(system_type)

    A_np = np.asarray(A, dtype=float)
    B_np = _as_2d(B)
    Q_np = np.asarray(Q, dtype=float)
    R_np = np.atleast_2d(np.asarray(R, dtype=float))
    _check_pair(A_np, B_np)

    nx = A_np.shape[0]
    nu = B_np.shape[1]
    if Q_np.shape != (nx, nx):
        raise ValueError(f"Q must be ({nx}, {nx}), got {Q_np.shape}")
    if R_np.shape != (nu, nu):
        raise ValueError(f"R must be ({nu}, {nu}), got {R_np.shape}")

    N_np = None
    if N is not None:
        N_np = _as_2d(N)
        if N_np.shape != (nx, nu):
            raise ValueError(f"N must be ({nx}, {nu}), got {N_np.shape}")

    if system_type == "continuous":
        P = linalg.solve_continuous_are(A_np, B_np, Q_np, R_np, s=N_np)
        cross = B_np.T @ P if N_np is None else B_np.T @ P + N_np.T
        K = linalg.solve(R_np, cross)
    else:
        P = linalg.solve_discrete_are(A_np, B_np, Q_np, R_np, s=N_np)
        cross = B_np.T @ P @ A_np if N_np is None else B_np.T @ P @ A_np + N_np.T
        K = linalg.solve(R_np + B_np.T @ P @ B_np, cross)

    eigenvalues = np.linalg.eigvals(A_np - B_np @ K)

    result: LQRResult = {
        "gain": K,
        "cost_to_go": P,
        "closed_loop_eigenvalues": eigenvalues,
        "stability_margin": _stability_margin(eigenvalues, system_type),
    }

    return result


# ============================================================================
# Pole Placement and Observers
# ============================================================================


def _place(A: np.ndarray, B: np.ndarray, poles: np.ndarray) -> np.ndarray:
    """
    Gain K with eig(A - BK) = poles.

    Single-input systems use Ackermann's formula so repeated poles are
    accepted; otherwise scipy.signal.place_poles (which rejects poles
    repeated more often than rank(B)).
    """
    if B.shape[1] == 1:
        return np.atleast_2d(np.real(np.asarray(control.acker(A, B, poles), dtype=complex)))
    return signal.place_poles(A, B, poles).gain_matrix


def design_pole_placement(
    A: StateMatrix,
    B: InputMatrix,
    poles: Sequence[complex],
    tolerance: float = 1e-10,
) -> PolePlacementResult:
    """
    State feedback u = -Kx placing the eigenvalues of A - BK.

    Parameters
    ----------
    A : StateMatrix
        State matrix (nx, nx)
    B : InputMatrix
        Input matrix (nx, nu)
    poles : Sequence[complex]
        nx desired closed-loop eigenvalues; complex values must come in
        conjugate pairs
    tolerance : float
        Rank tolerance for the controllability test

    Returns
    -------
    PolePlacementResult

    Raises
    ------
    ValueError
        If (A, B) is not controllable, the number of poles differs from
        nx, or complex poles are not conjugate-paired

    Examples
    --------
    >>> A = np.array([[0.0, 1.0], [-2.0, -3.0]])
    >>> B = np.array([[0.0], [1.0]])
    >>> result = design_pole_placement(A, B, [-5.0, -6.0])
    >>> np.allclose(np.sort(result['achieved_poles']), [-6.0, -5.0])
    True
    """
    A_np = np.asarray(A, dtype=float)
    B_np = _as_2d(B)
    _check_pair(A_np, B_np)
    desired = np.asarray(poles, dtype=complex).ravel()

    nx = A_np.shape[0]
    if desired.size != nx:
        raise ValueError(f"Need {nx} poles, got {desired.size}")
    if not np.allclose(np.sort_complex(desired), np.sort_complex(np.conj(desired))):
        raise ValueError(f"Complex poles must come in conjugate pairs, got {desired}")

    controllability = analyze_controllability(A_np, B_np, tolerance=tolerance)
    if not controllability["is_controllable"]:
        raise ValueError(
            f"(A, B) is not controllable (rank {controllability['rank']} < {nx}); "
            "poles cannot be assigned arbitrarily"
        )

    K = _place(A_np, B_np, desired)
    achieved = _match_poles(desired, np.linalg.eigvals(A_np - B_np @ K))

    result: PolePlacementResult = {
        "gain": K,
        "desired_poles": desired,
        "achieved_poles": achieved,
        "max_pole_error": float(np.max(np.abs(achieved - desired))),
        "is_controllable": True,
    }

    return result


def design_observer(
    A: StateMatrix,
    C: OutputMatrix,
    poles: Sequence[complex],
    tolerance: float = 1e-10,
) -> LuenbergerObserverResult:
    """
    Luenberger observer gain L placing the eigenvalues of A - LC.

    Solved as pole placement for the dual pair (A', C'), L = K'.

    Raises
    ------
    ValueError
        If (A, C) is not observable or the pole set is invalid
    """
    A_np = np.asarray(A, dtype=float)
    C_np = np.atleast_2d(np.asarray(C, dtype=float))
    if C_np.shape[1] != A_np.shape[0]:
        raise ValueError(f"C must have {A_np.shape[0]} columns, got shape {C_np.shape}")

    observability = analyze_observability(A_np, C_np, tolerance=tolerance)
    if not observability["is_observable"]:
        raise ValueError(
            f"(A, C) is not observable (rank {observability['rank']} < {A_np.shape[0]})"
        )

    dual = design_pole_placement(A_np.T, C_np.T, poles, tolerance=tolerance)
    L = dual["gain"].T

    result: LuenbergerObserverResult = {
        "gain": L,
        "desired_poles": dual["desired_poles"],
        "achieved_poles": _match_poles(dual["desired_poles"], np.linalg.eigvals(A_np - L @ C_np)),
        "is_observable": True,
    }

    return result


def reference_prescale(
    A: StateMatrix,
    B: InputMatrix,
    C: OutputMatrix,
    K: GainMatrix,
    D: Optional[np.ndarray] = None,
    system_type: str = "continuous",
) -> float:
    """
    Reference gain N̄ giving the closed loop u = -Kx + N̄r unit DC gain.

    DC gain of (A - BK, B, C - DK, D):
        Continuous: G₀ = -(C - DK)(A - BK)⁻¹B + D
        Discrete:   G₀ = (C - DK)(I - A + BK)⁻¹B + D

    N̄ = 1 / G₀ (single input, single output).

    Raises
    ------
    ValueError
        If the loop is not SISO or the closed-loop DC gain is zero
    LinAlgError
        If the closed loop has a pole at s = 0 (z = 1)
    """
    _check_system_type(system_type)
    A_np = np.asarray(A, dtype=float)
    B_np = _as_2d(B)
    C_np = np.atleast_2d(np.asarray(C, dtype=float))
    K_np = np.atleast_2d(np.asarray(K, dtype=float))
    D_np = np.zeros((C_np.shape[0], B_np.shape[1])) if D is None else np.atleast_2d(D)
    if B_np.shape[1] != 1 or C_np.shape[0] != 1:
        raise ValueError(f"Prescaling requires a SISO loop, got B {B_np.shape} and C {C_np.shape}")

    A_cl = A_np - B_np @ K_np
    C_cl = C_np - D_np @ K_np
    if system_type == "continuous":
        dc_gain = -C_cl @ linalg.solve(A_cl, B_np) + D_np
    else:
        dc_gain = C_cl @ linalg.solve(np.eye(A_np.shape[0]) - A_cl, B_np) + D_np

    dc_gain = float(dc_gain[0, 0])
    if np.isclose(dc_gain, 0.0, atol=1e-14):
        raise ValueError("Closed-loop DC gain is zero; the reference cannot be prescaled")
    return 1.0 / dc_gain


# ============================================================================
# Lyapunov Equations
# ============================================================================


def solve_lyapunov(A: StateMatrix, Q: CostMatrix, system_type: str = "continuous") -> CostMatrix:
    """
    Solve the Lyapunov equation for P.

        Continuous: A'P + PA + Q = 0
        Discrete:   A'PA - P + Q = 0

    For a stable A and Q > 0 the solution is positive definite and
    V(x) = x'Px is a Lyapunov function.
    """
    _check_system_type(system_type)
    A_np = np.asarray(A, dtype=float)
    Q_np = np.asarray(Q, dtype=float)
    if Q_np.shape != A_np.shape:
        raise ValueError(f"Q must have shape {A_np.shape}, got {Q_np.shape}")
    if system_type == "continuous":
        return linalg.solve_continuous_lyapunov(A_np.T, -Q_np)
    return linalg.solve_discrete_lyapunov(A_np.T, Q_np)


def controllability_gramian(
    A: StateMatrix, B: InputMatrix, system_type: str = "continuous"
) -> np.ndarray:
    """
    Infinite-horizon controllability Gramian W.

        Continuous: AW + WA' + BB' = 0
        Discrete:   AWA' - W + BB' = 0

    Raises
    ------
    ValueError
        If A is not asymptotically stable (the Gramian diverges)
    """
    A_np = np.asarray(A, dtype=float)
    B_np = _as_2d(B)
    _check_pair(A_np, B_np)
    if not analyze_stability(A_np, system_type=system_type)["is_stable"]:
        raise ValueError("Controllability Gramian requires an asymptotically stable A")
    BBt = B_np @ B_np.T
    if system_type == "continuous":
        return linalg.solve_continuous_lyapunov(A_np, -BBt)
    return linalg.solve_discrete_lyapunov(A_np, BBt)


# ============================================================================
# Root Locus
# ============================================================================


def _default_gains(num: np.ndarray, den: np.ndarray, n_gains: int) -> np.ndarray:
    """Log grid around the reciprocal static gain, prefixed with 0."""
    num_nz = num[np.nonzero(num)[0][-1]]
    den_nz = den[np.nonzero(den)[0][-1]]
    scale = abs(den_nz / num_nz)
    return np.concatenate([[0.0], scale * np.logspace(-3, 3, n_gains - 1)])


def compute_root_locus(
    num: Union[PolynomialCoefficients, control.TransferFunction],
    den: Optional[PolynomialCoefficients] = None,
    gains: Optional[ArrayLike] = None,
    n_gains: int = 500,
    system_type: str = "continuous",
) -> RootLocusResult:
    """
    Closed-loop poles of D(s) + k N(s) over a gain grid.

    Parameters
    ----------
    num : array_like or control.TransferFunction
        Open-loop numerator (descending powers), or a SISO transfer
        function supplying both polynomials
    den : Optional[array_like]
        Open-loop denominator (descending powers)
    gains : Optional[ArrayLike]
        Nonnegative gain grid; sorted. Default: 0 followed by n_gains - 1
        log-spaced gains spanning six decades around |D(0)/N(0)|
    n_gains : int
        Size of the default grid
    system_type : str
        Stability region used for stable_gain_range

    Returns
    -------
    RootLocusResult
        poles[i, j] is branch j at gains[i]. Consecutive rows are matched
        by minimum total displacement so each column traces one branch.

    Examples
    --------
    >>> motor = DCMotor()
    >>> locus = compute_root_locus(motor.speed_transfer_function())
    >>> locus['open_loop_poles']
    array([-10.0..., -1.99...])
    """
    _check_system_type(system_type)
    num, den = _siso_polynomials(num, den)
    if gains is None:
        gains = _default_gains(num, den, n_gains)
    gains = np.sort(np.asarray(gains, dtype=float).ravel())
    if gains.size == 0 or gains[0] < 0:
        raise ValueError("gains must be a nonempty set of nonnegative values")

    n_poles = den.size - 1
    poles = np.empty((gains.size, n_poles), dtype=complex)
    for i, k in enumerate(gains):
        roots = _characteristic_roots(num, den, k)
        if roots.size != n_poles:
            # leading coefficient cancelled; the missing pole is at infinity
            roots = np.concatenate([roots, np.full(n_poles - roots.size, _FAR_POLE)])
        poles[i] = roots if i == 0 else _match_poles(poles[i - 1], roots)

    open_loop_poles = np.roots(den)
    open_loop_zeros = np.roots(num)
    excess = open_loop_poles.size - open_loop_zeros.size
    if excess > 0:
        angles = (2 * np.arange(excess) + 1) * np.pi / excess
        center = float(np.real(np.sum(open_loop_poles) - np.sum(open_loop_zeros)) / excess)
    else:
        angles = np.array([])
        center = float("nan")

    if system_type == "continuous":
        stable = np.all(np.real(poles) < 0, axis=1)
    else:
        stable = np.all(np.abs(poles) < 1, axis=1)
    stable_gain_range = None
    if np.any(stable):
        start = int(np.argmax(stable))
        stop = start
        while stop + 1 < gains.size and stable[stop + 1]:
            stop += 1
        stable_gain_range = (float(gains[start]), float(gains[stop]))

    result: RootLocusResult = {
        "gains": gains,
        "poles": poles,
        "open_loop_poles": open_loop_poles,
        "open_loop_zeros": open_loop_zeros,
        "asymptote_angles": angles,
        "asymptote_center": center,
        "stable_gain_range": stable_gain_range,
    }

    return result


def gain_for_pole(
    num: Union[PolynomialCoefficients, control.TransferFunction],
    den: Optional[PolynomialCoefficients] = None,
    target: complex = 0.0,
    n_gains: int = 500,
) -> float:
    """
    Root-locus gain selection: the gain k >= 0 whose closed-loop pole
    lies nearest the target point.

    A coarse search over the default locus grid is refined with a bounded
    scalar minimization of min_j |p_j(k) - target| in log-gain.

    Returns
    -------
    float
        Gain at which a closed-loop pole is closest to target
    """
    num, den = _siso_polynomials(num, den)
    locus = compute_root_locus(num, den, n_gains=n_gains)
    gains = locus["gains"]

    distance = np.min(np.abs(locus["poles"] - target), axis=1)
    best = int(np.argmin(distance))

    def _distance(log_k: float) -> float:
        return float(np.min(np.abs(_characteristic_roots(num, den, np.exp(log_k)) - target)))

    lo = gains[max(best - 1, 1)]
    hi = gains[min(best + 1, gains.size - 1)]
    k_best = float(gains[best])
    if hi > lo > 0:
        refined = optimize.minimize_scalar(
            _distance, bounds=(np.log(lo), np.log(hi)), method="bounded"
        )
        if refined.fun <= distance[best]:
            k_best = float(np.exp(refined.x))

    return k_best


# ============================================================================
# Closed Loop and Time-Domain Characteristics
# ============================================================================


def closed_loop(plant: SystemLike, controller: Union[SystemLike, float] = 1.0):
    """
    Unity negative feedback of controller·plant via control.feedback.

    Returns the python-control closed-loop system (same class as the
    series connection).
    """
    plant = _to_control(plant)
    if not isinstance(controller, (int, float)):
        controller = _to_control(controller)
    return control.feedback(controller * plant, 1)


def step_info(system: SystemLike, T: Optional[ArrayLike] = None, settling_threshold: float = 0.02) -> StepInfo:
    """
    Step-response characteristics of a SISO system via control.step_info.

    Parameters
    ----------
    system : LinearSystem or python-control system
        SISO model
    T : Optional[ArrayLike]
        Time vector; python-control chooses one if None
    settling_threshold : float
        Settling band as a fraction of the steady-state value
    """
    sys = _to_control(system)
    if sys.ninputs != 1 or sys.noutputs != 1:
        raise ValueError(f"step_info requires a SISO system, got {sys.noutputs}x{sys.ninputs}")
    info = control.step_info(sys, T=T, SettlingTimeThreshold=settling_threshold)

    result: StepInfo = {
        "rise_time": float(info["RiseTime"]),
        "settling_time": float(info["SettlingTime"]),
        "overshoot": float(info["Overshoot"]),
        "peak": float(info["Peak"]),
        "peak_time": float(info["PeakTime"]),
        "steady_state_value": float(info["SteadyStateValue"]),
    }

    return result


def simulate_state_feedback(
    system: LinearSystem,
    K: GainMatrix,
    t: ArrayLike,
    reference: Optional[ArrayLike] = None,
    x0: Optional[StateVector] = None,
    prescale: Optional[float] = None,
    **options,
) -> ClosedLoopResult:
    """
    Simulate the loop u = -Kx + N̄r.

    Parameters
    ----------
    system : LinearSystem
        Plant
    K : GainMatrix
        State feedback gain (nu, nx)
    t : ArrayLike
        Sample instants
    reference : Optional[ArrayLike]
        Reference r (T,); unit step if None
    x0 : Optional[StateVector]
        Initial plant state
    prescale : Optional[float]
        N̄; computed with reference_prescale for SISO plants if None,
        otherwise 1
    **options
        Passed to simulate (method, rtol, atol)

    Returns
    -------
    ClosedLoopResult
        simulation['u'] holds the applied plant input -Kx + N̄r
    """
    t = np.asarray(t, dtype=float)
    K_np = np.atleast_2d(np.asarray(K, dtype=float))
    r = np.ones_like(t) if reference is None else np.asarray(reference, dtype=float)
    siso = system.nu == 1 and system.ny == 1

    if prescale is None:
        if siso:
            prescale = reference_prescale(
                system.A, system.B, system.C, K_np, system.D, system_type=system.system_type
            )
        else:
            prescale = 1.0

    closed = system.with_state_feedback(K_np, prescale=prescale)
    response = simulate(closed, t, u=r, x0=x0, **options)

    R = r[:, np.newaxis] if r.ndim == 1 else r
    applied = -response["x"] @ K_np.T + prescale * R
    response["u"] = applied[:, 0] if applied.shape[1] == 1 else applied

    result: ClosedLoopResult = {
        "simulation": response,
        "reference": r,
        "prescale": float(prescale),
        "closed_loop_poles": closed.poles(),
    }
    if siso:
        result["step_info"] = step_info(closed)

    return result


# ============================================================================
# Stability Analysis
# ============================================================================


def analyze_stability(
    A: StateMatrix,
    system_type: str = "continuous",
    tolerance: float = 1e-10,
) -> StabilityInfo:
    """
    Analyze system stability via eigenvalue analysis.

    Stability criteria:
        Continuous (dx/dt = Ax): All Re(λ) < 0 (left half-plane)
        Discrete (x[k+1] = Ax): All |λ| < 1 (inside unit circle)

    Args:
        A: State matrix (nx, nx)
        system_type: 'continuous' or 'discrete'
        tolerance: Tolerance for marginal stability detection

    Returns:
        StabilityInfo containing:
            - eigenvalues: Eigenvalues of A (complex array)
            - magnitudes: |λ| for all eigenvalues
            - max_magnitude: max(|λ|) = spectral radius
            - max_real_part: max(Re(λ))
            - stability_margin: distance to the boundary, positive if stable
            - is_stable: True if asymptotically stable
            - is_marginally_stable: True if critically stable
            - is_unstable: True if unstable

    Examples
    --------
    >>> A = np.array([[0, 1], [-2, -3]])
    >>> stability = analyze_stability(A, system_type='continuous')
    >>> print(stability['is_stable'])  # True
    >>>
    >>> A_marginal = np.array([[0, 1], [-1, 0]])  # Pure oscillation
    >>> stability = analyze_stability(A_marginal, system_type='continuous')
    >>> print(stability['is_marginally_stable'])  # True
    """
    A_np = np.asarray(A, dtype=float)

    if A_np.ndim != 2 or A_np.shape[0] != A_np.shape[1]:
        raise ValueError(f"A must be square matrix, got shape {A_np.shape}")
    _check_system_type(system_type)

    eigenvalues = np.linalg.eigvals(A_np)
    magnitudes = np.abs(eigenvalues)
    max_magnitude = np.max(magnitudes)
    max_real = np.max(np.real(eigenvalues))

    if system_type == "continuous":
        is_stable = max_real < -tolerance
        is_marginally_stable = np.abs(max_real) <= tolerance
        is_unstable = max_real > tolerance
    else:
        is_stable = max_magnitude < 1.0 - tolerance
        is_marginally_stable = np.abs(max_magnitude - 1.0) <= tolerance
        is_unstable = max_magnitude > 1.0 + tolerance

    result: StabilityInfo = {
        "eigenvalues": eigenvalues,
        "magnitudes": magnitudes,
        "max_magnitude": float(max_magnitude),
        "max_real_part": float(max_real),
        "stability_margin": _stability_margin(eigenvalues, system_type),
        "is_stable": bool(is_stable),
        "is_marginally_stable": bool(is_marginally_stable),
        "is_unstable": bool(is_unstable),
    }

    return result


# ============================================================================
# Controllability Analysis
# ============================================================================


def analyze_controllability(
    A: StateMatrix,
    B: InputMatrix,
    tolerance: float = 1e-10,
) -> ControllabilityInfo:
    """
    Test controllability of linear system (A, B).

    Controllability test:
        rank(C) = n, where C = [B, AB, A²B, ..., Aⁿ⁻¹B]

    Args:
        A: State matrix (nx, nx)
        B: Input matrix (nx, nu)
        tolerance: Tolerance for rank computation

    Returns:
        ControllabilityInfo containing:
            - controllability_matrix: C = [B, AB, ...] (nx, nx*nu)
            - rank: Rank of controllability matrix
            - is_controllable: True if rank = nx (full rank)
            - condition_number: cond(C)

    Examples
    --------
    >>> A = np.array([[1, 0], [0, 2]])
    >>> B = np.array([[1], [0]])  # Second mode never excited
    >>> info = analyze_controllability(A, B)
    >>> print(info['is_controllable'])  # False
    """
    A_np = np.asarray(A, dtype=float)
    B_np = _as_2d(B)
    _check_pair(A_np, B_np)

    nx = A_np.shape[0]
    nu = B_np.shape[1]

    # C = [B, AB, A²B, ..., Aⁿ⁻¹B]
    C = np.zeros((nx, nx * nu))
    C[:, :nu] = B_np
    AB = B_np.copy()
    for i in range(1, nx):
        AB = A_np @ AB
        C[:, i * nu : (i + 1) * nu] = AB

    rank = np.linalg.matrix_rank(C, tol=tolerance)

    result: ControllabilityInfo = {
        "controllability_matrix": C,
        "rank": int(rank),
        "is_controllable": bool(rank == nx),
        "condition_number": float(np.linalg.cond(C)),
    }

    return result


# ============================================================================
# Observability Analysis
# ============================================================================


def analyze_observability(
    A: StateMatrix,
    C: OutputMatrix,
    tolerance: float = 1e-10,
) -> ObservabilityInfo:
    """
    Test observability of linear system (A, C).

    Observability test:
        rank(O) = n, where O = [C; CA; CA²; ...; CAⁿ⁻¹]

    Dual to controllability: (A, C) observable ⟺ (A', C') controllable.
    """
    A_np = np.asarray(A, dtype=float)
    C_np = np.atleast_2d(np.asarray(C, dtype=float))

    nx = A_np.shape[0]
    ny = C_np.shape[0]

    if A_np.shape != (nx, nx):
        raise ValueError(f"A must be square, got shape {A_np.shape}")
    if C_np.shape[1] != nx:
        raise ValueError(f"C must have {nx} columns, got {C_np.shape[1]}")

    O = np.zeros((nx * ny, nx))
    O[:ny, :] = C_np
    CA = C_np.copy()
    for i in range(1, nx):
        CA = CA @ A_np
        O[i * ny : (i + 1) * ny, :] = CA

    rank = np.linalg.matrix_rank(O, tol=tolerance)

    result: ObservabilityInfo = {
        "observability_matrix": O,
        "rank": int(rank),
        "is_observable": bool(rank == nx),
    }

    return result


# ============================================================================
# Export All
# ============================================================================

__all__ = [
    # Design
    "design_lqr",
    "design_pole_placement",
    "design_observer",
    "reference_prescale",
    # Lyapunov
    "solve_lyapunov",
    "controllability_gramian",
    # Root locus
    "compute_root_locus",
    "gain_for_pole",
    # Closed loop
    "closed_loop",
    "step_info",
    "simulate_state_feedback",
    # Analysis
    "analyze_stability",
    "analyze_controllability",
    "analyze_observability",
]
