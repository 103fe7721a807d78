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
Classical Control Theory Types

Result types for classical control design and analysis:
- Stability, controllability, and observability analysis
- Linear Quadratic Regulator (LQR)
- Pole placement and Luenberger observers
- Root locus and step-response characteristics

Mathematical Background
----------------------
Pole placement (eigenvalue assignment):
    Choose K so that eig(A - BK) = {p₁, ..., pₙ}
    Possible for arbitrary {pᵢ} iff (A, B) is controllable.

Reference prescaling:
    With u = -Kx + N̄r, unit DC gain from r to y requires
    N̄ = -1 / (C (A - BK)⁻¹ B)            (continuous)
    N̄ =  1 / (C (I - A + BK)⁻¹ B)        (discrete)

Root locus:
    Closed-loop poles of G(s) = num(s)/den(s) under unity feedback
    with gain k are the roots of den(s) + k·num(s).

LQR:
    Minimize J = ∫(x'Qx + u'Ru)dt, solution u = -Kx, K = R⁻¹B'P
    P satisfies A'P + PA - PBR⁻¹B'P + Q = 0 (Riccati)

Usage
-----
>>> from ctrlopt.types.control_classical import PolePlacementResult
>>> result: PolePlacementResult = design_pole_placement(A, B, [-5, -6])
>>> K = result['gain']
"""

from typing import Optional

import numpy as np
from typing_extensions import TypedDict

from .core import (
    ControllabilityMatrix,
    CostMatrix,
    GainMatrix,
    ObservabilityMatrix,
)
from .trajectories import SimulationResult

# ============================================================================
# Stability Analysis Types
# ============================================================================


class StabilityInfo(TypedDict):
    """
    Stability analysis result dictionary.

    Stability Criteria:
    - Continuous: All Re(λ) < 0 (left half-plane)
    - Discrete: All |λ| < 1 (inside unit circle)

    Fields
    ------
    eigenvalues : np.ndarray
        Eigenvalues of system matrix (complex)
    magnitudes : np.ndarray
        Absolute values |λ| of eigenvalues
    max_magnitude : float
        Maximum |λ| (spectral radius)
    max_real_part : float
        Maximum Re(λ)
    stability_margin : float
        -max Re(λ) (continuous) or 1 - max|λ| (discrete); positive = stable
    is_stable : bool
        True if system is asymptotically stable
    is_marginally_stable : bool
        True if the dominant eigenvalue sits on the boundary within tolerance
    is_unstable : bool
        True if any eigenvalue is strictly outside the stable region

    Examples
    --------
    >>> A = np.array([[0, 1], [-2, -3]])
    >>> stability: StabilityInfo = analyze_stability(A, system_type='continuous')
    >>> stability['is_stable']
    True
    """

    eigenvalues: np.ndarray
    magnitudes: np.ndarray
    max_magnitude: float
    max_real_part: float
    stability_margin: float
    is_stable: bool
    is_marginally_stable: bool
    is_unstable: bool


class ControllabilityInfo(TypedDict, total=False):
    """
    Controllability analysis result.

    Controllability Test:
    - Rank of C = [B AB A²B ... Aⁿ⁻¹B] equals nx

    Fields
    ------
    controllability_matrix : ControllabilityMatrix
        Shape (nx, nx*nu)
    rank : int
        Numerical rank
    is_controllable : bool
        True if rank == nx
    condition_number : float
        Condition number of the controllability matrix (large means
        pole placement will be numerically sensitive)
    """

    controllability_matrix: ControllabilityMatrix
    rank: int
    is_controllable: bool
    condition_number: float


class ObservabilityInfo(TypedDict, total=False):
    """
    Observability analysis result.

    Observability Test:
    - Rank of O = [C; CA; CA²; ...; CAⁿ⁻¹] equals nx

    Fields
    ------
    observability_matrix : ObservabilityMatrix
        Shape (nx*ny, nx)
    rank : int
        Numerical rank
    is_observable : bool
        True if rank == nx
    """

    observability_matrix: ObservabilityMatrix
    rank: int
    is_observable: bool


# ============================================================================
# Control Design Result Types
# ============================================================================


class LQRResult(TypedDict):
    """
    Linear Quadratic Regulator (LQR) design result.

    Fields
    ------
    gain : GainMatrix
        Optimal feedback gain K of shape (nu, nx)
    cost_to_go : CostMatrix
        Solution P to the algebraic Riccati equation (nx, nx)
    closed_loop_eigenvalues : np.ndarray
        Eigenvalues of (A - BK)
    stability_margin : float
        Distance from stability boundary (positive = stable)
    """

    gain: GainMatrix
    cost_to_go: CostMatrix
    closed_loop_eigenvalues: np.ndarray
    stability_margin: float


class PolePlacementResult(TypedDict):
    """
    Pole placement (eigenvalue assignment) result.

    Fields
    ------
    gain : GainMatrix
        State feedback gain K (nu, nx)
    desired_poles : np.ndarray
        Requested closed-loop eigenvalues
    achieved_poles : np.ndarray
        Eigenvalues of (A - BK), sorted to match desired_poles
    max_pole_error : float
        max |achieved - desired| after matching
    is_controllable : bool
        Controllability of (A, B)

    Examples
    --------
    >>> result: PolePlacementResult = design_pole_placement(A, B, [-5, -6])
    >>> np.allclose(result['achieved_poles'], result['desired_poles'])
    True
    """

    gain: GainMatrix
    desired_poles: np.ndarray
    achieved_poles: np.ndarray
    max_pole_error: float
    is_controllable: bool


class LuenbergerObserverResult(TypedDict):
    """
    Luenberger observer design result.

    Observer dynamics: x̂˙ = Ax̂ + Bu + L(y - Cx̂)
    Error dynamics: e˙ = (A - LC)e

    Fields
    ------
    gain : GainMatrix
        Observer gain L (nx, ny)
    desired_poles : np.ndarray
        Requested observer eigenvalues
    achieved_poles : np.ndarray
        Eigenvalues of (A - LC)
    is_observable : bool
        Observability of (A, C)
    """

    gain: GainMatrix
    desired_poles: np.ndarray
    achieved_poles: np.ndarray
    is_observable: bool


class RootLocusResult(TypedDict, total=False):
    """
    Root locus data for a SISO open-loop transfer function.

    Fields
    ------
    gains : np.ndarray
        Gain grid (n_gains,), increasing, starting at 0
    poles : np.ndarray
        Closed-loop poles (n_gains, n_poles), branches kept continuous
    open_loop_poles : np.ndarray
        Roots of the denominator
    open_loop_zeros : np.ndarray
        Roots of the numerator
    asymptote_angles : np.ndarray
        Angles (rad) of branches that go to infinity
    asymptote_center : float
        Real-axis centroid of the asymptotes
    stable_gain_range : Optional[tuple]
        (k_min, k_max) of the first contiguous run of stabilizing gains
        on the grid, None if no gain in the grid stabilizes
    """

    gains: np.ndarray
    poles: np.ndarray
    open_loop_poles: np.ndarray
    open_loop_zeros: np.ndarray
    asymptote_angles: np.ndarray
    asymptote_center: float
    stable_gain_range: Optional[tuple]


class StepInfo(TypedDict, total=False):
    """
    Step-response characteristics.

    Fields
    ------
    rise_time : float
        10% to 90% of steady state
    settling_time : float
        Time to stay within 2% of steady state
    overshoot : float
        Percent overshoot
    peak : float
        Peak absolute output
    peak_time : float
        Time of peak
    steady_state_value : float
        Final value
    """

    rise_time: float
    settling_time: float
    overshoot: float
    peak: float
    peak_time: float
    steady_state_value: float


class ClosedLoopResult(TypedDict, total=False):
    """
    Closed-loop simulation under state feedback u = -Kx + N̄r.

    Fields
    ------
    simulation : SimulationResult
        Closed-loop response (t, x, y, u) where u is the applied input
    reference : np.ndarray
        Reference signal r (T,)
    prescale : float
        N̄ used
    closed_loop_poles : np.ndarray
        eig(A - BK)
    step_info : StepInfo
        Characteristics of the closed-loop output
    """

    simulation: SimulationResult
    reference: np.ndarray
    prescale: float
    closed_loop_poles: np.ndarray
    step_info: StepInfo


__all__ = [
    "StabilityInfo",
    "ControllabilityInfo",
    "ObservabilityInfo",
    "LQRResult",
    "PolePlacementResult",
    "LuenbergerObserverResult",
    "RootLocusResult",
    "StepInfo",
    "ClosedLoopResult",
]
