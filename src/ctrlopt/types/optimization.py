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
Optimization Types

Result types for the optimization backends:
- Mixed-integer convex programs solved by outer approximation (Pyomo/MindtPy)
- Optimal experimental design
- Mixed-integer trajectory planning through safe regions
- Sum-of-squares certificates (cvxpy SDP)

Mathematical Background
----------------------
Mixed-Integer Convex Program (MICP):
    minimize    f(x, z)
    subject to  g(x, z) ≤ 0
                z ∈ ℤᵐ
    with f, g convex in (x, z) once integrality is relaxed.

Outer approximation alternates between
    - a MILP master problem built from linearizations (cuts) of f and g,
      giving a lower bound and a candidate integer assignment z*, and
    - a continuous convex subproblem with z fixed to z*, giving an
      upper bound and the point where the next cuts are generated,
until the relative gap (UB - LB)/|UB| falls below the tolerance.

Sum of squares:
    p(x) is SOS iff p(x) = m(x)' Q m(x) with Q ⪰ 0, m a monomial basis.

Usage
-----
>>> from ctrlopt.types.optimization import MICPStatus, MICPResult
>>> result: MICPResult = solve_micp(model)
>>> if result['status'] is MICPStatus.OPTIMAL:
...     print(result['objective'])
"""

from enum import Enum
from typing import Dict, List, Optional

import numpy as np
from typing_extensions import TypedDict


class MICPStatus(str, Enum):
    """
    Solver outcome reported by the MICP backend.

    Attributes
    ----------
    OPTIMAL : str
        Converged within the relative gap; primal values are available
    INFEASIBLE : str
        Proven infeasible
    USER_LIMIT : str
        Stopped by an iteration or time limit (or user interrupt)
    ERROR : str
        Any other termination (numerical trouble, solver failure)
    """

    OPTIMAL = "Optimal"
    INFEASIBLE = "Infeasible"
    USER_LIMIT = "UserLimit"
    ERROR = "Error"


class MICPResult(TypedDict, total=False):
    """
    Outcome of a mixed-integer convex solve.

    Fields
    ------
    status : MICPStatus
        Reported status
    objective : Optional[float]
        Objective value (only when status is OPTIMAL)
    values : Dict[str, float]
        Primal values keyed by variable name, indexed components
        flattened as 'x[1]', 'x[1,2]' (only when status is OPTIMAL)
    termination_condition : str
        Raw termination condition reported by the solver
    lower_bound : Optional[float]
        Best dual bound
    upper_bound : Optional[float]
        Best primal bound
    solve_time : float
        Wall time in seconds
    """

    status: MICPStatus
    objective: Optional[float]
    values: Dict[str, float]
    termination_condition: str
    lower_bound: Optional[float]
    upper_bound: Optional[float]
    solve_time: float


class ExperimentDesignResult(TypedDict, total=False):
    """
    Optimal experimental design.

    Fields
    ------
    status : MICPStatus
        Solver status
    allocation : np.ndarray
        Integer number of times each candidate experiment is run (p,)
    criterion : str
        'D' (maximize log det M) or 'A' (minimize trace M⁻¹)
    objective : Optional[float]
        log det M for 'D', trace M⁻¹ for 'A'
    information_matrix : np.ndarray
        M = Σ nᵢ vᵢ vᵢ' (q, q)
    solver : MICPResult
        Raw solver result
    """

    status: MICPStatus
    allocation: np.ndarray
    criterion: str
    objective: Optional[float]
    information_matrix: np.ndarray
    solver: MICPResult


class TrajectoryPlanResult(TypedDict, total=False):
    """
    Piecewise-polynomial trajectory through convex safe regions.

    Fields
    ------
    status : MICPStatus
        Solver status
    coefficients : np.ndarray
        Polynomial coefficients (n_pieces, dim, degree + 1) in ascending
        powers of the local time s ∈ [0, 1]
    assignments : np.ndarray
        Index of the safe region assigned to each piece (n_pieces,)
    objective : Optional[float]
        Integrated squared jerk
    solver : MICPResult
        Raw solver result
    """

    status: MICPStatus
    coefficients: np.ndarray
    assignments: np.ndarray
    objective: Optional[float]
    solver: MICPResult


class SOSResult(TypedDict, total=False):
    """
    Sum-of-squares decomposition result.

    Fields
    ------
    is_sos : bool
        A PSD Gram matrix was found
    status : str
        cvxpy problem status
    gram_matrices : List[np.ndarray]
        Gram matrix of each SOS multiplier
    bases : List[list]
        Monomial basis (sympy expressions) of each multiplier
    bound : Optional[float]
        Certified lower bound (polynomial_lower_bound only)
    """

    is_sos: bool
    status: str
    gram_matrices: List[np.ndarray]
    bases: List[list]
    bound: Optional[float]


__all__ = [
    "MICPStatus",
    "MICPResult",
    "ExperimentDesignResult",
    "TrajectoryPlanResult",
    "SOSResult",
]
