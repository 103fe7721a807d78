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
Optimal Experimental Design

Choose how many times to run each of p candidate experiments so that the
resulting parameter estimate is as informative as possible.

Mathematical Background
-----------------------
Candidate experiment i has regression vector vᵢ ∈ ℝ^q (column i of V).
Running it nᵢ times contributes nᵢ vᵢ vᵢ' to the information matrix

    M(n) = Σᵢ nᵢ vᵢ vᵢ' = V diag(n) V'

Problem:
    D-optimal:  maximize   log det M(n)
    A-optimal:  minimize   trace M(n)⁻¹
    subject to  Σᵢ nᵢ ≤ m,  lᵢ ≤ nᵢ ≤ uᵢ,  nᵢ ∈ ℤ

Both criteria are convex in n on {M(n) ≻ 0} (log det is concave, trace of
the inverse is convex, and M is affine in n), so outer approximation
solves the integer problem to global optimality.

The Pyomo model writes det M by cofactor expansion and M⁻¹'s diagonal as
cofactors over det, which keeps every expression algebraic. The positivity
floor is imposed on log det M, which stays concave in n. Cofactor
expansion is factorial in q, so the formulation is meant for small parameter counts.

Usage
-----
>>> V = np.array([[1.0, 1.0, 1.0], [-1.0, 0.0, 1.0]])    # q=2, p=3
>>> design = solve_experiment_design(V, budget=6, criterion='D')
>>> design['allocation']
array([3, 0, 3])
"""

from typing import List, Optional

import numpy as np
import pyomo.environ as pyo

from ctrlopt.optimization.micp import MICPSolverOptions, solve_micp
from ctrlopt.types.core import ArrayLike
from ctrlopt.types.optimization import ExperimentDesignResult, MICPStatus

CRITERIA = ("D", "A")

# Floor on det M keeping log det and M⁻¹ defined in the subproblems
_DET_FLOOR = 1e-8


# ============================================================================
# Information Matrix
# ============================================================================


def information_matrix(V: ArrayLike, n: ArrayLike) -> np.ndarray:
    """
    M = V diag(n) V' for candidate columns V (q, p) and counts n (p,).
    """
    V = np.asarray(V, dtype=float)
    n = np.asarray(n, dtype=float).ravel()
    if V.ndim != 2 or V.shape[1] != n.size:
        raise ValueError(f"V must be (q, {n.size}), got shape {V.shape}")
    return (V * n) @ V.T


def _determinant(M: List[list]):
    """Laplace expansion along the first row; works on Pyomo expressions."""
    size = len(M)
    if size == 1:
        return M[0][0]
    if size == 2:
        return M[0][0] * M[1][1] - M[0][1] * M[1][0]
    total = 0
    for j in range(size):
        minor = [row[:j] + row[j + 1 :] for row in M[1:]]
        total += (-1) ** j * M[0][j] * _determinant(minor)
    return total


def _principal_minor(M: List[list], i: int) -> List[list]:
    return [row[:i] + row[i + 1 :] for k, row in enumerate(M) if k != i]


def _initial_allocation(lower: np.ndarray, upper: np.ndarray, budget: int) -> np.ndarray:
    """Feasible starting counts: lower bounds, then round-robin up to the budget."""
    n = lower.copy()
    remaining = min(budget, int(upper.sum())) - int(n.sum())
    while remaining > 0:
        progressed = False
        for i in range(n.size):
            if remaining == 0:
                break
            if n[i] < upper[i]:
                n[i] += 1
                remaining -= 1
                progressed = True
        if not progressed:
            break
    return n


def _validate(V, budget, lower, upper, criterion):
    V = np.asarray(V, dtype=float)
    if V.ndim != 2:
        raise ValueError(f"V must be a 2D array (q, p), got shape {V.shape}")
    q, p = V.shape
    if criterion not in CRITERIA:
        raise ValueError(f"criterion must be one of {CRITERIA}, got '{criterion}'")
    if int(budget) != budget or budget < 1:
        raise ValueError(f"budget must be a positive integer, got {budget}")

    lower = np.zeros(p, dtype=int) if lower is None else np.asarray(lower, dtype=int).ravel()
    upper = np.full(p, int(budget)) if upper is None else np.asarray(upper, dtype=int).ravel()
    if lower.shape != (p,) or upper.shape != (p,):
        raise ValueError(f"lower and upper must have {p} entries")
    if np.any(lower < 0) or np.any(lower > upper):
        raise ValueError("Bounds must satisfy 0 <= lower <= upper")
    if lower.sum() > budget:
        raise ValueError(f"Lower bounds sum to {lower.sum()}, exceeding the budget {budget}")
    if np.linalg.matrix_rank(V * (upper > 0)) < q:
        raise ValueError(
            f"Candidate experiments span rank {np.linalg.matrix_rank(V)} < q={q}; "
            "the information matrix is singular for every allocation"
        )
    return V, int(budget), lower, upper


# ============================================================================
# Model Construction
# ============================================================================


def build_experiment_design_model(
    V: ArrayLike,
    budget: int,
    lower: Optional[ArrayLike] = None,
    upper: Optional[ArrayLike] = None,
    criterion: str = "D",
) -> pyo.ConcreteModel:
    """
    Pyomo model of the D- or A-optimal integer design.

    Parameters
    ----------
    V : ArrayLike
        Candidate regression vectors as columns (q, p)
    budget : int
        Total number of experiments m
    lower, upper : Optional[ArrayLike]
        Integer bounds on each count; 0 and budget if None
    criterion : str
        'D' or 'A'

    Returns
    -------
    pyo.ConcreteModel
        Integer variables ``n[i]`` and the criterion epigraph variable
        ``t`` (t ≤ log det M for D, t ≥ trace M⁻¹ for A)
    """
    V, budget, lower, upper = _validate(V, budget, lower, upper, criterion)
    q, p = V.shape
    start = _initial_allocation(lower, upper, budget)

    model = pyo.ConcreteModel(name=f"{criterion}_optimal_design")
    model.I = pyo.Set(initialize=range(p), ordered=True)
    model.n = pyo.Var(
        model.I,
        domain=pyo.NonNegativeIntegers,
        bounds=lambda m, i: (int(lower[i]), int(upper[i])),
        initialize=lambda m, i: int(start[i]),
    )
    model.budget = pyo.Constraint(expr=sum(model.n[i] for i in model.I) <= budget)

    M = [
        [sum(float(V[a, i] * V[b, i]) * model.n[i] for i in model.I) for b in range(q)]
        for a in range(q)
    ]
    det = _determinant(M)
    model.det = pyo.Expression(expr=det)
    # Floor on log det M, which is concave in n where det M is not
    model.det_floor = pyo.Constraint(expr=pyo.log(model.det) >= float(np.log(_DET_FLOOR)))

    M0 = information_matrix(V, start)
    if criterion == "D":
        model.t = pyo.Var(initialize=float(np.log(max(np.linalg.det(M0), _DET_FLOOR))))
        model.criterion_epigraph = pyo.Constraint(expr=model.t <= pyo.log(model.det))
        model.objective = pyo.Objective(expr=model.t, sense=pyo.maximize)
    else:
        trace_inverse = sum(_determinant(_principal_minor(M, i)) for i in range(q)) / model.det
        initial = np.trace(np.linalg.pinv(M0)) if np.linalg.matrix_rank(M0) == q else 1e3
        model.t = pyo.Var(initialize=float(initial))
        model.criterion_epigraph = pyo.Constraint(expr=model.t >= trace_inverse)
        model.objective = pyo.Objective(expr=model.t, sense=pyo.minimize)

    return model


def solve_experiment_design(
    V: ArrayLike,
    budget: int,
    lower: Optional[ArrayLike] = None,
    upper: Optional[ArrayLike] = None,
    criterion: str = "D",
    options: Optional[MICPSolverOptions] = None,
) -> ExperimentDesignResult:
    """
    Build and solve the integer optimal design.

    Returns
    -------
    ExperimentDesignResult
        allocation, information_matrix and objective are present only
        when the solver reports Optimal. The objective is recomputed from
        the rounded allocation with numpy (log det M or trace M⁻¹).
    """
    model = build_experiment_design_model(V, budget, lower, upper, criterion)
    solver = solve_micp(model, options)

    result: ExperimentDesignResult = {
        "status": solver["status"],
        "criterion": criterion,
        "objective": None,
        "solver": solver,
    }
    if solver["status"] is MICPStatus.OPTIMAL:
        allocation = np.array([int(round(pyo.value(model.n[i]))) for i in model.I])
        M = information_matrix(V, allocation)
        if criterion == "D":
            objective = float(np.linalg.slogdet(M)[1])
        else:
            objective = float(np.trace(np.linalg.inv(M)))
        result["allocation"] = allocation
        result["information_matrix"] = M
        result["objective"] = objective

    return result
