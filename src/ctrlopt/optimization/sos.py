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
Sum-of-Squares Programming

Polynomial nonnegativity certificates as semidefinite programs.

Mathematical Background
-----------------------
A polynomial p of degree 2d is a sum of squares (SOS) iff

    p(x) = m(x)ᵀ Q m(x),   Q ⪰ 0

with m(x) the vector of monomials of degree ≤ d. Matching the
coefficients of both sides gives linear constraints on Q, so finding Q is
an SDP feasibility problem.

Certificates built on this:

- Global lower bound:  max γ  s.t.  p - γ is SOS
- Interval nonnegativity (univariate):
      p(t) = σ₀(t) + (t - lo)(hi - t) σ₁(t),  σ₀, σ₁ SOS
  which is exact for univariate polynomials (Lukács)
- Trajectory containment: each face margin b_i - A_i x_p(s) of the
  assigned region is certified nonnegative on s ∈ [0, 1]

Polynomials are sympy expressions; Gram matrices are cvxpy variables.

Usage
-----
>>> import sympy as sp
>>> x = sp.Symbol('x')
>>> sos_decompose(x**4 - 2*x**2 + 1, [x])['is_sos']
True
>>> polynomial_lower_bound((x - 1)**2 + 3, [x])['bound']
3.0000...
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

import cvxpy as cp
import numpy as np
import sympy as sp
from sympy.polys.monomials import itermonomials
from sympy.polys.orderings import monomial_key

from ctrlopt.optimization.trajectory_planning import SafeRegion
from ctrlopt.types.optimization import SOSResult, TrajectoryPlanResult

logger = logging.getLogger(__name__)

_SOLVED = (cp.OPTIMAL, cp.OPTIMAL_INACCURATE)

# Relative coefficient mismatch allowed once the Gram matrices are
# projected onto the PSD cone
_RESIDUAL_TOLERANCE = 1e-4

# (gram index, row, column, coefficient) contributions to one monomial
GramEntries = Dict[Tuple[int, ...], List[Tuple[int, int, int, float]]]


# ============================================================================
# Monomials and Coefficient Matching
# ============================================================================


def monomial_basis(variables: Sequence[sp.Symbol], degree: int) -> List[sp.Expr]:
    """
    All monomials in ``variables`` of total degree ≤ degree, in graded
    lexicographic order starting from 1.
    """
    if degree < 0:
        raise ValueError(f"degree must be >= 0, got {degree}")
    variables = list(variables)
    monomials = itermonomials(variables, degree)
    return sorted(monomials, key=monomial_key("grlex", list(reversed(variables))))


def _coefficients(poly: sp.Expr, variables: Sequence[sp.Symbol]) -> Dict[Tuple[int, ...], float]:
    terms = sp.Poly(sp.expand(poly), *variables).terms()
    return {monom: float(coeff) for monom, coeff in terms}


def _total_degree(poly: sp.Expr, variables: Sequence[sp.Symbol]) -> int:
    return sp.Poly(sp.expand(poly), *variables).total_degree()


def _gram_entries(
    multipliers: List[Tuple[sp.Expr, List[sp.Expr]]], variables: Sequence[sp.Symbol]
) -> GramEntries:
    """Coefficient of every monomial of Σ_k g_k m_kᵀ Q_k m_k as entries of the Q_k."""
    entries: GramEntries = {}
    for k, (weight, basis) in enumerate(multipliers):
        for i, bi in enumerate(basis):
            for j, bj in enumerate(basis):
                for monom, coeff in _coefficients(weight * bi * bj, variables).items():
                    entries.setdefault(monom, []).append((k, i, j, coeff))
    return entries


def _project_psd(G: np.ndarray) -> np.ndarray:
    """Nearest PSD matrix in Frobenius norm (negative eigenvalues clipped)."""
    G = 0.5 * (G + G.T)
    w, U = np.linalg.eigh(G)
    return (U * np.clip(w, 0.0, None)) @ U.T


def _coefficient_residual(
    entries: GramEntries, grams: List[np.ndarray], target: Dict[Tuple[int, ...], float]
) -> float:
    """Largest coefficient mismatch between Σ g mᵀ G m and the target."""
    residual = 0.0
    for monom in set(entries) | set(target):
        value = sum(c * grams[k][i, j] for k, i, j, c in entries.get(monom, []))
        residual = max(residual, abs(value - target.get(monom, 0.0)))
    return residual


def _not_certified(
    multipliers: List[Tuple[sp.Expr, List[sp.Expr]]], status: str, with_bound: bool
) -> SOSResult:
    result: SOSResult = {
        "is_sos": False,
        "status": status,
        "gram_matrices": [],
        "bases": [basis for _, basis in multipliers],
    }
    if with_bound:
        result["bound"] = None
    return result


def _solve_sos_program(
    poly: sp.Expr,
    variables: Sequence[sp.Symbol],
    multipliers: List[Tuple[sp.Expr, List[sp.Expr]]],
    gamma: Optional[cp.Variable] = None,
    solver: Optional[str] = None,
) -> SOSResult:
    """
    Find Gram matrices Q_i ⪰ 0 with p - γ = Σ_i g_i m_iᵀ Q_i m_i.

    multipliers pairs each weight g_i with its monomial basis m_i. With
    gamma given the program maximizes it.
    """
    grams = [cp.Variable((len(basis), len(basis)), symmetric=True) for _, basis in multipliers]
    entries = _gram_entries(multipliers, variables)

    target = _coefficients(poly, variables)
    zero = tuple(0 for _ in variables)
    constraints = [Q >> 0 for Q in grams]
    for monom in set(entries) | set(target):
        rhs = target.get(monom, 0.0)
        if monom in entries:
            if gamma is not None and monom == zero:
                rhs = rhs - gamma
            constraints.append(sum(c * grams[k][i, j] for k, i, j, c in entries[monom]) == rhs)
        elif rhs != 0.0:
            # a monomial the multipliers cannot produce
            return _not_certified(multipliers, "infeasible", gamma is not None)

    objective = cp.Maximize(gamma) if gamma is not None else cp.Minimize(0)
    problem = cp.Problem(objective, constraints)
    problem.solve(solver=solver)

    solved = problem.status in _SOLVED
    gram_values = [_project_psd(np.asarray(Q.value)) for Q in grams] if solved else []
    certified = False
    if solved:
        # Interior-point solvers stop slightly outside the cone when the
        # polynomial touches zero; accept if the projected Gram matrices
        # still reproduce the coefficients.
        if gamma is not None:
            target = dict(target)
            target[zero] = target.get(zero, 0.0) - float(gamma.value)
        residual = _coefficient_residual(entries, gram_values, target)
        scale = max([1.0] + [abs(c) for c in target.values()])
        certified = residual <= _RESIDUAL_TOLERANCE * scale
        logger.debug(f"SOS program status {problem.status}, coefficient residual {residual:.2e}")
    else:
        logger.debug(f"SOS program status {problem.status}")

    result: SOSResult = {
        "is_sos": certified,
        "status": str(problem.status),
        "gram_matrices": gram_values,
        "bases": [basis for _, basis in multipliers],
    }
    if gamma is not None:
        result["bound"] = float(gamma.value) if solved else None
    return result


# ============================================================================
# Certificates
# ============================================================================


def sos_decompose(
    poly: sp.Expr, variables: Sequence[sp.Symbol], solver: Optional[str] = None
) -> SOSResult:
    """
    Search for a Gram matrix showing p is a sum of squares.

    Parameters
    ----------
    poly : sympy expression
        Polynomial in ``variables``
    variables : Sequence[sympy.Symbol]
        Indeterminates
    solver : Optional[str]
        cvxpy solver name; cvxpy's default SDP solver if None

    Returns
    -------
    SOSResult
        Odd-degree polynomials are reported as not SOS without solving
    """
    variables = list(variables)
    degree = _total_degree(poly, variables)
    if degree % 2 == 1:
        return _not_certified([], "odd degree", with_bound=False)
    basis = monomial_basis(variables, degree // 2)
    return _solve_sos_program(poly, variables, [(sp.Integer(1), basis)], solver=solver)


def polynomial_lower_bound(
    poly: sp.Expr, variables: Sequence[sp.Symbol], solver: Optional[str] = None
) -> SOSResult:
    """
    Largest γ such that p - γ is SOS (a certified global lower bound).

    Returns
    -------
    SOSResult
        ``bound`` holds γ; None if the SDP is infeasible or unbounded
        (for instance odd degree)
    """
    variables = list(variables)
    degree = _total_degree(poly, variables)
    if degree % 2 == 1:
        return _not_certified([], "odd degree", with_bound=True)
    basis = monomial_basis(variables, degree // 2)
    gamma = cp.Variable()
    return _solve_sos_program(poly, variables, [(sp.Integer(1), basis)], gamma=gamma, solver=solver)


def certify_interval_nonnegative(
    poly: sp.Expr,
    t: sp.Symbol,
    lo: float,
    hi: float,
    solver: Optional[str] = None,
) -> SOSResult:
    """
    Certify p(t) ≥ 0 on [lo, hi] via p = σ₀ + (t - lo)(hi - t) σ₁.

    Both multipliers use monomials up to ceil(deg p / 2), the second one
    degree lower, so odd-degree polynomials are handled too.
    """
    if not lo < hi:
        raise ValueError(f"Need lo < hi, got [{lo}, {hi}]")
    degree = max(_total_degree(poly, [t]), 0)
    half = (degree + 1) // 2
    multipliers = [(sp.Integer(1), monomial_basis([t], half))]
    if half >= 1:
        interval = (t - sp.Float(lo)) * (sp.Float(hi) - t)
        multipliers.append((interval, monomial_basis([t], half - 1)))
    return _solve_sos_program(poly, [t], multipliers, solver=solver)


def verify_trajectory_in_regions(
    plan: TrajectoryPlanResult,
    regions: Sequence[SafeRegion],
    margin: float = 1e-6,
    solver: Optional[str] = None,
) -> np.ndarray:
    """
    Certify that every trajectory piece stays in its assigned region for
    all s ∈ [0, 1], not only at the sample points the planner enforced.

    Parameters
    ----------
    plan : TrajectoryPlanResult
        Optimal plan with coefficients and assignments
    regions : Sequence[SafeRegion]
        Regions the plan was computed for
    margin : float
        Slack added to each face margin to absorb solver round-off

    Returns
    -------
    np.ndarray
        Boolean per piece; True when every face of the assigned region
        has an SOS certificate
    """
    if "coefficients" not in plan or "assignments" not in plan:
        raise ValueError(f"Plan has no trajectory (status {plan.get('status')})")
    coefficients = np.asarray(plan["coefficients"], dtype=float)
    s = sp.Symbol("s")
    powers = [s**k for k in range(coefficients.shape[2])]

    certified = np.zeros(coefficients.shape[0], dtype=bool)
    for p, r in enumerate(plan["assignments"]):
        region = regions[int(r)]
        position = [
            sum(sp.Float(c) * power for c, power in zip(coefficients[p, d], powers))
            for d in range(coefficients.shape[1])
        ]
        piece_ok = True
        for face in range(region.A.shape[0]):
            slack = sp.Float(region.b[face] + margin) - sum(
                sp.Float(region.A[face, d]) * position[d] for d in range(len(position))
            )
            if not certify_interval_nonnegative(slack, s, 0.0, 1.0, solver=solver)["is_sos"]:
                piece_ok = False
                logger.info(f"Piece {p}: face {face} of region {r} not certified")
                break
        certified[p] = piece_ok
    return certified
