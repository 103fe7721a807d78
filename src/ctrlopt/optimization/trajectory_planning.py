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
Mixed-Integer Trajectory Planning

Smooth piecewise-polynomial trajectories through a union of convex safe
regions, with the choice of region per piece made by binary variables.

Mathematical Background
-----------------------
Piece p ∈ {0, ..., P-1} covers global time [p, p+1] with local time
s ∈ [0, 1]:

    x_p(s) = Σ_k c[p, :, k] sᵏ,   k = 0..degree

Constraints:
    z[p, r] ∈ {0, 1},  Σ_r z[p, r] = 1                 (one region per piece)
    A_r x_p(s_j) ≤ b_r + M_r (1 - z[p, r])             (big-M, sample points s_j)
    x_p⁽ᵈ⁾(1) = x_{p+1}⁽ᵈ⁾(0),  d = 0, 1, 2            (C² continuity)
    x_0(0) = start, x'_0(0) = 0,  x_{P-1}(1) = goal, x'_{P-1}(1) = 0

Objective (exact integrated squared jerk):

    J = Σ_p Σ_dim ∫₀¹ (x_p'''(s))² ds = Σ_p Σ_dim cᵀ H c,
    H[k, l] = a_k a_l / (k + l - 5),  a_k = k(k-1)(k-2),  k, l ≥ 3

H is a Gram matrix, so J is a convex quadratic and the problem is a
mixed-integer convex program.

The big-M constants come from a bounding box of the union of regions
computed with scipy.optimize.linprog; every region must be bounded.
Membership is enforced only at the sample points; ``sos.verify_trajectory_in_regions``
certifies it over the whole interval.

Usage
-----
>>> regions = [SafeRegion.box([0, 0], [2, 1]), SafeRegion.box([1, 0], [2, 3])]
>>> plan = plan_trajectory(regions, start=[0.5, 0.5], goal=[1.5, 2.5], n_pieces=3)
>>> evaluate_trajectory(plan['coefficients'], np.linspace(0, 3, 50))
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pyomo.environ as pyo
from scipy import optimize

from ctrlopt.optimization.micp import MICPSolverOptions, solve_micp
from ctrlopt.types.core import ArrayLike
from ctrlopt.types.optimization import MICPStatus, TrajectoryPlanResult

# ============================================================================
# Safe Regions
# ============================================================================


@dataclass
class SafeRegion:
    """
    Convex polytope {x : A x ≤ b}.

    Attributes
    ----------
    A : np.ndarray
        Face normals (m, dim)
    b : np.ndarray
        Offsets (m,)
    """

    A: np.ndarray
    b: np.ndarray

    def __post_init__(self):
        self.A = np.atleast_2d(np.asarray(self.A, dtype=float))
        self.b = np.asarray(self.b, dtype=float).ravel()
        if self.A.shape[0] != self.b.size:
            raise ValueError(f"A has {self.A.shape[0]} rows but b has {self.b.size} entries")
        if not (np.all(np.isfinite(self.A)) and np.all(np.isfinite(self.b))):
            raise ValueError("Region data must be finite")

    @classmethod
    def box(cls, lower: ArrayLike, upper: ArrayLike) -> "SafeRegion":
        """Axis-aligned box lower ≤ x ≤ upper."""
        lower = np.asarray(lower, dtype=float).ravel()
        upper = np.asarray(upper, dtype=float).ravel()
        if lower.shape != upper.shape or np.any(lower > upper):
            raise ValueError(f"Invalid box bounds {lower}, {upper}")
        eye = np.eye(lower.size)
        return cls(np.vstack([eye, -eye]), np.concatenate([upper, -lower]))

    @property
    def dim(self) -> int:
        return self.A.shape[1]

    def contains(self, x: ArrayLike, tol: float = 1e-9):
        """
        Membership test.

        Returns a bool for a single point (dim,) and a boolean array for a
        batch of points (N, dim).
        """
        x = np.asarray(x, dtype=float)
        inside = np.all(x @ self.A.T <= self.b + tol, axis=-1)
        return bool(inside) if x.ndim == 1 else inside

    def bounding_box(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Tightest axis-aligned box containing the region (one LP per bound).

        Raises
        ------
        ValueError
            If the region is empty or unbounded
        """
        lower = np.empty(self.dim)
        upper = np.empty(self.dim)
        for d in range(self.dim):
            for sign, out in ((1.0, lower), (-1.0, upper)):
                cost = np.zeros(self.dim)
                cost[d] = sign
                lp = optimize.linprog(cost, A_ub=self.A, b_ub=self.b, bounds=(None, None))
                if lp.status == 2:
                    raise ValueError("Safe region is empty")
                if lp.status == 3:
                    raise ValueError("Safe region is unbounded; big-M constants need bounded regions")
                if not lp.success:
                    raise ValueError(f"Bounding LP failed: {lp.message}")
                out[d] = sign * lp.fun
        return lower, upper


# ============================================================================
# Polynomial Helpers
# ============================================================================


def jerk_cost_matrix(degree: int) -> np.ndarray:
    """H with ∫₀¹ (d³/ds³ Σ c_k sᵏ)² ds = cᵀ H c."""
    H = np.zeros((degree + 1, degree + 1))
    for k in range(3, degree + 1):
        for l in range(3, degree + 1):
            a_k = k * (k - 1) * (k - 2)
            a_l = l * (l - 1) * (l - 2)
            H[k, l] = a_k * a_l / (k + l - 5)
    return H


def _derivative_weights(degree: int, order: int, s: float) -> np.ndarray:
    """w with d^order/ds^order Σ c_k sᵏ = w · c at local time s."""
    weights = np.zeros(degree + 1)
    for k in range(order, degree + 1):
        falling = np.prod(np.arange(k - order + 1, k + 1)) if order > 0 else 1.0
        weights[k] = falling * s ** (k - order)
    return weights


def evaluate_trajectory(coefficients: ArrayLike, s: ArrayLike, derivative: int = 0) -> np.ndarray:
    """
    Evaluate a piecewise-polynomial trajectory.

    Parameters
    ----------
    coefficients : ArrayLike
        (n_pieces, dim, degree + 1), ascending powers of local time
    s : ArrayLike
        Global times in [0, n_pieces]; piece p covers [p, p + 1]
    derivative : int
        Derivative order with respect to time

    Returns
    -------
    np.ndarray
        Values (len(s), dim)
    """
    coefficients = np.asarray(coefficients, dtype=float)
    if coefficients.ndim != 3:
        raise ValueError(f"coefficients must be (n_pieces, dim, degree + 1), got {coefficients.shape}")
    n_pieces, dim, n_coeffs = coefficients.shape
    s = np.atleast_1d(np.asarray(s, dtype=float))
    if np.any(s < 0) or np.any(s > n_pieces):
        raise ValueError(f"s must lie in [0, {n_pieces}]")

    piece = np.minimum(np.floor(s).astype(int), n_pieces - 1)
    local = s - piece
    out = np.empty((s.size, dim))
    for i, (p, tau) in enumerate(zip(piece, local)):
        out[i] = coefficients[p] @ _derivative_weights(n_coeffs - 1, derivative, tau)
    return out


# ============================================================================
# Model Construction
# ============================================================================


def _big_m(regions: Sequence[SafeRegion]) -> Tuple[np.ndarray, np.ndarray, List[np.ndarray]]:
    """Union bounding box and per-face big-M constants over that box."""
    boxes = [region.bounding_box() for region in regions]
    lower = np.min([box[0] for box in boxes], axis=0)
    upper = np.max([box[1] for box in boxes], axis=0)
    constants = []
    for region in regions:
        worst = np.maximum(region.A * lower, region.A * upper).sum(axis=1)
        constants.append(np.maximum(worst - region.b, 0.0))
    return lower, upper, constants


def build_trajectory_model(
    regions: Sequence[SafeRegion],
    start: ArrayLike,
    goal: ArrayLike,
    n_pieces: int,
    degree: int = 5,
    samples_per_piece: int = 5,
) -> pyo.ConcreteModel:
    """
    Pyomo model of the region-assignment trajectory problem.

    Parameters
    ----------
    regions : Sequence[SafeRegion]
        Bounded convex safe regions of a common dimension
    start, goal : ArrayLike
        Endpoint positions (dim,); the trajectory is at rest at both
    n_pieces : int
        Number of polynomial pieces
    degree : int
        Polynomial degree, at least 3
    samples_per_piece : int
        Points per piece (endpoints included) where membership is enforced

    Returns
    -------
    pyo.ConcreteModel
        Continuous ``c[p, d, k]``, binary ``z[p, r]``
    """
    if not regions:
        raise ValueError("At least one safe region is required")
    dim = regions[0].dim
    if any(region.dim != dim for region in regions):
        raise ValueError("All regions must have the same dimension")
    start = np.asarray(start, dtype=float).ravel()
    goal = np.asarray(goal, dtype=float).ravel()
    if start.shape != (dim,) or goal.shape != (dim,):
        raise ValueError(f"start and goal must have shape ({dim},)")
    if n_pieces < 1:
        raise ValueError(f"n_pieces must be >= 1, got {n_pieces}")
    if degree < 3:
        raise ValueError(f"degree must be >= 3 for continuous acceleration, got {degree}")
    if samples_per_piece < 2:
        raise ValueError(f"samples_per_piece must be >= 2, got {samples_per_piece}")
    if not any(region.contains(start) for region in regions):
        raise ValueError(f"start {start} is not in any safe region")
    if not any(region.contains(goal) for region in regions):
        raise ValueError(f"goal {goal} is not in any safe region")

    box_lower, box_upper, big_m = _big_m(regions)
    samples = np.linspace(0.0, 1.0, samples_per_piece)
    position_weights = [_derivative_weights(degree, 0, s) for s in samples]
    H = jerk_cost_matrix(degree)

    model = pyo.ConcreteModel(name="trajectory_planning")
    model.P = pyo.RangeSet(0, n_pieces - 1)
    model.D = pyo.RangeSet(0, dim - 1)
    model.K = pyo.RangeSet(0, degree)
    model.R = pyo.RangeSet(0, len(regions) - 1)
    model.J = pyo.RangeSet(0, samples_per_piece - 1)

    def _initial_coefficient(m, p, d, k):
        # straight line from start to goal
        if k == 0:
            return float(start[d] + (goal[d] - start[d]) * p / n_pieces)
        if k == 1:
            return float((goal[d] - start[d]) / n_pieces)
        return 0.0

    model.c = pyo.Var(model.P, model.D, model.K, initialize=_initial_coefficient)
    model.z = pyo.Var(model.P, model.R, domain=pyo.Binary)

    def position(m, p, d, j):
        w = position_weights[j]
        return sum(float(w[k]) * m.c[p, d, k] for k in m.K)

    def endpoint(m, p, d, order, s):
        w = _derivative_weights(degree, order, s)
        return sum(float(w[k]) * m.c[p, d, k] for k in m.K if w[k] != 0)

    model.one_region = pyo.Constraint(model.P, rule=lambda m, p: sum(m.z[p, r] for r in m.R) == 1)

    model.in_box = pyo.ConstraintList()
    model.in_region = pyo.ConstraintList()
    for p in model.P:
        for j in model.J:
            for d in model.D:
                expr = position(model, p, d, j)
                model.in_box.add(pyo.inequality(float(box_lower[d]), expr, float(box_upper[d])))
            for r in model.R:
                region = regions[r]
                for face in range(region.A.shape[0]):
                    lhs = sum(
                        float(region.A[face, d]) * position(model, p, d, j)
                        for d in model.D
                        if region.A[face, d] != 0
                    )
                    model.in_region.add(
                        lhs <= float(region.b[face]) + float(big_m[r][face]) * (1 - model.z[p, r])
                    )

    model.continuity = pyo.ConstraintList()
    for p in range(n_pieces - 1):
        for d in model.D:
            for order in (0, 1, 2):
                model.continuity.add(
                    endpoint(model, p, d, order, 1.0) == endpoint(model, p + 1, d, order, 0.0)
                )

    model.boundary = pyo.ConstraintList()
    last = n_pieces - 1
    for d in model.D:
        model.boundary.add(model.c[0, d, 0] == float(start[d]))
        model.boundary.add(model.c[0, d, 1] == 0.0)
        model.boundary.add(endpoint(model, last, d, 0, 1.0) == float(goal[d]))
        model.boundary.add(endpoint(model, last, d, 1, 1.0) == 0.0)

    jerk_terms = [
        (k, l, float(H[k, l])) for k in range(3, degree + 1) for l in range(3, degree + 1)
    ]
    model.objective = pyo.Objective(
        expr=sum(
            h * model.c[p, d, k] * model.c[p, d, l]
            for p in model.P
            for d in model.D
            for k, l, h in jerk_terms
        ),
        sense=pyo.minimize,
    )

    return model


def plan_trajectory(
    regions: Sequence[SafeRegion],
    start: ArrayLike,
    goal: ArrayLike,
    n_pieces: int,
    degree: int = 5,
    samples_per_piece: int = 5,
    options: Optional[MICPSolverOptions] = None,
) -> TrajectoryPlanResult:
    """
    Build and solve the trajectory problem.

    Returns
    -------
    TrajectoryPlanResult
        coefficients and assignments are present only when the solver
        reports Optimal
    """
    model = build_trajectory_model(regions, start, goal, n_pieces, degree, samples_per_piece)
    solver = solve_micp(model, options)

    result: TrajectoryPlanResult = {
        "status": solver["status"],
        "objective": solver["objective"],
        "solver": solver,
    }
    if solver["status"] is MICPStatus.OPTIMAL:
        dim = len(model.D)
        coefficients = np.array(
            [
                [[pyo.value(model.c[p, d, k]) for k in model.K] for d in range(dim)]
                for p in model.P
            ]
        )
        assignments = np.array(
            [int(np.argmax([pyo.value(model.z[p, r]) for r in model.R])) for p in model.P]
        )
        result["coefficients"] = coefficients
        result["assignments"] = assignments

    return result
