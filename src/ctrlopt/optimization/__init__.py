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
Mixed-integer convex optimization (Pyomo/MindtPy) and sum-of-squares
certificates (cvxpy/sympy).
"""

from .experiment_design import (
    build_experiment_design_model,
    information_matrix,
    solve_experiment_design,
)
from .micp import MICPSolverOptions, solve_micp, solver_available
from .sos import (
    certify_interval_nonnegative,
    monomial_basis,
    polynomial_lower_bound,
    sos_decompose,
    verify_trajectory_in_regions,
)
from .trajectory_planning import (
    SafeRegion,
    build_trajectory_model,
    evaluate_trajectory,
    jerk_cost_matrix,
    plan_trajectory,
)

__all__ = [
    "MICPSolverOptions",
    "solve_micp",
    "solver_available",
    "information_matrix",
    "build_experiment_design_model",
    "solve_experiment_design",
    "SafeRegion",
    "build_trajectory_model",
    "plan_trajectory",
    "evaluate_trajectory",
    "jerk_cost_matrix",
    "monomial_basis",
    "sos_decompose",
    "polynomial_lower_bound",
    "certify_interval_nonnegative",
    "verify_trajectory_in_regions",
]
