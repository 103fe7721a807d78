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
MICP Solver Backend

Mixed-integer convex programs built as Pyomo models are solved with the
MindtPy outer-approximation (OA) decomposition:

    master (MILP)      linearizations of the convex constraints and
                       objective at every visited point; gives a lower
                       bound and the next integer assignment
    subproblem (NLP)   integers fixed; gives an upper bound and the next
                       linearization point

Two coordination schemes are available:

- multi-tree (default): the MILP is re-solved from scratch after each
  subproblem, so any MILP solver works (HiGHS through appsi_highs)
- single-tree (``mip_solver_drives=True``): one branch-and-bound tree in
  which the MILP solver calls the NLP subproblem from a lazy-constraint
  callback; needs a persistent solver with callbacks (cplex_persistent or
  gurobi_persistent)

The outcome is reduced to four statuses: Optimal, Infeasible, UserLimit
(iteration, time or user interrupt) and Error (everything else). Solver
exceptions, including a missing solver executable, propagate to the
caller.

Usage
-----
>>> import pyomo.environ as pyo
>>> m = pyo.ConcreteModel()
>>> m.x = pyo.Var(bounds=(0, 4))
>>> m.z = pyo.Var(domain=pyo.Integers, bounds=(0, 3))
>>> m.c = pyo.Constraint(expr=(m.x - 1.5) ** 2 + (m.z - 1.2) ** 2 <= 1)
>>> m.obj = pyo.Objective(expr=m.x - 2 * m.z)
>>> result = solve_micp(m, MICPSolverOptions(rel_gap=1e-6))
>>> result['status']
<MICPStatus.OPTIMAL: 'Optimal'>
"""

import logging
import time
from dataclasses import dataclass
from typing import Dict, Optional

import pyomo.environ as pyo
from pyomo.opt import TerminationCondition

from ctrlopt.types.optimization import MICPResult, MICPStatus

logger = logging.getLogger(__name__)

# MIP solvers with the lazy-constraint callbacks single-tree OA relies on
PERSISTENT_MIP_SOLVERS = ("cplex_persistent", "gurobi_persistent")

_STATUS_MAP = {
    TerminationCondition.optimal: MICPStatus.OPTIMAL,
    TerminationCondition.globallyOptimal: MICPStatus.OPTIMAL,
    TerminationCondition.locallyOptimal: MICPStatus.OPTIMAL,
    TerminationCondition.infeasible: MICPStatus.INFEASIBLE,
    TerminationCondition.maxIterations: MICPStatus.USER_LIMIT,
    TerminationCondition.maxTimeLimit: MICPStatus.USER_LIMIT,
    TerminationCondition.maxEvaluations: MICPStatus.USER_LIMIT,
    TerminationCondition.userInterrupt: MICPStatus.USER_LIMIT,
}


@dataclass
class MICPSolverOptions:
    """
    Outer-approximation settings.

    Attributes
    ----------
    mip_solver : str
        Pyomo solver name for the MILP master problem
    cont_solver : str
        Pyomo solver name for the continuous subproblem
    rel_gap : float
        Relative optimality gap (UB - LB) / |UB| at which OA stops
    mip_solver_drives : bool
        False for multi-tree OA, True for single-tree branch-and-bound
        driven by the MIP solver
    log_level : int
        0 silent, 1 iteration log through the logging module, 2 also
        echoes the subsolver output
    time_limit : Optional[float]
        Wall-clock limit in seconds
    iteration_limit : int
        Maximum number of OA iterations
    """

    mip_solver: str = "appsi_highs"
    cont_solver: str = "ipopt"
    rel_gap: float = 1e-5
    mip_solver_drives: bool = False
    log_level: int = 0
    time_limit: Optional[float] = None
    iteration_limit: int = 50

    def __post_init__(self):
        if not self.rel_gap > 0:
            raise ValueError(f"rel_gap must be positive, got {self.rel_gap}")
        if self.log_level not in (0, 1, 2):
            raise ValueError(f"log_level must be 0, 1 or 2, got {self.log_level}")
        if self.iteration_limit < 1:
            raise ValueError(f"iteration_limit must be >= 1, got {self.iteration_limit}")
        if self.time_limit is not None and not self.time_limit > 0:
            raise ValueError(f"time_limit must be positive, got {self.time_limit}")
        if self.mip_solver_drives and self.mip_solver not in PERSISTENT_MIP_SOLVERS:
            raise ValueError(
                f"mip_solver_drives requires one of {PERSISTENT_MIP_SOLVERS}, "
                f"got '{self.mip_solver}'"
            )

    def mindtpy_kwargs(self) -> Dict:
        """Keyword arguments for SolverFactory('mindtpy').solve."""
        kwargs = {
            "strategy": "OA",
            "mip_solver": self.mip_solver,
            "nlp_solver": self.cont_solver,
            "relative_bound_tolerance": self.rel_gap,
            "iteration_limit": self.iteration_limit,
            "single_tree": self.mip_solver_drives,
            "tee": self.log_level >= 1,
            "mip_solver_tee": self.log_level >= 2,
            "nlp_solver_tee": self.log_level >= 2,
        }
        if self.time_limit is not None:
            kwargs["time_limit"] = self.time_limit
        return kwargs


def solver_available(name: str) -> bool:
    """True if Pyomo can find and run the named solver."""
    try:
        return bool(pyo.SolverFactory(name).available(exception_flag=False))
    except (RuntimeError, OSError) as exc:
        logger.debug(f"Solver '{name}' unavailable: {exc}")
        return False


def _primal_values(model: pyo.Block) -> Dict[str, float]:
    values = {}
    for var in model.component_data_objects(pyo.Var, active=True, descend_into=True):
        if var.value is not None:
            values[var.name] = float(var.value)
    return values


def _active_objective(model: pyo.Block):
    objectives = list(model.component_data_objects(pyo.Objective, active=True, descend_into=True))
    if len(objectives) != 1:
        raise ValueError(f"Model must have exactly one active objective, found {len(objectives)}")
    return objectives[0]


def _bound(value) -> Optional[float]:
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    return value if value == value else None


def solve_micp(model: pyo.Block, options: Optional[MICPSolverOptions] = None) -> MICPResult:
    """
    Solve a mixed-integer convex Pyomo model by outer approximation.

    Parameters
    ----------
    model : pyomo ConcreteModel
        Model with one active objective; nonlinear parts must be convex
        once integrality is relaxed
    options : Optional[MICPSolverOptions]
        Solver configuration, defaults if None

    Returns
    -------
    MICPResult
        On Optimal: objective and primal values by variable name

    Raises
    ------
    ValueError
        If the model does not have exactly one active objective
    Exception
        Whatever Pyomo or the subsolvers raise (for instance a missing
        solver executable) propagates unchanged
    """
    options = options or MICPSolverOptions()
    objective = _active_objective(model)

    mindtpy_logger = logging.getLogger("pyomo.contrib.mindtpy")
    previous_level = mindtpy_logger.level
    if options.log_level == 0:
        mindtpy_logger.setLevel(logging.WARNING)

    start = time.perf_counter()
    try:
        results = pyo.SolverFactory("mindtpy").solve(model, **options.mindtpy_kwargs())
    finally:
        mindtpy_logger.setLevel(previous_level)
    elapsed = time.perf_counter() - start

    condition = results.solver.termination_condition
    status = _STATUS_MAP.get(condition, MICPStatus.ERROR)

    result: MICPResult = {
        "status": status,
        "objective": None,
        "values": {},
        "termination_condition": str(condition),
        "lower_bound": _bound(results.problem.lower_bound),
        "upper_bound": _bound(results.problem.upper_bound),
        "solve_time": elapsed,
    }
    if status is MICPStatus.OPTIMAL:
        result["objective"] = float(pyo.value(objective))
        result["values"] = _primal_values(model)

    log = logger.info if options.log_level >= 1 else logger.debug
    log(f"MindtPy OA finished: {status.value} ({condition}) in {elapsed:.2f}s")
    return result
