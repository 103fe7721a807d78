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
Control design and analysis.
"""

from .classical_control_functions import (
    analyze_controllability,
    analyze_observability,
    analyze_stability,
    closed_loop,
    compute_root_locus,
    controllability_gramian,
    design_lqr,
    design_observer,
    design_pole_placement,
    gain_for_pole,
    reference_prescale,
    simulate_state_feedback,
    solve_lyapunov,
    step_info,
)
from .control_synthesis import ControlSynthesis

__all__ = [
    "ControlSynthesis",
    "design_lqr",
    "design_pole_placement",
    "design_observer",
    "reference_prescale",
    "solve_lyapunov",
    "controllability_gramian",
    "compute_root_locus",
    "gain_for_pole",
    "closed_loop",
    "step_info",
    "simulate_state_feedback",
    "analyze_stability",
    "analyze_controllability",
    "analyze_observability",
]
