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
Simulation: integrators, the sampled-data simulator and excitation signals.
"""

from .integrator_base import IntegratorBase, StepMode
from .integrators import RK4Integrator, ScipyIntegrator
from .signals import add_measurement_noise, chirp_signal, prbs_signal, step_signal
from .simulator import simulate, simulate_transfer_function

__all__ = [
    "IntegratorBase",
    "StepMode",
    "ScipyIntegrator",
    "RK4Integrator",
    "simulate",
    "simulate_transfer_function",
    "step_signal",
    "prbs_signal",
    "chirp_signal",
    "add_measurement_noise",
]
