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
System identification: polynomial models fitted to sampled data.
"""

from .data import siso_signals, split_data
from .metrics import mean_squared_error, nrmse_fit, vaf
from .polynomial_models import (
    fit_arx,
    fit_oe,
    predict,
    simulate_model,
    stabilize_polynomial,
    to_state_space,
    to_transfer_function,
)
from .validation import compare, residual_analysis

__all__ = [
    "split_data",
    "siso_signals",
    "nrmse_fit",
    "vaf",
    "mean_squared_error",
    "fit_arx",
    "fit_oe",
    "predict",
    "simulate_model",
    "stabilize_polynomial",
    "to_transfer_function",
    "to_state_space",
    "compare",
    "residual_analysis",
]
