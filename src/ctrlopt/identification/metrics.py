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
Model fit metrics.
"""

import numpy as np

from ctrlopt.types.core import ArrayLike


def nrmse_fit(y: ArrayLike, y_hat: ArrayLike) -> float:
    """
    Normalized root-mean-square fit in percent.

        fit = 100 (1 - ||y - ŷ|| / ||y - mean(y)||)

    100 is a perfect fit, 0 is no better than the mean, and the value is
    unbounded below. Returns -inf for a constant y with nonzero error.
    """
    y = np.asarray(y, dtype=float)
    y_hat = np.asarray(y_hat, dtype=float)
    error = np.linalg.norm(y - y_hat)
    spread = np.linalg.norm(y - np.mean(y))
    if spread == 0:
        return 100.0 if error == 0 else -np.inf
    return float(100.0 * (1.0 - error / spread))


def vaf(y: ArrayLike, y_hat: ArrayLike) -> float:
    """Variance accounted for, 100 (1 - var(y - ŷ) / var(y)), in percent."""
    y = np.asarray(y, dtype=float)
    y_hat = np.asarray(y_hat, dtype=float)
    variance = np.var(y)
    if variance == 0:
        return 100.0 if np.var(y - y_hat) == 0 else -np.inf
    return float(100.0 * (1.0 - np.var(y - y_hat) / variance))


def mean_squared_error(y: ArrayLike, y_hat: ArrayLike) -> float:
    y = np.asarray(y, dtype=float)
    y_hat = np.asarray(y_hat, dtype=float)
    return float(np.mean((y - y_hat) ** 2))
