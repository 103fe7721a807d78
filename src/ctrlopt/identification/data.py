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
Dataset handling for identification: splitting and SISO extraction.
"""

from typing import Tuple

import numpy as np

from ctrlopt.types.trajectories import SampleData
from ctrlopt.utils.sample_validator import SampleValidator


def split_data(data: SampleData, fraction: float = 0.5) -> Tuple[SampleData, SampleData]:
    """
    Split a record into contiguous identification and validation parts.

    Parameters
    ----------
    data : SampleData
        Full experiment record
    fraction : float
        Share of samples used for identification, in (0, 1)

    Returns
    -------
    (SampleData, SampleData)
        Identification set (first part) and validation set (remainder).
        Time stamps are kept, so the validation set starts where the
        identification set ends.

    Raises
    ------
    ValueError
        If fraction is outside (0, 1) or either part has fewer than 2 samples
    """
    if not 0.0 < fraction < 1.0:
        raise ValueError(f"fraction must be in (0, 1), got {fraction}")

    info = SampleValidator(data).validate(raise_on_error=True).info
    n_samples = info["n_samples"]
    n_ident = int(round(fraction * n_samples))
    if n_ident < 2 or n_samples - n_ident < 2:
        raise ValueError(
            f"Split at {fraction} leaves {n_ident} identification and "
            f"{n_samples - n_ident} validation samples; need at least 2 each"
        )

    def _part(sl: slice) -> SampleData:
        return {
            "t": np.asarray(data["t"], dtype=float)[sl],
            "u": np.asarray(data["u"], dtype=float)[sl],
            "y": np.asarray(data["y"], dtype=float)[sl],
            "dt": info["dt"],
        }

    return _part(slice(0, n_ident)), _part(slice(n_ident, None))


def siso_signals(data: SampleData) -> Tuple[np.ndarray, np.ndarray]:
    """
    Extract (u, y) as 1D arrays from a single-input single-output record.

    Raises
    ------
    ValueError
        If either signal has more than one channel
    """
    u = np.asarray(data["u"], dtype=float)
    y = np.asarray(data["y"], dtype=float)
    if u.ndim == 2 and u.shape[1] == 1:
        u = u[:, 0]
    if y.ndim == 2 and y.shape[1] == 1:
        y = y[:, 0]
    if u.ndim != 1 or y.ndim != 1:
        raise ValueError(
            f"Polynomial models are single-input single-output, got u {u.shape} and y {y.shape}"
        )
    if u.shape != y.shape:
        raise ValueError(f"u and y lengths differ: {u.shape} vs {y.shape}")
    return u, y
