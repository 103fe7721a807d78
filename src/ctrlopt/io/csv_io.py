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
CSV sample files.

Layout
------
One row per sample, header row with column names:

    time,input,output                      (single channel)
    time,input_0,input_1,output_0,...      (multi-channel)

Values are written with full double precision so a write/read round
trip reproduces the arrays exactly.
"""

import logging
from pathlib import Path
from typing import List, Union

import numpy as np
import pandas as pd

from ctrlopt.types.trajectories import SampleData
from ctrlopt.utils.sample_validator import SampleValidator, ValidationError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

TIME_COLUMN = "time"


def _channel_columns(prefix: str, signal: np.ndarray) -> List[str]:
    if signal.ndim == 1:
        return [prefix]
    return [f"{prefix}_{i}" for i in range(signal.shape[1])]


def _find_columns(columns: List[str], prefix: str) -> List[str]:
    if prefix in columns:
        return [prefix]
    indexed = [c for c in columns if c.startswith(f"{prefix}_") and c[len(prefix) + 1 :].isdigit()]
    return sorted(indexed, key=lambda c: int(c[len(prefix) + 1 :]))


def write_samples(path: PathLike, data: SampleData) -> Path:
    """
    Write a sample record to CSV.

    Parameters
    ----------
    path : str or Path
        Destination file; parent directories are created
    data : SampleData
        Record with t, u, y

    Returns
    -------
    Path
        The written file

    Raises
    ------
    ValidationError
        If the record is inconsistent
    """
    SampleValidator(data).validate(raise_on_error=True)

    t = np.asarray(data["t"], dtype=float)
    u = np.asarray(data["u"], dtype=float)
    y = np.asarray(data["y"], dtype=float)

    frame = pd.DataFrame({TIME_COLUMN: t})
    for columns, signal in ((_channel_columns("input", u), u), (_channel_columns("output", y), y)):
        values = signal[:, np.newaxis] if signal.ndim == 1 else signal
        for i, name in enumerate(columns):
            frame[name] = values[:, i]

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    frame.to_csv(path, index=False, float_format="%.17g")
    logger.info(f"Wrote {len(frame)} samples to {path}")
    return path


def read_samples(path: PathLike) -> SampleData:
    """
    Read a sample record from CSV.

    Single-channel columns come back as 1D arrays; dt is the median
    sample spacing.

    Raises
    ------
    ValidationError
        If time, input or output columns are missing or the data are
        inconsistent (non-monotonic time, non-finite values)
    FileNotFoundError
        If the file does not exist
    """
    path = Path(path)
    frame = pd.read_csv(path)
    columns = list(frame.columns)

    if TIME_COLUMN not in columns:
        raise ValidationError(f"{path}: missing '{TIME_COLUMN}' column (found {columns})")
    input_columns = _find_columns(columns, "input")
    output_columns = _find_columns(columns, "output")
    if not input_columns or not output_columns:
        raise ValidationError(f"{path}: missing input or output columns (found {columns})")

    u = frame[input_columns].to_numpy(dtype=float)
    y = frame[output_columns].to_numpy(dtype=float)
    data = {
        "t": frame[TIME_COLUMN].to_numpy(dtype=float),
        "u": u[:, 0] if u.shape[1] == 1 else u,
        "y": y[:, 0] if y.shape[1] == 1 else y,
    }
    result = SampleValidator(data).validate(raise_on_error=True)
    data["dt"] = result.info["dt"]

    logger.info(f"Read {len(frame)} samples from {path} (dt={data['dt']:g})")
    return data
