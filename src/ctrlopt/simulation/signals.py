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
Excitation signals for identification experiments.

All generators take the sample instants and return a 1D array of the
same length. Random signals take a seed and use numpy's Generator so
experiments are reproducible.
"""

from typing import Optional

import numpy as np
from scipy import signal

from ctrlopt.types.core import ArrayLike


def step_signal(t: ArrayLike, amplitude: float = 1.0, t_step: float = 0.0) -> np.ndarray:
    """Step of the given amplitude applied at t_step."""
    t = np.asarray(t, dtype=float)
    return np.where(t >= t_step, amplitude, 0.0)


def prbs_signal(
    t: ArrayLike,
    amplitude: float = 1.0,
    min_hold: int = 5,
    seed: Optional[int] = None,
) -> np.ndarray:
    """
    Pseudo-random binary sequence switching between ±amplitude.

    Parameters
    ----------
    t : ArrayLike
        Sample instants (T,)
    amplitude : float
        Signal level
    min_hold : int
        Number of samples each level is held before it may switch. Longer
        holds put more energy at low frequencies, which a slow mechanical
        pole needs to be identifiable.
    seed : Optional[int]
        Seed for numpy.random.default_rng

    Returns
    -------
    np.ndarray
        PRBS samples (T,)
    """
    if min_hold < 1:
        raise ValueError(f"min_hold must be >= 1, got {min_hold}")
    n_samples = len(np.asarray(t))
    rng = np.random.default_rng(seed)
    n_blocks = int(np.ceil(n_samples / min_hold))
    levels = rng.choice([-amplitude, amplitude], size=n_blocks)
    return np.repeat(levels, min_hold)[:n_samples]


def chirp_signal(
    t: ArrayLike,
    f0: float = 0.05,
    f1: float = 5.0,
    amplitude: float = 1.0,
    method: str = "logarithmic",
) -> np.ndarray:
    """Frequency sweep from f0 to f1 Hz over the span of t (scipy.signal.chirp)."""
    t = np.asarray(t, dtype=float)
    t_rel = t - t[0]
    return amplitude * signal.chirp(t_rel, f0=f0, t1=t_rel[-1], f1=f1, method=method)


def add_measurement_noise(
    y: ArrayLike, std: float, seed: Optional[int] = None
) -> np.ndarray:
    """Additive white Gaussian noise with standard deviation std."""
    y = np.asarray(y, dtype=float)
    if std < 0:
        raise ValueError(f"Noise standard deviation must be non-negative, got {std}")
    if std == 0:
        return y.copy()
    rng = np.random.default_rng(seed)
    return y + rng.normal(0.0, std, size=y.shape)
