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

"""Unit Tests for Excitation Signals"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from ctrlopt.simulation import add_measurement_noise, chirp_signal, prbs_signal, step_signal


@pytest.fixture
def t():
    return np.arange(200) * 0.05


class TestStep:
    def test_levels(self, t):
        u = step_signal(t, amplitude=2.0, t_step=1.0)
        assert np.all(u[t < 1.0] == 0.0)
        assert np.all(u[t >= 1.0] == 2.0)


class TestPRBS:
    def test_binary_levels(self, t):
        u = prbs_signal(t, amplitude=0.5, seed=1)
        assert u.shape == t.shape
        assert set(np.unique(u)) <= {-0.5, 0.5}

    def test_seeded_reproducible(self, t):
        assert_allclose(prbs_signal(t, seed=7), prbs_signal(t, seed=7))

    def test_hold_length(self, t):
        u = prbs_signal(t, min_hold=10, seed=2)
        blocks = u.reshape(-1, 10)
        assert np.all(blocks == blocks[:, :1])

    def test_invalid_hold(self, t):
        with pytest.raises(ValueError):
            prbs_signal(t, min_hold=0)


class TestChirp:
    def test_bounded_and_starts_at_amplitude(self, t):
        u = chirp_signal(t, amplitude=3.0)
        assert np.max(np.abs(u)) <= 3.0 + 1e-12
        assert np.isclose(u[0], 3.0)


class TestNoise:
    def test_zero_std_copies(self):
        y = np.ones(10)
        noisy = add_measurement_noise(y, 0.0)
        assert_allclose(noisy, y)
        assert noisy is not y

    def test_statistics(self):
        noisy = add_measurement_noise(np.zeros(20000), 0.1, seed=0)
        assert abs(np.mean(noisy)) < 0.005
        assert np.isclose(np.std(noisy), 0.1, rtol=0.05)

    def test_negative_std(self):
        with pytest.raises(ValueError):
            add_measurement_noise(np.zeros(3), -1.0)
