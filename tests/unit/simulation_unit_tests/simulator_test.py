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
Unit Tests for simulate and simulate_transfer_function

The central property: a continuous model simulated with the input held
between samples agrees with its zero-order-hold discretization.
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from ctrlopt.simulation import prbs_signal, simulate, simulate_transfer_function
from ctrlopt.systems import DCMotor, LinearSystem


@pytest.fixture
def motor():
    return DCMotor()


@pytest.fixture
def plant(motor):
    return motor.speed_state_space()


class TestContinuousSimulation:
    def test_result_structure(self, plant):
        t = np.linspace(0.0, 1.0, 11)
        result = simulate(plant, t, np.ones_like(t))
        assert result["x"].shape == (11, 2)
        assert result["y"].shape == (11,)
        assert result["u"].shape == (11,)
        assert result["success"]
        assert "scipy" in result["solver"]

    def test_zero_input_zero_state(self, plant):
        t = np.linspace(0.0, 1.0, 11)
        result = simulate(plant, t)
        assert_allclose(result["y"], 0.0)

    def test_step_reaches_dc_gain(self, motor, plant):
        t = np.arange(0.0, 10.0, 0.1)
        result = simulate(plant, t, np.ones_like(t))
        assert_allclose(result["y"][-1], motor.dc_gain(), rtol=1e-4)

    def test_matches_zoh_discretization(self, plant):
        dt = 0.05
        t = np.arange(100) * dt
        u = prbs_signal(t, seed=3)
        continuous = simulate(plant, t, u, rtol=1e-10, atol=1e-12)
        discrete = simulate(plant.discretize(dt), t, u)
        assert_allclose(continuous["x"], discrete["x"], atol=1e-8)

    def test_rk4_method(self, plant):
        t = np.arange(0.0, 1.0, 0.01)
        reference = simulate(plant, t, np.ones_like(t), rtol=1e-10, atol=1e-12)
        rk4 = simulate(plant, t, np.ones_like(t), method="RK4")
        assert rk4["solver"] == "RK4 (Fixed Step)"
        assert_allclose(rk4["y"], reference["y"], atol=1e-6)

    def test_initial_state(self, plant):
        t = np.linspace(0.0, 0.5, 6)
        result = simulate(plant, t, x0=np.array([1.0, 0.0]))
        assert_allclose(result["x"][0], [1.0, 0.0])
        assert result["y"][-1] < 1.0

    def test_bad_initial_state_shape(self, plant):
        with pytest.raises(ValueError, match="x0"):
            simulate(plant, np.linspace(0, 1, 5), x0=np.zeros(3))

    def test_bad_input_shape(self, plant):
        with pytest.raises(ValueError, match="u must have shape"):
            simulate(plant, np.linspace(0, 1, 5), np.ones(4))

    def test_non_increasing_time(self, plant):
        with pytest.raises(ValueError, match="increasing"):
            simulate(plant, np.array([0.0, 0.2, 0.1]))


class TestDiscreteSimulation:
    def test_recursion(self):
        sys = LinearSystem([[0.5]], [[1.0]], dt=1.0)
        result = simulate(sys, np.arange(4.0), np.ones(4), x0=np.array([0.0]))
        assert_allclose(result["x"][:, 0], [0.0, 1.0, 1.5, 1.75])
        assert result["solver"] == "discrete recursion"

    def test_grid_must_match_sample_period(self):
        sys = LinearSystem([[0.5]], [[1.0]], dt=1.0)
        with pytest.raises(ValueError, match="sample period"):
            simulate(sys, np.arange(0.0, 2.0, 0.5))


class TestTransferFunctionSimulation:
    def test_agrees_with_state_space(self, motor, plant):
        t = np.linspace(0.0, 3.0, 301)
        u = np.ones_like(t)
        tf_result = simulate_transfer_function(motor.speed_transfer_function(), t, u)
        ss_result = simulate(plant, t, u, rtol=1e-10, atol=1e-12)
        assert "x" not in tf_result
        assert_allclose(tf_result["y"], ss_result["y"], atol=1e-4)

    def test_input_shape_checked(self, motor):
        with pytest.raises(ValueError):
            simulate_transfer_function(motor.speed_transfer_function(), np.linspace(0, 1, 5), np.ones(3))
