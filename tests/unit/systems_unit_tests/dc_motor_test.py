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
Unit Tests for the DC Motor Model Builders

Tests cover:
1. Parameter validation
2. Transfer function coefficients
3. State-space matrices and their agreement with the transfer functions
4. DC gain
"""

import control
import numpy as np
import pytest
from numpy.testing import assert_allclose

from ctrlopt.systems import (
    DCMotor,
    DCMotorParameters,
    LinearSystem,
    position_state_space,
    position_transfer_function,
    speed_state_space,
    speed_transfer_function,
)

# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def params():
    return DCMotorParameters()


@pytest.fixture
def motor(params):
    return DCMotor(params)


# ============================================================================
# Parameters
# ============================================================================


class TestParameters:
    def test_defaults(self, params):
        assert params.J == 0.01
        assert params.b == 0.1
        assert params.K == 0.01
        assert params.R == 1.0
        assert params.L == 0.5

    @pytest.mark.parametrize("name", ["J", "b", "K", "R", "L"])
    def test_non_positive_rejected(self, name):
        with pytest.raises(ValueError, match=name):
            DCMotorParameters(**{name: 0.0})

    def test_negative_rejected(self):
        with pytest.raises(ValueError):
            DCMotorParameters(R=-1.0)

    def test_non_finite_rejected(self):
        with pytest.raises(ValueError):
            DCMotorParameters(L=np.inf)


# ============================================================================
# Transfer Functions
# ============================================================================


class TestTransferFunctions:
    def test_speed_coefficients(self, params):
        G = speed_transfer_function(params)
        num, den = control.tfdata(G)
        assert_allclose(np.ravel(num[0][0]), [0.01])
        # (Js + b)(Ls + R) + K² = 0.005 s² + 0.06 s + 0.1001
        assert_allclose(np.ravel(den[0][0]), [0.005, 0.06, 0.1001])

    def test_position_is_speed_over_s(self, params):
        G_speed = speed_transfer_function(params)
        G_pos = position_transfer_function(params)
        for s in (0.5j, 1.0 + 2.0j, 10.0):
            assert np.isclose(G_pos(s), G_speed(s) / s)

    def test_position_has_integrator(self, params):
        poles = control.poles(position_transfer_function(params))
        assert np.min(np.abs(poles)) < 1e-12


# ============================================================================
# State Space
# ============================================================================


class TestStateSpace:
    def test_speed_matrices(self, params):
        sys = speed_state_space(params)
        assert isinstance(sys, LinearSystem)
        assert_allclose(sys.A, [[-10.0, 1.0], [-0.02, -2.0]])
        assert_allclose(sys.B, [[0.0], [2.0]])
        assert_allclose(sys.C, [[1.0, 0.0]])
        assert_allclose(sys.D, [[0.0]])
        assert not sys.is_discrete

    def test_speed_matches_transfer_function(self, params):
        ss = speed_state_space(params).to_control()
        tf = speed_transfer_function(params)
        for s in (0.1j, 1.0 + 1.0j, 5.0):
            assert np.isclose(np.squeeze(ss(s)), tf(s))

    def test_position_matches_transfer_function(self, params):
        ss = position_state_space(params).to_control()
        tf = position_transfer_function(params)
        for s in (0.3j, 2.0 + 1.0j):
            assert np.isclose(np.squeeze(ss(s)), tf(s))

    def test_position_dimensions(self, params):
        sys = position_state_space(params)
        assert (sys.nx, sys.nu, sys.ny) == (3, 1, 1)

    def test_speed_poles_stable(self, params):
        assert np.all(np.real(speed_state_space(params).poles()) < 0)


# ============================================================================
# DCMotor Bundle
# ============================================================================


class TestDCMotor:
    def test_default_parameters(self):
        assert DCMotor().params == DCMotorParameters()

    def test_dc_gain_matches_transfer_function(self, motor):
        expected = float(np.real(control.dcgain(motor.speed_transfer_function())))
        assert np.isclose(motor.dc_gain(), expected)
        assert np.isclose(motor.dc_gain(), 0.01 / 0.1001)

    def test_builders_delegate(self, motor, params):
        assert_allclose(motor.speed_state_space().A, speed_state_space(params).A)
        assert_allclose(motor.position_state_space().A, position_state_space(params).A)

    def test_repr(self, motor):
        assert "DCMotor(J=0.01" in repr(motor)
