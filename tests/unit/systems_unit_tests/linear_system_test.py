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
Unit Tests for LinearSystem

Tests cover dimension validation, dynamics evaluation, conversion to and
from python-control, discretization and state feedback.
"""

import control
import numpy as np
import pytest
from numpy.testing import assert_allclose
from scipy import linalg

from ctrlopt.control.control_synthesis import ControlSynthesis
from ctrlopt.systems import LinearSystem

A = np.array([[0.0, 1.0], [-2.0, -3.0]])
B = np.array([[0.0], [1.0]])
C = np.array([[1.0, 0.0]])


@pytest.fixture
def system():
    return LinearSystem(A, B, C)


class TestConstruction:
    def test_dimensions(self, system):
        assert (system.nx, system.nu, system.ny) == (2, 1, 1)
        assert system.system_type == "continuous"

    def test_defaults_full_state_output(self):
        sys = LinearSystem(A, B)
        assert_allclose(sys.C, np.eye(2))
        assert_allclose(sys.D, np.zeros((2, 1)))

    def test_flat_input_vector(self):
        sys = LinearSystem(A, [0.0, 1.0])
        assert sys.B.shape == (2, 1)

    def test_non_square_A(self):
        with pytest.raises(ValueError, match="square"):
            LinearSystem(np.ones((2, 3)), B)

    def test_B_row_mismatch(self):
        with pytest.raises(ValueError, match="rows"):
            LinearSystem(A, np.ones((3, 1)))

    def test_C_column_mismatch(self):
        with pytest.raises(ValueError, match="columns"):
            LinearSystem(A, B, np.ones((1, 3)))

    def test_D_shape_mismatch(self):
        with pytest.raises(ValueError):
            LinearSystem(A, B, C, np.ones((2, 2)))

    def test_non_positive_dt(self):
        with pytest.raises(ValueError, match="dt"):
            LinearSystem(A, B, dt=0.0)

    def test_repr(self, system):
        assert "continuous" in repr(system)
        assert "dt=0.1" in repr(LinearSystem(A, B, dt=0.1))


class TestEvaluation:
    def test_dynamics(self, system):
        x = np.array([1.0, 2.0])
        assert_allclose(system(x, np.array([3.0])), A @ x + B @ [3.0])

    def test_none_input_is_zero(self, system):
        x = np.array([1.0, -1.0])
        assert_allclose(system(x), A @ x)

    def test_scalar_input_accepted(self, system):
        assert_allclose(system(np.zeros(2), 2.0), [0.0, 2.0])

    def test_wrong_input_shape(self, system):
        with pytest.raises(ValueError):
            system(np.zeros(2), np.ones(2))

    def test_output(self, system):
        assert_allclose(system.output(np.array([4.0, 5.0])), [4.0])

    def test_poles(self, system):
        assert_allclose(np.sort(system.poles().real), [-2.0, -1.0])


class TestConversion:
    def test_to_control_round_trip(self, system):
        back = LinearSystem.from_control(system.to_control())
        assert_allclose(back.A, system.A)
        assert back.dt is None

    def test_transfer_function(self, system):
        G = system.transfer_function()
        assert np.isclose(np.squeeze(G(0.0)), 0.5)

    def test_from_transfer_function(self):
        sys = LinearSystem.from_transfer_function([1.0], [1.0, 3.0, 2.0])
        assert sys.nx == 2
        assert_allclose(np.sort(sys.poles().real), [-2.0, -1.0])

    def test_from_discrete_transfer_function(self):
        sys = LinearSystem.from_transfer_function([1.0], [1.0, -0.5], dt=0.1)
        assert sys.dt == 0.1
        assert_allclose(sys.poles(), [0.5])

    def test_unspecified_sample_period_rejected(self):
        with pytest.raises(ValueError):
            LinearSystem.from_control(control.tf([1.0], [1.0, -0.5], True))

    def test_discretize_zoh(self, system):
        dt = 0.1
        sys_d = system.discretize(dt)
        assert sys_d.dt == dt
        assert_allclose(sys_d.A, linalg.expm(A * dt), atol=1e-12)

    def test_discretize_twice_rejected(self, system):
        with pytest.raises(ValueError, match="already discrete"):
            system.discretize(0.1).discretize(0.1)


class TestStateFeedback:
    def test_closed_loop_matrices(self, system):
        K = np.array([[1.0, 2.0]])
        closed = system.with_state_feedback(K, prescale=3.0)
        assert_allclose(closed.A, A - B @ K)
        assert_allclose(closed.B, 3.0 * B)
        assert_allclose(closed.C, C)

    def test_wrong_gain_shape(self, system):
        with pytest.raises(ValueError):
            system.with_state_feedback(np.ones((2, 2)))

    def test_control_property(self, system):
        synthesis = system.control
        assert isinstance(synthesis, ControlSynthesis)
        assert synthesis.system_type == "continuous"
        assert LinearSystem(A, B, dt=0.1).control.system_type == "discrete"

    def test_conversion_annotations_name_control_module(self):
        # The control property must not shadow python-control in the class body
        import importlib

        module = importlib.import_module("ctrlopt.systems.linear_system")
        assert module.LinearSystem.to_control.__annotations__["return"] is control.StateSpace
        assert (
            module.LinearSystem.transfer_function.__annotations__["return"]
            is control.TransferFunction
        )
        assert isinstance(module.LinearSystem.__dict__["control"], property)
