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
Unit Tests for Control Synthesis Wrapper

Tests cover:
- Wrapper initialization and system_type validation
- Delegation to the classical control functions
- Time-domain propagation (continuous / discrete)
- Access through LinearSystem.control

The ControlSynthesis class is a thin wrapper, so tests focus on
correct delegation, argument passing and identical results.
"""

import unittest
from unittest.mock import patch

import numpy as np
from numpy.testing import assert_allclose

from ctrlopt.control import classical_control_functions as ccf
from ctrlopt.control.control_synthesis import ControlSynthesis
from ctrlopt.systems.dc_motor import DCMotor
from ctrlopt.types.control_classical import LQRResult

# ============================================================================
# Test Fixtures and Utilities
# ============================================================================


class SynthesisTestCase(unittest.TestCase):
    """Base class with common test utilities."""

    def setUp(self):
        self.A_stable = np.array([[0.0, 1.0], [-2.0, -3.0]])
        self.B_stable = np.array([[0.0], [1.0]])
        self.C_stable = np.array([[1.0, 0.0]])

        dt = 0.1
        self.Ad = np.array([[1.0, dt], [0.0, 1.0]])
        self.Bd = np.array([[0.5 * dt**2], [dt]])

        self.Q = np.diag([10.0, 1.0])
        self.R = np.array([[0.1]])

    def assert_lqr_result_valid(self, result: LQRResult, nx: int, nu: int):
        for key in ("gain", "cost_to_go", "closed_loop_eigenvalues", "stability_margin"):
            self.assertIn(key, result)
        self.assertEqual(result["gain"].shape, (nu, nx))
        self.assertEqual(result["cost_to_go"].shape, (nx, nx))
        self.assertEqual(len(result["closed_loop_eigenvalues"]), nx)


# ============================================================================
# Initialization
# ============================================================================


class TestControlSynthesisInit(SynthesisTestCase):
    def test_default_is_continuous(self):
        self.assertEqual(ControlSynthesis().system_type, "continuous")

    def test_discrete(self):
        self.assertEqual(ControlSynthesis("discrete").system_type, "discrete")

    def test_invalid_system_type(self):
        with self.assertRaises(ValueError):
            ControlSynthesis("hybrid")

    def test_repr(self):
        self.assertEqual(repr(ControlSynthesis("discrete")), "ControlSynthesis(system_type='discrete')")


# ============================================================================
# Delegation
# ============================================================================


class TestDelegation(SynthesisTestCase):
    """Wrapper methods forward to classical_control_functions."""

    def test_lqr_passes_system_type(self):
        with patch("ctrlopt.control.classical_control_functions.design_lqr") as mock_lqr:
            ControlSynthesis("discrete").design_lqr(self.Ad, self.Bd, self.Q, self.R)
        mock_lqr.assert_called_once()
        self.assertEqual(mock_lqr.call_args.kwargs["system_type"], "discrete")

    def test_prescale_passes_system_type(self):
        K = np.array([[1.0, 1.0]])
        with patch("ctrlopt.control.classical_control_functions.reference_prescale") as mock_pre:
            mock_pre.return_value = 2.0
            value = ControlSynthesis("continuous").reference_prescale(
                self.A_stable, self.B_stable, self.C_stable, K
            )
        self.assertEqual(value, 2.0)
        self.assertEqual(mock_pre.call_args.kwargs["system_type"], "continuous")

    def test_lqr_matches_function(self):
        wrapped = ControlSynthesis("continuous").design_lqr(self.A_stable, self.B_stable, self.Q, self.R)
        direct = ccf.design_lqr(self.A_stable, self.B_stable, self.Q, self.R, system_type="continuous")

        self.assert_lqr_result_valid(wrapped, nx=2, nu=1)
        assert_allclose(wrapped["gain"], direct["gain"])
        assert_allclose(wrapped["cost_to_go"], direct["cost_to_go"])

    def test_discrete_lqr_is_discrete(self):
        result = ControlSynthesis("discrete").design_lqr(self.Ad, self.Bd, self.Q, self.R)
        self.assertLess(np.max(np.abs(result["closed_loop_eigenvalues"])), 1.0)

    def test_pole_placement_and_observer(self):
        synthesis = ControlSynthesis()
        placement = synthesis.design_pole_placement(self.A_stable, self.B_stable, [-4.0, -5.0])
        observer = synthesis.design_observer(self.A_stable, self.C_stable, [-10.0, -12.0])

        assert_allclose(
            placement["gain"],
            ccf.design_pole_placement(self.A_stable, self.B_stable, [-4.0, -5.0])["gain"],
        )
        self.assertEqual(observer["gain"].shape, (2, 1))

    def test_stability_uses_wrapper_domain(self):
        A = 0.5 * np.eye(2)
        # stable as a discrete map, unstable as a continuous flow
        self.assertTrue(ControlSynthesis("discrete").analyze_stability(A)["is_stable"])
        self.assertTrue(ControlSynthesis("continuous").analyze_stability(A)["is_unstable"])

    def test_lyapunov_uses_wrapper_domain(self):
        A = np.array([[0.5, 0.0], [0.0, 0.2]])
        Q = np.eye(2)
        P = ControlSynthesis("discrete").solve_lyapunov(A, Q)
        assert_allclose(A.T @ P @ A - P + Q, np.zeros((2, 2)), atol=1e-12)

    def test_errors_propagate(self):
        with self.assertRaises(ValueError):
            ControlSynthesis().design_pole_placement(self.A_stable, self.B_stable, [-1.0])


# ============================================================================
# Integration with LinearSystem
# ============================================================================


class TestIntegration(SynthesisTestCase):
    def test_linear_system_control_property(self):
        plant = DCMotor().speed_state_space()
        synthesis = plant.control

        self.assertIsInstance(synthesis, ControlSynthesis)
        self.assertEqual(synthesis.system_type, "continuous")

        K = synthesis.design_pole_placement(plant.A, plant.B, [-8.0, -12.0])["gain"]
        Nbar = synthesis.reference_prescale(plant.A, plant.B, plant.C, K)
        closed = plant.with_state_feedback(K, prescale=Nbar)
        assert_allclose(closed.to_control().dcgain(), 1.0, rtol=1e-10)

    def test_discretized_system_wrapper_is_discrete(self):
        plant = DCMotor().speed_state_space().discretize(0.01)
        self.assertEqual(plant.control.system_type, "discrete")


if __name__ == "__main__":
    unittest.main()
