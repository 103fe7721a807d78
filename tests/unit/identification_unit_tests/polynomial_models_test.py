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
Unit Tests for ARX and Output-Error Identification

Tests cover:
1. Exact recovery from noiseless data
2. Prediction horizons
3. Stabilization of the F polynomial
4. Conversion to python-control objects
5. Held-out performance against the constant-mean baseline
"""

import warnings

import control
import numpy as np
import pytest
from numpy.testing import assert_allclose
from scipy import signal

from ctrlopt.identification import (
    compare,
    fit_arx,
    fit_oe,
    predict,
    simulate_model,
    split_data,
    stabilize_polynomial,
    to_state_space,
    to_transfer_function,
)
from ctrlopt.simulation import add_measurement_noise, prbs_signal
from ctrlopt.utils import make_sample_data

# True system: y = (0.5 q⁻¹ + 0.3 q⁻²) / (1 - 1.2 q⁻¹ + 0.5 q⁻²) u
B_TRUE = np.array([0.5, 0.3])
F_TRUE = np.array([1.0, -1.2, 0.5])
DT = 0.1

# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def t():
    return np.arange(400) * DT


@pytest.fixture
def u(t):
    return prbs_signal(t, min_hold=3, seed=11)


@pytest.fixture
def noiseless_data(t, u):
    y = signal.lfilter(np.r_[0.0, B_TRUE], F_TRUE, u)
    return make_sample_data(t, u, y)


@pytest.fixture
def noisy_data(t, u):
    y = signal.lfilter(np.r_[0.0, B_TRUE], F_TRUE, u)
    return make_sample_data(t, u, add_measurement_noise(y, 0.2, seed=5))


# ============================================================================
# ARX
# ============================================================================


class TestARX:
    def test_noiseless_recovery(self, noiseless_data):
        model = fit_arx(noiseless_data, na=2, nb=2, nk=1)
        assert_allclose(model["A"], F_TRUE, atol=1e-10)
        assert_allclose(model["B"], B_TRUE, atol=1e-10)
        assert model["method"] == "arx"
        assert model["dt"] == pytest.approx(DT)
        assert model["fit_percentage"] == pytest.approx(100.0)

    def test_too_few_samples(self, t, u):
        data = make_sample_data(t[:5], u[:5], u[:5])
        with pytest.raises(ValueError, match="samples"):
            fit_arx(data, na=2, nb=2)

    def test_invalid_orders(self, noiseless_data):
        with pytest.raises(ValueError, match="nb"):
            fit_arx(noiseless_data, na=2, nb=0)
        with pytest.raises(ValueError, match="nk"):
            fit_arx(noiseless_data, na=2, nb=1, nk=-1)

    def test_mimo_rejected(self, t):
        data = make_sample_data(t, np.ones((t.size, 2)), np.ones(t.size))
        with pytest.raises(ValueError, match="single-input"):
            fit_arx(data, na=1, nb=1)


# ============================================================================
# Output Error
# ============================================================================


class TestOE:
    def test_noiseless_recovery(self, noiseless_data):
        model = fit_oe(noiseless_data, nb=2, nf=2, nk=1)
        assert_allclose(model["B"], B_TRUE, atol=1e-6)
        assert_allclose(model["F"], F_TRUE, atol=1e-6)
        assert model["method"] == "oe"
        assert model["success"]
        assert model["fit_percentage"] > 99.99

    def test_result_fields(self, noisy_data):
        model = fit_oe(noisy_data, nb=2, nf=2)
        for key in ("B", "F", "nk", "dt", "loss", "fit_percentage", "residuals", "success", "nfev"):
            assert key in model
        assert model["F"][0] == 1.0
        assert model["residuals"].shape == noisy_data["y"].shape

    def test_noisy_estimate_close(self, noisy_data):
        model = fit_oe(noisy_data, nb=2, nf=2)
        assert_allclose(model["F"], F_TRUE, atol=0.1)

    def test_returned_F_is_stable(self, noisy_data):
        model = fit_oe(noisy_data, nb=2, nf=2)
        assert np.all(np.abs(np.roots(model["F"])) < 1.0)

    def test_explicit_initial_parameters(self, noiseless_data):
        model = fit_oe(noiseless_data, nb=2, nf=2, x0=[0.4, 0.2, -1.0, 0.4])
        assert_allclose(model["F"], F_TRUE, atol=1e-5)

    def test_wrong_initial_parameter_count(self, noiseless_data):
        with pytest.raises(ValueError, match="x0"):
            fit_oe(noiseless_data, nb=2, nf=2, x0=[1.0, 0.0])

    def test_too_few_samples(self, t, u):
        data = make_sample_data(t[:4], u[:4], u[:4])
        with pytest.raises(ValueError):
            fit_oe(data, nb=2, nf=2)

    def test_held_out_beats_baseline(self, noisy_data):
        ident, valid = split_data(noisy_data, 0.5)
        model = fit_oe(ident, nb=2, nf=2, nk=1)
        result = compare(model, valid)
        assert result["beats_baseline"]
        assert result["mse"] < result["baseline_mse"]
        assert result["fit_percentage"] > 50.0


# ============================================================================
# Prediction and Simulation
# ============================================================================


class TestPrediction:
    def test_arx_one_step_exact_on_noiseless(self, noiseless_data):
        model = fit_arx(noiseless_data, na=2, nb=2)
        prediction = predict(model, noiseless_data, horizon=1)
        assert prediction["horizon"] == 1
        assert_allclose(prediction["residuals"], 0.0, atol=1e-9)

    def test_arx_k_step_exact_on_noiseless(self, noiseless_data):
        model = fit_arx(noiseless_data, na=2, nb=2)
        prediction = predict(model, noiseless_data, horizon=5)
        assert_allclose(prediction["y_hat"], noiseless_data["y"], atol=1e-8)

    def test_arx_horizon_zero_is_simulation(self, noiseless_data):
        model = fit_arx(noiseless_data, na=2, nb=2)
        prediction = predict(model, noiseless_data, horizon=0, estimate_initial_state=False)
        assert_allclose(prediction["y_hat"], simulate_model(model, noiseless_data["u"]))

    def test_longer_horizon_worse_on_equation_error_data(self, t, u):
        # ARX-structured noise: the one-step predictor is optimal
        e = np.random.default_rng(2).normal(0.0, 0.1, t.size)
        y = signal.lfilter(np.r_[0.0, B_TRUE], F_TRUE, u) + signal.lfilter([1.0], F_TRUE, e)
        data = make_sample_data(t, u, y)
        model = fit_arx(data, na=2, nb=2)
        one = compare(model, data, horizon=1)
        ten = compare(model, data, horizon=10)
        assert one["mse"] < ten["mse"]

    def test_oe_prediction_is_simulation_for_any_horizon(self, noiseless_data):
        model = fit_oe(noiseless_data, nb=2, nf=2)
        p1 = predict(model, noiseless_data, horizon=1, estimate_initial_state=False)
        p5 = predict(model, noiseless_data, horizon=5, estimate_initial_state=False)
        assert_allclose(p1["y_hat"], p5["y_hat"])
        assert_allclose(p1["y_hat"], simulate_model(model, noiseless_data["u"]))

    def test_initial_state_estimate_on_mid_record(self, noiseless_data):
        model = fit_oe(noiseless_data, nb=2, nf=2)
        _, valid = split_data(noiseless_data, 0.5)
        estimated = predict(model, valid, horizon=0)
        at_rest = predict(model, valid, horizon=0, estimate_initial_state=False)
        assert_allclose(estimated["residuals"], 0.0, atol=1e-5)
        assert np.max(np.abs(at_rest["residuals"])) > 1e-3

    def test_negative_horizon(self, noiseless_data):
        model = fit_arx(noiseless_data, na=2, nb=2)
        with pytest.raises(ValueError, match="horizon"):
            predict(model, noiseless_data, horizon=-1)


# ============================================================================
# Stabilization and Conversion
# ============================================================================


class TestStabilize:
    def test_reflects_unstable_root(self):
        # roots 2 and 0.5 → 0.5 and 0.5
        assert_allclose(stabilize_polynomial([1.0, -2.5, 1.0]), [1.0, -1.0, 0.25])

    def test_stable_unchanged(self):
        assert_allclose(stabilize_polynomial(F_TRUE), F_TRUE)

    def test_complex_pair(self):
        F = np.real(np.poly([1.5 * np.exp(0.3j), 1.5 * np.exp(-0.3j)]))
        stable = stabilize_polynomial(F)
        assert_allclose(np.abs(np.roots(stable)), [1 / 1.5, 1 / 1.5])

    def test_warning_when_fit_is_reflected(self, t, u):
        # data from an unstable filter, which the OE optimum must reproduce
        y = signal.lfilter([0.0, 1.0], [1.0, -1.01], u[:60])
        data = make_sample_data(t[:60], u[:60], y)
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            model = fit_oe(data, nb=1, nf=1, x0=[1.0, -1.01])
        assert any("reflected" in str(w.message) for w in caught)
        assert abs(np.roots(model["F"])[0]) < 1.0


class TestConversion:
    def test_transfer_function(self, noiseless_data):
        model = fit_oe(noiseless_data, nb=2, nf=2)
        G = to_transfer_function(model)
        assert G.dt == pytest.approx(DT)
        assert_allclose(np.sort_complex(control.poles(G)), np.sort_complex(np.roots(F_TRUE)), atol=1e-6)
        # DC gain B(1)/F(1)
        assert np.isclose(control.dcgain(G), B_TRUE.sum() / F_TRUE.sum(), rtol=1e-6)

    def test_state_space(self, noiseless_data):
        model = fit_arx(noiseless_data, na=2, nb=2)
        sys = to_state_space(model)
        assert sys.is_discrete
        assert sys.nx == 2
        assert_allclose(np.sort_complex(sys.poles()), np.sort_complex(np.roots(F_TRUE)), atol=1e-8)

    def test_delay_in_numerator(self):
        model = {"B": np.array([1.0]), "F": np.array([1.0, -0.5]), "nk": 3, "dt": 1.0, "method": "oe"}
        G = to_transfer_function(model)
        # z⁻³ / (1 - 0.5 z⁻¹) = 1 / (z³ - 0.5 z²)
        assert len(control.poles(G)) == 3

    def test_unknown_method(self):
        with pytest.raises(ValueError, match="Unknown model method"):
            simulate_model({"B": [1.0], "nk": 1, "method": "bj"}, np.ones(5))
