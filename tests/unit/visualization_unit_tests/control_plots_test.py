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
Unit Tests for Control Plotter

Tests eigenvalue maps, step responses, root loci, and identification
figures (model comparison and residual correlation).
"""

import numpy as np
import plotly.graph_objects as go
import pytest

from ctrlopt.control import compute_root_locus
from ctrlopt.identification import compare, fit_arx, residual_analysis
from ctrlopt.systems import DCMotor
from ctrlopt.utils import make_sample_data
from ctrlopt.visualization.control_plots import ControlPlotter

# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def plotter():
    return ControlPlotter()


@pytest.fixture
def stable_eigenvalues_continuous():
    return np.array([-1.0 + 2.0j, -1.0 - 2.0j, -2.0, -3.0])


@pytest.fixture
def stable_eigenvalues_discrete():
    return np.array([0.5 + 0.3j, 0.5 - 0.3j, 0.7, 0.4])


@pytest.fixture
def identification_run():
    """First-order ARX data, fitted model and validation output."""
    rng = np.random.default_rng(0)
    n = 200
    u = rng.choice([-1.0, 1.0], size=n)
    y = np.zeros(n)
    for k in range(1, n):
        y[k] = 0.8 * y[k - 1] + 0.5 * u[k - 1] + 0.01 * rng.normal()
    data = make_sample_data(np.arange(n) * 0.1, u, y)
    model = fit_arx(data, na=1, nb=1, nk=1)
    validation = compare(model, data, horizon=1)
    return data, validation


def trace_names(fig: go.Figure):
    return [trace.name for trace in fig.data]


# ============================================================================
# Construction
# ============================================================================


class TestControlPlotterInit:
    def test_default_theme(self):
        assert ControlPlotter().default_theme == "default"

    def test_invalid_theme(self):
        with pytest.raises(ValueError):
            ControlPlotter(default_theme="neon")

    def test_list_available_themes(self):
        assert ControlPlotter.list_available_themes() == ["default", "publication", "dark"]


# ============================================================================
# Eigenvalue Map
# ============================================================================


class TestEigenvalueMap:
    def test_continuous(self, plotter, stable_eigenvalues_continuous):
        fig = plotter.plot_eigenvalue_map(stable_eigenvalues_continuous)

        assert isinstance(fig, go.Figure)
        eig_trace = next(tr for tr in fig.data if tr.name == "Eigenvalues")
        assert len(eig_trace.x) == 4
        # margin annotation at the rightmost eigenvalue
        assert any("Margin = 1.000" in ann.text for ann in fig.layout.annotations)

    def test_discrete_draws_unit_circle(self, plotter, stable_eigenvalues_discrete):
        fig = plotter.plot_eigenvalue_map(stable_eigenvalues_discrete, system_type="discrete")
        assert "Unit Circle" in trace_names(fig)
        assert any("Margin = 0.300" in ann.text for ann in fig.layout.annotations)

    def test_without_margin(self, plotter, stable_eigenvalues_continuous):
        fig = plotter.plot_eigenvalue_map(stable_eigenvalues_continuous, show_stability_margin=False)
        assert not any("Margin" in (ann.text or "") for ann in fig.layout.annotations)

    def test_invalid_system_type(self, plotter, stable_eigenvalues_continuous):
        with pytest.raises(ValueError, match="system_type"):
            plotter.plot_eigenvalue_map(stable_eigenvalues_continuous, system_type="hybrid")

    def test_title_and_theme(self, plotter, stable_eigenvalues_continuous):
        fig = plotter.plot_eigenvalue_map(
            stable_eigenvalues_continuous, title="Motor Loop", theme="dark"
        )
        assert fig.layout.title.text == "Motor Loop"


# ============================================================================
# Step Response
# ============================================================================


class TestStepResponse:
    @pytest.fixture
    def response(self):
        t = np.linspace(0.0, 5.0, 501)
        return t, 1.0 - np.exp(-2.0 * t)

    def test_basic(self, plotter, response):
        fig = plotter.plot_step_response(*response)
        assert trace_names(fig) == ["Response", "Reference"]
        np.testing.assert_allclose(fig.data[1].y, 1.0)

    def test_with_info(self, plotter, response):
        info = {
            "rise_time": 1.1,
            "settling_time": 1.95,
            "overshoot": 0.0,
            "peak": 1.0,
            "peak_time": 5.0,
            "steady_state_value": 1.0,
        }
        fig = plotter.plot_step_response(*response, info=info)
        assert any("Rise Time: 1.100 s" in ann.text for ann in fig.layout.annotations)
        assert len(fig.layout.shapes) == 1

    def test_multi_output_uses_first(self, plotter, response):
        t, y = response
        fig = plotter.plot_step_response(t, np.column_stack([y, 2 * y]))
        np.testing.assert_allclose(fig.data[0].y, y)

    def test_length_mismatch(self, plotter, response):
        t, y = response
        with pytest.raises(ValueError, match="samples"):
            plotter.plot_step_response(t, y[:-1])


# ============================================================================
# Root Locus
# ============================================================================


class TestRootLocus:
    def test_dc_motor_locus(self, plotter):
        locus = compute_root_locus(DCMotor().speed_transfer_function(), n_gains=100)
        fig = plotter.plot_root_locus(locus)

        names = trace_names(fig)
        assert "Branch 1" in names and "Branch 2" in names
        assert "Open-loop poles" in names
        assert "Zeros" not in names
        assert any("Stable for" in ann.text for ann in fig.layout.annotations if ann.text)
        branch = next(tr for tr in fig.data if tr.name == "Branch 1")
        assert len(branch.x) == 100

    def test_zeros_drawn(self, plotter):
        locus = compute_root_locus([1.0, 3.0], [1.0, 3.0, 2.0, 0.0], n_gains=50)
        fig = plotter.plot_root_locus(locus, show_grid=False)
        assert "Zeros" in trace_names(fig)

    def test_discrete_region(self, plotter):
        locus = compute_root_locus([1.0], [1.0, -0.5], gains=[0.0, 0.5, 1.0], system_type="discrete")
        fig = plotter.plot_root_locus(locus, system_type="discrete")
        assert "Unit Circle" in trace_names(fig)

    def test_malformed_locus(self, plotter):
        with pytest.raises(ValueError, match="poles must be"):
            plotter.plot_root_locus({"gains": np.arange(3.0), "poles": np.zeros((2, 1))})


# ============================================================================
# Identification Figures
# ============================================================================


class TestIdentificationPlots:
    def test_comparison(self, plotter, identification_run):
        data, validation = identification_run
        fig = plotter.plot_identification_comparison(data, validation)

        assert trace_names(fig) == ["Measured", "1-step prediction", "Residual"]
        assert len(fig.data[0].x) == 200
        assert any("Fit:" in ann.text for ann in fig.layout.annotations if ann.text)

    def test_comparison_length_mismatch(self, plotter, identification_run):
        data, validation = identification_run
        short = dict(data, t=data["t"][:-1])
        with pytest.raises(ValueError, match="samples"):
            plotter.plot_identification_comparison(short, validation)

    def test_residual_analysis_with_input(self, plotter, identification_run):
        data, validation = identification_run
        analysis = residual_analysis(validation["prediction"]["residuals"], u=data["u"], max_lag=10)
        fig = plotter.plot_residual_analysis(analysis)

        bars = [tr for tr in fig.data if isinstance(tr, go.Bar)]
        assert len(bars) == 2
        assert len(bars[0].x) == 11
        assert len(bars[1].x) == 21
        assert len(fig.layout.shapes) == 4

    def test_residual_analysis_without_input(self, plotter, identification_run):
        _, validation = identification_run
        analysis = residual_analysis(validation["prediction"]["residuals"], max_lag=5)
        fig = plotter.plot_residual_analysis(analysis)
        assert len(fig.data) == 1
