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
Unit Tests for Optimization Plotter

Plans and designs are built by hand so no MICP solver is needed.
"""

import numpy as np
import plotly.graph_objects as go
import pytest
from numpy.testing import assert_allclose

from ctrlopt.optimization.trajectory_planning import SafeRegion
from ctrlopt.types.optimization import MICPStatus
from ctrlopt.visualization.optimization_plots import OptimizationPlotter, polygon_vertices

# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def plotter():
    return OptimizationPlotter()


@pytest.fixture
def regions():
    return [SafeRegion.box([0.0, 0.0], [2.0, 1.0]), SafeRegion.box([1.0, 0.0], [2.0, 3.0])]


@pytest.fixture
def plan():
    """Two linear pieces: (0.5, 0.5) → (1.5, 0.5) → (1.5, 2.5)."""
    coefficients = np.array(
        [
            [[0.5, 1.0], [0.5, 0.0]],
            [[1.5, 0.0], [0.5, 2.0]],
        ]
    )
    return {
        "status": MICPStatus.OPTIMAL,
        "coefficients": coefficients,
        "assignments": np.array([0, 1]),
        "objective": 0.0,
    }


@pytest.fixture
def design():
    return {
        "status": MICPStatus.OPTIMAL,
        "criterion": "D",
        "allocation": np.array([3, 0, 3]),
        "objective": float(np.log(36.0)),
    }


# ============================================================================
# Polygon Vertices
# ============================================================================


class TestPolygonVertices:
    def test_box(self):
        vertices = polygon_vertices(SafeRegion.box([0.0, 0.0], [2.0, 1.0]))
        assert vertices.shape == (4, 2)
        assert_allclose(
            sorted(map(tuple, np.round(vertices, 9))),
            [(0.0, 0.0), (0.0, 1.0), (2.0, 0.0), (2.0, 1.0)],
            atol=1e-9,
        )

    def test_triangle(self):
        triangle = SafeRegion([[-1.0, 0.0], [0.0, -1.0], [1.0, 1.0]], [0.0, 0.0, 2.0])
        vertices = polygon_vertices(triangle)
        assert vertices.shape == (3, 2)

    def test_not_planar(self):
        with pytest.raises(ValueError, match="planar"):
            polygon_vertices(SafeRegion.box([0.0, 0.0, 0.0], [1.0, 1.0, 1.0]))

    def test_degenerate_region(self):
        # a segment has no interior
        segment = SafeRegion.box([0.0, 1.0], [2.0, 1.0])
        with pytest.raises(ValueError, match="no interior"):
            polygon_vertices(segment)


# ============================================================================
# Trajectory Plan
# ============================================================================


class TestTrajectoryPlanPlot:
    def test_traces(self, plotter, plan, regions):
        fig = plotter.plot_trajectory_plan(plan, regions, start=[0.5, 0.5], goal=[1.5, 2.5])

        names = [trace.name for trace in fig.data]
        assert names[:2] == ["Region 0", "Region 1"]
        assert "Piece 0 (region 0)" in names
        assert "Piece 1 (region 1)" in names
        assert "Start" in names and "Goal" in names

        breakpoints = next(tr for tr in fig.data if tr.name == "Breakpoints")
        assert_allclose(breakpoints.x, [0.5, 1.5, 1.5])
        assert_allclose(breakpoints.y, [0.5, 0.5, 2.5])

    def test_piece_color_follows_region(self, plotter, plan, regions):
        fig = plotter.plot_trajectory_plan(plan, regions)
        region_color = fig.data[1].line.color
        piece = next(tr for tr in fig.data if tr.name == "Piece 1 (region 1)")
        assert piece.line.color == region_color

    def test_samples_per_piece(self, plotter, plan, regions):
        fig = plotter.plot_trajectory_plan(plan, regions, samples_per_piece=7)
        piece = next(tr for tr in fig.data if tr.name.startswith("Piece 0"))
        assert len(piece.x) == 7

    def test_infeasible_plan(self, plotter, regions):
        with pytest.raises(ValueError, match="no trajectory"):
            plotter.plot_trajectory_plan({"status": MICPStatus.INFEASIBLE}, regions)

    def test_three_dimensional_plan(self, plotter, regions):
        plan3 = {"coefficients": np.zeros((1, 3, 4)), "assignments": np.array([0])}
        with pytest.raises(ValueError, match="planar"):
            plotter.plot_trajectory_plan(plan3, regions)


# ============================================================================
# Experiment Design
# ============================================================================


class TestExperimentDesignPlot:
    def test_bars(self, plotter, design):
        fig = plotter.plot_experiment_design(design, labels=["x=-1", "x=0", "x=1"])

        assert isinstance(fig.data[0], go.Bar)
        assert list(fig.data[0].x) == ["x=-1", "x=0", "x=1"]
        assert list(fig.data[0].y) == [3, 0, 3]
        assert "D-optimal" in fig.layout.title.text
        assert fig.layout.showlegend is False

    def test_upper_bounds(self, plotter, design):
        fig = plotter.plot_experiment_design(design, upper=[4, 4, 4])
        assert len(fig.data) == 2
        assert fig.data[1].name == "Upper bound"
        assert list(fig.data[0].x) == ["v0", "v1", "v2"]

    def test_a_criterion_title(self, plotter, design):
        design = dict(design, criterion="A", objective=1.0 / 3.0)
        fig = plotter.plot_experiment_design(design)
        assert "trace" in fig.layout.title.text

    def test_label_count(self, plotter, design):
        with pytest.raises(ValueError, match="labels"):
            plotter.plot_experiment_design(design, labels=["a", "b"])

    def test_no_allocation(self, plotter):
        with pytest.raises(ValueError, match="no allocation"):
            plotter.plot_experiment_design({"status": MICPStatus.ERROR, "criterion": "D"})
