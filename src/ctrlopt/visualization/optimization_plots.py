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
Optimization Plotter - Trajectory Plans and Experiment Designs

Main Class
----------
OptimizationPlotter
    plot_trajectory_plan() : Planar trajectory over its safe regions
    plot_experiment_design() : Integer allocation per candidate experiment

Usage
-----
>>> plan = plan_trajectory(regions, start, goal, n_pieces=3)
>>> fig = OptimizationPlotter().plot_trajectory_plan(plan, regions)
"""

from typing import List, Optional, Sequence

import numpy as np
import plotly.graph_objects as go
from scipy import optimize, spatial

from ctrlopt.optimization.trajectory_planning import SafeRegion, evaluate_trajectory
from ctrlopt.types.optimization import ExperimentDesignResult, TrajectoryPlanResult
from ctrlopt.visualization.themes import ColorSchemes, PlotThemes, with_alpha


def polygon_vertices(region: SafeRegion) -> np.ndarray:
    """
    Vertices of a bounded planar region in counter-clockwise order.

    The Chebyshev center (largest inscribed ball, one LP) serves as the
    interior point scipy's HalfspaceIntersection needs.
    """
    if region.dim != 2:
        raise ValueError(f"Only planar regions can be drawn, got dim={region.dim}")
    norms = np.linalg.norm(region.A, axis=1)
    lp = optimize.linprog(
        c=[0.0, 0.0, -1.0],
        A_ub=np.hstack([region.A, norms[:, None]]),
        b_ub=region.b,
        bounds=[(None, None), (None, None), (0.0, None)],
    )
    if not lp.success or lp.x[2] <= 0:
        raise ValueError("Region has no interior; cannot draw it")
    halfspaces = np.hstack([region.A, -region.b[:, None]])
    points = spatial.HalfspaceIntersection(halfspaces, lp.x[:2]).intersections
    hull = spatial.ConvexHull(points)
    return points[hull.vertices]


class OptimizationPlotter:
    """Figures for mixed-integer optimization results."""

    def __init__(self, default_theme: str = "default"):
        PlotThemes.get_theme(default_theme)
        self.default_theme = default_theme

    def plot_trajectory_plan(
        self,
        plan: TrajectoryPlanResult,
        regions: Sequence[SafeRegion],
        start: Optional[np.ndarray] = None,
        goal: Optional[np.ndarray] = None,
        samples_per_piece: int = 50,
        title: str = "Trajectory Plan",
        color_scheme: str = "plotly",
        theme: Optional[str] = None,
    ) -> go.Figure:
        """
        Draw a planar plan: regions as filled polygons, each trajectory
        piece colored like the region it was assigned to.

        Parameters
        ----------
        plan : TrajectoryPlanResult
            Optimal output of ``plan_trajectory``
        regions : Sequence[SafeRegion]
            Regions the plan was computed for (dim 2)
        start, goal : Optional[np.ndarray]
            Marked when given
        samples_per_piece : int
            Evaluation points per piece

        Returns
        -------
        go.Figure
        """
        if theme is None:
            theme = self.default_theme
        if "coefficients" not in plan:
            raise ValueError(f"Plan has no trajectory (status {plan.get('status')})")

        coefficients = np.asarray(plan["coefficients"], dtype=float)
        n_pieces, dim, _ = coefficients.shape
        if dim != 2:
            raise ValueError(f"Only planar trajectories can be drawn, got dim={dim}")
        colors = ColorSchemes.get_colors(color_scheme, len(regions))

        fig = go.Figure()
        for r, region in enumerate(regions):
            vertices = polygon_vertices(region)
            closed = np.vstack([vertices, vertices[:1]])
            fig.add_trace(
                go.Scatter(
                    x=closed[:, 0],
                    y=closed[:, 1],
                    mode="lines",
                    fill="toself",
                    fillcolor=with_alpha(colors[r], 0.2),
                    line=dict(color=colors[r], width=1),
                    name=f"Region {r}",
                ),
            )

        assignments = np.asarray(plan["assignments"], dtype=int)
        for p in range(n_pieces):
            s = np.linspace(p, p + 1, samples_per_piece)
            points = evaluate_trajectory(coefficients, s)
            fig.add_trace(
                go.Scatter(
                    x=points[:, 0],
                    y=points[:, 1],
                    mode="lines",
                    line=dict(color=colors[assignments[p]], width=3),
                    name=f"Piece {p} (region {assignments[p]})",
                ),
            )

        breakpoints = evaluate_trajectory(coefficients, np.arange(n_pieces + 1))
        fig.add_trace(
            go.Scatter(
                x=breakpoints[:, 0],
                y=breakpoints[:, 1],
                mode="markers",
                marker=dict(color="black", size=6),
                name="Breakpoints",
            ),
        )
        for point, label, symbol in ((start, "Start", "circle"), (goal, "Goal", "star")):
            if point is not None:
                point = np.asarray(point, dtype=float).ravel()
                fig.add_trace(
                    go.Scatter(
                        x=[point[0]],
                        y=[point[1]],
                        mode="markers",
                        marker=dict(color="black", size=14, symbol=symbol),
                        name=label,
                    ),
                )

        fig.update_layout(
            title=title,
            xaxis_title="x₁",
            yaxis_title="x₂",
            width=800,
            height=700,
            showlegend=True,
        )
        fig.update_yaxes(scaleanchor="x", scaleratio=1)

        return PlotThemes.apply_theme(fig, theme=theme)

    def plot_experiment_design(
        self,
        design: ExperimentDesignResult,
        labels: Optional[List[str]] = None,
        upper: Optional[np.ndarray] = None,
        title: Optional[str] = None,
        theme: Optional[str] = None,
    ) -> go.Figure:
        """Bar chart of the optimal counts, with upper bounds as markers."""
        if theme is None:
            theme = self.default_theme
        if "allocation" not in design:
            raise ValueError(f"Design has no allocation (status {design.get('status')})")

        allocation = np.asarray(design["allocation"], dtype=int)
        if labels is None:
            labels = [f"v{i}" for i in range(allocation.size)]
        if len(labels) != allocation.size:
            raise ValueError(f"Got {len(labels)} labels for {allocation.size} candidates")

        fig = go.Figure()
        fig.add_trace(
            go.Bar(
                x=labels,
                y=allocation,
                marker_color=ColorSchemes.PLOTLY[0],
                text=allocation,
                textposition="outside",
                name="Allocation",
            ),
        )
        if upper is not None:
            fig.add_trace(
                go.Scatter(
                    x=labels,
                    y=np.asarray(upper, dtype=float),
                    mode="markers",
                    marker=dict(color=ColorSchemes.BOUND, symbol="line-ew-open", size=24),
                    name="Upper bound",
                ),
            )

        criterion = design["criterion"]
        measure = "log det M" if criterion == "D" else "trace M⁻¹"
        if title is None:
            title = f"{criterion}-optimal design ({measure} = {design['objective']:.4g})"
        fig.update_layout(
            title=title,
            xaxis_title="Candidate experiment",
            yaxis_title="Runs",
            width=700,
            height=450,
            showlegend=upper is not None,
        )

        return PlotThemes.apply_theme(fig, theme=theme)


__all__ = ["OptimizationPlotter", "polygon_vertices"]
