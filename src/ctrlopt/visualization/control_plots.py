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
Control Plotter - Control and Identification Visualizations

Interactive Plotly figures for the analysis steps of a control study.

Key Features
------------
- Eigenvalue maps: stability region for continuous or discrete systems
- Step response: closed-loop response with performance metrics
- Root locus: pole branches against gain with asymptotes and stable range
- Identification: measured vs. predicted output with fit metrics
- Residual analysis: correlation tests with 95% confidence bands

Main Class
----------
ControlPlotter : Control system analysis visualization
    plot_eigenvalue_map() : Eigenvalue location with stability regions
    plot_step_response() : Step response with performance metrics
    plot_root_locus() : Root locus from compute_root_locus output
    plot_identification_comparison() : Model output against validation data
    plot_residual_analysis() : Residual whiteness and independence

Usage
-----
>>> from ctrlopt.visualization import ControlPlotter
>>> plotter = ControlPlotter()
>>> locus = compute_root_locus(motor.speed_transfer_function())
>>> fig = plotter.plot_root_locus(locus, theme='publication')
>>> fig.show()
"""

from typing import List, Optional

import numpy as np
import plotly.graph_objects as go
from plotly.subplots import make_subplots

from ctrlopt.types.control_classical import RootLocusResult, StepInfo
from ctrlopt.types.identification import ResidualAnalysis, ValidationResult
from ctrlopt.types.trajectories import SampleData
from ctrlopt.visualization.themes import ColorSchemes, PlotThemes


class ControlPlotter:
    """
    Control system analysis visualization.

    Attributes
    ----------
    default_theme : str
        Theme applied when a plot call does not name one

    Examples
    --------
    >>> plotter = ControlPlotter(default_theme='publication')
    >>> result = design_lqr(A, B, Q, R, system_type='continuous')
    >>> fig = plotter.plot_eigenvalue_map(result['closed_loop_eigenvalues'])
    """

    def __init__(self, default_theme: str = "default"):
        PlotThemes.get_theme(default_theme)
        self.default_theme = default_theme

    # =========================================================================
    # Main Plotting Methods
    # =========================================================================

    def plot_eigenvalue_map(
        self,
        eigenvalues: np.ndarray,
        system_type: str = "continuous",
        title: str = "Closed-Loop Eigenvalues",
        show_stability_margin: bool = True,
        theme: Optional[str] = None,
    ) -> go.Figure:
        """
        Plot eigenvalues with stability region.

        Parameters
        ----------
        eigenvalues : np.ndarray
            Complex eigenvalues, shape (n,)
        system_type : str
            'continuous' (Re(λ) < 0) or 'discrete' (|λ| < 1)
        title : str
            Plot title
        show_stability_margin : bool
            If True, annotate the stability margin at the critical eigenvalue
        theme : Optional[str]
            Plot theme; self.default_theme if None

        Returns
        -------
        go.Figure
            Eigenvalue map with stability region
        """
        if theme is None:
            theme = self.default_theme
        if system_type not in ("continuous", "discrete"):
            raise ValueError(f"system_type must be 'continuous' or 'discrete', got '{system_type}'")

        eigs = np.atleast_1d(np.asarray(eigenvalues, dtype=complex))
        fig = go.Figure()
        self._draw_stability_region(fig, system_type)

        fig.add_trace(
            go.Scatter(
                x=np.real(eigs),
                y=np.imag(eigs),
                mode="markers",
                name="Eigenvalues",
                marker=dict(
                    color=ColorSchemes.PLOTLY[0],
                    size=12,
                    symbol="circle",
                    line=dict(color="white", width=2),
                ),
                hovertemplate="λ = %{x:.4f} + %{y:.4f}j<br>|λ| = %{text:.4f}<extra></extra>",
                text=np.abs(eigs),
            ),
        )

        if system_type == "continuous":
            real_min = min(-1, np.min(np.real(eigs)) - 0.5)
            real_max = max(1, np.max(np.real(eigs)) + 0.5)
            imag_range = max(2, np.max(np.abs(np.imag(eigs))) + 0.5)
            imag_min, imag_max = -imag_range, imag_range
            critical = eigs[np.argmax(np.real(eigs))]
            margin = -np.real(critical)
        else:
            max_mag = max(1.2, np.max(np.abs(eigs)) + 0.2)
            real_min, real_max = -max_mag, max_mag
            imag_min, imag_max = -max_mag, max_mag
            critical = eigs[np.argmax(np.abs(eigs))]
            margin = 1.0 - np.abs(critical)

        if show_stability_margin:
            fig.add_annotation(
                x=np.real(critical),
                y=np.imag(critical),
                text=f"Margin = {margin:.3f}",
                showarrow=True,
                arrowhead=2,
                arrowsize=1,
                arrowwidth=2,
                ax=50,
                ay=-50,
            )

        fig.update_layout(
            title=title,
            xaxis_title="Real Part",
            yaxis_title="Imaginary Part",
            width=700,
            height=600,
            xaxis=dict(range=[real_min, real_max], zeroline=True),
            yaxis=dict(range=[imag_min, imag_max], zeroline=True),
            showlegend=True,
        )
        fig.update_yaxes(scaleanchor="x", scaleratio=1)

        return PlotThemes.apply_theme(fig, theme=theme)

    def plot_step_response(
        self,
        t: np.ndarray,
        y: np.ndarray,
        reference: float = 1.0,
        info: Optional[StepInfo] = None,
        title: str = "Step Response",
        theme: Optional[str] = None,
    ) -> go.Figure:
        """
        Plot a step response with performance metrics.

        Parameters
        ----------
        t : np.ndarray
            Time points, shape (T,)
        y : np.ndarray
            Output response, shape (T,) or (T, ny); the first output is drawn
        reference : float
            Reference level drawn as a dashed line
        info : Optional[StepInfo]
            Metrics from ``step_info``; when given they are annotated and
            the settling time is marked
        title : str
            Plot title
        theme : Optional[str]
            Plot theme; self.default_theme if None

        Returns
        -------
        go.Figure
            Step response plot
        """
        if theme is None:
            theme = self.default_theme

        t_np = np.asarray(t, dtype=float)
        y_np = np.asarray(y, dtype=float)
        if y_np.ndim > 1:
            y_np = y_np[:, 0]
        if y_np.shape != t_np.shape:
            raise ValueError(f"y has {y_np.shape[0]} samples but t has {t_np.shape[0]}")

        fig = go.Figure()
        fig.add_trace(
            go.Scatter(
                x=t_np,
                y=y_np,
                mode="lines",
                name="Response",
                line=dict(color=ColorSchemes.PLOTLY[0], width=2),
            ),
        )
        fig.add_trace(
            go.Scatter(
                x=t_np,
                y=np.full_like(t_np, reference),
                mode="lines",
                name="Reference",
                line=dict(color=ColorSchemes.BOUND, width=2, dash="dash"),
            ),
        )

        if info is not None:
            metrics_text = "<b>Performance Metrics:</b><br>"
            metrics_text += f"Rise Time: {info['rise_time']:.3f} s<br>"
            metrics_text += f"Settling Time: {info['settling_time']:.3f} s<br>"
            metrics_text += f"Overshoot: {info['overshoot']:.2f}%<br>"
            metrics_text += f"Peak Time: {info['peak_time']:.3f} s<br>"
            metrics_text += f"Steady State: {info['steady_state_value']:.4f}"
            fig.add_annotation(
                text=metrics_text,
                xref="paper",
                yref="paper",
                x=0.98,
                y=0.02,
                xanchor="right",
                yanchor="bottom",
                showarrow=False,
                bgcolor="rgba(255, 255, 255, 0.8)",
                bordercolor="black",
                borderwidth=1,
            )
            if np.isfinite(info["settling_time"]):
                fig.add_vline(x=info["settling_time"], line_dash="dot", line_color=ColorSchemes.BOUND)

        fig.update_layout(
            title=title,
            xaxis_title="Time (s)",
            yaxis_title="Output",
            width=800,
            height=500,
            showlegend=True,
        )

        return PlotThemes.apply_theme(fig, theme=theme)

    def plot_root_locus(
        self,
        locus: RootLocusResult,
        title: str = "Root Locus",
        system_type: str = "continuous",
        show_grid: bool = True,
        color_scheme: str = "plotly",
        theme: Optional[str] = None,
    ) -> go.Figure:
        """
        Plot root locus branches.

        Parameters
        ----------
        locus : RootLocusResult
            Output of ``compute_root_locus``
        title : str
            Plot title
        system_type : str
            'continuous' or 'discrete' (stability region drawn)
        show_grid : bool
            If True, draw the stability region
        color_scheme : str
            Palette for the branches
        theme : Optional[str]
            Plot theme; self.default_theme if None

        Returns
        -------
        go.Figure
            Root locus plot

        Notes
        -----
        Each branch starts at an open-loop pole (k = 0, circle) and moves
        toward a zero or along an asymptote (cross marks the last gain).
        """
        if theme is None:
            theme = self.default_theme

        gains = np.asarray(locus["gains"], dtype=float)
        poles = np.asarray(locus["poles"], dtype=complex)
        if poles.ndim != 2 or poles.shape[0] != gains.size:
            raise ValueError(f"poles must be ({gains.size}, n_poles), got {poles.shape}")
        n_poles = poles.shape[1]
        colors = ColorSchemes.get_colors(color_scheme, n_poles)

        fig = go.Figure()
        if show_grid:
            self._draw_stability_region(fig, system_type)

        for idx in range(n_poles):
            branch = poles[:, idx]
            fig.add_trace(
                go.Scatter(
                    x=np.real(branch),
                    y=np.imag(branch),
                    mode="lines",
                    name=f"Branch {idx + 1}",
                    line=dict(color=colors[idx], width=2),
                    customdata=gains,
                    hovertemplate="k = %{customdata:.4g}<br>s = %{x:.4f} + %{y:.4f}j<extra></extra>",
                ),
            )

        fig.add_trace(
            go.Scatter(
                x=np.real(poles[0]),
                y=np.imag(poles[0]),
                mode="markers",
                name="Open-loop poles",
                marker=dict(color="black", size=10, symbol="x"),
            ),
        )

        zeros = np.asarray(locus.get("open_loop_zeros", []), dtype=complex)
        if zeros.size:
            fig.add_trace(
                go.Scatter(
                    x=np.real(zeros),
                    y=np.imag(zeros),
                    mode="markers",
                    name="Zeros",
                    marker=dict(color="black", size=12, symbol="circle-open"),
                ),
            )

        center = locus.get("asymptote_center", np.nan)
        angles = np.asarray(locus.get("asymptote_angles", []), dtype=float)
        if angles.size and np.isfinite(center):
            reach = np.max(np.abs(poles[-1] - center))
            for angle in angles:
                fig.add_trace(
                    go.Scatter(
                        x=[center, center + reach * np.cos(angle)],
                        y=[0.0, reach * np.sin(angle)],
                        mode="lines",
                        line=dict(color=ColorSchemes.BOUND, width=1, dash="dash"),
                        showlegend=False,
                        hoverinfo="skip",
                    ),
                )

        stable_range = locus.get("stable_gain_range")
        if stable_range is not None:
            fig.add_annotation(
                text=f"Stable for {stable_range[0]:.4g} ≤ k ≤ {stable_range[1]:.4g}",
                xref="paper",
                yref="paper",
                x=0.02,
                y=0.98,
                showarrow=False,
                bgcolor="rgba(255, 255, 255, 0.8)",
            )

        fig.update_layout(
            title=title,
            xaxis_title="Real Part",
            yaxis_title="Imaginary Part",
            width=800,
            height=700,
            showlegend=True,
        )
        fig.update_yaxes(scaleanchor="x", scaleratio=1)

        return PlotThemes.apply_theme(fig, theme=theme)

    def plot_identification_comparison(
        self,
        data: SampleData,
        validation: ValidationResult,
        title: str = "Model Validation",
        theme: Optional[str] = None,
    ) -> go.Figure:
        """
        Measured output against model prediction, residuals underneath.

        Parameters
        ----------
        data : SampleData
            The validation data passed to ``compare``
        validation : ValidationResult
            Output of ``compare``
        """
        if theme is None:
            theme = self.default_theme

        t = np.asarray(data["t"], dtype=float)
        y = np.asarray(data["y"], dtype=float).ravel()
        prediction = validation["prediction"]
        y_hat = np.asarray(prediction["y_hat"], dtype=float).ravel()
        if y_hat.size != t.size:
            raise ValueError(f"Prediction has {y_hat.size} samples but data has {t.size}")

        fig = make_subplots(
            rows=2,
            cols=1,
            shared_xaxes=True,
            row_heights=[0.7, 0.3],
            vertical_spacing=0.08,
            subplot_titles=("Output", "Residual"),
        )
        fig.add_trace(
            go.Scatter(
                x=t, y=y, mode="lines", name="Measured", line=dict(color=ColorSchemes.MEASURED)
            ),
            row=1,
            col=1,
        )
        horizon = prediction["horizon"]
        label = "Simulated" if horizon == 0 else f"{horizon}-step prediction"
        fig.add_trace(
            go.Scatter(
                x=t, y=y_hat, mode="lines", name=label, line=dict(color=ColorSchemes.PLOTLY[0])
            ),
            row=1,
            col=1,
        )
        fig.add_trace(
            go.Scatter(
                x=t,
                y=np.asarray(prediction["residuals"], dtype=float).ravel(),
                mode="lines",
                name="Residual",
                line=dict(color=ColorSchemes.PLOTLY[1]),
            ),
            row=2,
            col=1,
        )

        fig.add_annotation(
            text=(
                f"Fit: {validation['fit_percentage']:.1f}%<br>"
                f"VAF: {validation['vaf']:.1f}%<br>"
                f"MSE: {validation['mse']:.3g} (baseline {validation['baseline_mse']:.3g})"
            ),
            xref="paper",
            yref="paper",
            x=0.98,
            y=0.98,
            xanchor="right",
            yanchor="top",
            showarrow=False,
            bgcolor="rgba(255, 255, 255, 0.8)",
            bordercolor="black",
            borderwidth=1,
        )

        fig.update_layout(title=title, width=900, height=600, showlegend=True)
        fig.update_xaxes(title_text="Time (s)", row=2, col=1)

        return PlotThemes.apply_theme(fig, theme=theme)

    def plot_residual_analysis(
        self,
        analysis: ResidualAnalysis,
        title: str = "Residual Analysis",
        theme: Optional[str] = None,
    ) -> go.Figure:
        """
        Residual autocorrelation and input cross-correlation stems with
        the 95% confidence band.
        """
        if theme is None:
            theme = self.default_theme

        cross = analysis.get("cross_correlation")
        rows = 1 if cross is None else 2
        titles = ["Autocorrelation of residuals"]
        if cross is not None:
            titles.append("Cross-correlation residuals / input")
        fig = make_subplots(rows=rows, cols=1, subplot_titles=titles, vertical_spacing=0.15)

        bound = analysis["confidence_bound"]
        lags = np.asarray(analysis["lags"])
        self._add_correlation(fig, lags, analysis["autocorrelation"], bound, row=1)
        if cross is not None:
            max_lag = int(lags[-1])
            self._add_correlation(fig, np.arange(-max_lag, max_lag + 1), cross, bound, row=2)

        fig.update_layout(
            title=title,
            width=800,
            height=350 * rows,
            showlegend=False,
        )
        fig.update_xaxes(title_text="Lag", row=rows, col=1)

        return PlotThemes.apply_theme(fig, theme=theme)

    # =========================================================================
    # Helper Methods (Internal)
    # =========================================================================

    def _add_correlation(self, fig: go.Figure, lags, values, bound: float, row: int) -> None:
        values = np.asarray(values, dtype=float)
        outside = np.abs(values) > bound
        colors = np.where(outside, ColorSchemes.UNSTABLE, ColorSchemes.PLOTLY[0])
        fig.add_trace(
            go.Bar(x=lags, y=values, marker_color=list(colors), width=0.3, name="Correlation"),
            row=row,
            col=1,
        )
        for level in (bound, -bound):
            fig.add_hline(
                y=level, line_dash="dash", line_color=ColorSchemes.BOUND, row=row, col=1
            )

    def _draw_stability_region(self, fig: go.Figure, system_type: str) -> None:
        """Shade the left half-plane or draw the unit circle."""
        if system_type == "continuous":
            fig.add_vline(
                x=0,
                line_width=2,
                line_dash="solid",
                line_color="black",
                annotation_text="Stability Boundary",
                annotation_position="top",
            )
            fig.add_vrect(
                x0=-1e3,
                x1=0,
                fillcolor=ColorSchemes.STABLE,
                opacity=0.08,
                layer="below",
                line_width=0,
            )
            fig.add_vrect(
                x0=0,
                x1=1e3,
                fillcolor=ColorSchemes.UNSTABLE,
                opacity=0.08,
                layer="below",
                line_width=0,
            )
        elif system_type == "discrete":
            theta = np.linspace(0, 2 * np.pi, 100)
            fig.add_trace(
                go.Scatter(
                    x=np.cos(theta),
                    y=np.sin(theta),
                    mode="lines",
                    name="Unit Circle",
                    line=dict(color="black", width=2, dash="solid"),
                    hoverinfo="skip",
                ),
            )
        else:
            raise ValueError(f"system_type must be 'continuous' or 'discrete', got '{system_type}'")

    # =========================================================================
    # Utility Methods
    # =========================================================================

    @staticmethod
    def list_available_themes() -> List[str]:
        """Names accepted by the ``theme`` arguments."""
        return ["default", "publication", "dark"]


__all__ = ["ControlPlotter"]
