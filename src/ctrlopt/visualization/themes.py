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
Plotting Themes and Color Schemes

Shared palettes and layout presets so control, identification and
optimization figures look alike.

Main Classes
------------
ColorSchemes : Named categorical palettes (plotly, colorblind_safe, tableau)
PlotThemes : Layout presets (default, publication, dark)

Usage
-----
>>> from ctrlopt.visualization.themes import ColorSchemes, PlotThemes
>>> colors = ColorSchemes.get_colors('colorblind_safe', n_colors=5)
>>> fig = PlotThemes.apply_theme(fig, theme='publication')
"""

from typing import Dict, List, Optional, Union

import plotly.graph_objects as go


class ColorSchemes:
    """
    Categorical color palettes.

    Attributes
    ----------
    PLOTLY : List[str]
        Default Plotly sequence
    COLORBLIND_SAFE : List[str]
        Wong palette
    TABLEAU : List[str]
        Tableau 10
    """

    PLOTLY = [
        "#636EFA",
        "#EF553B",
        "#00CC96",
        "#AB63FA",
        "#FFA15A",
        "#19D3F3",
        "#FF6692",
        "#B6E880",
        "#FF97FF",
        "#FECB52",
    ]

    COLORBLIND_SAFE = [
        "#0173B2",
        "#DE8F05",
        "#029E73",
        "#CC78BC",
        "#CA9161",
        "#949494",
        "#ECE133",
        "#56B4E9",
    ]

    TABLEAU = [
        "#4E79A7",
        "#F28E2B",
        "#E15759",
        "#76B7B2",
        "#59A14F",
        "#EDC948",
        "#B07AA1",
        "#FF9DA7",
        "#9C755F",
        "#BAB0AC",
    ]

    # Fixed roles used across plots
    MEASURED = "#444444"
    STABLE = "#029E73"
    UNSTABLE = "#D62728"
    BOUND = "#949494"

    @staticmethod
    def get_colors(scheme: str = "plotly", n_colors: Optional[int] = None) -> List[str]:
        """
        Palette by name, cycled to n_colors entries if given.

        Raises
        ------
        ValueError
            If scheme name is not recognized
        """
        palettes = {
            "plotly": ColorSchemes.PLOTLY,
            "colorblind_safe": ColorSchemes.COLORBLIND_SAFE,
            "wong": ColorSchemes.COLORBLIND_SAFE,
            "tableau": ColorSchemes.TABLEAU,
        }
        key = scheme.lower().replace("-", "_").replace(" ", "_")
        if key not in palettes:
            raise ValueError(f"Unknown color scheme '{scheme}'. Available: {sorted(palettes)}")
        palette = palettes[key]
        if n_colors is None:
            return palette.copy()
        return [palette[i % len(palette)] for i in range(n_colors)]


class PlotThemes:
    """
    Layout presets.

    Examples
    --------
    >>> fig = PlotThemes.apply_theme(fig, theme='dark')
    >>> custom = dict(PlotThemes.DEFAULT, font_size=16)
    >>> fig = PlotThemes.apply_theme(fig, theme=custom)
    """

    DEFAULT = {
        "color_scheme": "plotly",
        "template": "plotly_white",
        "font_family": "Arial, sans-serif",
        "font_size": 12,
        "line_width": 2,
    }

    PUBLICATION = {
        "color_scheme": "colorblind_safe",
        "template": "simple_white",
        "font_family": "Times New Roman, serif",
        "font_size": 14,
        "line_width": 2.5,
        "showlegend": True,
    }

    DARK = {
        "color_scheme": "plotly",
        "template": "plotly_dark",
        "font_family": "Arial, sans-serif",
        "font_size": 12,
        "line_width": 2,
    }

    @staticmethod
    def get_theme(theme: Union[str, Dict]) -> Dict:
        """Theme dictionary by name, or the dictionary itself."""
        if isinstance(theme, dict):
            return theme
        if not isinstance(theme, str):
            raise TypeError("theme must be str or dict")
        themes = {
            "default": PlotThemes.DEFAULT,
            "publication": PlotThemes.PUBLICATION,
            "dark": PlotThemes.DARK,
        }
        if theme.lower() not in themes:
            raise ValueError(f"Unknown theme '{theme}'. Available: {sorted(themes)}")
        return themes[theme.lower()]

    @staticmethod
    def apply_theme(fig: go.Figure, theme: Union[str, Dict] = "default") -> go.Figure:
        """
        Apply template, fonts and line widths to a figure in place.

        Parameters
        ----------
        fig : go.Figure
            Figure to style
        theme : str or dict
            'default', 'publication', 'dark' or a custom dictionary

        Returns
        -------
        go.Figure
            The same figure, for chaining
        """
        config = PlotThemes.get_theme(theme)

        if "template" in config:
            fig.update_layout(template=config["template"])

        font = {}
        if "font_family" in config:
            font["family"] = config["font_family"]
        if "font_size" in config:
            font["size"] = config["font_size"]
        if font:
            fig.update_layout(font=font)

        if "showlegend" in config:
            fig.update_layout(showlegend=config["showlegend"])

        if "line_width" in config:
            for trace in fig.data:
                # dashed reference lines keep their own width
                if getattr(trace, "line", None) is not None and trace.line.dash in (None, "solid"):
                    trace.line.width = config["line_width"]

        return fig


def with_alpha(hex_color: str, alpha: float) -> str:
    """'#RRGGBB' to an 'rgba(r, g, b, alpha)' string for fills."""
    hex_color = hex_color.lstrip("#")
    r, g, b = (int(hex_color[i : i + 2], 16) for i in (0, 2, 4))
    return f"rgba({r}, {g}, {b}, {alpha})"


__all__ = [
    "ColorSchemes",
    "PlotThemes",
    "with_alpha",
]
