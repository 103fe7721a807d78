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
ctrlopt - Control, Identification and Mixed-Integer Optimization

Subpackages
-----------
systems : DC motor and generic linear state-space models
simulation : Integrators, simulator and excitation signals
io : CSV sample files
identification : ARX / output-error fitting and validation
control : LQR, pole placement, observers, root locus, closed loops
optimization : MICP outer approximation, experiment design, trajectory
    planning, sum-of-squares certificates
visualization : Plotly figures
workflows : End-to-end DC motor study
"""

__version__ = "0.1.0"
