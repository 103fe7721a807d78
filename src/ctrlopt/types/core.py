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
Core Types

Fundamental array aliases shared by every module of the toolkit.

All numerical data in ctrlopt is plain NumPy: matrices of a linear
system, polynomial coefficient vectors, sampled signals. The aliases below
carry no runtime behavior; they document the expected shape at each seam.

Conventions
-----------
- Matrices follow the state-space naming: A (nx, nx), B (nx, nu),
  C (ny, nx), D (ny, nu).
- Time series are time-major: (T,) for scalar signals, (T, n) otherwise.
- Polynomials in the delay operator q⁻¹ are coefficient vectors ordered
  by increasing delay: F = [1, f1, f2, ...] means 1 + f1 q⁻¹ + f2 q⁻².

Usage
-----
>>> from ctrlopt.types.core import StateMatrix, InputMatrix
>>> A: StateMatrix = np.array([[0, 1], [-2, -3]])
>>> B: InputMatrix = np.array([[0], [1]])
"""

from typing import Callable, Optional, Sequence, Tuple, Union

import numpy as np

# ============================================================================
# Basic Array Types
# ============================================================================

ArrayLike = Union[np.ndarray, Sequence[float]]
"""
Anything np.asarray() turns into a float array.

Functions accept ArrayLike and always return np.ndarray.
"""

ScalarLike = Union[float, int, np.number]

# ============================================================================
# Vectors
# ============================================================================

StateVector = np.ndarray
"""State vector x, shape (nx,)."""

ControlVector = np.ndarray
"""Control input u, shape (nu,)."""

OutputVector = np.ndarray
"""Measured output y, shape (ny,)."""

ParameterVector = np.ndarray
"""
Stacked model parameters, e.g. [b0, b1, ..., f1, f2, ...] for an
output-error model.
"""

ResidualVector = np.ndarray
"""Prediction residuals y - ŷ, shape (T,)."""

# ============================================================================
# Matrices
# ============================================================================

StateMatrix = np.ndarray
"""
State matrix A, shape (nx, nx).

Continuous: ẋ = Ax + Bu
Discrete:   x[k+1] = Ax[k] + Bu[k]
"""

InputMatrix = np.ndarray
"""Input matrix B, shape (nx, nu)."""

OutputMatrix = np.ndarray
"""Output matrix C, shape (ny, nx)."""

FeedthroughMatrix = np.ndarray
"""Direct feedthrough D, shape (ny, nu)."""

GainMatrix = np.ndarray
"""
Feedback gain.

State feedback K has shape (nu, nx) and is applied as u = -Kx.
Observer gain L has shape (nx, ny).
"""

CostMatrix = np.ndarray
"""Quadratic weight (Q or R), symmetric."""

ControllabilityMatrix = np.ndarray
"""𝒞 = [B, AB, A²B, ..., A^(n-1)B], shape (nx, nx*nu)."""

ObservabilityMatrix = np.ndarray
"""𝒪 = [C; CA; CA²; ...; CA^(n-1)], shape (nx*ny, nx)."""

# ============================================================================
# Polynomials
# ============================================================================

PolynomialCoefficients = np.ndarray
"""
Polynomial coefficient vector.

For transfer functions in s (continuous) the ordering is descending
powers, as in numpy.roots: [1, 3, 2] is s² + 3s + 2.

For q⁻¹ polynomials (identification) the ordering is ascending delay.
"""

# ============================================================================
# Callables
# ============================================================================

DynamicsFunction = Callable[[StateVector, Optional[ControlVector]], StateVector]
"""Vector field f(x, u) for continuous systems, or update map for discrete."""

TimeVaryingInput = Callable[[float], ControlVector]
"""Open-loop input u(t)."""

FeedbackPolicy = Callable[[float, StateVector], ControlVector]
"""Control policy u(t, x), the signature integrators consume."""

# ============================================================================
# Dimensions
# ============================================================================

DimensionTuple = Tuple[int, int, int]
"""(nx, nu, ny)"""


__all__ = [
    "ArrayLike",
    "ScalarLike",
    "StateVector",
    "ControlVector",
    "OutputVector",
    "ParameterVector",
    "ResidualVector",
    "StateMatrix",
    "InputMatrix",
    "OutputMatrix",
    "FeedthroughMatrix",
    "GainMatrix",
    "CostMatrix",
    "ControllabilityMatrix",
    "ObservabilityMatrix",
    "PolynomialCoefficients",
    "DynamicsFunction",
    "TimeVaryingInput",
    "FeedbackPolicy",
    "DimensionTuple",
]
