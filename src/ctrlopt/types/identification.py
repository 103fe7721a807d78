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
System Identification Types

Result types for input-output polynomial model identification:
- ARX (equation error) models, fitted by linear least squares
- Output-error (OE) models, fitted by prediction-error minimization

Mathematical Background
----------------------
Polynomials in the backward shift q⁻¹:
    A(q) = 1 + a₁q⁻¹ + ... + a_na q⁻ⁿᵃ
    B(q) = b₀ + b₁q⁻¹ + ... + b_(nb-1) q⁻⁽ⁿᵇ⁻¹⁾
    F(q) = 1 + f₁q⁻¹ + ... + f_nf q⁻ⁿᶠ

ARX:  A(q) y[k] = B(q) u[k - nk] + e[k]
OE:   y[k] = B(q)/F(q) u[k - nk] + e[k]

For the OE structure the one-step predictor does not use past outputs,
so prediction and simulation coincide: ŷ[k] = B(q)/F(q) u[k - nk].
The prediction-error estimate minimizes Σ (y[k] - ŷ[k])².

Fit metrics:
    NRMSE fit = 100 (1 - ||y - ŷ|| / ||y - mean(y)||)
    VAF       = 100 (1 - var(y - ŷ) / var(y))

Usage
-----
>>> from ctrlopt.types.identification import OEModelResult
>>> model: OEModelResult = fit_oe(data, nb=1, nf=2, nk=1)
>>> model['F']
array([ 1.        , -1.6..., 0.6...])
"""

from typing import Optional

import numpy as np
from typing_extensions import TypedDict

from .core import PolynomialCoefficients, ResidualVector


class ARXModelResult(TypedDict, total=False):
    """
    ARX model identified by least squares.

    Fields
    ------
    A : PolynomialCoefficients
        Monic output polynomial [1, a1, ..., a_na]
    B : PolynomialCoefficients
        Input polynomial [b0, ..., b_(nb-1)]
    nk : int
        Input delay in samples
    dt : float
        Sample period
    loss : float
        Mean squared one-step prediction error on the fitting data
    fit_percentage : float
        NRMSE fit (%) of the one-step prediction
    residuals : ResidualVector
        One-step prediction residuals
    method : str
        'arx'
    """

    A: PolynomialCoefficients
    B: PolynomialCoefficients
    nk: int
    dt: float
    loss: float
    fit_percentage: float
    residuals: ResidualVector
    method: str


class OEModelResult(TypedDict, total=False):
    """
    Output-error model identified by prediction-error minimization.

    Fields
    ------
    B : PolynomialCoefficients
        Numerator [b0, ..., b_(nb-1)] (applied to u[k - nk])
    F : PolynomialCoefficients
        Monic, stable denominator [1, f1, ..., f_nf]
    nk : int
        Input delay in samples
    dt : float
        Sample period
    loss : float
        Mean squared simulation error on the fitting data
    fit_percentage : float
        NRMSE fit (%) on the fitting data
    residuals : ResidualVector
        y - ŷ on the fitting data
    success : bool
        Optimizer convergence flag
    nfev : int
        Number of residual evaluations
    message : str
        Optimizer message
    method : str
        'oe'
    """

    B: PolynomialCoefficients
    F: PolynomialCoefficients
    nk: int
    dt: float
    loss: float
    fit_percentage: float
    residuals: ResidualVector
    success: bool
    nfev: int
    message: str
    method: str


class PredictionResult(TypedDict):
    """
    k-step-ahead prediction on a dataset.

    Fields
    ------
    y_hat : np.ndarray
        Predicted output (T,)
    residuals : ResidualVector
        y - y_hat (T,)
    horizon : int
        Prediction horizon (0 means pure simulation)
    """

    y_hat: np.ndarray
    residuals: ResidualVector
    horizon: int


class ValidationResult(TypedDict):
    """
    Model comparison against held-out data.

    Fields
    ------
    fit_percentage : float
        NRMSE fit (%)
    vaf : float
        Variance accounted for (%)
    mse : float
        Mean squared prediction error
    baseline_mse : float
        Mean squared error of predicting the constant mean of y
    beats_baseline : bool
        mse <= baseline_mse
    prediction : PredictionResult
        Underlying prediction
    """

    fit_percentage: float
    vaf: float
    mse: float
    baseline_mse: float
    beats_baseline: bool
    prediction: PredictionResult


class ResidualAnalysis(TypedDict, total=False):
    """
    Residual whiteness and independence diagnostics.

    Fields
    ------
    lags : np.ndarray
        Lags 0..max_lag for autocorrelation, -max_lag..max_lag for
        cross-correlation
    autocorrelation : np.ndarray
        Normalized autocorrelation of residuals (max_lag + 1,)
    cross_correlation : Optional[np.ndarray]
        Normalized residual/input cross-correlation (2*max_lag + 1,)
    confidence_bound : float
        Approximate 95% bound 1.96/sqrt(N)
    is_white : bool
        All autocorrelations at lags >= 1 within the bound
    is_independent : Optional[bool]
        All cross-correlations within the bound
    """

    lags: np.ndarray
    autocorrelation: np.ndarray
    cross_correlation: Optional[np.ndarray]
    confidence_bound: float
    is_white: bool
    is_independent: Optional[bool]


__all__ = [
    "ARXModelResult",
    "OEModelResult",
    "PredictionResult",
    "ValidationResult",
    "ResidualAnalysis",
]
