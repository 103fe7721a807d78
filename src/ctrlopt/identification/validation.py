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
Model Validation

Comparison of identified models against held-out data and residual
diagnostics.

Baseline
--------
The reference predictor is the constant mean of the validation output,
whose mean squared error is var(y). A model "beats the baseline" when its
prediction MSE does not exceed that value, i.e. when its fit is >= 0%.

Residual tests
--------------
For a correct model structure the residuals ε are white and uncorrelated
with past inputs. With N samples the normalized correlation estimates at
nonzero lag are approximately N(0, 1/N), so the 95% bound is 1.96/√N.
"""

import logging
from typing import Optional

import numpy as np

from ctrlopt.identification.data import siso_signals
from ctrlopt.identification.metrics import mean_squared_error, nrmse_fit, vaf
from ctrlopt.identification.polynomial_models import PolynomialModel, predict
from ctrlopt.types.core import ArrayLike
from ctrlopt.types.identification import ResidualAnalysis, ValidationResult
from ctrlopt.types.trajectories import SampleData

logger = logging.getLogger(__name__)


def compare(model: PolynomialModel, data: SampleData, horizon: int = 1) -> ValidationResult:
    """
    Score a model's k-step prediction on a dataset.

    Parameters
    ----------
    model : ARXModelResult or OEModelResult
        Identified model
    data : SampleData
        Validation data
    horizon : int
        Prediction horizon passed to predict (0 means simulation)

    Returns
    -------
    ValidationResult

    Examples
    --------
    >>> result = compare(model, validation)
    >>> result['beats_baseline']
    True
    """
    _, y = siso_signals(data)
    prediction = predict(model, data, horizon=horizon)
    y_hat = prediction["y_hat"]

    mse = mean_squared_error(y, y_hat)
    baseline_mse = float(np.var(y))
    result: ValidationResult = {
        "fit_percentage": nrmse_fit(y, y_hat),
        "vaf": vaf(y, y_hat),
        "mse": mse,
        "baseline_mse": baseline_mse,
        "beats_baseline": bool(mse <= baseline_mse),
        "prediction": prediction,
    }
    logger.info(
        f"{model['method'].upper()} validation: fit {result['fit_percentage']:.2f}%, "
        f"MSE {mse:.3e} (baseline {baseline_mse:.3e})"
    )
    return result


def _normalized_xcorr(a: np.ndarray, b: np.ndarray, lag: int) -> float:
    """Σ a[k] b[k - lag] / sqrt(Σa² Σb²) for lag >= 0, mirrored for lag < 0."""
    n = len(a)
    if lag >= 0:
        value = np.dot(a[lag:], b[: n - lag])
    else:
        value = np.dot(a[: n + lag], b[-lag:])
    scale = np.sqrt(np.dot(a, a) * np.dot(b, b))
    return float(value / scale) if scale > 0 else 0.0


def residual_analysis(
    residuals: ArrayLike, u: Optional[ArrayLike] = None, max_lag: int = 25
) -> ResidualAnalysis:
    """
    Whiteness and input-independence tests on prediction residuals.

    Parameters
    ----------
    residuals : ArrayLike
        Residual sequence (N,)
    u : Optional[ArrayLike]
        Input sequence (N,) for the cross-correlation test
    max_lag : int
        Largest lag tested; clipped to N - 1

    Returns
    -------
    ResidualAnalysis
        ``lags`` runs over 0..max_lag. The cross-correlation covers
        -max_lag..max_lag, with positive lags pairing ε[k] with u[k - lag].
    """
    eps = np.asarray(residuals, dtype=float).ravel()
    n = eps.size
    if n < 2:
        raise ValueError(f"Need at least 2 residuals, got {n}")
    if max_lag < 1:
        raise ValueError(f"max_lag must be >= 1, got {max_lag}")
    max_lag = min(max_lag, n - 1)

    eps = eps - np.mean(eps)
    lags = np.arange(max_lag + 1)
    autocorrelation = np.array([_normalized_xcorr(eps, eps, lag) for lag in lags])
    bound = 1.96 / np.sqrt(n)

    result: ResidualAnalysis = {
        "lags": lags,
        "autocorrelation": autocorrelation,
        "cross_correlation": None,
        "confidence_bound": float(bound),
        "is_white": bool(np.all(np.abs(autocorrelation[1:]) <= bound)),
        "is_independent": None,
    }

    if u is not None:
        u = np.asarray(u, dtype=float).ravel()
        if u.size != n:
            raise ValueError(f"u has {u.size} samples, residuals have {n}")
        u = u - np.mean(u)
        cross = np.array(
            [_normalized_xcorr(eps, u, lag) for lag in range(-max_lag, max_lag + 1)]
        )
        result["cross_correlation"] = cross
        result["is_independent"] = bool(np.all(np.abs(cross) <= bound))

    return result
