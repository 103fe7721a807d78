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
Polynomial Input-Output Models

Identification of SISO discrete-time polynomial models from sampled data.

**ARX** (equation error):
    A(q) y[k] = B(q) u[k - nk] + e[k]
    Linear in the parameters, solved by numpy.linalg.lstsq.

**OE** (output error):
    y[k] = B(q)/F(q) u[k - nk] + e[k]
    The one-step predictor equals the noise-free simulation, so the
    prediction-error estimate is the nonlinear least-squares problem

        min_θ Σ (y[k] - B(q)/F(q) u[k - nk])²

    solved with scipy.optimize.least_squares, starting from an ARX fit
    with na = nf.

Polynomial conventions (q⁻¹ ascending):
    A = [1, a1, ..., a_na], B = [b0, ..., b_(nb-1)], F = [1, f1, ..., f_nf]

Filtering is delegated to scipy.signal.lfilter, with B delayed by nk
leading zeros.

Usage
-----
>>> ident, valid = split_data(data, 0.6)
>>> model = fit_oe(ident, nb=2, nf=2, nk=1)
>>> prediction = predict(model, valid)
>>> G = to_transfer_function(model)      # discrete control.TransferFunction
"""

import logging
import warnings
from typing import Optional, Union

import control
import numpy as np
from scipy import optimize, signal

from ctrlopt.identification.data import siso_signals
from ctrlopt.identification.metrics import nrmse_fit
from ctrlopt.systems.linear_system import LinearSystem
from ctrlopt.types.core import ArrayLike, PolynomialCoefficients
from ctrlopt.types.identification import ARXModelResult, OEModelResult, PredictionResult
from ctrlopt.types.trajectories import SampleData

logger = logging.getLogger(__name__)

PolynomialModel = Union[ARXModelResult, OEModelResult]

# Residual returned for parameter vectors whose simulation diverges
_DIVERGED_RESIDUAL = 1e8


# ============================================================================
# Helpers
# ============================================================================


def _check_orders(nb: int, nk: int, na: Optional[int] = None, nf: Optional[int] = None):
    if nb < 1:
        raise ValueError(f"nb must be >= 1, got {nb}")
    if nk < 0:
        raise ValueError(f"nk must be >= 0, got {nk}")
    if na is not None and na < 0:
        raise ValueError(f"na must be >= 0, got {na}")
    if nf is not None and nf < 0:
        raise ValueError(f"nf must be >= 0, got {nf}")


def _delayed(B: PolynomialCoefficients, nk: int) -> np.ndarray:
    """B(q) q^-nk as a q⁻¹ coefficient vector."""
    return np.concatenate([np.zeros(nk), np.asarray(B, dtype=float)])


def _denominator(model: PolynomialModel) -> np.ndarray:
    if model["method"] == "oe":
        return np.asarray(model["F"], dtype=float)
    if model["method"] == "arx":
        return np.asarray(model["A"], dtype=float)
    raise ValueError(f"Unknown model method '{model.get('method')}'")


def stabilize_polynomial(F: PolynomialCoefficients) -> np.ndarray:
    """
    Reflect roots outside the unit circle to their mirror images 1/r̄.

    The magnitude response of 1/F is preserved up to a constant gain,
    which the B polynomial absorbs when refitted.
    """
    F = np.asarray(F, dtype=float)
    if F.size <= 1:
        return F.copy()
    roots = np.roots(F)
    outside = np.abs(roots) >= 1.0
    if not np.any(outside):
        return F.copy()
    roots[outside] = 1.0 / np.conj(roots[outside])
    return F[0] * np.real(np.poly(roots))


def _filter_with_initial_state(
    b: np.ndarray, a: np.ndarray, u: np.ndarray, y: Optional[np.ndarray]
) -> np.ndarray:
    """
    lfilter(b, a, u), optionally adding the free response whose initial
    filter state best explains y in the least-squares sense.
    """
    y_hat = signal.lfilter(b, a, u)
    n_state = max(len(a), len(b)) - 1
    if y is None or n_state == 0:
        return y_hat

    zeros = np.zeros_like(u)
    basis = np.empty((len(u), n_state))
    for j in range(n_state):
        zi = np.zeros(n_state)
        zi[j] = 1.0
        basis[:, j] = signal.lfilter(b, a, zeros, zi=zi)[0]
    zi_hat, *_ = np.linalg.lstsq(basis, y - y_hat, rcond=None)
    return y_hat + basis @ zi_hat


# ============================================================================
# ARX
# ============================================================================


def _arx_one_step(A: np.ndarray, B: np.ndarray, nk: int, u: np.ndarray, y: np.ndarray) -> np.ndarray:
    """ŷ[k] = (1 - A(q)) y[k] + B(q) u[k - nk], zero pre-sample values."""
    autoregressive = signal.lfilter(np.concatenate([[0.0], -A[1:]]), [1.0], y)
    exogenous = signal.lfilter(_delayed(B, nk), [1.0], u)
    return autoregressive + exogenous


def _arx_k_step(
    A: np.ndarray, B: np.ndarray, nk: int, u: np.ndarray, y: np.ndarray, horizon: int
) -> np.ndarray:
    """k-step-ahead prediction: measured outputs up to k - horizon, predictions after."""
    na = len(A) - 1
    exogenous = signal.lfilter(_delayed(B, nk), [1.0], u)
    n_samples = len(y)
    y_hat = np.empty(n_samples)

    for k in range(n_samples):
        last_measured = k - horizon
        predicted = {}
        for j in range(max(last_measured + 1, 0), k + 1):
            value = exogenous[j]
            for i in range(1, na + 1):
                idx = j - i
                if idx < 0:
                    continue
                past = y[idx] if idx <= last_measured else predicted[idx]
                value -= A[i] * past
            predicted[j] = value
        y_hat[k] = predicted[k]
    return y_hat


def fit_arx(data: SampleData, na: int, nb: int, nk: int = 1) -> ARXModelResult:
    """
    Fit an ARX model by linear least squares.

    Parameters
    ----------
    data : SampleData
        SISO identification data
    na : int
        Number of A coefficients after the leading 1
    nb : int
        Number of B coefficients
    nk : int
        Input delay in samples

    Returns
    -------
    ARXModelResult

    Raises
    ------
    ValueError
        On invalid orders or too few samples for the regression
    """
    _check_orders(nb, nk, na=na)
    u, y = siso_signals(data)
    n_samples = len(y)
    n0 = max(na, nk + nb - 1)
    if n_samples - n0 < na + nb:
        raise ValueError(
            f"Need at least {n0 + na + nb} samples for ARX({na}, {nb}, {nk}), got {n_samples}"
        )

    columns = [-y[n0 - i : n_samples - i] for i in range(1, na + 1)]
    columns += [u[n0 - nk - j : n_samples - nk - j] for j in range(nb)]
    regressors = np.column_stack(columns)
    theta, *_ = np.linalg.lstsq(regressors, y[n0:], rcond=None)

    A = np.concatenate([[1.0], theta[:na]])
    B = theta[na:]
    y_hat = _arx_one_step(A, B, nk, u, y)
    residuals = y - y_hat

    return {
        "A": A,
        "B": B,
        "nk": nk,
        "dt": float(data.get("dt", 1.0)),
        "loss": float(np.mean(residuals[n0:] ** 2)),
        "fit_percentage": nrmse_fit(y[n0:], y_hat[n0:]),
        "residuals": residuals,
        "method": "arx",
    }


# ============================================================================
# Output Error
# ============================================================================


def fit_oe(
    data: SampleData,
    nb: int,
    nf: int,
    nk: int = 1,
    x0: Optional[ArrayLike] = None,
    max_nfev: Optional[int] = None,
) -> OEModelResult:
    """
    Fit an output-error model by prediction-error minimization.

    Parameters
    ----------
    data : SampleData
        SISO identification data
    nb : int
        Number of B coefficients
    nf : int
        Number of F coefficients after the leading 1
    nk : int
        Input delay in samples
    x0 : Optional[ArrayLike]
        Initial parameters [b0, ..., b_(nb-1), f1, ..., f_nf]; taken from
        an ARX(nf, nb, nk) fit with its A polynomial stabilized if None
    max_nfev : Optional[int]
        Residual evaluation budget for least_squares

    Returns
    -------
    OEModelResult
        F is monic and stable. If the optimum had roots outside the unit
        circle they are reflected inside and a warning is issued.

    Raises
    ------
    ValueError
        On invalid orders or too few samples
    """
    _check_orders(nb, nk, nf=nf)
    u, y = siso_signals(data)
    n_params = nb + nf
    if len(y) <= n_params:
        raise ValueError(f"Need more than {n_params} samples for OE({nb}, {nf}, {nk}), got {len(y)}")

    if x0 is None:
        initial = fit_arx(data, na=nf, nb=nb, nk=nk)
        x0 = np.concatenate([initial["B"], stabilize_polynomial(initial["A"])[1:]])
    theta0 = np.asarray(x0, dtype=float).ravel()
    if theta0.size != n_params:
        raise ValueError(f"x0 must have nb + nf = {n_params} entries, got {theta0.size}")

    def residuals(theta: np.ndarray) -> np.ndarray:
        F = np.concatenate([[1.0], theta[nb:]])
        with np.errstate(over="ignore", invalid="ignore"):
            y_hat = signal.lfilter(_delayed(theta[:nb], nk), F, u)
        r = y - y_hat
        if not np.all(np.isfinite(r)):
            return np.full_like(y, _DIVERGED_RESIDUAL)
        return r

    solution = optimize.least_squares(
        residuals,
        theta0,
        method="lm",
        x_scale="jac",
        max_nfev=max_nfev,
    )

    B = solution.x[:nb]
    F = np.concatenate([[1.0], solution.x[nb:]])
    F_stable = stabilize_polynomial(F)
    if not np.allclose(F_stable, F):
        warnings.warn(
            "Fitted F polynomial had roots outside the unit circle; reflected inside",
            UserWarning,
        )
        F = F_stable
    if not solution.success:
        warnings.warn(f"OE fit did not converge: {solution.message}", UserWarning)

    y_hat = signal.lfilter(_delayed(B, nk), F, u)
    r = y - y_hat
    fit = nrmse_fit(y, y_hat)
    logger.info(f"OE({nb}, {nf}, {nk}) fit {fit:.2f}% after {solution.nfev} evaluations")

    return {
        "B": B,
        "F": F,
        "nk": nk,
        "dt": float(data.get("dt", 1.0)),
        "loss": float(np.mean(r**2)),
        "fit_percentage": fit,
        "residuals": r,
        "success": bool(solution.success),
        "nfev": int(solution.nfev),
        "message": str(solution.message),
        "method": "oe",
    }


# ============================================================================
# Prediction and Simulation
# ============================================================================


def simulate_model(model: PolynomialModel, u: ArrayLike) -> np.ndarray:
    """Noise-free response B(q)/F(q) u[k - nk] (B/A for ARX), zero initial state."""
    u = np.asarray(u, dtype=float)
    return signal.lfilter(_delayed(model["B"], model["nk"]), _denominator(model), u)


def predict(
    model: PolynomialModel,
    data: SampleData,
    horizon: int = 1,
    estimate_initial_state: bool = True,
) -> PredictionResult:
    """
    k-step-ahead prediction on a dataset.

    Parameters
    ----------
    model : ARXModelResult or OEModelResult
        Identified model
    data : SampleData
        Dataset, typically held out from fitting
    horizon : int
        Prediction horizon; 0 means pure simulation. For OE models the
        predictor does not use past outputs, so every horizon gives the
        simulated output.
    estimate_initial_state : bool
        For simulation (OE, or ARX with horizon 0) fit the initial filter
        state to the data so a validation set that starts mid-experiment
        is not penalized for its unknown initial condition.

    Returns
    -------
    PredictionResult
    """
    if horizon < 0:
        raise ValueError(f"horizon must be >= 0, got {horizon}")
    u, y = siso_signals(data)
    b = _delayed(model["B"], model["nk"])
    a = _denominator(model)

    if model["method"] == "oe" or horizon == 0:
        y_hat = _filter_with_initial_state(b, a, u, y if estimate_initial_state else None)
    elif horizon == 1:
        y_hat = _arx_one_step(a, np.asarray(model["B"], dtype=float), model["nk"], u, y)
    else:
        y_hat = _arx_k_step(a, np.asarray(model["B"], dtype=float), model["nk"], u, y, horizon)

    return {"y_hat": y_hat, "residuals": y - y_hat, "horizon": horizon}


# ============================================================================
# Conversion
# ============================================================================


def to_transfer_function(model: PolynomialModel) -> control.TransferFunction:
    """
    Discrete transfer function in z with the model's sample period.

    B(z⁻¹) z^-nk / F(z⁻¹) is multiplied through by zⁿ,
    n = max(nf, nk + nb - 1), to obtain descending powers of z.
    """
    B = np.asarray(model["B"], dtype=float)
    den_q = _denominator(model)
    nk = model["nk"]
    order = max(len(den_q) - 1, nk + len(B) - 1)

    num = np.zeros(order + 1)
    num[nk : nk + len(B)] = B
    den = np.zeros(order + 1)
    den[: len(den_q)] = den_q
    return control.tf(num, den, model["dt"])


def to_state_space(model: PolynomialModel) -> LinearSystem:
    """Discrete state-space realization of the model."""
    return LinearSystem.from_control(to_transfer_function(model))
