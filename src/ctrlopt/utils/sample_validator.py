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
Sample Validator

Validates sampled input/output records before they are written to disk
or handed to the identification engine.

Checks:
- Required fields (t, u, y)
- Time vector is 1D and strictly increasing
- Signal lengths match the time vector
- All values finite
- Uniform sampling (non-uniform spacing is an error, small jitter a warning)
"""

import warnings
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np

from ctrlopt.types.core import ArrayLike
from ctrlopt.types.trajectories import SampleData

# ============================================================================
# Exceptions
# ============================================================================


class ValidationError(ValueError):
    """Raised when a sample record fails validation"""


# ============================================================================
# Validation Result Container
# ============================================================================


@dataclass
class SampleValidationResult:
    """
    Container for validation results.

    Attributes
    ----------
    is_valid : bool
        True if the record passed all checks
    errors : List[str]
        Validation errors (empty if valid)
    warnings : List[str]
        Non-fatal issues
    info : Dict
        n_samples and the inferred sample period
    """

    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    info: Dict = field(default_factory=dict)


class SampleValidator:
    """
    Validates SampleData-like mappings.

    Examples
    --------
    >>> validator = SampleValidator(data)
    >>> result = validator.validate(raise_on_error=False)
    >>> result.is_valid
    True
    """

    REQUIRED_FIELDS = ("t", "u", "y")

    def __init__(self, data, jitter_tolerance: float = 1e-6):
        """
        Parameters
        ----------
        data : Mapping
            Object with 't', 'u', 'y' entries and optionally 'dt'
        jitter_tolerance : float
            Relative deviation of sample spacing from its median above
            which sampling is reported as non-uniform
        """
        self.data = data
        self.jitter_tolerance = jitter_tolerance
        self._errors: List[str] = []
        self._warnings: List[str] = []
        self._dt: Optional[float] = None

    def validate(self, raise_on_error: bool = True) -> SampleValidationResult:
        """
        Run all checks.

        Raises
        ------
        ValidationError
            If validation fails and raise_on_error=True
        """
        self._errors = []
        self._warnings = []
        self._dt = None

        self._validate_required_fields()
        if not self._errors:
            self._validate_time()
        if not self._errors:
            self._validate_signals()
            self._validate_sampling()

        result = SampleValidationResult(
            is_valid=not self._errors,
            errors=self._errors.copy(),
            warnings=self._warnings.copy(),
            info={"n_samples": self._n_samples(), "dt": self._dt},
        )

        for message in result.warnings:
            warnings.warn(message, UserWarning, stacklevel=2)

        if not result.is_valid and raise_on_error:
            raise ValidationError(self._format_error_message())

        return result

    # ========================================================================
    # Checks
    # ========================================================================

    def _n_samples(self) -> int:
        try:
            return len(np.asarray(self.data["t"]))
        except (KeyError, TypeError):
            return 0

    def _validate_required_fields(self):
        for name in self.REQUIRED_FIELDS:
            if name not in self.data:
                self._errors.append(f"Missing required field '{name}'")

    def _validate_time(self):
        t = np.asarray(self.data["t"], dtype=float)
        if t.ndim != 1:
            self._errors.append(f"t must be 1D, got shape {t.shape}")
            return
        if t.size < 2:
            self._errors.append(f"At least 2 samples required, got {t.size}")
            return
        if not np.all(np.isfinite(t)):
            self._errors.append("t contains non-finite values")
            return
        if np.any(np.diff(t) <= 0):
            self._errors.append("t must be strictly increasing")

    def _validate_signals(self):
        n = self._n_samples()
        for name in ("u", "y"):
            signal = np.asarray(self.data[name], dtype=float)
            if signal.ndim not in (1, 2):
                self._errors.append(f"{name} must be 1D or 2D, got shape {signal.shape}")
                continue
            if signal.shape[0] != n:
                self._errors.append(f"{name} has {signal.shape[0]} samples, t has {n}")
                continue
            if not np.all(np.isfinite(signal)):
                self._errors.append(f"{name} contains non-finite values")

    def _validate_sampling(self):
        t = np.asarray(self.data["t"], dtype=float)
        if self._errors:
            return
        steps = np.diff(t)
        dt = float(np.median(steps))
        deviation = np.max(np.abs(steps - dt)) / dt
        if deviation > 1e-2:
            self._errors.append(
                f"Sampling is not uniform: spacing deviates {deviation:.1%} from median {dt:g}"
            )
            return
        if deviation > self.jitter_tolerance:
            self._warnings.append(f"Sample spacing jitter of {deviation:.2e} relative to dt={dt:g}")
        declared = self.data.get("dt") if hasattr(self.data, "get") else None
        if declared is not None and not np.isclose(declared, dt, rtol=1e-6):
            self._errors.append(f"Declared dt={declared:g} does not match sample spacing {dt:g}")
        self._dt = dt

    def _format_error_message(self) -> str:
        lines = ["Sample data validation failed:"]
        lines.extend(f"  - {error}" for error in self._errors)
        return "\n".join(lines)


def make_sample_data(t: ArrayLike, u: ArrayLike, y: ArrayLike) -> SampleData:
    """
    Build a validated SampleData record, inferring dt from t.

    Raises
    ------
    ValidationError
        If the record is inconsistent
    """
    data = {
        "t": np.asarray(t, dtype=float),
        "u": np.asarray(u, dtype=float),
        "y": np.asarray(y, dtype=float),
    }
    result = SampleValidator(data).validate(raise_on_error=True)
    data["dt"] = result.info["dt"]
    return data
