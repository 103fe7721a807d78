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
Types Module - Type Definitions for ctrlopt

Central import point for the array aliases and TypedDict result types.
Organized into domain-specific modules but re-exported here for convenience.

Module Organization
------------------
- core: Basic arrays, vectors, matrices, polynomials
- trajectories: Simulation results and sampled experiment data
- control_classical: Stability, pole placement, LQR, root locus
- identification: ARX / OE models, predictions, validation
- optimization: MICP status and results, experiment design, planning, SOS

Usage
-----
>>> from ctrlopt.types import SampleData, OEModelResult, MICPStatus
"""

from .control_classical import (
    ClosedLoopResult,
    ControllabilityInfo,
    LQRResult,
    LuenbergerObserverResult,
    ObservabilityInfo,
    PolePlacementResult,
    RootLocusResult,
    StabilityInfo,
    StepInfo,
)
from .core import (
    ArrayLike,
    ControlVector,
    FeedbackPolicy,
    FeedthroughMatrix,
    GainMatrix,
    InputMatrix,
    OutputMatrix,
    PolynomialCoefficients,
    ScalarLike,
    StateMatrix,
    StateVector,
)
from .identification import (
    ARXModelResult,
    OEModelResult,
    PredictionResult,
    ResidualAnalysis,
    ValidationResult,
)
from .optimization import (
    ExperimentDesignResult,
    MICPResult,
    MICPStatus,
    SOSResult,
    TrajectoryPlanResult,
)
from .trajectories import (
    IntegrationResult,
    SampleData,
    SignalArray,
    SimulationResult,
    TimePoints,
    TimeSpan,
)

__all__ = [
    # Core
    "ArrayLike",
    "ScalarLike",
    "StateVector",
    "ControlVector",
    "StateMatrix",
    "InputMatrix",
    "OutputMatrix",
    "FeedthroughMatrix",
    "GainMatrix",
    "PolynomialCoefficients",
    "FeedbackPolicy",
    # Trajectories
    "TimePoints",
    "TimeSpan",
    "SignalArray",
    "IntegrationResult",
    "SimulationResult",
    "SampleData",
    # Control
    "StabilityInfo",
    "ControllabilityInfo",
    "ObservabilityInfo",
    "LQRResult",
    "PolePlacementResult",
    "LuenbergerObserverResult",
    "RootLocusResult",
    "StepInfo",
    "ClosedLoopResult",
    # Identification
    "ARXModelResult",
    "OEModelResult",
    "PredictionResult",
    "ValidationResult",
    "ResidualAnalysis",
    # Optimization
    "MICPStatus",
    "MICPResult",
    "ExperimentDesignResult",
    "TrajectoryPlanResult",
    "SOSResult",
]
