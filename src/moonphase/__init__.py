"""moonphase public API.

Keep this surface small: users should mostly interact with functions re-exported here.
"""

from .api import (
    calculate_year,
    events_for_phase,
    full_moons,
    events_in_month,
    phase_at,
    default_model,
    set_default_model,
)
from .calibration.grid import Candidate, ParameterGrid
from .calibration.optimizer import CalibrationResult, CandidateScore, calibrate
from .core.errors import MoonPhaseError, NoComparableYearsError, ReferenceDataError, ReferenceFetchError
from .core.types import MoonEvent, Phase, PhaseSnapshot
from .engines.model import PhaseModel, phase_distance
from .engines.search import EventSearchEngine, SearchSettings
from .reference.dataset import ReferenceDataset, load_reference, synthetic_reference

__all__ = [
    "calculate_year",
    "events_for_phase",
    "full_moons",
    "events_in_month",
    "phase_at",
    "default_model",
    "set_default_model",
    "calibrate",
    "CalibrationResult",
    "CandidateScore",
    "Candidate",
    "ParameterGrid",
    "MoonPhaseError",
    "NoComparableYearsError",
    "ReferenceDataError",
    "ReferenceFetchError",
    "MoonEvent",
    "Phase",
    "PhaseSnapshot",
    "PhaseModel",
    "phase_distance",
    "EventSearchEngine",
    "SearchSettings",
    "ReferenceDataset",
    "load_reference",
    "synthetic_reference",
]
