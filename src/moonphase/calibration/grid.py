"""
moonphase.calibration.grid
--------------------------
The two-dimensional parameter space scanned by calibration: an hour offset of
the reference new moon around a base instant, times a band of synodic month
lengths. Candidates are enumerated in scan order (offset ascending, then synodic
length ascending); that order is the tie-break for equal scores.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterator, List, Tuple

import numpy as np

from ..engines.model import PhaseModel
from ..engines import specs


def _axis(lo: float, hi: float, step: float) -> np.ndarray:
    """Inclusive axis lo, lo+step, ... <= hi, computed from integer indices."""
    if step <= 0:
        raise ValueError("grid step must be positive")
    if hi < lo:
        raise ValueError("grid max must be >= grid min")
    n = int(np.floor((hi - lo) / step + 1e-9)) + 1
    return np.round(lo + step * np.arange(n), 10)


@dataclass(frozen=True)
class Candidate:
    index: int
    offset_hours: float
    synodic_month_days: float

    def model(self, base: PhaseModel) -> PhaseModel:
        return base.shifted(hours=self.offset_hours, synodic_month_days=self.synodic_month_days)


@dataclass(frozen=True)
class ParameterGrid:
    base_reference: datetime = specs.REFERENCE_NEW_MOON
    offset_hours: Tuple[float, float, float] = specs.GRID_OFFSET_HOURS
    synodic_days: Tuple[float, float, float] = specs.GRID_SYNODIC_DAYS
    tolerance_phase: float = specs.TOLERANCE_PHASE
    _offsets: np.ndarray = field(init=False, repr=False, compare=False)
    _synodics: np.ndarray = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_offsets", _axis(*self.offset_hours))
        object.__setattr__(self, "_synodics", _axis(*self.synodic_days))

    @property
    def offsets(self) -> List[float]:
        return [float(x) for x in self._offsets]

    @property
    def synodics(self) -> List[float]:
        return [float(x) for x in self._synodics]

    @property
    def base_model(self) -> PhaseModel:
        """Unshifted model; synodic length is a placeholder replaced per candidate."""
        return PhaseModel(self.base_reference, float(self._synodics[0]), self.tolerance_phase)

    def __len__(self) -> int:
        return len(self._offsets) * len(self._synodics)

    def __iter__(self) -> Iterator[Candidate]:
        i = 0
        for off in self._offsets:
            for syn in self._synodics:
                yield Candidate(i, float(off), float(syn))
                i += 1
