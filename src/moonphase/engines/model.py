"""
moonphase.engines.model
-----------------------
The periodic phase model: a reference new moon plus a constant synodic month.

Phase values live on the unit ring [0, 1):
  0.00 ~ New Moon
  0.25 ~ First Quarter
  0.50 ~ Full Moon
  0.75 ~ Last Quarter
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Optional

from ..core.time import as_utc, minutes_between, MINUTES_PER_DAY


def phase_distance(a: float, b: float) -> float:
    """Circular distance between two phase values; always in [0, 0.5]."""
    d = abs(a - b)
    return min(d, 1.0 - d)


@dataclass(frozen=True)
class PhaseModel:
    """
    reference_new_moon: an exact new moon (naive UTC; aware input is converted)
    synodic_month_days: assumed cycle length, close to 29.53
    tolerance_phase:    acceptance radius in phase space, 0.03 ~ +/- 0.9 days
    """
    reference_new_moon: datetime
    synodic_month_days: float
    tolerance_phase: float = 0.03

    def __post_init__(self) -> None:
        object.__setattr__(self, "reference_new_moon", as_utc(self.reference_new_moon))
        if not self.synodic_month_days > 0:
            raise ValueError("synodic_month_days must be positive")
        if not (0.0 < self.tolerance_phase < 0.5):
            raise ValueError("tolerance_phase must be in (0, 0.5)")

    @classmethod
    def default(cls) -> "PhaseModel":
        from .specs import DEFAULT_MODEL
        return DEFAULT_MODEL

    phase_distance = staticmethod(phase_distance)

    @property
    def tolerance_days(self) -> float:
        return self.tolerance_phase * self.synodic_month_days

    def phase_value(self, t: datetime) -> float:
        """Position of t within the synodic cycle, in [0, 1)."""
        days = minutes_between(self.reference_new_moon, as_utc(t)) / MINUTES_PER_DAY
        cycles = days / self.synodic_month_days
        frac = cycles - math.floor(cycles)
        if frac < 0.0:
            frac += 1.0
        # cycles slightly below an integer can round up to exactly 1.0
        if frac >= 1.0:
            frac = 0.0
        return frac

    def shifted(self, *, hours: float = 0.0, synodic_month_days: Optional[float] = None) -> "PhaseModel":
        """Copy with the reference moved by `hours` and optionally a new cycle length."""
        return replace(
            self,
            reference_new_moon=self.reference_new_moon + timedelta(hours=hours),
            synodic_month_days=self.synodic_month_days if synodic_month_days is None else synodic_month_days,
        )
