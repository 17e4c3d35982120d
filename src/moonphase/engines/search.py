"""
moonphase.engines.search
------------------------
Enumerates the principal phase events of a year for a PhaseModel.

The year (plus a small pad on both sides) is walked on a coarse grid. Grid points
that land within tolerance of a phase target trigger an hourly search in a
+/- 1 day neighbourhood; the best point is emitted if it is still within
tolerance. Repeated detections of the same crossing are merged afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from ..core.time import year_window
from ..core.types import MoonEvent, Phase
from .model import PhaseModel, phase_distance


@dataclass(frozen=True)
class SearchSettings:
    step_hours: int = 3
    pad_days: int = 2
    refine_half_window_hours: int = 24
    refine_step_hours: int = 1
    merge_window_hours: int = 6

    def __post_init__(self) -> None:
        if self.step_hours <= 0 or self.refine_step_hours <= 0:
            raise ValueError("step sizes must be positive")
        if self.pad_days < 0 or self.refine_half_window_hours < 0 or self.merge_window_hours < 0:
            raise ValueError("pad, refine window and merge window must be >= 0")


class EventSearchEngine:
    def __init__(self, model: PhaseModel, settings: Optional[SearchSettings] = None) -> None:
        self.model = model
        self.settings = settings if settings is not None else SearchSettings()

    def calculate_year(self, year: int) -> List[MoonEvent]:
        """
        All four principal phases for `year`, sorted by time, duplicates merged.

        Only events inside the padded window are kept, so a year yields 49-51
        events: 50 for most years, 51 only for some leap years, whose window is
        a day longer.
        """
        s = self.settings
        t_start, t_end = year_window(year, timedelta(days=s.pad_days))
        t = t_start
        step = timedelta(hours=s.step_hours)

        found: List[MoonEvent] = []
        while t <= t_end:
            value = self.model.phase_value(t)
            for phase in Phase:
                if phase_distance(value, phase.target) <= self.model.tolerance_phase:
                    best = self.refine(t, phase)
                    # refined time can fall outside the window; the neighbour year owns it
                    if best is not None and t_start <= best <= t_end:
                        found.append(MoonEvent(best, phase))
            t += step

        found.sort(key=lambda ev: ev.time)
        return merge_adjacent(found, timedelta(hours=s.merge_window_hours))

    def refine(self, around: datetime, phase: Phase) -> Optional[datetime]:
        """
        Scan [around - window, around + window] at the fine step and return the
        time closest to the phase target, or None if even that misses tolerance.
        """
        s = self.settings
        half = timedelta(hours=s.refine_half_window_hours)
        step = timedelta(hours=s.refine_step_hours)

        best_time: Optional[datetime] = None
        best_diff = float("inf")
        t, t_end = around - half, around + half
        while t <= t_end:
            d = phase_distance(self.model.phase_value(t), phase.target)
            if d < best_diff:
                best_diff = d
                best_time = t
            t += step

        if best_time is not None and best_diff <= self.model.tolerance_phase:
            return best_time
        return None


def merge_adjacent(events: List[MoonEvent], window: timedelta) -> List[MoonEvent]:
    """
    Collapse consecutive same-phase events closer than `window` into one event at
    their midpoint (whole seconds). Input must be sorted by time.
    """
    out: List[MoonEvent] = []
    for ev in events:
        if out:
            last = out[-1]
            gap = ev.time - last.time
            if ev.phase is last.phase and abs(gap) < window:
                half = timedelta(seconds=int(gap.total_seconds()) // 2)
                out[-1] = MoonEvent(last.time + half, ev.phase)
                continue
        out.append(ev)
    return out


def calculate_year(model: PhaseModel, year: int, settings: Optional[SearchSettings] = None) -> List[MoonEvent]:
    return EventSearchEngine(model, settings).calculate_year(year)
