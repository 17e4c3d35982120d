from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Union

from .core.time import MAX_YEAR, MIN_YEAR, as_utc, utc_now
from .core.types import MoonEvent, Phase, PhaseSnapshot
from .engines.model import PhaseModel
from .engines.search import EventSearchEngine, SearchSettings
from .engines.specs import DEFAULT_MODEL, DEFAULT_PRESET, search_preset

_default_model: PhaseModel = DEFAULT_MODEL

def set_default_model(model: PhaseModel) -> None:
    global _default_model
    _default_model = model

def default_model() -> PhaseModel:
    return _default_model

def _engine(model: Optional[PhaseModel], settings: Union[SearchSettings, str, None]) -> EventSearchEngine:
    if settings is None:
        settings = DEFAULT_PRESET
    if isinstance(settings, str):
        settings = search_preset(settings)
    return EventSearchEngine(model if model is not None else _default_model, settings)

def calculate_year(
    year: int,
    *,
    model: Optional[PhaseModel] = None,
    settings: Union[SearchSettings, str, None] = None,
) -> List[MoonEvent]:
    """All principal phase events for a year (includes the +/- pad around it)."""
    return _engine(model, settings).calculate_year(year)

def events_for_phase(
    year: int,
    phase: Union[Phase, int],
    *,
    model: Optional[PhaseModel] = None,
    settings: Union[SearchSettings, str, None] = None,
) -> List[MoonEvent]:
    if not isinstance(phase, Phase):
        phase = Phase.from_id(phase)
    return [ev for ev in calculate_year(year, model=model, settings=settings) if ev.phase is phase]

def full_moons(year: int, **kw) -> List[MoonEvent]:
    return events_for_phase(year, Phase.FULL_MOON, **kw)

def events_in_month(
    year: int,
    month: int,
    *,
    model: Optional[PhaseModel] = None,
    settings: Union[SearchSettings, str, None] = None,
) -> List[MoonEvent]:
    """Events whose timestamp falls inside the given calendar month."""
    if not (1 <= month <= 12):
        raise ValueError("month must be in 1..12")
    return [
        ev for ev in calculate_year(year, model=model, settings=settings)
        if ev.time.year == year and ev.time.month == month
    ]

def phase_at(
    at: Optional[datetime] = None,
    *,
    model: Optional[PhaseModel] = None,
    settings: Union[SearchSettings, str, None] = None,
) -> PhaseSnapshot:
    """
    Principal phases bracketing `at` (default: now, UTC).

    Neighbouring years are included so that instants near New Year still see
    both the previous and the next event.
    """
    at = as_utc(at) if at is not None else utc_now()
    eng = _engine(model, settings)

    seen = {}
    for y in (at.year - 1, at.year, at.year + 1):
        if MIN_YEAR <= y <= MAX_YEAR:
            for ev in eng.calculate_year(y):
                seen[(ev.time, ev.phase)] = ev
    events = sorted(seen.values(), key=lambda ev: ev.time)

    last: Optional[MoonEvent] = None
    nxt: Optional[MoonEvent] = None
    for ev in events:
        if ev.time <= at:
            last = ev
        else:
            nxt = ev
            break

    return PhaseSnapshot(at=at, phase_value=eng.model.phase_value(at), last=last, next=nxt)
