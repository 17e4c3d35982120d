"""
Reference full moons per year, and the on-disk layouts they are read from.

  raw layout:     <root>/moon-phase-data/<year>/index.json
  static layout:  <root>/data/<year>.json
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Literal, Mapping, Optional, Tuple, Union

from ..core.errors import ReferenceDataError
from ..core.types import MoonEvent, Phase
from .wire import read_events

logger = logging.getLogger(__name__)

Layout = Literal["raw", "static"]
LAYOUTS: Tuple[str, ...] = ("raw", "static")


def year_path(root: Union[str, Path], year: int, layout: Layout = "raw") -> Path:
    root = Path(root)
    if layout == "raw":
        return root / "moon-phase-data" / str(year) / "index.json"
    if layout == "static":
        return root / "data" / f"{year}.json"
    raise ValueError(f"layout must be one of {LAYOUTS}, got {layout!r}")


@dataclass(frozen=True)
class ReferenceDataset:
    """year -> ascending full-moon timestamps. Years without full moons are absent."""
    full_moons: Mapping[int, Tuple[datetime, ...]] = field(default_factory=dict)

    def get(self, year: int) -> List[datetime]:
        return list(self.full_moons.get(year, ()))

    @property
    def years(self) -> List[int]:
        return sorted(self.full_moons)

    def __contains__(self, year: object) -> bool:
        return year in self.full_moons

    def __len__(self) -> int:
        return len(self.full_moons)

    def with_year(self, year: int, times: Iterable[datetime]) -> "ReferenceDataset":
        data = dict(self.full_moons)
        ts = tuple(sorted(times))
        if ts:
            data[year] = ts
        else:
            data.pop(year, None)
        return ReferenceDataset(data)

    @classmethod
    def from_events(cls, events_by_year: Mapping[int, Iterable[MoonEvent]]) -> "ReferenceDataset":
        data: Dict[int, Tuple[datetime, ...]] = {}
        for year, events in events_by_year.items():
            fulls = sorted(ev.time for ev in events if ev.phase is Phase.FULL_MOON)
            if fulls:
                data[year] = tuple(fulls)
        return cls(data)


def load_reference(
    root: Union[str, Path],
    start_year: int,
    end_year: int,
    *,
    layout: Layout = "raw",
) -> ReferenceDataset:
    """
    Load full moons for start_year..end_year. Missing files are skipped; files
    that cannot be read or parsed are logged and dropped.
    """
    by_year: Dict[int, List[MoonEvent]] = {}
    for year in range(start_year, end_year + 1):
        path = year_path(root, year, layout)
        if not path.exists():
            logger.debug("no reference file for %d at %s", year, path)
            continue
        try:
            by_year[year] = read_events(path)
        except ReferenceDataError as e:
            logger.warning("dropping reference year %d: %s", year, e)
    ds = ReferenceDataset.from_events(by_year)
    logger.info("loaded reference full moons for %d of %d years", len(ds), end_year - start_year + 1)
    return ds


def synthetic_reference(model, years: Iterable[int], settings=None) -> ReferenceDataset:
    """Reference built from a model's own output (self-consistency checks)."""
    from ..engines.search import EventSearchEngine

    engine = EventSearchEngine(model, settings)
    return ReferenceDataset.from_events({y: engine.calculate_year(y) for y in years})


__all__ = [
    "Layout",
    "LAYOUTS",
    "ReferenceDataset",
    "load_reference",
    "synthetic_reference",
    "year_path",
]
