#!/usr/bin/env python3
"""
Write per-year event files computed by the model.

  raw layout:     <root>/moon-phase-data/<year>/index.json
  static layout:  <root>/data/<year>.json  (+ <root>/index.json listing the years)
"""
from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import List, Optional, Union

from .core.errors import MoonPhaseError
from .engines.model import PhaseModel
from .engines.search import EventSearchEngine, SearchSettings
from .engines.specs import DEFAULT_MODEL, DEFAULT_PRESET, search_preset
from .reference.dataset import LAYOUTS, Layout, year_path
from .reference.wire import write_events

logger = logging.getLogger(__name__)


def generate_years(
    root: Union[str, Path],
    start_year: int,
    end_year: int,
    *,
    model: Optional[PhaseModel] = None,
    settings: Optional[SearchSettings] = None,
    layout: Layout = "raw",
) -> List[Path]:
    """Compute and write each year; a year that fails to write is logged and skipped."""
    if end_year < start_year:
        raise ValueError("end_year must be >= start_year")
    engine = EventSearchEngine(model or DEFAULT_MODEL, settings or search_preset(DEFAULT_PRESET))
    written: List[Path] = []
    years: List[int] = []
    for year in range(start_year, end_year + 1):
        events = engine.calculate_year(year)
        path = year_path(root, year, layout)
        try:
            write_events(path, events)
        except OSError as e:
            logger.error("cannot write year %d to %s: %s", year, path, e)
            continue
        logger.info("wrote %d events for %d to %s", len(events), year, path)
        written.append(path)
        years.append(year)

    if layout == "static" and years:
        index = Path(root) / "index.json"
        index.write_text(json.dumps({"years": years}, indent=2) + "\n", encoding="utf-8")
        written.append(index)
    return written


def main(argv: Optional[List[str]] = None) -> int:
    p = argparse.ArgumentParser(description="Generate per-year moon phase JSON files from the calibrated model.")
    p.add_argument("start_year", type=int)
    p.add_argument("end_year", type=int)
    p.add_argument("root", help="Output root directory")
    p.add_argument("--layout", choices=LAYOUTS, default="raw")
    p.add_argument("--preset", default=DEFAULT_PRESET, help="Search preset (calibrated, coarse)")
    args = p.parse_args(argv)

    if args.end_year < args.start_year:
        raise SystemExit("end_year must be >= start_year")

    try:
        paths = generate_years(
            args.root, args.start_year, args.end_year,
            settings=search_preset(args.preset), layout=args.layout,
        )
    except (MoonPhaseError, KeyError, ValueError) as e:
        raise SystemExit(str(e))
    print(f"Wrote {len(paths)} files under {Path(args.root).resolve()}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
