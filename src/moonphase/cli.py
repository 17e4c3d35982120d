from __future__ import annotations

import argparse
import csv
import importlib
import inspect
import logging
import signal
import sys
import threading
from datetime import datetime
from pathlib import Path
from typing import List

from .core.errors import MoonPhaseError
from .core.types import MoonEvent


def _run_module_main(modpath: str, argv: list[str]) -> int:
    """
    Import module and run its main().

    Supports:
      - main(argv: list[str] | None = None) -> int|None
      - main() -> int|None
    """
    mod = importlib.import_module(modpath)
    if not hasattr(mod, "main"):
        raise SystemExit(f"Module {modpath} has no main()")
    fn = getattr(mod, "main")

    sig = inspect.signature(fn)
    if len(sig.parameters) == 0:
        rv = fn()
    else:
        rv = fn(argv)
    return int(rv or 0)


def _add_model_args(p: argparse.ArgumentParser) -> None:
    from .engines import specs

    p.add_argument("--model-ref", default=None, help="Reference new moon, ISO UTC (default: calibrated 2000-01-06T18:14)")
    p.add_argument("--synodic", type=float, default=specs.SYNODIC_MONTH_DAYS, help="Synodic month length in days")
    p.add_argument("--tolerance", type=float, default=specs.TOLERANCE_PHASE, help="Tolerance in phase space")
    p.add_argument("--preset", choices=sorted(specs.SEARCH_PRESETS), default=specs.DEFAULT_PRESET, help="Search preset")


def _model_from_args(args: argparse.Namespace):
    from .core.time import parse_iso
    from .engines import specs
    from .engines.model import PhaseModel

    ref = parse_iso(args.model_ref) if args.model_ref else specs.REFERENCE_NEW_MOON
    return PhaseModel(ref, args.synodic, args.tolerance)


def _fmt_day(dt: datetime) -> str:
    return dt.strftime("%d/%m/%Y")


def _print_events(events: List[MoonEvent]) -> None:
    for ev in events:
        print(f"{_fmt_day(ev.time)}  {ev.time:%H:%M}  {ev.phase.label:<13} (Phase {ev.phase.id})")


def cmd_year(argv: list[str]) -> int:
    import moonphase

    p = argparse.ArgumentParser(prog="moonphase year", description="List the principal phases of a year (UTC).")
    p.add_argument("year", type=int)
    p.add_argument("--phase", type=int, choices=[0, 1, 2, 3], default=None, help="Only this phase id")
    _add_model_args(p)
    args = p.parse_args(argv)

    model = _model_from_args(args)
    if args.phase is None:
        events = moonphase.calculate_year(args.year, model=model, settings=args.preset)
    else:
        events = moonphase.events_for_phase(args.year, args.phase, model=model, settings=args.preset)

    if not events:
        print(f"No events found for {args.year}.")
        return 0
    print(f"Moon phases {args.year} (UTC):")
    print("-" * 48)
    _print_events(events)
    return 0

def cmd_month(argv: list[str]) -> int:
    import moonphase

    p = argparse.ArgumentParser(prog="moonphase month", description="List the principal phases inside one month (UTC).")
    p.add_argument("year", type=int)
    p.add_argument("month", type=int)
    _add_model_args(p)
    args = p.parse_args(argv)

    if not (1 <= args.month <= 12):
        p.error("month must be in 1..12")
    events = moonphase.events_in_month(args.year, args.month, model=_model_from_args(args), settings=args.preset)
    if not events:
        print(f"No events found for {args.month:02d}/{args.year}.")
        return 0
    print(f"Moon phases {args.month:02d}/{args.year} (UTC):")
    print("-" * 48)
    _print_events(events)
    return 0

def cmd_full_moons(argv: list[str]) -> int:
    import moonphase
    from .core.time import format_iso

    p = argparse.ArgumentParser(prog="moonphase full-moons", description="List (and optionally export) a year's full moons.")
    p.add_argument("year", type=int)
    p.add_argument("--csv", dest="csv_path", default=None, help="Write DateTimeUtc,Phase rows to this file")
    _add_model_args(p)
    args = p.parse_args(argv)

    events = moonphase.full_moons(args.year, model=_model_from_args(args), settings=args.preset)
    if args.csv_path:
        with open(args.csv_path, "w", newline="", encoding="utf-8") as f:
            w = csv.writer(f)
            w.writerow(["DateTimeUtc", "Phase"])
            for ev in events:
                w.writerow([format_iso(ev.time), ev.phase.id])
        print(f"CSV written: {args.csv_path} ({len(events)} rows)")
        return 0

    print(f"Full moons {args.year} (UTC):")
    print("-" * 48)
    _print_events(events)
    return 0

def cmd_now(argv: list[str]) -> int:
    import moonphase
    from .core.time import parse_iso

    p = argparse.ArgumentParser(prog="moonphase now", description="Current phase from the nearest principal phase (UTC).")
    p.add_argument("--at", default=None, help="ISO timestamp instead of now")
    _add_model_args(p)
    args = p.parse_args(argv)

    at = parse_iso(args.at) if args.at else None
    snap = moonphase.phase_at(at, model=_model_from_args(args), settings=args.preset)

    print(f"Today (UTC)        : {_fmt_day(snap.at)}")
    print(f"Cycle position     : {snap.phase_value:.3f}")
    if snap.last is not None:
        print(f"Last principal     : {_fmt_day(snap.last.time)} - {snap.last.phase.label} (Phase {snap.last.phase.id})")
    if snap.next is not None:
        print(f"Next principal     : {_fmt_day(snap.next.time)} - {snap.next.phase.label} (Phase {snap.next.phase.id})")
    near = snap.nearest
    if near is None:
        print("No principal phases found around this date.")
        return 1
    print()
    print(f"  {near.phase.ascii}  {near.phase.label} (Phase {near.phase.id})")
    if snap.days_to_next is not None:
        print(f"  (next principal phase in about {snap.days_to_next:.1f} days)")
    return 0

def cmd_fetch(argv: list[str]) -> int:
    from .reference.remote import fetch_year
    from .reference.wire import dumps_events

    p = argparse.ArgumentParser(prog="moonphase fetch", description="Fetch one year from the published static API.")
    p.add_argument("year", type=int)
    p.add_argument("--base-url", default=None)
    p.add_argument("--phase", type=int, choices=[0, 1, 2, 3], default=None)
    p.add_argument("--json", action="store_true", help="Print raw records instead of a table")
    args = p.parse_args(argv)

    events = fetch_year(args.year, base_url=args.base_url)
    if args.phase is not None:
        events = [ev for ev in events if ev.phase.id == args.phase]
    if args.json:
        sys.stdout.write(dumps_events(events))
    else:
        _print_events(events)
    return 0

def cmd_calibrate(argv: list[str]) -> int:
    from .calibration.grid import ParameterGrid
    from .calibration.optimizer import calibrate
    from .core.time import parse_iso
    from .engines import specs
    from .reference.dataset import LAYOUTS, load_reference

    off_lo, off_hi, off_step = specs.GRID_OFFSET_HOURS
    syn_lo, syn_hi, syn_step = specs.GRID_SYNODIC_DAYS

    p = argparse.ArgumentParser(prog="moonphase calibrate", description="Grid-search model parameters against reference full moons.")
    p.add_argument("ref_root", help="Reference root (expects moon-phase-data/<year>/index.json)")
    p.add_argument("start_year", type=int)
    p.add_argument("end_year", type=int)
    p.add_argument("--layout", choices=LAYOUTS, default="raw")
    p.add_argument("--base-ref", default=None, help="Base reference new moon, ISO UTC")
    p.add_argument("--offset-min", type=float, default=off_lo)
    p.add_argument("--offset-max", type=float, default=off_hi)
    p.add_argument("--offset-step", type=float, default=off_step)
    p.add_argument("--syn-min", type=float, default=syn_lo)
    p.add_argument("--syn-max", type=float, default=syn_hi)
    p.add_argument("--syn-step", type=float, default=syn_step)
    p.add_argument("--tolerance", type=float, default=specs.TOLERANCE_PHASE)
    p.add_argument("--preset", choices=sorted(specs.SEARCH_PRESETS), default=specs.DEFAULT_PRESET)
    p.add_argument("--workers", type=int, default=1, help="Process pool size (1 = sequential)")
    args = p.parse_args(argv)

    if args.end_year < args.start_year:
        p.error("end_year must be >= start_year")

    grid = ParameterGrid(
        base_reference=parse_iso(args.base_ref) if args.base_ref else specs.REFERENCE_NEW_MOON,
        offset_hours=(args.offset_min, args.offset_max, args.offset_step),
        synodic_days=(args.syn_min, args.syn_max, args.syn_step),
        tolerance_phase=args.tolerance,
    )

    print("Reference data:")
    print(f"  Root  : {Path(args.ref_root).resolve()}")
    print(f"  Years : {args.start_year} .. {args.end_year}")
    dataset = load_reference(args.ref_root, args.start_year, args.end_year, layout=args.layout)
    if not len(dataset):
        print("No reference data found. Aborting.")
        return 1

    print("Grid:")
    print(f"  Base reference : {grid.base_reference.isoformat()}")
    print(f"  Synodic days   : {args.syn_min} .. {args.syn_max} (step {args.syn_step})")
    print(f"  Offset hours   : {args.offset_min} .. {args.offset_max} (step {args.offset_step})")
    print(f"  Tolerance      : {args.tolerance}")
    print(f"  Candidates     : {len(grid)}")
    print()

    cancel = threading.Event()
    prev = signal.signal(signal.SIGINT, lambda *_: cancel.set())
    try:
        result = calibrate(
            dataset, args.start_year, args.end_year,
            grid=grid, settings=specs.search_preset(args.preset),
            workers=args.workers, cancel=cancel,
        )
    finally:
        signal.signal(signal.SIGINT, prev)

    print(f"Tested combinations: {result.tested} (excluded {result.excluded})")
    if result.cancelled:
        print("Interrupted: showing best of the candidates finished so far.")
    if not result.found:
        print("No candidate produced a comparable year; no calibration result.")
        return 1

    best = result.require_best()
    print()
    print("Best parameters:")
    print(f"  reference_new_moon : {best.reference_new_moon.isoformat()}")
    print(f"  synodic_month_days : {best.synodic_month_days:.4f}")
    print(f"  avg abs error (d)  : {best.avg_error_days:.5f}")
    print(f"  max abs error (d)  : {best.max_error_days:.5f}")
    print(f"  comparisons        : {best.comparisons} over {len(best.years_compared)} years")
    if best.years_skipped:
        print(f"  skipped years      : {len(best.years_skipped)} (full moon count mismatch)")
    return 0


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    p = argparse.ArgumentParser(prog="moonphase", description="Moon phase calendar and model calibration CLI.")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    p.add_argument("-q", "--quiet", action="store_true", help="Warnings and errors only")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("year", help="All principal phases of a year")
    sub.add_parser("month", help="Principal phases inside one month")
    sub.add_parser("full-moons", help="Full moons of a year (optional CSV export)")
    sub.add_parser("now", help="Current phase (nearest principal phase)")
    sub.add_parser("fetch", help="Fetch a year from the published static API")

    sub.add_parser("generate", help="Write per-year JSON files from the model")
    sub.add_parser("calibrate", help="Fit model parameters against reference full moons")
    sub.add_parser("residuals", help="Per-year residuals against reference data (diagnostics)")

    args, rest = p.parse_known_args(argv)

    level = logging.DEBUG if args.verbose else logging.WARNING if args.quiet else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    commands = {
        "year": cmd_year,
        "month": cmd_month,
        "full-moons": cmd_full_moons,
        "now": cmd_now,
        "fetch": cmd_fetch,
        "calibrate": cmd_calibrate,
    }
    modules = {
        "generate": "moonphase.generator",
        "residuals": "moonphase.diagnostics.residuals",
    }

    try:
        if args.cmd in commands:
            return commands[args.cmd](rest)
        if args.cmd in modules:
            return _run_module_main(modules[args.cmd], rest)
    except (MoonPhaseError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    raise RuntimeError("unreachable")


if __name__ == "__main__":
    raise SystemExit(main())
