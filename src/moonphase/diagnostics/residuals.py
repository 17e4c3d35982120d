#!/usr/bin/env python3
from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

import numpy as np

from moonphase.core.time import days_between, parse_iso
from moonphase.core.types import Phase
from moonphase.engines.model import PhaseModel
from moonphase.engines.search import EventSearchEngine, SearchSettings
from moonphase.engines import specs
from moonphase.reference.dataset import LAYOUTS, ReferenceDataset, load_reference

logger = logging.getLogger(__name__)


def _need_matplotlib():
    try:
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
        return plt
    except ImportError as e:
        raise RuntimeError('Need matplotlib. Install: pip install "moonphase[diagnostics]"') from e


@dataclass(frozen=True)
class YearResidual:
    year: int
    reference_count: int
    model_count: int
    residuals_days: tuple  # signed model - reference, empty on count mismatch

    @property
    def matched(self) -> bool:
        return self.reference_count == self.model_count

    @property
    def mean_abs(self) -> Optional[float]:
        if not self.residuals_days:
            return None
        return float(np.mean(np.abs(self.residuals_days)))

    @property
    def max_abs(self) -> Optional[float]:
        if not self.residuals_days:
            return None
        return float(np.max(np.abs(self.residuals_days)))


def year_residuals(
    model: PhaseModel,
    dataset: ReferenceDataset,
    *,
    settings: Optional[SearchSettings] = None,
) -> List[YearResidual]:
    engine = EventSearchEngine(model, settings)
    out: List[YearResidual] = []
    for year in dataset.years:
        ref = dataset.get(year)
        calc = [ev.time for ev in engine.calculate_year(year) if ev.phase is Phase.FULL_MOON]
        res: tuple = ()
        if len(calc) == len(ref):
            res = tuple(days_between(r, c) for r, c in zip(ref, calc))
        out.append(YearResidual(year, len(ref), len(calc), res))
    return out


def print_table(rows: List[YearResidual]) -> None:
    print(f"{'Year':>5}  {'Ref':>4}  {'Model':>5}  {'Mean|d|':>9}  {'Max|d|':>9}")
    print("-" * 40)
    for r in rows:
        if r.matched and r.residuals_days:
            print(f"{r.year:>5}  {r.reference_count:>4}  {r.model_count:>5}  {r.mean_abs:>9.4f}  {r.max_abs:>9.4f}")
        else:
            print(f"{r.year:>5}  {r.reference_count:>4}  {r.model_count:>5}  {'mismatch':>9}  {'':>9}")


def plot_residuals(rows: List[YearResidual], out_png: str) -> None:
    plt = _need_matplotlib()
    xs: List[float] = []
    ys: List[float] = []
    for r in rows:
        for i, d in enumerate(r.residuals_days):
            xs.append(r.year + (i + 0.5) / max(1, len(r.residuals_days)))
            ys.append(d)

    fig, ax = plt.subplots(figsize=(12, 5))
    ax.scatter(xs, ys, s=2, alpha=0.6, color="blue")
    ax.axhline(0.0, color="black", linewidth=0.5)
    ax.set_title("Full moon residuals (model - reference)")
    ax.set_xlabel("Year")
    ax.set_ylabel("Residual (days)")
    ax.grid(True, alpha=0.3)
    plt.tight_layout()
    plt.savefig(out_png, dpi=150)
    plt.close(fig)


def main(argv: Optional[List[str]] = None) -> int:
    p = argparse.ArgumentParser(description="Per-year full moon residuals of the model against reference data.")
    p.add_argument("ref_root", help="Reference root directory")
    p.add_argument("start_year", type=int)
    p.add_argument("end_year", type=int)
    p.add_argument("--layout", choices=LAYOUTS, default="raw")
    p.add_argument("--model-ref", default=None, help="Reference new moon, ISO UTC (default: calibrated)")
    p.add_argument("--synodic", type=float, default=specs.SYNODIC_MONTH_DAYS)
    p.add_argument("--tolerance", type=float, default=specs.TOLERANCE_PHASE)
    p.add_argument("--preset", default=specs.DEFAULT_PRESET)
    p.add_argument("--out-png", default=None, help="Also save a scatter plot (needs matplotlib)")
    args = p.parse_args(argv)

    ref: datetime = parse_iso(args.model_ref) if args.model_ref else specs.REFERENCE_NEW_MOON
    model = PhaseModel(ref, args.synodic, args.tolerance)
    dataset = load_reference(args.ref_root, args.start_year, args.end_year, layout=args.layout)
    if not len(dataset):
        print("No reference data found.")
        return 1

    rows = year_residuals(model, dataset, settings=specs.search_preset(args.preset))
    print_table(rows)

    all_res = np.array([d for r in rows for d in r.residuals_days], dtype=float)
    mismatched = sum(1 for r in rows if not r.matched)
    print()
    if all_res.size:
        print(f"Compared events : {all_res.size}")
        print(f"Mean |error| (d): {np.mean(np.abs(all_res)):.5f}")
        print(f"Max  |error| (d): {np.max(np.abs(all_res)):.5f}")
    print(f"Mismatched years: {mismatched}")

    if args.out_png:
        plot_residuals(rows, args.out_png)
        print(f"Plot saved to {args.out_png}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
