"""
moonphase.calibration.optimizer
-------------------------------
Grid-search calibration of (reference new moon, synodic month length) against
reference full moons.

Scoring rule per candidate and year:
  - compute the year's events, keep FULL_MOON only;
  - if the count differs from the reference count, the year is skipped;
  - otherwise pair i-th with i-th and add |dt| in days.
The candidate score is the mean over all paired events. Candidates without any
paired event are excluded.

Skipping mismatched years can favour candidates that make fewer comparisons;
each score records its skipped years so that bias stays visible.

Reduction key is (avg_error, grid index): equal scores resolve to the earliest
candidate in scan order, independent of how (or in which order) scores arrive.
"""

from __future__ import annotations

import logging
import signal
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Protocol, Tuple

import numpy as np

from ..core.errors import NoComparableYearsError
from ..core.time import days_between
from ..core.types import Phase
from ..engines.model import PhaseModel
from ..engines.search import EventSearchEngine, SearchSettings
from ..reference.dataset import ReferenceDataset
from .grid import Candidate, ParameterGrid

logger = logging.getLogger(__name__)


class CancelSignal(Protocol):
    def is_set(self) -> bool: ...


ProgressFn = Callable[[int, int], None]


@dataclass(frozen=True)
class CandidateScore:
    candidate: Candidate
    reference_new_moon: datetime
    synodic_month_days: float
    avg_error_days: float
    max_error_days: float
    comparisons: int
    years_compared: Tuple[int, ...]
    years_skipped: Tuple[int, ...]

    @property
    def key(self) -> Tuple[float, int]:
        return (self.avg_error_days, self.candidate.index)


@dataclass(frozen=True)
class CalibrationResult:
    best: Optional[CandidateScore]
    tested: int
    excluded: int
    total: int
    cancelled: bool = False

    @property
    def found(self) -> bool:
        return self.best is not None

    def require_best(self) -> CandidateScore:
        if self.best is None:
            raise NoComparableYearsError(
                f"No candidate produced a comparable year ({self.tested} tested, {self.excluded} excluded)"
            )
        return self.best

    def best_model(self, tolerance_phase: float) -> PhaseModel:
        b = self.require_best()
        return PhaseModel(b.reference_new_moon, b.synodic_month_days, tolerance_phase)


def year_errors(
    model: PhaseModel,
    year: int,
    reference: List[datetime],
    settings: Optional[SearchSettings] = None,
) -> Optional[List[float]]:
    """
    Absolute errors (days) of the model's full moons against `reference` for one
    year, paired by position. None when the counts differ.
    """
    events = EventSearchEngine(model, settings).calculate_year(year)
    computed = [ev.time for ev in events if ev.phase is Phase.FULL_MOON]
    if len(computed) != len(reference):
        return None
    return [abs(days_between(r, c)) for r, c in zip(reference, computed)]


def score_candidate(
    candidate: Candidate,
    base: PhaseModel,
    dataset: ReferenceDataset,
    years: Iterable[int],
    settings: Optional[SearchSettings] = None,
) -> Optional[CandidateScore]:
    model = candidate.model(base)
    errors: List[float] = []
    compared: List[int] = []
    skipped: List[int] = []

    for year in years:
        ref = dataset.get(year)
        if not ref:
            continue
        errs = year_errors(model, year, ref, settings)
        if errs is None:
            skipped.append(year)
            continue
        errors.extend(errs)
        compared.append(year)

    if not errors:
        logger.debug("candidate #%d excluded: no comparable years", candidate.index)
        return None

    arr = np.asarray(errors, dtype=float)
    score = CandidateScore(
        candidate=candidate,
        reference_new_moon=model.reference_new_moon,
        synodic_month_days=model.synodic_month_days,
        avg_error_days=float(arr.sum() / arr.size),
        max_error_days=float(arr.max()),
        comparisons=int(arr.size),
        years_compared=tuple(compared),
        years_skipped=tuple(skipped),
    )
    logger.debug(
        "candidate #%d ref=%s syn=%.4f avg=%.5f d (%d comparisons, %d years skipped)",
        candidate.index, score.reference_new_moon.isoformat(), score.synodic_month_days,
        score.avg_error_days, score.comparisons, len(skipped),
    )
    return score


def better(a: Optional[CandidateScore], b: Optional[CandidateScore]) -> Optional[CandidateScore]:
    """Reduction step: lower (avg_error, grid index) wins."""
    if a is None:
        return b
    if b is None:
        return a
    return a if a.key <= b.key else b


def calibrate(
    dataset: ReferenceDataset,
    start_year: int,
    end_year: int,
    *,
    grid: Optional[ParameterGrid] = None,
    settings: Optional[SearchSettings] = None,
    workers: int = 1,
    cancel: Optional[CancelSignal] = None,
    progress: Optional[ProgressFn] = None,
) -> CalibrationResult:
    """
    Scan the grid and return the best candidate over years start_year..end_year.

    With workers > 1 candidates are scored in a process pool. A set `cancel`
    stops the scan early; the result then holds the best over finished candidates.
    """
    if end_year < start_year:
        raise ValueError("end_year must be >= start_year")
    grid = grid if grid is not None else ParameterGrid()
    years = [y for y in range(start_year, end_year + 1) if dataset.get(y)]
    base = grid.base_model
    total = len(grid)

    logger.info(
        "Calibrating %d candidates over %d reference years (%d..%d), tolerance %.3f",
        total, len(years), start_year, end_year, grid.tolerance_phase,
    )

    if workers > 1:
        best, tested, excluded, cancelled = _scan_parallel(grid, base, dataset, years, settings, workers, cancel, progress)
    else:
        best, tested, excluded, cancelled = _scan_sequential(grid, base, dataset, years, settings, cancel, progress)

    result = CalibrationResult(best=best, tested=tested, excluded=excluded, total=total, cancelled=cancelled)
    if cancelled:
        logger.warning("Calibration cancelled after %d of %d candidates", tested + excluded, total)
    if best is None:
        logger.warning("Calibration found no candidate with comparable years")
    else:
        logger.info(
            "Best: ref=%s syn=%.4f avg=%.5f d max=%.5f d",
            best.reference_new_moon.isoformat(), best.synodic_month_days,
            best.avg_error_days, best.max_error_days,
        )
    return result


def _scan_sequential(grid, base, dataset, years, settings, cancel, progress):
    best: Optional[CandidateScore] = None
    tested = excluded = 0
    total = len(grid)
    for cand in grid:
        if cancel is not None and cancel.is_set():
            return best, tested, excluded, True
        score = score_candidate(cand, base, dataset, years, settings)
        if score is None:
            excluded += 1
        else:
            tested += 1
            best = better(best, score)
        if progress is not None:
            progress(tested + excluded, total)
    return best, tested, excluded, False


def _scan_parallel(grid, base, dataset, years, settings, workers, cancel, progress):
    best: Optional[CandidateScore] = None
    tested = excluded = 0
    total = len(grid)
    if cancel is not None and cancel.is_set():
        return best, tested, excluded, True

    def reduce(fut) -> None:
        nonlocal best, tested, excluded
        score = fut.result()
        if score is None:
            excluded += 1
        else:
            tested += 1
            best = better(best, score)
        if progress is not None:
            progress(tested + excluded, total)

    cancelled = False
    reduced = set()
    with ProcessPoolExecutor(max_workers=workers, initializer=_ignore_sigint) as pool:
        futures = [pool.submit(score_candidate, cand, base, dataset, years, settings) for cand in grid]
        for fut in as_completed(futures):
            reduce(fut)
            reduced.add(fut)
            if cancel is not None and cancel.is_set():
                cancelled = True
                for f in futures:
                    f.cancel()
                break

    # candidates already running when the scan stopped still finish on pool exit
    if cancelled:
        for fut in futures:
            if fut not in reduced and not fut.cancelled():
                reduce(fut)
    return best, tested, excluded, cancelled


def _ignore_sigint() -> None:
    # workers never see Ctrl-C; the parent decides via `cancel`
    signal.signal(signal.SIGINT, signal.SIG_IGN)
