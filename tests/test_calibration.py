# tests/test_calibration.py

import threading

import pytest
from datetime import datetime

from moonphase import (
    NoComparableYearsError,
    ParameterGrid,
    ReferenceDataset,
    calibrate,
    synthetic_reference,
)
from moonphase.calibration.optimizer import better, score_candidate, year_errors
from moonphase.engines.specs import DEFAULT_MODEL, REFERENCE_NEW_MOON, SYNODIC_MONTH_DAYS


SMALL_GRID = ParameterGrid(
    offset_hours=(-6, 6, 6),
    synodic_days=(29.5302, 29.5310, 0.0002),
)
# (offset 0, 29.5306) in scan order: one offset row of 5, then 2 more
DEFAULT_INDEX = 7


@pytest.fixture(scope="module")
def reference():
    return synthetic_reference(DEFAULT_MODEL, [2023, 2024, 2025])


def test_default_grid_size():
    grid = ParameterGrid()
    assert grid.offsets == [-24.0, -18.0, -12.0, -6.0, 0.0, 6.0, 12.0, 18.0, 24.0]
    assert len(grid.synodics) == 26
    assert grid.synodics[0] == 29.528
    assert grid.synodics[-1] == 29.533
    assert len(grid) == 234
    assert len(list(grid)) == 234

def test_grid_scan_order():
    cands = list(SMALL_GRID)
    assert [c.index for c in cands] == list(range(15))
    assert (cands[0].offset_hours, cands[0].synodic_month_days) == (-6.0, 29.5302)
    assert (cands[1].offset_hours, cands[1].synodic_month_days) == (-6.0, 29.5304)
    c = cands[DEFAULT_INDEX]
    assert (c.offset_hours, c.synodic_month_days) == (0.0, SYNODIC_MONTH_DAYS)
    assert c.model(SMALL_GRID.base_model) == DEFAULT_MODEL

def test_grid_rejects_bad_axes():
    with pytest.raises(ValueError):
        ParameterGrid(offset_hours=(0, 6, 0))
    with pytest.raises(ValueError):
        ParameterGrid(synodic_days=(29.6, 29.5, 0.001))

def test_self_calibration_recovers_default(reference):
    ds = ReferenceDataset({y: tuple(reference.get(y)) for y in (2024, 2025)})
    result = calibrate(ds, 2024, 2025, grid=SMALL_GRID)

    assert result.found
    assert not result.cancelled
    assert result.total == 15
    assert result.tested + result.excluded == 15
    best = result.require_best()
    assert best.candidate.index == DEFAULT_INDEX
    assert best.reference_new_moon == REFERENCE_NEW_MOON
    assert best.synodic_month_days == SYNODIC_MONTH_DAYS
    assert best.avg_error_days == 0.0
    assert best.max_error_days == 0.0
    assert best.years_compared == (2024, 2025)
    assert best.years_skipped == ()
    assert best.comparisons == len(ds.get(2024)) + len(ds.get(2025))
    assert result.best_model(0.03) == DEFAULT_MODEL

def test_mismatched_year_is_skipped(reference):
    broken_2023 = reference.get(2023)
    del broken_2023[5]
    ds = reference.with_year(2023, broken_2023)

    result = calibrate(ds, 2023, 2025, grid=SMALL_GRID)
    best = result.require_best()
    assert best.candidate.index == DEFAULT_INDEX
    assert best.avg_error_days == 0.0
    assert best.years_skipped == (2023,)
    assert best.years_compared == (2024, 2025)

def test_year_errors_count_mismatch_is_none(reference):
    ref = reference.get(2025)
    assert year_errors(DEFAULT_MODEL, 2025, ref) == [0.0] * len(ref)
    assert year_errors(DEFAULT_MODEL, 2025, ref[:-1]) is None

def test_parallel_matches_sequential(reference):
    seq = calibrate(reference, 2024, 2025, grid=SMALL_GRID)
    par = calibrate(reference, 2024, 2025, grid=SMALL_GRID, workers=2)
    assert par.best == seq.best
    assert (par.tested, par.excluded) == (seq.tested, seq.excluded)

def test_cancel_before_start(reference):
    stop = threading.Event()
    stop.set()
    result = calibrate(reference, 2024, 2025, grid=SMALL_GRID, cancel=stop)
    assert result.cancelled
    assert result.best is None
    assert result.tested + result.excluded == 0
    with pytest.raises(NoComparableYearsError):
        result.require_best()

def test_cancel_midway_keeps_partial_best(reference):
    stop = threading.Event()
    seen = []

    def progress(done, total):
        seen.append((done, total))
        if done >= 2:
            stop.set()

    result = calibrate(reference, 2024, 2025, grid=SMALL_GRID, cancel=stop, progress=progress)
    assert result.cancelled
    assert seen == [(1, 15), (2, 15)]
    assert result.tested + result.excluded == 2

class _SetOnCall:
    """Cancel flag that reads as set from the n-th is_set() call on."""

    def __init__(self, n):
        self.n = n
        self.calls = 0

    def is_set(self):
        self.calls += 1
        return self.calls >= self.n

def test_parallel_cancel_before_start(reference):
    stop = threading.Event()
    stop.set()
    result = calibrate(reference, 2024, 2025, grid=SMALL_GRID, workers=2, cancel=stop)
    assert result.cancelled
    assert result.best is None
    assert result.tested + result.excluded == 0

def test_parallel_cancel_reduces_every_finished_candidate(reference):
    # first check passes, second (after the first finished candidate) cancels
    stop = _SetOnCall(2)
    seen = []
    result = calibrate(
        reference, 2024, 2025, grid=SMALL_GRID, workers=2,
        cancel=stop, progress=lambda done, total: seen.append((done, total)),
    )
    assert result.cancelled
    done = result.tested + result.excluded
    assert 1 <= done <= 15
    assert seen == [(i, 15) for i in range(1, done + 1)]
    if result.tested:
        assert result.best is not None
        assert result.best.avg_error_days >= 0.0

def test_parallel_cancel_never_loses_the_best(reference):
    # the cancel fires on the check that follows the last candidate
    stop = _SetOnCall(16)
    result = calibrate(reference, 2024, 2025, grid=SMALL_GRID, workers=2, cancel=stop)
    assert result.cancelled
    assert result.tested + result.excluded == 15
    assert result.best is not None
    assert result.best.candidate.index == DEFAULT_INDEX

@pytest.mark.slow
def test_default_grid_recovers_default_model():
    # 2000 pins the offset (cycles near 0), 2050 pins the synodic length;
    # no full moon sits near either year's window edge, so no year is skipped
    ds = synthetic_reference(DEFAULT_MODEL, [2000, 2050])
    grid = ParameterGrid()
    result = calibrate(ds, 2000, 2050, grid=grid)

    best = result.require_best()
    assert result.total == 234
    assert result.tested == 234
    assert best.candidate.index == 4 * 26 + 13
    assert best.avg_error_days == 0.0
    assert best.reference_new_moon == REFERENCE_NEW_MOON
    assert best.synodic_month_days == SYNODIC_MONTH_DAYS
    assert best.years_compared == (2000, 2050)
    assert best.years_skipped == ()

def test_no_comparable_years():
    ds = ReferenceDataset({2025: (datetime(2025, 6, 1),)})
    result = calibrate(ds, 2025, 2025, grid=SMALL_GRID)
    assert not result.found
    assert result.excluded == 15
    with pytest.raises(NoComparableYearsError):
        result.best_model(0.03)

def test_empty_dataset_excludes_everything():
    result = calibrate(ReferenceDataset(), 2000, 2001, grid=SMALL_GRID)
    assert result.best is None
    assert result.tested == 0

def test_better_prefers_lower_error_then_lower_index(reference):
    grid = list(SMALL_GRID)
    base = SMALL_GRID.base_model
    years = [2025]
    a = score_candidate(grid[DEFAULT_INDEX], base, reference, years)
    b = score_candidate(grid[DEFAULT_INDEX + 1], base, reference, years)
    assert a is not None and b is not None
    assert b.avg_error_days > 0.0
    assert better(a, b) is a
    assert better(b, a) is a
    assert better(None, b) is b
    assert better(a, None) is a

    twin = score_candidate(grid[DEFAULT_INDEX], base, reference, years)
    assert better(twin, a) is twin
    assert better(a, twin) is a

def test_calibrate_rejects_reversed_range(reference):
    with pytest.raises(ValueError):
        calibrate(reference, 2025, 2024, grid=SMALL_GRID)
