# tests/test_phase_model.py

import pytest
from datetime import datetime, timedelta, timezone

from moonphase import Phase, PhaseModel, phase_distance
from moonphase.engines.specs import DEFAULT_MODEL, REFERENCE_NEW_MOON, SYNODIC_MONTH_DAYS


def test_reference_is_exact_new_moon():
    assert DEFAULT_MODEL.phase_value(REFERENCE_NEW_MOON) == 0.0

def test_default_matches_calibrated_constants():
    m = PhaseModel.default()
    assert m.reference_new_moon == datetime(2000, 1, 6, 18, 14)
    assert m.synodic_month_days == 29.5306
    assert m.tolerance_phase == 0.03
    # 0.03 of a cycle is a bit under a day
    assert m.tolerance_days == pytest.approx(0.886, abs=1e-3)

def test_periodicity():
    t0 = datetime(2013, 5, 17, 9, 30)
    p0 = DEFAULT_MODEL.phase_value(t0)
    for k in (-40, -1, 1, 7, 300):
        t = t0 + timedelta(days=k * SYNODIC_MONTH_DAYS)
        assert phase_distance(DEFAULT_MODEL.phase_value(t), p0) < 1e-6

def test_half_and_quarter_cycles():
    half = REFERENCE_NEW_MOON + timedelta(days=SYNODIC_MONTH_DAYS / 2)
    quarter = REFERENCE_NEW_MOON + timedelta(days=SYNODIC_MONTH_DAYS / 4)
    assert DEFAULT_MODEL.phase_value(half) == pytest.approx(0.5, abs=1e-6)
    assert DEFAULT_MODEL.phase_value(quarter) == pytest.approx(0.25, abs=1e-6)

def test_times_before_reference_wrap_into_unit_interval():
    for days in (0.1, 3.0, 15.0, 29.0, 1000.0, 36524.0):
        v = DEFAULT_MODEL.phase_value(REFERENCE_NEW_MOON - timedelta(days=days))
        assert 0.0 <= v < 1.0
    # a quarter cycle before the reference is the previous last quarter
    v = DEFAULT_MODEL.phase_value(REFERENCE_NEW_MOON - timedelta(days=SYNODIC_MONTH_DAYS / 4))
    assert v == pytest.approx(0.75, abs=1e-6)

def test_aware_datetimes_are_read_as_utc():
    cet = timezone(timedelta(hours=1))
    aware_ref = datetime(2000, 1, 6, 19, 14, tzinfo=cet)
    m = PhaseModel(aware_ref, SYNODIC_MONTH_DAYS)
    assert m.reference_new_moon == REFERENCE_NEW_MOON
    assert m.reference_new_moon.tzinfo is None
    assert DEFAULT_MODEL.phase_value(aware_ref) == 0.0

def test_distance_bounds_and_symmetry():
    values = [i / 40 for i in range(40)]
    for a in values:
        assert phase_distance(a, a) == 0.0
        for b in values:
            d = phase_distance(a, b)
            assert 0.0 <= d <= 0.5
            assert d == phase_distance(b, a)
            if a != b:
                assert d > 0.0

def test_distance_wraps_around_zero():
    assert phase_distance(0.02, 0.98) == pytest.approx(0.04)
    assert phase_distance(0.0, 0.5) == pytest.approx(0.5)
    assert PhaseModel.phase_distance(0.9, 0.1) == pytest.approx(0.2)

def test_invalid_parameters_rejected():
    with pytest.raises(ValueError):
        PhaseModel(REFERENCE_NEW_MOON, 0.0)
    with pytest.raises(ValueError):
        PhaseModel(REFERENCE_NEW_MOON, SYNODIC_MONTH_DAYS, tolerance_phase=0.5)
    with pytest.raises(ValueError):
        PhaseModel(REFERENCE_NEW_MOON, SYNODIC_MONTH_DAYS, tolerance_phase=0.0)

def test_shifted_copy():
    m = DEFAULT_MODEL.shifted(hours=-6, synodic_month_days=29.53)
    assert m.reference_new_moon == datetime(2000, 1, 6, 12, 14)
    assert m.synodic_month_days == 29.53
    assert m.tolerance_phase == DEFAULT_MODEL.tolerance_phase
    # receiver unchanged
    assert DEFAULT_MODEL.synodic_month_days == SYNODIC_MONTH_DAYS

def test_phase_variants():
    assert [(p.id, p.target) for p in Phase] == [(0, 0.0), (1, 0.25), (2, 0.5), (3, 0.75)]
    assert Phase.from_id(2) is Phase.FULL_MOON
    assert Phase.FULL_MOON.ascii == "[###]"
    with pytest.raises(ValueError):
        Phase.from_id(4)
