from __future__ import annotations

from datetime import datetime
from typing import Dict

from .model import PhaseModel
from .search import SearchSettings


# ============================================================
# CALIBRATED MODEL
# ============================================================

# Calibrated against reference full moons 1900-2080:
#   avg abs error ~0.0033 days, max abs error ~1.0 day
REFERENCE_NEW_MOON = datetime(2000, 1, 6, 18, 14)
SYNODIC_MONTH_DAYS = 29.5306
TOLERANCE_PHASE = 0.03

DEFAULT_MODEL = PhaseModel(
    reference_new_moon=REFERENCE_NEW_MOON,
    synodic_month_days=SYNODIC_MONTH_DAYS,
    tolerance_phase=TOLERANCE_PHASE,
)


# ============================================================
# SEARCH PRESETS
# ============================================================

# "calibrated": 3h coarse step, +/-2 day pad, hourly refinement over +/-1 day.
# "coarse":     6h coarse step, no pad, same refinement.
SEARCH_PRESETS: Dict[str, SearchSettings] = {
    "calibrated": SearchSettings(step_hours=3, pad_days=2),
    "coarse": SearchSettings(step_hours=6, pad_days=0),
}

DEFAULT_PRESET = "calibrated"


def search_preset(name: str) -> SearchSettings:
    if name not in SEARCH_PRESETS:
        raise KeyError(f"Unknown search preset '{name}'. Available: {sorted(SEARCH_PRESETS)}")
    return SEARCH_PRESETS[name]


# ============================================================
# CALIBRATION GRID DEFAULTS
# ============================================================

GRID_OFFSET_HOURS = (-24, 24, 6)            # min, max, step (inclusive)
GRID_SYNODIC_DAYS = (29.528, 29.533, 0.0002)  # min, max, step (inclusive)

# Published static API, one <year>.json per year.
STATIC_API_BASE_URL = "https://marcdziersan.github.io/MoonPhaseStaticAPI/api/data/"
