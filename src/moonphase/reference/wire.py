"""
JSON codec for event records:

  [
    { "Date": "YYYY-MM-DDTHH:MM:SS", "Phase": 0..3 },
    ...
  ]

Dates carry no zone suffix and mean UTC.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from ..core.errors import ReferenceDataError
from ..core.time import format_iso, parse_iso
from ..core.types import MoonEvent, Phase

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def parse_record(rec: Any) -> Optional[MoonEvent]:
    """One record -> MoonEvent, or None if malformed."""
    if not isinstance(rec, dict):
        return None
    date_s = rec.get("Date")
    phase_raw = rec.get("Phase")
    if not isinstance(date_s, str):
        return None
    if not isinstance(phase_raw, int) or isinstance(phase_raw, bool):
        return None
    try:
        phase = Phase.from_id(phase_raw)
        t = parse_iso(date_s)
    except (TypeError, ValueError):
        return None
    return MoonEvent(t, phase)


def parse_events(data: Any) -> List[MoonEvent]:
    """Decode an array of records, silently dropping the malformed ones."""
    if not isinstance(data, list):
        raise ReferenceDataError(f"expected a JSON array of records, got {type(data).__name__}")
    out: List[MoonEvent] = []
    for rec in data:
        ev = parse_record(rec)
        if ev is None:
            logger.debug("dropping malformed record %r", rec)
            continue
        out.append(ev)
    return out


def to_record(ev: MoonEvent) -> Dict[str, Any]:
    return {"Date": format_iso(ev.time), "Phase": ev.phase.id}


def loads_events(text: str) -> List[MoonEvent]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ReferenceDataError(f"invalid JSON: {e}") from e
    return parse_events(data)


def dumps_events(events: Iterable[MoonEvent]) -> str:
    """One record per line, order preserved."""
    lines = [json.dumps(to_record(ev)) for ev in events]
    if not lines:
        return "[]\n"
    return "[\n  " + ",\n  ".join(lines) + "\n]\n"


def read_events(path: PathLike) -> List[MoonEvent]:
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise ReferenceDataError(f"cannot read {p}: {e}") from e
    return loads_events(text)


def write_events(path: PathLike, events: Iterable[MoonEvent]) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(dumps_events(events), encoding="utf-8")
    return p
