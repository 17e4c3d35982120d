from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

class Phase(Enum):
    """The four principal phases as (id, target fraction of the synodic cycle)."""
    NEW_MOON = (0, 0.0)
    FIRST_QUARTER = (1, 0.25)
    FULL_MOON = (2, 0.5)
    LAST_QUARTER = (3, 0.75)

    @property
    def id(self) -> int:
        return self.value[0]

    @property
    def target(self) -> float:
        return self.value[1]

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def ascii(self) -> str:
        return _ASCII[self]

    @classmethod
    def from_id(cls, phase_id: int) -> "Phase":
        for p in cls:
            if p.id == phase_id:
                return p
        raise ValueError(f"Unknown phase id {phase_id!r}. Expected 0..3")


_LABELS = {
    Phase.NEW_MOON: "New Moon",
    Phase.FIRST_QUARTER: "First Quarter",
    Phase.FULL_MOON: "Full Moon",
    Phase.LAST_QUARTER: "Last Quarter",
}

_ASCII = {
    Phase.NEW_MOON: "[   ]",
    Phase.FIRST_QUARTER: "[=  ]",
    Phase.FULL_MOON: "[###]",
    Phase.LAST_QUARTER: "[  =]",
}


@dataclass(frozen=True)
class MoonEvent:
    time: datetime  # naive, UTC
    phase: Phase

@dataclass(frozen=True)
class PhaseSnapshot:
    at: datetime
    phase_value: float
    last: Optional[MoonEvent]
    next: Optional[MoonEvent]

    @property
    def nearest(self) -> Optional[MoonEvent]:
        if self.last is None or self.next is None:
            return self.last or self.next
        if (self.at - self.last.time) <= (self.next.time - self.at):
            return self.last
        return self.next

    @property
    def days_to_next(self) -> Optional[float]:
        if self.next is None:
            return None
        return (self.next.time - self.at).total_seconds() / 86400.0
