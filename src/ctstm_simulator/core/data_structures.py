from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

import numpy as np


@dataclass(frozen=True, order=True)
class SimulationUnit:
    """One simulated entity: a patient under a strategy for a parameter sample."""

    strategy_id: int
    patient_id: int
    sample: int


class UnitStatus(Enum):
    ACTIVE = "active"
    ABSORBED = "absorbed"
    CENSORED = "censored"


@dataclass
class UnitCursor:
    """
    Mutable position of a unit while it is being simulated.

    ``time`` is the calendar time elapsed since the unit started and
    ``state_entry_time`` the calendar time at which the current state was
    entered.
    """

    state: int
    start_age: float = 0.0
    time: float = 0.0
    state_entry_time: float = 0.0
    status: UnitStatus = UnitStatus.ACTIVE

    @property
    def age(self) -> float:
        return self.start_age + self.time

    @property
    def time_in_state(self) -> float:
        return self.time - self.state_entry_time

    def advance(self, to_state: int, new_time: float) -> None:
        if not new_time > self.time:
            raise ValueError(
                f"Cannot advance from time {self.time} to {new_time}")
        self.state = to_state
        self.time = new_time
        self.state_entry_time = new_time


@dataclass(frozen=True)
class TransitionRecord:
    """
    One sojourn of a unit: state ``from_state`` occupied on
    ``[time_start, time_stop)`` and left for ``to_state``.

    A censored record has ``to_state == from_state`` and ends at the horizon.
    """

    unit: SimulationUnit
    from_state: int
    to_state: int
    time_start: float
    time_stop: float
    censored: bool = False

    def __post_init__(self):
        if not self.time_start < self.time_stop:
            raise ValueError(
                f"time_start ({self.time_start}) must be below time_stop "
                f"({self.time_stop})")
        if self.censored and self.to_state != self.from_state:
            raise ValueError("A censored record must end in its from_state")


@dataclass(frozen=True)
class Trajectory:
    """Ordered, immutable transition history of one unit."""

    unit: SimulationUnit
    initial_state: int
    records: Tuple[TransitionRecord, ...] = field(default_factory=tuple)

    @property
    def final_state(self) -> int:
        if not self.records:
            return self.initial_state
        return self.records[-1].to_state

    @property
    def censored(self) -> bool:
        return bool(self.records) and self.records[-1].censored

    @property
    def end_time(self) -> float:
        return self.records[-1].time_stop if self.records else 0.0

    def __len__(self) -> int:
        return len(self.records)

    def state_at(self, t: float) -> int:
        """State occupied at time ``t`` (last known state beyond the end)."""
        if not self.records or t >= self.end_time:
            return self.final_state
        starts = np.fromiter((r.time_start for r in self.records), dtype=float,
                             count=len(self.records))
        idx = int(np.searchsorted(starts, t, side="right")) - 1
        return self.records[max(idx, 0)].from_state

    def validate(self, absorbing: Tuple[int, ...] = (),
                 horizon: Optional[float] = None) -> None:
        """
        Check record continuity and termination.

        Raises
        ------
        ValueError
            If records are not chained, not time ordered, exceed ``horizon``
            or end neither absorbed nor censored.
        """
        if not self.records:
            return
        if self.records[0].from_state != self.initial_state:
            raise ValueError("First record must leave the initial state")
        for prev, nxt in zip(self.records, self.records[1:]):
            if prev.to_state != nxt.from_state:
                raise ValueError(
                    f"Record chain broken: {prev.to_state} -> {nxt.from_state}")
            if prev.time_stop != nxt.time_start:
                raise ValueError("Records must be contiguous in time")
            if prev.censored:
                raise ValueError("Only the final record may be censored")
        last = self.records[-1]
        if not (last.censored or last.to_state in absorbing):
            raise ValueError(
                "Trajectory must end in an absorbing state or be censored")
        if horizon is not None and any(r.time_stop > horizon
                                       for r in self.records):
            raise ValueError(f"Record exceeds the horizon {horizon}")

    def to_rows(self) -> List[dict]:
        rows = []
        n = len(self.records)
        for i, r in enumerate(self.records):
            rows.append({
                "sample": self.unit.sample,
                "strategy_id": self.unit.strategy_id,
                "patient_id": self.unit.patient_id,
                "from": r.from_state,
                "to": r.to_state,
                "final": i == n - 1,
                "censored": r.censored,
                "time_start": r.time_start,
                "time_stop": r.time_stop,
            })
        return rows
