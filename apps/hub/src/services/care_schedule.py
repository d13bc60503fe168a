from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional

from services.periodicity import Periodicity, align_forward, as_day, is_unset


class ActionType(str, Enum):
    WATERING = "watering"
    MISTING = "misting"
    FEEDING = "feeding"
    REPOTTING = "repotting"

    @property
    def code(self) -> int:
        return _ACTION_CODES[self]

    @classmethod
    def from_code(cls, code: int) -> "ActionType":
        for action_type, candidate in _ACTION_CODES.items():
            if candidate == code:
                return action_type
        raise ValueError(f"Unknown action type code {code!r}")


_ACTION_CODES: dict[ActionType, int] = {
    ActionType.WATERING: 1,
    ActionType.MISTING: 2,
    ActionType.FEEDING: 3,
    ActionType.REPOTTING: 4,
}

ACTION_TYPES: tuple[ActionType, ...] = tuple(ActionType)


@dataclass(frozen=True, slots=True)
class CareSchedule:
    """When one care action starts and how often it repeats.

    ``warning`` carries a diagnostic from the decode boundary (substituted periodicity,
    start/periodicity mismatch) so callers can surface it.
    """

    action_type: ActionType
    start_date: Optional[date] = None
    periodicity: Periodicity = field(default_factory=Periodicity.none)
    warning: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "action_type", ActionType(self.action_type))
        if self.start_date is not None:
            object.__setattr__(self, "start_date", as_day(self.start_date))

    @classmethod
    def inactive(cls, action_type: ActionType) -> "CareSchedule":
        return cls(action_type=action_type)

    @property
    def is_active(self) -> bool:
        return self.periodicity.is_active and not is_unset(self.start_date)

    @property
    def is_consistent(self) -> bool:
        return self.periodicity.is_active == (not is_unset(self.start_date))

    def next_due_date(self, reference_date: date) -> Optional[date]:
        return next_due_date(self, reference_date)


def next_due_date(schedule: CareSchedule, reference_date: date) -> Optional[date]:
    """First due date of ``schedule`` on or after ``reference_date``; ``None`` when inactive."""

    return align_forward(schedule.periodicity, reference_date, schedule.start_date)


__all__ = [
    "ACTION_TYPES",
    "ActionType",
    "CareSchedule",
    "next_due_date",
]
