from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Optional, Sequence

from services.care_schedule import CareSchedule
from services.garden import Plant
from services.history import HistoryEntry, HistoryGroup, sort_groups_ascending
from services.periodicity import align_forward, as_day, occurrences

DEFAULT_WINDOW_DAYS = 14


def _projected_entry(plant: Plant, action_date: date, schedule: CareSchedule) -> HistoryEntry:
    return HistoryEntry(
        date=action_date,
        action_type=schedule.action_type,
        is_done=False,
        plant_id=plant.id,
        plant_name=plant.name,
        plant_icon_ref=plant.icon_ref,
    )


def get_upcoming_groups(plants: Iterable[Plant], start: date, end: date) -> list[HistoryGroup]:
    """Projected occurrences in ``[start, end)`` bucketed by day, ascending.

    Occurrences of different plants or actions that share a day end up in the same
    group; there is never more than one group per date.
    """

    start_day = as_day(start)
    groups: dict[date, HistoryGroup] = {}
    for plant in plants:
        for schedule in plant.schedules:
            if not schedule.is_active:
                continue
            first = align_forward(schedule.periodicity, start_day, schedule.start_date)
            if first is None:
                continue
            for occurrence in occurrences(schedule.periodicity, first, end):
                group = groups.get(occurrence, HistoryGroup(date=occurrence))
                groups[occurrence] = group.with_entry(_projected_entry(plant, occurrence, schedule))
    return sort_groups_ascending(list(groups.values()))


def get_today_group(plants: Iterable[Plant], reference_date: date) -> Optional[HistoryGroup]:
    """Recorded entries dated ``reference_date``, tagged with current plant metadata."""

    today = as_day(reference_date)
    matches = [
        plant.tag(entry)
        for plant in plants
        for entry in plant.history
        if entry.date == today
    ]
    if not matches:
        return None
    return HistoryGroup.from_entries(today, matches)


@dataclass(frozen=True, slots=True)
class Agenda:
    reference_date: date
    today: Optional[HistoryGroup]
    upcoming: tuple[HistoryGroup, ...]

    @property
    def has_due_today(self) -> bool:
        return self.today is not None

    @property
    def groups(self) -> list[HistoryGroup]:
        combined = list(self.upcoming)
        if self.today is not None:
            combined.insert(0, self.today)
        return sort_groups_ascending(combined)

    def to_payload(self) -> dict[str, object]:
        return {
            "referenceDate": self.reference_date.isoformat(),
            "today": self.today.to_payload() if self.today is not None else None,
            "upcoming": [group.to_payload() for group in self.upcoming],
        }


def build_agenda(
    plants: Sequence[Plant],
    reference_date: date,
    *,
    window_days: int = DEFAULT_WINDOW_DAYS,
) -> Agenda:
    today = as_day(reference_date)
    upcoming = get_upcoming_groups(
        plants,
        today + timedelta(days=1),
        today + timedelta(days=window_days),
    )
    return Agenda(
        reference_date=today,
        today=get_today_group(plants, today),
        upcoming=tuple(upcoming),
    )


__all__ = [
    "Agenda",
    "DEFAULT_WINDOW_DAYS",
    "build_agenda",
    "get_today_group",
    "get_upcoming_groups",
]
