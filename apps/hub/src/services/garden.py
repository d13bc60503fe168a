"""Immutable plant and user snapshots.

Every operation returns a new snapshot; nothing here mutates its inputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Callable, Iterable, Optional

from services.archive import DEFAULT_CUTOFF_MONTHS, HistoryPartition, partition_history
from services.care_schedule import ACTION_TYPES, ActionType, CareSchedule
from services.history import HistoryEntry, new_entry_id, sort_newest_first
from services.periodicity import as_day

IdFactory = Callable[[], str]


class GardenError(RuntimeError):
    """Base class for snapshot update failures."""


class PlantNotFoundError(GardenError, LookupError):
    """Raised when an update targets a plant the user does not own."""


class HistoryEntryNotFoundError(GardenError, LookupError):
    """Raised when a history entry id matches nothing in the snapshot."""


def _inactive(action_type: ActionType) -> Callable[[], CareSchedule]:
    return lambda: CareSchedule.inactive(action_type)


@dataclass(frozen=True, slots=True)
class Plant:
    id: str
    name: str = ""
    notes: str = ""
    icon_ref: str = ""
    watering: CareSchedule = field(default_factory=_inactive(ActionType.WATERING))
    misting: CareSchedule = field(default_factory=_inactive(ActionType.MISTING))
    feeding: CareSchedule = field(default_factory=_inactive(ActionType.FEEDING))
    repotting: CareSchedule = field(default_factory=_inactive(ActionType.REPOTTING))
    history: tuple[HistoryEntry, ...] = ()

    def __post_init__(self) -> None:
        for attr in ("id", "name", "notes", "icon_ref"):
            object.__setattr__(self, attr, (getattr(self, attr) or "").strip())
        for action_type in ACTION_TYPES:
            schedule = getattr(self, action_type.value)
            if schedule.action_type is not action_type:
                raise ValueError(
                    f"{action_type.value} slot holds a {schedule.action_type.value} schedule"
                )
        object.__setattr__(self, "history", tuple(self.history))

    @property
    def schedules(self) -> tuple[CareSchedule, ...]:
        return tuple(self.schedule_for(action_type) for action_type in ACTION_TYPES)

    def schedule_for(self, action_type: ActionType) -> CareSchedule:
        return getattr(self, ActionType(action_type).value)

    def with_schedule(self, schedule: CareSchedule) -> "Plant":
        return replace(self, **{schedule.action_type.value: schedule})

    def with_history(self, entries: Iterable[HistoryEntry]) -> "Plant":
        additions = tuple(entries)
        if not additions:
            return self
        return replace(self, history=self.history + additions)

    def history_newest_first(self) -> list[HistoryEntry]:
        return sort_newest_first(self.history)

    def latest_entry(self, action_type: ActionType) -> Optional[HistoryEntry]:
        candidates = [entry for entry in self.history if entry.action_type is action_type]
        if not candidates:
            return None
        return max(candidates, key=lambda entry: entry.date)

    def tag(self, entry: HistoryEntry, owner_user_id: Optional[str] = None) -> HistoryEntry:
        return entry.tagged(
            plant_id=self.id,
            plant_name=self.name,
            plant_icon_ref=self.icon_ref,
            owner_user_id=owner_user_id,
        )

    def next_due_dates(self, reference_date: date) -> dict[ActionType, Optional[date]]:
        return {schedule.action_type: schedule.next_due_date(reference_date) for schedule in self.schedules}

    def partition_history(self, reference_date: date, months: int = DEFAULT_CUTOFF_MONTHS) -> HistoryPartition:
        return partition_history(self.history_newest_first(), reference_date, months)

    def recent_history(self, reference_date: date, months: int = DEFAULT_CUTOFF_MONTHS) -> tuple[HistoryEntry, ...]:
        return self.partition_history(reference_date, months).recent

    def old_history(self, reference_date: date, months: int = DEFAULT_CUTOFF_MONTHS) -> tuple[HistoryEntry, ...]:
        return self.partition_history(reference_date, months).old

    def seed_today(self, reference_date: date, owner_user_id: str, id_factory: IdFactory = new_entry_id) -> "Plant":
        """Record a pending entry for each action whose schedule starts on ``reference_date``.

        Actions that already have an entry dated ``reference_date`` are left alone.
        """

        today = as_day(reference_date)
        additions: list[HistoryEntry] = []
        for schedule in self.schedules:
            if not schedule.is_active or schedule.start_date != today:
                continue
            if any(entry.date == today and entry.action_type is schedule.action_type for entry in self.history):
                continue
            additions.append(
                self.tag(
                    HistoryEntry(date=today, action_type=schedule.action_type, id=id_factory()),
                    owner_user_id,
                )
            )
        return self.with_history(additions)


@dataclass(frozen=True, slots=True)
class User:
    id: str
    reference_date: date
    plants: tuple[Plant, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", (self.id or "").strip())
        object.__setattr__(self, "reference_date", as_day(self.reference_date))
        object.__setattr__(self, "plants", tuple(self.plants))

    def plant(self, plant_id: str) -> Optional[Plant]:
        for plant in self.plants:
            if plant.id == plant_id:
                return plant
        return None

    def with_reference_date(self, reference_date: date) -> "User":
        return replace(self, reference_date=reference_date)

    def replace_plant(self, plant: Plant) -> "User":
        if self.plant(plant.id) is None:
            raise PlantNotFoundError(f"Plant {plant.id!r} not found")
        return replace(
            self,
            plants=tuple(plant if existing.id == plant.id else existing for existing in self.plants),
        )

    def add_plant(self, plant: Plant, id_factory: IdFactory = new_entry_id) -> "User":
        new_plant = plant if plant.id else replace(plant, id=id_factory())
        if self.plant(new_plant.id) is not None:
            raise GardenError(f"Plant {new_plant.id!r} already exists")
        new_plant = new_plant.seed_today(self.reference_date, self.id, id_factory)
        return replace(self, plants=self.plants + (new_plant,))

    def update_plant(self, plant: Plant, id_factory: IdFactory = new_entry_id) -> "User":
        existing = self.plant(plant.id)
        if existing is None:
            raise PlantNotFoundError(f"Plant {plant.id!r} not found")
        updated = replace(
            existing,
            name=plant.name,
            notes=plant.notes,
            icon_ref=plant.icon_ref,
            watering=plant.watering,
            misting=plant.misting,
            feeding=plant.feeding,
            repotting=plant.repotting,
        )
        return self.replace_plant(updated.seed_today(self.reference_date, self.id, id_factory))

    def remove_plant(self, plant_id: str) -> "User":
        return replace(self, plants=tuple(plant for plant in self.plants if plant.id != plant_id))

    def update_history(self, entry_id: str, is_done: bool) -> "User":
        for plant in self.plants:
            for index, entry in enumerate(plant.history):
                if entry.id != entry_id:
                    continue
                history = plant.history[:index] + (entry.with_done(is_done),) + plant.history[index + 1:]
                return self.replace_plant(replace(plant, history=history))
        raise HistoryEntryNotFoundError(f"History entry {entry_id!r} not found")

    def collect_old_history(self, months: int = DEFAULT_CUTOFF_MONTHS) -> tuple[HistoryEntry, ...]:
        """Old entries of every plant, tagged for the archival store."""

        collected: list[HistoryEntry] = []
        for plant in self.plants:
            for entry in plant.old_history(self.reference_date, months):
                collected.append(plant.tag(entry, self.id))
        return tuple(collected)


__all__ = [
    "GardenError",
    "HistoryEntryNotFoundError",
    "IdFactory",
    "Plant",
    "PlantNotFoundError",
    "User",
]
