from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Iterable, Optional, Sequence
from uuid import uuid4

from services.care_schedule import ACTION_TYPES, ActionType
from services.periodicity import as_day


def new_entry_id() -> str:
    return uuid4().hex


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    """One occurrence of a care action on a given day.

    Equality only looks at ``(id, date, is_done, action_type)``; the plant and owner
    fields are descriptive tags refreshed from the current plant when needed.
    Projected (not yet recorded) entries have ``id=None``.
    """

    date: date
    action_type: ActionType
    is_done: bool = False
    id: Optional[str] = None
    plant_id: str = field(default="", compare=False)
    plant_name: str = field(default="", compare=False)
    plant_icon_ref: str = field(default="", compare=False)
    owner_user_id: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "date", as_day(self.date))
        object.__setattr__(self, "action_type", ActionType(self.action_type))

    @property
    def is_projected(self) -> bool:
        return self.id is None

    def with_done(self, is_done: bool) -> "HistoryEntry":
        return replace(self, is_done=is_done)

    def tagged(
        self,
        *,
        plant_id: str,
        plant_name: str,
        plant_icon_ref: str,
        owner_user_id: Optional[str] = None,
    ) -> "HistoryEntry":
        return replace(
            self,
            plant_id=plant_id,
            plant_name=plant_name,
            plant_icon_ref=plant_icon_ref,
            owner_user_id=self.owner_user_id if owner_user_id is None else owner_user_id,
        )

    def to_payload(self) -> dict[str, object]:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "isDone": self.is_done,
            "actionType": self.action_type.value,
            "plantId": self.plant_id,
            "plantName": self.plant_name,
            "plantIconRef": self.plant_icon_ref,
            "ownerUserId": self.owner_user_id,
        }


def sort_newest_first(entries: Iterable[HistoryEntry]) -> list[HistoryEntry]:
    return sorted(entries, key=lambda entry: entry.date, reverse=True)


@dataclass(frozen=True, slots=True)
class HistoryGroup:
    """All entries landing on one calendar day, split by action type.

    Two groups are equal (and hash alike) when they share a date, whatever they contain.
    """

    date: date
    watering: tuple[HistoryEntry, ...] = field(default=(), compare=False)
    misting: tuple[HistoryEntry, ...] = field(default=(), compare=False)
    feeding: tuple[HistoryEntry, ...] = field(default=(), compare=False)
    repotting: tuple[HistoryEntry, ...] = field(default=(), compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "date", as_day(self.date))

    @classmethod
    def from_entries(cls, group_date: date, entries: Iterable[HistoryEntry]) -> "HistoryGroup":
        buckets: dict[ActionType, list[HistoryEntry]] = {action_type: [] for action_type in ACTION_TYPES}
        for entry in entries:
            buckets[entry.action_type].append(entry)
        return cls(
            date=group_date,
            watering=tuple(buckets[ActionType.WATERING]),
            misting=tuple(buckets[ActionType.MISTING]),
            feeding=tuple(buckets[ActionType.FEEDING]),
            repotting=tuple(buckets[ActionType.REPOTTING]),
        )

    def entries_for(self, action_type: ActionType) -> tuple[HistoryEntry, ...]:
        return getattr(self, ActionType(action_type).value)

    def with_entry(self, entry: HistoryEntry) -> "HistoryGroup":
        field_name = entry.action_type.value
        return replace(self, **{field_name: getattr(self, field_name) + (entry,)})

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {"date": self.date.isoformat()}
        for action_type in ACTION_TYPES:
            payload[action_type.value] = [entry.to_payload() for entry in self.entries_for(action_type)]
        return payload


def sort_groups_ascending(groups: Sequence[HistoryGroup]) -> list[HistoryGroup]:
    return sorted(groups, key=lambda group: group.date)


__all__ = [
    "HistoryEntry",
    "HistoryGroup",
    "new_entry_id",
    "sort_groups_ascending",
    "sort_newest_first",
]
