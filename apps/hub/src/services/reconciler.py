from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, timedelta
from typing import Optional

from services.care_schedule import CareSchedule
from services.garden import IdFactory, Plant, User
from services.history import HistoryEntry, new_entry_id
from services.periodicity import as_day, is_unset, occurrences, shift_by_one_period

logger = logging.getLogger("healthyplant.hub.reconciler")


def _scan_start(plant: Plant, schedule: CareSchedule) -> Optional[date]:
    latest = plant.latest_entry(schedule.action_type)
    if latest is None:
        return schedule.start_date
    return shift_by_one_period(latest.date, schedule.periodicity)


def generate_missing_entries(
    plant: Plant,
    reference_date: date,
    *,
    owner_user_id: str = "",
    id_factory: IdFactory = new_entry_id,
) -> list[HistoryEntry]:
    """Entries missing from ``plant``'s history up to and including ``reference_date``.

    The scan for each action starts one period after its latest recorded entry (or at the
    schedule start when nothing is recorded), so feeding the result back in and calling
    again with the same reference date returns an empty list.
    """

    stop = as_day(reference_date) + timedelta(days=1)
    missing: list[HistoryEntry] = []
    for schedule in plant.schedules:
        if not schedule.is_active:
            continue
        last_date = _scan_start(plant, schedule)
        if is_unset(last_date) or last_date == stop:
            continue
        for occurrence in occurrences(schedule.periodicity, last_date, stop):
            missing.append(
                HistoryEntry(
                    date=occurrence,
                    action_type=schedule.action_type,
                    is_done=False,
                    id=id_factory(),
                    plant_id=plant.id,
                    plant_name=plant.name,
                    plant_icon_ref=plant.icon_ref,
                    owner_user_id=owner_user_id,
                )
            )
    return missing


def reconcile_plant(
    plant: Plant,
    reference_date: date,
    *,
    owner_user_id: str = "",
    id_factory: IdFactory = new_entry_id,
) -> Plant:
    missing = generate_missing_entries(
        plant,
        reference_date,
        owner_user_id=owner_user_id,
        id_factory=id_factory,
    )
    return plant.with_history(missing)


def reconcile_user(user: User, *, id_factory: IdFactory = new_entry_id) -> tuple[User, list[HistoryEntry]]:
    """Fill history gaps for every plant of ``user`` at its reference date.

    Returns the updated snapshot together with the entries that were added.
    """

    added: list[HistoryEntry] = []
    plants: list[Plant] = []
    for plant in user.plants:
        missing = generate_missing_entries(
            plant,
            user.reference_date,
            owner_user_id=user.id,
            id_factory=id_factory,
        )
        if missing:
            logger.debug("Reconciled %d entries for plant %s of user %s", len(missing), plant.id, user.id)
        added.extend(missing)
        plants.append(plant.with_history(missing))
    if not added:
        return user, added
    return replace(user, plants=tuple(plants)), added


__all__ = [
    "generate_missing_entries",
    "reconcile_plant",
    "reconcile_user",
]
