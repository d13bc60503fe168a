from __future__ import annotations

from datetime import date, timedelta
from typing import Callable

from services.care_schedule import ActionType
from services.garden import Plant, User
from services.history import HistoryEntry
from services.periodicity import EPOCH, Periodicity
from services.reconciler import generate_missing_entries, reconcile_plant, reconcile_user


def _days_back(today: date, *offsets: int) -> list[date]:
    return [today - timedelta(days=offset) for offset in offsets]


def test_fills_every_day_since_start_when_history_is_empty(daily_watering: Plant, today: date, id_factory) -> None:
    entries = generate_missing_entries(daily_watering, today, owner_user_id="user-1", id_factory=id_factory)

    assert [entry.date for entry in entries] == _days_back(today, 4, 3, 2, 1, 0)
    assert all(entry.is_done is False for entry in entries)
    assert all(entry.action_type is ActionType.WATERING for entry in entries)
    assert {entry.plant_id for entry in entries} == {daily_watering.id}
    assert {entry.plant_name for entry in entries} == {"Monstera"}
    assert {entry.plant_icon_ref for entry in entries} == {"icon-7"}
    assert {entry.owner_user_id for entry in entries} == {"user-1"}
    assert len({entry.id for entry in entries}) == 5


def test_scan_resumes_after_latest_recorded_entry(daily_watering: Plant, today: date, id_factory) -> None:
    recorded = HistoryEntry(date=today - timedelta(days=4), action_type=ActionType.WATERING, id="seed")
    plant = daily_watering.with_history([recorded])

    entries = generate_missing_entries(plant, today, id_factory=id_factory)

    assert [entry.date for entry in entries] == _days_back(today, 3, 2, 1, 0)
    combined = plant.with_history(entries).history
    assert len(combined) == 5
    assert len({entry.date for entry in combined}) == 5


def test_second_run_with_same_reference_adds_nothing(make_plant, today: date, id_factory) -> None:
    plant = make_plant(
        watering=(today - timedelta(days=30), Periodicity.every_days(3)),
        feeding=(today - timedelta(days=90), Periodicity.every_days(14)),
        repotting=(date(2020, 5, 1), Periodicity.every_years(1)),
        misting=(today - timedelta(days=200), Periodicity.every_months(1)),
    )

    first = reconcile_plant(plant, today, id_factory=id_factory)
    assert len(first.history) > 0

    assert generate_missing_entries(first, today, id_factory=id_factory) == []
    for action_type in ActionType:
        dates = [entry.date for entry in first.history if entry.action_type is action_type]
        assert len(dates) == len(set(dates))
        assert all(day <= today for day in dates)


def test_periodic_gap_follows_schedule_spacing(make_plant, today: date, id_factory) -> None:
    plant = make_plant(watering=(today - timedelta(days=20), Periodicity.every_days(7)))
    entries = generate_missing_entries(plant, today, id_factory=id_factory)
    assert [entry.date for entry in entries] == _days_back(today, 20, 13, 6)

    resumed = plant.with_history(entries)
    later = today + timedelta(days=1)
    assert [entry.date for entry in generate_missing_entries(resumed, later, id_factory=id_factory)] == [
        today + timedelta(days=1)
    ]


def test_future_start_generates_nothing(make_plant, today: date, id_factory) -> None:
    plant = make_plant(watering=(today + timedelta(days=1), Periodicity.every_days(1)))
    assert generate_missing_entries(plant, today, id_factory=id_factory) == []


def test_start_today_generates_today_only(make_plant, today: date, id_factory) -> None:
    plant = make_plant(misting=(today, Periodicity.every_days(2)))
    entries = generate_missing_entries(plant, today, id_factory=id_factory)
    assert [(entry.date, entry.action_type) for entry in entries] == [(today, ActionType.MISTING)]


def test_inactive_and_inconsistent_schedules_are_skipped(make_plant, today: date, id_factory) -> None:
    plant = make_plant(
        watering=(today - timedelta(days=3), Periodicity.none()),
        misting=(None, Periodicity.every_days(1)),
        feeding=(EPOCH, Periodicity.every_days(1)),
    )
    assert generate_missing_entries(plant, today, id_factory=id_factory) == []


def test_existing_entries_are_never_touched(daily_watering: Plant, today: date, id_factory) -> None:
    done = HistoryEntry(date=today - timedelta(days=4), action_type=ActionType.WATERING, is_done=True, id="done")
    plant = daily_watering.with_history([done])

    reconciled = reconcile_plant(plant, today, id_factory=id_factory)

    assert reconciled.history[0] is done
    assert plant.history == (done,)


def test_reconcile_user_covers_all_plants(make_plant, today: date, id_factory: Callable[[], str]) -> None:
    fern = make_plant("plant-1", "Fern", watering=(today - timedelta(days=1), Periodicity.every_days(1)))
    cactus = make_plant("plant-2", "Cactus")
    user = User(id="user-9", reference_date=today, plants=(fern, cactus))

    updated, added = reconcile_user(user, id_factory=id_factory)

    assert len(added) == 2
    assert {entry.owner_user_id for entry in added} == {"user-9"}
    assert updated.plant("plant-1").history == tuple(added)
    assert updated.plant("plant-2") is cactus
    assert user.plant("plant-1").history == ()

    again, added_again = reconcile_user(updated, id_factory=id_factory)
    assert added_again == []
    assert again is updated
