from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone

import pytest

from services.agenda import DEFAULT_WINDOW_DAYS
from services.archive import DEFAULT_CUTOFF_MONTHS
from services.care_schedule import ActionType
from services.care_service import CareService, reference_date_for
from services.garden import User
from services.history import HistoryEntry
from services.periodicity import Periodicity


def test_reference_date_follows_user_offset() -> None:
    now = datetime(2024, 3, 15, 23, 30, tzinfo=timezone.utc)
    assert reference_date_for(now, timedelta(0)) == date(2024, 3, 15)
    assert reference_date_for(now, timedelta(hours=2)) == date(2024, 3, 16)
    assert reference_date_for(datetime(2024, 3, 15, 0, 30), timedelta(hours=-1)) == date(2024, 3, 14)


def test_run_reconciles_groups_and_archives(
    make_plant, today: date, id_factory, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.INFO, logger="healthyplant.hub.care_service")
    old = HistoryEntry(date=today - timedelta(days=45), action_type=ActionType.FEEDING, is_done=True, id="old")
    plant = make_plant(watering=(today - timedelta(days=2), Periodicity.every_days(2)), history=(old,))
    user = User(id="user-1", reference_date=today, plants=(plant,))
    service = CareService(id_factory=id_factory)

    result = service.run(user)

    assert result.changed
    assert [entry.date for entry in result.added_entries] == [today - timedelta(days=2), today]
    assert result.has_due_today
    assert [entry.id for entry in result.agenda.today.watering] == ["entry-2"]
    assert [group.date for group in result.agenda.upcoming] == [
        today + timedelta(days=offset) for offset in (2, 4, 6, 8, 10, 12)
    ]
    assert [entry.id for entry in result.archived] == ["old"]
    assert result.archived[0].owner_user_id == "user-1"
    # archival does not drop entries from the returned snapshot
    assert len(result.user.plant("plant-1").history) == 3
    assert any("Care pass for user user-1" in record.getMessage() for record in caplog.records)


def test_run_on_settled_user_changes_nothing(make_plant, today: date, id_factory) -> None:
    plant = make_plant(watering=(today - timedelta(days=2), Periodicity.every_days(2)))
    service = CareService(id_factory=id_factory)
    first = service.run(User(id="user-1", reference_date=today, plants=(plant,)))

    second = service.run(first.user)

    assert not second.changed
    assert second.user is first.user
    assert second.agenda == first.agenda


def test_window_and_cutoff_are_configurable(make_plant, today: date, id_factory) -> None:
    old = HistoryEntry(date=today - timedelta(days=45), action_type=ActionType.FEEDING, id="old")
    plant = make_plant(watering=(today, Periodicity.every_days(1)), history=(old,))
    service = CareService(agenda_window_days=3, archive_cutoff_months=2, id_factory=id_factory)

    result = service.run(User(id="user-1", reference_date=today, plants=(plant,)))

    assert [group.date for group in result.agenda.upcoming] == [today + timedelta(days=1), today + timedelta(days=2)]
    assert result.archived == ()
    partition = service.partition(result.user.plant("plant-1"), today)
    assert [entry.id for entry in partition.old] == []


def test_has_due_today(make_plant, today: date, id_factory) -> None:
    service = CareService(id_factory=id_factory)
    due = make_plant(misting=(today - timedelta(days=3), Periodicity.every_days(3)))
    not_due = make_plant(misting=(today - timedelta(days=2), Periodicity.every_days(3)))

    assert service.has_due_today(User(id="user-1", reference_date=today, plants=(due,)))
    assert not service.has_due_today(User(id="user-1", reference_date=today, plants=(not_due,)))
    assert not service.has_due_today(User(id="user-1", reference_date=today))


def test_default_window_and_cutoff(make_plant, today: date, id_factory) -> None:
    old = HistoryEntry(date=today - timedelta(days=32), action_type=ActionType.FEEDING, id="old")
    plant = make_plant(watering=(today, Periodicity.every_days(1)), history=(old,))

    result = CareService(id_factory=id_factory).run(User(id="user-1", reference_date=today, plants=(plant,)))

    assert len(result.agenda.upcoming) == DEFAULT_WINDOW_DAYS - 1
    assert [entry.id for entry in result.archived] == ["old"]
    assert DEFAULT_CUTOFF_MONTHS == 1
