from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

from config import settings
from services.agenda import DEFAULT_WINDOW_DAYS, Agenda, build_agenda, get_today_group
from services.archive import DEFAULT_CUTOFF_MONTHS, HistoryPartition
from services.garden import IdFactory, Plant, User
from services.history import HistoryEntry, new_entry_id
from services.reconciler import reconcile_user

logger = logging.getLogger("healthyplant.hub.care_service")


def reference_date_for(now: datetime, utc_offset: timedelta) -> date:
    """The calendar day it is at ``now`` for a user whose clock runs at ``utc_offset``."""

    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone(utc_offset)).date()


@dataclass(frozen=True, slots=True)
class CarePassResult:
    user: User
    added_entries: tuple[HistoryEntry, ...]
    agenda: Agenda
    archived: tuple[HistoryEntry, ...]

    @property
    def changed(self) -> bool:
        return bool(self.added_entries)

    @property
    def has_due_today(self) -> bool:
        return self.agenda.has_due_today


class CareService:
    """Runs one computation pass over a user snapshot."""

    def __init__(
        self,
        *,
        agenda_window_days: int = DEFAULT_WINDOW_DAYS,
        archive_cutoff_months: int = DEFAULT_CUTOFF_MONTHS,
        id_factory: IdFactory = new_entry_id,
    ) -> None:
        self._agenda_window_days = max(1, int(agenda_window_days))
        self._archive_cutoff_months = max(0, int(archive_cutoff_months))
        self._id_factory = id_factory

    def run(self, user: User) -> CarePassResult:
        reconciled, added = reconcile_user(user, id_factory=self._id_factory)
        agenda = self.agenda(reconciled)
        archived = reconciled.collect_old_history(self._archive_cutoff_months)
        logger.info(
            "Care pass for user %s on %s: %d added, %d upcoming day(s), %d archived, due today=%s",
            user.id,
            user.reference_date.isoformat(),
            len(added),
            len(agenda.upcoming),
            len(archived),
            agenda.has_due_today,
        )
        return CarePassResult(
            user=reconciled,
            added_entries=tuple(added),
            agenda=agenda,
            archived=archived,
        )

    def agenda(self, user: User) -> Agenda:
        return build_agenda(user.plants, user.reference_date, window_days=self._agenda_window_days)

    def partition(self, plant: Plant, reference_date: date) -> HistoryPartition:
        return plant.partition_history(reference_date, self._archive_cutoff_months)

    def has_due_today(self, user: User) -> bool:
        """Whether ``user`` has anything due on its reference date once history is reconciled."""

        reconciled, _ = reconcile_user(user, id_factory=self._id_factory)
        return get_today_group(reconciled.plants, reconciled.reference_date) is not None


care_service = CareService(
    agenda_window_days=settings.agenda_window_days,
    archive_cutoff_months=settings.archive_cutoff_months,
)

__all__ = [
    "CarePassResult",
    "CareService",
    "care_service",
    "reference_date_for",
]
