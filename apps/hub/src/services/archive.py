from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable

from dateutil.relativedelta import relativedelta

from services.history import HistoryEntry
from services.periodicity import as_day

DEFAULT_CUTOFF_MONTHS = 1


@dataclass(frozen=True, slots=True)
class HistoryPartition:
    recent: tuple[HistoryEntry, ...]
    old: tuple[HistoryEntry, ...]


def archive_cutoff(reference_date: date, months: int = DEFAULT_CUTOFF_MONTHS) -> date:
    """First day still considered recent: ``reference_date`` minus ``months`` calendar months."""

    return as_day(reference_date) - relativedelta(months=months)


def is_recent(entry: HistoryEntry, reference_date: date, months: int = DEFAULT_CUTOFF_MONTHS) -> bool:
    return entry.date >= archive_cutoff(reference_date, months)


def partition_history(
    entries: Iterable[HistoryEntry],
    reference_date: date,
    months: int = DEFAULT_CUTOFF_MONTHS,
) -> HistoryPartition:
    """Split entries into the recent working set and the old archival set.

    Every entry lands in exactly one side and input order is kept on both sides.
    """

    recent: list[HistoryEntry] = []
    old: list[HistoryEntry] = []
    for entry in entries:
        if is_recent(entry, reference_date, months):
            recent.append(entry)
        else:
            old.append(entry)
    return HistoryPartition(recent=tuple(recent), old=tuple(old))


__all__ = [
    "DEFAULT_CUTOFF_MONTHS",
    "HistoryPartition",
    "archive_cutoff",
    "is_recent",
    "partition_history",
]
