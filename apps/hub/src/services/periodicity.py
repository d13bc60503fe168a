"""Periodicity values and the date arithmetic behind care schedules.

A periodicity is either inactive or "every N days / months / years". Stored documents
encode all tiers in one integer space (``< 100`` days, ``100..999`` months, ``>= 1000``
years); that encoding only exists at the decode boundary via ``LEGACY_PERIODICITY_CODES``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Iterator, Mapping, Optional

from dateutil.relativedelta import relativedelta

EPOCH = date(1970, 1, 1)


class PeriodUnit(str, Enum):
    NONE = "none"
    DAYS = "days"
    MONTHS = "months"
    YEARS = "years"


class PeriodicityError(ValueError):
    """Base class for periodicity failures."""


class UnknownPeriodicityCodeError(PeriodicityError):
    """Raised when a stored periodicity code has no known meaning."""

    def __init__(self, code: int) -> None:
        super().__init__(f"Unknown periodicity code {code!r}")
        self.code = code


_CODE_BASE: dict[PeriodUnit, int] = {
    PeriodUnit.NONE: 0,
    PeriodUnit.DAYS: 0,
    PeriodUnit.MONTHS: 100,
    PeriodUnit.YEARS: 1000,
}


@dataclass(frozen=True, slots=True)
class Periodicity:
    unit: PeriodUnit = PeriodUnit.NONE
    magnitude: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "unit", PeriodUnit(self.unit))
        if self.unit is PeriodUnit.NONE:
            if self.magnitude != 0:
                raise PeriodicityError("An inactive periodicity has no magnitude")
            return
        if self.magnitude < 1:
            raise PeriodicityError(f"Periodicity magnitude must be positive, got {self.magnitude}")

    @classmethod
    def none(cls) -> "Periodicity":
        return cls()

    @classmethod
    def every_days(cls, count: int) -> "Periodicity":
        return cls(PeriodUnit.DAYS, count)

    @classmethod
    def every_months(cls, count: int) -> "Periodicity":
        return cls(PeriodUnit.MONTHS, count)

    @classmethod
    def every_years(cls, count: int) -> "Periodicity":
        return cls(PeriodUnit.YEARS, count)

    @classmethod
    def from_code(cls, code: int) -> "Periodicity":
        periodicity = LEGACY_PERIODICITY_CODES.get(code)
        if periodicity is None:
            raise UnknownPeriodicityCodeError(code)
        return periodicity

    @property
    def is_active(self) -> bool:
        return self.unit is not PeriodUnit.NONE

    @property
    def code(self) -> int:
        return _CODE_BASE[self.unit] + self.magnitude

    def __str__(self) -> str:
        if not self.is_active:
            return "none"
        noun = self.unit.value if self.magnitude != 1 else self.unit.value[:-1]
        return f"every {self.magnitude} {noun}"


LEGACY_PERIODICITY_CODES: Mapping[int, Periodicity] = {
    0: Periodicity.none(),
    1: Periodicity.every_days(1),
    2: Periodicity.every_days(2),
    3: Periodicity.every_days(3),
    4: Periodicity.every_days(4),
    5: Periodicity.every_days(5),
    6: Periodicity.every_days(6),
    7: Periodicity.every_days(7),
    10: Periodicity.every_days(10),
    14: Periodicity.every_days(14),
    21: Periodicity.every_days(21),
    101: Periodicity.every_months(1),
    106: Periodicity.every_months(6),
    1001: Periodicity.every_years(1),
    1002: Periodicity.every_years(2),
}


def as_day(value: date | datetime) -> date:
    """Truncate a datetime to its calendar day; plain dates pass through."""

    if isinstance(value, datetime):
        return value.date()
    return value


def is_unset(value: Optional[date]) -> bool:
    return value is None or as_day(value) == EPOCH


def shift_by_one_period(value: date, periodicity: Periodicity) -> date:
    """Advance ``value`` by exactly one period.

    Month and year steps clamp to the last valid day of the target month, so
    Jan 31 plus one month lands on Feb 28 (or 29).
    """

    day = as_day(value)
    if periodicity.unit is PeriodUnit.DAYS:
        return day + timedelta(days=periodicity.magnitude)
    if periodicity.unit is PeriodUnit.MONTHS:
        return day + relativedelta(months=periodicity.magnitude)
    if periodicity.unit is PeriodUnit.YEARS:
        return day + relativedelta(years=periodicity.magnitude)
    raise PeriodicityError("Cannot shift a date by an inactive periodicity")


def _estimate_alignment(periodicity: Periodicity, reference: date, anchor: date) -> date:
    if periodicity.unit is PeriodUnit.DAYS:
        period = periodicity.magnitude
        elapsed = (reference - anchor).days
        periods_elapsed = math.ceil(elapsed / period)
        if periods_elapsed == 0:
            return reference
        if elapsed < period:
            return reference + timedelta(days=period - elapsed)
        return anchor + timedelta(days=periods_elapsed * period)
    # Month and year tiers only skip whole calendar years; the loop in align_forward
    # finishes the job. Kept as-is for parity with stored schedules.
    years_apart = reference.year - anchor.year
    if periodicity.unit is PeriodUnit.MONTHS:
        return anchor + relativedelta(months=years_apart * 12)
    return anchor + relativedelta(years=years_apart)


def align_forward(
    periodicity: Periodicity,
    reference_date: Optional[date],
    anchor_date: Optional[date],
) -> Optional[date]:
    """Return the first occurrence of ``anchor_date``'s series on or after ``reference_date``.

    ``None`` means the schedule is inactive: no periodicity, or either date is unset
    or the Unix epoch.
    """

    if not periodicity.is_active or is_unset(reference_date) or is_unset(anchor_date):
        return None
    reference = as_day(reference_date)
    anchor = as_day(anchor_date)
    if anchor >= reference:
        return anchor

    candidate = _estimate_alignment(periodicity, reference, anchor)
    while candidate < reference:
        candidate = shift_by_one_period(candidate, periodicity)
    return candidate


def occurrences(periodicity: Periodicity, start: date, end: date) -> Iterator[date]:
    """Yield every date in ``[start, end)`` reached from ``start`` one period at a time."""

    if not periodicity.is_active:
        return
    current = as_day(start)
    stop = as_day(end)
    while current < stop:
        yield current
        current = shift_by_one_period(current, periodicity)


__all__ = [
    "EPOCH",
    "LEGACY_PERIODICITY_CODES",
    "PeriodUnit",
    "Periodicity",
    "PeriodicityError",
    "UnknownPeriodicityCodeError",
    "align_forward",
    "as_day",
    "is_unset",
    "occurrences",
    "shift_by_one_period",
]
