"""Decode and encode stored user, plant and history documents.

Stored documents use snake_case keys, ``_id`` identifiers, epoch-millisecond dates and
the legacy integer periodicity codes. This module is the only place those encodings are
known; everything past it works with the typed snapshots from ``services.garden``.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from config import settings
from services.care_schedule import ACTION_TYPES, ActionType, CareSchedule
from services.garden import Plant, User
from services.history import HistoryEntry
from services.periodicity import Periodicity, UnknownPeriodicityCodeError, as_day, is_unset

logger = logging.getLogger("healthyplant.hub.documents")


class DocumentError(ValueError):
    """Base class for stored document failures."""


class DocumentDecodeError(DocumentError):
    """Raised when a stored document cannot be turned into a snapshot."""

    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path


class DocumentEncodeError(DocumentError):
    """Raised when a snapshot cannot be written as a stored document."""


class HistoryDocument(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(alias="_id", min_length=1)
    date: int
    is_done: bool
    type: int


class ArchivedHistoryDocument(HistoryDocument):
    user_id: str = Field(min_length=1)
    plant_id: str = Field(min_length=1)
    plant_icon_ref: str
    plant_name: str


class PlantDocument(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(alias="_id", min_length=1)
    name: str
    notes: str = ""
    icon_ref: str = ""
    history: list[dict[str, Any]] = Field(default_factory=list)


class UserDocument(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(alias="_id", min_length=1)
    plants: list[dict[str, Any]] = Field(default_factory=list)


def _validation_message(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(parts)


def _validate(model: type[BaseModel], document: Any, path: str) -> Any:
    if not isinstance(document, Mapping):
        raise DocumentDecodeError(path, "expected a mapping")
    try:
        return model.model_validate(dict(document))
    except ValidationError as exc:
        raise DocumentDecodeError(path, _validation_message(exc)) from exc


def ms_to_date(value: int) -> date:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc).date()


def _decode_ms(value: int, path: str) -> date:
    try:
        return ms_to_date(value)
    except (OverflowError, OSError, ValueError) as exc:
        raise DocumentDecodeError(path, f"date out of range: {value!r}") from exc


def date_to_ms(value: Optional[date]) -> int:
    if value is None:
        return 0
    day = as_day(value)
    return int(datetime(day.year, day.month, day.day, tzinfo=timezone.utc).timestamp() * 1000)


def _read_start(document: Mapping[str, Any], key: str, path: str) -> Optional[date]:
    raw = document.get(key)
    if raw is None:
        return None
    if isinstance(raw, datetime):
        start = raw.astimezone(timezone.utc).date() if raw.tzinfo else raw.date()
    elif isinstance(raw, date):
        start = raw
    elif isinstance(raw, int) and not isinstance(raw, bool):
        start = _decode_ms(raw, f"{path}.{key}")
    else:
        raise DocumentDecodeError(f"{path}.{key}", f"unsupported start value {raw!r}")
    return None if is_unset(start) else start


def decode_periodicity(
    code: int,
    *,
    path: str,
    strict: Optional[bool] = None,
    fallback_code: Optional[int] = None,
) -> tuple[Periodicity, Optional[str]]:
    """Map a stored periodicity code, returning the value and an optional warning.

    Unknown codes are rejected in strict mode; otherwise the configured fallback is
    substituted and reported.
    """

    strict = settings.periodicity_strict_decoding if strict is None else strict
    fallback_code = settings.periodicity_fallback_code if fallback_code is None else fallback_code
    try:
        return Periodicity.from_code(code), None
    except UnknownPeriodicityCodeError as exc:
        if strict:
            raise DocumentDecodeError(path, str(exc)) from exc
        fallback = Periodicity.from_code(fallback_code)
        warning = f"unknown periodicity code {code}; substituted {fallback}"
        logger.warning("%s: %s", path, warning)
        return fallback, warning


def _read_schedule(
    document: Mapping[str, Any],
    action_type: ActionType,
    path: str,
    *,
    strict: Optional[bool],
    fallback_code: Optional[int],
) -> CareSchedule:
    prefix = action_type.value
    start = _read_start(document, f"{prefix}_start", path)

    raw_code = document.get(f"{prefix}_periodicity")
    key = f"{prefix}_periodicity"
    if raw_code is None:
        raw_code = document.get(f"{prefix}_days")
        key = f"{prefix}_days"
    if raw_code is None:
        raise DocumentDecodeError(path, f"missing {prefix}_periodicity")
    if isinstance(raw_code, bool) or not isinstance(raw_code, int):
        raise DocumentDecodeError(f"{path}.{key}", f"expected an integer code, got {raw_code!r}")

    periodicity, warning = decode_periodicity(
        raw_code,
        path=f"{path}.{key}",
        strict=strict,
        fallback_code=fallback_code,
    )
    schedule = CareSchedule(action_type=action_type, start_date=start, periodicity=periodicity, warning=warning)
    if not schedule.is_consistent:
        mismatch = "periodicity without start date" if periodicity.is_active else "start date without periodicity"
        logger.warning("%s: inconsistent %s schedule (%s); treated as inactive", path, prefix, mismatch)
        notes = "; ".join(part for part in (warning, mismatch) if part)
        schedule = CareSchedule(action_type=action_type, start_date=start, periodicity=periodicity, warning=notes)
    return schedule


def _history_from_model(model: HistoryDocument, path: str) -> HistoryEntry:
    try:
        action_type = ActionType.from_code(model.type)
    except ValueError as exc:
        raise DocumentDecodeError(f"{path}.type", str(exc)) from exc
    return HistoryEntry(
        date=_decode_ms(model.date, f"{path}.date"),
        action_type=action_type,
        is_done=model.is_done,
        id=model.id.strip(),
    )


def decode_history(document: Mapping[str, Any], *, path: str = "history") -> HistoryEntry:
    model = _validate(HistoryDocument, document, path)
    return _history_from_model(model, path)


def decode_archived_entry(document: Mapping[str, Any], *, path: str = "old_history") -> HistoryEntry:
    model = _validate(ArchivedHistoryDocument, document, path)
    return _history_from_model(model, path).tagged(
        plant_id=model.plant_id.strip(),
        plant_name=model.plant_name.strip(),
        plant_icon_ref=model.plant_icon_ref.strip(),
        owner_user_id=model.user_id.strip(),
    )


def decode_plant(
    document: Mapping[str, Any],
    *,
    owner_user_id: str = "",
    path: str = "plant",
    strict: Optional[bool] = None,
    fallback_code: Optional[int] = None,
) -> Plant:
    model = _validate(PlantDocument, document, path)
    schedules = {
        action_type.value: _read_schedule(
            document,
            action_type,
            path,
            strict=strict,
            fallback_code=fallback_code,
        )
        for action_type in ACTION_TYPES
    }
    plant = Plant(id=model.id, name=model.name, notes=model.notes, icon_ref=model.icon_ref, **schedules)
    history = tuple(
        plant.tag(decode_history(item, path=f"{path}.history[{index}]"), owner_user_id)
        for index, item in enumerate(model.history)
    )
    return plant.with_history(history)


def decode_user(
    document: Mapping[str, Any],
    reference_date: date,
    *,
    strict: Optional[bool] = None,
    fallback_code: Optional[int] = None,
) -> User:
    model = _validate(UserDocument, document, "user")
    user_id = model.id.strip()
    plants = tuple(
        decode_plant(
            item,
            owner_user_id=user_id,
            path=f"user.plants[{index}]",
            strict=strict,
            fallback_code=fallback_code,
        )
        for index, item in enumerate(model.plants)
    )
    return User(id=user_id, reference_date=reference_date, plants=plants)


def encode_history(entry: HistoryEntry) -> dict[str, Any]:
    if entry.id is None:
        raise DocumentEncodeError(f"Projected {entry.action_type.value} entry on {entry.date} has no id")
    return {
        "_id": entry.id,
        "date": date_to_ms(entry.date),
        "is_done": entry.is_done,
        "type": entry.action_type.code,
    }


def encode_archived_entry(entry: HistoryEntry) -> dict[str, Any]:
    if not entry.owner_user_id:
        raise DocumentEncodeError(f"Archived entry {entry.id!r} has no owner")
    if not entry.plant_id:
        raise DocumentEncodeError(f"Archived entry {entry.id!r} has no plant")
    document = encode_history(entry)
    document.update(
        {
            "user_id": entry.owner_user_id,
            "plant_id": entry.plant_id,
            "plant_icon_ref": entry.plant_icon_ref,
            "plant_name": entry.plant_name,
        }
    )
    return document


def encode_plant(plant: Plant) -> dict[str, Any]:
    document: dict[str, Any] = {
        "_id": plant.id,
        "name": plant.name,
        "notes": plant.notes,
        "icon_ref": plant.icon_ref,
    }
    for schedule in plant.schedules:
        prefix = schedule.action_type.value
        document[f"{prefix}_start"] = date_to_ms(schedule.start_date)
        document[f"{prefix}_periodicity"] = schedule.periodicity.code
    document["history"] = [encode_history(entry) for entry in plant.history_newest_first()]
    return document


def encode_user(user: User, extra: Optional[Mapping[str, Any]] = None) -> dict[str, Any]:
    """Encode ``user``; ``extra`` carries stored fields this module does not model."""

    document: dict[str, Any] = dict(extra or {})
    document["_id"] = user.id
    document["plants"] = [encode_plant(plant) for plant in user.plants]
    return document


__all__ = [
    "DocumentDecodeError",
    "DocumentEncodeError",
    "DocumentError",
    "date_to_ms",
    "decode_archived_entry",
    "decode_history",
    "decode_periodicity",
    "decode_plant",
    "decode_user",
    "encode_archived_entry",
    "encode_history",
    "encode_plant",
    "encode_user",
    "ms_to_date",
]
