import sys
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, Iterator

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from config import settings  # noqa: E402
from services.care_schedule import ActionType, CareSchedule  # noqa: E402
from services.garden import Plant  # noqa: E402
from services.periodicity import Periodicity  # noqa: E402

TODAY = date(2024, 3, 15)


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def id_factory() -> Callable[[], str]:
    counter = iter(range(1, 10_000))
    return lambda: f"entry-{next(counter)}"


@pytest.fixture
def make_plant() -> Callable[..., Plant]:
    def _build(plant_id: str = "plant-1", name: str = "Monstera", **schedules: Any) -> Plant:
        history = schedules.pop("history", ())
        slots = {}
        for action_type in ActionType:
            slot = schedules.pop(action_type.value, None)
            if slot is None:
                continue
            start, periodicity = slot
            slots[action_type.value] = CareSchedule(action_type=action_type, start_date=start, periodicity=periodicity)
        if schedules:
            raise TypeError(f"Unexpected schedule keys: {sorted(schedules)}")
        return Plant(id=plant_id, name=name, icon_ref="icon-7", history=tuple(history), **slots)

    return _build


@pytest.fixture
def daily_watering(make_plant: Callable[..., Plant], today: date) -> Plant:
    return make_plant(watering=(today - timedelta(days=4), Periodicity.every_days(1)))


@pytest.fixture
def settings_override() -> Iterator[Callable[..., None]]:
    original: Dict[str, Any] = {}

    def _apply(**overrides: Any) -> None:
        for key, value in overrides.items():
            if key not in original:
                original[key] = getattr(settings, key)
            setattr(settings, key, value)

    yield _apply

    for key, value in original.items():
        setattr(settings, key, value)
