import time

import pytest

from core.config import settings
from factories import FakeClock, scenario_habits, start_cycle


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cycle(clock):
    return start_cycle(clock, scenario_habits())


@pytest.fixture
def system_new_york(monkeypatch):
    """No configured zone; the process runs with TZ=America/New_York."""
    if not hasattr(time, "tzset"):
        pytest.skip("needs time.tzset")
    monkeypatch.setattr(settings, "TIMEZONE", "")
    monkeypatch.setenv("TZ", "America/New_York")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()
