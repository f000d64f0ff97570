"""Fixtures for unit tests: fake driver and clock."""

import pytest
from fakes import FakeClock, FakeDriver


@pytest.fixture
def driver() -> FakeDriver:
    return FakeDriver()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
