from __future__ import annotations

import pytest

from core.dispatcher import Dispatcher
from core.registry import RegionRegistry
from core.schedule import RegionSchedule
from models.region import DEFAULT_REGIONS
from tests.helpers import (
    MESSAGES,
    FakeCatalog,
    FakeClock,
    FakeInterest,
    FakeSink,
    FakeSubscriptions,
)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def schedule() -> RegionSchedule:
    return RegionSchedule(DEFAULT_REGIONS)


@pytest.fixture
def registry(schedule: RegionSchedule) -> RegionRegistry:
    return RegionRegistry(schedule)


@pytest.fixture
def interest() -> FakeInterest:
    return FakeInterest()


@pytest.fixture
def subscriptions() -> FakeSubscriptions:
    return FakeSubscriptions()


@pytest.fixture
def sink() -> FakeSink:
    return FakeSink()


@pytest.fixture
def catalog() -> FakeCatalog:
    return FakeCatalog()


@pytest.fixture
def dispatcher(registry, interest, subscriptions, sink, catalog, clock) -> Dispatcher:
    return Dispatcher(
        registry=registry,
        interest=interest,
        subscriptions=subscriptions,
        sink=sink,
        catalog=catalog,
        messages=MESSAGES,
        call_timeout=1.0,
        clock=clock,
    )
