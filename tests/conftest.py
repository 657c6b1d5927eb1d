"""Pytest configuration and shared fixtures."""

import pytest

from apps.tickets.machine import BookingWorkflow
from apps.tickets.session import BookingRecordStore


class FakeClock:
    """Manually advanced clock, in seconds."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def storage() -> dict:
    return {}


@pytest.fixture
def store(storage) -> BookingRecordStore:
    return BookingRecordStore(storage)


@pytest.fixture
def workflow(store, clock) -> BookingWorkflow:
    # Binary-exact timings so progress counts are deterministic
    return BookingWorkflow(store, clock, duration=5.0, interval=0.25)


@pytest.fixture
def valid_details() -> dict:
    return {
        'full_name': 'Abebe Kebede',
        'phone': '+251911223344',
        'email': 'abebe@example.com',
        'tier': 'regular',
        'quantity': '3',
    }
