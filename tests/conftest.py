"""Pytest configuration and shared fixtures."""

import pytest

from pairline.link.credentials import CredentialStore
from pairline.link.tracker import ConnectionTracker
from pairline.pairing.codes import CodeGenerator
from pairline.pairing.reconciler import Reconciler
from pairline.pairing.store import SessionStore
from pairline.service import PairingService


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeScheduler:
    """Records scheduled retries instead of sleeping."""

    def __init__(self):
        self.scheduled = []
        self.cancelled = 0

    def schedule(self, delay, callback) -> None:
        self.scheduled.append((delay, callback))

    def cancel_all(self) -> None:
        self.cancelled += 1
        self.scheduled.clear()

    @property
    def delays(self) -> list:
        return [delay for delay, _ in self.scheduled]

    async def run_pending(self) -> None:
        """Run every scheduled callback as if its delay had elapsed."""
        pending, self.scheduled = self.scheduled, []
        for _, callback in pending:
            await callback()


@pytest.fixture(autouse=True)
def reset_logging_state():
    """Reset logging state before each test."""
    from pairline.logging import reset_logging

    reset_logging()
    yield
    reset_logging()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def store(clock):
    """Session store driven by the fake clock."""
    return SessionStore(generator=CodeGenerator(clock=clock), ttl=600.0, clock=clock)


@pytest.fixture
def reconciler(store):
    return Reconciler(store)


@pytest.fixture
def credentials(tmp_path):
    return CredentialStore(tmp_path / "auth")


@pytest.fixture
def tracker(reconciler, credentials, scheduler):
    return ConnectionTracker(
        reconciler=reconciler,
        credentials=credentials,
        scheduler=scheduler,
        reconnect_delay=10.0,
        init_retry_delay=15.0,
    )


@pytest.fixture
def service(store, tracker):
    return PairingService(store=store, tracker=tracker)
