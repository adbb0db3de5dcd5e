"""Shared fixtures for the Spend Tracker test suite."""

from datetime import date

import pytest

from spend_tracker.audit import AuditLogger
from spend_tracker.services.notifications import InMemoryNotificationChannel
from spend_tracker.services.storage import InMemoryAuditStorage, InMemoryLedgerStorage


# A Wednesday; its week runs Monday 2024-05-13 .. Sunday 2024-05-19
TODAY = date(2024, 5, 15)


@pytest.fixture
def ledger():
    return InMemoryLedgerStorage(clock=lambda: TODAY)


@pytest.fixture
def user(ledger):
    """A user with a weekly limit of 100."""
    return ledger.add_user(
        name="Asha",
        email="asha@example.com",
        password_hash="not-a-real-hash",
        weekly_spending_limit=100,
    )


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def channel():
    return InMemoryNotificationChannel()
