"""
Pytest configuration and fixtures for testing
"""
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from linkbrain.api.main import create_app
from linkbrain.invites.service import InviteService
from linkbrain.storage.db import Database
from linkbrain.storage.models import InviteCodeIndex, Plan, SubscriptionRecord

FIXED_NOW = datetime(2025, 1, 5, 12, 0, 0)


class FakeClock:
    """Settable replacement for the service's utcnow."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def database(tmp_path):
    """
    Fixture that provides a fresh SQLite database file for each test.
    """
    db = Database(f"sqlite:///{tmp_path / 'linkbrain-test.db'}")
    db.create_tables()
    yield db
    db.dispose()


@pytest.fixture
def clock():
    return FakeClock(FIXED_NOW)


@pytest.fixture
def service(database, clock):
    return InviteService(database, clock=clock)


@pytest.fixture
def client(database, clock):
    app = create_app(database=database, clock=clock)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def seed(database):
    """
    Insert a subscription record directly, bypassing the service.

    ``indexed=False`` leaves the codes out of the index, like ledgers
    written before the index existed.
    """

    def _seed(
        user_id: str,
        codes=("LB-ABCDEF",),
        trial_end_date: datetime = datetime(2025, 1, 10),
        used_by: dict | None = None,
        indexed: bool = True,
    ) -> None:
        used_by = used_by or {}
        ledger = [
            {
                "code": code,
                "usedBy": used_by.get(code),
                "usedAt": "2025-01-01T00:00:00" if code in used_by else None,
                "createdAt": "2024-12-26T00:00:00",
            }
            for code in codes
        ]
        with database.session() as session:
            session.add(
                SubscriptionRecord(
                    user_id=user_id,
                    plan=Plan.TRIAL,
                    trial_start_date=trial_end_date - timedelta(days=15),
                    trial_end_date=trial_end_date,
                    referral_count=0,
                    invite_codes=ledger,
                )
            )
            if indexed:
                for code in codes:
                    session.add(InviteCodeIndex(code=code, user_id=user_id))

    return _seed


@pytest.fixture
def load(database):
    """Read a subscription record back from the database."""

    def _load(user_id: str) -> SubscriptionRecord | None:
        with database.session() as session:
            return session.get(SubscriptionRecord, user_id)

    return _load
