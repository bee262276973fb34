import itertools
import os

# Settings must be in place before the clinic package is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret-key-for-clinic-queue"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["CLINIC_TIMEZONE"] = "UTC"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
from fastapi.testclient import TestClient

from clinic.auth import Identity
from clinic.database import Base, SessionLocal, engine
from clinic.domain.accounts.schemas import RegisterRequest
from clinic.domain.accounts.service import AccountService
from clinic.main import app
from clinic.models import Role
from clinic.security import create_access_token

PASSWORD = "password123"

# Tuesday 09:00 UTC, used by every service-level test
FIXED_NOW = datetime(2030, 1, 8, 9, 0, tzinfo=timezone.utc)


@dataclass
class Member:
    """An account created for a test, with its profile id and a valid token"""

    identity: Identity
    profile_id: Optional[int]
    token: str
    password: str = PASSWORD

    @property
    def id(self) -> int:
        return self.identity.id

    @property
    def email(self) -> str:
        return self.identity.email

    @property
    def headers(self) -> dict:
        return {"Authorization": f"Bearer {self.token}"}


class RecordingHub:
    """Stands in for NotificationHub and keeps every published event"""

    def __init__(self):
        self.published = []

    def publish(self, account_id, event) -> int:
        self.published.append((account_id, event))
        return 1


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def hub():
    return RecordingHub()


@pytest.fixture
def make_member():
    counter = itertools.count(1)

    def _make(role: Role = Role.PATIENT, name: Optional[str] = None, **fields) -> Member:
        n = next(counter)
        name = name or f"{role.value.title()} {n}"
        if role == Role.DOCTOR:
            fields.setdefault("specialization", "General Practice")

        session = SessionLocal()
        try:
            account = AccountService(session).register(
                RegisterRequest(
                    email=f"{role.value}{n}@clinic.test",
                    password=PASSWORD,
                    role=role,
                    name=name,
                    **fields,
                )
            )
            profile = account.patient_profile or account.doctor_profile
            identity = Identity(id=account.id, email=account.email, name=account.name, role=account.role)
            profile_id = profile.id if profile else None
        finally:
            session.close()

        token = create_access_token(identity.id, identity.email, identity.name, identity.role.value)
        return Member(identity=identity, profile_id=profile_id, token=token)

    return _make


@pytest.fixture
def next_slot():
    """A bookable time relative to the real clock: tomorrow inside opening hours"""

    def _slot(hour: int = 10, minute: int = 0, days: int = 1) -> str:
        day = datetime.now(timezone.utc) + timedelta(days=days)
        return day.replace(hour=hour, minute=minute, second=0, microsecond=0).isoformat()

    return _slot
