"""
Shared pytest fixtures.

Uses a file-backed SQLite database so no Postgres is required for tests.
Tables are shared for the whole session; every test gets its own freshly
seeded organization (`org`) so rows never leak between tests.
"""
import uuid
from datetime import date, datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.db.base import Base, get_db
from app.main import app
from app.models import Checkin, Shoutout, Team, User, Vacation
from app.models.enums import UserRole

SQLITE_URL = "sqlite:///./test_pulse.db"

engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(db):
    app.dependency_overrides[get_db] = override_get_db
    app.state.analytics_cache.clear()
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


class SeededOrg:
    """
    One organization with two teams:

        alpha: manager_a (leader), member_a1, member_a2
        beta:  manager_b (leader), member_b1
        admin has no team.
    """

    def __init__(self, db):
        self.db = db
        self.id = str(uuid.uuid4())

        self.alpha = self._team("Alpha")
        self.beta = self._team("Beta")
        self.admin = self._user("Ada Admin", UserRole.admin, None)
        self.manager_a = self._user("Mona Manager", UserRole.manager, self.alpha)
        self.member_a1 = self._user("Aaron Member", UserRole.member, self.alpha)
        self.member_a2 = self._user("Abby Member", UserRole.member, self.alpha)
        self.manager_b = self._user("Ben Manager", UserRole.manager, self.beta)
        self.member_b1 = self._user("Bea Member", UserRole.member, self.beta)

        self.alpha.leader_id = self.manager_a.id
        self.beta.leader_id = self.manager_b.id
        db.commit()

    def _team(self, name):
        team = Team(id=str(uuid.uuid4()), organization_id=self.id, name=name)
        self.db.add(team)
        return team

    def _user(self, name, role, team):
        user = User(
            id=str(uuid.uuid4()),
            organization_id=self.id,
            name=name,
            role=role,
            team_id=team.id if team else None,
        )
        self.db.add(user)
        return user

    @staticmethod
    def headers(user) -> dict:
        return {"X-User-Id": user.id}

    # ── Raw rows ─────────────────────────────────────────────

    def checkin(
        self,
        user,
        week_of: date,
        mood: int,
        created_at: datetime = None,
        is_complete: bool = True,
        **fields,
    ) -> Checkin:
        row = Checkin(
            organization_id=self.id,
            user_id=user.id,
            week_of=week_of,
            overall_mood=mood,
            is_complete=is_complete,
            created_at=created_at or datetime.combine(week_of, datetime.min.time()) + timedelta(hours=9),
            **fields,
        )
        self.db.add(row)
        self.db.commit()
        return row

    def shoutout(self, sender, recipient, created_at: datetime, is_public: bool = True) -> Shoutout:
        row = Shoutout(
            organization_id=self.id,
            from_user_id=sender.id,
            to_user_id=recipient.id,
            message="thanks!",
            is_public=is_public,
            created_at=created_at,
        )
        self.db.add(row)
        self.db.commit()
        return row

    def vacation(self, user, week_of: date) -> Vacation:
        row = Vacation(organization_id=self.id, user_id=user.id, week_of=week_of)
        self.db.add(row)
        self.db.commit()
        return row


@pytest.fixture()
def org(db):
    return SeededOrg(db)


@pytest.fixture()
def other_org(db):
    return SeededOrg(db)
