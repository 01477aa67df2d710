import os
import tempfile
from datetime import datetime, timedelta

TEST_DB_PATH = os.path.join(tempfile.gettempdir(), "chirho_events_test.db")

# Settings are read at import time
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_PATH}"
os.environ["CRON_SECRET"] = "test-cron-secret"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["RESEND_API_KEY"] = ""
os.environ["DODO_PAYMENTS_API_KEY"] = ""
os.environ["DODO_PAYMENTS_WEBHOOK_SECRET"] = "whsec_dGVzdHNlY3JldA=="
os.environ["DB_LOG_SLOW_QUERIES"] = "false"

import pytest  # noqa: E402
from fastapi import Depends  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from app.auth import get_current_user  # noqa: E402
from app.database import Base, SessionLocal, engine, get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models import (  # noqa: E402
    Event,
    EventPricing,
    EventSettings,
    GroupRegistration,
    Organization,
    Participant,
    PaymentBalance,
    User,
)

_current = {"user_id": None}


def _override_current_user(db: Session = Depends(get_db)) -> User:
    return db.get(User, _current["user_id"])


@pytest.fixture
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    app.dependency_overrides[get_current_user] = _override_current_user
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    _current["user_id"] = None


@pytest.fixture
def login():
    """Act as the given user for subsequent requests"""

    def _login(user: User) -> User:
        _current["user_id"] = user.id
        return user

    return _login


# ============================================================================
# FACTORIES
# ============================================================================


@pytest.fixture
def organization(db):
    org = Organization(name="St. Anne Youth Ministry", contact_email="office@stanne.org", subscription_tier="cathedral")
    db.add(org)
    db.commit()
    db.refresh(org)
    return org


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make_user(organization=None, role="org_admin", permissions=None, email=None) -> User:
        counter["n"] += 1
        user = User(
            firebase_uid=f"uid-{counter['n']}",
            email=email or f"user{counter['n']}@example.com",
            full_name=f"Test User {counter['n']}",
            organization_id=organization.id if organization else None,
            role=role,
            permissions=permissions,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def admin(organization, make_user, login):
    return login(make_user(organization, role="org_admin", email="admin@stanne.org"))


@pytest.fixture
def make_event(db, organization):
    def _make_event(org=None, **overrides) -> Event:
        now = datetime.utcnow()
        settings = overrides.pop("settings", {})
        pricing = overrides.pop("pricing", {})
        values = dict(
            organization_id=(org or organization).id,
            name="Summer Youth Conference",
            start_date=now + timedelta(days=60),
            end_date=now + timedelta(days=63),
            status="registration_open",
        )
        values.update(overrides)
        event = Event(**values)
        event.settings = EventSettings(**{"rapha_enabled": True, **settings})
        event.pricing = EventPricing(
            **{"youth_regular_price": 100.0, "chaperone_regular_price": 75.0, "priest_price": 0.0, **pricing}
        )
        db.add(event)
        db.commit()
        db.refresh(event)
        return event

    return _make_event


@pytest.fixture
def event(make_event):
    return make_event()


@pytest.fixture
def make_group(db):
    counter = {"n": 0}

    def _make_group(event, participants=(), **overrides) -> GroupRegistration:
        counter["n"] += 1
        values = dict(
            event_id=event.id,
            organization_id=event.organization_id,
            access_code=f"SUMMER-TEST{counter['n']:04d}",
            group_name=f"Group {counter['n']}",
            parish_name=f"Parish {counter['n']}",
            group_leader_name="Pat Leader",
            group_leader_email=f"leader{counter['n']}@parish.org",
            group_leader_phone="+15555550100",
            housing_type="on_campus",
            registration_status="complete",
        )
        values.update(overrides)
        group = GroupRegistration(**values)
        for p in participants:
            group.participants.append(Participant(**p))
        group.total_participants = len(participants)
        db.add(group)
        db.flush()
        db.add(
            PaymentBalance(
                event_id=event.id,
                organization_id=event.organization_id,
                registration_id=group.id,
                registration_type="group",
                total_amount_due=0,
                amount_paid=0,
                amount_remaining=0,
                payment_status="paid_full",
            )
        )
        db.commit()
        db.refresh(group)
        return group

    return _make_group


def person(first_name, gender="male", participant_type="youth_u18", age=15, **extra) -> dict:
    return dict(
        first_name=first_name,
        last_name="Smith",
        gender=gender,
        participant_type=participant_type,
        age=age,
        **extra,
    )
