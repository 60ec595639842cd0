"""
Shared fixtures: SQLite database with the hris schema flattened, a
controllable clock and small row factories.
"""
import math
import os
import tempfile
import uuid
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

_TMP_DIR = tempfile.mkdtemp(prefix="hris-presence-tests-")

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(_TMP_DIR, 'app.db')}")
os.environ.setdefault("ATLAS_APP_CODE", "HRIS_PRESENCE_TEST")
os.environ.setdefault("DEFAULT_TIMEZONE", "Europe/Berlin")
os.environ.setdefault("LOG_TO_FILE", "false")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from atams.db import Base
from app.models import AttendanceEvent, ProjectMember, ProjectSite
from app.services.adjudication_service import EARTH_RADIUS_M

BERLIN = ZoneInfo("Europe/Berlin")


def berlin(year, month, day, hour=0, minute=0, second=0):
    """UTC instant of a Berlin wall-clock time"""
    return datetime(year, month, day, hour, minute, second, tzinfo=BERLIN).astimezone(timezone.utc)


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def set(self, value):
        self.now = value

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


class FixedOffsetPicker:
    """Fire time a fixed number of minutes after the window opens"""

    def __init__(self, minutes=15):
        self.minutes = minutes
        self.calls = []

    def pick(self, start, end):
        self.calls.append((start, end))
        return start + timedelta(minutes=self.minutes)


@pytest.fixture
def engine():
    db_path = os.path.join(_TMP_DIR, f"{uuid.uuid4().hex}.db")
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
        execution_options={"schema_translate_map": {"hris": None}},
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    # Monday 10 March 2025, 10:30 in Berlin (CET)
    return FakeClock(berlin(2025, 3, 10, 10, 30))


@pytest.fixture
def picker():
    return FixedOffsetPicker()


def add_site(db, project_id, lat=52.5200, lng=13.4050, radius_m=150, name=None):
    site = ProjectSite(
        ps_project_id=project_id,
        ps_name=name or f"Project {project_id}",
        ps_lat=lat,
        ps_lng=lng,
        ps_radius_m=radius_m,
    )
    db.add(site)
    db.commit()
    return site


def add_member(db, project_id, user_id):
    member = ProjectMember(pm_project_id=project_id, pm_user_id=user_id)
    db.add(member)
    db.commit()
    return member


def add_event(db, user_id, action, occurred_at, project_id=None):
    event = AttendanceEvent(
        ae_user_id=user_id,
        ae_project_id=project_id,
        ae_action=action,
        ae_occurred_at=occurred_at,
    )
    db.add(event)
    db.commit()
    return event


ANCHOR = (52.5200, 13.4050)


def north_of(lat, lng, meters):
    """Point ``meters`` due north along the meridian"""
    return lat + math.degrees(meters / EARTH_RADIUS_M), lng
