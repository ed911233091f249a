"""
Shared fixtures: in-memory SQLite through aiosqlite, a seeded team
(sectors, profiles, locations, appointment types) and small factories.
"""

import os

# Settings are read at import time, so pin the test environment first
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
os.environ.update({
    "APP_ENV": "testing",
    "DATABASE_URL": TEST_DATABASE_URL,
    "REDIS_URL": "",  # in-process change feed
    "ENABLE_SYNC": "false",
    "LOG_LEVEL": "WARNING",
})

from dataclasses import dataclass, field
from typing import Any, Dict

import pytest
import pytest_asyncio

from agenda.db.base import init_db
from agenda.db.models.appointment import Appointment
from agenda.db.models.appointment_type import AppointmentType
from agenda.db.models.attendee import Attendee
from agenda.db.models.location import Location
from agenda.db.models.message import Message
from agenda.db.models.profile import Profile
from agenda.db.models.sector import Sector
from agenda.db.session import make_engine, make_session_factory
from agenda.services.change_feed import InMemoryChangeFeed
from agenda.services.scheduling import Actor, SchedulingService

DAY = "2024-01-10"


@pytest_asyncio.fixture
async def engine():
    eng = make_engine(TEST_DATABASE_URL)
    await init_db(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@dataclass
class Team:
    sectors: Dict[str, Sector] = field(default_factory=dict)
    profiles: Dict[str, Profile] = field(default_factory=dict)
    locations: Dict[str, Location] = field(default_factory=dict)
    types: Dict[str, AppointmentType] = field(default_factory=dict)

    def actor(self, name: str) -> Actor:
        profile = self.profiles[name]
        return Actor(id=profile.id, role=profile.role)


@pytest_asyncio.fixture
async def team(db) -> Team:
    t = Team()
    t.sectors = {
        "eng": Sector(id="sec-eng", name="Engenharia"),
        "ops": Sector(id="sec-ops", name="Operações"),
    }
    t.profiles = {
        "alice": Profile(id="u-alice", full_name="Alice Souza", role="Normal", sector_id="sec-eng"),
        "bob": Profile(id="u-bob", full_name="Bob Lima", role="Normal", sector_id="sec-ops"),
        "carol": Profile(id="u-carol", full_name="Carol Dias", role="Normal", sector_id=None),
        "dave": Profile(id="u-dave", full_name="Dave Rocha", role="Normal", sector_id="sec-eng"),
        "admin": Profile(id="u-admin", full_name="Ana Admin", role="Administrador", sector_id=None),
    }
    t.locations = {
        "room": Location(id="loc-room", name="Sala 1", color="#ef4444", has_conflict_control=True),
        "hall": Location(id="loc-hall", name="Auditório", color="#22c55e", has_conflict_control=False),
    }
    t.types = {
        "sync": AppointmentType(id="t-sync", value="sync", label="Sincronização", color="#6366f1", icon="sync"),
        "planning": AppointmentType(id="t-plan", value="planning_q", label="Planejamento trimestral",
                                    color="#10b981", icon="event"),
    }
    db.add_all(t.sectors.values())
    await db.flush()
    db.add_all(t.profiles.values())
    db.add_all(t.locations.values())
    db.add_all(t.types.values())
    await db.commit()
    return t


@pytest.fixture
def make_appointment(db):
    """Insert an appointment (and attendee rows) directly, bypassing the service."""

    async def _make(created_by: str = "u-alice", attendees: Dict[str, str] | None = None, **fields: Any):
        values = {"title": "Standup", "date": DAY, "start_time": "09:00", "end_time": "09:15", "type": "sync"}
        values.update(fields)
        appt = Appointment(created_by=created_by, **values)
        db.add(appt)
        await db.flush()
        for user_id, status in (attendees or {}).items():
            db.add(Attendee(appointment_id=appt.id, user_id=user_id, status=status))
        await db.commit()
        return appt

    return _make


@pytest.fixture
def make_message(db):
    async def _make(sender_id: str, receiver_id: str, read: bool = False):
        msg = Message(sender_id=sender_id, receiver_id=receiver_id, content="oi", read=read)
        db.add(msg)
        await db.commit()
        return msg

    return _make


@pytest.fixture
def feed():
    return InMemoryChangeFeed()


@pytest.fixture
def scheduler(feed):
    return SchedulingService(feed=feed)
