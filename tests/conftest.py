"""
Pytest configuration and fixtures

Every test gets its own in-memory SQLite database, so nothing leaks
between tests.
"""
from datetime import date, datetime, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from fairway import models  # noqa: F401
from fairway.database import Base, enable_sqlite_foreign_keys
from fairway.models.course import Course, HolesAvailable
from fairway.models.outing import Outing
from fairway.models.participant import Participant
from fairway.models.preference import BudgetTier, HolesPreference, Preference


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_foreign_keys(engine.sync_engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def weekend_outing(db):
    """
    Sat 2025-06-07 to Sun 2025-06-08 with an organizer (no preference)
    and two friends who submitted preferences.
    """
    outing = Outing(
        title="Weekend Golf Trip",
        date_range_start=date(2025, 6, 7),
        date_range_end=date(2025, 6, 8),
        deadline=datetime(2025, 6, 1, 12, tzinfo=timezone.utc),
        location_zip="62704",
    )
    db.add(outing)
    await db.flush()

    organizer = Participant(outing_id=outing.id, name="Olivia", is_organizer=True)
    mike = Participant(outing_id=outing.id, name="Mike", is_organizer=False)
    sarah = Participant(outing_id=outing.id, name="Sarah", is_organizer=False)
    db.add_all([organizer, mike, sarah])
    await db.flush()

    db.add_all([
        Preference(
            outing_id=outing.id,
            participant_id=mike.id,
            availability={"2025-06-07": "either", "2025-06-08": "cant"},
            max_drive_minutes=45,
            budget=BudgetTier.MID,
            holes_preference=HolesPreference.EIGHTEEN,
        ),
        Preference(
            outing_id=outing.id,
            participant_id=sarah.id,
            availability={"2025-06-07": "morning", "2025-06-08": "afternoon"},
            max_drive_minutes=20,
            budget=BudgetTier.HIGH,
            holes_preference=HolesPreference.EIGHTEEN,
        ),
    ])
    await db.commit()
    return outing


@pytest_asyncio.fixture
async def course_catalog(db):
    courses = [
        Course(
            name="Pine Hollow Municipal",
            address="1200 Pine Hollow Rd, Springfield, IL 62704",
            price_tier=BudgetTier.LOW,
            holes_available=HolesAvailable.BOTH,
        ),
        Course(
            name="Oak Ridge Country Club",
            address="800 Oak Ridge Dr, Chatham, IL 62629",
            price_tier=BudgetTier.MID,
            holes_available=HolesAvailable.EIGHTEEN,
        ),
        Course(
            name="The Preserve at Eagle Creek",
            address="19 Eagle Creek Pkwy, Rochester, IL 62563",
            price_tier=BudgetTier.HIGH,
            holes_available=HolesAvailable.EIGHTEEN,
        ),
    ]
    db.add_all(courses)
    await db.commit()
    return courses


@pytest.fixture
def plan_reply():
    """A well-formed plan writer reply for ``weekend_outing`` + ``course_catalog``."""
    return """[
      {
        "title": "Saturday Morning at Pine Hollow",
        "course_name": "Pine Hollow Municipal",
        "course_address": "1200 Pine Hollow Rd, Springfield, IL 62704",
        "time_window": {"start": "2025-06-07T08:00:00Z", "end": "2025-06-07T12:00:00Z"},
        "estimated_cost": "$35 per person",
        "drive_time": "10 min from center",
        "rationale": ["Everyone is free", "Cheapest option", "Walkable", "Extra reason"],
        "fit_score": 92
      },
      {
        "course_name": "Oak Ridge Country Club",
        "course_address": "800 Oak Ridge Dr, Chatham, IL 62629",
        "time_window": {"start": "2025-06-08T12:00:00Z", "end": "2025-06-08T16:00:00Z"},
        "estimated_cost": "$70 per person",
        "drive_time": "18 min from center",
        "rationale": ["Best 18-hole layout in range"]
      }
    ]"""


class FakePlanWriter:
    """Stands in for the LLM gateway client."""

    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.requests = []

    async def write_plans(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def fake_writer():
    """Factory for FakePlanWriter instances."""
    return FakePlanWriter
