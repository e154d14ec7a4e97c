"""Starter course catalog for local development."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fairway.models.course import Course, HolesAvailable
from fairway.models.preference import BudgetTier

COURSE_CATALOG = [
    {
        "name": "Pine Hollow Municipal",
        "address": "1200 Pine Hollow Rd, Springfield, IL 62704",
        "zip_code": "62704",
        "phone": "(217) 555-0141",
        "price_tier": BudgetTier.LOW,
        "holes_available": HolesAvailable.BOTH,
    },
    {
        "name": "Riverside Nine",
        "address": "45 River St, Springfield, IL 62701",
        "zip_code": "62701",
        "price_tier": BudgetTier.LOW,
        "holes_available": HolesAvailable.NINE,
    },
    {
        "name": "Oak Ridge Country Club",
        "address": "800 Oak Ridge Dr, Chatham, IL 62629",
        "zip_code": "62629",
        "website": "https://oakridge.example.com",
        "price_tier": BudgetTier.MID,
        "holes_available": HolesAvailable.EIGHTEEN,
    },
    {
        "name": "Lakeside Links",
        "address": "3 Lakeshore Dr, Springfield, IL 62712",
        "zip_code": "62712",
        "price_tier": BudgetTier.MID,
        "holes_available": HolesAvailable.BOTH,
    },
    {
        "name": "The Preserve at Eagle Creek",
        "address": "19 Eagle Creek Pkwy, Rochester, IL 62563",
        "zip_code": "62563",
        "website": "https://eaglecreek.example.com",
        "price_tier": BudgetTier.HIGH,
        "holes_available": HolesAvailable.EIGHTEEN,
    },
]


async def seed_courses(db: AsyncSession) -> int:
    """Insert the starter catalog if the courses table is empty. Returns rows added."""
    existing = (await db.execute(select(func.count(Course.id)))).scalar() or 0
    if existing:
        return 0

    db.add_all(Course(**row) for row in COURSE_CATALOG)
    await db.commit()
    return len(COURSE_CATALOG)
