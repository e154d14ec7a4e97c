import asyncio

from fairway import models  # noqa: F401
from fairway.database import Base, async_session, engine
from fairway.seed import seed_courses


async def main():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as db:
        added = await seed_courses(db)

    if added:
        print(f"Seeded {added} courses.")
    else:
        print("Courses already present, nothing to do.")


if __name__ == "__main__":
    asyncio.run(main())
