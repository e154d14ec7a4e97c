"""
Fairway — FastAPI application entry-point.

Run with:
    uvicorn fairway.main:app --reload
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from sqlalchemy.ext.asyncio import AsyncSession

from fairway import models  # noqa: F401  (registers every table on Base.metadata)
from fairway.config import settings
from fairway.database import Base, engine, get_db

# ── Import routers ──
from fairway.routers import outings, votes

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)


# ── Lifespan: create tables on startup ──
@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield


app = FastAPI(
    title=settings.APP_NAME,
    description="Group golf outing planner — find the shared window, pick a course, vote on the plan.",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Register API routers ──
app.include_router(outings.router)
app.include_router(votes.router)


@app.get("/health")
async def health():
    return {"status": "ok", "app": settings.APP_NAME}


if os.environ.get("ENVIRONMENT") != "production":
    from fairway.seed import seed_courses

    @app.get("/dev/seed-courses")
    async def dev_seed_courses(db: AsyncSession = Depends(get_db)):
        added = await seed_courses(db)
        return {"status": "success", "detail": f"Seeded {added} courses."}
