"""Outing model — the group golf event participants respond to."""

import enum
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import Date, DateTime, Enum, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fairway.database import Base


class OutingStatus(str, enum.Enum):
    OPEN = "open"
    CLOSED = "closed"


class Outing(Base):
    __tablename__ = "outings"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(300), nullable=False)

    # ── Inclusive day bounds ──
    date_range_start: Mapped[date] = mapped_column(Date, nullable=False)
    date_range_end: Mapped[date] = mapped_column(Date, nullable=False)
    deadline: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    location_zip: Mapped[Optional[str]] = mapped_column(String(20))
    status: Mapped[OutingStatus] = mapped_column(
        Enum(OutingStatus), default=OutingStatus.OPEN
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # ── Relationships ──
    participants: Mapped[List["Participant"]] = relationship(  # noqa: F821
        "Participant", back_populates="outing", cascade="all, delete-orphan", passive_deletes=True
    )
    plan_cards: Mapped[List["PlanCard"]] = relationship(  # noqa: F821
        "PlanCard", cascade="all, delete-orphan", passive_deletes=True
    )

    def contains_day(self, day: date) -> bool:
        return self.date_range_start <= day <= self.date_range_end
