"""PlanCard model — a synthesized outing proposal offered for voting."""

import json
from datetime import datetime
from typing import List

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fairway.database import Base

RATIONALE_DISPLAY_LIMIT = 3


class PlanCard(Base):
    __tablename__ = "plan_cards"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    outing_id: Mapped[int] = mapped_column(
        ForeignKey("outings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    course_name: Mapped[str] = mapped_column(String(200), nullable=False)
    course_address: Mapped[str] = mapped_column(String(500), nullable=False)

    time_window_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    time_window_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    estimated_cost: Mapped[str] = mapped_column(String(100), default="")
    drive_time: Mapped[str] = mapped_column(String(100), default="")
    rationale_json: Mapped[str] = mapped_column(Text, default="[]")
    fit_score: Mapped[int] = mapped_column(Integer, default=80)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    votes: Mapped[List["Vote"]] = relationship(  # noqa: F821
        "Vote", cascade="all, delete-orphan", passive_deletes=True
    )

    # ── JSON helpers ──
    @property
    def rationale(self) -> List[str]:
        try:
            return json.loads(self.rationale_json or "[]")
        except (json.JSONDecodeError, TypeError):
            return []

    @rationale.setter
    def rationale(self, value: List[str]) -> None:
        self.rationale_json = json.dumps(list(value or []))

    @property
    def display_rationale(self) -> List[str]:
        return self.rationale[:RATIONALE_DISPLAY_LIMIT]
