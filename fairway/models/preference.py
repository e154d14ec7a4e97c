"""Preference model — a participant's availability and constraints."""

import enum
import json
from datetime import datetime
from typing import Dict

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from fairway.database import Base


class TimeSlot(str, enum.Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EITHER = "either"
    CANT = "cant"


class BudgetTier(str, enum.Enum):
    """Three ordered price tiers, cheapest first."""

    LOW = "low"
    MID = "mid"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return list(BudgetTier).index(self) + 1

    @property
    def description(self) -> str:
        return BUDGET_DESCRIPTIONS[self]

    @property
    def symbol(self) -> str:
        return "$" * self.rank


BUDGET_DESCRIPTIONS = {
    BudgetTier.LOW: "Under $50",
    BudgetTier.MID: "$50-100",
    BudgetTier.HIGH: "$100+",
}


class HolesPreference(str, enum.Enum):
    NINE = "9"
    EIGHTEEN = "18"
    EITHER = "either"


class Preference(Base):
    __tablename__ = "preferences"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    outing_id: Mapped[int] = mapped_column(
        ForeignKey("outings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    participant_id: Mapped[int] = mapped_column(
        ForeignKey("participants.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    # ── ISO date -> TimeSlot value (stored as Text for SQLite compat) ──
    availability_json: Mapped[str] = mapped_column(Text, default="{}")

    max_drive_minutes: Mapped[int] = mapped_column(Integer, default=30)
    budget: Mapped[BudgetTier] = mapped_column(Enum(BudgetTier), default=BudgetTier.MID)
    holes_preference: Mapped[HolesPreference] = mapped_column(
        Enum(HolesPreference), default=HolesPreference.EITHER
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # ── JSON helpers ──
    @property
    def availability(self) -> Dict[str, str]:
        try:
            data = json.loads(self.availability_json or "{}")
        except (json.JSONDecodeError, TypeError):
            return {}
        return data if isinstance(data, dict) else {}

    @availability.setter
    def availability(self, value: Dict[str, str]) -> None:
        self.availability_json = json.dumps(
            {day: getattr(slot, "value", slot) for day, slot in (value or {}).items()}
        )
