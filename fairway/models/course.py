"""Course model — static catalog of venues plans may draw from."""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Enum, String, func
from sqlalchemy.orm import Mapped, mapped_column

from fairway.database import Base
from fairway.models.preference import BudgetTier


class HolesAvailable(str, enum.Enum):
    NINE = "9"
    EIGHTEEN = "18"
    BOTH = "both"


class Course(Base):
    __tablename__ = "courses"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    address: Mapped[str] = mapped_column(String(500), nullable=False)
    zip_code: Mapped[Optional[str]] = mapped_column(String(20))
    phone: Mapped[Optional[str]] = mapped_column(String(50))
    website: Mapped[Optional[str]] = mapped_column(String(500))

    price_tier: Mapped[BudgetTier] = mapped_column(Enum(BudgetTier), default=BudgetTier.MID)
    holes_available: Mapped[HolesAvailable] = mapped_column(
        Enum(HolesAvailable), default=HolesAvailable.EIGHTEEN
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
