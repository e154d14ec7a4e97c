"""Vote model — one live up/down vote per participant per plan card."""

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from fairway.database import Base


class VoteDirection(str, enum.Enum):
    UP = "up"
    DOWN = "down"


class Vote(Base):
    __tablename__ = "votes"
    __table_args__ = (
        UniqueConstraint("plan_card_id", "participant_id", name="uq_vote_plan_participant"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    plan_card_id: Mapped[int] = mapped_column(
        ForeignKey("plan_cards.id", ondelete="CASCADE"), nullable=False, index=True
    )
    participant_id: Mapped[int] = mapped_column(
        ForeignKey("participants.id", ondelete="CASCADE"), nullable=False
    )
    vote: Mapped[VoteDirection] = mapped_column(Enum(VoteDirection), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
