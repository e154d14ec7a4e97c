"""
Vote ledger — one live up/down vote per (plan card, participant).

Votes are written with a single dialect-level INSERT ... ON CONFLICT DO
UPDATE keyed on the unique pair, so two near-simultaneous votes from the
same participant on the same plan can never produce two rows; the last
writer wins. After each committed write the ledger publishes a VoteEvent
to any subscribers of the plan's outing.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from fairway.config import settings
from fairway.models.participant import Participant
from fairway.models.plan_card import PlanCard
from fairway.models.vote import Vote, VoteDirection

logger = logging.getLogger(__name__)

NO_VOTE = "none"

_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


@dataclass(frozen=True)
class VoteTally:
    up_count: int = 0
    down_count: int = 0


@dataclass(frozen=True)
class VoteEvent:
    outing_id: int
    plan_card_id: int
    participant_id: int
    action: str  # "upsert" | "delete"
    vote: Optional[VoteDirection]
    tally: VoteTally

    def as_dict(self) -> dict:
        return {
            "outing_id": self.outing_id,
            "plan_card_id": self.plan_card_id,
            "participant_id": self.participant_id,
            "action": self.action,
            "vote": self.vote.value if self.vote else NO_VOTE,
            "up_count": self.tally.up_count,
            "down_count": self.tally.down_count,
        }


VoteListener = Callable[[VoteEvent], Awaitable[None]]


class VoteEventBroker:
    """
    In-process observer registry; listeners are keyed by outing id.

    Listeners run concurrently and each gets at most ``send_timeout``
    seconds, so one slow client cannot hold up the vote that triggered
    the event. A listener that fails or times out is unsubscribed.
    """

    def __init__(self, send_timeout: Optional[float] = None):
        self._listeners: Dict[int, List[VoteListener]] = {}
        if send_timeout is None:
            send_timeout = settings.VOTE_EVENT_SEND_TIMEOUT_SECONDS
        self.send_timeout = send_timeout

    def subscribe(self, outing_id: int, listener: VoteListener) -> None:
        self._listeners.setdefault(outing_id, []).append(listener)

    def unsubscribe(self, outing_id: int, listener: VoteListener) -> None:
        listeners = self._listeners.get(outing_id)
        if not listeners:
            return
        if listener in listeners:
            listeners.remove(listener)
        if not listeners:
            del self._listeners[outing_id]

    def listener_count(self, outing_id: int) -> int:
        return len(self._listeners.get(outing_id, []))

    async def publish(self, event: VoteEvent) -> None:
        listeners = list(self._listeners.get(event.outing_id, []))
        if not listeners:
            return

        results = await asyncio.gather(
            *(asyncio.wait_for(listener(event), self.send_timeout) for listener in listeners),
            return_exceptions=True,
        )
        for listener, outcome in zip(listeners, results):
            if isinstance(outcome, Exception):
                logger.warning(
                    f"Dropping vote listener for outing {event.outing_id}: {type(outcome).__name__} {outcome}"
                )
                self.unsubscribe(event.outing_id, listener)


vote_events = VoteEventBroker()


# ── Reads ──

async def tally(db: AsyncSession, plan_card_id: int) -> VoteTally:
    result = await db.execute(
        select(Vote.vote, func.count(Vote.id))
        .where(Vote.plan_card_id == plan_card_id)
        .group_by(Vote.vote)
    )
    counts = {direction: count for direction, count in result.all()}
    return VoteTally(
        up_count=counts.get(VoteDirection.UP, 0),
        down_count=counts.get(VoteDirection.DOWN, 0),
    )


async def voter_choice(db: AsyncSession, plan_card_id: int, participant_id: int) -> str:
    """Return ``"up"``, ``"down"`` or ``"none"``."""
    result = await db.execute(
        select(Vote.vote).where(
            Vote.plan_card_id == plan_card_id,
            Vote.participant_id == participant_id,
        )
    )
    direction = result.scalar_one_or_none()
    return direction.value if direction else NO_VOTE


async def voter_choices(db: AsyncSession, participant_id: int, plan_card_ids: List[int]) -> Dict[int, str]:
    """``voter_choice`` for several plan cards in one query."""
    choices = {card_id: NO_VOTE for card_id in plan_card_ids}
    if not plan_card_ids:
        return choices
    result = await db.execute(
        select(Vote.plan_card_id, Vote.vote).where(
            Vote.participant_id == participant_id,
            Vote.plan_card_id.in_(plan_card_ids),
        )
    )
    for card_id, direction in result.all():
        choices[card_id] = direction.value
    return choices


async def outing_tallies(db: AsyncSession, outing_id: int) -> Dict[int, VoteTally]:
    """Tallies for every plan card of an outing, best fit first."""
    res_cards = await db.execute(
        select(PlanCard.id)
        .where(PlanCard.outing_id == outing_id)
        .order_by(PlanCard.fit_score.desc(), PlanCard.id)
    )
    card_ids = list(res_cards.scalars().all())
    if not card_ids:
        return {}

    res_votes = await db.execute(
        select(Vote.plan_card_id, Vote.vote, func.count(Vote.id))
        .where(Vote.plan_card_id.in_(card_ids))
        .group_by(Vote.plan_card_id, Vote.vote)
    )
    counts: Dict[int, Dict[VoteDirection, int]] = {card_id: {} for card_id in card_ids}
    for card_id, direction, count in res_votes.all():
        counts[card_id][direction] = count

    return {
        card_id: VoteTally(
            up_count=by_dir.get(VoteDirection.UP, 0),
            down_count=by_dir.get(VoteDirection.DOWN, 0),
        )
        for card_id, by_dir in counts.items()
    }


# ── Writes ──

async def _resolve_voter(db: AsyncSession, plan_card_id: int, participant_id: int) -> Optional[PlanCard]:
    """Return the plan card if the participant belongs to its outing."""
    card = await db.get(PlanCard, plan_card_id)
    if card is None:
        return None
    res = await db.execute(
        select(Participant.id).where(
            Participant.id == participant_id,
            Participant.outing_id == card.outing_id,
        )
    )
    if res.scalar_one_or_none() is None:
        return None
    return card


def _upsert_statement(dialect_name: str, plan_card_id: int, participant_id: int, direction: VoteDirection):
    insert_fn = _UPSERT_INSERTS.get(dialect_name)
    if insert_fn is None:
        raise RuntimeError(f"Vote upsert is not supported on the {dialect_name!r} dialect")

    stmt = insert_fn(Vote).values(
        plan_card_id=plan_card_id,
        participant_id=participant_id,
        vote=direction,
    )
    return stmt.on_conflict_do_update(
        index_elements=[Vote.plan_card_id, Vote.participant_id],
        set_={"vote": stmt.excluded.vote, "updated_at": func.now()},
    )


async def cast_vote(
    db: AsyncSession,
    plan_card_id: int,
    participant_id: int,
    direction: VoteDirection,
    broker: VoteEventBroker = vote_events,
) -> Optional[VoteTally]:
    """
    Record ``direction`` as the participant's vote on a plan card.

    Commits the session so the write is visible before the event goes
    out. Returns the fresh tally, or None if the plan card or participant
    does not exist.
    """
    direction = VoteDirection(direction)
    card = await _resolve_voter(db, plan_card_id, participant_id)
    if card is None:
        return None
    outing_id = card.outing_id

    stmt = _upsert_statement(db.get_bind().dialect.name, plan_card_id, participant_id, direction)
    await db.execute(stmt)
    current = await tally(db, plan_card_id)
    await db.commit()

    logger.info("Participant %s voted %s on plan %s", participant_id, direction.value, plan_card_id)
    await broker.publish(
        VoteEvent(
            outing_id=outing_id,
            plan_card_id=plan_card_id,
            participant_id=participant_id,
            action="upsert",
            vote=direction,
            tally=current,
        )
    )
    return current


async def clear_vote(
    db: AsyncSession,
    plan_card_id: int,
    participant_id: int,
    broker: VoteEventBroker = vote_events,
) -> Optional[VoteTally]:
    """Withdraw the participant's vote. Returns None if the plan card or participant does not exist."""
    card = await _resolve_voter(db, plan_card_id, participant_id)
    if card is None:
        return None
    outing_id = card.outing_id

    result = await db.execute(
        delete(Vote).where(
            Vote.plan_card_id == plan_card_id,
            Vote.participant_id == participant_id,
        )
    )
    current = await tally(db, plan_card_id)
    await db.commit()

    if result.rowcount:
        await broker.publish(
            VoteEvent(
                outing_id=outing_id,
                plan_card_id=plan_card_id,
                participant_id=participant_id,
                action="delete",
                vote=None,
                tally=current,
            )
        )
    return current
