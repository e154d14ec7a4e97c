"""
Votes router — cast/clear a vote, read tallies, and stream live vote events.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect
from sqlalchemy.ext.asyncio import AsyncSession

from fairway.database import get_db
from fairway.models.plan_card import PlanCard
from fairway.schemas.vote import VoteCreate, VoteTallyOut
from fairway.services.votes import VoteEvent, cast_vote, clear_vote, tally, vote_events, voter_choice

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/votes", tags=["votes"])


@router.post("/{plan_card_id}", response_model=VoteTallyOut)
async def post_vote(plan_card_id: int, payload: VoteCreate, db: AsyncSession = Depends(get_db)):
    """Upsert the participant's vote on a plan card."""
    counts = await cast_vote(db, plan_card_id, payload.participant_id, payload.vote)
    if counts is None:
        raise HTTPException(status_code=404, detail="Plan or participant not found")
    return VoteTallyOut(
        plan_card_id=plan_card_id,
        up_count=counts.up_count,
        down_count=counts.down_count,
        my_vote=payload.vote.value,
    )


@router.delete("/{plan_card_id}", response_model=VoteTallyOut)
async def delete_vote(plan_card_id: int, participant_id: int, db: AsyncSession = Depends(get_db)):
    """Withdraw the participant's vote, if any."""
    counts = await clear_vote(db, plan_card_id, participant_id)
    if counts is None:
        raise HTTPException(status_code=404, detail="Plan or participant not found")
    return VoteTallyOut(
        plan_card_id=plan_card_id,
        up_count=counts.up_count,
        down_count=counts.down_count,
    )


@router.get("/{plan_card_id}/tally", response_model=VoteTallyOut)
async def get_tally(plan_card_id: int, participant_id: Optional[int] = None, db: AsyncSession = Depends(get_db)):
    """Live up/down counts, plus the asking participant's own choice."""
    if await db.get(PlanCard, plan_card_id) is None:
        raise HTTPException(status_code=404, detail="Plan not found")

    counts = await tally(db, plan_card_id)
    my_vote = "none"
    if participant_id is not None:
        my_vote = await voter_choice(db, plan_card_id, participant_id)
    return VoteTallyOut(
        plan_card_id=plan_card_id,
        up_count=counts.up_count,
        down_count=counts.down_count,
        my_vote=my_vote,
    )


@router.websocket("/ws/{outing_id}")
async def vote_stream(websocket: WebSocket, outing_id: int):
    """Push a JSON message to the client for every vote written on this outing's plans."""
    await websocket.accept()

    async def forward(event: VoteEvent) -> None:
        await websocket.send_json(event.as_dict())

    vote_events.subscribe(outing_id, forward)
    try:
        # Clients don't send anything meaningful; keep reading until they leave.
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug("Vote stream client left outing %s", outing_id)
    finally:
        vote_events.unsubscribe(outing_id, forward)
