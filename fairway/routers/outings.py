"""Outings router – overlap summary, plan generation, plan listing."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fairway.database import get_db
from fairway.models.outing import Outing
from fairway.models.plan_card import PlanCard
from fairway.schemas.plan import (
    ConstraintsOut,
    OverlapSummaryOut,
    OverlapWindowOut,
    PlanCardOut,
    PlanGenerationOut,
)
from fairway.services.constraints import ConstraintEnvelope, resolve_constraints
from fairway.services.overlap import OverlapWindow, compute_overlap_windows, format_window_display
from fairway.services.plan_synthesis import (
    PlanGenerationStatus,
    generate_plans,
    load_outing_inputs,
)
from fairway.services.plan_writer import (
    MalformedSynthesisOutput,
    PlanWriter,
    SynthesisError,
    SynthesisQuotaExhausted,
    SynthesisRateLimited,
    SynthesisUnreachable,
    get_plan_writer,
)
from fairway.services.votes import outing_tallies, voter_choices

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/outings", tags=["outings"])

SYNTHESIS_STATUS_CODES = {
    SynthesisRateLimited: status.HTTP_429_TOO_MANY_REQUESTS,
    SynthesisQuotaExhausted: status.HTTP_402_PAYMENT_REQUIRED,
    SynthesisUnreachable: status.HTTP_503_SERVICE_UNAVAILABLE,
    MalformedSynthesisOutput: status.HTTP_502_BAD_GATEWAY,
}

STATUS_MESSAGES = {
    PlanGenerationStatus.NO_OVERLAP: "Not enough people share an open window yet",
    PlanGenerationStatus.NO_MATCHING_VENUES: "No courses match your group's constraints, try relaxing them",
}


def _window_out(window: OverlapWindow) -> OverlapWindowOut:
    return OverlapWindowOut(
        date=window.date,
        time_slot=window.time_slot.value,
        label=format_window_display(window),
        start_time=window.start_time,
        end_time=window.end_time,
        participant_count=window.participant_count,
        total_participants=window.total_participants,
        available_names=window.available_names,
        fit_rank=window.fit_rank,
    )


def _constraints_out(envelope: ConstraintEnvelope) -> ConstraintsOut:
    return ConstraintsOut(
        budget=envelope.budget.value,
        budget_description=envelope.budget_description,
        max_drive_minutes=envelope.max_drive_minutes,
        holes_preference=envelope.holes_preference.value,
    )


@router.get("/{outing_id}/overlap", response_model=OverlapSummaryOut)
async def get_overlap(outing_id: int, db: AsyncSession = Depends(get_db)):
    """Ranked availability windows plus the group's constraint envelope."""
    outing, participants, preferences = await load_outing_inputs(db, outing_id)
    if outing is None:
        raise HTTPException(status_code=404, detail="Outing not found")

    overlap = compute_overlap_windows(
        outing.date_range_start, outing.date_range_end, participants, preferences
    )
    return OverlapSummaryOut(
        outing_id=outing_id,
        windows=[_window_out(w) for w in overlap.windows],
        constraints=_constraints_out(resolve_constraints(preferences)),
        has_overlap=overlap.has_overlap,
    )


@router.post("/{outing_id}/plans", response_model=PlanGenerationOut)
async def create_plans(
    outing_id: int,
    db: AsyncSession = Depends(get_db),
    writer: PlanWriter = Depends(get_plan_writer),
):
    """Regenerate the outing's plan cards, replacing any previous set."""
    try:
        result = await generate_plans(db, outing_id, writer)
    except SynthesisError as e:
        logger.error(f"Plan generation failed for outing {outing_id}: {e}")
        code = SYNTHESIS_STATUS_CODES.get(type(e), status.HTTP_503_SERVICE_UNAVAILABLE)
        raise HTTPException(status_code=code, detail=str(e))

    if result.status == PlanGenerationStatus.NOT_FOUND:
        raise HTTPException(status_code=404, detail="Outing not found")

    return PlanGenerationOut(
        status=result.status.value,
        message=STATUS_MESSAGES.get(result.status),
        plans=[PlanCardOut.model_validate(card) for card in result.plan_cards],
    )


@router.get("/{outing_id}/plans", response_model=List[PlanCardOut])
async def list_plans(
    outing_id: int,
    participant_id: Optional[int] = None,
    db: AsyncSession = Depends(get_db),
):
    """Current plan cards with live tallies, best fit first."""
    if await db.get(Outing, outing_id) is None:
        raise HTTPException(status_code=404, detail="Outing not found")

    tallies = await outing_tallies(db, outing_id)
    if not tallies:
        return []

    res = await db.execute(select(PlanCard).where(PlanCard.id.in_(list(tallies))))
    cards = {card.id: card for card in res.scalars().all()}

    my_votes = {}
    if participant_id is not None:
        my_votes = await voter_choices(db, participant_id, list(tallies))

    plans = []
    for card_id, counts in tallies.items():
        my_vote = my_votes.get(card_id)
        plans.append(
            PlanCardOut.model_validate(cards[card_id]).model_copy(
                update={"up_count": counts.up_count, "down_count": counts.down_count, "my_vote": my_vote}
            )
        )
    return plans
