"""
Plan synthesis pipeline.

    preferences -> overlap windows + constraint envelope -> matched courses
                -> plan writer -> validated plans -> full replace of PlanCards

The plan writer is an untrusted source: every entry it returns is checked
against the matched course list and the outing's date range before
anything is written. Existing PlanCards are only deleted once a valid set
is in hand, so a failed run leaves the previous proposals in place.
"""

import enum
import json
import logging
import math
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from fairway.config import settings
from fairway.models.course import Course
from fairway.models.outing import Outing
from fairway.models.participant import Participant
from fairway.models.plan_card import PlanCard
from fairway.models.preference import Preference
from fairway.services.constraints import ConstraintEnvelope, resolve_constraints
from fairway.services.overlap import OverlapWindow, compute_overlap_windows
from fairway.services.plan_writer import MalformedSynthesisOutput, PlanRequest, PlanWriter
from fairway.services.venues import match_courses

logger = logging.getLogger(__name__)

MAX_PLANS = 3
_JSON_ARRAY = re.compile(r"\[[\s\S]*\]")


class PlanGenerationStatus(str, enum.Enum):
    GENERATED = "generated"
    NOT_FOUND = "not_found"
    NO_OVERLAP = "no_overlap"
    NO_MATCHING_VENUES = "no_matching_venues"


@dataclass
class PlanGenerationResult:
    status: PlanGenerationStatus
    windows: List[OverlapWindow] = field(default_factory=list)
    envelope: Optional[ConstraintEnvelope] = None
    matched_courses: List[Course] = field(default_factory=list)
    plan_cards: List[PlanCard] = field(default_factory=list)


# ── Writer output schema ──

class TimeWindow(BaseModel):
    start: datetime
    end: datetime


class GeneratedPlan(BaseModel):
    """One plan entry as returned by the plan writer."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    title: Optional[str] = None
    course_name: str
    course_address: Optional[str] = None
    time_window: TimeWindow
    estimated_cost: str = ""
    drive_time: str = ""
    rationale: List[str] = []
    fit_score: Optional[float] = None

    @field_validator("estimated_cost", "drive_time", mode="before")
    @classmethod
    def _stringify(cls, v: Any) -> str:
        if v is None:
            return ""
        return str(v)

    @field_validator("rationale", mode="before")
    @classmethod
    def _listify(cls, v: Any) -> List[str]:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        if not isinstance(v, (list, tuple)):
            raise ValueError("rationale must be a string or a list of strings")
        return [str(item) for item in v]


def clamp_fit_score(value: Optional[float], default: int) -> int:
    if value is None or not math.isfinite(value):
        return default
    return int(round(min(100.0, max(0.0, value))))


def _normalize(text: Optional[str]) -> str:
    return " ".join((text or "").split()).casefold()


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def extract_plan_array(raw_text: str) -> List[Any]:
    """Pull the JSON array out of the writer's reply, tolerating stray prose."""
    match = _JSON_ARRAY.search(raw_text or "")
    candidate = match.group(0) if match else raw_text
    try:
        data = json.loads(candidate)
    except (json.JSONDecodeError, TypeError) as e:
        logger.error("Error parsing AI response: %s", (raw_text or "")[:500])
        raise MalformedSynthesisOutput("Failed to parse AI response") from e

    if isinstance(data, dict) and isinstance(data.get("plans"), list):
        data = data["plans"]
    if not isinstance(data, list):
        raise MalformedSynthesisOutput("AI response is not a JSON array")
    return data


def validate_plans(
    raw_text: str,
    matched_courses: Sequence[Course],
    outing: Outing,
    default_fit_score: Optional[int] = None,
) -> List[PlanCard]:
    """
    Turn the writer's reply into unsaved PlanCards for ``outing``.

    Entries naming a course outside ``matched_courses``, or with a time
    window outside the outing's days, are dropped. Raises
    MalformedSynthesisOutput when nothing usable remains.
    """
    if default_fit_score is None:
        default_fit_score = settings.DEFAULT_FIT_SCORE
    courses_by_name: Dict[str, Course] = {_normalize(c.name): c for c in matched_courses}

    cards: List[PlanCard] = []
    for index, entry in enumerate(extract_plan_array(raw_text)):
        try:
            plan = GeneratedPlan.model_validate(entry)
        except ValidationError as e:
            logger.warning("Dropping plan %d: invalid structure (%s)", index, e.error_count())
            continue

        course = courses_by_name.get(_normalize(plan.course_name))
        if course is None:
            logger.warning("Dropping plan %d: unknown course %r", index, plan.course_name)
            continue
        if plan.course_address and _normalize(plan.course_address) != _normalize(course.address):
            logger.warning("Dropping plan %d: address does not match %r", index, course.name)
            continue

        start, end = _as_utc(plan.time_window.start), _as_utc(plan.time_window.end)
        if start > end or not (outing.contains_day(start.date()) and outing.contains_day(end.date())):
            logger.warning("Dropping plan %d: window %s..%s outside outing range", index, start, end)
            continue

        card = PlanCard(
            outing_id=outing.id,
            title=plan.title or f"Golf at {course.name}",
            course_name=course.name,
            course_address=course.address,
            time_window_start=start,
            time_window_end=end,
            estimated_cost=plan.estimated_cost,
            drive_time=plan.drive_time,
            fit_score=clamp_fit_score(plan.fit_score, default_fit_score),
        )
        card.rationale = plan.rationale
        cards.append(card)

        if len(cards) == MAX_PLANS:
            break

    if not cards:
        raise MalformedSynthesisOutput("AI response contained no usable plans")
    return cards


async def replace_plan_cards(db: AsyncSession, outing_id: int, cards: List[PlanCard]) -> List[PlanCard]:
    """Delete every PlanCard of the outing, then insert ``cards``. Votes cascade."""
    await db.execute(delete(PlanCard).where(PlanCard.outing_id == outing_id))
    db.add_all(cards)
    await db.flush()
    return cards


def build_plan_request(
    overlap_windows: List[OverlapWindow],
    envelope: ConstraintEnvelope,
    matched_courses: Sequence[Course],
    outing: Outing,
    participant_count: int,
    window_limit: Optional[int] = None,
) -> PlanRequest:
    limit = window_limit or settings.PLAN_WINDOW_LIMIT
    return PlanRequest(
        windows=overlap_windows[:limit],
        envelope=envelope,
        courses=list(matched_courses),
        participant_count=participant_count,
        location=outing.location_zip,
    )


async def load_outing_inputs(db: AsyncSession, outing_id: int):
    """Fetch the outing with its roster and preferences; outing is None if absent."""
    outing = await db.get(Outing, outing_id)
    if outing is None:
        return None, [], []

    res_p = await db.execute(
        select(Participant).where(Participant.outing_id == outing_id).order_by(Participant.id)
    )
    res_pref = await db.execute(
        select(Preference).where(Preference.outing_id == outing_id).order_by(Preference.id)
    )
    return outing, list(res_p.scalars().all()), list(res_pref.scalars().all())


async def generate_plans(db: AsyncSession, outing_id: int, writer: PlanWriter) -> PlanGenerationResult:
    """Run the full pipeline for one outing and persist the resulting plan set."""
    outing, participants, preferences = await load_outing_inputs(db, outing_id)
    if outing is None:
        return PlanGenerationResult(status=PlanGenerationStatus.NOT_FOUND)

    overlap = compute_overlap_windows(
        outing.date_range_start, outing.date_range_end, participants, preferences
    )
    envelope = resolve_constraints(preferences)
    logger.info("Outing %s constraints: %s", outing_id, envelope)
    logger.info("Outing %s top windows: %s", outing_id, overlap.windows[:3])

    if not overlap.has_overlap:
        return PlanGenerationResult(
            status=PlanGenerationStatus.NO_OVERLAP, windows=overlap.windows, envelope=envelope
        )

    res_c = await db.execute(select(Course).order_by(Course.id))
    matched = match_courses(res_c.scalars().all(), envelope)
    logger.info("Outing %s matching courses: %d", outing_id, len(matched))

    if not matched:
        return PlanGenerationResult(
            status=PlanGenerationStatus.NO_MATCHING_VENUES,
            windows=overlap.windows,
            envelope=envelope,
        )

    request = build_plan_request(overlap.windows, envelope, matched, outing, len(participants))
    raw_text = await writer.write_plans(request)
    cards = validate_plans(raw_text, matched, outing)
    await replace_plan_cards(db, outing.id, cards)
    logger.info("Outing %s saved %d plans", outing_id, len(cards))

    return PlanGenerationResult(
        status=PlanGenerationStatus.GENERATED,
        windows=overlap.windows,
        envelope=envelope,
        matched_courses=matched,
        plan_cards=cards,
    )
