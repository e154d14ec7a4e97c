"""Venue matcher — filter the course catalog against a constraint envelope."""

from typing import List, Sequence

from fairway.models.course import HolesAvailable
from fairway.models.preference import HolesPreference
from fairway.services.constraints import ConstraintEnvelope, coerce_budget


def within_budget(course, envelope: ConstraintEnvelope) -> bool:
    return coerce_budget(course.price_tier).rank <= envelope.budget.rank


def supports_holes(course, envelope: ConstraintEnvelope) -> bool:
    if envelope.holes_preference == HolesPreference.EITHER:
        return True
    holes = getattr(course.holes_available, "value", course.holes_available)
    return holes == HolesAvailable.BOTH.value or holes == envelope.holes_preference.value


def match_courses(courses: Sequence, envelope: ConstraintEnvelope) -> List:
    """Return the courses satisfying both the budget and holes predicates, in catalog order."""
    return [c for c in courses if within_budget(c, envelope) and supports_holes(c, envelope)]
