"""Constraint resolver — the most restrictive envelope every participant can live with."""

from dataclasses import dataclass
from typing import Sequence

from fairway.models.preference import BudgetTier, HolesPreference

DEFAULT_BUDGET = BudgetTier.MID
DEFAULT_MAX_DRIVE_MINUTES = 30


@dataclass(frozen=True)
class ConstraintEnvelope:
    budget: BudgetTier = DEFAULT_BUDGET
    max_drive_minutes: int = DEFAULT_MAX_DRIVE_MINUTES
    holes_preference: HolesPreference = HolesPreference.EITHER

    @property
    def budget_description(self) -> str:
        return self.budget.description


def coerce_budget(value) -> BudgetTier:
    """Unknown tiers count as the middle tier."""
    try:
        return BudgetTier(value)
    except ValueError:
        return DEFAULT_BUDGET


def coerce_holes(value) -> HolesPreference:
    try:
        return HolesPreference(value)
    except ValueError:
        return HolesPreference.EITHER


def _drive_minutes(value) -> int:
    if isinstance(value, int) and value > 0:
        return value
    return DEFAULT_MAX_DRIVE_MINUTES


def resolve_constraints(preferences: Sequence) -> ConstraintEnvelope:
    if not preferences:
        return ConstraintEnvelope()

    budget = min((coerce_budget(p.budget) for p in preferences), key=lambda tier: tier.rank)
    max_drive = min(_drive_minutes(p.max_drive_minutes) for p in preferences)

    # Strict consensus: one dissenting (or "either") participant opens it up.
    holes = {coerce_holes(p.holes_preference) for p in preferences}
    if holes == {HolesPreference.EIGHTEEN}:
        holes_result = HolesPreference.EIGHTEEN
    elif holes == {HolesPreference.NINE}:
        holes_result = HolesPreference.NINE
    else:
        holes_result = HolesPreference.EITHER

    return ConstraintEnvelope(
        budget=budget,
        max_drive_minutes=max_drive,
        holes_preference=holes_result,
    )
