"""Per-participant availability lookup for a (date, half-day slot) pair."""

from typing import Any, Mapping

from fairway.models.preference import TimeSlot

# Bookable half-day slots, in display order, with their local hour bounds.
SLOT_HOURS = {
    TimeSlot.MORNING: (6, 12),
    TimeSlot.AFTERNOON: (12, 18),
}


def is_available_for_slot(availability: Any, date_key: str, slot: TimeSlot) -> bool:
    """
    Return True if ``availability`` marks the participant free for ``slot`` on ``date_key``.

    Missing days and ``cant`` mean unavailable, ``either`` covers both
    slots. Anything unrecognised is treated as unavailable.
    """
    if not isinstance(availability, Mapping):
        return False

    day_value = getattr(availability.get(date_key), "value", availability.get(date_key))
    if not day_value or day_value == TimeSlot.CANT.value:
        return False
    if day_value == TimeSlot.EITHER.value:
        return True
    return day_value == getattr(slot, "value", slot)
