"""
Overlap engine — ranks the (day, half-day) windows where most of the group is free.

Windows are sparse: a slot nobody can make is not emitted. Ranking is a
dense rank over participant count, so tied windows share a rank and the
next lower count gets the next integer.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

from fairway.models.preference import TimeSlot
from fairway.services.availability import SLOT_HOURS, is_available_for_slot

logger = logging.getLogger(__name__)


@dataclass
class OverlapWindow:
    date: str
    time_slot: TimeSlot
    start_time: datetime
    end_time: datetime
    participant_count: int
    total_participants: int
    available_names: List[str] = field(default_factory=list)
    fit_rank: int = 0


@dataclass
class OverlapResult:
    windows: List[OverlapWindow]
    has_overlap: bool


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every calendar day from ``start`` to ``end`` inclusive."""
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


def find_organizer(participants: Iterable) -> Optional[object]:
    return next((p for p in participants if p.is_organizer), None)


def organizer_defaults_available(organizer, preferences_by_participant: Dict[int, object]) -> bool:
    """
    The organizer counts as free for every slot until they submit a Preference.

    The default only adds the organizer to a slot that at least one
    preference-backed participant can make, so an outing with no
    responses yet has no windows.
    """
    return organizer is not None and organizer.id not in preferences_by_participant


def _available_names(
    date_key: str,
    slot: TimeSlot,
    participants_by_id: Dict[int, object],
    preferences: Sequence,
    organizer,
    organizer_always_free: bool,
) -> List[str]:
    names: List[str] = []
    seen_ids = set()

    for pref in preferences:
        participant = participants_by_id.get(pref.participant_id)
        if participant is None or participant.id in seen_ids:
            continue
        if is_available_for_slot(pref.availability, date_key, slot):
            names.append(participant.name)
            seen_ids.add(participant.id)

    # A default-available organizer joins windows; they never open one alone.
    if names and organizer_always_free and organizer.id not in seen_ids:
        names.append(organizer.name)

    return names


def assign_dense_ranks(windows: List[OverlapWindow]) -> None:
    """Set ``fit_rank`` on windows already sorted by descending participant count."""
    rank = 0
    previous_count = None
    for window in windows:
        if window.participant_count != previous_count:
            rank += 1
            previous_count = window.participant_count
        window.fit_rank = rank


def compute_overlap_windows(
    date_range_start: date,
    date_range_end: date,
    participants: Sequence,
    preferences: Sequence,
) -> OverlapResult:
    """
    Count available participants for each day/slot in the inclusive range.

    ``participants`` and ``preferences`` only need the attributes of the
    ORM rows (``id``, ``name``, ``is_organizer`` / ``participant_id``,
    ``availability``), so plain objects work as well.
    """
    participants_by_id = {p.id: p for p in participants}
    preferences_by_participant = {pref.participant_id: pref for pref in preferences}
    organizer = find_organizer(participants)
    organizer_always_free = organizer_defaults_available(organizer, preferences_by_participant)
    total = len(participants)

    windows: List[OverlapWindow] = []
    for day in iter_days(date_range_start, date_range_end):
        date_key = day.isoformat()
        for slot, (start_hour, end_hour) in SLOT_HOURS.items():
            names = _available_names(
                date_key, slot, participants_by_id, preferences, organizer, organizer_always_free
            )
            if not names:
                continue
            windows.append(
                OverlapWindow(
                    date=date_key,
                    time_slot=slot,
                    start_time=datetime.combine(day, time(start_hour)),
                    end_time=datetime.combine(day, time(end_hour)),
                    participant_count=len(names),
                    total_participants=total,
                    available_names=names,
                )
            )

    # sort() is stable, so equal counts stay in chronological order
    windows.sort(key=lambda w: w.participant_count, reverse=True)
    assign_dense_ranks(windows)

    has_overlap = any(w.participant_count >= 2 for w in windows)
    logger.debug(
        "Computed %d overlap windows for %d participants (has_overlap=%s)",
        len(windows), total, has_overlap,
    )
    return OverlapResult(windows=windows, has_overlap=has_overlap)


def format_window_display(window: OverlapWindow) -> str:
    """Human label for a window, e.g. ``"Saturday Morning"``."""
    day_name = date.fromisoformat(window.date).strftime("%A")
    slot_name = "Morning" if window.time_slot == TimeSlot.MORNING else "Afternoon"
    return f"{day_name} {slot_name}"
