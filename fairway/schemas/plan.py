"""Plan and overlap Pydantic schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class OverlapWindowOut(BaseModel):
    date: str
    time_slot: str
    label: str
    start_time: datetime
    end_time: datetime
    participant_count: int
    total_participants: int
    available_names: List[str]
    fit_rank: int


class ConstraintsOut(BaseModel):
    budget: str
    budget_description: str
    max_drive_minutes: int
    holes_preference: str


class OverlapSummaryOut(BaseModel):
    outing_id: int
    windows: List[OverlapWindowOut]
    constraints: ConstraintsOut
    has_overlap: bool


class PlanCardOut(BaseModel):
    id: int
    outing_id: int
    title: str
    course_name: str
    course_address: str
    time_window_start: datetime
    time_window_end: datetime
    estimated_cost: str
    drive_time: str
    rationale: List[str]
    display_rationale: List[str] = []
    fit_score: int
    up_count: int = 0
    down_count: int = 0
    my_vote: Optional[str] = None

    model_config = {"from_attributes": True}


class PlanGenerationOut(BaseModel):
    status: str
    message: Optional[str] = None
    plans: List[PlanCardOut] = []
