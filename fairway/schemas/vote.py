"""Vote Pydantic schemas."""

from pydantic import BaseModel

from fairway.models.vote import VoteDirection


class VoteCreate(BaseModel):
    participant_id: int
    vote: VoteDirection


class VoteTallyOut(BaseModel):
    plan_card_id: int
    up_count: int
    down_count: int
    my_vote: str = "none"
