"""
Presence Schemas - shift state, challenges and adjudication
"""
from typing import Optional, Literal
from datetime import datetime, date
from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.schemas.attendance import _fix_datetime_timezone

RejectionReason = Literal[
    "not_found",
    "already_responded",
    "not_project_member",
    "expired",
    "out_of_range",
]


class SiteAnchor(BaseModel):
    project_id: int
    lat: float
    lng: float
    radius_m: Optional[int] = None


class ShiftState(BaseModel):
    employee_id: int
    project_id: int
    active: bool
    local_date: date
    last_action: Optional[Literal["enter", "exit"]] = None
    last_occurred_at: Optional[datetime] = None


class ChallengeBase(BaseModel):
    pc_user_id: int
    pc_project_id: int
    pc_site_lat: float
    pc_site_lng: float
    pc_radius_m: int
    pc_date: date
    pc_slot: Literal[1, 2]
    pc_fired_at: datetime
    pc_responded: bool = False
    pc_responded_at: Optional[datetime] = None


class ChallengeInDB(ChallengeBase):
    model_config = ConfigDict(from_attributes=True)

    pc_id: int
    pc_created_at: Optional[datetime] = None
    pc_updated_at: Optional[datetime] = None

    @field_validator('pc_fired_at', 'pc_responded_at', 'pc_created_at', 'pc_updated_at', mode='before')
    @classmethod
    def fix_datetime_timezone(cls, v):
        return _fix_datetime_timezone(v)


class Challenge(ChallengeInDB):
    pass


# Request/Response schemas for API endpoints
class ChallengeCreateRequest(BaseModel):
    """Ad hoc creation of a single slot"""
    project_id: int
    slot: Literal[1, 2]
    fired_at: Optional[datetime] = None


class FireTimeReplaceRequest(BaseModel):
    """Forced fire-time replacement; random inside the slot window when omitted"""
    fired_at: Optional[datetime] = None


class ChallengeRespondRequest(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class AdjudicationResult(BaseModel):
    challenge_id: int
    accepted: bool
    reason: Optional[RejectionReason] = None
    message: str
    distance_m: Optional[float] = None
    responded_at: Optional[datetime] = None
