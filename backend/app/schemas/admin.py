# backend/app/schemas/admin.py
"""Admin request/response schemas: overrides, member detail, slots."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field, model_validator

from ..core.constants import MAX_REASON_LENGTH
from ..core.enums import OverrideChangeType
from ._strict_base import ORMResponseModel, StrictModel, StrictRequestModel


class AdminOverrideRequest(StrictRequestModel):
    user_id: str = Field(..., min_length=1)
    change_type: OverrideChangeType
    session_delta: Optional[int] = Field(None, ge=1, description="Required for session changes")
    reason: str = Field(..., min_length=1, max_length=MAX_REASON_LENGTH)

    @model_validator(mode="after")
    def _delta_matches_change_type(self) -> "AdminOverrideRequest":
        if self.change_type.requires_delta and self.session_delta is None:
            raise ValueError(f"session_delta is required for {self.change_type.value}")
        return self


class AdminOverrideResponse(StrictModel):
    message: str


class AdminOverrideRecord(ORMResponseModel):
    id: str
    user_id: str
    admin_user_id: str
    change_type: str
    session_delta: Optional[int] = None
    reason: str
    created_at: Optional[datetime] = None


class MemberDetailResponse(StrictModel):
    user: Dict[str, Any]
    entitlement: Optional[Dict[str, Any]] = None
    current_week: Dict[str, Any]
    usage_history: List[Dict[str, Any]]
    recent_bookings: List[Dict[str, Any]]
    overrides: List[Dict[str, Any]]


class SlotCreate(StrictRequestModel):
    service_type_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=255)
    starts_at: datetime
    ends_at: datetime
    capacity: Optional[int] = Field(None, ge=1)
    trainer_name: Optional[str] = Field(None, max_length=255)


class SlotActiveUpdate(StrictRequestModel):
    is_active: bool


class SlotResponse(ORMResponseModel):
    id: str
    service_type_id: str
    name: str
    starts_at_utc: datetime
    ends_at_utc: datetime
    capacity: int
    booked_count: int
    seats_remaining: int
    trainer_name: Optional[str] = None
    is_active: bool
