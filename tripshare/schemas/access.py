# tripshare/schemas/access.py
from datetime import datetime
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field

from tripshare.schemas.base import _ModelCfgMixin


class AccessStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class AccessRecord(_ModelCfgMixin, BaseModel):
    """One collaborator relationship (per trip, per invitee email)."""
    id: str
    trip_id: str
    email: str
    role: Literal["Collaborator"] = "Collaborator"
    status: AccessStatus
    invited_by: str
    invited_at: datetime
    accepted_at: Optional[datetime] = None
    accepted_by: Optional[str] = None


class InvitationRequest(_ModelCfgMixin, BaseModel):
    """POST /trips/{id}/access and /access/resend body."""
    email: EmailStr = Field(..., examples=["friend@example.com"])


class InvitationResult(_ModelCfgMixin, BaseModel):
    success: bool
    message: str
    access_id: str
    email_delivered: bool
    # Only populated when the email did not go out; the owner shares it by hand.
    invite_url: Optional[str] = None


class AcceptResult(_ModelCfgMixin, BaseModel):
    success: bool = True
    trip_id: str
    message: str


class DeclineResult(_ModelCfgMixin, BaseModel):
    success: bool = True
    trip_id: str
    message: str
