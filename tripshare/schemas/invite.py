# tripshare/schemas/invite.py
from datetime import datetime
from typing import Literal

from pydantic import BaseModel

from tripshare.schemas.base import _ModelCfgMixin


class Invite(_ModelCfgMixin, BaseModel):
    """Single-use, token-bearing credential. Never returned by the API as a whole."""
    id: str
    trip_id: str
    email: str
    token: str
    expires_at: datetime
    created_at: datetime


class InvitePreview(_ModelCfgMixin, BaseModel):
    """What the accept-invite page needs to render before the user commits."""
    trip_id: str
    trip_title: str
    email: str
    expires_at: datetime
    status: Literal["valid", "expired"]
