# tripshare/schemas/trip.py
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

from tripshare.schemas.base import _ModelCfgMixin


# --------------------------------------------------------------------------- #
#                               Requests                                      #
# --------------------------------------------------------------------------- #

class TripCreate(_ModelCfgMixin, BaseModel):
    """POST /trips body. Business rules (title length, date order) live in the gateway."""
    title: str = Field(..., max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class TripUpdate(_ModelCfgMixin, BaseModel):
    """PATCH /trips/{id} body (all optional, omitted or null fields are left untouched)."""
    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    start_date: Optional[date] = None
    end_date: Optional[date] = None


# --------------------------------------------------------------------------- #
#                               Documents / responses                         #
# --------------------------------------------------------------------------- #

class Trip(_ModelCfgMixin, BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    owner_id: str
    created_at: datetime
    updated_at: datetime


class TripView(Trip):
    """Trip as seen by one viewer; ``user_role`` is derived per request and never stored."""
    user_role: Optional[str] = None
