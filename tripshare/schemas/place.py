# tripshare/schemas/place.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, StrictInt

from tripshare.schemas.base import _ModelCfgMixin

# --- Place Schemas ---

# Request body for POST /trips/{id}/places
class PlaceCreate(_ModelCfgMixin, BaseModel):
    location_name: str = Field(..., max_length=300, description="Name of the location")
    notes: Optional[str] = Field(None, max_length=2000, description="Free-form notes")
    day_number: StrictInt = Field(..., description="Day of the trip, starting at 1")

# Request body for PATCH /trips/{id}/places/{place_id}
class PlaceUpdate(_ModelCfgMixin, BaseModel):
    location_name: Optional[str] = Field(None, max_length=300)
    notes: Optional[str] = Field(None, max_length=2000)
    day_number: Optional[StrictInt] = None

# Stored place document / API response
class Place(_ModelCfgMixin, BaseModel):
    id: str
    trip_id: str
    location_name: str
    notes: Optional[str] = None
    day_number: int
    created_at: datetime
    updated_at: datetime
