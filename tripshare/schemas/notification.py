from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

class InviteNotification(BaseModel):
    to: str
    trip_title: str = Field(..., alias="tripTitle")
    invite_url: str = Field(..., alias="inviteUrl")
    expires_at: Optional[datetime] = Field(None, alias="expiresAt")
    model_config = {"populate_by_name": True}

class WelcomeNotification(BaseModel):
    to: str
    trip_title: str = Field(..., alias="tripTitle")
    trip_url: str = Field(..., alias="tripUrl")
    model_config = {"populate_by_name": True}
