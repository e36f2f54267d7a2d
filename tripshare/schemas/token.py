# tripshare/schemas/token.py
from pydantic import BaseModel, EmailStr, Field
from typing import Optional

# Schema representing the relevant data extracted from a verified Firebase ID token
class FirebaseTokenData(BaseModel):
    uid: str = Field(..., description="Firebase User ID")
    email: Optional[EmailStr] = Field(None, description="User's email address (if available in token)")
    name: Optional[str] = Field(None, description="User's display name (if available in token)")
    role: Optional[str] = Field(None, description="Custom claim carrying the user's global role")

    # Allow extra fields from the decoded token dictionary without causing validation errors
    model_config = {"extra": "ignore"}
