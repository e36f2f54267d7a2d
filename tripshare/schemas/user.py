# tripshare/schemas/user.py
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from tripshare.schemas.base import _ModelCfgMixin


class GlobalRole(str, Enum):
    """Account-wide hint from the identity provider; never authoritative for a trip."""
    USER = "User"
    OWNER = "Owner"
    COLLABORATOR = "Collaborator"


class CurrentUser(_ModelCfgMixin, BaseModel):
    """The authenticated caller, as issued by the identity provider."""
    id: str = Field(..., description="Stable user id (Firebase uid)")
    email: Optional[str] = None
    display_name: Optional[str] = None
    global_role: GlobalRole = GlobalRole.USER

    @property
    def normalized_email(self) -> Optional[str]:
        return self.email.strip().lower() if self.email else None
