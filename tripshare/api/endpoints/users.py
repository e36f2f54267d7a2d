# tripshare/api/endpoints/users.py
import logging

from fastapi import APIRouter, Depends

from tripshare.api import deps
from tripshare.schemas import user as user_schemas

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["User"])


@router.get("/me", response_model=user_schemas.CurrentUser)
async def read_users_me(
    current_user: user_schemas.CurrentUser = Depends(deps.get_current_user),
):
    """
    Identity of the authenticated caller, as issued by Firebase.
    """
    return current_user
