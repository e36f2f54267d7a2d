# tripshare/api/endpoints/invitations.py
import logging
from typing import List

from fastapi import APIRouter, Body, Depends, Path, Request, Response, status

from tripshare.api import deps
from tripshare.api.errors import to_http_exception
from tripshare.core.config import settings
from tripshare.core.exceptions import TripShareError
from tripshare.core.rate_limit import limiter
from tripshare.schemas import access as access_schemas
from tripshare.schemas.invite import InvitePreview
from tripshare.services import invitations
from tripshare.services.invitations import InvitationWorkflow
from tripshare.services.invite_tokens import InviteTokenService

logger = logging.getLogger(__name__)

# Mounted under /trips
access_router = APIRouter(
    prefix="/{trip_id}/access",
    tags=["Access", "Trips"],
)

# Mounted at the API root
invites_router = APIRouter(prefix="/invites", tags=["Invites"])


# --------------------------------------------------------------------------- #
#  GET /trips/{id}/access                                                     #
# --------------------------------------------------------------------------- #
@access_router.get("", response_model=List[access_schemas.AccessRecord])
async def list_access(
    trip_id: str = Path(..., min_length=1),
    workflow: InvitationWorkflow = Depends(deps.get_workflow),
):
    """
    Collaborators and pending invitations of a trip. Owner only.
    """
    try:
        return await workflow.list_access(trip_id)
    except TripShareError as exc:
        raise to_http_exception(exc) from exc


# --------------------------------------------------------------------------- #
#  POST /trips/{id}/access                                                    #
# --------------------------------------------------------------------------- #
@access_router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=access_schemas.InvitationResult,
)
@limiter.limit(settings.INVITE_RATE_LIMIT)
async def send_invite(
    request: Request,
    invitation: access_schemas.InvitationRequest = Body(...),
    trip_id: str = Path(..., min_length=1),
    workflow: InvitationWorkflow = Depends(deps.get_workflow),
):
    """
    Invite a collaborator by **e-mail address**.
    Only the trip owner can call this endpoint. When the email cannot be
    delivered the invitation still stands and `inviteUrl` is returned.
    """
    try:
        return await workflow.send_invite(trip_id, invitation.email)
    except TripShareError as exc:
        raise to_http_exception(exc) from exc


# --------------------------------------------------------------------------- #
#  POST /trips/{id}/access/resend                                             #
# --------------------------------------------------------------------------- #
@access_router.post("/resend", response_model=access_schemas.InvitationResult)
@limiter.limit(settings.INVITE_RATE_LIMIT)
async def resend_invite(
    request: Request,
    invitation: access_schemas.InvitationRequest = Body(...),
    trip_id: str = Path(..., min_length=1),
    workflow: InvitationWorkflow = Depends(deps.get_workflow),
):
    """
    Issue a fresh token for a pending (or declined) invitation and email it again.
    """
    try:
        return await workflow.reinvite(trip_id, invitation.email)
    except TripShareError as exc:
        raise to_http_exception(exc) from exc


# --------------------------------------------------------------------------- #
#  DELETE /trips/{id}/access/{access_id}                                      #
# --------------------------------------------------------------------------- #
@access_router.delete("/{access_id}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_access(
    trip_id: str = Path(..., min_length=1),
    access_id: str = Path(..., min_length=1),
    workflow: InvitationWorkflow = Depends(deps.get_workflow),
):
    """
    Remove a collaborator or cancel a pending invitation.
    Revoking something already gone is not an error.
    """
    try:
        await workflow.revoke_access(trip_id, access_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except TripShareError as exc:
        raise to_http_exception(exc) from exc


# --------------------------------------------------------------------------- #
#  /invites/{token}                                                           #
# --------------------------------------------------------------------------- #
@invites_router.get("/{token}", response_model=InvitePreview)
async def preview_invite(
    token: str = Path(..., min_length=1),
    tokens: InviteTokenService = Depends(deps.get_token_service),
):
    """
    Trip title, invitee and expiry for the accept page. No sign-in required.
    """
    try:
        return await invitations.preview_invite(tokens, token)
    except TripShareError as exc:
        raise to_http_exception(exc) from exc


@invites_router.post("/{token}/accept", response_model=access_schemas.AcceptResult)
async def accept_invite(
    token: str = Path(..., min_length=1),
    workflow: InvitationWorkflow = Depends(deps.get_workflow),
):
    try:
        return await workflow.accept_invite(token)
    except TripShareError as exc:
        raise to_http_exception(exc) from exc


@invites_router.post("/{token}/decline", response_model=access_schemas.DeclineResult)
async def decline_invite(
    token: str = Path(..., min_length=1),
    workflow: InvitationWorkflow = Depends(deps.get_workflow),
):
    try:
        return await workflow.decline_invite(token)
    except TripShareError as exc:
        raise to_http_exception(exc) from exc
