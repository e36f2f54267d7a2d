"""
Permission evaluation for trips and places.

``authorize`` is pure: it looks only at its arguments. The role a user holds
inside a trip is resolved elsewhere (``ViewerSession.role_for``) and passed in.
"""
from __future__ import annotations

from enum import Enum
from typing import Mapping, Optional

from tripshare.schemas.trip import Trip
from tripshare.schemas.user import CurrentUser
from tripshare.schemas.access import AccessRecord, AccessStatus


class Action(str, Enum):
    TRIP_CREATE = "trip.create"
    TRIP_READ = "trip.read"
    TRIP_UPDATE = "trip.update"
    TRIP_DELETE = "trip.delete"
    TRIP_INVITE = "trip.invite"
    PLACE_CREATE = "place.create"
    PLACE_READ = "place.read"
    PLACE_UPDATE = "place.update"
    PLACE_DELETE = "place.delete"


class TripRole(str, Enum):
    """Closed set of roles a user can hold within one trip."""

    OWNER = "Owner"
    COLLABORATOR = "Collaborator"
    NO_ACCESS = "NoAccess"


ROLE_GRANTS: Mapping[TripRole, frozenset[Action]] = {
    TripRole.OWNER: frozenset(Action),
    TripRole.COLLABORATOR: frozenset(
        {
            Action.TRIP_READ,
            Action.PLACE_CREATE,
            Action.PLACE_READ,
            Action.PLACE_UPDATE,
            Action.PLACE_DELETE,
        }
    ),
    TripRole.NO_ACCESS: frozenset(),
}

# Without a trip in context the only meaningful question is "may I create one".
GLOBAL_GRANTS: frozenset[Action] = frozenset({Action.TRIP_CREATE})


def authorize(
    action: Action,
    user: Optional[CurrentUser],
    trip: Optional[Trip] = None,
    role_in_trip: Optional[TripRole] = None,
) -> bool:
    """
    Decide whether ``user`` may perform ``action``.

    Precedence:
      1. no user                    -> deny
      2. user owns ``trip``         -> allow everything
      3. trip present               -> grants of ``role_in_trip`` (None = NoAccess)
      4. no trip (global check)     -> only ``trip.create``

    ``user.global_role`` is deliberately ignored; it never stands in for the
    trip-specific role.
    """
    if user is None:
        return False

    action = Action(action)

    if trip is not None:
        if trip.owner_id == user.id:
            return True
        role = role_in_trip or TripRole.NO_ACCESS
        # An "Owner" role claimed for someone else's trip grants nothing extra.
        if role is TripRole.OWNER:
            role = TripRole.NO_ACCESS
        return action in ROLE_GRANTS[role]

    return action in GLOBAL_GRANTS


def resolve_trip_role(
    user: CurrentUser, trip: Trip, access: Optional[AccessRecord] = None
) -> TripRole:
    """
    Owner if ``user`` owns ``trip``; Collaborator if ``access`` is an accepted
    record of this trip for the user's email; NoAccess otherwise.
    """
    if trip.owner_id == user.id:
        return TripRole.OWNER
    if (
        access is not None
        and access.trip_id == trip.id
        and access.status is AccessStatus.ACCEPTED
        and access.email == user.normalized_email
    ):
        return TripRole.COLLABORATOR
    return TripRole.NO_ACCESS
