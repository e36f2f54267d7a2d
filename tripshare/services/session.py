"""
Per-request view of "who is asking and what are they to each trip".

A ``ViewerSession`` is built by the API dependency for every request and
cleared on teardown; nothing about the viewer outlives the request.
"""
from __future__ import annotations

import logging
from typing import Dict

from tripshare.core.permissions import TripRole, resolve_trip_role
from tripshare.crud import crud_access
from tripshare.db.store import DocumentStore
from tripshare.schemas.trip import Trip
from tripshare.schemas.user import CurrentUser

logger = logging.getLogger(__name__)


class ViewerSession:

    def __init__(self, store: DocumentStore, user: CurrentUser):
        self.store = store
        self.user = user
        self._roles: Dict[str, TripRole] = {}

    async def role_for(self, trip: Trip) -> TripRole:
        """Resolve the viewer's role in ``trip`` once; later calls hit the cache."""
        cached = self._roles.get(trip.id)
        if cached is not None:
            return cached

        if trip.owner_id == self.user.id:
            role = TripRole.OWNER
        elif not self.user.normalized_email:
            role = TripRole.NO_ACCESS
        else:
            record = await crud_access.get_by_trip_and_email(self.store, trip.id, self.user.normalized_email)
            role = resolve_trip_role(self.user, trip, record)

        logger.debug("User %s resolved as %s on trip %s", self.user.id, role.value, trip.id)
        self._roles[trip.id] = role
        return role

    def remember(self, trip_id: str, role: TripRole) -> None:
        """Record a role learned elsewhere (e.g. right after accepting an invite)."""
        self._roles[trip_id] = role

    def forget(self, trip_id: str) -> None:
        self._roles.pop(trip_id, None)

    def clear(self) -> None:
        self._roles.clear()
