"""
Trip / Place mutation gateway.

Every operation follows the same order: load the trip, resolve the viewer's
role through the session, ``authorize``, validate, and only then touch the
store. A denied call leaves storage exactly as it was.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional, Tuple

from tripshare.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from tripshare.core.permissions import Action, TripRole, authorize
from tripshare.crud import crud_access, crud_invite, crud_place, crud_trip
from tripshare.schemas.place import Place, PlaceCreate, PlaceUpdate
from tripshare.schemas.trip import Trip, TripCreate, TripUpdate, TripView
from tripshare.services.session import ViewerSession

logger = logging.getLogger(__name__)

TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 100


# --------------------------------------------------------------------------- #
#  Validation                                                                 #
# --------------------------------------------------------------------------- #
def validate_title(title: Optional[str]) -> str:
    cleaned = (title or "").strip()
    if not cleaned:
        raise ValidationError("Trip title is required.")
    if len(cleaned) < TITLE_MIN_LENGTH:
        raise ValidationError(f"Trip title must be at least {TITLE_MIN_LENGTH} characters.")
    if len(cleaned) > TITLE_MAX_LENGTH:
        raise ValidationError(f"Trip title must be at most {TITLE_MAX_LENGTH} characters.")
    return cleaned


def validate_date_range(start: Optional[date], end: Optional[date]) -> None:
    if start is not None and end is not None and start > end:
        raise ValidationError("Start date must be on or before end date.")


def validate_location_name(name: Optional[str]) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Location name is required.")
    return cleaned


def validate_day_number(day: object) -> int:
    # bool is an int subclass; True is not a day.
    if isinstance(day, bool) or not isinstance(day, int):
        raise ValidationError("Day number must be a whole number.")
    if day < 1:
        raise ValidationError("Day number must be at least 1.")
    return day


class TripGateway:

    def __init__(self, session: ViewerSession):
        self.session = session
        self.store = session.store

    @property
    def user(self):
        return self.session.user

    async def _authorized_trip(self, trip_id: str, action: Action) -> Tuple[Trip, TripRole]:
        trip = await crud_trip.get_trip_or_raise(self.store, trip_id)
        role = await self.session.role_for(trip)
        if not authorize(action, self.user, trip, role):
            logger.warning("User %s denied %s on trip %s (role %s)", self.user.id, action.value, trip_id, role.value)
            raise PermissionDeniedError()
        return trip, role

    @staticmethod
    def _view(trip: Trip, role: TripRole) -> TripView:
        return TripView(**trip.model_dump(), user_role=role.value)

    # ------------------------------------------------------------------ #
    #  Trips                                                              #
    # ------------------------------------------------------------------ #
    async def create_trip(self, trip_in: TripCreate) -> TripView:
        if not authorize(Action.TRIP_CREATE, self.user):
            raise PermissionDeniedError()
        title = validate_title(trip_in.title)
        validate_date_range(trip_in.start_date, trip_in.end_date)

        trip = await crud_trip.create_trip(
            self.store, trip_in.model_copy(update={"title": title}), owner_id=self.user.id
        )
        self.session.remember(trip.id, TripRole.OWNER)
        return self._view(trip, TripRole.OWNER)

    async def list_trips(self) -> List[TripView]:
        """Trips the viewer owns plus those shared with them, newest first."""
        owned = await crud_trip.list_trips_for_owner(self.store, self.user.id)
        views = [self._view(t, TripRole.OWNER) for t in owned]
        seen = {t.id for t in owned}

        if self.user.normalized_email:
            records = await crud_access.list_accepted_for_email(self.store, self.user.normalized_email)
            for record in records:
                if record.trip_id in seen:
                    continue
                trip = await crud_trip.get_trip(self.store, record.trip_id)
                if trip is None:
                    logger.warning("Accepted access %s points at missing trip %s", record.id, record.trip_id)
                    continue
                role = await self.session.role_for(trip)
                if role is TripRole.NO_ACCESS:
                    continue
                seen.add(trip.id)
                views.append(self._view(trip, role))

        views.sort(key=lambda v: v.created_at, reverse=True)
        return views

    async def get_trip(self, trip_id: str) -> TripView:
        trip, role = await self._authorized_trip(trip_id, Action.TRIP_READ)
        return self._view(trip, role)

    async def update_trip(self, trip_id: str, trip_in: TripUpdate) -> TripView:
        trip, role = await self._authorized_trip(trip_id, Action.TRIP_UPDATE)
        fields = trip_in.model_dump(exclude_unset=True)
        if fields.get("title") is not None:
            fields["title"] = validate_title(fields["title"])
        validate_date_range(
            fields.get("start_date") or trip.start_date,
            fields.get("end_date") or trip.end_date,
        )

        updated = await crud_trip.update_trip(self.store, trip.id, fields)
        if updated is None:
            raise NotFoundError("Trip not found.")
        return self._view(updated, role)

    async def delete_trip(self, trip_id: str) -> None:
        """Delete a trip and, explicitly, everything hanging off it."""
        trip, _ = await self._authorized_trip(trip_id, Action.TRIP_DELETE)
        places = await crud_place.delete_places_for_trip(self.store, trip.id)
        access = await crud_access.delete_access_for_trip(self.store, trip.id)
        invites = await crud_invite.delete_for_trip(self.store, trip.id)
        await crud_trip.delete_trip(self.store, trip.id)
        self.session.forget(trip.id)
        logger.info(
            "Trip %s deleted with %s place(s), %s access record(s), %s invite(s)",
            trip.id, places, access, invites,
        )

    # ------------------------------------------------------------------ #
    #  Places                                                             #
    # ------------------------------------------------------------------ #
    async def list_places(self, trip_id: str) -> List[Place]:
        trip, _ = await self._authorized_trip(trip_id, Action.PLACE_READ)
        return await crud_place.list_places(self.store, trip.id)

    async def create_place(self, trip_id: str, place_in: PlaceCreate) -> Place:
        trip, _ = await self._authorized_trip(trip_id, Action.PLACE_CREATE)
        name = validate_location_name(place_in.location_name)
        validate_day_number(place_in.day_number)
        return await crud_place.add_place_to_trip(
            self.store, trip.id, place_in.model_copy(update={"location_name": name})
        )

    async def update_place(self, trip_id: str, place_id: str, place_in: PlaceUpdate) -> Place:
        trip, _ = await self._authorized_trip(trip_id, Action.PLACE_UPDATE)
        fields = place_in.model_dump(exclude_unset=True)
        if "location_name" in fields and fields["location_name"] is not None:
            fields["location_name"] = validate_location_name(fields["location_name"])
        if fields.get("day_number") is not None:
            validate_day_number(fields["day_number"])
        return await crud_place.update_place(self.store, place_id, trip.id, fields)

    async def delete_place(self, trip_id: str, place_id: str) -> None:
        trip, _ = await self._authorized_trip(trip_id, Action.PLACE_DELETE)
        if not await crud_place.delete_place_from_trip(self.store, place_id, trip.id):
            raise NotFoundError("Place not found in this trip.")
