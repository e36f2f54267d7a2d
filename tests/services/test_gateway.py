# tests/services/test_gateway.py
from datetime import date

import pytest

from tripshare.core.exceptions import NotFoundError, PermissionDeniedError, ValidationError
from tripshare.crud import crud_access, crud_place
from tripshare.schemas.access import AccessStatus
from tripshare.schemas.place import PlaceCreate, PlaceUpdate
from tripshare.schemas.trip import TripCreate, TripUpdate

from tests.utils import create_test_trip_direct


async def _make_collaborator(store, trip, user):
    await crud_access.create_access(
        store, trip_id=trip.id, email=user.email, invited_by=trip.owner_id, status=AccessStatus.ACCEPTED
    )


# --------------------------------------------------------------------------
# Trips
# --------------------------------------------------------------------------
async def test_create_trip_sets_owner_and_role(make_gateway, owner):
    view = await make_gateway(owner).create_trip(
        TripCreate(title="  Kyoto  ", start_date=date(2025, 4, 1), end_date=date(2025, 4, 7))
    )
    assert view.owner_id == owner.id
    assert view.title == "Kyoto"
    assert view.user_role == "Owner"


@pytest.mark.parametrize("title", ["", "  ", "ab", "x" * 101])
async def test_create_trip_title_bounds(store, make_gateway, owner, title):
    with pytest.raises(ValidationError):
        await make_gateway(owner).create_trip(TripCreate(title=title))
    assert await store.find("trips", {}) == []


@pytest.mark.parametrize("title", ["abc", "x" * 100])
async def test_create_trip_title_edges_are_accepted(make_gateway, owner, title):
    view = await make_gateway(owner).create_trip(TripCreate(title=title))
    assert view.title == title


async def test_create_trip_rejects_reversed_dates(make_gateway, owner):
    with pytest.raises(ValidationError):
        await make_gateway(owner).create_trip(
            TripCreate(title="Backwards", start_date=date(2025, 5, 2), end_date=date(2025, 5, 1))
        )
    same_day = await make_gateway(owner).create_trip(
        TripCreate(title="Day trip", start_date=date(2025, 5, 1), end_date=date(2025, 5, 1))
    )
    assert same_day.start_date == same_day.end_date


async def test_list_trips_includes_shared_trips(store, make_gateway, owner, collaborator, stranger):
    mine = await create_test_trip_direct(store, collaborator.id, title="Mine")
    shared = await create_test_trip_direct(store, owner.id, title="Shared With Me")
    await create_test_trip_direct(store, stranger.id, title="Not Mine")
    pending = await create_test_trip_direct(store, stranger.id, title="Only Invited")
    await _make_collaborator(store, shared, collaborator)
    await crud_access.create_access(store, trip_id=pending.id, email=collaborator.email, invited_by=stranger.id)

    views = await make_gateway(collaborator).list_trips()

    roles = {v.title: v.user_role for v in views}
    assert roles == {"Mine": "Owner", "Shared With Me": "Collaborator"}
    assert {v.id for v in views} == {mine.id, shared.id}


async def test_get_trip_permissions(store, make_gateway, owner, collaborator, stranger):
    trip = await create_test_trip_direct(store, owner.id)
    await _make_collaborator(store, trip, collaborator)

    assert (await make_gateway(owner).get_trip(trip.id)).user_role == "Owner"
    assert (await make_gateway(collaborator).get_trip(trip.id)).user_role == "Collaborator"
    with pytest.raises(PermissionDeniedError):
        await make_gateway(stranger).get_trip(trip.id)
    with pytest.raises(NotFoundError):
        await make_gateway(owner).get_trip("missing")


async def test_pending_invitee_has_no_access(store, make_gateway, owner, collaborator):
    trip = await create_test_trip_direct(store, owner.id)
    await crud_access.create_access(store, trip_id=trip.id, email=collaborator.email, invited_by=owner.id)
    with pytest.raises(PermissionDeniedError):
        await make_gateway(collaborator).get_trip(trip.id)


async def test_update_trip_is_partial_and_owner_only(store, make_gateway, owner, collaborator):
    trip = await create_test_trip_direct(
        store, owner.id, title="Original", description="keep me",
        start_date=date(2025, 7, 1), end_date=date(2025, 7, 4),
    )
    await _make_collaborator(store, trip, collaborator)

    updated = await make_gateway(owner).update_trip(trip.id, TripUpdate(title="Renamed", description=None))
    assert updated.title == "Renamed"
    assert updated.description == "keep me"

    with pytest.raises(PermissionDeniedError):
        await make_gateway(collaborator).update_trip(trip.id, TripUpdate(title="Hijacked"))

    # new end date before the stored start date
    with pytest.raises(ValidationError):
        await make_gateway(owner).update_trip(trip.id, TripUpdate(end_date=date(2025, 6, 1)))


async def test_delete_trip_cascades(store, notifier, make_gateway, make_workflow, owner, collaborator):
    trip = await create_test_trip_direct(store, owner.id)
    keep = await create_test_trip_direct(store, owner.id, title="Keep Me")
    await crud_place.add_place_to_trip(store, trip.id, PlaceCreate(location_name="Belem", day_number=1))
    await crud_place.add_place_to_trip(store, keep.id, PlaceCreate(location_name="Porto", day_number=1))
    await make_workflow(owner).send_invite(trip.id, collaborator.email)
    await make_workflow(owner).send_invite(trip.id, "b@x.com")

    with pytest.raises(PermissionDeniedError):
        await make_gateway(collaborator).delete_trip(trip.id)

    await make_gateway(owner).delete_trip(trip.id)

    assert await store.get("trips", trip.id) is None
    assert await store.find("places", {"trip_id": trip.id}) == []
    assert await store.find("tripAccess", {"trip_id": trip.id}) == []
    assert await store.find("invites", {"trip_id": trip.id}) == []
    assert len(await store.find("places", {"trip_id": keep.id})) == 1


# --------------------------------------------------------------------------
# Places
# --------------------------------------------------------------------------
async def test_collaborator_can_manage_places(store, make_gateway, owner, collaborator):
    trip = await create_test_trip_direct(store, owner.id)
    await _make_collaborator(store, trip, collaborator)
    gateway = make_gateway(collaborator)

    place = await gateway.create_place(trip.id, PlaceCreate(location_name="Sintra", day_number=2))
    await gateway.create_place(trip.id, PlaceCreate(location_name="Alfama", day_number=1))

    listed = await gateway.list_places(trip.id)
    assert [p.location_name for p in listed] == ["Alfama", "Sintra"]

    moved = await gateway.update_place(trip.id, place.id, PlaceUpdate(day_number=3, notes="palace"))
    assert moved.day_number == 3
    assert moved.location_name == "Sintra"

    await gateway.delete_place(trip.id, place.id)
    assert [p.location_name for p in await gateway.list_places(trip.id)] == ["Alfama"]


async def test_stranger_cannot_create_place(store, make_gateway, owner, stranger):
    trip = await create_test_trip_direct(store, owner.id)
    with pytest.raises(PermissionDeniedError):
        await make_gateway(stranger).create_place(trip.id, PlaceCreate(location_name="Nope", day_number=1))
    assert await store.find("places", {"trip_id": trip.id}) == []


@pytest.mark.parametrize("name,day", [("", 1), ("   ", 1), ("Belem", 0), ("Belem", -2)])
async def test_place_validation(store, make_gateway, owner, name, day):
    trip = await create_test_trip_direct(store, owner.id)
    with pytest.raises(ValidationError):
        await make_gateway(owner).create_place(trip.id, PlaceCreate(location_name=name, day_number=day))
    assert await store.find("places", {"trip_id": trip.id}) == []


async def test_place_must_belong_to_trip(store, make_gateway, owner):
    trip = await create_test_trip_direct(store, owner.id)
    other = await create_test_trip_direct(store, owner.id, title="Other")
    place = await crud_place.add_place_to_trip(store, other.id, PlaceCreate(location_name="Faro", day_number=1))

    with pytest.raises(NotFoundError):
        await make_gateway(owner).update_place(trip.id, place.id, PlaceUpdate(notes="x"))
    with pytest.raises(NotFoundError):
        await make_gateway(owner).delete_place(trip.id, place.id)
    assert await store.get("places", place.id) is not None
