# tests/services/test_session.py
from unittest.mock import patch

from tripshare.core.permissions import TripRole
from tripshare.crud import crud_access
from tripshare.schemas.access import AccessStatus
from tripshare.services.session import ViewerSession

from tests.utils import create_test_trip_direct, make_user


async def test_role_is_resolved_once_per_session(store, owner, collaborator):
    trip = await create_test_trip_direct(store, owner.id)
    await crud_access.create_access(
        store, trip_id=trip.id, email=collaborator.email, invited_by=owner.id, status=AccessStatus.ACCEPTED
    )
    session = ViewerSession(store, collaborator)

    with patch.object(crud_access, "get_by_trip_and_email", wraps=crud_access.get_by_trip_and_email) as lookup:
        assert await session.role_for(trip) is TripRole.COLLABORATOR
        assert await session.role_for(trip) is TripRole.COLLABORATOR
    assert lookup.call_count == 1

    session.clear()
    await crud_access.delete_access_for_trip(store, trip.id)
    assert await session.role_for(trip) is TripRole.NO_ACCESS


async def test_owner_needs_no_lookup(store, owner):
    trip = await create_test_trip_direct(store, owner.id)
    with patch.object(crud_access, "get_by_trip_and_email") as lookup:
        assert await ViewerSession(store, owner).role_for(trip) is TripRole.OWNER
    lookup.assert_not_called()


async def test_user_without_email_has_no_access(store, owner):
    trip = await create_test_trip_direct(store, owner.id)
    anonymous_email = make_user("phone-only", email="")
    assert await ViewerSession(store, anonymous_email).role_for(trip) is TripRole.NO_ACCESS
