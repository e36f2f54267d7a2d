# tripshare/crud/crud_place.py
import logging
from datetime import datetime
from typing import Any, List, Mapping, Optional

from tripshare.core.exceptions import NotFoundError
from tripshare.db.store import DocumentStore
from tripshare.schemas.place import Place, PlaceCreate
from tripshare.utils.doc_helpers import compact, utcnow

logger = logging.getLogger(__name__)

COLLECTION = "places"


async def list_places(store: DocumentStore, trip_id: str) -> List[Place]:
    """Places of a trip ordered by day."""
    logger.debug(f"Fetching places for trip {trip_id}")
    rows = await store.find(COLLECTION, {"trip_id": trip_id}, order_by="day_number")
    return [Place.model_validate(r) for r in rows]


async def get_place_in_trip(store: DocumentStore, place_id: str, trip_id: str) -> Place:
    """Fetch a place, making sure it belongs to ``trip_id``."""
    rec = await store.get(COLLECTION, place_id)
    if rec is None or rec["trip_id"] != trip_id:
        raise NotFoundError("Place not found in this trip.")
    return Place.model_validate(rec)


async def add_place_to_trip(
    store: DocumentStore, trip_id: str, place_in: PlaceCreate, *, now: Optional[datetime] = None
) -> Place:
    logger.info(f"Adding place '{place_in.location_name}' (day {place_in.day_number}) to trip {trip_id}")
    now = now or utcnow()
    doc = compact(place_in.model_dump())
    doc.update(trip_id=trip_id, created_at=now, updated_at=now)
    rec = await store.insert(COLLECTION, doc)
    logger.info(f"Place added to trip {trip_id} with ID: {rec['id']}")
    return Place.model_validate(rec)


async def update_place(
    store: DocumentStore,
    place_id: str,
    trip_id: str,
    fields: Mapping[str, Any],
    *,
    now: Optional[datetime] = None,
) -> Place:
    """Partial update of a place within a trip; ``None`` values are left untouched."""
    await get_place_in_trip(store, place_id, trip_id)
    changes = compact(fields)
    changes["updated_at"] = now or utcnow()
    rec = await store.update(COLLECTION, place_id, changes)
    if rec is None:
        logger.warning(f"Place {place_id} vanished before update in trip {trip_id}")
        raise NotFoundError("Place not found in this trip.")
    logger.info(f"Updated place {place_id} in trip {trip_id}")
    return Place.model_validate(rec)


async def delete_place_from_trip(store: DocumentStore, place_id: str, trip_id: str) -> bool:
    """Deletes a place, ensuring it belongs to the specified trip."""
    rec = await store.get(COLLECTION, place_id)
    if rec is None or rec["trip_id"] != trip_id:
        logger.warning(f"Attempted to delete place {place_id} from trip {trip_id}, but it was not found.")
        return False
    deleted = await store.delete(COLLECTION, place_id)
    if deleted:
        logger.info(f"Place {place_id} deleted from trip {trip_id}")
    return deleted


async def delete_places_for_trip(store: DocumentStore, trip_id: str) -> int:
    count = await store.delete_where(COLLECTION, {"trip_id": trip_id})
    logger.info(f"Deleted {count} place(s) of trip {trip_id}")
    return count
