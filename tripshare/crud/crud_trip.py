"""
CRUD helpers for trip documents.

Every public function:
• takes a ``DocumentStore``
• returns schema objects (``Trip``) or plain Python values
• performs no authorization – the gateway decides who may call what
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from tripshare.core.exceptions import NotFoundError
from tripshare.db.store import DocumentStore
from tripshare.schemas.trip import Trip, TripCreate
from tripshare.utils.doc_helpers import compact, utcnow

logger = logging.getLogger(__name__)

COLLECTION = "trips"


async def create_trip(
    store: DocumentStore, trip_in: TripCreate, owner_id: str, *, now: Optional[datetime] = None
) -> Trip:
    """Insert a trip owned by ``owner_id``; null fields are not persisted."""
    now = now or utcnow()
    doc: Dict[str, Any] = compact(trip_in.model_dump())
    doc.update(owner_id=owner_id, created_at=now, updated_at=now)
    rec = await store.insert(COLLECTION, doc)
    logger.info("Created trip %s for owner %s", rec["id"], owner_id)
    return Trip.model_validate(rec)


async def get_trip(store: DocumentStore, trip_id: str) -> Optional[Trip]:
    """Fetch a trip by id; returns ``None`` if absent."""
    rec = await store.get(COLLECTION, trip_id)
    return Trip.model_validate(rec) if rec else None


async def get_trip_or_raise(store: DocumentStore, trip_id: str) -> Trip:
    trip = await get_trip(store, trip_id)
    if trip is None:
        raise NotFoundError("Trip not found.")
    return trip


async def list_trips_for_owner(store: DocumentStore, owner_id: str) -> List[Trip]:
    """Owner's trips, newest first."""
    rows = await store.find(COLLECTION, {"owner_id": owner_id}, order_by="created_at", descending=True)
    return [Trip.model_validate(r) for r in rows]


async def update_trip(
    store: DocumentStore, trip_id: str, fields: Mapping[str, Any], *, now: Optional[datetime] = None
) -> Optional[Trip]:
    """Partial merge; keys with ``None`` values are ignored. Returns None if the trip is gone."""
    changes = compact(fields)
    changes["updated_at"] = now or utcnow()
    rec = await store.update(COLLECTION, trip_id, changes)
    if rec is None:
        return None
    logger.info("Updated trip %s (%s)", trip_id, ", ".join(sorted(changes)))
    return Trip.model_validate(rec)


async def delete_trip(store: DocumentStore, trip_id: str) -> bool:
    """Delete only the trip document. Children are removed by the caller."""
    deleted = await store.delete(COLLECTION, trip_id)
    if deleted:
        logger.info("Deleted trip %s", trip_id)
    return deleted
