"""
Access Record Store – per-trip collaborator records (``tripAccess``).

At most one non-declined record may exist per (trip_id, email). ``create``
enforces that with a read-then-write check; without multi-document
transactions two concurrent creates can still both pass it, a narrow race we
accept rather than eliminate.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, List, Mapping, Optional

from tripshare.core.exceptions import AlreadyInvitedError, AlreadyMemberError
from tripshare.db.store import DocumentStore
from tripshare.schemas.access import AccessRecord, AccessStatus
from tripshare.utils.doc_helpers import compact, normalize_email, utcnow

logger = logging.getLogger(__name__)

COLLECTION = "tripAccess"


async def list_by_trip(store: DocumentStore, trip_id: str) -> List[AccessRecord]:
    rows = await store.find(COLLECTION, {"trip_id": trip_id}, order_by="invited_at")
    return [AccessRecord.model_validate(r) for r in rows]


async def get_by_trip_and_email(
    store: DocumentStore, trip_id: str, email: str
) -> Optional[AccessRecord]:
    """
    The authoritative record for the pair: a pending/accepted one if present,
    otherwise the newest declined one, otherwise None.
    """
    rows = await store.find(
        COLLECTION,
        {"trip_id": trip_id, "email": normalize_email(email)},
        order_by="invited_at",
        descending=True,
    )
    if not rows:
        return None
    records = [AccessRecord.model_validate(r) for r in rows]
    for rec in records:
        if rec.status is not AccessStatus.DECLINED:
            return rec
    return records[0]


async def get_access(store: DocumentStore, access_id: str) -> Optional[AccessRecord]:
    rec = await store.get(COLLECTION, access_id)
    return AccessRecord.model_validate(rec) if rec else None


async def list_accepted_for_email(store: DocumentStore, email: str) -> List[AccessRecord]:
    """Every trip an email has joined."""
    rows = await store.find(
        COLLECTION, {"email": normalize_email(email), "status": AccessStatus.ACCEPTED.value}
    )
    return [AccessRecord.model_validate(r) for r in rows]


async def create_access(
    store: DocumentStore,
    *,
    trip_id: str,
    email: str,
    invited_by: str,
    status: AccessStatus = AccessStatus.PENDING,
    accepted_by: Optional[str] = None,
    now: Optional[datetime] = None,
) -> AccessRecord:
    """
    Insert a record. Raises ``AlreadyInvitedError`` / ``AlreadyMemberError``
    if a pending / accepted record already exists for the pair.
    """
    email = normalize_email(email)
    existing = await get_by_trip_and_email(store, trip_id, email)
    if existing is not None:
        if existing.status is AccessStatus.PENDING:
            raise AlreadyInvitedError()
        if existing.status is AccessStatus.ACCEPTED:
            raise AlreadyMemberError()

    now = now or utcnow()
    doc = compact(
        {
            "trip_id": trip_id,
            "email": email,
            "role": "Collaborator",
            "status": AccessStatus(status).value,
            "invited_by": invited_by,
            "invited_at": now,
            "accepted_at": now if status is AccessStatus.ACCEPTED else None,
            "accepted_by": accepted_by,
        }
    )
    rec = await store.insert(COLLECTION, doc)
    logger.info("Created %s access %s for %s on trip %s", doc["status"], rec["id"], email, trip_id)
    return AccessRecord.model_validate(rec)


async def update_access(
    store: DocumentStore, access_id: str, fields: Mapping[str, Any]
) -> Optional[AccessRecord]:
    """Partial merge. ``None`` values are dropped, never written. Enum statuses are stored by value."""
    changes = compact(fields)
    if isinstance(changes.get("status"), AccessStatus):
        changes["status"] = changes["status"].value
    rec = await store.update(COLLECTION, access_id, changes)
    return AccessRecord.model_validate(rec) if rec else None


async def delete_access(store: DocumentStore, access_id: str) -> bool:
    deleted = await store.delete(COLLECTION, access_id)
    if deleted:
        logger.info("Deleted access record %s", access_id)
    return deleted


async def delete_access_for_trip(store: DocumentStore, trip_id: str) -> int:
    return await store.delete_where(COLLECTION, {"trip_id": trip_id})
