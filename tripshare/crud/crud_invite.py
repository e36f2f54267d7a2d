# tripshare/crud/crud_invite.py
import logging
from typing import List

from tripshare.db.store import DocumentStore
from tripshare.schemas.invite import Invite
from tripshare.utils.doc_helpers import normalize_email

logger = logging.getLogger(__name__)

COLLECTION = "invites"


async def insert_invite(store: DocumentStore, invite: Invite) -> Invite:
    rec = await store.insert(COLLECTION, invite.model_dump())
    return Invite.model_validate(rec)


async def find_by_token(store: DocumentStore, token: str) -> List[Invite]:
    """All invites carrying ``token``, newest first (normally zero or one)."""
    rows = await store.find(COLLECTION, {"token": token}, order_by="created_at", descending=True)
    return [Invite.model_validate(r) for r in rows]


async def delete_invite(store: DocumentStore, invite_id: str) -> bool:
    return await store.delete(COLLECTION, invite_id)


async def delete_for_pair(store: DocumentStore, trip_id: str, email: str) -> int:
    count = await store.delete_where(COLLECTION, {"trip_id": trip_id, "email": normalize_email(email)})
    if count:
        logger.debug("Removed %s superseded invite(s) for %s on trip %s", count, email, trip_id)
    return count


async def delete_for_trip(store: DocumentStore, trip_id: str) -> int:
    return await store.delete_where(COLLECTION, {"trip_id": trip_id})
