"""
Invite Token Service – issues, resolves and expires invite tokens.

Tokens are 32 characters drawn from [A-Za-z0-9] with ``secrets`` (about 190
bits of entropy). Lifetime is a fixed 24 hours; expiry is evaluated lazily
when a token is presented, nothing sweeps old invites.
"""
from __future__ import annotations

import logging
import secrets
import string
from datetime import datetime, timedelta
from typing import Callable, Optional

from tripshare.core.exceptions import InvalidTokenError
from tripshare.crud import crud_invite
from tripshare.db.store import DocumentStore
from tripshare.schemas.invite import Invite
from tripshare.utils.doc_helpers import new_id, normalize_email, utcnow

logger = logging.getLogger(__name__)

TOKEN_ALPHABET = string.ascii_letters + string.digits
TOKEN_LENGTH = 32
INVITE_TTL = timedelta(hours=24)


def generate_token(length: int = TOKEN_LENGTH) -> str:
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


def is_expired(invite: Invite, now: datetime) -> bool:
    """True strictly after ``expires_at``."""
    return now > invite.expires_at


class InviteTokenService:

    def __init__(self, store: DocumentStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    async def issue(self, trip_id: str, email: str) -> Invite:
        """
        Create a fresh invite for (trip_id, email). Any earlier invite for the
        same pair is deleted first, so at most one is ever live.
        """
        email = normalize_email(email)
        await crud_invite.delete_for_pair(self.store, trip_id, email)
        now = self.clock()
        invite = Invite(
            id=new_id(),
            trip_id=trip_id,
            email=email,
            token=generate_token(),
            expires_at=now + INVITE_TTL,
            created_at=now,
        )
        stored = await crud_invite.insert_invite(self.store, invite)
        logger.info("Issued invite %s for trip %s (expires %s)", stored.id, trip_id, stored.expires_at.isoformat())
        return stored

    async def resolve(self, token: str) -> Invite:
        """Exact-match lookup. Raises ``InvalidTokenError`` if nothing matches."""
        if not token:
            raise InvalidTokenError()
        matches = await crud_invite.find_by_token(self.store, token)
        if not matches:
            raise InvalidTokenError()
        if len(matches) > 1:
            logger.warning("Token resolved to %s invites; using the newest", len(matches))
        return matches[0]

    def is_expired(self, invite: Invite, now: Optional[datetime] = None) -> bool:
        return is_expired(invite, now or self.clock())

    async def discard(self, invite: Invite) -> bool:
        return await crud_invite.delete_invite(self.store, invite.id)

    async def discard_for(self, trip_id: str, email: str) -> int:
        return await crud_invite.delete_for_pair(self.store, trip_id, email)
