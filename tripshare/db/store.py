"""
Generic document-store interface plus its asyncpg implementation.

The service layer only ever talks to collections (``trips``, ``places``,
``tripAccess``, ``invites``) through equality filters; there are no joins and
no multi-document transactions. Each call reads or writes exactly one
collection, so multi-step lookups are sequential reads.

Every implementation:
• accepts and returns plain ``dict`` documents (snake_case keys)
• rejects unknown collections / fields and ``None`` values (ValueError)
• raises ``DatabaseInteractionError`` for any backend failure
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Tuple

import asyncpg

from tripshare.core.exceptions import DatabaseInteractionError
from tripshare.utils.doc_helpers import new_id

logger = logging.getLogger(__name__)

# collection name -> (table name, allowed columns)
COLLECTIONS: Dict[str, Tuple[str, frozenset]] = {
    "trips": (
        "trips",
        frozenset({"id", "title", "description", "start_date", "end_date",
                   "owner_id", "created_at", "updated_at"}),
    ),
    "places": (
        "places",
        frozenset({"id", "trip_id", "location_name", "notes", "day_number",
                   "created_at", "updated_at"}),
    ),
    "tripAccess": (
        "trip_access",
        frozenset({"id", "trip_id", "email", "role", "status", "invited_by",
                   "invited_at", "accepted_at", "accepted_by"}),
    ),
    "invites": (
        "invites",
        frozenset({"id", "trip_id", "email", "token", "expires_at", "created_at"}),
    ),
}


def _columns_for(collection: str) -> frozenset:
    try:
        return COLLECTIONS[collection][1]
    except KeyError:
        raise ValueError(f"Unknown collection: {collection!r}") from None


def check_fields(collection: str, fields: Mapping[str, Any], *, allow_none: bool = False) -> None:
    """Whitelist field names (they end up as SQL identifiers) and refuse nulls."""
    allowed = _columns_for(collection)
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Unknown field(s) for {collection}: {sorted(unknown)}")
    if not allow_none:
        nulls = [k for k, v in fields.items() if v is None]
        if nulls:
            raise ValueError(f"Null value(s) not accepted for {collection}: {sorted(nulls)}")


class DocumentStore(ABC):
    """Minimal collection API the crud layer is written against."""

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Return the document with ``doc_id`` or None."""

    @abstractmethod
    async def find(
        self,
        collection: str,
        filters: Mapping[str, Any],
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Dict[str, Any]]:
        """All documents whose fields equal ``filters``."""

    @abstractmethod
    async def insert(self, collection: str, document: Mapping[str, Any]) -> Dict[str, Any]:
        """Store a new document (an ``id`` is generated if absent) and return it."""

    @abstractmethod
    async def update(
        self, collection: str, doc_id: str, fields: Mapping[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """Merge ``fields`` into the document; returns None if it does not exist."""

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> bool:
        """True if a document was deleted."""

    @abstractmethod
    async def delete_where(self, collection: str, filters: Mapping[str, Any]) -> int:
        """Delete every matching document; returns how many went away."""


# --------------------------------------------------------------------------- #
#  asyncpg implementation                                                     #
# --------------------------------------------------------------------------- #
def _affected_rows(status: str) -> int:
    # asyncpg returns e.g. "DELETE 3"
    return int(status.split(" ")[-1])


class PostgresDocumentStore(DocumentStore):
    """
    One table per collection. Takes an already-acquired connection; the caller
    (``deps.get_store``) owns acquire/release.
    """

    def __init__(self, db: asyncpg.Connection):
        self.db = db

    @staticmethod
    def _table(collection: str) -> str:
        _columns_for(collection)
        return COLLECTIONS[collection][0]

    @staticmethod
    def _where(filters: Mapping[str, Any], start: int = 1) -> Tuple[str, List[Any]]:
        parts: list[str] = []
        params: list[Any] = []
        idx = start
        for field_name, value in filters.items():
            parts.append(f"{field_name} = ${idx}")
            params.append(value)
            idx += 1
        return (" AND ".join(parts) or "TRUE"), params

    async def get(self, collection, doc_id):
        table = self._table(collection)
        try:
            rec = await self.db.fetchrow(f"SELECT * FROM {table} WHERE id = $1", doc_id)
            return dict(rec) if rec else None
        except asyncpg.PostgresError as pg:
            logger.error("PostgresError reading %s/%s: %s", collection, doc_id, pg, exc_info=True)
            raise DatabaseInteractionError(f"Database error reading {collection}.") from pg

    async def find(self, collection, filters, *, order_by=None, descending=False):
        table = self._table(collection)
        check_fields(collection, filters)
        if order_by is not None:
            check_fields(collection, {order_by: 0})
        where_sql, params = self._where(filters)
        order_sql = ""
        if order_by:
            direction = "DESC" if descending else "ASC"
            order_sql = f"ORDER BY {order_by} {direction}, id {direction}"  # stable secondary key
        try:
            rows = await self.db.fetch(
                f"SELECT * FROM {table} WHERE {where_sql} {order_sql}", *params
            )
            return [dict(r) for r in rows]
        except asyncpg.PostgresError as pg:
            logger.error("PostgresError querying %s: %s", collection, pg, exc_info=True)
            raise DatabaseInteractionError(f"Database error querying {collection}.") from pg

    async def insert(self, collection, document):
        table = self._table(collection)
        doc = dict(document)
        doc.setdefault("id", new_id())
        check_fields(collection, doc)
        cols = list(doc)
        placeholders = ", ".join(f"${i}" for i in range(1, len(cols) + 1))
        try:
            rec = await self.db.fetchrow(
                f"INSERT INTO {table} ({', '.join(cols)}) VALUES ({placeholders}) RETURNING *",
                *[doc[c] for c in cols],
            )
            if rec is None:
                raise DatabaseInteractionError("Insert returned no row.")
            return dict(rec)
        except asyncpg.PostgresError as pg:
            logger.error("PostgresError inserting into %s: %s", collection, pg, exc_info=True)
            raise DatabaseInteractionError(f"Database error writing {collection}.") from pg

    async def update(self, collection, doc_id, fields):
        table = self._table(collection)
        check_fields(collection, fields)
        if "id" in fields:
            raise ValueError("Document id cannot be updated.")
        if not fields:
            return await self.get(collection, doc_id)

        sets: list[str] = []
        params: list[Any] = []
        idx = 1
        for field_name, value in fields.items():
            sets.append(f"{field_name} = ${idx}")
            params.append(value)
            idx += 1
        params.append(doc_id)  # WHERE param

        try:
            rec = await self.db.fetchrow(
                f"UPDATE {table} SET {', '.join(sets)} WHERE id = ${idx} RETURNING *",
                *params,
            )
            return dict(rec) if rec else None
        except asyncpg.PostgresError as pg:
            logger.error("PostgresError updating %s/%s: %s", collection, doc_id, pg, exc_info=True)
            raise DatabaseInteractionError(f"Database error updating {collection}.") from pg

    async def delete(self, collection, doc_id):
        table = self._table(collection)
        try:
            status = await self.db.execute(f"DELETE FROM {table} WHERE id = $1", doc_id)
            return _affected_rows(status) > 0
        except asyncpg.PostgresError as pg:
            logger.error("PostgresError deleting %s/%s: %s", collection, doc_id, pg, exc_info=True)
            raise DatabaseInteractionError(f"Database error deleting from {collection}.") from pg

    async def delete_where(self, collection, filters):
        table = self._table(collection)
        check_fields(collection, filters)
        if not filters:
            raise ValueError("Refusing to delete a whole collection.")
        where_sql, params = self._where(filters)
        try:
            status = await self.db.execute(f"DELETE FROM {table} WHERE {where_sql}", *params)
            return _affected_rows(status)
        except asyncpg.PostgresError as pg:
            logger.error("PostgresError bulk-deleting from %s: %s", collection, pg, exc_info=True)
            raise DatabaseInteractionError(f"Database error deleting from {collection}.") from pg
