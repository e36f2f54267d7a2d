"""
Process-local ``DocumentStore`` used with ``STORAGE_BACKEND=memory`` (local
runs without PostgreSQL) and by the test-suite.

Documents are deep-copied on the way in and out so callers can never mutate
stored state by accident; each call replaces a whole document, which mirrors
the per-document atomicity of the real store.
"""
from __future__ import annotations

import copy
import logging
from typing import Any, Dict, List, Mapping, Optional

from tripshare.core.exceptions import DatabaseInteractionError
from tripshare.db.store import COLLECTIONS, DocumentStore, check_fields
from tripshare.utils.doc_helpers import new_id

logger = logging.getLogger(__name__)


class InMemoryDocumentStore(DocumentStore):

    def __init__(self) -> None:
        self._data: Dict[str, Dict[str, Dict[str, Any]]] = {name: {} for name in COLLECTIONS}

    def _collection(self, name: str) -> Dict[str, Dict[str, Any]]:
        try:
            return self._data[name]
        except KeyError:
            raise ValueError(f"Unknown collection: {name!r}") from None

    @staticmethod
    def _matches(doc: Mapping[str, Any], filters: Mapping[str, Any]) -> bool:
        return all(doc.get(k) == v for k, v in filters.items())

    async def get(self, collection, doc_id):
        doc = self._collection(collection).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def find(self, collection, filters, *, order_by=None, descending=False):
        docs = self._collection(collection)
        check_fields(collection, filters)
        hits = [copy.deepcopy(d) for d in docs.values() if self._matches(d, filters)]
        if order_by:
            check_fields(collection, {order_by: 0})
            # None sorts last ascending, same as PostgreSQL
            hits.sort(
                key=lambda d: (d.get(order_by) is None, d.get(order_by), d["id"]),
                reverse=descending,
            )
        return hits

    async def insert(self, collection, document):
        docs = self._collection(collection)
        doc = dict(document)
        doc.setdefault("id", new_id())
        check_fields(collection, doc)
        if doc["id"] in docs:
            logger.error("Duplicate id %s inserted into %s", doc["id"], collection)
            raise DatabaseInteractionError(f"Database error writing {collection}.")
        docs[doc["id"]] = copy.deepcopy(doc)
        return copy.deepcopy(doc)

    async def update(self, collection, doc_id, fields):
        docs = self._collection(collection)
        check_fields(collection, fields)
        if "id" in fields:
            raise ValueError("Document id cannot be updated.")
        current = docs.get(doc_id)
        if current is None:
            return None
        merged = {**current, **copy.deepcopy(dict(fields))}
        docs[doc_id] = merged
        return copy.deepcopy(merged)

    async def delete(self, collection, doc_id):
        return self._collection(collection).pop(doc_id, None) is not None

    async def delete_where(self, collection, filters):
        docs = self._collection(collection)
        check_fields(collection, filters)
        if not filters:
            raise ValueError("Refusing to delete a whole collection.")
        doomed = [doc_id for doc_id, d in docs.items() if self._matches(d, filters)]
        for doc_id in doomed:
            del docs[doc_id]
        return len(doomed)

    def clear(self) -> None:
        for docs in self._data.values():
            docs.clear()
