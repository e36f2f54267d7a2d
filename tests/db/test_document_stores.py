# tests/db/test_document_stores.py
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import asyncpg
import pytest

from tripshare.core.exceptions import DatabaseInteractionError
from tripshare.db.memory import InMemoryDocumentStore
from tripshare.db.store import PostgresDocumentStore, check_fields

NOW = datetime(2025, 6, 1, tzinfo=timezone.utc)


# --------------------------------------------------------------------------
# Field whitelist
# --------------------------------------------------------------------------
def test_check_fields_rejects_unknown_collection_and_fields():
    with pytest.raises(ValueError):
        check_fields("users", {})
    with pytest.raises(ValueError):
        check_fields("trips", {"title; DROP TABLE trips": "x"})


def test_check_fields_rejects_nulls_unless_allowed():
    with pytest.raises(ValueError):
        check_fields("trips", {"description": None})
    check_fields("trips", {"description": None}, allow_none=True)


# --------------------------------------------------------------------------
# In-memory store
# --------------------------------------------------------------------------
async def test_memory_insert_assigns_id_and_copies(store: InMemoryDocumentStore):
    doc = {"title": "Rome", "owner_id": "u1", "created_at": NOW, "updated_at": NOW}
    saved = await store.insert("trips", doc)
    assert saved["id"]
    assert "id" not in doc  # caller's dict untouched

    saved["title"] = "mutated"
    again = await store.get("trips", saved["id"])
    assert again["title"] == "Rome"


async def test_memory_duplicate_id_is_a_database_error(store):
    await store.insert("invites", {"id": "i1", "trip_id": "t", "email": "a@x.com", "token": "tok",
                                   "expires_at": NOW, "created_at": NOW})
    with pytest.raises(DatabaseInteractionError):
        await store.insert("invites", {"id": "i1", "trip_id": "t", "email": "a@x.com", "token": "tok2",
                                       "expires_at": NOW, "created_at": NOW})


async def test_memory_find_filters_and_orders(store):
    for day in (3, 1, 2):
        await store.insert("places", {"trip_id": "t1", "location_name": f"d{day}", "day_number": day,
                                      "created_at": NOW, "updated_at": NOW})
    await store.insert("places", {"trip_id": "t2", "location_name": "other", "day_number": 1,
                                  "created_at": NOW, "updated_at": NOW})

    asc = await store.find("places", {"trip_id": "t1"}, order_by="day_number")
    assert [p["day_number"] for p in asc] == [1, 2, 3]
    desc = await store.find("places", {"trip_id": "t1"}, order_by="day_number", descending=True)
    assert [p["day_number"] for p in desc] == [3, 2, 1]


async def test_memory_update_is_partial_and_rejects_nulls(store):
    saved = await store.insert("trips", {"title": "Rome", "description": "food", "owner_id": "u1",
                                         "created_at": NOW, "updated_at": NOW})
    updated = await store.update("trips", saved["id"], {"title": "Roma"})
    assert updated["title"] == "Roma"
    assert updated["description"] == "food"

    with pytest.raises(ValueError):
        await store.update("trips", saved["id"], {"description": None})
    with pytest.raises(ValueError):
        await store.update("trips", saved["id"], {"id": "new"})
    assert await store.update("trips", "missing", {"title": "x"}) is None


async def test_memory_delete_and_delete_where(store):
    a = await store.insert("tripAccess", {"trip_id": "t1", "email": "a@x.com", "role": "Collaborator",
                                          "status": "pending", "invited_by": "u1", "invited_at": NOW})
    await store.insert("tripAccess", {"trip_id": "t1", "email": "b@x.com", "role": "Collaborator",
                                      "status": "pending", "invited_by": "u1", "invited_at": NOW})
    await store.insert("tripAccess", {"trip_id": "t2", "email": "a@x.com", "role": "Collaborator",
                                      "status": "pending", "invited_by": "u1", "invited_at": NOW})

    assert await store.delete("tripAccess", a["id"]) is True
    assert await store.delete("tripAccess", a["id"]) is False
    assert await store.delete_where("tripAccess", {"trip_id": "t1"}) == 1
    assert len(await store.find("tripAccess", {})) == 1
    with pytest.raises(ValueError):
        await store.delete_where("tripAccess", {})


# --------------------------------------------------------------------------
# PostgreSQL store (SQL shape, against a mocked connection)
# --------------------------------------------------------------------------
@pytest.fixture()
def conn():
    return MagicMock(spec=asyncpg.Connection)


async def test_pg_find_builds_parameterised_query(conn):
    conn.fetch = AsyncMock(return_value=[{"id": "p1", "trip_id": "t1"}])
    pg = PostgresDocumentStore(conn)

    rows = await pg.find("places", {"trip_id": "t1"}, order_by="day_number")

    assert rows == [{"id": "p1", "trip_id": "t1"}]
    sql, *params = conn.fetch.call_args.args
    assert "FROM places WHERE trip_id = $1" in sql
    assert "ORDER BY day_number ASC, id ASC" in sql
    assert params == ["t1"]


async def test_pg_collection_maps_to_table(conn):
    conn.fetchrow = AsyncMock(return_value=None)
    pg = PostgresDocumentStore(conn)
    assert await pg.get("tripAccess", "a1") is None
    assert "FROM trip_access WHERE id = $1" in conn.fetchrow.call_args.args[0]


async def test_pg_update_places_id_last(conn):
    conn.fetchrow = AsyncMock(return_value={"id": "t1", "title": "New"})
    pg = PostgresDocumentStore(conn)

    await pg.update("trips", "t1", {"title": "New", "updated_at": NOW})

    sql, *params = conn.fetchrow.call_args.args
    assert sql.startswith("UPDATE trips SET title = $1, updated_at = $2 WHERE id = $3")
    assert params == ["New", NOW, "t1"]


async def test_pg_delete_where_counts_rows(conn):
    conn.execute = AsyncMock(return_value="DELETE 3")
    pg = PostgresDocumentStore(conn)
    assert await pg.delete_where("invites", {"trip_id": "t1", "email": "a@x.com"}) == 3
    sql, *params = conn.execute.call_args.args
    assert sql == "DELETE FROM invites WHERE trip_id = $1 AND email = $2"
    assert params == ["t1", "a@x.com"]


async def test_pg_errors_become_database_interaction_errors(conn):
    conn.fetchrow = AsyncMock(side_effect=asyncpg.PostgresError("boom"))
    pg = PostgresDocumentStore(conn)
    with pytest.raises(DatabaseInteractionError):
        await pg.insert("trips", {"title": "x", "owner_id": "u", "created_at": NOW,
                                  "updated_at": NOW + timedelta(seconds=1)})
