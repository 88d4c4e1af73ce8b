"""
Unit tests for the Postgres collection.

`core.db` calls are replaced with recorders so the SQL and its parameters
can be checked without a database.
"""

import uuid
from datetime import datetime, timezone

import pytest

from core import db
from core.errors import InvalidIdentifier
from crud.pg_collection import PostgresCollection, parse_id

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)
RECORD_ID = uuid.UUID("3f1b3c9e-6c1e-4d4f-9a57-2b1f5a0c8d11")


def _row(doc):
    return {"id": RECORD_ID, "doc": doc, "created_at": NOW, "updated_at": NOW}


class Recorder:
    def __init__(self, result=None):
        self.result = result
        self.calls = []

    async def __call__(self, sql, *args):
        self.calls.append((sql, args))
        return self.result


@pytest.fixture
def coll():
    return PostgresCollection("flights", text_search_config="english")


class TestConstruction:

    @pytest.mark.parametrize("table", ["", "Flights", "flights; drop table x", "1abc"])
    def test_rejects_unsafe_table_names(self, table):
        with pytest.raises(ValueError):
            PostgresCollection(table)

    def test_rejects_unsafe_search_config(self):
        coll = PostgresCollection("flights", text_search_config="english'--")
        with pytest.raises(ValueError):
            coll.text_search_config

    def test_search_config_from_env(self, monkeypatch):
        monkeypatch.setenv("TEXT_SEARCH_CONFIG", "simple")
        assert PostgresCollection("flights").text_search_config == "simple"


class TestParseId:

    def test_accepts_uuid_strings(self):
        assert parse_id(str(RECORD_ID)) == RECORD_ID

    @pytest.mark.parametrize("raw", ["", "123", "not-a-uuid", "65f0c2a1b3e4d5f6a7b8c9d0"])
    def test_malformed_raises(self, raw):
        with pytest.raises(InvalidIdentifier):
            parse_id(raw)


class TestQueries:

    @pytest.mark.asyncio
    async def test_create_returns_flattened_record(self, coll, monkeypatch):
        rec = Recorder(_row({"name": "A", "active": True}))
        monkeypatch.setattr(db, "fetch_one", rec)

        record = await coll.create({"name": "A", "active": True})

        assert record == {
            "id": str(RECORD_ID),
            "name": "A",
            "active": True,
            "created_at": NOW,
            "updated_at": NOW,
        }
        sql, args = rec.calls[0]
        assert "INSERT INTO flights" in sql
        assert args == ({"name": "A", "active": True},)

    @pytest.mark.asyncio
    async def test_count_without_search(self, coll, monkeypatch):
        rec = Recorder(7)
        monkeypatch.setattr(db, "fetch_val", rec)

        assert await coll.count() == 7
        sql, args = rec.calls[0]
        assert "WHERE" not in sql
        assert args == ()

    @pytest.mark.asyncio
    async def test_count_with_search(self, coll, monkeypatch):
        rec = Recorder(2)
        monkeypatch.setattr(db, "fetch_val", rec)

        assert await coll.count("berlin") == 2
        sql, args = rec.calls[0]
        assert "websearch_to_tsquery($1::regconfig, $2)" in sql
        assert args == ("english", "berlin")

    @pytest.mark.asyncio
    async def test_find_passes_skip_and_limit(self, coll, monkeypatch):
        rec = Recorder([_row({"name": "A"})])
        monkeypatch.setattr(db, "fetch_all", rec)

        records = await coll.find("  ", skip=50, limit=25)

        assert [r["name"] for r in records] == ["A"]
        sql, args = rec.calls[0]
        assert "OFFSET $1" in sql and "LIMIT $2" in sql
        assert args == (50, 25)

    @pytest.mark.asyncio
    async def test_find_with_search_shifts_placeholders(self, coll, monkeypatch):
        rec = Recorder([])
        monkeypatch.setattr(db, "fetch_all", rec)

        await coll.find("paris", skip=0, limit=10)

        sql, args = rec.calls[0]
        assert "OFFSET $3" in sql and "LIMIT $4" in sql
        assert args == ("english", "paris", 0, 10)

    @pytest.mark.asyncio
    async def test_find_by_id_missing(self, coll, monkeypatch):
        rec = Recorder(None)
        monkeypatch.setattr(db, "fetch_one", rec)

        assert await coll.find_by_id(str(RECORD_ID)) is None
        assert rec.calls[0][1] == (RECORD_ID,)

    @pytest.mark.asyncio
    async def test_malformed_id_never_reaches_db(self, coll, monkeypatch):
        rec = Recorder(None)
        monkeypatch.setattr(db, "fetch_one", rec)

        with pytest.raises(InvalidIdentifier):
            await coll.find_by_id("nope")
        with pytest.raises(InvalidIdentifier):
            await coll.find_by_id_and_update("nope", {"active": False})
        with pytest.raises(InvalidIdentifier):
            await coll.find_by_id_and_delete("nope")
        assert rec.calls == []

    @pytest.mark.asyncio
    async def test_update_merges_changes(self, coll, monkeypatch):
        rec = Recorder(_row({"name": "A", "active": False}))
        monkeypatch.setattr(db, "fetch_one", rec)

        record = await coll.find_by_id_and_update(str(RECORD_ID), {"active": False})

        assert record["active"] is False
        sql, args = rec.calls[0]
        assert "doc = doc || $2::jsonb" in sql
        assert args == (RECORD_ID, {"active": False})

    @pytest.mark.asyncio
    async def test_delete_returns_removed_record(self, coll, monkeypatch):
        rec = Recorder(_row({"name": "A"}))
        monkeypatch.setattr(db, "fetch_one", rec)

        record = await coll.find_by_id_and_delete(str(RECORD_ID))

        assert record["id"] == str(RECORD_ID)
        assert rec.calls[0][0].startswith("DELETE FROM flights")

    @pytest.mark.asyncio
    async def test_ensure_table_creates_text_index(self, coll, monkeypatch):
        rec = Recorder(None)
        monkeypatch.setattr(db, "execute", rec)

        await coll.ensure_table()

        sql, _ = rec.calls[0]
        assert "CREATE TABLE IF NOT EXISTS flights" in sql
        assert "jsonb_to_tsvector('english'::regconfig" in sql
        assert "USING GIN (tsv)" in sql
        assert "DEFAULT '{}'::jsonb" in sql
