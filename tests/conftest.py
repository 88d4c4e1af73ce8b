"""
Shared fixtures: an in-memory collection and an app bound to it.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from core.errors import install_error_handlers
from crud import build_router, create_controller
from crud.pg_collection import parse_id
from flights.schemas import Flight


class InMemoryCollection:
    """Collection double keeping records in a dict, in insertion order."""

    def __init__(self):
        self.records: Dict[str, Dict[str, Any]] = {}
        self.calls: List[tuple] = []

    def _matches(self, record: Dict[str, Any], search: Optional[str]) -> bool:
        if not search:
            return True
        needle = search.lower()
        return any(isinstance(v, str) and needle in v.lower() for v in record.values())

    async def create(self, doc):
        self.calls.append(("create", doc))
        now = datetime.now(timezone.utc)
        record_id = str(uuid.uuid4())
        self.records[record_id] = {"id": record_id, **doc, "created_at": now, "updated_at": now}
        return dict(self.records[record_id])

    async def count(self, search=None):
        self.calls.append(("count", search))
        return sum(1 for r in self.records.values() if self._matches(r, search))

    async def find(self, search=None, *, skip=0, limit=25):
        self.calls.append(("find", search, skip, limit))
        matching = [dict(r) for r in self.records.values() if self._matches(r, search)]
        return matching[skip:skip + limit]

    async def find_by_id(self, record_id):
        self.calls.append(("find_by_id", record_id))
        record = self.records.get(str(parse_id(record_id)))
        return dict(record) if record is not None else None

    async def find_by_id_and_update(self, record_id, changes):
        self.calls.append(("find_by_id_and_update", record_id, changes))
        record = self.records.get(str(parse_id(record_id)))
        if record is None:
            return None
        record.update(changes)
        record["updated_at"] = datetime.now(timezone.utc)
        return dict(record)

    async def find_by_id_and_delete(self, record_id):
        self.calls.append(("find_by_id_and_delete", record_id))
        return self.records.pop(str(parse_id(record_id)), None)


def make_app(collection) -> FastAPI:
    app = FastAPI()
    install_error_handlers(app)
    controller = create_controller(Flight, collection)
    app.include_router(build_router(controller, prefix="/flights"))
    return app


@pytest.fixture
def collection():
    return InMemoryCollection()


@pytest.fixture
def client(collection):
    return TestClient(make_app(collection))


@pytest.fixture
def missing_id():
    return str(uuid.uuid4())


@pytest.fixture
def make_client():
    def _make(collection, **kwargs):
        return TestClient(make_app(collection), **kwargs)

    return _make
