"""
Flight persistence: one Postgres collection.
"""

from __future__ import annotations

from crud.pg_collection import PostgresCollection

collection = PostgresCollection("flights")
