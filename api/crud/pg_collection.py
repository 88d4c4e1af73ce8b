"""
Postgres-backed collection (raw SQL).

One table per bound model:
- `id`   uuid primary key generated by Postgres
- `doc`  jsonb holding every model field
- `tsv`  tsvector generated from the string values of `doc` (full-text filter)
- `created_at` / `updated_at`

Updates are shallow merges (`doc || changes`), matching a top-level `$set`.
"""

from __future__ import annotations

import re
import uuid
from typing import Any

from core import config, db
from core.errors import InvalidIdentifier

_IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_]{0,62}$")

_COLUMNS = "id, doc, created_at, updated_at"


def _check_identifier(value: str, what: str) -> str:
    if not _IDENTIFIER.match(value or ""):
        raise ValueError(f"Invalid {what}: {value!r}")
    return value


def parse_id(record_id: Any) -> uuid.UUID:
    if isinstance(record_id, uuid.UUID):
        return record_id
    try:
        return uuid.UUID(str(record_id).strip())
    except ValueError as exc:
        raise InvalidIdentifier(str(record_id)) from exc


def _row_to_record(row: dict[str, Any]) -> dict[str, Any]:
    doc = row.get("doc") or {}
    return {
        "id": str(row["id"]),
        **doc,
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


class PostgresCollection:
    def __init__(self, table: str, *, text_search_config: str | None = None):
        self.table = _check_identifier(table, "table name")
        self._text_search_config = text_search_config

    @property
    def text_search_config(self) -> str:
        # Resolved lazily so the env var can be set after import.
        cfg = self._text_search_config or config.text_search_config()
        return _check_identifier(cfg, "text search config")

    async def ensure_table(self) -> None:
        """
        Create the backing table and its indexes if missing.

        `gen_random_uuid()` is built in from Postgres 13.
        """
        t = self.table
        await db.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {t} (
              id uuid PRIMARY KEY DEFAULT gen_random_uuid(),
              doc jsonb NOT NULL DEFAULT '{{}}'::jsonb,
              tsv tsvector GENERATED ALWAYS AS (
                jsonb_to_tsvector('{self.text_search_config}'::regconfig, doc, '["string"]')
              ) STORED,
              created_at timestamptz NOT NULL DEFAULT now(),
              updated_at timestamptz NOT NULL DEFAULT now()
            );
            CREATE INDEX IF NOT EXISTS {t}_tsv_idx ON {t} USING GIN (tsv);
            CREATE INDEX IF NOT EXISTS {t}_created_at_idx ON {t} (created_at, id);
            """
        )

    def _search_filter(self, search: str | None, *, first_param: int) -> tuple[str, list[Any]]:
        term = (search or "").strip()
        if not term:
            return "", []
        cfg_param, term_param = first_param, first_param + 1
        clause = f"WHERE tsv @@ websearch_to_tsquery(${cfg_param}::regconfig, ${term_param})"
        return clause, [self.text_search_config, term]

    async def create(self, doc: dict[str, Any]) -> dict[str, Any]:
        row = await db.fetch_one(
            f"""
            INSERT INTO {self.table} (doc)
            VALUES ($1::jsonb)
            RETURNING {_COLUMNS}
            """,
            doc,
        )
        if row is None:
            raise RuntimeError(f"Failed to insert into {self.table}.")
        return _row_to_record(row)

    async def count(self, search: str | None = None) -> int:
        where, args = self._search_filter(search, first_param=1)
        total = await db.fetch_val(f"SELECT count(*) FROM {self.table} {where}", *args)
        return int(total or 0)

    async def find(
        self,
        search: str | None = None,
        *,
        skip: int = 0,
        limit: int = 25,
    ) -> list[dict[str, Any]]:
        where, args = self._search_filter(search, first_param=1)
        n = len(args)
        rows = await db.fetch_all(
            f"""
            SELECT {_COLUMNS}
            FROM {self.table}
            {where}
            ORDER BY created_at ASC, id ASC
            OFFSET ${n + 1}
            LIMIT ${n + 2}
            """,
            *args,
            skip,
            limit,
        )
        return [_row_to_record(r) for r in rows]

    async def find_by_id(self, record_id: str) -> dict[str, Any] | None:
        row = await db.fetch_one(
            f"SELECT {_COLUMNS} FROM {self.table} WHERE id = $1",
            parse_id(record_id),
        )
        return _row_to_record(row) if row is not None else None

    async def find_by_id_and_update(
        self,
        record_id: str,
        changes: dict[str, Any],
    ) -> dict[str, Any] | None:
        row = await db.fetch_one(
            f"""
            UPDATE {self.table}
            SET doc = doc || $2::jsonb,
                updated_at = now()
            WHERE id = $1
            RETURNING {_COLUMNS}
            """,
            parse_id(record_id),
            changes,
        )
        return _row_to_record(row) if row is not None else None

    async def find_by_id_and_delete(self, record_id: str) -> dict[str, Any] | None:
        row = await db.fetch_one(
            f"DELETE FROM {self.table} WHERE id = $1 RETURNING {_COLUMNS}",
            parse_id(record_id),
        )
        return _row_to_record(row) if row is not None else None
