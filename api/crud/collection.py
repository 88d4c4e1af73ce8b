"""
The persistence capability a controller is bound to.

Records are plain dicts carrying an `id` (string) plus the model's fields.
Every `*_by_id` method raises `core.errors.InvalidIdentifier` when the id
can't be parsed, and returns None when it parses but matches nothing.
"""

from __future__ import annotations

from typing import Any, Protocol


class Collection(Protocol):
    async def create(self, doc: dict[str, Any]) -> dict[str, Any]: ...

    async def count(self, search: str | None = None) -> int: ...

    async def find(
        self,
        search: str | None = None,
        *,
        skip: int = 0,
        limit: int = 25,
    ) -> list[dict[str, Any]]: ...

    async def find_by_id(self, record_id: str) -> dict[str, Any] | None: ...

    async def find_by_id_and_update(
        self,
        record_id: str,
        changes: dict[str, Any],
    ) -> dict[str, Any] | None:
        """Shallow-merge `changes` into the record; return the post-update state."""
        ...

    async def find_by_id_and_delete(self, record_id: str) -> dict[str, Any] | None:
        """Delete the record; return what was removed."""
        ...
