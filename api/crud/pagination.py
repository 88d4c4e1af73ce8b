"""
Page/limit arithmetic for list endpoints.
"""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel

DEFAULT_LIMIT = 25
MAX_LIMIT = 100
# Keeps (page - 1) * limit inside a Postgres bigint.
MAX_OFFSET = 2**63 - 1
MAX_PAGE = MAX_OFFSET // MAX_LIMIT + 1


class PageMeta(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


def _parse_int(raw: Any) -> int | None:
    if raw is None:
        return None
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    try:
        return int(str(raw).strip())
    except ValueError:
        return None


def clamp_page(raw: Any) -> int:
    value = _parse_int(raw)
    if value is None:
        return 1
    return max(1, min(MAX_PAGE, value))


def clamp_limit(raw: Any) -> int:
    value = _parse_int(raw)
    if value is None:
        return DEFAULT_LIMIT
    return max(1, min(MAX_LIMIT, value))


def offset_for(page: int, limit: int) -> int:
    return (page - 1) * limit


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit)


def build_meta(*, page: int, limit: int, total: int) -> PageMeta:
    return PageMeta(page=page, limit=limit, total=total, pages=page_count(total, limit))
