"""
Pydantic schema for flight records.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class Flight(BaseModel):
    # Unknown payload fields are stored alongside the declared ones.
    model_config = ConfigDict(extra="allow")

    name: str = Field(..., min_length=1, max_length=200)
    code: str | None = Field(default=None, min_length=2, max_length=10)
    origin: str | None = Field(default=None, max_length=100)
    destination: str | None = Field(default=None, max_length=100)
    departs_at: datetime | None = None
    seats: int | None = Field(default=None, ge=0)
    active: bool = True
