"""
Flight CRUD endpoints.
"""

from __future__ import annotations

from crud import build_router, create_controller

from . import repository, schemas

controller = create_controller(schemas.Flight, repository.collection)

router = build_router(controller, prefix="/flights", tags=["flights"])
