"""
Controller factory: one fixed set of CRUD handlers per bound model.

    controller = create_controller(Flight, PostgresCollection("flights"))
    app.include_router(build_router(controller, prefix="/flights"))

Handlers take the inbound `Request` and return a `JSONResponse`. Validation
failures, unknown ids and anything the store raises are not handled here;
they propagate to the boundary table in `core.errors`.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from fastapi import APIRouter, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from core.errors import RecordNotFound, RecordValidationError
from core.logging import get_logger

from . import pagination, validation
from .collection import Collection

logger = get_logger(__name__)

Handler = Callable[[Request], Awaitable[JSONResponse]]


@dataclass(frozen=True)
class Controller:
    model: type[BaseModel]
    collection: Collection
    create: Handler
    get_all: Handler
    get_by_id: Handler
    update: Handler
    remove: Handler
    toggle_flag: Handler


def _ok(content: dict[str, Any], *, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=jsonable_encoder({"success": True, **content}))


_FORM_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


async def _read_payload(request: Request) -> Any:
    content_type = request.headers.get("content-type", "").split(";", 1)[0].strip().lower()
    if content_type in _FORM_TYPES:
        form = await request.form()
        return {key: value for key, value in form.items() if isinstance(value, str)}

    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise RecordValidationError(
            [{"type": "json_invalid", "path": "", "msg": "Malformed JSON body", "location": "body"}]
        ) from exc


def _record_id(request: Request) -> str:
    return str(request.path_params["id"])


def create_controller(model: type[BaseModel], collection: Collection) -> Controller:
    model_name = model.__name__

    async def create(request: Request) -> JSONResponse:
        doc = validation.validate_create(model, await _read_payload(request))
        record = await collection.create(doc)
        logger.info("record_created", model=model_name, record_id=record["id"])
        return _ok({"data": record}, status_code=status.HTTP_201_CREATED)

    async def get_all(request: Request) -> JSONResponse:
        params = request.query_params
        page = pagination.clamp_page(params.get("page"))
        limit = pagination.clamp_limit(params.get("limit"))
        search = (params.get("q") or "").strip() or None

        # Two independent reads; the count may not match the page under concurrent writes.
        total, items = await asyncio.gather(
            collection.count(search),
            collection.find(search, skip=pagination.offset_for(page, limit), limit=limit),
        )
        meta = pagination.build_meta(page=page, limit=limit, total=total)
        logger.debug("records_listed", model=model_name, page=page, limit=limit, total=total, search=search)
        return _ok({"meta": meta.model_dump(), "data": items})

    async def get_by_id(request: Request) -> JSONResponse:
        record_id = _record_id(request)
        record = await collection.find_by_id(record_id)
        if record is None:
            raise RecordNotFound(record_id)
        return _ok({"data": record})

    async def update(request: Request) -> JSONResponse:
        record_id = _record_id(request)
        changes = validation.validate_update(model, await _read_payload(request))
        record = await collection.find_by_id_and_update(record_id, changes)
        if record is None:
            raise RecordNotFound(record_id)
        logger.info("record_updated", model=model_name, record_id=record_id, fields=sorted(changes))
        return _ok({"data": record})

    async def remove(request: Request) -> JSONResponse:
        record_id = _record_id(request)
        record = await collection.find_by_id_and_delete(record_id)
        if record is None:
            raise RecordNotFound(record_id)
        logger.info("record_deleted", model=model_name, record_id=record_id)
        return _ok({"message": "Deleted"})

    async def toggle_flag(request: Request) -> JSONResponse:
        record_id = _record_id(request)
        record = await collection.find_by_id(record_id)
        if record is None:
            raise RecordNotFound(record_id)

        active = not bool(record.get("active"))
        record = await collection.find_by_id_and_update(record_id, {"active": active})
        if record is None:
            # Deleted between the read and the write.
            raise RecordNotFound(record_id)
        logger.info("record_toggled", model=model_name, record_id=record_id, active=active)
        return _ok({"data": record})

    return Controller(
        model=model,
        collection=collection,
        create=create,
        get_all=get_all,
        get_by_id=get_by_id,
        update=update,
        remove=remove,
        toggle_flag=toggle_flag,
    )


def _body_docs(model: type[BaseModel]) -> dict[str, Any]:
    return {
        "requestBody": {
            "content": {"application/json": {"schema": model.model_json_schema()}},
            "required": True,
        }
    }


def build_router(controller: Controller, *, prefix: str, tags: list[str] | None = None) -> APIRouter:
    """
    Mount a controller's handlers on a router.
    """
    router = APIRouter(prefix=prefix, tags=tags or [])
    body = _body_docs(controller.model)

    router.add_api_route(
        "",
        controller.create,
        methods=["POST"],
        status_code=status.HTTP_201_CREATED,
        openapi_extra=body,
    )
    router.add_api_route("", controller.get_all, methods=["GET"])
    router.add_api_route("/{id}", controller.get_by_id, methods=["GET"])
    router.add_api_route("/{id}", controller.update, methods=["PUT", "PATCH"], openapi_extra=body)
    router.add_api_route("/{id}", controller.remove, methods=["DELETE"])
    router.add_api_route("/{id}/toggle", controller.toggle_flag, methods=["PATCH"])
    return router
