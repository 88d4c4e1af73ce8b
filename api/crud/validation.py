"""
Payload validation against a bound pydantic model.

Create requests are validated as whole records. Update requests are partial:
only the supplied fields are checked, each through the model's own assignment
validation (field constraints, field validators and model config), so the
rules hold without re-sending the full record. Model-level validators see
only the field being assigned.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Any

from pydantic import BaseModel, TypeAdapter, ValidationError

from core.errors import RecordValidationError

# Maintained by the store; never taken from a payload.
RESERVED_FIELDS = frozenset({"id", "created_at", "updated_at"})


def _error_entries(exc: ValidationError, *, prefix: tuple[str, ...] = ()) -> list[dict[str, Any]]:
    entries: list[dict[str, Any]] = []
    for err in exc.errors():
        loc = (*prefix, *err["loc"])
        entry: dict[str, Any] = {
            "type": err["type"],
            "path": ".".join(str(part) for part in loc),
            "msg": err["msg"],
            "location": "body",
        }
        if err["type"] != "missing":
            entry["value"] = err.get("input")
        entries.append(entry)
    return entries


def _require_object(payload: Any) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise RecordValidationError(
            [
                {
                    "type": "dict_type",
                    "path": "",
                    "msg": "Request body must be a JSON object",
                    "location": "body",
                }
            ]
        )
    return {k: v for k, v in payload.items() if k not in RESERVED_FIELDS}


def validate_create(model: type[BaseModel], payload: Any) -> dict[str, Any]:
    """
    Validate a full record and return its JSON-ready document (defaults applied).
    """
    data = _require_object(payload)
    try:
        record = model.model_validate(data)
    except ValidationError as exc:
        raise RecordValidationError(_error_entries(exc)) from exc
    doc = record.model_dump(mode="json")
    for name in RESERVED_FIELDS:
        doc.pop(name, None)
    return doc


@lru_cache(maxsize=None)
def _field_serializer(model: type[BaseModel], name: str) -> TypeAdapter:
    info = model.model_fields[name]
    annotation: Any = info.annotation
    if info.metadata:
        annotation = Annotated[(annotation, *info.metadata)]
    return TypeAdapter(annotation)


def _validate_field(model: type[BaseModel], name: str, value: Any) -> Any:
    # Assignment validation runs the field's own validators under the model config.
    instance = model.model_construct()
    model.__pydantic_validator__.validate_assignment(instance, name, value)
    return getattr(instance, name)


def validate_update(model: type[BaseModel], payload: Any) -> dict[str, Any]:
    """
    Validate a partial update and return the JSON-ready changes.

    Fields the model doesn't declare follow its `extra` policy: kept for
    "allow", rejected for "forbid", silently dropped otherwise.
    """
    data = _require_object(payload)
    extra = model.model_config.get("extra") or "ignore"

    changes: dict[str, Any] = {}
    errors: list[dict[str, Any]] = []
    for name, value in data.items():
        if name not in model.model_fields:
            if extra == "allow":
                changes[name] = value
            elif extra == "forbid":
                errors.append(
                    {
                        "type": "extra_forbidden",
                        "path": name,
                        "msg": "Extra inputs are not permitted",
                        "location": "body",
                        "value": value,
                    }
                )
            continue

        try:
            validated = _validate_field(model, name, value)
        except ValidationError as exc:
            errors.extend(_error_entries(exc))
            continue
        changes[name] = _field_serializer(model, name).dump_python(validated, mode="json")

    if errors:
        raise RecordValidationError(errors)
    return changes
