from __future__ import annotations

"""
"Unknown" handling for extraction results.

Extractors return every schema field. A field the transcript never mentions is
``null`` (or the string "UNKNOWN"); anything else, including an empty list or
an empty string, is an explicit value. Stripping the unknowns leaves a partial
update the merge engine can apply without erasing known facts.
"""

import logging
import types
from typing import Any, Optional, Union, get_args, get_origin

from pydantic import BaseModel, ValidationError

from vocalnotes.internal_core.contracts import PartialProperty, Property
from vocalnotes.internal_core.errors import CollaboratorFailure

logger = logging.getLogger(__name__)

UNKNOWN_SENTINELS: frozenset[str] = frozenset({"unknown"})


def is_unknown(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and value.strip().lower() in UNKNOWN_SENTINELS


def _field_model(annotation: Any) -> tuple[Optional[type[BaseModel]], bool]:
    """(model class, is_list) for a field annotation that holds models."""
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return _field_model(args[0])
        return None, False
    if origin is list:
        item_args = get_args(annotation)
        if item_args:
            inner, _ = _field_model(item_args[0])
            return inner, inner is not None
        return None, False
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return annotation, False
    return None, False


def unknown_template(model_cls: type[BaseModel] = Property) -> dict[str, Any]:
    """Every field of ``model_cls`` (camelCase) set to null; nested objects expanded."""
    template: dict[str, Any] = {}
    for name, info in model_cls.model_fields.items():
        key = info.alias or name
        nested, is_list = _field_model(info.annotation)
        if nested is not None and not is_list:
            template[key] = unknown_template(nested)
        else:
            template[key] = None
    return template


def list_item_templates(model_cls: type[BaseModel] = Property) -> dict[str, dict[str, Any]]:
    """Item shapes for list-of-object fields, e.g. ``{"rooms": {...}}``."""
    items: dict[str, dict[str, Any]] = {}
    for name, info in model_cls.model_fields.items():
        nested, is_list = _field_model(info.annotation)
        if nested is not None and is_list:
            items[info.alias or name] = unknown_template(nested)
    return items


def fill_template(template: dict[str, Any], facts: dict[str, Any]) -> dict[str, Any]:
    filled = dict(template)
    for key, value in facts.items():
        if isinstance(value, dict) and isinstance(filled.get(key), dict):
            filled[key] = fill_template(filled[key], value)
        else:
            filled[key] = value
    return filled


def strip_unknown(value: Any) -> Any:
    """Drop unknown leaves, and objects left empty by that, recursively.

    Returns None when ``value`` carries no known information at all.
    """
    if is_unknown(value):
        return None
    if isinstance(value, dict):
        stripped = {}
        for key, item in value.items():
            kept = strip_unknown(item)
            if kept is not None:
                stripped[key] = kept
        return stripped or None
    if isinstance(value, list):
        # An explicit empty list stays an explicit (empty) value.
        return [kept for kept in (strip_unknown(item) for item in value) if kept is not None]
    return value


def parse_partial_property(raw: Any, *, provider_name: str = "extractor") -> PartialProperty:
    """Turn an all-fields-present extraction result into a partial update."""
    if not isinstance(raw, dict):
        raise CollaboratorFailure(
            "INVALID_EXTRACTION",
            f"Extraction result must be a JSON object, got {type(raw).__name__}.",
            provider_name,
        )

    stripped = strip_unknown(raw) or {}
    rooms = stripped.get("rooms")
    if isinstance(rooms, list):
        typed_rooms = [room for room in rooms if isinstance(room, dict) and room.get("type")]
        if len(typed_rooms) != len(rooms):
            logger.warning(
                "extraction dropped %s room(s) without a type provider=%s",
                len(rooms) - len(typed_rooms),
                provider_name,
            )
        stripped["rooms"] = typed_rooms

    try:
        return PartialProperty.model_validate(stripped)
    except ValidationError as exc:
        raise CollaboratorFailure(
            "INVALID_EXTRACTION",
            f"Extraction result does not match the property schema: {exc.error_count()} error(s); "
            f"first: {exc.errors()[0].get('msg', '')}",
            provider_name,
        ) from exc
