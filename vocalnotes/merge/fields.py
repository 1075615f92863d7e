from __future__ import annotations

import types
from enum import Enum
from functools import lru_cache
from typing import Any, Callable, List, Literal, Optional, Sequence, TypeVar, Union, get_args, get_origin

from pydantic import BaseModel

ModelT = TypeVar("ModelT", bound=BaseModel)
RoomResolver = Callable[[Sequence[Any], Sequence[Any]], List[Any]]


class MergeShape(str, Enum):
    LEAF = "leaf"
    NESTED = "nested"
    STRING_SET = "string_set"
    OPAQUE_LIST = "opaque_list"
    ROOM_LIST = "room_list"


def _unwrap_optional(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def _is_string_like(annotation: Any) -> bool:
    if annotation is str:
        return True
    if get_origin(annotation) is Literal:
        return all(isinstance(value, str) for value in get_args(annotation))
    return False


@lru_cache(maxsize=None)
def field_shape(model_cls: type[BaseModel], field_name: str) -> MergeShape:
    info = model_cls.model_fields[field_name]
    extra = info.json_schema_extra
    if isinstance(extra, dict) and extra.get("merge"):
        return MergeShape(str(extra["merge"]))

    annotation = _unwrap_optional(info.annotation)
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return MergeShape.NESTED
    if get_origin(annotation) is list:
        item_args = get_args(annotation)
        if item_args and _is_string_like(item_args[0]):
            return MergeShape.STRING_SET
        return MergeShape.OPAQUE_LIST
    return MergeShape.LEAF


def union_strings(current: Optional[Sequence[str]], incoming: Sequence[str]) -> List[str]:
    """Union by value; first-appearance order, duplicates collapsed."""
    merged: List[str] = []
    seen: set[str] = set()
    for value in list(current or []) + list(incoming):
        if value in seen:
            continue
        seen.add(value)
        merged.append(value)
    return merged


def merge_model(
    current: Optional[ModelT],
    update: ModelT,
    *,
    room_resolver: Optional[RoomResolver] = None,
) -> ModelT:
    """Merge every present field of ``update`` into ``current``.

    Absent (None) update fields never touch ``current``. Returns a new model;
    neither argument is mutated.
    """
    model_cls = type(update)
    values: dict[str, Any] = {}
    if current is not None:
        snapshot = current.model_copy(deep=True)
        values = {name: getattr(snapshot, name) for name in model_cls.model_fields}

    for name in model_cls.model_fields:
        incoming = getattr(update, name)
        if incoming is None:
            continue
        shape = field_shape(model_cls, name)
        existing = values.get(name)

        if shape is MergeShape.NESTED:
            values[name] = merge_model(existing, incoming, room_resolver=room_resolver)
        elif shape is MergeShape.STRING_SET:
            values[name] = union_strings(existing, incoming)
        elif shape is MergeShape.OPAQUE_LIST:
            values[name] = [item.model_copy(deep=True) for item in list(existing or []) + list(incoming)]
        elif shape is MergeShape.ROOM_LIST:
            if room_resolver is None:
                raise ValueError(f"No room resolver given for field '{name}'.")
            values[name] = room_resolver(list(existing or []), list(incoming))
        else:
            values[name] = incoming

    return model_cls.model_validate(values)
