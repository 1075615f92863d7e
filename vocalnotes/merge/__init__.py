"""
Property merge boundary for vocalnotes.

Design intent:
- Merge partial extraction results into one ever-growing property record.
- Dispatch by field shape (leaf / nested / string list / opaque list / rooms).
- Never erase a known value with an unknown one.
"""

from .engine import merge_property
from .fields import MergeShape, field_shape, merge_model, union_strings
from .rooms import SINGLETON_ROOM_TYPES, ordinal_phrase, resolve_rooms, rooms_match

__all__ = [
    "merge_property",
    "MergeShape",
    "field_shape",
    "merge_model",
    "union_strings",
    "SINGLETON_ROOM_TYPES",
    "ordinal_phrase",
    "resolve_rooms",
    "rooms_match",
]
