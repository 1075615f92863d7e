from __future__ import annotations

from typing import Optional

from vocalnotes.internal_core.contracts import PartialProperty, Property

from .fields import merge_model
from .rooms import resolve_rooms


def merge_property(current: Optional[Property], update: PartialProperty) -> Property:
    """Deep-merge a partial update into the canonical property.

    Pure function: the caller persists and broadcasts the result.
    """
    return merge_model(current if current is not None else Property(), update, room_resolver=resolve_rooms)
