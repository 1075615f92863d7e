from __future__ import annotations

"""
Room resolution across independent extractions.

A room has no stored id, so identity is recomputed on every merge:
- singleton types (kitchen, living, dining, laundry/utility) collapse to one room;
- repeatable types match on an ordinal phrase ("second bedroom") or, when
  neither side has one, on an explicit shared floor level.

This is a best-effort heuristic. With no consistent cue the same physical room
can be listed twice; matching more aggressively would merge distinct rooms.
"""

import logging
import re
from functools import lru_cache
from typing import List, Optional, Sequence

from vocalnotes.internal_core.contracts import Room

from .fields import merge_model

logger = logging.getLogger(__name__)

SINGLETON_ROOM_TYPES: frozenset[str] = frozenset(
    {"KITCHEN", "LIVING_ROOM", "DINING_ROOM", "LAUNDRY_ROOM", "UTILITY_ROOM"}
)
ORDINAL_WORDS: tuple[str, ...] = ("first", "second", "third", "fourth", "fifth", "master", "guest")


def _type_words(room_type: str) -> list[str]:
    return [word for word in room_type.lower().split("_") if word]


@lru_cache(maxsize=None)
def _ordinal_pattern(room_type: str) -> re.Pattern[str]:
    type_re = r"[\s_-]+".join(re.escape(word) for word in _type_words(room_type))
    ordinal_re = "|".join(ORDINAL_WORDS)
    return re.compile(rf"\b({ordinal_re})[\s_-]+{type_re}\b", re.IGNORECASE)


def ordinal_phrase(room: Room) -> Optional[str]:
    """Normalized ordinal phrase found in the room's features, e.g. 'second bedroom'."""
    pattern = _ordinal_pattern(room.type)
    for feature in room.features or []:
        match = pattern.search(str(feature))
        if match:
            return " ".join([match.group(1).lower(), *_type_words(room.type)])
    return None


def rooms_match(existing: Room, incoming: Room) -> bool:
    if existing.type != incoming.type:
        return False
    if existing.type in SINGLETON_ROOM_TYPES:
        return True

    existing_phrase = ordinal_phrase(existing)
    incoming_phrase = ordinal_phrase(incoming)
    if existing_phrase and incoming_phrase:
        return existing_phrase == incoming_phrase
    if existing_phrase or incoming_phrase:
        # Only one side is named: ambiguous, keep them apart.
        return False
    if existing.floor_level is not None and incoming.floor_level is not None:
        return existing.floor_level == incoming.floor_level
    return False


def find_matching_room(rooms: Sequence[Room], incoming: Room) -> Optional[int]:
    for index, candidate in enumerate(rooms):
        if rooms_match(candidate, incoming):
            return index
    return None


def resolve_rooms(existing: Sequence[Room], incoming: Sequence[Room]) -> List[Room]:
    """Merge ``incoming`` room descriptions into ``existing``.

    Matched rooms are updated in place (features/exposition unioned, present
    leaves overwritten); unmatched rooms are appended. Rooms appended earlier
    in the same batch are candidates for later incoming rooms.
    """
    merged: List[Room] = [room.model_copy(deep=True) for room in existing]
    for room in incoming:
        index = find_matching_room(merged, room)
        if index is None:
            merged.append(room.model_copy(deep=True))
            logger.debug("room_resolve type=%s action=append position=%s", room.type, len(merged) - 1)
            continue
        merged[index] = merge_model(merged[index], room)
        logger.debug("room_resolve type=%s action=merge position=%s", room.type, index)
    return merged
