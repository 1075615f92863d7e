from __future__ import annotations

import json
from typing import Any, Optional, get_args

from vocalnotes.internal_core.contracts import (
    Condition,
    EnergyClass,
    Exposition,
    FloorCovering,
    HeatingType,
    ListingStatus,
    PropertyType,
    RoomType,
)

from .unknowns import list_item_templates, unknown_template


def _values(literal: Any) -> str:
    return ", ".join(get_args(literal))


SYSTEM_PROMPT = (
    "You extract real-estate listing facts from a spoken note transcript.\n"
    "Return strictly one JSON object with EVERY key of the template below.\n"
    "Set a key to null when the transcript does not mention it. Never guess.\n"
    "Only report facts that are new or changed compared to the current property; "
    "repeat a known value only if the transcript restates it.\n"
    "List fields (rooms, outdoorSpaces, amenities, ...) are null unless the transcript "
    "mentions items; then return only the mentioned items using the item shapes.\n"
    "For repeatable rooms (bedrooms, bathrooms, ...) add an ordinal phrase to features when the "
    "speaker uses one, e.g. \"second bedroom\" or \"master bathroom\", and set floorLevel "
    "when the floor is stated.\n"
    "Areas are in square meters, prices in euros.\n"
    f"propertyType: [{_values(PropertyType)}]\n"
    f"status: [{_values(ListingStatus)}]\n"
    f"room type: [{_values(RoomType)}]\n"
    f"floorCovering: [{_values(FloorCovering)}]\n"
    f"exposition/orientation: [{_values(Exposition)}]\n"
    f"heating.mainType: [{_values(HeatingType)}]\n"
    f"condition: [{_values(Condition)}]\n"
    f"energy classes: [{_values(EnergyClass)}]\n"
)


def build_extraction_messages(transcript: str, current_property: Optional[dict[str, Any]]) -> list[dict[str, str]]:
    user = (
        "Template (all keys required, null = unknown):\n"
        f"{json.dumps(unknown_template(), ensure_ascii=False)}\n\n"
        "List item shapes:\n"
        f"{json.dumps(list_item_templates(), ensure_ascii=False)}\n\n"
        "Current property (may be null):\n"
        f"{json.dumps(current_property, ensure_ascii=False)}\n\n"
        "Transcript:\n"
        f"{json.dumps(str(transcript or ''), ensure_ascii=False)}\n\n"
        "Out:"
    )
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user},
    ]


def parse_json_object(raw: str) -> dict[str, Any] | None:
    if not raw:
        return None
    try:
        data = json.loads(raw)
        if isinstance(data, dict):
            return data
    except json.JSONDecodeError:
        pass

    extracted = extract_first_json_object(raw)
    if not extracted:
        return None
    try:
        data = json.loads(extracted)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def extract_first_json_object(text: str) -> str:
    start = text.find("{")
    if start < 0:
        return ""
    depth = 0
    in_str = False
    escape = False
    for i, ch in enumerate(text[start:], start=start):
        if in_str:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_str = False
            continue
        if ch == '"':
            in_str = True
            continue
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return ""
