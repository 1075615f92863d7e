from vocalnotes.internal_core.contracts import Property, Room
from vocalnotes.merge import merge_property, ordinal_phrase, resolve_rooms, rooms_match


def _room(**kwargs) -> Room:
    return Room.model_validate(kwargs)


def test_first_and_second_bedroom_stay_separate() -> None:
    current = Property.model_validate({"rooms": [{"type": "BEDROOM", "surface": 12, "features": ["first bedroom"]}]})
    update = Property.model_validate({"rooms": [{"type": "BEDROOM", "surface": 10, "features": ["second bedroom"]}]})

    merged = merge_property(current, update)

    assert [room.surface for room in merged.rooms or []] == [12, 10]


def test_same_ordinal_phrase_merges_in_place() -> None:
    existing = [
        _room(type="BEDROOM", surface=12, features=["Master Bedroom", "parquet"]),
        _room(type="BATHROOM", surface=5),
    ]
    incoming = [_room(type="BEDROOM", surface=14, features=["master-bedroom", "walk-in closet"])]

    merged = resolve_rooms(existing, incoming)

    assert len(merged) == 2
    assert merged[0].surface == 14
    assert merged[0].features == ["Master Bedroom", "parquet", "master-bedroom", "walk-in closet"]
    assert merged[1].type == "BATHROOM"


def test_bedrooms_on_same_floor_merge_and_union_features() -> None:
    existing = [_room(type="BEDROOM", floor_level=1, features=["built-in wardrobe"])]
    incoming = [_room(type="BEDROOM", floor_level=1, surface=11, features=["south facing"])]

    merged = resolve_rooms(existing, incoming)

    assert len(merged) == 1
    assert merged[0].surface == 11
    assert merged[0].features == ["built-in wardrobe", "south facing"]


def test_singleton_kitchen_collapses_keeping_latest_surface() -> None:
    current = Property.model_validate({"rooms": [{"type": "KITCHEN", "surface": 10, "floorCovering": "TILE"}]})
    update = Property.model_validate({"rooms": [{"type": "KITCHEN", "surface": 12}]})

    merged = merge_property(current, update)

    assert len(merged.rooms or []) == 1
    assert merged.rooms[0].surface == 12
    assert merged.rooms[0].floor_covering == "TILE"


def test_one_sided_ordinal_does_not_match() -> None:
    named = _room(type="BEDROOM", floor_level=1, features=["second bedroom"])
    unnamed = _room(type="BEDROOM", floor_level=1)

    assert rooms_match(named, unnamed) is False
    assert rooms_match(unnamed, named) is False


def test_rooms_without_any_signal_are_appended() -> None:
    merged = resolve_rooms([_room(type="BATHROOM")], [_room(type="BATHROOM", surface=4)])

    assert len(merged) == 2


def test_different_floor_levels_do_not_match() -> None:
    assert rooms_match(_room(type="OFFICE", floor_level=0), _room(type="OFFICE", floor_level=1)) is False


def test_rooms_appended_earlier_in_the_batch_are_match_candidates() -> None:
    incoming = [
        _room(type="LIVING_ROOM", surface=30),
        _room(type="LIVING_ROOM", features=["fireplace"]),
    ]

    merged = resolve_rooms([], incoming)

    assert len(merged) == 1
    assert merged[0].surface == 30
    assert merged[0].features == ["fireplace"]


def test_ordinal_phrase_is_normalized() -> None:
    assert ordinal_phrase(_room(type="BEDROOM", features=["the SECOND_bedroom upstairs"])) == "second bedroom"
    assert ordinal_phrase(_room(type="WALK_IN_CLOSET", features=["guest walk in closet"])) == "guest walk in closet"
    assert ordinal_phrase(_room(type="BEDROOM", features=["bright"])) is None
