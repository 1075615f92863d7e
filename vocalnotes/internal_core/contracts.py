from __future__ import annotations

from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

NoteStatus = Literal["pending", "transcribing", "extracting", "success", "error"]

PropertyType = Literal[
    "APARTMENT", "HOUSE", "PENTHOUSE", "LOFT", "VILLA", "MANSION", "TOWNHOUSE", "STUDIO"
]
ListingStatus = Literal["FOR_SALE", "UNDER_OFFER", "SOLD", "RENTED", "DRAFT"]
RoomType = Literal[
    "LIVING_ROOM",
    "DINING_ROOM",
    "KITCHEN",
    "BEDROOM",
    "BATHROOM",
    "SHOWER_ROOM",
    "OFFICE",
    "LAUNDRY_ROOM",
    "STORAGE_ROOM",
    "HALLWAY",
    "WC",
    "WALK_IN_CLOSET",
    "UTILITY_ROOM",
    "OTHER",
]
FloorCovering = Literal[
    "HARDWOOD", "LAMINATE", "TILE", "CARPET", "VINYL", "CONCRETE", "MARBLE", "STONE", "OTHER"
]
Exposition = Literal[
    "NORTH", "SOUTH", "EAST", "WEST", "NORTH_EAST", "NORTH_WEST", "SOUTH_EAST", "SOUTH_WEST"
]
HeatingType = Literal["GAS", "ELECTRIC", "OIL", "HEAT_PUMP", "SOLAR", "WOOD", "DISTRICT_HEATING"]
HeatingDistribution = Literal["RADIATORS", "UNDERFLOOR", "FORCED_AIR"]
EnergyClass = Literal["A", "B", "C", "D", "E", "F", "G"]
Condition = Literal["NEW_CONSTRUCTION", "EXCELLENT", "GOOD", "NEEDS_REFRESHMENT", "TO_RENOVATE"]
OutdoorSpaceType = Literal["GARDEN", "TERRACE", "BALCONY", "PATIO", "ROOFTOP"]
KitchenLayout = Literal["SEPARATE", "OPEN_PLAN", "SEMI_OPEN"]
GlazingType = Literal["SINGLE", "DOUBLE", "TRIPLE"]
FrameMaterial = Literal["WOOD", "PVC", "ALUMINUM"]
InsulationType = Literal["INTERIOR", "EXTERIOR", "NONE"]
ParkingType = Literal["GARAGE", "OUTDOOR_SPACE", "UNDERGROUND_BOX", "CARPORT"]


class WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# -----------------------------------------------------------------------------
# Notes
# -----------------------------------------------------------------------------


class Note(WireModel):
    id: str
    audio_ref: str
    duration: float = Field(ge=0.0)
    created_at: str
    title: str = ""
    status: NoteStatus = "pending"
    transcript: Optional[str] = None
    error: Optional[str] = None


# -----------------------------------------------------------------------------
# Property listing. Every field is optional: None means "unknown".
# -----------------------------------------------------------------------------


class Price(WireModel):
    amount: Optional[float] = None
    currency: Optional[str] = None
    includes_agency_fees: Optional[bool] = None
    agency_fee_percentage: Optional[float] = None


class Address(WireModel):
    street: Optional[str] = None
    postal_code: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class Room(WireModel):
    type: RoomType
    surface: Optional[float] = None
    floor_level: Optional[int] = None
    floor_covering: Optional[FloorCovering] = None
    exposition: Optional[List[Exposition]] = None
    features: Optional[List[str]] = None


class OutdoorSpace(WireModel):
    type: Optional[OutdoorSpaceType] = None
    surface: Optional[float] = None
    is_fenced: Optional[bool] = None
    has_pool: Optional[bool] = None
    pool_dimensions: Optional[str] = None
    orientation: Optional[List[Exposition]] = None


class Kitchen(WireModel):
    is_equipped: Optional[bool] = None
    type: Optional[KitchenLayout] = None
    appliances: Optional[List[str]] = None


class Heating(WireModel):
    main_type: Optional[HeatingType] = None
    distribution: Optional[HeatingDistribution] = None
    has_air_conditioning: Optional[bool] = None


class Windows(WireModel):
    glazing_type: Optional[GlazingType] = None
    frame_material: Optional[FrameMaterial] = None


class Parking(WireModel):
    has_parking: Optional[bool] = None
    type: Optional[ParkingType] = None
    number_of_spaces: Optional[int] = None


class EnergyPerformance(WireModel):
    dpe_class: Optional[EnergyClass] = None
    ges_class: Optional[EnergyClass] = None
    estimated_annual_energy_cost: Optional[float] = None


class Property(WireModel):
    listing_title: Optional[str] = None
    description: Optional[str] = None
    property_type: Optional[PropertyType] = None
    status: Optional[ListingStatus] = None

    price: Optional[Price] = None
    annual_property_tax: Optional[float] = None
    condominium_fees: Optional[float] = None

    address: Optional[Address] = None

    living_area: Optional[float] = None
    total_plot_area: Optional[float] = None
    number_of_floors_in_building: Optional[int] = None
    property_floor_level: Optional[int] = None
    has_elevator: Optional[bool] = None
    year_of_construction: Optional[int] = None
    last_renovation_year: Optional[int] = None
    overall_condition: Optional[Condition] = None

    rooms: Optional[List[Room]] = Field(default=None, json_schema_extra={"merge": "room_list"})
    total_bedrooms: Optional[int] = None
    total_bathrooms: Optional[int] = None
    outdoor_spaces: Optional[List[OutdoorSpace]] = None

    kitchen: Optional[Kitchen] = None
    heating: Optional[Heating] = None
    amenities: Optional[List[str]] = None
    windows: Optional[Windows] = None
    insulation_type: Optional[InsulationType] = None
    roof_condition: Optional[Condition] = None
    parking: Optional[Parking] = None
    has_cellar: Optional[bool] = None

    energy_performance: Optional[EnergyPerformance] = None


# An extraction result after unknown fields were stripped. Same shape as the
# canonical record; absent fields mean "not mentioned".
PartialProperty = Property


# -----------------------------------------------------------------------------
# Events
# -----------------------------------------------------------------------------


class ConnectedEvent(WireModel):
    type: Literal["connected"] = "connected"


class NoteAddedEvent(WireModel):
    type: Literal["note_added"] = "note_added"
    note: Note


class NoteUpdatedEvent(WireModel):
    type: Literal["note_updated"] = "note_updated"
    note: Note


class NoteDeletedEvent(WireModel):
    type: Literal["note_deleted"] = "note_deleted"
    note_id: str


class PropertyUpdatedEvent(WireModel):
    type: Literal["property_updated"] = "property_updated"
    listing: Optional[Property] = Field(default=None, alias="property")

    def to_payload(self) -> dict[str, Any]:
        # A reset is broadcast as an explicit null property.
        return {
            "type": self.type,
            "property": self.listing.to_payload() if self.listing is not None else None,
        }


Event = Annotated[
    Union[
        ConnectedEvent,
        NoteAddedEvent,
        NoteUpdatedEvent,
        NoteDeletedEvent,
        PropertyUpdatedEvent,
    ],
    Field(discriminator="type"),
]
