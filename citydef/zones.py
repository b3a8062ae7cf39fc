"""
Zone, interior and side classifications.

Tables here drive three things: zone inference for buildings that omit a
``zone`` (normalizer and auditor share :func:`infer_zone`), the plot widths
the packer reserves along a street, and the depth estimate placement uses to
push large buildings back from the sidewalk.
"""
from __future__ import annotations

import enum
from typing import Optional, Tuple


class Zone(str, enum.Enum):
    """Building or street classification. Extend via ``AuditConfig.additional_zones``."""

    Wilderness = "Wilderness"
    MainStreet = "MainStreet"
    SecondStreet = "SecondStreet"
    Saloon = "Saloon"
    Bank = "Bank"
    Sheriff = "Sheriff"
    TradingPost = "TradingPost"
    Hotel = "Hotel"
    PostOffice = "PostOffice"
    Church = "Church"
    Blacksmith = "Blacksmith"
    Doctor = "Doctor"
    GeneralStore = "GeneralStore"
    Stables = "Stables"
    Schoolhouse = "Schoolhouse"
    University = "University"
    Library = "Library"
    Theater = "Theater"
    Marketplace = "Marketplace"
    Residential = "Residential"
    Recreation = "Recreation"
    Park = "Park"
    TownSquare = "TownSquare"
    CivicRow = "CivicRow"
    Courthouse = "Courthouse"
    TownLibrary = "TownLibrary"
    Newspaper = "Newspaper"
    FireDept = "FireDept"
    MillLane = "MillLane"
    RanchRoad = "RanchRoad"
    LumberYard = "LumberYard"
    GrainMill = "GrainMill"
    Bakery = "Bakery"
    RanchHouse = "RanchHouse"
    Barn = "Barn"
    FeedStore = "FeedStore"
    TrainStation = "TrainStation"
    Cemetery = "Cemetery"
    Office = "Office"
    Warehouse = "Warehouse"


class InteriorStyle(str, enum.Enum):
    Empty = "Empty"
    Saloon = "Saloon"
    Office = "Office"
    Shop = "Shop"
    Jail = "Jail"
    Hotel = "Hotel"
    Church = "Church"
    Warehouse = "Warehouse"
    School = "School"
    Library = "Library"
    Theater = "Theater"
    Clinic = "Clinic"
    Smithy = "Smithy"


class StreetSide(str, enum.Enum):
    Left = "Left"
    Right = "Right"
    End = "End"


# Zones a building may declare. Street-only zones (MainStreet, CivicRow, ...)
# are not building zones.
VALID_BUILDING_ZONES = frozenset({
    "Saloon", "Bank", "Sheriff", "TradingPost", "Hotel", "PostOffice", "Church",
    "Blacksmith", "Doctor", "GeneralStore", "Stables", "Schoolhouse",
    "Courthouse", "TownLibrary", "Newspaper", "FireDept",
    "LumberYard", "GrainMill", "Bakery", "RanchHouse", "Barn", "FeedStore",
    "TrainStation", "Cemetery", "University", "Library", "Theater", "Marketplace",
    "Residential", "Office", "Warehouse",
})
VALID_INTERIORS = frozenset(s.value for s in InteriorStyle)
VALID_SIDES = frozenset(s.value for s in StreetSide)

OUTDOOR_ZONES = frozenset({
    Zone.MainStreet, Zone.SecondStreet, Zone.Wilderness, Zone.TownSquare,
    Zone.CivicRow, Zone.MillLane, Zone.RanchRoad, Zone.TrainStation, Zone.Cemetery,
})

DEFAULT_ZONE = Zone.GeneralStore

_INTERIOR_TO_ZONE = {
    "saloon": Zone.Saloon,
    "shop": Zone.GeneralStore,
    "jail": Zone.Sheriff,
    "hotel": Zone.Hotel,
    "office": Zone.Office,
    "church": Zone.Church,
    "library": Zone.TownLibrary,
    "clinic": Zone.Doctor,
    "smithy": Zone.Blacksmith,
    "warehouse": Zone.Warehouse,
    "theater": Zone.Theater,
}

# Checked in order; the first keyword found in the lower-cased name wins.
_NAME_KEYWORDS: Tuple[Tuple[Tuple[str, ...], Zone], ...] = (
    (("saloon", "bar", "tavern"), Zone.Saloon),
    (("sheriff", "jail", "marshal"), Zone.Sheriff),
    (("hotel", "inn", "lodge"), Zone.Hotel),
    (("church", "chapel"), Zone.Church),
    (("store", "shop", "general"), Zone.GeneralStore),
    (("bank",), Zone.Bank),
    (("blacksmith", "forge"), Zone.Blacksmith),
    (("stable",), Zone.Stables),
    (("library",), Zone.TownLibrary),
    (("doctor", "clinic"), Zone.Doctor),
    (("courthouse", "court"), Zone.Courthouse),
    (("post office",), Zone.PostOffice),
    (("fire",), Zone.FireDept),
    (("barn",), Zone.Barn),
    (("warehouse",), Zone.Warehouse),
    (("theater", "theatre"), Zone.Theater),
    (("mill",), Zone.GrainMill),
    (("market",), Zone.Marketplace),
)

# Along-street plot widths; anything unlisted gets _DEFAULT_PLOT_WIDTH.
_PLOT_WIDTHS = {
    "church": 20.0, "courthouse": 20.0, "firedept": 20.0, "barn": 20.0, "trainstation": 20.0,
    "hotel": 16.0, "ranchhouse": 16.0, "townlibrary": 16.0, "saloon": 16.0,
}
_DEFAULT_PLOT_WIDTH = 13.0

_ESTIMATED_DEPTHS = {
    "church": 14.0, "barn": 14.0, "trainstation": 14.0,
    "courthouse": 12.0, "firedept": 12.0, "townlibrary": 12.0,
    "saloon": 11.0, "hotel": 11.0, "ranchhouse": 11.0,
}
_DEFAULT_DEPTH = 10.0

_DISPLAY_OVERRIDES = {
    Zone.SecondStreet: "Commerce Row",
    Zone.Saloon: "The Saloon",
    Zone.Bank: "Frontier Savings",
    Zone.Hotel: "Grand Hotel",
    Zone.PostOffice: "Telegraph & Gazette",
    Zone.Doctor: "Doc's Office",
    Zone.Stables: "Livery Stables",
    Zone.FireDept: "Fire Department",
}

# Shorthand prop types the world builder knows how to draw without a prefab.
BUILTIN_PROP_TYPES = frozenset({
    "StreetLamp", "Barrel", "HitchingPost", "WaterTrough", "NoticeBoard",
    "Fountain", "Flagpole", "HayBale", "WoodPile", "CampFire", "WaterTower",
    "Bench", "Horse", "Cart", "PineTree", "OakTree", "Rock", "Crate",
})


def infer_zone(interior: Optional[str], name: Optional[str]) -> str:
    """Best zone guess for a building that omitted ``zone``.

    The interior style is consulted first, then keywords in the display name.
    Falls back to ``GeneralStore`` so the result is always a valid zone.
    """
    if interior:
        zone = _INTERIOR_TO_ZONE.get(interior.lower())
        if zone is not None:
            return zone.value

    if name:
        lower = name.lower()
        for keywords, zone in _NAME_KEYWORDS:
            if any(k in lower for k in keywords):
                return zone.value

    return DEFAULT_ZONE.value


def plot_width(zone: Optional[str]) -> float:
    return _PLOT_WIDTHS.get((zone or "").lower(), _DEFAULT_PLOT_WIDTH)


def estimated_depth(zone: Optional[str]) -> float:
    return _ESTIMATED_DEPTHS.get((zone or "").lower(), _DEFAULT_DEPTH)


def _lookup(enum_cls, text: Optional[str]):
    if not text:
        return None
    key = text.strip().lower()
    for member in enum_cls:
        if member.value.lower() == key:
            return member
    return None


def parse_zone(text: Optional[str], default: Zone = Zone.Wilderness) -> Zone:
    """Case-insensitive zone lookup; *default* for empty or unknown text."""
    zone = _lookup(Zone, text)
    return zone if zone is not None else default


def parse_interior(text: Optional[str]) -> InteriorStyle:
    style = _lookup(InteriorStyle, text)
    return style if style is not None else InteriorStyle.Empty


def parse_side(text: Optional[str]) -> Optional[StreetSide]:
    return _lookup(StreetSide, text)


def zone_display_name(zone: Zone) -> str:
    """Human-readable zone name, e.g. ``GrainMill`` -> ``Grain Mill``."""
    if zone in _DISPLAY_OVERRIDES:
        return _DISPLAY_OVERRIDES[zone]
    out = []
    for i, ch in enumerate(zone.value):
        if i > 0 and ch.isupper():
            out.append(" ")
        out.append(ch)
    return "".join(out)


def is_outdoor(zone: Zone) -> bool:
    return zone in OUTDOOR_ZONES
