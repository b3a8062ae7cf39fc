"""
Schema normalization: collapse the equivalent encodings a generator uses into
one canonical document.

``normalize`` mutates in place and is idempotent; running it on its own output
changes nothing. It never rejects a document.
"""
from __future__ import annotations

from typing import List, Optional

import bittensor as bt

from citydef.constants import (
    DEFAULT_STREET_LENGTH,
    STREET_CENTER_LIMIT,
    STREET_MAX_LENGTH,
    STREET_MIN_LENGTH,
    WANDERING_NPC_NAME,
    WANDERING_NPC_RADIUS,
    WANDERING_NPC_SPEED,
    WANDERING_NPC_SPREAD,
)
from citydef.protocol import BuildingDef, NpcDef, StreetDef, TownDocument
from citydef.zones import StreetSide, infer_zone

__all__ = ["normalize", "nearest_street_index"]


def _clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def nearest_street_index(streets: List[StreetDef], x: float) -> int:
    """Index of the street whose centerline X is closest to *x* (first wins ties)."""
    best, best_dist = 0, float("inf")
    for i, street in enumerate(streets):
        dist = abs(x - street.center_x)
        if dist < best_dist:
            best, best_dist = i, dist
    return best


def _convert_wandering_npcs(doc: TownDocument) -> None:
    if not doc.wandering_npcs or doc.npcs:
        return

    z = 0.0
    for wn in doc.wandering_npcs:
        if not wn.prefab:
            continue
        doc.npcs.append(NpcDef(
            prefab=wn.prefab,
            name=WANDERING_NPC_NAME,
            x=0.0,
            z=z,
            speed=WANDERING_NPC_SPEED,
            radius=WANDERING_NPC_RADIUS,
        ))
        z += WANDERING_NPC_SPREAD
    bt.logging.debug(f"[CityDefParser] Converted {len(doc.npcs)} wanderingNpcs → npcs")


def _normalize_street(street: StreetDef) -> None:
    if street.has_polyline and street.length == 0 and street.center_x == 0 and street.center_z == 0:
        xs = [p.x for p in street.points]
        zs = [p.z for p in street.points]
        street.center_x = (min(xs) + max(xs)) / 2.0
        street.center_z = (min(zs) + max(zs)) / 2.0
        street.length = max(max(xs) - min(xs), max(zs) - min(zs))
        bt.logging.debug(
            f"[CityDefParser] Normalized street '{street.name}' from points → "
            f"center=({street.center_x},{street.center_z}), length={street.length}"
        )

    if street.length <= 0:
        street.length = DEFAULT_STREET_LENGTH
    street.length = _clamp(street.length, STREET_MIN_LENGTH, STREET_MAX_LENGTH)
    street.center_x = _clamp(street.center_x, -STREET_CENTER_LIMIT, STREET_CENTER_LIMIT)
    street.center_z = _clamp(street.center_z, -STREET_CENTER_LIMIT, STREET_CENTER_LIMIT)


def _place_from_nested_position(b: BuildingDef, streets: List[StreetDef]) -> None:
    # End is never inferred here; it has to be spelled out in "side".
    b.street_index = nearest_street_index(streets, b.position.x)
    street: Optional[StreetDef] = streets[b.street_index] if streets else None
    center_x = street.center_x if street is not None else 0.0
    center_z = street.center_z if street is not None else 0.0

    b.side = StreetSide.Left.value if b.position.x < center_x else StreetSide.Right.value
    b.z_pos = b.position.z - center_z
    bt.logging.debug(
        f"[CityDefParser] Normalized building '{b.name}' from position"
        f"({b.position.x},{b.position.z}) → street {b.street_index}, side={b.side}, zPos={b.z_pos}"
    )


def normalize(doc: TownDocument) -> TownDocument:
    """Canonicalize *doc* in place and return it."""
    _convert_wandering_npcs(doc)

    for street in doc.streets:
        _normalize_street(street)

    for b in doc.buildings:
        if not b.zone:
            b.zone = infer_zone(b.interior, b.name)
            bt.logging.debug(f"[CityDefParser] Inferred zone '{b.zone}' for '{b.name}' (interior={b.interior})")

        if b.has_nested_position and not b.side and b.z_pos == 0:
            _place_from_nested_position(b, doc.streets)

    for entity in (*doc.npcs, *doc.props):
        if entity.position is not None and not entity.position.is_zero and entity.x == 0 and entity.z == 0:
            entity.x = entity.position.x
            entity.z = entity.position.z

    return doc
