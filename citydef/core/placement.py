"""
World-space resolution for a normalized, packed document.

Pure functions: each takes a document entity plus the town origin and returns
the plain-data placement the world builder consumes. Nothing here checks
forbidden zones; that policy belongs to the orchestrator.
"""
from __future__ import annotations

import math
from typing import List, Optional, Sequence

import bittensor as bt

from citydef.constants import (
    BUILDING_DEPTH_DEFAULT,
    BUILDING_DEPTH_MAX,
    BUILDING_DEPTH_MIN,
    BUILDING_HEIGHT_DEFAULT,
    BUILDING_HEIGHT_MAX,
    BUILDING_HEIGHT_MIN,
    BUILDING_SETBACK,
    BUILDING_STREET_END_INSET,
    BUILDING_WIDTH_DEFAULT,
    BUILDING_WIDTH_MAX,
    BUILDING_WIDTH_MIN,
    DEFAULT_STREET_NAME,
    DEFAULT_WALL_COLOR,
    FALLBACK_STREET_LENGTH,
    GROUND_MIN_SIZE,
    GROUND_PADDING,
    GROUND_STREET_MARGIN,
    NPC_RADIUS_DEFAULT,
    NPC_SPEED_DEFAULT,
    PROP_HEIGHT_DEFAULT,
    PROP_SCALE_DEFAULT,
    SIDEWALK_WIDTH,
    STREET_WIDTH,
    ZONE_TRIGGER_HEIGHT,
    ZONE_TRIGGER_PADDING,
)
from citydef.protocol import (
    BuildingDef,
    BuildingPlacement,
    GroundPlacement,
    NpcDef,
    NpcPlacement,
    PropDef,
    PropPlacement,
    StreetDef,
    StreetPlacement,
    TownDocument,
    Vec3,
)
from citydef.zones import (
    BUILTIN_PROP_TYPES,
    StreetSide,
    Zone,
    estimated_depth,
    is_outdoor,
    parse_interior,
    parse_side,
    parse_zone,
    zone_display_name,
)

__all__ = [
    "clamp",
    "is_out_of_bounds",
    "effective_streets",
    "ground_placement",
    "street_placement",
    "building_placement",
    "prop_placement",
    "npc_placement",
]

_STREET_Y = 0.01
_SIDEWALK_Y = 0.06
_TRIGGER_Y = 2.0


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def _dim(value: float, default: float, lower: float, upper: float) -> float:
    return clamp(value if value > 0 else default, lower, upper)


def is_out_of_bounds(pos: Vec3, max_world_radius: float) -> bool:
    """True when either horizontal coordinate is non-finite or lies beyond *max_world_radius*."""
    x, z = pos[0], pos[2]
    if not (math.isfinite(x) and math.isfinite(z)):
        return True
    return abs(x) > max_world_radius or abs(z) > max_world_radius


def effective_streets(doc: TownDocument) -> List[StreetDef]:
    """The document's streets, or a single default street when it declares none."""
    if doc.streets:
        return doc.streets
    bt.logging.warning(f"[CityDef] No streets defined in '{doc.name}' — using default street")
    return [StreetDef(name=DEFAULT_STREET_NAME, length=FALLBACK_STREET_LENGTH)]


def ground_placement(streets: Sequence[StreetDef], origin: Vec3) -> GroundPlacement:
    min_x = max_x = min_z = max_z = 0.0
    half_w = STREET_WIDTH / 2.0 + SIDEWALK_WIDTH + GROUND_STREET_MARGIN
    for s in streets:
        half_len = s.length / 2.0
        min_x = min(min_x, s.center_x - half_w)
        max_x = max(max_x, s.center_x + half_w)
        min_z = min(min_z, s.center_z - half_len)
        max_z = max(max_z, s.center_z + half_len)

    return GroundPlacement(
        center=(origin[0] + (min_x + max_x) / 2.0, origin[1], origin[2] + (min_z + max_z) / 2.0),
        width=max(max_x - min_x + GROUND_PADDING, GROUND_MIN_SIZE),
        depth=max(max_z - min_z + GROUND_PADDING, GROUND_MIN_SIZE),
    )


def street_placement(street: StreetDef, origin: Vec3) -> StreetPlacement:
    ox, oy, oz = origin
    cx, cz = ox + street.center_x, oz + street.center_z
    sidewalk_dx = STREET_WIDTH / 2.0 + SIDEWALK_WIDTH / 2.0
    zone = parse_zone(street.zone, default=Zone.MainStreet)
    return StreetPlacement(
        name=street.name,
        zone=zone.value,
        center=(cx, oy + _STREET_Y, cz),
        length=street.length,
        width=STREET_WIDTH,
        sidewalk_centers=(
            (cx - sidewalk_dx, oy + _SIDEWALK_Y, cz),
            (cx + sidewalk_dx, oy + _SIDEWALK_Y, cz),
        ),
        sidewalk_width=SIDEWALK_WIDTH,
        trigger_size=(
            STREET_WIDTH + SIDEWALK_WIDTH * 2.0 + ZONE_TRIGGER_PADDING,
            ZONE_TRIGGER_HEIGHT,
            street.length + 5.0,
        ),
        label=zone_display_name(zone),
    )


def building_placement(b: BuildingDef, streets: Sequence[StreetDef], origin: Vec3) -> BuildingPlacement:
    """Resolve a building's world position, facing and clamped size.

    ``Left``/``Right`` buildings sit beside the street at ``zPos``; ``End``
    buildings sit past whichever street end the sign of ``zPos`` points to.
    """
    street = streets[max(0, min(b.street_index, len(streets) - 1))]
    ox, oy, oz = origin
    sx, sz = ox + street.center_x, oz + street.center_z

    width = _dim(b.width, BUILDING_WIDTH_DEFAULT, BUILDING_WIDTH_MIN, BUILDING_WIDTH_MAX)
    height = _dim(b.height, BUILDING_HEIGHT_DEFAULT, BUILDING_HEIGHT_MIN, BUILDING_HEIGHT_MAX)
    depth = _dim(b.depth, BUILDING_DEPTH_DEFAULT, BUILDING_DEPTH_MIN, BUILDING_DEPTH_MAX)

    half_len = street.length / 2.0
    inset = half_len - BUILDING_STREET_END_INSET
    z_pos = clamp(b.z_pos, -inset, inset) if inset > 0 else 0.0

    lateral = STREET_WIDTH / 2.0 + SIDEWALK_WIDTH + max(depth, estimated_depth(b.zone)) / 2.0 + BUILDING_SETBACK

    side = parse_side(b.side) or StreetSide.Left
    if side is StreetSide.Right:
        pos, rot = (sx + lateral, oy, sz + z_pos), -90.0
    elif side is StreetSide.End:
        if z_pos >= 0:
            pos, rot = (sx, oy, sz + half_len + depth / 2.0 + BUILDING_SETBACK), 180.0
        else:
            pos, rot = (sx, oy, sz - half_len - depth / 2.0 - BUILDING_SETBACK), 0.0
    else:
        pos, rot = (sx - lateral, oy, sz + z_pos), 90.0

    zone = parse_zone(b.zone)
    color = tuple(b.color[:3]) if b.color is not None and len(b.color) >= 3 else DEFAULT_WALL_COLOR

    return BuildingPlacement(
        name=b.name,
        zone=zone.value,
        interior=parse_interior(b.interior).value,
        position=pos,
        rotation=rot,
        size=(width, height, depth),
        color=color,
        agent_id=b.agent_id or None,
        has_door=not is_outdoor(zone),
    )


def prop_placement(p: PropDef, origin: Vec3) -> Optional[PropPlacement]:
    """``None`` for untyped props; they cannot be resolved by any builder."""
    if not p.type:
        return None
    return PropPlacement(
        type=p.type,
        position=(origin[0] + p.x, origin[1], origin[2] + p.z),
        yaw=p.yaw,
        height=p.height if p.height > 0 else PROP_HEIGHT_DEFAULT,
        scale=p.scale if p.scale > 0 else PROP_SCALE_DEFAULT,
        builtin=p.type in BUILTIN_PROP_TYPES,
    )


def npc_placement(n: NpcDef, origin: Vec3) -> Optional[NpcPlacement]:
    if not n.prefab or not n.name:
        return None
    return NpcPlacement(
        prefab=n.prefab,
        name=n.name,
        position=(origin[0] + n.x, origin[1], origin[2] + n.z),
        speed=n.speed if n.speed > 0 else NPC_SPEED_DEFAULT,
        radius=n.radius if n.radius > 0 else NPC_RADIUS_DEFAULT,
        role=n.role,
        greeting=n.greeting,
        personality=n.personality,
    )
