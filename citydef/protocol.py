# citydef/protocol.py
# -----------------------------------------------------------------------------
#  CityDef – town documents produced by an upstream generator
# -----------------------------------------------------------------------------
"""Data model for CityDef documents and the records derived from them.

Generators emit either the canonical flat encoding or a handful of nested
variants; both deserialize into the same dataclasses here:

* **Canonical** – ``{"side": "Left", "zPos": -20, "streetIndex": 0}``
* **Nested**    – ``{"position": {"x": -5, "z": -20}}``

Deserialization is *lenient*: unknown keys are dropped, wrong-typed scalars
fall back to their zero value and missing collections become empty lists.
Rejecting a document is the auditor's job, not the data model's.
"""
from __future__ import annotations

import hashlib
import math
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

import msgpack

Vec3 = Tuple[float, float, float]

# --------------------------------------------------------------------------- #
# 1.  Lenient field coercion                                                   #
# --------------------------------------------------------------------------- #


def _float(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    try:
        if isinstance(value, (int, float)):
            number = float(value)
        elif isinstance(value, str):
            number = float(value.strip())
        else:
            return 0.0
    except (OverflowError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _int(value: Any) -> int:
    return int(_float(value))


def _str(value: Any) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


def _list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _maps(value: Any) -> List[Mapping[str, Any]]:
    return [v for v in _list(value) if isinstance(v, Mapping)]


# --------------------------------------------------------------------------- #
# 2.  Document dataclasses                                                     #
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class Pos:
    x: float = 0.0
    z: float = 0.0

    @property
    def is_zero(self) -> bool:
        return self.x == 0 and self.z == 0

    @staticmethod
    def from_any(value: Any) -> Optional["Pos"]:
        if not isinstance(value, Mapping):
            return None
        return Pos(_float(value.get("x")), _float(value.get("z")))

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "z": self.z}


@dataclass(slots=True)
class StreetDef:
    name: str = ""
    zone: str = ""
    center_x: float = 0.0
    center_z: float = 0.0
    length: float = 0.0
    points: List[Pos] = field(default_factory=list)

    @property
    def has_centerline(self) -> bool:
        return self.length > 0 or self.center_x != 0 or self.center_z != 0

    @property
    def has_polyline(self) -> bool:
        return len(self.points) >= 2

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "StreetDef":
        return StreetDef(
            name=_str(d.get("name")),
            zone=_str(d.get("zone")),
            center_x=_float(d.get("centerX")),
            center_z=_float(d.get("centerZ")),
            length=_float(d.get("length")),
            points=[Pos(_float(p.get("x")), _float(p.get("z"))) for p in _maps(d.get("points"))],
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "name": self.name,
            "zone": self.zone,
            "centerX": self.center_x,
            "centerZ": self.center_z,
            "length": self.length,
        }
        if self.points:
            out["points"] = [p.to_dict() for p in self.points]
        return out


@dataclass(slots=True)
class BuildingDef:
    name: str = ""
    zone: str = ""
    side: str = ""
    z_pos: float = 0.0
    width: float = 0.0
    height: float = 0.0
    depth: float = 0.0
    color: Optional[List[float]] = None
    interior: str = ""
    street_index: int = 0
    agent_id: str = ""
    position: Optional[Pos] = None

    @property
    def has_nested_position(self) -> bool:
        """True when the generator used ``"position": {x, z}`` with a non-origin value."""
        return self.position is not None and not self.position.is_zero

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "BuildingDef":
        color = d.get("color")
        return BuildingDef(
            name=_str(d.get("name")),
            zone=_str(d.get("zone")),
            side=_str(d.get("side")),
            z_pos=_float(d.get("zPos")),
            width=_float(d.get("width")),
            height=_float(d.get("height")),
            depth=_float(d.get("depth")),
            color=[_float(c) for c in color] if isinstance(color, list) else None,
            interior=_str(d.get("interior")),
            street_index=_int(d.get("streetIndex")),
            agent_id=_str(d.get("agentId")),
            position=Pos.from_any(d.get("position")),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "name": self.name,
            "zone": self.zone,
            "side": self.side,
            "zPos": self.z_pos,
            "width": self.width,
            "height": self.height,
            "depth": self.depth,
            "interior": self.interior,
            "streetIndex": self.street_index,
        }
        if self.color is not None:
            out["color"] = list(self.color)
        if self.agent_id:
            out["agentId"] = self.agent_id
        if self.position is not None:
            out["position"] = self.position.to_dict()
        return out


@dataclass(slots=True)
class NpcDef:
    prefab: str = ""
    name: str = ""
    role: str = ""
    greeting: str = ""
    personality: str = ""
    x: float = 0.0
    z: float = 0.0
    speed: float = 0.0
    radius: float = 0.0
    position: Optional[Pos] = None

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "NpcDef":
        return NpcDef(
            prefab=_str(d.get("prefab")),
            name=_str(d.get("name")),
            role=_str(d.get("role")),
            greeting=_str(d.get("greeting")),
            personality=_str(d.get("personality")),
            x=_float(d.get("x")),
            z=_float(d.get("z")),
            speed=_float(d.get("speed")),
            radius=_float(d.get("radius")),
            position=Pos.from_any(d.get("position")),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "prefab": self.prefab,
            "name": self.name,
            "x": self.x,
            "z": self.z,
            "speed": self.speed,
            "radius": self.radius,
        }
        for key in ("role", "greeting", "personality"):
            value = getattr(self, key)
            if value:
                out[key] = value
        if self.position is not None:
            out["position"] = self.position.to_dict()
        return out


@dataclass(slots=True)
class PropDef:
    type: str = ""
    x: float = 0.0
    z: float = 0.0
    yaw: float = 0.0
    height: float = 0.0
    scale: float = 0.0
    position: Optional[Pos] = None

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "PropDef":
        return PropDef(
            type=_str(d.get("type")),
            x=_float(d.get("x")),
            z=_float(d.get("z")),
            yaw=_float(d.get("yaw")),
            height=_float(d.get("height")),
            scale=_float(d.get("scale")),
            position=Pos.from_any(d.get("position")),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "type": self.type,
            "x": self.x,
            "z": self.z,
            "yaw": self.yaw,
            "height": self.height,
            "scale": self.scale,
        }
        if self.position is not None:
            out["position"] = self.position.to_dict()
        return out


@dataclass(slots=True)
class WanderingNpcDef:
    prefab: str = ""


@dataclass(slots=True)
class PaletteDef:
    roof: str = ""
    walls: str = ""
    trim: str = ""


@dataclass(slots=True)
class TownDocument:
    name: str = ""
    edit: bool = False
    world_x: float = 0.0
    world_z: float = 0.0
    streets: List[StreetDef] = field(default_factory=list)
    buildings: List[BuildingDef] = field(default_factory=list)
    npcs: List[NpcDef] = field(default_factory=list)
    props: List[PropDef] = field(default_factory=list)
    wandering_npcs: List[WanderingNpcDef] = field(default_factory=list)
    palette: Optional[PaletteDef] = None

    @property
    def absolute_origin(self) -> Optional[Tuple[float, float]]:
        """Explicit ``(worldX, worldZ)``; ``None`` means "use the caller's origin"."""
        if self.world_x != 0 or self.world_z != 0:
            return (self.world_x, self.world_z)
        return None

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "TownDocument":
        palette = d.get("palette")
        return TownDocument(
            name=_str(d.get("name")),
            edit=_bool(d.get("edit")),
            world_x=_float(d.get("worldX")),
            world_z=_float(d.get("worldZ")),
            streets=[StreetDef.from_dict(s) for s in _maps(d.get("streets"))],
            buildings=[BuildingDef.from_dict(b) for b in _maps(d.get("buildings"))],
            npcs=[NpcDef.from_dict(n) for n in _maps(d.get("npcs"))],
            props=[PropDef.from_dict(p) for p in _maps(d.get("props"))],
            wandering_npcs=[
                WanderingNpcDef(prefab=_str(w.get("prefab")))
                for w in _maps(d.get("wanderingNpcs"))
            ],
            palette=PaletteDef(
                roof=_str(palette.get("roof")),
                walls=_str(palette.get("walls")),
                trim=_str(palette.get("trim")),
            ) if isinstance(palette, Mapping) else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "name": self.name,
            "edit": self.edit,
            "worldX": self.world_x,
            "worldZ": self.world_z,
            "streets": [s.to_dict() for s in self.streets],
            "buildings": [b.to_dict() for b in self.buildings],
            "npcs": [n.to_dict() for n in self.npcs],
            "props": [p.to_dict() for p in self.props],
        }
        if self.wandering_npcs:
            out["wanderingNpcs"] = [{"prefab": w.prefab} for w in self.wandering_npcs]
        if self.palette is not None:
            out["palette"] = asdict(self.palette)
        return out

    # msgpack helpers for hashing / comparison of canonical documents
    def pack(self) -> bytes:
        return msgpack.packb(self.to_dict(), use_bin_type=True)

    @staticmethod
    def unpack(blob: bytes) -> "TownDocument":
        return TownDocument.from_dict(msgpack.unpackb(blob, raw=False))

    @property
    def fingerprint(self) -> str:
        """SHA-256 of the packed document; equal fingerprints mean equal documents."""
        return hashlib.sha256(self.pack()).hexdigest()


# --------------------------------------------------------------------------- #
# 3.  Persistence record                                                       #
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class SavedTown:
    """Accepted document text plus the world origin it was built at."""

    document_text: str
    origin_x: float = 0.0
    origin_y: float = 0.0
    origin_z: float = 0.0

    @property
    def origin(self) -> Vec3:
        return (self.origin_x, self.origin_y, self.origin_z)

    def to_record(self) -> Dict[str, Any]:
        return {
            "documentText": self.document_text,
            "originX": self.origin_x,
            "originY": self.origin_y,
            "originZ": self.origin_z,
        }

    @staticmethod
    def from_record(d: Mapping[str, Any]) -> "SavedTown":
        return SavedTown(
            document_text=_str(d.get("documentText")),
            origin_x=_float(d.get("originX")),
            origin_y=_float(d.get("originY")),
            origin_z=_float(d.get("originZ")),
        )


# --------------------------------------------------------------------------- #
# 4.  World placements handed to the world builder                             #
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class GroundPlacement:
    center: Vec3
    width: float
    depth: float


@dataclass(slots=True)
class StreetPlacement:
    name: str
    zone: str
    center: Vec3
    length: float
    width: float
    sidewalk_centers: Tuple[Vec3, Vec3]
    sidewalk_width: float
    trigger_size: Vec3
    label: str


@dataclass(slots=True)
class BuildingPlacement:
    name: str
    zone: str
    interior: str
    position: Vec3
    rotation: float
    size: Vec3
    color: Tuple[float, float, float]
    agent_id: Optional[str] = None
    has_door: bool = True


@dataclass(slots=True)
class PropPlacement:
    type: str
    position: Vec3
    yaw: float
    height: float
    scale: float
    builtin: bool


@dataclass(slots=True)
class NpcPlacement:
    prefab: str
    name: str
    position: Vec3
    speed: float
    radius: float
    role: str = ""
    greeting: str = ""
    personality: str = ""


@dataclass(slots=True)
class BuildSummary:
    name: str
    buildings: int
    props: int
    npcs: int
    origin: Vec3

    def __str__(self) -> str:
        return f"Built {self.name} — {self.buildings} buildings, {self.props} props, {self.npcs} NPCs"
