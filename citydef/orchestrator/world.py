"""
World-construction collaborator.

The orchestrator never touches a scene graph. It hands a :class:`WorldBuilder`
plain placement records and reads back a success flag. A real engine binding
subclasses :class:`WorldBuilder`; :class:`RecordingWorldBuilder` keeps
everything in memory for headless runs and tests.
"""
from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional

import bittensor as bt

from citydef.protocol import (
    BuildingPlacement,
    GroundPlacement,
    NpcPlacement,
    PropPlacement,
    StreetPlacement,
    Vec3,
)

__all__ = ["WorldBuilder", "BuiltTown", "RecordingWorldBuilder"]


class WorldBuilder(abc.ABC):
    """Scene construction interface consumed by :class:`~citydef.orchestrator.spawner.TownSpawner`.

    Entity methods return ``True`` when something was created. Raising is
    allowed; the orchestrator logs the error and moves on to the next entity.
    """

    @abc.abstractmethod
    def create_town(self, name: str, origin: Vec3) -> None: ...

    @abc.abstractmethod
    def remove_town(self, name: str) -> None: ...

    @abc.abstractmethod
    def build_ground(self, town: str, ground: GroundPlacement) -> None: ...

    @abc.abstractmethod
    def build_street(self, town: str, street: StreetPlacement) -> None: ...

    @abc.abstractmethod
    def build_building(self, town: str, building: BuildingPlacement) -> bool: ...

    @abc.abstractmethod
    def spawn_prop(self, town: str, prop: PropPlacement) -> bool: ...

    @abc.abstractmethod
    def spawn_npc(self, town: str, npc: NpcPlacement) -> bool: ...


@dataclass
class BuiltTown:
    name: str
    origin: Vec3
    ground: Optional[GroundPlacement] = None
    streets: List[StreetPlacement] = field(default_factory=list)
    buildings: List[BuildingPlacement] = field(default_factory=list)
    props: List[PropPlacement] = field(default_factory=list)
    npcs: List[NpcPlacement] = field(default_factory=list)
    agents: Dict[str, str] = field(default_factory=dict)    # building name -> agent id
    zone_labels: List[str] = field(default_factory=list)
    doors: List[str] = field(default_factory=list)         # buildings with an enter trigger


class RecordingWorldBuilder(WorldBuilder):
    """In-memory builder.

    Built-in prop shorthands always succeed; any other prop type succeeds only
    when listed in *known_prefabs*, mirroring a prefab library lookup.
    """

    def __init__(self, known_prefabs: Iterable[str] = ()):
        self.known_prefabs: FrozenSet[str] = frozenset(known_prefabs)
        self.towns: Dict[str, BuiltTown] = {}
        self.removed: List[str] = []

    def create_town(self, name: str, origin: Vec3) -> None:
        self.towns[name] = BuiltTown(name=name, origin=tuple(origin))

    def remove_town(self, name: str) -> None:
        if self.towns.pop(name, None) is not None:
            self.removed.append(name)

    def build_ground(self, town: str, ground: GroundPlacement) -> None:
        self.towns[town].ground = ground

    def build_street(self, town: str, street: StreetPlacement) -> None:
        built = self.towns[town]
        built.streets.append(street)
        built.zone_labels.append(street.label)

    def build_building(self, town: str, building: BuildingPlacement) -> bool:
        built = self.towns[town]
        built.buildings.append(building)
        if building.has_door:
            built.doors.append(building.name)
        if building.agent_id:
            built.agents[building.name] = building.agent_id
        return True

    def spawn_prop(self, town: str, prop: PropPlacement) -> bool:
        if not prop.builtin and prop.type not in self.known_prefabs:
            bt.logging.warning(f"[PropBuilder] Unknown prop type '{prop.type}'")
            return False
        self.towns[town].props.append(prop)
        return True

    def spawn_npc(self, town: str, npc: NpcPlacement) -> bool:
        self.towns[town].npcs.append(npc)
        return True
