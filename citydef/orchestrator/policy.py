"""Caller-supplied placement policy and per-orchestrator configuration."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional

from citydef.constants import MAX_BUILDINGS, MAX_NPCS, MAX_PROPS, MAX_WORLD_RADIUS, TOWN_SPACING
from citydef.core.placement import is_out_of_bounds
from citydef.protocol import Vec3
from citydef.validator.audit import AuditConfig

ForbiddenPredicate = Callable[[Vec3], bool]
NudgeFunction = Callable[[Vec3], Vec3]


@dataclass(frozen=True)
class SpawnPolicy:
    """Where things may go.

    ``is_forbidden`` marks caller-defined no-build regions; anything beyond
    ``max_world_radius`` on either horizontal axis is forbidden regardless.
    ``nudge`` relocates a forbidden town origin and is applied at most once.
    """

    is_forbidden: Optional[ForbiddenPredicate] = None
    nudge: Optional[NudgeFunction] = None
    max_world_radius: float = MAX_WORLD_RADIUS

    def forbids(self, pos: Vec3) -> bool:
        if is_out_of_bounds(pos, self.max_world_radius):
            return True
        return self.is_forbidden is not None and bool(self.is_forbidden(pos))


@dataclass(frozen=True)
class OrchestratorConfig:
    policy: SpawnPolicy = field(default_factory=SpawnPolicy)
    audit: AuditConfig = field(default_factory=AuditConfig)
    max_buildings: int = MAX_BUILDINGS
    max_props: int = MAX_PROPS
    max_npcs: int = MAX_NPCS
    town_spacing: float = TOWN_SPACING
