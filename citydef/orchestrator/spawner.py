"""
citydef.orchestrator.spawner
────────────────────────────
Turns CityDef text into a built town.

Pipeline per document
---------------------
1. repair → deserialize → normalize → auto-pack (parse errors propagate)
2. resolve the origin: ``worldX/worldZ`` beat the caller's origin; a
   forbidden origin is nudged once if a nudge hook exists
3. same-name town already built: ``edit`` reuses its origin, otherwise it is
   treated as stale; either way the old town and its saved record go
4. place streets, buildings, props and NPCs (each category capped); an
   entity at a forbidden position, or one the builder fails on, is skipped
5. persist the accepted text with the final origin
6. return the summary and the origin so the next town can be offset

Name-keyed state (built-town registry + store) is guarded by one lock per
town name; step 3-5 is a read-remove-write sequence.
"""
from __future__ import annotations

import math
import threading
import weakref
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional, Tuple

import bittensor as bt

from citydef.core.normalizer import normalize
from citydef.core.packer import auto_pack
from citydef.core.parser import load_document
from citydef.core.placement import (
    building_placement,
    effective_streets,
    ground_placement,
    npc_placement,
    prop_placement,
    street_placement,
)
from citydef.core.sanitizer import extract_citydef_blocks
from citydef.orchestrator.policy import OrchestratorConfig
from citydef.orchestrator.store import TownStore
from citydef.orchestrator.world import RecordingWorldBuilder, WorldBuilder
from citydef.protocol import BuildSummary, TownDocument, Vec3
from citydef.utils.logging import ColoredLogger, log_event
from citydef.validator.audit import AuditResult, audit_city_def

__all__ = ["TownSpawner"]

CityBuiltListener = Callable[[str, str], None]


def _as_vec3(origin) -> Vec3:
    """Accept ``(x, y, z)`` or ``(x, z)``."""
    values = tuple(float(v) for v in origin)
    if not all(math.isfinite(v) for v in values):
        raise ValueError(f"origin must be finite, got {origin!r}")
    if len(values) == 2:
        return (values[0], 0.0, values[1])
    return values[:3]


class TownSpawner:
    """Per-world orchestrator owning the built-town registry and the store."""

    def __init__(
        self,
        builder: Optional[WorldBuilder] = None,
        store: Optional[TownStore] = None,
        config: Optional[OrchestratorConfig] = None,
    ):
        self.builder = builder if builder is not None else RecordingWorldBuilder()
        self.store = store if store is not None else TownStore()
        self.config = config or OrchestratorConfig()
        self.on_city_built: List[CityBuiltListener] = []

        self._registry: Dict[str, Vec3] = {}
        # entries vanish once no build of that name holds the lock
        self._locks: weakref.WeakValueDictionary = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    # ------------------------------------------------------------------ #
    # Registry helpers
    # ------------------------------------------------------------------ #
    @contextmanager
    def _town_lock(self, name: str) -> Iterator[None]:
        with self._locks_guard:
            lock = self._locks.get(name)
            if lock is None:
                lock = self._locks[name] = threading.Lock()
        with lock:
            yield

    def built_origin(self, name: str) -> Optional[Vec3]:
        """Origin of the currently built town called *name*, if any."""
        return self._registry.get(name)

    @property
    def built_towns(self) -> List[str]:
        return list(self._registry)

    def _forbidden(self, pos: Vec3) -> bool:
        return self.config.policy.forbids(pos)

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    def audit(self, text: str) -> AuditResult:
        """Audit *text* with this orchestrator's zone and prefab configuration."""
        return audit_city_def(text, self.config.audit)

    def resolve_origin(self, doc: TownDocument, caller_origin: Vec3) -> Vec3:
        origin = _as_vec3(caller_origin)
        if doc.absolute_origin is not None:
            origin = (doc.absolute_origin[0], 0.0, doc.absolute_origin[1])

        policy = self.config.policy
        if policy.nudge is not None and self._forbidden(origin):
            nudged = _as_vec3(policy.nudge(origin))
            bt.logging.info(f"[CityDef] Origin {origin} is forbidden; nudged to {nudged}")
            origin = nudged
        return origin

    def build(self, text: str, origin) -> Tuple[BuildSummary, Vec3]:
        """Build one town from CityDef *text*; returns ``(summary, final_origin)``.

        Raises
        ------
        CityDefParseError
            When *text* cannot be repaired into a named document.
        """
        doc, accepted = load_document(text)
        normalize(doc)
        auto_pack(doc)

        world_origin = self.resolve_origin(doc, origin)

        with self._town_lock(doc.name):
            existing = self._registry.pop(doc.name, None)
            if existing is not None:
                if doc.edit:
                    bt.logging.info(f"[CityDef] Edit mode — replacing '{doc.name}' at {existing}")
                    world_origin = existing
                else:
                    bt.logging.info(f"[CityDef] Duplicate prevention — removing old '{doc.name}'")
                self.builder.remove_town(doc.name)
                log_event(f"removed town={doc.name} edit={doc.edit}")
            self.store.delete(doc.name)

            summary = self._construct(doc, world_origin)
            self.store.save(accepted, world_origin)

        ColoredLogger.success(f"[CityDef] {summary}")
        log_event(f"built town={doc.name} origin={world_origin} "
                  f"buildings={summary.buildings} props={summary.props} npcs={summary.npcs}")
        return summary, world_origin

    def build_no_save(self, text: str, origin) -> BuildSummary:
        """Build without touching the store; used to restore saved towns."""
        doc, _ = load_document(text)
        normalize(doc)
        auto_pack(doc)
        world_origin = _as_vec3(origin)

        with self._town_lock(doc.name):
            if self._registry.pop(doc.name, None) is not None:
                self.builder.remove_town(doc.name)
            summary = self._construct(doc, world_origin)

        bt.logging.info(
            f"[CityDef] Restored {doc.name} — {summary.buildings} buildings, "
            f"{summary.props} props, {summary.npcs} NPCs"
        )
        return summary

    def rebuild_at_origin(self, name: str, origin) -> bool:
        """Move a saved town: rebuild it at *origin* and update its record."""
        saved = self.store.find(name)
        if saved is None:
            bt.logging.warning(f"[CityDef] RebuildAtOrigin: no saved city found for '{name}'")
            return False

        new_origin = _as_vec3(origin)
        self.store.update_origin(name, new_origin)
        self.build_no_save(saved.document_text, new_origin)
        bt.logging.info(f"[CityDef] Rebuilt '{name}' at {new_origin}")
        return True

    def restore_saved(self) -> List[str]:
        """Rebuild every saved town at its saved origin; returns the restored names."""
        restored: List[str] = []
        for saved in self.store.iter_saved():
            try:
                restored.append(self.build_no_save(saved.document_text, saved.origin).name)
            except Exception as e:
                bt.logging.warning(f"[CityDef] Failed to restore saved city: {e}")
        if restored:
            bt.logging.info(f"[CityDef] Loaded {len(restored)} saved cities")
        return restored

    def process_response(self, response: str, origin) -> Optional[str]:
        """Build every CityDef block found in a generator response.

        Blocks are built in order; each town's final origin, shifted by
        ``town_spacing`` on X, is the next block's default origin. A failing
        block contributes an error line and does not stop the batch.
        Returns ``None`` when the response holds no CityDef block.
        """
        blocks = extract_citydef_blocks(response)
        if not blocks:
            return None

        next_origin = _as_vec3(origin)
        lines: List[str] = []
        for text in blocks:
            summary: Optional[BuildSummary] = None
            try:
                summary, town_origin = self.build(text, next_origin)
                lines.append(str(summary))
                next_origin = (town_origin[0] + self.config.town_spacing, town_origin[1], town_origin[2])
            except Exception as e:
                bt.logging.error(f"[CityDef] Failed to build from response: {e}")
                lines.append(f"[CityDef failed: {e}]")

            # listeners run outside the build guard so their errors aren't blamed on the builder
            if summary is not None:
                for listener in list(self.on_city_built):
                    try:
                        listener(str(summary), text)
                    except Exception as e:
                        bt.logging.error(f"[CityDef] OnCityBuilt subscriber error: {e}")

        return "\n".join(lines)

    # ------------------------------------------------------------------ #
    # Construction
    # ------------------------------------------------------------------ #
    def _attempt(self, what: str, fn, *args) -> bool:
        try:
            return bool(fn(*args))
        except Exception as e:
            bt.logging.warning(f"[CityDef] World builder failed on {what}: {e}")
            return False

    def _construct(self, doc: TownDocument, origin: Vec3) -> BuildSummary:
        cfg = self.config
        name = doc.name

        self.builder.create_town(name, origin)
        self._registry[name] = origin

        streets = effective_streets(doc)
        self._attempt("ground", self.builder.build_ground, name, ground_placement(streets, origin))
        for street in streets:
            self._attempt(f"street '{street.name}'", self.builder.build_street, name, street_placement(street, origin))

        buildings = 0
        for b in doc.buildings[: cfg.max_buildings]:
            placement = building_placement(b, streets, origin)
            if self._forbidden(placement.position):
                bt.logging.warning(
                    f"[CityDef] Skipping building '{b.name}' — overlaps forbidden zone at {placement.position}"
                )
                continue
            if self._attempt(f"building '{b.name}'", self.builder.build_building, name, placement):
                buildings += 1

        props = 0
        for p in doc.props[: cfg.max_props]:
            placement = prop_placement(p, origin)
            if placement is None:
                continue
            if self._forbidden(placement.position):
                bt.logging.warning(
                    f"[CityDef] Skipping prop '{p.type}' — overlaps forbidden zone at {placement.position}"
                )
                continue
            if self._attempt(f"prop '{p.type}'", self.builder.spawn_prop, name, placement):
                props += 1

        npcs = 0
        for n in doc.npcs[: cfg.max_npcs]:
            placement = npc_placement(n, origin)
            if placement is None:
                continue
            if self._forbidden(placement.position):
                bt.logging.warning(
                    f"[CityDef] Skipping NPC '{n.name}' — overlaps forbidden zone at {placement.position}"
                )
                continue
            if self._attempt(f"NPC '{n.name}'", self.builder.spawn_npc, name, placement):
                npcs += 1

        return BuildSummary(name=name, buildings=buildings, props=props, npcs=npcs, origin=origin)
