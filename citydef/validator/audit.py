"""
Pre-flight audit of generator output.

The audit runs on the repaired but *not* normalized document so that every
message describes what the generator actually wrote. Messages are fed back to
the generator verbatim; their wording is part of the interface.

Nothing here raises for bad content and nothing mutates the document.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Optional

from citydef.core.parser import CityDefParseError, decode_json
from citydef.protocol import TownDocument
from citydef.zones import VALID_BUILDING_ZONES, VALID_INTERIORS, VALID_SIDES, infer_zone

__all__ = ["AuditConfig", "AuditResult", "audit_city_def", "audit_gate"]

_SIDE_HINT = 'Must be "Left", "Right", or "End"'
NESTED_POSITION_WARNING = (
    'WRONG FORMAT: Buildings use nested "position" objects. '
    'Use flat fields instead: "side": "Left", "zPos": 0, "streetIndex": 0'
)


def _folded(values: Iterable[str]) -> FrozenSet[str]:
    return frozenset(v.lower() for v in values)


@dataclass(frozen=True)
class AuditConfig:
    """Caller-owned validity sets.

    ``valid_prefabs`` of ``None`` disables NPC prefab checking;
    ``additional_zones`` extends the built-in building zones.
    """

    valid_prefabs: Optional[FrozenSet[str]] = None
    additional_zones: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def zones(self) -> FrozenSet[str]:
        return _folded(VALID_BUILDING_ZONES) | _folded(self.additional_zones)


class AuditResult(list):
    """Ordered audit findings; empty means safe to normalize, pack and build."""

    @property
    def ok(self) -> bool:
        return not self

    def as_feedback(self) -> str:
        """Bullet list suitable for pasting into a corrective prompt."""
        if not self:
            return "CityDef OK"
        return "CityDef has problems:\n" + "\n".join(f"- {e}" for e in self)


def _audit_streets(doc: TownDocument, errors: AuditResult) -> None:
    if not doc.streets:
        errors.append('Missing "streets" array (need at least 1 street)')
        return
    for i, s in enumerate(doc.streets):
        if not s.name:
            errors.append(f'streets[{i}]: missing "name"')
        if not s.has_centerline and not s.has_polyline:
            errors.append(
                f'streets[{i}] "{s.name}": needs either (centerX,centerZ,length) '
                f'or (points array with 2+ points)'
            )


def _audit_buildings(doc: TownDocument, zones: FrozenSet[str], errors: AuditResult) -> None:
    if not doc.buildings:
        errors.append('Missing "buildings" array (need at least 1 building)')
        return

    sides = _folded(VALID_SIDES)
    interiors = _folded(VALID_INTERIORS)
    any_nested = False
    for i, b in enumerate(doc.buildings):
        label = f'buildings[{i}] "{b.name}"'
        if not b.name:
            errors.append(f'buildings[{i}]: missing "name"')

        any_nested = any_nested or b.has_nested_position

        if not b.zone:
            inferred = infer_zone(b.interior, b.name)
            errors.append(
                f'{label}: missing "zone" field. Should be "{inferred}" based on interior/name. '
                f'Add: "zone": "{inferred}"'
            )
        elif b.zone.lower() not in zones:
            errors.append(f'{label}: unknown zone "{b.zone}".')

        if not b.side:
            if not b.has_nested_position:
                errors.append(f'{label}: missing "side" field. {_SIDE_HINT}')
        elif b.side.lower() not in sides:
            errors.append(f'{label}: invalid side "{b.side}". {_SIDE_HINT}')

        if b.interior and b.interior.lower() not in interiors:
            errors.append(f'{label}: unknown interior "{b.interior}".')

    if any_nested:
        errors.append(NESTED_POSITION_WARNING)


def _audit_npcs(doc: TownDocument, valid_prefabs: Optional[FrozenSet[str]], errors: AuditResult) -> None:
    for i, n in enumerate(doc.npcs):
        if not n.prefab:
            errors.append(f'npcs[{i}]: missing "prefab"')
        elif valid_prefabs is not None and n.prefab not in valid_prefabs:
            errors.append(f'npcs[{i}] "{n.name}": unknown prefab "{n.prefab}".')
        if not n.name:
            errors.append(f'npcs[{i}]: missing "name"')


def audit_city_def(text: str, config: Optional[AuditConfig] = None) -> AuditResult:
    """Validate raw CityDef text. Returns the findings; an empty result means valid."""
    config = config or AuditConfig()
    errors = AuditResult()

    try:
        data, _ = decode_json(text)
    except CityDefParseError as e:
        errors.append(str(e))
        return errors

    if data is None:
        errors.append("JSON parsed to null")
        return errors
    if not isinstance(data, dict):
        errors.append(f"JSON parse error: expected an object, got {type(data).__name__}")
        return errors

    doc = TownDocument.from_dict(data)
    if not doc.name:
        errors.append('Missing required field: "name"')

    _audit_streets(doc, errors)
    _audit_buildings(doc, config.zones, errors)
    _audit_npcs(doc, config.valid_prefabs, errors)
    return errors


def audit_gate(text: str, config: Optional[AuditConfig] = None) -> bool:
    return audit_city_def(text, config).ok
