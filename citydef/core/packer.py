"""
Plot-based auto-packing.

Buildings that share a ``(street, side)`` pair are laid out contiguously along
the street, centered on its midpoint, in the order of their declared ``zPos``.
A street too short for its occupants is lengthened; it never shrinks.
``End`` buildings are not packed; placement puts them past a street end.
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Tuple

import bittensor as bt
import numpy as np

from citydef.constants import PLOT_GUTTER, STREET_END_MARGIN, STREET_EXTENSION_MARGIN
from citydef.protocol import BuildingDef, TownDocument
from citydef.zones import StreetSide, parse_side, plot_width

__all__ = ["PackReport", "auto_pack", "group_key", "packing_groups", "group_overlaps"]

GroupKey = Tuple[int, StreetSide]


@dataclass(slots=True)
class PackReport:
    street_index: int
    side: StreetSide
    count: int
    total_width: float
    extended: bool


def group_key(b: BuildingDef, n_streets: int) -> GroupKey:
    """Packing key; unknown or missing sides pack (and place) as ``Left``."""
    side = parse_side(b.side) or StreetSide.Left
    return max(0, min(b.street_index, n_streets - 1)), side


def packing_groups(doc: TownDocument) -> Dict[GroupKey, List[int]]:
    """Building indices per ``(street, side)``, ``End`` excluded, in document order."""
    groups: Dict[GroupKey, List[int]] = defaultdict(list)
    if not doc.streets:
        return groups
    for i, b in enumerate(doc.buildings):
        key = group_key(b, len(doc.streets))
        if key[1] is StreetSide.End:
            continue
        groups[key].append(i)
    return groups


def auto_pack(doc: TownDocument) -> List[PackReport]:
    """Assign non-overlapping ``zPos`` values in place; returns one report per packed group."""
    reports: List[PackReport] = []
    if not doc.buildings or not doc.streets:
        return reports

    for (street_index, side), members in packing_groups(doc).items():
        if len(members) <= 1:
            continue

        # sorted() is stable: equal zPos keep document order
        members = sorted(members, key=lambda i: doc.buildings[i].z_pos)
        widths = np.array([plot_width(doc.buildings[i].zone) for i in members], dtype=float)
        total = float(widths.sum() + PLOT_GUTTER * (len(members) - 1))

        street = doc.streets[street_index]
        extended = total > street.length - STREET_END_MARGIN
        if extended:
            street.length = total + STREET_EXTENSION_MARGIN
            bt.logging.debug(
                f"[CityDefParser] Auto-extended street '{street.name}' to length "
                f"{street.length:.0f} for {len(members)} buildings"
            )

        # left edge of each plot = -total/2 + sum of the plots (and gutters) before it
        lefts = -total / 2.0 + np.concatenate(([0.0], np.cumsum(widths + PLOT_GUTTER)[:-1]))
        for i, z in zip(members, lefts + widths / 2.0):
            doc.buildings[i].z_pos = float(z)

        bt.logging.debug(
            f"[CityDefParser] Auto-packed {len(members)} buildings on {street_index}_{side.value.lower()} "
            f"(total width: {total:.0f})"
        )
        reports.append(PackReport(street_index, side, len(members), total, extended))

    return reports


def group_overlaps(doc: TownDocument) -> List[Tuple[str, str]]:
    """Adjacent building pairs in a packing group whose plots plus gutter overlap."""
    overlaps: List[Tuple[str, str]] = []
    for members in packing_groups(doc).values():
        ordered = sorted(members, key=lambda i: doc.buildings[i].z_pos)
        for a, b in zip(ordered, ordered[1:]):
            ba, bb = doc.buildings[a], doc.buildings[b]
            right_edge = ba.z_pos + plot_width(ba.zone) / 2.0 + PLOT_GUTTER
            left_edge = bb.z_pos - plot_width(bb.zone) / 2.0
            if right_edge > left_edge + 1e-6:
                overlaps.append((ba.name, bb.name))
    return overlaps
