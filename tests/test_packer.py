from __future__ import annotations

import random

import pytest

from citydef.constants import PLOT_GUTTER, STREET_END_MARGIN, STREET_EXTENSION_MARGIN
from citydef.core.packer import auto_pack, group_overlaps, packing_groups
from citydef.protocol import BuildingDef, StreetDef, TownDocument
from citydef.zones import StreetSide, plot_width


def _town(length: float, *buildings: BuildingDef, streets: int = 1) -> TownDocument:
    return TownDocument(
        name="Pack",
        streets=[StreetDef(name=f"S{i}", length=length) for i in range(streets)],
        buildings=list(buildings),
    )


def test_three_plots_on_short_street_extend_and_center():
    doc = _town(
        30,
        BuildingDef(name="A", zone="Bank", side="Left", z_pos=5),
        BuildingDef(name="B", zone="Bank", side="Left", z_pos=-5),
        BuildingDef(name="C", zone="Bank", side="Left", z_pos=0),
    )
    reports = auto_pack(doc)

    total = 3 * 13 + 2 * PLOT_GUTTER
    assert doc.streets[0].length == total + STREET_EXTENSION_MARGIN == 53
    assert doc.streets[0].length >= 3 * 13 + 2 * PLOT_GUTTER + STREET_END_MARGIN
    # declared order B (-5), C (0), A (5) survives; offsets evenly spaced around 0
    assert [b.z_pos for b in doc.buildings] == [16.0, -16.0, 0.0]
    assert len(reports) == 1
    assert (reports[0].side, reports[0].count, reports[0].total_width, reports[0].extended) == (
        StreetSide.Left, 3, total, True,
    )


def test_long_enough_street_is_left_alone():
    doc = _town(
        100,
        BuildingDef(name="Church", zone="Church", side="Right", z_pos=0),
        BuildingDef(name="Shop", zone="GeneralStore", side="Right", z_pos=10),
    )
    auto_pack(doc)
    assert doc.streets[0].length == 100
    # church 20 + gutter 3 + shop 13 = 36
    assert [b.z_pos for b in doc.buildings] == [-8.0, 11.5]


def test_equal_zpos_keeps_document_order():
    doc = _town(
        100,
        BuildingDef(name="First", zone="Bank", side="Left"),
        BuildingDef(name="Second", zone="Bank", side="Left"),
    )
    auto_pack(doc)
    assert doc.buildings[0].z_pos < doc.buildings[1].z_pos


def test_single_buildings_and_end_buildings_are_untouched():
    doc = _town(
        40,
        BuildingDef(name="Lonely", zone="Bank", side="Right", z_pos=7),
        BuildingDef(name="Depot", zone="TrainStation", side="End", z_pos=30),
        BuildingDef(name="Depot2", zone="TrainStation", side="End", z_pos=30),
    )
    assert auto_pack(doc) == []
    assert [b.z_pos for b in doc.buildings] == [7, 30, 30]
    assert doc.streets[0].length == 40


def test_missing_side_packs_with_left_and_street_index_is_clamped():
    doc = _town(
        100,
        BuildingDef(name="NoSide", zone="Bank", z_pos=0),
        BuildingDef(name="Left", zone="Bank", side="left", z_pos=1, street_index=7),
        streets=2,
    )
    groups = packing_groups(doc)
    assert groups == {(1, StreetSide.Left): [1]} | {(0, StreetSide.Left): [0]}

    doc.buildings[1].street_index = -3
    assert packing_groups(doc) == {(0, StreetSide.Left): [0, 1]}


def test_no_streets_or_no_buildings_is_a_no_op():
    assert auto_pack(TownDocument(name="Empty")) == []
    doc = TownDocument(name="NoStreets", buildings=[BuildingDef(name="A"), BuildingDef(name="B")])
    assert auto_pack(doc) == []
    assert [b.z_pos for b in doc.buildings] == [0, 0]


@pytest.mark.parametrize("seed", range(5))
def test_packed_groups_never_overlap_and_streets_only_grow(seed):
    rng = random.Random(seed)
    zones = ["Church", "Hotel", "Bank", "Saloon", "Barn", "GeneralStore"]
    buildings = [
        BuildingDef(
            name=f"B{i}",
            zone=rng.choice(zones),
            side=rng.choice(["Left", "Right", ""]),
            z_pos=rng.uniform(-40, 40),
            street_index=rng.randrange(3),
        )
        for i in range(rng.randrange(2, 14))
    ]
    doc = _town(rng.uniform(30, 100), *buildings, streets=3)
    before = [s.length for s in doc.streets]

    auto_pack(doc)

    assert group_overlaps(doc) == []
    for old, street in zip(before, doc.streets):
        assert street.length >= old
    for (street_index, _), members in packing_groups(doc).items():
        if len(members) < 2:
            continue
        total = sum(plot_width(doc.buildings[i].zone) for i in members) + PLOT_GUTTER * (len(members) - 1)
        assert doc.streets[street_index].length >= total
        ordered = sorted(members, key=lambda i: doc.buildings[i].z_pos)
        first, last = doc.buildings[ordered[0]], doc.buildings[ordered[-1]]
        assert first.z_pos - plot_width(first.zone) / 2 == pytest.approx(-total / 2)
        assert last.z_pos + plot_width(last.zone) / 2 == pytest.approx(total / 2)


def test_pack_is_stable_on_second_run():
    doc = _town(
        30,
        BuildingDef(name="A", zone="Hotel", side="Left", z_pos=3),
        BuildingDef(name="B", zone="Saloon", side="Left", z_pos=-3),
    )
    auto_pack(doc)
    first = doc.fingerprint
    auto_pack(doc)
    assert doc.fingerprint == first


def test_group_overlaps_reports_colliding_neighbours():
    doc = _town(
        100,
        BuildingDef(name="A", zone="Bank", side="Left", z_pos=0),
        BuildingDef(name="B", zone="Bank", side="Left", z_pos=10),
        BuildingDef(name="C", zone="Bank", side="Left", z_pos=40),
    )
    assert group_overlaps(doc) == [("A", "B")]
