from __future__ import annotations

import pytest

from citydef.core.placement import (
    building_placement,
    effective_streets,
    ground_placement,
    is_out_of_bounds,
    npc_placement,
    prop_placement,
    street_placement,
)
from citydef.protocol import BuildingDef, NpcDef, PropDef, StreetDef, TownDocument

ORIGIN = (100.0, 0.0, 50.0)
MAIN = [StreetDef(name="Main", length=60)]


@pytest.mark.parametrize(
    "side, z_pos, position, rotation",
    [
        ("Left", 10, (85.5, 0.0, 60.0), 90.0),
        ("Right", 10, (114.5, 0.0, 60.0), -90.0),
        ("End", 10, (100.0, 0.0, 86.0), 180.0),
        ("End", -5, (100.0, 0.0, 14.0), 0.0),
        ("Up", 10, (85.5, 0.0, 60.0), 90.0),
        ("", 100, (85.5, 0.0, 77.0), 90.0),
    ],
)
def test_building_side_position_and_facing(side, z_pos, position, rotation):
    p = building_placement(BuildingDef(name="Bank", zone="Bank", side=side, z_pos=z_pos), MAIN, ORIGIN)
    assert p.position == pytest.approx(position)
    assert p.rotation == rotation


def test_large_zones_sit_further_back():
    p = building_placement(BuildingDef(name="Church", zone="Church", side="Left"), MAIN, (0, 0, 0))
    assert p.position[0] == pytest.approx(-16.5)


def test_building_size_and_color_are_clamped():
    p = building_placement(
        BuildingDef(name="Odd", zone="Bank", side="Left", width=50, height=1, color=[0.1, 0.2]),
        MAIN,
        ORIGIN,
    )
    assert p.size == (30.0, 3.0, 8.0)
    assert p.color == (0.6, 0.5, 0.4)

    p = building_placement(BuildingDef(name="Red", zone="nonsense", interior="jail", color=[1, 0, 0, 1]), MAIN, ORIGIN)
    assert p.color == (1, 0, 0)
    assert (p.zone, p.interior) == ("Wilderness", "Jail")


def test_building_street_index_is_clamped_and_agent_carried():
    streets = [StreetDef(name="A", length=40), StreetDef(name="B", center_x=60, length=40)]
    p = building_placement(BuildingDef(name="X", zone="Bank", side="Right", street_index=9, agent_id="bot-7"), streets, (0, 0, 0))
    assert p.position[0] == pytest.approx(74.5)
    assert p.agent_id == "bot-7"


def test_ground_covers_streets_with_minimum_size():
    g = ground_placement(MAIN, (0, 0, 0))
    assert g.center == (0, 0, 0)
    assert (g.width, g.depth) == (75, 90)

    g = ground_placement([StreetDef(name="Tiny", length=10)], (0, 0, 0))
    assert (g.width, g.depth) == (75, 60)


def test_street_placement_defaults_zone_and_offsets_sidewalks():
    s = street_placement(StreetDef(name="Main", center_x=10, center_z=-5, length=60), ORIGIN)
    assert s.zone == "MainStreet"
    assert s.center == pytest.approx((110.0, 0.01, 45.0))
    assert s.sidewalk_centers[0][0] == pytest.approx(110.0 - 6.25)
    assert s.sidewalk_centers[1][0] == pytest.approx(110.0 + 6.25)
    assert s.trigger_size == (35.0, 4.0, 65.0)
    assert s.label == "Main Street"

    assert street_placement(StreetDef(name="Civic", zone="civicrow", length=40), ORIGIN).zone == "CivicRow"


def test_default_street_when_document_has_none():
    streets = effective_streets(TownDocument(name="Bare"))
    assert [(s.name, s.length) for s in streets] == [("Main Street", 80)]

    doc = TownDocument(name="Has", streets=list(MAIN))
    assert effective_streets(doc) is doc.streets


def test_prop_and_npc_defaults():
    assert prop_placement(PropDef(), ORIGIN) is None
    barrel = prop_placement(PropDef(type="Barrel", x=1, z=2), ORIGIN)
    assert barrel.position == (101.0, 0.0, 52.0)
    assert (barrel.height, barrel.scale, barrel.builtin) == (6.0, 1.0, True)
    assert prop_placement(PropDef(type="Windmill", scale=2), ORIGIN).builtin is False

    assert npc_placement(NpcDef(name="NoPrefab"), ORIGIN) is None
    assert npc_placement(NpcDef(prefab="Cowboy"), ORIGIN) is None
    jed = npc_placement(NpcDef(prefab="Cowboy", name="Jed", greeting="Howdy"), ORIGIN)
    assert (jed.speed, jed.radius, jed.greeting) == (0.8, 10.0, "Howdy")


@pytest.mark.parametrize(
    "pos, expected",
    [
        ((801, 0, 0), True),
        ((0, 0, -801), True),
        ((800, 0, -800), False),
        ((0, 999, 0), False),
        ((float("nan"), 0, 0), True),
        ((0, 0, float("-inf")), True),
    ],
)
def test_out_of_bounds_is_per_axis(pos, expected):
    assert is_out_of_bounds(pos, 800) is expected


@pytest.mark.parametrize("zone, has_door", [("Saloon", True), ("Bank", True), ("Cemetery", False), ("TrainStation", False)])
def test_outdoor_zones_get_no_door(zone, has_door):
    p = building_placement(BuildingDef(name="Lot", zone=zone, side="Left"), MAIN, ORIGIN)
    assert p.has_door is has_door
