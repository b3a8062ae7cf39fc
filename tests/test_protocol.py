from __future__ import annotations

import pytest

from citydef.protocol import BuildSummary, SavedTown, TownDocument
from citydef.zones import Zone, is_outdoor, parse_side, parse_zone, plot_width, zone_display_name


def test_lenient_field_binding():
    doc = TownDocument.from_dict({
        "name": 42,
        "edit": "TRUE",
        "worldX": "150.5",
        "streets": [{"name": "Main", "length": "sixty"}, "not a street", None],
        "buildings": [{"name": ["bad"], "streetIndex": 1.9, "zPos": True, "color": [1, "0.5", None]}],
        "npcs": "nope",
        "palette": {"roof": "red"},
    })
    assert doc.name == "42"
    assert doc.edit is True
    assert doc.absolute_origin == (150.5, 0.0)
    assert len(doc.streets) == 1 and doc.streets[0].length == 0
    b = doc.buildings[0]
    assert (b.name, b.street_index, b.z_pos, b.color) == ("", 1, 0.0, [1.0, 0.5, 0.0])
    assert doc.npcs == []
    assert doc.palette.roof == "red" and doc.palette.walls == ""


def test_wire_keys_are_camel_case():
    doc = TownDocument.from_dict({
        "name": "Wire",
        "streets": [{"name": "Main", "centerX": 3, "centerZ": 4, "length": 50}],
        "buildings": [{"name": "Bank", "zPos": 2, "streetIndex": 0, "agentId": "a1"}],
    })
    out = doc.to_dict()
    assert out["streets"][0]["centerX"] == 3
    assert out["buildings"][0]["zPos"] == 2 and out["buildings"][0]["agentId"] == "a1"
    assert TownDocument.from_dict(out) == doc


def test_packed_document_fingerprint():
    doc = TownDocument.from_dict({"name": "Hash", "streets": [{"name": "Main", "length": 40}]})
    clone = TownDocument.unpack(doc.pack())
    assert clone == doc
    assert clone.fingerprint == doc.fingerprint

    clone.streets[0].length = 41
    assert clone.fingerprint != doc.fingerprint


def test_no_absolute_origin_by_default():
    assert TownDocument(name="Here").absolute_origin is None


def test_saved_town_record_shape():
    saved = SavedTown.from_record({"documentText": "{}", "originX": 1, "originZ": "2"})
    assert saved.origin == (1.0, 0.0, 2.0)
    assert saved.to_record() == {"documentText": "{}", "originX": 1.0, "originY": 0.0, "originZ": 2.0}


def test_build_summary_text():
    summary = BuildSummary(name="Tombstone", buildings=5, props=0, npcs=2, origin=(0, 0, 0))
    assert str(summary) == "Built Tombstone — 5 buildings, 0 props, 2 NPCs"


@pytest.mark.parametrize(
    "zone, display",
    [(Zone.GrainMill, "Grain Mill"), (Zone.FireDept, "Fire Department"), (Zone.GeneralStore, "General Store")],
)
def test_zone_display_name(zone, display):
    assert zone_display_name(zone) == display


def test_zone_lookups_are_case_insensitive():
    assert parse_zone("trainstation") is Zone.TrainStation
    assert parse_zone("unknown") is Zone.Wilderness
    assert parse_side(" right ").value == "Right"
    assert parse_side("sideways") is None
    assert is_outdoor(Zone.Cemetery) and not is_outdoor(Zone.Bank)
    assert plot_width("CHURCH") == 20 and plot_width(None) == 13


@pytest.mark.parametrize(
    "value",
    [int("1" + "0" * 400), -int("9" * 400), float("nan"), float("inf"), "NaN", "-Infinity", "1e999"],
)
def test_unrepresentable_numbers_coerce_to_zero(value):
    doc = TownDocument.from_dict({
        "name": "Odd",
        "worldX": value,
        "streets": [{"name": "Main", "length": value}],
        "buildings": [{"name": "Bank", "zPos": value, "streetIndex": value}],
    })
    assert doc.absolute_origin is None
    assert doc.streets[0].length == 0.0
    assert (doc.buildings[0].z_pos, doc.buildings[0].street_index) == (0.0, 0)
