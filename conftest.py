"""Pytest configuration: local package imports and shared CityDef fixtures."""
from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest


def _ensure_repo_on_syspath() -> None:
    repo_root = Path(__file__).resolve().parent
    repo_str = str(repo_root)
    if repo_str not in sys.path:
        sys.path.insert(0, repo_str)


_ensure_repo_on_syspath()


def town_json(name: str = "Dusty Gulch", **extra) -> str:
    """A small, audit-clean town document."""
    doc = {
        "name": name,
        "streets": [{"name": "Main Street", "centerX": 0, "centerZ": 0, "length": 60}],
        "buildings": [
            {"name": "Rusty Spur Saloon", "zone": "Saloon", "side": "Left", "zPos": -10, "interior": "Saloon"},
            {"name": "Frontier Bank", "zone": "Bank", "side": "Right", "zPos": 5},
            {"name": "Sheriff Office", "zone": "Sheriff", "side": "Left", "zPos": 12, "interior": "Jail"},
        ],
        "props": [{"type": "Barrel", "x": 4, "z": 2}, {"type": "StreetLamp", "x": -4, "z": 10}],
        "npcs": [{"prefab": "Cowboy", "name": "Jed", "x": 0, "z": 5}],
    }
    doc.update(extra)
    return json.dumps(doc)


@pytest.fixture
def save_dir(tmp_path: Path) -> Path:
    return tmp_path / "cities"


@pytest.fixture
def store(save_dir):
    from citydef.orchestrator.store import TownStore

    return TownStore(save_dir)


@pytest.fixture
def builder():
    from citydef.orchestrator.world import RecordingWorldBuilder

    return RecordingWorldBuilder()


@pytest.fixture
def spawner(builder, store):
    from citydef.orchestrator.spawner import TownSpawner

    return TownSpawner(builder=builder, store=store)


@pytest.fixture
def make_town():
    return town_json
