"""
Persistence for accepted towns.

One JSON record per town name in ``<save_dir>/city_<unix millis>_<hex>.json``::

    {"documentText": "...", "originX": 0.0, "originY": 0.0, "originZ": 0.0}

Records are keyed by the ``name`` inside ``documentText``. Writes go to a
temporary file that is then renamed over the target. I/O failures are logged
and never raised: a town that fails to save is still a built town.
"""
from __future__ import annotations

import json
import time
import uuid
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union

import bittensor as bt

from citydef.constants import SAVE_DIR, SAVE_FILE_PREFIX
from citydef.core.parser import CityDefParseError, load_document
from citydef.protocol import SavedTown, TownDocument, Vec3

__all__ = ["TownStore"]


def _read_record(path: Path) -> Optional[SavedTown]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        bt.logging.warning(f"[CityDef] Failed to read {path.name}: {e}")
        return None
    if not isinstance(data, dict):
        return None
    saved = SavedTown.from_record(data)
    return saved if saved.document_text else None


def _write_record(path: Path, saved: SavedTown) -> bool:
    temp_file = path.with_suffix(".tmp")
    try:
        with open(temp_file, "w", encoding="utf-8") as f:
            json.dump(saved.to_record(), f)
        temp_file.replace(path)
        return True
    except OSError as e:
        bt.logging.warning(f"[CityDef] Failed to save city: {e}")
        temp_file.unlink(missing_ok=True)
        return False


def _town_name(saved: SavedTown) -> Optional[str]:
    try:
        doc, _ = load_document(saved.document_text)
    except CityDefParseError:
        return None
    return doc.name


class TownStore:
    """Directory-backed store of :class:`SavedTown` records."""

    def __init__(self, save_dir: Union[str, Path, None] = None):
        self.save_dir = Path(save_dir) if save_dir is not None else SAVE_DIR

    def _files(self) -> List[Path]:
        if not self.save_dir.is_dir():
            return []
        return sorted(self.save_dir.glob(f"{SAVE_FILE_PREFIX}*.json"))

    def _entries(self) -> Iterator[Tuple[Path, SavedTown]]:
        for path in self._files():
            saved = _read_record(path)
            if saved is not None:
                yield path, saved

    def _find_entry(self, name: str) -> Optional[Tuple[Path, SavedTown]]:
        for path, saved in self._entries():
            if _town_name(saved) == name:
                return path, saved
        return None

    def save(self, document_text: str, origin: Vec3) -> Optional[Path]:
        """Write a new record; returns its path, or ``None`` if the write failed."""
        try:
            self.save_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            bt.logging.warning(f"[CityDef] Failed to save city: {e}")
            return None

        millis = time.time_ns() // 1_000_000
        path = self.save_dir / f"{SAVE_FILE_PREFIX}{millis}_{uuid.uuid4().hex[:8]}.json"
        saved = SavedTown(document_text, float(origin[0]), float(origin[1]), float(origin[2]))
        if not _write_record(path, saved):
            return None
        bt.logging.debug(f"[CityDef] Saved city to {path.name}")
        return path

    def delete(self, name: str) -> int:
        """Remove every record for *name*; returns how many were deleted."""
        removed = 0
        for path, saved in self._entries():
            if _town_name(saved) != name:
                continue
            try:
                path.unlink()
                removed += 1
                bt.logging.debug(f"[CityDef] Deleted old save: {path.name}")
            except OSError as e:
                bt.logging.warning(f"[CityDef] Failed to delete {path.name}: {e}")
        return removed

    def find(self, name: str) -> Optional[SavedTown]:
        entry = self._find_entry(name)
        return entry[1] if entry is not None else None

    def load(self, name: str) -> Optional[Tuple[TownDocument, Vec3]]:
        """The saved (un-normalized) document for *name* and its origin."""
        saved = self.find(name)
        if saved is None:
            return None
        doc, _ = load_document(saved.document_text)
        return doc, saved.origin

    def update_origin(self, name: str, origin: Vec3) -> bool:
        entry = self._find_entry(name)
        if entry is None:
            return False
        path, saved = entry
        saved.origin_x, saved.origin_y, saved.origin_z = (float(v) for v in origin)
        if not _write_record(path, saved):
            return False
        bt.logging.debug(f"[CityDef] Updated origin for {name} to {tuple(origin)}")
        return True

    def iter_saved(self) -> Iterator[SavedTown]:
        """All readable records, oldest first."""
        for _, saved in self._entries():
            yield saved
