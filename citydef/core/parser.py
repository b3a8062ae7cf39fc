"""
Front door for untrusted CityDef text.

``load_document`` only restores syntax and binds fields; ``parse_city_def``
additionally normalizes and packs, producing a layout that is ready to build.
"""
from __future__ import annotations

import json
from typing import Any, Tuple

import bittensor as bt

from citydef.core.normalizer import normalize
from citydef.core.packer import auto_pack
from citydef.core.sanitizer import sanitize_json, try_repair_json
from citydef.protocol import TownDocument

__all__ = ["CityDefParseError", "decode_json", "load_document", "parse_city_def"]


class CityDefParseError(ValueError):
    """Text could not be turned into a named CityDef, even after repair."""


def decode_json(text: str) -> Tuple[Any, str]:
    """Sanitize and decode *text*, falling back to truncation repair.

    Returns ``(data, accepted_text)`` where *accepted_text* is the sanitized
    (or repaired) text that actually decoded.

    Raises
    ------
    CityDefParseError
        When neither the sanitized text nor any truncation repair decodes.
    """
    sanitized = sanitize_json(text)
    try:
        return json.loads(sanitized), sanitized
    except (ValueError, RecursionError) as e:
        first_error = e

    repaired = try_repair_json(text)
    if repaired is None:
        raise CityDefParseError(f"JSON parse error: {first_error}")

    bt.logging.warning(f"[CityDef] Input was not valid JSON ({first_error}); using repaired text")
    return json.loads(repaired), repaired


def load_document(text: str) -> Tuple[TownDocument, str]:
    """Decode *text* into a :class:`TownDocument` without normalizing it."""
    data, accepted = decode_json(text)
    if not isinstance(data, dict):
        raise CityDefParseError(f"Invalid CityDef JSON — expected an object, got {type(data).__name__}")

    doc = TownDocument.from_dict(data)
    if not doc.name:
        raise CityDefParseError("Invalid CityDef JSON — missing name")
    return doc, accepted


def parse_city_def(text: str) -> TownDocument:
    """Sanitize, deserialize, normalize and auto-pack *text*."""
    doc, _ = load_document(text)
    normalize(doc)
    auto_pack(doc)
    return doc
