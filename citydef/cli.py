"""Command-line audit and headless build of CityDef documents.

    python -m citydef.cli town.json
    python -m citydef.cli response.md --origin 200 0 --save-dir ./cities
    python -m citydef.cli town.json --audit-only

Documents with audit findings are not built unless ``--force`` is given.
"""
from __future__ import annotations

import sys
from pathlib import Path
from typing import List, Optional

import bittensor as bt
from loguru import logger

from citydef.core.normalizer import normalize
from citydef.core.packer import auto_pack, group_overlaps
from citydef.core.parser import CityDefParseError, load_document
from citydef.core.sanitizer import extract_citydef_blocks
from citydef.orchestrator.policy import OrchestratorConfig
from citydef.orchestrator.spawner import TownSpawner
from citydef.orchestrator.store import TownStore
from citydef.utils.logging import setup_events_logger
from citydef.validator.audit import AuditConfig, AuditResult
from citydef.validator.config import EVENTS_RETENTION_SIZE, read_config


def _report_overlaps(text: str) -> int:
    try:
        doc, _ = load_document(text)
    except CityDefParseError as e:
        logger.error(f"check skipped: {e}")
        return 1
    normalize(doc)
    for report in auto_pack(doc):
        logger.info(
            f"packed street {report.street_index} {report.side.value}: {report.count} buildings, "
            f"{report.total_width:.1f} wide{' (street extended)' if report.extended else ''}"
        )
    overlaps = group_overlaps(doc)
    for a, b in overlaps:
        logger.warning(f"overlap: {a} / {b}")
    return 1 if overlaps else 0


def main(argv: Optional[List[str]] = None) -> int:
    cfg = read_config(argv)
    bt.logging(config=cfg)
    if cfg.events_dir:
        setup_events_logger(cfg.events_dir, EVENTS_RETENTION_SIZE)

    text = Path(cfg.path).read_text(encoding="utf-8")
    documents = extract_citydef_blocks(text) or [text]

    prefabs = frozenset(cfg.prefabs) if cfg.prefabs is not None else None
    config = OrchestratorConfig(
        audit=AuditConfig(valid_prefabs=prefabs, additional_zones=frozenset(cfg.extra_zones)),
        town_spacing=cfg.town_spacing,
    )
    spawner = TownSpawner(store=TownStore(cfg.save_dir), config=config)

    status = 0
    logger.info("═══════════ Audit ═══════════")
    findings = []
    for i, doc_text in enumerate(documents):
        try:
            result = spawner.audit(doc_text)
        except Exception as e:
            result = AuditResult([f"audit failed: {e}"])
        findings.append(result)
        logger.info(f"[{i}] {result.as_feedback()}")
        if not result.ok:
            status = 1
        if cfg.check:
            status = max(status, _report_overlaps(doc_text))

    if cfg.audit_only:
        return status

    logger.info("═══════════ Build ═══════════")
    origin = (cfg.origin[0], 0.0, cfg.origin[1])
    for i, (doc_text, result) in enumerate(zip(documents, findings)):
        if not result.ok and not cfg.force:
            logger.warning(f"[{i}] skipped: audit reported {len(result)} finding(s); use --force to build anyway")
            continue
        try:
            summary, built_at = spawner.build(doc_text, origin)
        except Exception as e:
            logger.error(f"[{i}] [CityDef failed: {e}]")
            status = 1
            continue
        logger.info(f"[{i}] {summary} at {built_at}")
        origin = (built_at[0] + config.town_spacing, built_at[1], built_at[2])
    return status


if __name__ == "__main__":
    sys.exit(main())
