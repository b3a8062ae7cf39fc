import argparse
import os
from typing import List, Optional

import bittensor as bt

from citydef.constants import SAVE_DIR, TOWN_SPACING

EVENTS_DIR = os.getenv("CITYDEF_EVENTS_DIR", "")
EVENTS_RETENTION_SIZE = 5 * 1024 * 1024


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Audit a CityDef document and build it with the headless world builder."
    )
    bt.logging.add_args(parser)

    # optional so bt.config can re-parse an empty argv for its defaults
    parser.add_argument(
        "path",
        type=str,
        nargs="?",
        default=None,
        help="CityDef file, or a generator response holding fenced blocks",
    )

    parser.add_argument(
        "--audit-only",
        action="store_true",
        help="Report audit findings and exit without building",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Build documents even when the audit reports findings",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="After packing, report overlapping buildings per street side",
    )
    parser.add_argument(
        "--origin",
        type=float,
        nargs=2,
        metavar=("X", "Z"),
        default=[0.0, 0.0],
        help="Default town origin on the ground plane",
    )
    parser.add_argument(
        "--save-dir",
        type=str,
        default=str(SAVE_DIR),
        help="Directory holding saved towns (env: CITYDEF_SAVE_DIR)",
    )
    parser.add_argument(
        "--prefabs",
        type=str,
        nargs="*",
        default=None,
        help="Known NPC prefab names; unknown NPC prefabs become audit errors",
    )
    parser.add_argument(
        "--extra-zones",
        type=str,
        nargs="*",
        default=[],
        help="Zone names accepted in addition to the built-in building zones",
    )
    parser.add_argument(
        "--town-spacing",
        type=float,
        default=TOWN_SPACING,
        help="X offset between towns built from one response",
    )
    parser.add_argument(
        "--events-dir",
        type=str,
        default=EVENTS_DIR,
        help="Write town lifecycle events to <events-dir>/events.log",
    )
    return parser


def read_config(args: Optional[List[str]] = None) -> bt.config:
    parser = build_parser()
    config = bt.config(parser, args=args)
    if not config.path:
        parser.error("the following arguments are required: path")
    return config
