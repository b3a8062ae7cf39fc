# =============================================================================
# CITYDEF CONSTANTS
# =============================================================================
# Centralized constants for the CityDef ingestion pipeline. This file contains
# layout geometry, resource limits, world bounds and persistence settings used
# throughout the system.
# =============================================================================

import os
from pathlib import Path

# =============================================================================
# STREET LAYOUT
# =============================================================================

STREET_WIDTH = 10.0                     # Road surface width (units)
SIDEWALK_WIDTH = 2.5                    # Sidewalk width on each side (units)
PLOT_GUTTER = 3.0                       # Gap between neighbouring plots (units)
STREET_END_MARGIN = 4.0                 # Street must exceed packed width by this much
STREET_EXTENSION_MARGIN = 8.0           # Slack added when a street is auto-extended
# Street normalization clamps
DEFAULT_STREET_LENGTH = 50.0            # Length used when none is declared
STREET_MIN_LENGTH = 30.0                # Declared lengths are clamped into
STREET_MAX_LENGTH = 100.0               #   [STREET_MIN_LENGTH, STREET_MAX_LENGTH]
STREET_CENTER_LIMIT = 200.0             # |centerX|, |centerZ| clamp (units)
# Fallback street for documents that declare none
DEFAULT_STREET_NAME = "Main Street"
FALLBACK_STREET_LENGTH = 80.0

# =============================================================================
# BUILDING GEOMETRY
# =============================================================================

BUILDING_WIDTH_DEFAULT, BUILDING_WIDTH_MIN, BUILDING_WIDTH_MAX = 10.0, 5.0, 30.0
BUILDING_HEIGHT_DEFAULT, BUILDING_HEIGHT_MIN, BUILDING_HEIGHT_MAX = 6.0, 3.0, 15.0
BUILDING_DEPTH_DEFAULT, BUILDING_DEPTH_MIN, BUILDING_DEPTH_MAX = 8.0, 4.0, 25.0
BUILDING_STREET_END_INSET = 3.0         # Keep building centers this far inside the street ends
BUILDING_SETBACK = 2.0                  # Gap between sidewalk and facade (units)
DEFAULT_WALL_COLOR = (0.60, 0.50, 0.40) # RGB used when "color" is missing or short

# =============================================================================
# PROPS & NPCS
# =============================================================================

PROP_HEIGHT_DEFAULT = 6.0               # Trees and poles without an explicit height
PROP_SCALE_DEFAULT = 1.0
NPC_SPEED_DEFAULT = 0.8                 # Walk speed for townsfolk (units/s)
NPC_RADIUS_DEFAULT = 10.0               # Wander radius for townsfolk (units)
# wanderingNpcs -> npcs conversion
WANDERING_NPC_NAME = "Townsfolk"
WANDERING_NPC_SPEED = 0.8
WANDERING_NPC_RADIUS = 15.0
WANDERING_NPC_SPREAD = 20.0             # Z spacing between converted NPCs (units)

# =============================================================================
# GROUND PLANE
# =============================================================================

GROUND_STREET_MARGIN = 15.0             # Extra ground beyond each sidewalk (units)
GROUND_PADDING = 30.0                   # Padding around the street bounds (units)
GROUND_MIN_SIZE = 60.0                  # Minimum ground width/depth (units)
ZONE_TRIGGER_HEIGHT = 4.0
ZONE_TRIGGER_PADDING = 20.0             # Trigger volume is wider than street + sidewalks

# =============================================================================
# RESOURCE LIMITS
# =============================================================================

MAX_BUILDINGS = 40                      # Buildings placed per document
MAX_PROPS = 50                          # Props placed per document
MAX_NPCS = 10                           # NPCs spawned per document

# =============================================================================
# WORLD BOUNDS & MULTI-TOWN PLACEMENT
# =============================================================================

MAX_WORLD_RADIUS = 800.0                # |x| or |z| beyond this is out of bounds
TOWN_SPACING = 100.0                    # X offset applied between towns of one response

# =============================================================================
# REPAIR
# =============================================================================

REPAIR_MIN_TRUNCATION = 20              # Never truncate a document shorter than this
CITYDEF_BLOCK_MIN_LENGTH = 20           # Fenced blocks shorter than this are ignored

# =============================================================================
# PERSISTENCE
# =============================================================================

SAVE_DIR = Path(os.getenv("CITYDEF_SAVE_DIR", Path.home() / ".citydef" / "cities"))
SAVE_FILE_PREFIX = "city_"              # Saved towns are city_<unix millis>_<hex>.json
