"""
Constants and enumerations for the Recipe Costing engine.

This module defines all system-wide constants including:
- Application metadata
- Canonical unit symbols and their synonym sets
- Production batch and recipe status strings
- Validation limits and error messages
"""

from typing import Dict, List, Tuple

# ============================================================================
# Application Metadata
# ============================================================================

APP_NAME = "Recipe Costing"
APP_VERSION = "0.1.0"
DATABASE_VERSION = "1.0"
DATABASE_FILENAME = "recipe_costing.db"

# ============================================================================
# Canonical Units
# ============================================================================

# Mass
UNIT_KG = "KG"
UNIT_G = "G"

# Volume
UNIT_L = "L"
UNIT_ML = "ML"

# Count
UNIT_PCS = "PCS"

# Eggs
UNIT_EGGS = "EGGS"
UNIT_TRAY = "TRAY"

# Packages (each is its own base, no cross-conversion)
UNIT_PKT = "PKT"
UNIT_BOX = "BOX"
UNIT_BTL = "BTL"

CANONICAL_UNITS: List[str] = [
    UNIT_KG,
    UNIT_G,
    UNIT_L,
    UNIT_ML,
    UNIT_PCS,
    UNIT_EGGS,
    UNIT_TRAY,
    UNIT_PKT,
    UNIT_BOX,
    UNIT_BTL,
]

# Synonyms are matched after upper-casing and trimming the raw token
UNIT_SYNONYMS: Dict[str, Tuple[str, ...]] = {
    UNIT_KG: ("KG", "KGS", "KILOGRAM", "KILOGRAMS", "KILO"),
    UNIT_G: ("G", "GM", "GMS", "GRAM", "GRAMS"),
    UNIT_L: ("L", "LTR", "LITER", "LITERS", "LITRE", "LITRES"),
    UNIT_ML: ("ML", "MLS", "MILLILITER", "MILLILITERS"),
    UNIT_PCS: ("PCS", "PC", "PIECE", "PIECES", "EACH", "EA"),
    UNIT_EGGS: ("EGG", "EGGS"),
    UNIT_TRAY: ("TRAY", "TRAYS"),
    UNIT_PKT: ("PKT", "PACKET", "PACKETS"),
    UNIT_BOX: ("BOX", "BOXES"),
    UNIT_BTL: ("BTL", "BOTTLE", "BOTTLES"),
}

# Default base unit for new ingredients when none is supplied
DEFAULT_BASE_UNIT = UNIT_KG

# ============================================================================
# Statuses
# ============================================================================

RECIPE_STATUS_COMPLETED = "Completed"

DEFAULT_CREATED_BY = "System"

# ============================================================================
# Validation Limits
# ============================================================================

MAX_NAME_LENGTH = 200

# Decimal places of stock quantities, matching the Numeric(14, 4) stock column
STOCK_DECIMAL_PLACES = 4

# Batch number format: BATCH-YYYYMMDD-HHMMSS-<dish id>
BATCH_NUMBER_PREFIX = "BATCH"
BATCH_DATE_FORMAT = "%Y%m%d"
BATCH_TIME_FORMAT = "%H%M%S"

# ============================================================================
# Error Messages
# ============================================================================

ERROR_REQUIRED_FIELD = "This field is required"
ERROR_INVALID_POSITIVE = "Must be greater than zero"
ERROR_INVALID_NON_NEGATIVE = "Must be zero or greater"
ERROR_NAME_TOO_LONG = f"Must be {MAX_NAME_LENGTH} characters or fewer"
