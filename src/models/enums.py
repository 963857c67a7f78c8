"""
Enumerations for recipe costing.

This module contains enums shared by models and services:
- UnitFamily: Groups of mutually convertible units
- ConversionStatus: Outcome of a single unit conversion
- SessionState: Lifecycle of an in-memory recipe session
- BatchStatus: Status of a persisted production batch
"""

from enum import Enum


class UnitFamily(str, Enum):
    """
    Unit families.

    Units convert only within their own family. Packets, boxes and bottles
    are separate families because a packet of one thing says nothing about
    a box of another.
    """

    MASS = "mass"
    VOLUME = "volume"
    COUNT = "count"
    EGG = "egg"
    PACKET = "package_pkt"
    BOX = "package_box"
    BOTTLE = "package_btl"


class ConversionStatus(str, Enum):
    """
    Outcome of converting an issued quantity to an ingredient's base unit.

    Values:
        SAME_UNIT: Issued unit equals the base unit (or was left blank)
        CONVERTED: Factor applied within one family
        UNKNOWN_UNIT: Issued unit is not in the conversion table; quantity passed through
        INCOMPATIBLE_UNITS: Units belong to different families; quantity passed through
    """

    SAME_UNIT = "same_unit"
    CONVERTED = "converted"
    UNKNOWN_UNIT = "unknown_unit"
    INCOMPATIBLE_UNITS = "incompatible_units"

    @property
    def is_faithful(self) -> bool:
        """True when the resulting quantity can be trusted."""
        return self in (ConversionStatus.SAME_UNIT, ConversionStatus.CONVERTED)


class SessionState(str, Enum):
    """
    Recipe session lifecycle.

    Values:
        EMPTY: No line items yet; dish and ingredient count may be chosen
        ACCUMULATING: Some line items added, more than one still to come
        AWAITING_PRODUCTION: The next item is the last one and needs a produced quantity
        FINALIZABLE: All items present and the last carries a produced quantity
        FINALIZED: Batch emitted; session accepts no further operations
        ABANDONED: Explicitly discarded; session accepts no further operations
    """

    EMPTY = "empty"
    ACCUMULATING = "accumulating"
    AWAITING_PRODUCTION = "awaiting_production"
    FINALIZABLE = "finalizable"
    FINALIZED = "finalized"
    ABANDONED = "abandoned"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.FINALIZED, SessionState.ABANDONED)


class BatchStatus(str, Enum):
    """Status of a production batch."""

    IN_STOCK = "In Stock"
    SOLD_OUT = "Sold Out"
    EXPIRED = "Expired"
