"""
Unit conversion system for Recipe Costing.

This module provides:
- Unit normalization (free-text tokens to canonical symbols)
- The fixed conversion table (canonical symbol to family and factor)
- Base-unit conversion with structured decision records

Conversion Strategy:
- Every canonical unit belongs to exactly one family
- Mass converts through KG, volume through L, eggs through EGGS
- PCS, PKT, BOX and BTL are each their own family
- Conversion across families is never computed; the quantity is passed
  through unchanged and the decision record says why
"""

import logging
from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from src.models.enums import ConversionStatus, UnitFamily
from src.services.exceptions import IncompatibleUnitsError, UnknownUnitError
from src.services.logging_utils import get_service_logger, log_operation
from src.utils.constants import UNIT_SYNONYMS
from src.utils.validators import to_decimal

logger = get_service_logger(__name__)


# ============================================================================
# Standard Conversion Table
# ============================================================================

# Factor converts one unit into its family's base unit
UNIT_CONVERSIONS: Dict[str, Tuple[UnitFamily, Decimal]] = {
    "KG": (UnitFamily.MASS, Decimal("1")),
    "G": (UnitFamily.MASS, Decimal("0.001")),
    "L": (UnitFamily.VOLUME, Decimal("1")),
    "ML": (UnitFamily.VOLUME, Decimal("0.001")),
    "PCS": (UnitFamily.COUNT, Decimal("1")),
    "EGGS": (UnitFamily.EGG, Decimal("1")),
    "TRAY": (UnitFamily.EGG, Decimal("30")),
    "PKT": (UnitFamily.PACKET, Decimal("1")),
    "BOX": (UnitFamily.BOX, Decimal("1")),
    "BTL": (UnitFamily.BOTTLE, Decimal("1")),
}

# Reverse lookup built once from the synonym sets
_SYNONYM_LOOKUP: Dict[str, str] = {
    synonym: symbol for symbol, synonyms in UNIT_SYNONYMS.items() for synonym in synonyms
}


# ============================================================================
# Unit Normalization
# ============================================================================


@dataclass(frozen=True)
class NormalizedUnit:
    """
    Result of normalizing a unit token.

    Attributes:
        symbol: Canonical symbol, or the raw token unchanged if unrecognized
        recognized: True if the token matched a known synonym
        raw: The token as supplied
    """

    symbol: str
    recognized: bool
    raw: str


def normalize_unit(token: Optional[str]) -> NormalizedUnit:
    """
    Map a free-text unit token to its canonical symbol.

    Matching is case-insensitive and ignores surrounding whitespace, so
    "Liter", " litres " and "LTR" all become "L".

    Args:
        token: Unit as typed by a user or supplier (may be None)

    Returns:
        NormalizedUnit. Unrecognized tokens keep their raw text so they only
        ever match a byte-identical token.
    """
    raw = token if token is not None else ""
    key = raw.strip().upper()
    symbol = _SYNONYM_LOOKUP.get(key)
    if symbol is None:
        return NormalizedUnit(symbol=raw, recognized=False, raw=raw)
    return NormalizedUnit(symbol=symbol, recognized=True, raw=raw)


# ============================================================================
# Unit Type Detection
# ============================================================================


def factor_to_base(unit: str) -> Optional[Tuple[UnitFamily, Decimal]]:
    """
    Look up a unit's family and its factor to the family base unit.

    Args:
        unit: Canonical symbol or any recognized synonym

    Returns:
        (family, factor) tuple, or None if the unit is not in the table
    """
    return UNIT_CONVERSIONS.get(normalize_unit(unit).symbol)


def get_unit_family(unit: str) -> Optional[UnitFamily]:
    """
    Determine the family of a unit.

    Returns:
        UnitFamily, or None for unknown units
    """
    entry = factor_to_base(unit)
    return entry[0] if entry else None


def units_compatible(unit1: str, unit2: str) -> bool:
    """
    Check if two units belong to the same family and can be converted.

    Unknown units are never compatible with anything.
    """
    family1 = get_unit_family(unit1)
    family2 = get_unit_family(unit2)

    if family1 is None or family2 is None:
        return False

    return family1 == family2


# ============================================================================
# Base-Unit Conversion
# ============================================================================


@dataclass(frozen=True)
class ConversionDecision:
    """
    Audit record of one conversion.

    Attributes:
        issued_unit: Issued unit token as supplied
        base_unit: Base unit token as supplied
        normalized_issued: Canonical (or raw, if unrecognized) issued symbol
        normalized_base: Canonical (or raw, if unrecognized) base symbol
        issued_family: Family of the issued unit, None if unknown
        base_family: Family of the base unit, None if unknown
        factor: Multiplier applied to the issued quantity (1 on pass-through)
        status: ConversionStatus
        message: Human-readable explanation
    """

    issued_unit: str
    base_unit: str
    normalized_issued: str
    normalized_base: str
    issued_family: Optional[UnitFamily]
    base_family: Optional[UnitFamily]
    factor: Decimal
    status: ConversionStatus
    message: str

    @property
    def is_faithful(self) -> bool:
        """True when the converted quantity can be trusted."""
        return self.status.is_faithful

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-safe dictionary."""
        result = asdict(self)
        result["issued_family"] = self.issued_family.value if self.issued_family else None
        result["base_family"] = self.base_family.value if self.base_family else None
        result["factor"] = str(self.factor)
        result["status"] = self.status.value
        return result


@dataclass(frozen=True)
class ConversionResult:
    """Converted quantity together with the decision that produced it."""

    quantity: Decimal
    decision: ConversionDecision


def convert_to_base_unit(
    quantity: Any,
    issued_unit: Optional[str],
    base_unit: str,
    *,
    strict: bool = False,
) -> ConversionResult:
    """
    Convert a quantity from the issued unit into the ingredient's base unit.

    Examples:
        500 ML against base L  -> 0.5  (CONVERTED)
        1 TRAY against base EGGS -> 30 (CONVERTED)
        2 KG against base L   -> 2    (INCOMPATIBLE_UNITS, passed through)

    Args:
        quantity: Issued quantity (int, float, str or Decimal)
        issued_unit: Unit the quantity was issued in; blank means the base unit
        base_unit: Ingredient base unit
        strict: If True, raise instead of passing through unconvertible units

    Returns:
        ConversionResult with the base-unit quantity and its decision record

    Raises:
        UnknownUnitError: strict mode, issued unit not in the table
        IncompatibleUnitsError: strict mode, units in different families
    """
    qty = to_decimal(quantity)
    issued_raw = issued_unit if issued_unit is not None else ""
    issued = normalize_unit(issued_raw)
    base = normalize_unit(base_unit)

    issued_entry = UNIT_CONVERSIONS.get(issued.symbol)
    base_entry = UNIT_CONVERSIONS.get(base.symbol)
    issued_family = issued_entry[0] if issued_entry else None
    base_family = base_entry[0] if base_entry else None

    def _decision(status: ConversionStatus, factor: Decimal, message: str) -> ConversionDecision:
        return ConversionDecision(
            issued_unit=issued_raw,
            base_unit=base.raw,
            normalized_issued=issued.symbol,
            normalized_base=base.symbol,
            issued_family=issued_family,
            base_family=base_family,
            factor=factor,
            status=status,
            message=message,
        )

    # Same unit after normalization (or nothing issued) - no conversion needed
    if not issued_raw.strip() or issued.symbol == base.symbol:
        decision = _decision(
            ConversionStatus.SAME_UNIT, Decimal("1"), f"{qty} {base.symbol}: no conversion"
        )
        return ConversionResult(quantity=qty, decision=decision)

    if issued_entry is None:
        if strict:
            raise UnknownUnitError(issued_raw, base.symbol)
        decision = _decision(
            ConversionStatus.UNKNOWN_UNIT,
            Decimal("1"),
            f"Unknown unit '{issued_raw}'; quantity treated as {base.symbol}",
        )
        _log_unfaithful(qty, decision)
        return ConversionResult(quantity=qty, decision=decision)

    if base_entry is None or issued_family != base_family:
        if strict:
            raise IncompatibleUnitsError(issued.symbol, base.symbol)
        decision = _decision(
            ConversionStatus.INCOMPATIBLE_UNITS,
            Decimal("1"),
            f"Cannot convert {issued.symbol} to {base.symbol}; quantity treated as {base.symbol}",
        )
        _log_unfaithful(qty, decision)
        return ConversionResult(quantity=qty, decision=decision)

    # Both factors are relative to the family base; divide only when the
    # ingredient's base is not itself the family base (e.g. base G)
    factor = issued_entry[1]
    if base_entry[1] != 1:
        factor = factor / base_entry[1]

    converted = qty * factor
    decision = _decision(
        ConversionStatus.CONVERTED,
        factor,
        f"{qty} {issued.symbol} = {converted} {base.symbol} (factor {factor})",
    )
    return ConversionResult(quantity=converted, decision=decision)


def _log_unfaithful(quantity: Decimal, decision: ConversionDecision) -> None:
    log_operation(
        logger,
        operation="convert_to_base_unit",
        outcome=decision.status.value,
        level=logging.WARNING,
        quantity=str(quantity),
        issued_unit=decision.issued_unit,
        base_unit=decision.base_unit,
    )


def format_conversion(quantity: Any, issued_unit: str, base_unit: str) -> str:
    """
    Format a conversion for display.

    Returns:
        e.g. "500 ML = 0.500 L", or a warning line for unconvertible units
    """
    result = convert_to_base_unit(quantity, issued_unit, base_unit)
    decision = result.decision
    if not decision.is_faithful:
        return f"Warning: {decision.message}"
    return f"{to_decimal(quantity)} {decision.normalized_issued} = {result.quantity} {decision.normalized_base}"
