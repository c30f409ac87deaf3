"""Base classes and type system for training-class finance models.

This module provides the foundational types, rounding helpers and base class
used throughout the pricing and rollup schemas.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Annotated, Union
from pydantic import BaseModel, Field, ConfigDict

# =============================================================================
# Base Model
# =============================================================================

class DomainModel(BaseModel):
    """Base class for all domain models.

    Provides common configuration for all Pydantic models in the domain layer:
    - Validation on assignment for runtime safety
    - Support for Decimal and date types
    - Enum value serialization
    """

    model_config = ConfigDict(
        frozen=False,
        validate_assignment=True,
        use_enum_values=True,
        arbitrary_types_allowed=True,
    )


# =============================================================================
# Type Aliases - Numeric
# =============================================================================

MoneyAmount = Annotated[
    Decimal,
    Field(ge=0, description="Currency amount in major units (non-negative)")
]

SeatCount = Annotated[
    int,
    Field(ge=1, description="Number of seats purchased on one registration line")
]

Rate = Annotated[
    Decimal,
    Field(ge=0, le=1, description="Rate as decimal (0.07 = 7%)")
]

Number = Union[Decimal, int, float, str]


# =============================================================================
# Rounding
# =============================================================================

CENT = Decimal("0.01")
TENTH = Decimal("0.1")
ZERO = Decimal("0.00")


def to_decimal(value: Number) -> Decimal:
    """Coerce a number to Decimal without inheriting binary float noise.

    Floats go through ``str`` so ``0.07`` becomes ``Decimal("0.07")``.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_money(value: Number) -> Decimal:
    """Round to 2 decimal places, half away from zero.

    Every money amount passes through this helper at each pricing stage
    (discount, price before VAT, VAT, total) so results match cent for cent.

    Examples:
        round_money("10.005") -> Decimal("10.01")
        round_money(1070) -> Decimal("1070.00")
    """
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def round_pct(value: Number, places: int = 1) -> Decimal:
    """Round a percentage for display (1 decimal by default, half-up)."""
    return to_decimal(value).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def safe_pct(numerator: Number, denominator: Number, places: int = 1) -> Decimal:
    """Return numerator / denominator × 100, or 0 when the denominator is 0."""
    denominator = to_decimal(denominator)
    if denominator == 0:
        return round_pct(0, places)
    return round_pct(to_decimal(numerator) / denominator * 100, places)


# =============================================================================
# Placeholder label
# =============================================================================
#
# Group keys fall back to PLACEHOLDER_LABEL ("—") when the grouping attribute
# is missing on a line (no channel, no company, no class date).
#
# =============================================================================

PLACEHOLDER_LABEL = "—"
