"""Per-line pricing: discounts, VAT and seat totals.

One registration line is priced per seat first, then multiplied by the seat
count. The base price is held to cents, then rounding happens at
every stage, in this order:

    discount -> price before VAT -> VAT -> total incl. VAT

The total is ``price_before_vat × (1 + vat_rate)`` rounded, NOT
``price_before_vat + vat``. The two can differ by a cent and downstream
documents (quotations, invoices, receipts) print the former.
"""

import logging
from typing import Iterable, Optional
from decimal import Decimal
from pydantic import Field, computed_field

from .base import DomainModel, MoneyAmount, Number, Rate, ZERO, round_money
from .discounts import DiscountRuleBase, calculate_discount

logger = logging.getLogger(__name__)


# =============================================================================
# Pricing Configuration
# =============================================================================

class PricingCFG(DomainModel):
    """Locale settings for pricing.

    Single currency, 2-decimal minor units, half-up rounding, flat VAT.

    Example:
        PricingCFG()                            # 7% VAT, THB
        PricingCFG(vat_rate=Decimal("0.10"))    # 10% VAT
    """

    vat_rate: Rate = Field(
        default=Decimal("0.07"),
        description="Flat VAT rate applied to the price before VAT"
    )

    currency: str = Field(
        default="THB",
        description="ISO currency code, informational only (no conversion)"
    )

    @property
    def vat_multiplier(self) -> Decimal:
        return Decimal(1) + self.vat_rate


DEFAULT_PRICING_CFG = PricingCFG()


# =============================================================================
# Line Pricing Result
# =============================================================================

class LinePricing(DomainModel):
    """Priced registration line, per seat and for all seats.

    Per-seat amounts are rounded; seat totals are the rounded per-seat amounts
    multiplied by ``seats`` with no further rounding.

    Example (1,000.00 base, 10% off, 2 seats):
        discount_amount=100.00  price_before_vat=900.00
        vat_amount=63.00        total_incl_vat=963.00
        total_discount_amount=200.00  total_price_before_vat=1800.00
        total_vat_amount=126.00       total_final_price=1926.00
    """

    base_unit_price: MoneyAmount = Field(
        description="Base price of one seat before discounts"
    )

    seats: int = Field(
        ge=1,
        description="Seat count the per-seat amounts are multiplied by"
    )

    discount_amount: MoneyAmount = Field(
        description="Per-seat discount (sum of active discounts, not capped)"
    )

    price_before_vat: MoneyAmount = Field(
        description="Per-seat price after discounts, floored at 0"
    )

    vat_amount: MoneyAmount = Field(
        description="Per-seat VAT"
    )

    total_incl_vat: MoneyAmount = Field(
        description="Per-seat price including VAT"
    )

    @computed_field
    @property
    def gross_amount(self) -> Decimal:
        return self.base_unit_price * self.seats

    @computed_field
    @property
    def total_discount_amount(self) -> Decimal:
        return self.discount_amount * self.seats

    @computed_field
    @property
    def total_price_before_vat(self) -> Decimal:
        return self.price_before_vat * self.seats

    @computed_field
    @property
    def total_vat_amount(self) -> Decimal:
        return self.vat_amount * self.seats

    @computed_field
    @property
    def total_final_price(self) -> Decimal:
        return self.total_incl_vat * self.seats


# =============================================================================
# Price Calculator
# =============================================================================

def price_line(
    base_unit_price: Number,
    active_discounts: Iterable[DiscountRuleBase] = (),
    seats: int = 1,
    cfg: Optional[PricingCFG] = None,
) -> LinePricing:
    """Price one registration line.

    Args:
        base_unit_price: Base price of one seat, rounded to cents on entry.
            Negative values are treated as 0.
        active_discounts: Discount rules in application order. Inactive rules
            are skipped.
        seats: Seats purchased (>= 1)
        cfg: Pricing configuration (default: 7% VAT)

    Returns:
        LinePricing with per-seat amounts and seat totals

    Raises:
        ValueError: If seats < 1

    Example:
        price_line(Decimal("1000"), [BuyNPayMDiscount(value=3)])
        -> discount_amount=250.00, price_before_vat=750.00,
           vat_amount=52.50, total_incl_vat=802.50
    """
    if seats < 1:
        raise ValueError(f"seats must be >= 1, got {seats}")

    cfg = cfg or DEFAULT_PRICING_CFG
    base = round_money(base_unit_price)
    if base < 0:
        logger.warning("Negative base price %s treated as 0", base)
        base = ZERO

    # Rule objects without an active flag fall through to calculate_discount.
    rules = [rule for rule in active_discounts if getattr(rule, "active", True)]

    if not rules:
        discount = ZERO
        price_before_vat = round_money(base)
    else:
        # Each rule is computed against the original base price (additive).
        discounts = [calculate_discount(rule, base) for rule in rules]
        discount = sum(discounts, ZERO)
        price_before_vat = round_money(max(base - discount, ZERO))

    vat = round_money(price_before_vat * cfg.vat_rate)
    total = round_money(price_before_vat * cfg.vat_multiplier)

    logger.debug(
        "Priced %s x %d: discount=%s before_vat=%s vat=%s total=%s",
        base, seats, discount, price_before_vat, vat, total,
    )

    return LinePricing(
        base_unit_price=base,
        seats=seats,
        discount_amount=discount,
        price_before_vat=price_before_vat,
        vat_amount=vat,
        total_incl_vat=total,
    )
