"""Discount rules using discriminated unions for type safety.

A discount rule (a "promotion" in the back office) converts the base price of
one seat into a per-seat discount amount:
- Percentage: a share of the base price
- Fixed amount: a flat currency amount per seat
- Buy N pay M: "attend 4, pay 3" amortized across every seat

Rules are evaluated against the ORIGINAL base price, never against a running
remainder, so several active rules on one registration add up rather than
compound.
"""

import logging
from abc import ABC, abstractmethod
from typing import Annotated, Any, Iterable, List, Literal, Mapping, Optional, Union
from decimal import Decimal
from pydantic import Field, TypeAdapter

from .base import DomainModel, Number, ZERO, round_money, to_decimal

logger = logging.getLogger(__name__)


class DiscountRuleBase(DomainModel, ABC):
    """Fields shared by every discount kind."""

    id: Optional[str] = Field(
        default=None,
        description="Identifier of the promotion record (used for leaderboards)"
    )

    name: str = Field(
        default="",
        description="Human-readable promotion name (e.g., 'Early bird')"
    )

    value: Decimal = Field(
        gt=0,
        description="Percent, currency amount, or paid-seat count depending on kind"
    )

    active: bool = Field(
        default=True,
        description="Inactive rules stay attached to registrations but are not applied"
    )

    @property
    def key(self) -> str:
        """Stable grouping key: id, else name, else kind and value."""
        return self.id or self.name or f"{getattr(self, 'kind', 'discount')}:{self.value}"

    @property
    def display_name(self) -> str:
        """Name plus description, e.g. 'Early bird (10% off)'."""
        if not self.name:
            return self.description
        return f"{self.name} ({self.description})"

    @property
    @abstractmethod
    def description(self) -> str:
        """Short customer-facing wording, e.g. "10% off"."""
        pass

    @abstractmethod
    def calculate_discount(self, base_price: Number) -> Decimal:
        """Per-seat discount on ``base_price``, rounded to cents."""
        pass


# =============================================================================
# Percentage
# =============================================================================

class PercentageDiscount(DiscountRuleBase):
    """Percentage off the base price.

    Example:
        value=10 on a 1,000.00 seat -> 100.00 off
    """

    kind: Literal["percentage"] = "percentage"

    @property
    def description(self) -> str:
        return f"{self.value.normalize():f}% off"

    def calculate_discount(self, base_price: Number) -> Decimal:
        return round_money(to_decimal(base_price) * (self.value / Decimal(100)))


# =============================================================================
# Fixed Amount
# =============================================================================

class FixedAmountDiscount(DiscountRuleBase):
    """Flat amount off each seat.

    The amount is not capped here; the price floor in ``price_line`` keeps the
    seat price from going negative.
    """

    kind: Literal["fixed_amount"] = "fixed_amount"

    @property
    def description(self) -> str:
        return f"{round_money(self.value)} off"

    def calculate_discount(self, base_price: Number) -> Decimal:
        return round_money(self.value)


# =============================================================================
# Buy N Pay M
# =============================================================================

class BuyNPayMDiscount(DiscountRuleBase):
    """Attend N+1, pay N, expressed as a per-seat markdown.

    ``value`` is the number of PAID seats. The free seat is amortized over the
    whole group, so each seat gets ``base_price / (value + 1)`` off.

    Example:
        value=3 ("attend 4 pay 3") on a 1,000.00 seat
        -> 1,000.00 / 4 = 250.00 off, 750.00 per seat
    """

    kind: Literal["buy_n_pay_m"] = "buy_n_pay_m"

    @property
    def description(self) -> str:
        paid = self.value.normalize()
        return f"Attend {paid + 1:f} pay {paid:f}"

    def calculate_discount(self, base_price: Number) -> Decimal:
        return round_money(to_decimal(base_price) / (self.value + 1))


# =============================================================================
# Discriminated Union
# =============================================================================

DiscountRule = Annotated[
    Union[
        PercentageDiscount,
        FixedAmountDiscount,
        BuyNPayMDiscount,
    ],
    Field(discriminator='kind')
]
"""Discriminated union of all discount kinds.

The 'kind' field selects the schema. Unknown kinds are rejected by validation;
use ``load_discount_rules`` to read raw records leniently.

Usage:
    rule = PercentageDiscount(name="Early bird", value=Decimal("10"))
    rule.calculate_discount(Decimal("1000"))  # Decimal("100.00")
"""

DISCOUNT_KINDS = ("percentage", "fixed_amount", "buy_n_pay_m")

_discount_rule_adapter = TypeAdapter(DiscountRule)


def calculate_discount(rule: Any, base_price: Number) -> Decimal:
    """Per-seat discount granted by ``rule`` on ``base_price``.

    Anything that is not a known discount rule contributes 0.00 instead of
    raising.
    """
    if isinstance(rule, DiscountRuleBase) and getattr(rule, "kind", None) in DISCOUNT_KINDS:
        return rule.calculate_discount(base_price)
    logger.warning("Ignoring unknown discount rule %r", rule)
    return ZERO


def load_discount_rules(records: Iterable[Union[Mapping[str, Any], DiscountRuleBase]]) -> List[DiscountRuleBase]:
    """Parse raw promotion records into discount rules.

    Records whose ``kind`` is not a known discount kind are skipped with a
    warning, which is the same as a 0.00 discount. Other validation errors
    (missing or non-positive ``value``) propagate.

    Args:
        records: Dicts (e.g. rows from the persistence layer) or rule instances

    Returns:
        Rules in input order
    """
    rules: List[DiscountRuleBase] = []
    for record in records:
        if isinstance(record, DiscountRuleBase):
            rules.append(record)
            continue
        kind = record.get("kind")
        if kind not in DISCOUNT_KINDS:
            logger.warning(
                "Skipping discount %r with unknown kind %r",
                record.get("name") or record.get("id"),
                kind,
            )
            continue
        rules.append(_discount_rule_adapter.validate_python(dict(record)))
    return rules
