"""Promotion performance: which discounts bring revenue and what they cost.

For every promotion attached to at least one registration line:
    revenue       = Σ total incl. VAT × seats
    discount_cost = Σ promotion discount on the base price × seats
    margin_pct    = (revenue − discount_cost) / revenue × 100
    discount_pct  = discount_cost / gross × 100
"""

import logging
from typing import Dict, Iterable, List, Optional, Union
from decimal import Decimal
from pydantic import Field

from .base import DomainModel, ZERO, round_money, safe_pct
from .discounts import DiscountRuleBase
from .pricing import PricingCFG
from .registrations import PricedLine, RegistrationLine, price_lines

logger = logging.getLogger(__name__)


class PromotionCFG(DomainModel):
    """Thresholds for promotion impact tags.

    Tags are assigned in order:
        1. Underperforming - no revenue
        2. High Volume     - seats >= high_volume_seats
        3. High Margin     - margin_pct >= high_margin_pct
        4. Underperforming - margin_pct < low_margin_pct and revenue < low_revenue
        5. Standard        - everything else
    """

    high_volume_seats: int = Field(default=20, ge=1)
    high_margin_pct: Decimal = Field(default=Decimal("70"))
    low_margin_pct: Decimal = Field(default=Decimal("40"))
    low_revenue: Decimal = Field(default=Decimal("10000"), ge=0)


class PromotionPerformance(DomainModel):
    """Leaderboard row for one promotion."""

    key: str
    name: str
    kind: str
    description: str
    line_count: int = 0
    seats: int = 0
    revenue: Decimal = ZERO
    gross: Decimal = ZERO
    discount_cost: Decimal = ZERO
    margin_pct: Decimal = Decimal("0.0")
    discount_pct: Decimal = Decimal("0")
    impact_tag: str = "Underperforming"


def impact_tag_for(
    revenue: Decimal,
    seats: int,
    margin_pct: Decimal,
    cfg: Optional[PromotionCFG] = None,
) -> str:
    """Classify a promotion by volume and margin."""
    cfg = cfg or PromotionCFG()
    if revenue == 0:
        return "Underperforming"
    if seats >= cfg.high_volume_seats:
        return "High Volume"
    if margin_pct >= cfg.high_margin_pct:
        return "High Margin"
    if margin_pct < cfg.low_margin_pct and revenue < cfg.low_revenue:
        return "Underperforming"
    return "Standard"


def _performance_for(
    rule: DiscountRuleBase,
    priced: List[PricedLine],
    cfg: PromotionCFG,
) -> PromotionPerformance:
    revenue = round_money(sum((p.total_final_price for p in priced), ZERO))
    seats = sum(p.pricing.seats for p in priced)
    gross = round_money(sum((p.pricing.gross_amount for p in priced), ZERO))
    discount_cost = round_money(sum(
        (rule.calculate_discount(p.pricing.base_unit_price) * p.pricing.seats for p in priced),
        ZERO,
    ))
    margin_pct = safe_pct(revenue - discount_cost, revenue)

    return PromotionPerformance(
        key=rule.key,
        name=rule.name or rule.description,
        kind=rule.kind,
        description=rule.description,
        line_count=len(priced),
        seats=seats,
        revenue=revenue,
        gross=gross,
        discount_cost=discount_cost,
        margin_pct=margin_pct,
        discount_pct=safe_pct(discount_cost, gross, places=0),
        impact_tag=impact_tag_for(revenue, seats, margin_pct, cfg),
    )


def promotion_leaderboard(
    lines: Iterable[Union[RegistrationLine, PricedLine]],
    catalog: Iterable[DiscountRuleBase] = (),
    cfg: Optional[PromotionCFG] = None,
    pricing_cfg: Optional[PricingCFG] = None,
) -> List[PromotionPerformance]:
    """Rank promotions by revenue generated.

    A promotion counts every line it is attached to, active or not, and its
    discount cost is what that promotion alone takes off the base price.

    Args:
        lines: Registration lines (priced or not)
        catalog: Known promotions; those unused by any line get a zero row
        cfg: Impact-tag thresholds
        pricing_cfg: Pricing configuration used for lines not yet priced

    Returns:
        Rows sorted by revenue, highest first
    """
    cfg = cfg or PromotionCFG()
    rules: Dict[str, DiscountRuleBase] = {}
    usage: Dict[str, List[PricedLine]] = {}

    for rule in catalog:
        rules.setdefault(rule.key, rule)
        usage.setdefault(rule.key, [])

    for item in price_lines(lines, pricing_cfg):
        # A promotion attached twice to one line still counts the line once.
        seen = set()
        for rule in item.line.discounts:
            if rule.key in seen:
                continue
            seen.add(rule.key)
            rules.setdefault(rule.key, rule)
            usage.setdefault(rule.key, []).append(item)

    rows = [_performance_for(rules[key], usage[key], cfg) for key in rules]
    rows.sort(key=lambda r: r.revenue, reverse=True)

    logger.debug("Built promotion leaderboard with %d rows", len(rows))
    return rows
