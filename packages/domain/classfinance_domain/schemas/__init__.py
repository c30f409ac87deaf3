"""Training-class finance schemas.

This package contains the Pydantic models and pure calculation functions of
the pricing and financial rollup engine:
- Base types, rounding helpers
- Discount rules (percentage, fixed amount, buy N pay M)
- Per-line pricing with VAT
- Registration lines
- Rollups (sales, discounts, VAT, cash, receivables)
- Receivables aging
- Promotion performance
- Report configuration

Usage:
    from classfinance_domain.schemas import (
        RegistrationLine, PercentageDiscount,
        price_line, aggregate, age_receivables,
    )
"""

# Base types
from .base import (
    DomainModel,
    MoneyAmount,
    SeatCount,
    Rate,
    PLACEHOLDER_LABEL,
    round_money,
    round_pct,
    safe_pct,
)

# Discount rules
from .discounts import (
    DiscountRule,
    DiscountRuleBase,
    PercentageDiscount,
    FixedAmountDiscount,
    BuyNPayMDiscount,
    DISCOUNT_KINDS,
    calculate_discount,
    load_discount_rules,
)

# Pricing
from .pricing import (
    PricingCFG,
    LinePricing,
    price_line,
)

# Registrations
from .registrations import (
    RegistrationLine,
    PricedLine,
    price_lines,
)

# Rollups
from .rollups import (
    Rollup,
    RollupCFG,
    GroupBy,
    GROUP_DIMENSIONS,
    aggregate,
    group_rollups,
    RevenueConcentration,
    SegmentMix,
    CashTrendRow,
    revenue_concentration,
    segment_mix,
    cash_trend,
)

# Aging
from .aging import (
    AgingBucketSpec,
    AgingCFG,
    AgingBucket,
    AgingCustomer,
    AgingReport,
    OverdueItem,
    age_receivables,
)

# Promotions
from .promotions import (
    PromotionCFG,
    PromotionPerformance,
    impact_tag_for,
    promotion_leaderboard,
)

# Report
from .report import FinanceReportCFG

__all__ = [
    # Base types
    "DomainModel",
    "MoneyAmount",
    "SeatCount",
    "Rate",
    "PLACEHOLDER_LABEL",
    "round_money",
    "round_pct",
    "safe_pct",
    # Discount rules
    "DiscountRule",
    "DiscountRuleBase",
    "PercentageDiscount",
    "FixedAmountDiscount",
    "BuyNPayMDiscount",
    "DISCOUNT_KINDS",
    "calculate_discount",
    "load_discount_rules",
    # Pricing
    "PricingCFG",
    "LinePricing",
    "price_line",
    # Registrations
    "RegistrationLine",
    "PricedLine",
    "price_lines",
    # Rollups
    "Rollup",
    "RollupCFG",
    "GroupBy",
    "GROUP_DIMENSIONS",
    "aggregate",
    "group_rollups",
    "RevenueConcentration",
    "SegmentMix",
    "CashTrendRow",
    "revenue_concentration",
    "segment_mix",
    "cash_trend",
    # Aging
    "AgingBucketSpec",
    "AgingCFG",
    "AgingBucket",
    "AgingCustomer",
    "AgingReport",
    "OverdueItem",
    "age_receivables",
    # Promotions
    "PromotionCFG",
    "PromotionPerformance",
    "impact_tag_for",
    "promotion_leaderboard",
    # Report
    "FinanceReportCFG",
]
