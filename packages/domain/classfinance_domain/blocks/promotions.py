"""Promotion performance block.

Output DataFrames:
- promotion_leaderboard: one row per promotion, highest revenue first
- promotion_summary: single row of promotion KPIs
"""

from typing import Iterable, List
import pandas as pd

from .base import Block, BlockContext
from ..schemas import (
    DiscountRuleBase,
    FinanceReportCFG,
    PricedLine,
    promotion_leaderboard,
    round_money,
    safe_pct,
)

LEADERBOARD_COLUMNS = [
    "key",
    "name",
    "kind",
    "description",
    "line_count",
    "seats",
    "revenue",
    "gross",
    "discount_cost",
    "margin_pct",
    "discount_pct",
    "impact_tag",
]


class PromotionBlock(Block):
    """Ranks promotions and summarizes promotion-driven sales.

    Inputs (from context):
        - priced_lines: List[PricedLine] (from PricingBlock)
        - finance_cfg: FinanceReportCFG (uses .promotions thresholds)

    Outputs (to context):
        - promotion_leaderboard: DataFrame with LEADERBOARD_COLUMNS
        - promotion_summary: DataFrame with single row:
            * promo_lines: Lines with at least one promotion attached, active or not
            * promo_seats: Seats on those lines
            * promo_revenue: Total incl. VAT of those lines
            * total_discount: Discount given on those lines
            * avg_margin_pct: (revenue − discount) / revenue × 100
            * best_promo_name: Leaderboard leader (None if no promotion sold)
    """

    def __init__(
        self,
        priced_key: str = "priced_lines",
        config_key: str = "finance_cfg",
        catalog: Iterable[DiscountRuleBase] = (),
    ):
        """Initialize PromotionBlock.

        Args:
            priced_key: Context key for priced lines
            config_key: Context key for FinanceReportCFG
            catalog: Known promotions, so unused ones show up with zero usage
        """
        self.priced_key = priced_key
        self.config_key = config_key
        self.catalog = list(catalog)

    def inputs(self) -> List[str]:
        return [self.priced_key, self.config_key]

    def outputs(self) -> List[str]:
        return ["promotion_leaderboard", "promotion_summary"]

    def execute(self, context: BlockContext) -> None:
        priced: List[PricedLine] = context.get(self.priced_key)
        config: FinanceReportCFG = context.get(self.config_key)

        rows = promotion_leaderboard(priced, catalog=self.catalog, cfg=config.promotions)
        leaderboard_df = pd.DataFrame(
            [
                {
                    **row.model_dump(),
                    "revenue": float(row.revenue),
                    "gross": float(row.gross),
                    "discount_cost": float(row.discount_cost),
                    "margin_pct": float(row.margin_pct),
                    "discount_pct": float(row.discount_pct),
                }
                for row in rows
            ],
            columns=LEADERBOARD_COLUMNS,
        )

        context.set("promotion_leaderboard", leaderboard_df)
        context.set("promotion_summary", self._compute_summary(priced, rows))

    def _compute_summary(self, priced: List[PricedLine], rows) -> pd.DataFrame:
        promo_lines = [item for item in priced if item.line.discounts]

        revenue = round_money(sum(item.total_final_price for item in promo_lines))
        discount = round_money(sum(item.pricing.total_discount_amount for item in promo_lines))
        best = next((row.name for row in rows if row.revenue > 0), None)

        return pd.DataFrame([{
            "promo_lines": len(promo_lines),
            "promo_seats": sum(item.pricing.seats for item in promo_lines),
            "promo_revenue": float(revenue),
            "total_discount": float(discount),
            "avg_margin_pct": float(safe_pct(revenue - discount, revenue)),
            "best_promo_name": best,
        }])
