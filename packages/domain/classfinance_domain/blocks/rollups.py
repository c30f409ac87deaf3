"""Rollup computation block.

Aggregates priced registration lines into the finance dashboard tables.

Output DataFrames:
- rollup_summary: single row with the overall figures
- rollup_by_<dimension>: one row per group for each configured dimension
  (class, company, channel, participant_type, month)
- revenue_concentration, segment_mix: single-row client revenue analysis
- cash_trend: one row per week of class dates
"""

from typing import Dict, List
from decimal import Decimal
import pandas as pd

from .base import Block, BlockContext
from ..schemas import (
    FinanceReportCFG,
    GROUP_DIMENSIONS,
    PricedLine,
    Rollup,
    cash_trend,
    group_rollups,
    revenue_concentration,
    segment_mix,
)

ROLLUP_COLUMNS = [
    "key",
    "label",
    "line_count",
    "paid_count",
    "seats",
    "gross_sales",
    "total_discounts",
    "net_before_vat",
    "vat_amount",
    "total_incl_vat",
    "cash_received",
    "outstanding",
    "collection_rate_pct",
    "discount_rate_pct",
    "avg_revenue_per_seat",
    "avg_discount_per_seat",
    "billing_status",
]

CASH_TREND_COLUMNS = [
    "label",
    "week_start",
    "week_end",
    "revenue_net",
    "cash_received",
    "outstanding",
]


def _floats(row: Dict) -> Dict:
    return {k: float(v) if isinstance(v, Decimal) else v for k, v in row.items()}


def rollup_row(rollup: Rollup) -> Dict:
    """Flatten a rollup into a DataFrame row (Decimals become floats)."""
    return _floats({column: getattr(rollup, column) for column in ROLLUP_COLUMNS})


class RollupBlock(Block):
    """Computes summary and grouped rollups.

    Inputs (from context):
        - priced_lines: List[PricedLine] (from PricingBlock)
        - finance_cfg: FinanceReportCFG (uses .rollups.group_by)

    Outputs (to context):
        - rollup_summary: DataFrame with a single row, columns ROLLUP_COLUMNS plus:
            * docs_missing_qt / docs_missing_inv / docs_missing_receipt /
              docs_missing_slip: Lines still owed each document
            * seats_corporate / seats_individual: Seats by participant type
        - rollup_by_class, rollup_by_company, rollup_by_channel,
          rollup_by_participant_type, rollup_by_month: DataFrames with columns
          ROLLUP_COLUMNS, one row per group in display order. Dimensions not
          configured are written as empty DataFrames.
        - revenue_concentration: DataFrame with single row:
            * client_count, top_10_pct, top_20_pct, top_50_pct (paid revenue)
        - segment_mix: DataFrame with single row:
            * corporate, individual, total, corporate_pct, individual_pct
        - cash_trend: DataFrame with CASH_TREND_COLUMNS, one row per week
          within rollups.trend_start .. rollups.trend_end

    Example:
        block = RollupBlock()
        block.execute(context)

        by_class_df = context.get("rollup_by_class")
    """

    def __init__(
        self,
        priced_key: str = "priced_lines",
        config_key: str = "finance_cfg",
    ):
        """Initialize RollupBlock.

        Args:
            priced_key: Context key for priced lines
            config_key: Context key for FinanceReportCFG
        """
        self.priced_key = priced_key
        self.config_key = config_key

    def inputs(self) -> List[str]:
        return [self.priced_key, self.config_key]

    def outputs(self) -> List[str]:
        return (
            ["rollup_summary"]
            + [f"rollup_by_{dim}" for dim in GROUP_DIMENSIONS]
            + ["revenue_concentration", "segment_mix", "cash_trend"]
        )

    def execute(self, context: BlockContext) -> None:
        priced: List[PricedLine] = context.get(self.priced_key)
        config: FinanceReportCFG = context.get(self.config_key)

        context.set("rollup_summary", self._compute_summary(priced))

        for dim in GROUP_DIMENSIONS:
            if dim in config.rollups.group_by:
                df = self._compute_grouped(priced, dim)
            else:
                df = pd.DataFrame(columns=ROLLUP_COLUMNS)
            context.set(f"rollup_by_{dim}", df)

        concentration = revenue_concentration(priced)
        context.set("revenue_concentration", pd.DataFrame([_floats(concentration.model_dump())]))

        mix = segment_mix(priced)
        context.set("segment_mix", pd.DataFrame([_floats(mix.model_dump())]))

        weeks = cash_trend(priced, start=config.rollups.trend_start, end=config.rollups.trend_end)
        context.set("cash_trend", pd.DataFrame(
            [_floats(week.model_dump()) for week in weeks],
            columns=CASH_TREND_COLUMNS,
        ))

    def _compute_summary(self, priced: List[PricedLine]) -> pd.DataFrame:
        row = rollup_row(Rollup.from_priced(priced))

        missing = [item.line.missing_documents() for item in priced]
        row.update({
            "docs_missing_qt": sum(1 for docs in missing if "QT" in docs),
            "docs_missing_inv": sum(1 for docs in missing if "INV" in docs),
            "docs_missing_receipt": sum(1 for docs in missing if "Receipt" in docs),
            "docs_missing_slip": sum(1 for docs in missing if "Slip" in docs),
            "seats_corporate": sum(
                item.pricing.seats for item in priced if item.line.participant_type == "corporate"
            ),
            "seats_individual": sum(
                item.pricing.seats for item in priced if item.line.participant_type == "individual"
            ),
        })

        return pd.DataFrame([row])

    def _compute_grouped(self, priced: List[PricedLine], dim: str) -> pd.DataFrame:
        rollups = group_rollups(priced, dim)
        if not rollups:
            return pd.DataFrame(columns=ROLLUP_COLUMNS)
        return pd.DataFrame(
            [rollup_row(rollup) for rollup in rollups.values()],
            columns=ROLLUP_COLUMNS,
        )
