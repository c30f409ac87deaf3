"""Aging computation block.

Classifies pending registrations into receivables aging buckets.

Output DataFrames:
- aging_buckets: one row per bucket (Not due first, then overdue ranges)
- aging_summary: single row with outstanding / overdue / due-soon totals
- overdue_invoices: overdue registrations, oldest due date first
- aging_top_customers: largest pending lines per bucket
"""

from typing import List
from datetime import date
import pandas as pd

from .base import Block, BlockContext
from ..schemas import FinanceReportCFG, PricedLine, age_receivables


class AgingBlock(Block):
    """Computes receivables aging.

    Inputs (from context):
        - priced_lines: List[PricedLine] (from PricingBlock)
        - as_of: date the aging is computed for
        - finance_cfg: FinanceReportCFG (uses .aging)

    Outputs (to context):
        - aging_buckets: DataFrame with columns:
            * range: Bucket label ("Not due", "1–7", ...)
            * min_days, max_days: Day range (None for Not due / open ended)
            * amount: Pending total incl. VAT in the bucket
            * count: Number of registration lines
        - aging_summary: DataFrame with single row:
            * as_of, total_outstanding, overdue_amount, overdue_count,
              next_7_days_due, max_overdue_days
        - overdue_invoices: DataFrame with columns:
            * line_id, client, due_date, days_overdue, amount
        - aging_top_customers: DataFrame with columns:
            * range, rank (1 = largest), client, amount
    """

    def __init__(
        self,
        priced_key: str = "priced_lines",
        as_of_key: str = "as_of",
        config_key: str = "finance_cfg",
    ):
        """Initialize AgingBlock.

        Args:
            priced_key: Context key for priced lines
            as_of_key: Context key for the reference date
            config_key: Context key for FinanceReportCFG
        """
        self.priced_key = priced_key
        self.as_of_key = as_of_key
        self.config_key = config_key

    def inputs(self) -> List[str]:
        return [self.priced_key, self.as_of_key, self.config_key]

    def outputs(self) -> List[str]:
        return ["aging_buckets", "aging_summary", "overdue_invoices", "aging_top_customers"]

    def execute(self, context: BlockContext) -> None:
        priced: List[PricedLine] = context.get(self.priced_key)
        as_of: date = context.get(self.as_of_key)
        config: FinanceReportCFG = context.get(self.config_key)

        report = age_receivables(priced, as_of=as_of, cfg=config.aging)

        buckets_df = pd.DataFrame([
            {
                "range": bucket.label,
                "min_days": bucket.min_days,
                "max_days": bucket.max_days,
                "amount": float(bucket.amount),
                "count": bucket.count,
            }
            for bucket in report.buckets
        ])

        summary_df = pd.DataFrame([{
            "as_of": report.as_of,
            "total_outstanding": float(report.total_outstanding),
            "overdue_amount": float(report.overdue_amount),
            "overdue_count": report.overdue_count,
            "next_7_days_due": float(report.next_7_days_due),
            "max_overdue_days": report.max_overdue_days,
        }])

        overdue_df = pd.DataFrame(
            [
                {
                    "line_id": item.line_id,
                    "client": item.client,
                    "due_date": item.due_date,
                    "days_overdue": item.days_overdue,
                    "amount": float(item.amount),
                }
                for item in report.overdue
            ],
            columns=["line_id", "client", "due_date", "days_overdue", "amount"],
        )

        top_df = pd.DataFrame(
            [
                {
                    "range": bucket.label,
                    "rank": rank,
                    "client": customer.name,
                    "amount": float(customer.amount),
                }
                for bucket in report.buckets
                for rank, customer in enumerate(bucket.top_customers, start=1)
            ],
            columns=["range", "rank", "client", "amount"],
        )

        context.set("aging_buckets", buckets_df)
        context.set("aging_summary", summary_df)
        context.set("overdue_invoices", overdue_df)
        context.set("aging_top_customers", top_df)
