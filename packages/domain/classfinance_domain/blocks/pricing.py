"""Pricing computation block.

Prices every registration line and exposes the result both as domain objects
(for downstream blocks) and as a DataFrame (for rendering).

Outputs:
- priced_lines: List[PricedLine]
- line_pricing: one row per registration line with per-seat and total amounts
"""

from typing import List
import pandas as pd

from .base import Block, BlockContext
from ..schemas import FinanceReportCFG, PricedLine, price_lines

LINE_PRICING_COLUMNS = [
    "line_id",
    "class_id",
    "class_title",
    "company",
    "customer_name",
    "channel",
    "participant_type",
    "payment_status",
    "document_status",
    "due_date",
    "seats",
    "base_unit_price",
    "discounts",
    "discount_amount",
    "price_before_vat",
    "vat_amount",
    "total_incl_vat",
    "total_discount_amount",
    "total_price_before_vat",
    "total_vat_amount",
    "total_final_price",
    "missing_documents",
]


class PricingBlock(Block):
    """Prices registration lines.

    Inputs (from context):
        - registration_lines: List[RegistrationLine], already filtered by the caller
        - finance_cfg: FinanceReportCFG (uses .pricing)

    Outputs (to context):
        - priced_lines: List[PricedLine]
        - line_pricing: DataFrame with columns:
            * line_id, class_id, class_title, company, customer_name, channel
            * participant_type, payment_status, document_status, due_date
            * seats, base_unit_price
            * discounts: Display names of the active discounts, comma separated
            * discount_amount, price_before_vat, vat_amount, total_incl_vat: per seat
            * total_discount_amount, total_price_before_vat, total_vat_amount,
              total_final_price: per seat × seats
            * missing_documents: Documents still owed, comma separated

    Example:
        context = BlockContext()
        context.set("registration_lines", lines)
        context.set("finance_cfg", FinanceReportCFG())

        PricingBlock().execute(context)
        pricing_df = context.get("line_pricing")
    """

    def __init__(
        self,
        lines_key: str = "registration_lines",
        config_key: str = "finance_cfg",
    ):
        """Initialize PricingBlock.

        Args:
            lines_key: Context key for the registration lines
            config_key: Context key for FinanceReportCFG
        """
        self.lines_key = lines_key
        self.config_key = config_key

    def inputs(self) -> List[str]:
        return [self.lines_key, self.config_key]

    def outputs(self) -> List[str]:
        return ["priced_lines", "line_pricing"]

    def execute(self, context: BlockContext) -> None:
        lines = context.get(self.lines_key)
        config: FinanceReportCFG = context.get(self.config_key)

        priced = price_lines(lines, config.pricing)
        context.set("priced_lines", priced)
        context.set("line_pricing", self._to_dataframe(priced))

    def _to_dataframe(self, priced: List[PricedLine]) -> pd.DataFrame:
        if not priced:
            return pd.DataFrame(columns=LINE_PRICING_COLUMNS)

        rows = []
        for item in priced:
            line, pricing = item.line, item.pricing
            rows.append({
                "line_id": line.id,
                "class_id": line.class_id,
                "class_title": line.class_title,
                "company": line.company,
                "customer_name": line.customer_name,
                "channel": line.channel,
                "participant_type": line.participant_type,
                "payment_status": line.payment_status,
                "document_status": line.document_status,
                "due_date": line.due_date,
                "seats": pricing.seats,
                "base_unit_price": float(pricing.base_unit_price),
                "discounts": ", ".join(rule.display_name for rule in line.active_discounts),
                "discount_amount": float(pricing.discount_amount),
                "price_before_vat": float(pricing.price_before_vat),
                "vat_amount": float(pricing.vat_amount),
                "total_incl_vat": float(pricing.total_incl_vat),
                "total_discount_amount": float(pricing.total_discount_amount),
                "total_price_before_vat": float(pricing.total_price_before_vat),
                "total_vat_amount": float(pricing.total_vat_amount),
                "total_final_price": float(pricing.total_final_price),
                "missing_documents": ", ".join(line.missing_documents()),
            })

        return pd.DataFrame(rows, columns=LINE_PRICING_COLUMNS)
