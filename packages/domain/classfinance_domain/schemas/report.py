"""Finance report configuration - top-level entry point for report blocks.

The FinanceReportCFG is the root configuration object that ties together:
- Pricing locale (VAT rate, currency)
- Rollup breakdowns to compute
- Aging bucket layout
- Promotion impact thresholds

This is what gets placed in the block context (key ``finance_cfg``) before
the report blocks run.
"""

from pydantic import Field

from .base import DomainModel
from .pricing import PricingCFG
from .rollups import RollupCFG
from .aging import AgingCFG
from .promotions import PromotionCFG


class FinanceReportCFG(DomainModel):
    """Root configuration for a finance report run.

    Example:
        FinanceReportCFG(
            pricing=PricingCFG(vat_rate=Decimal("0.07")),
            rollups=RollupCFG(group_by=["class", "channel"]),
        )
    """

    pricing: PricingCFG = Field(default_factory=PricingCFG)
    rollups: RollupCFG = Field(default_factory=RollupCFG)
    aging: AgingCFG = Field(default_factory=AgingCFG)
    promotions: PromotionCFG = Field(default_factory=PromotionCFG)
