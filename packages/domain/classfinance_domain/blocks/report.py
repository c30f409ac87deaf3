"""Finance report pipeline.

Wires the report blocks together and runs them on one batch of
registration lines:

    registration_lines ─► PricingBlock ─► priced_lines ─┬─► RollupBlock
                                                        ├─► AgingBlock
                                                        └─► PromotionBlock
"""

import logging
from typing import Iterable, Optional
from datetime import date

from .base import BlockContext, BlockExecutor
from .pricing import PricingBlock
from .rollups import RollupBlock
from .aging import AgingBlock
from .promotions import PromotionBlock
from ..schemas import DiscountRuleBase, FinanceReportCFG, RegistrationLine

logger = logging.getLogger(__name__)


def run_finance_report(
    lines: Iterable[RegistrationLine],
    as_of: Optional[date] = None,
    cfg: Optional[FinanceReportCFG] = None,
    catalog: Iterable[DiscountRuleBase] = (),
) -> BlockContext:
    """Run every report block over ``lines``.

    Args:
        lines: Registration lines, already filtered by the caller
        as_of: Reference date for aging (default: today)
        cfg: Report configuration (default: FinanceReportCFG())
        catalog: Known promotions for the leaderboard

    Returns:
        BlockContext holding every block output (see each block's docstring)

    Example:
        context = run_finance_report(lines, as_of=date(2025, 6, 15))
        context.get("rollup_summary")
        context.get("aging_buckets")
    """
    lines = list(lines)

    context = BlockContext()
    context.set("registration_lines", lines)
    context.set("as_of", as_of or date.today())
    context.set("finance_cfg", cfg or FinanceReportCFG())

    executor = BlockExecutor([
        PricingBlock(),
        RollupBlock(),
        AgingBlock(),
        PromotionBlock(catalog=catalog),
    ])
    executor.execute(context)

    logger.info("Finance report computed for %d registration lines", len(lines))
    return context
