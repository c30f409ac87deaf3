"""Computation blocks for training-class finance reports.

This package contains the computation layer that turns registration lines
into DataFrames for dashboards and exports.

Architecture:
    Schemas (models + pure calculations) → Blocks (report tables) → DataFrames

Key concepts:
- Blocks are reusable computation units with explicit dependencies
- Each block declares its inputs and outputs
- Dependency graph enables topological execution
- All tabular outputs are pandas DataFrames for downstream consumption

Available blocks:
- PricingBlock: Prices registration lines
- RollupBlock: Summary and grouped rollups
- AgingBlock: Receivables aging
- PromotionBlock: Promotion leaderboard and KPIs

Usage:
    from classfinance_domain.blocks import run_finance_report

    context = run_finance_report(lines, as_of=date(2025, 6, 15))
    summary_df = context.get("rollup_summary")
"""

from .base import Block, BlockExecutor, BlockContext, CircularDependencyError
from .pricing import PricingBlock
from .rollups import RollupBlock
from .aging import AgingBlock
from .promotions import PromotionBlock
from .report import run_finance_report

__all__ = [
    "Block",
    "BlockExecutor",
    "BlockContext",
    "CircularDependencyError",
    "PricingBlock",
    "RollupBlock",
    "AgingBlock",
    "PromotionBlock",
    "run_finance_report",
]
