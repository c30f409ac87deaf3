"""Tests for blocks architecture.

Tests cover:
- BlockContext get/set/has operations
- Topological sort and dependency resolution
- BlockExecutor validation and execution
- PricingBlock, RollupBlock, AgingBlock, PromotionBlock
- run_finance_report end to end
"""

import pytest
from decimal import Decimal
from datetime import date

from classfinance_domain.blocks import (
    Block,
    BlockContext,
    BlockExecutor,
    CircularDependencyError,
    PricingBlock,
    RollupBlock,
    AgingBlock,
    PromotionBlock,
    run_finance_report,
)
from classfinance_domain.blocks.base import topological_sort
from classfinance_domain.schemas import (
    BuyNPayMDiscount,
    FinanceReportCFG,
    PercentageDiscount,
    RegistrationLine,
    RollupCFG,
)

AS_OF = date(2025, 6, 15)


def make_lines():
    return [
        RegistrationLine(
            id="a",
            class_id="excel_101",
            class_title="Excel for Finance",
            class_date=date(2025, 6, 20),
            participant_type="corporate",
            company="Acme",
            channel="facebook",
            seats=2,
            base_unit_price=Decimal("1000"),
            discounts=[PercentageDiscount(id="eb", name="Early bird", value=Decimal("10"))],
            payment_status="paid",
            document_status="receipted",
            has_payment_slip=True,
        ),
        RegistrationLine(
            id="b",
            class_id="excel_101",
            class_title="Excel for Finance",
            class_date=date(2025, 6, 20),
            customer_name="Jane",
            channel="referral",
            base_unit_price=Decimal("1000"),
            due_date=date(2025, 6, 1),
        ),
        RegistrationLine(
            id="c",
            class_id="sql_201",
            class_title="SQL Reporting",
            class_date=date(2025, 7, 3),
            participant_type="corporate",
            company="Beta",
            seats=4,
            base_unit_price=Decimal("1000"),
            discounts=[BuyNPayMDiscount(id="g4", name="Group deal", value=Decimal("3"))],
            due_date=date(2025, 6, 20),
            document_status="quoted",
        ),
    ]


def make_context(lines=None, cfg=None):
    context = BlockContext()
    context.set("registration_lines", make_lines() if lines is None else lines)
    context.set("finance_cfg", cfg or FinanceReportCFG())
    context.set("as_of", AS_OF)
    return context


# =============================================================================
# BlockContext Tests
# =============================================================================

def test_block_context_get_set():
    context = BlockContext()
    context.set("as_of", AS_OF)
    assert context.get("as_of") == AS_OF


def test_block_context_has_and_keys():
    context = BlockContext()
    assert not context.has("priced_lines")
    context.set("priced_lines", [])
    context.set("finance_cfg", FinanceReportCFG())
    assert context.has("priced_lines")
    assert set(context.keys()) == {"priced_lines", "finance_cfg"}


def test_block_context_get_missing_key():
    context = BlockContext()
    with pytest.raises(KeyError, match="Key 'missing' not found"):
        context.get("missing")


# =============================================================================
# Topological Sort Tests
# =============================================================================

class SimpleBlock(Block):
    """Simple block for testing."""

    def __init__(self, name, inputs, outputs):
        self.name = name
        self._inputs = inputs
        self._outputs = outputs

    def inputs(self):
        return self._inputs

    def outputs(self):
        return self._outputs

    def execute(self, context):
        for output in self._outputs:
            context.set(output, f"{self.name}_output")

    def __repr__(self):
        return f"SimpleBlock({self.name})"


def test_topological_sort_linear_chain():
    block_a = SimpleBlock("A", [], ["data_a"])
    block_b = SimpleBlock("B", ["data_a"], ["data_b"])
    block_c = SimpleBlock("C", ["data_b"], ["data_c"])

    assert topological_sort([block_c, block_a, block_b]) == [block_a, block_b, block_c]


def test_topological_sort_report_blocks():
    rollup, aging, pricing = RollupBlock(), AgingBlock(), PricingBlock()

    ordered = topological_sort([rollup, aging, pricing])

    assert ordered[0] is pricing
    assert ordered[1:] == [rollup, aging]


def test_topological_sort_circular_dependency():
    block_a = SimpleBlock("A", ["data_c"], ["data_a"])
    block_b = SimpleBlock("B", ["data_a"], ["data_b"])
    block_c = SimpleBlock("C", ["data_b"], ["data_c"])

    with pytest.raises(CircularDependencyError, match="Circular dependency detected"):
        topological_sort([block_a, block_b, block_c])


def test_topological_sort_duplicate_output():
    with pytest.raises(ValueError, match="Multiple blocks produce 'priced_lines'"):
        topological_sort([PricingBlock(), PricingBlock()])


# =============================================================================
# BlockExecutor Tests
# =============================================================================

def test_block_executor_missing_input():
    executor = BlockExecutor([PricingBlock()])

    with pytest.raises(KeyError, match="requires input 'registration_lines'"):
        executor.execute(BlockContext())


def test_block_executor_missing_output():

    class BadBlock(Block):
        def inputs(self):
            return []

        def outputs(self):
            return ["output"]

        def execute(self, context):
            pass

    with pytest.raises(ValueError, match="declared output 'output' but didn't write"):
        BlockExecutor([BadBlock()]).execute(BlockContext())


# =============================================================================
# PricingBlock Tests
# =============================================================================

def test_pricing_block():
    context = make_context()
    PricingBlock().execute(context)

    assert len(context.get("priced_lines")) == 3

    df = context.get("line_pricing")
    assert list(df["line_id"]) == ["a", "b", "c"]

    row_a = df[df["line_id"] == "a"].iloc[0]
    assert row_a["discounts"] == "Early bird (10% off)"
    assert row_a["price_before_vat"] == 900.0
    assert row_a["total_final_price"] == 1926.0
    assert row_a["missing_documents"] == ""

    row_c = df[df["line_id"] == "c"].iloc[0]
    assert row_c["total_final_price"] == 3210.0
    assert row_c["missing_documents"] == "INV"


def test_pricing_block_empty():
    context = make_context(lines=[])
    PricingBlock().execute(context)

    df = context.get("line_pricing")
    assert df.empty
    assert "total_final_price" in df.columns


# =============================================================================
# RollupBlock Tests
# =============================================================================

def test_rollup_block_summary():
    context = make_context()
    BlockExecutor([PricingBlock(), RollupBlock()]).execute(context)

    summary = context.get("rollup_summary").iloc[0]
    assert summary["total_incl_vat"] == 6206.0
    assert summary["cash_received"] == 1926.0
    assert summary["outstanding"] == 4280.0
    assert summary["collection_rate_pct"] == 31.0
    assert summary["seats_corporate"] == 6
    assert summary["seats_individual"] == 1
    assert summary["docs_missing_qt"] == 1
    assert summary["docs_missing_inv"] == 2
    assert summary["docs_missing_receipt"] == 0


def test_rollup_block_grouped():
    context = make_context()
    BlockExecutor([PricingBlock(), RollupBlock()]).execute(context)

    by_class = context.get("rollup_by_class")
    assert list(by_class["key"]) == ["sql_201", "excel_101"]
    assert list(by_class["label"]) == ["SQL Reporting", "Excel for Finance"]

    by_company = context.get("rollup_by_company")
    assert dict(zip(by_company["key"], by_company["billing_status"])) == {
        "Beta": "Unpaid",
        "Acme": "Paid",
        "Jane": "Unpaid",
    }

    by_month = context.get("rollup_by_month")
    assert list(by_month["key"]) == ["2025-06", "2025-07"]


def test_rollup_block_client_analysis_and_cash_trend():
    context = make_context()
    BlockExecutor([PricingBlock(), RollupBlock()]).execute(context)

    concentration = context.get("revenue_concentration").iloc[0]
    assert concentration["client_count"] == 1
    assert concentration["top_10_pct"] == 100.0

    mix = context.get("segment_mix").iloc[0]
    assert mix["corporate"] == 1926.0
    assert mix["individual"] == 0.0

    trend = context.get("cash_trend")
    assert list(trend["label"]) == ["20/06–26/06", "27/06–03/07"]
    assert list(trend["revenue_net"]) == [2800.0, 3000.0]
    assert list(trend["cash_received"]) == [1926.0, 0.0]
    assert list(trend["outstanding"]) == [1070.0, 3210.0]


def test_rollup_block_cash_trend_window_from_config():
    cfg = FinanceReportCFG(rollups=RollupCFG(trend_start=date(2025, 7, 1), trend_end=date(2025, 7, 7)))
    context = make_context(cfg=cfg)
    BlockExecutor([PricingBlock(), RollupBlock()]).execute(context)

    trend = context.get("cash_trend")
    assert list(trend["label"]) == ["01/07–07/07"]
    assert list(trend["outstanding"]) == [3210.0]


def test_rollup_block_respects_configured_dimensions():
    cfg = FinanceReportCFG(rollups=RollupCFG(group_by=["channel"]))
    context = make_context(cfg=cfg)
    BlockExecutor([PricingBlock(), RollupBlock()]).execute(context)

    assert not context.get("rollup_by_channel").empty
    assert context.get("rollup_by_class").empty


# =============================================================================
# AgingBlock Tests
# =============================================================================

def test_aging_block():
    context = make_context()
    BlockExecutor([PricingBlock(), AgingBlock()]).execute(context)

    buckets = context.get("aging_buckets")
    assert list(buckets["range"]) == ["Not due", "1–7", "8–30", "31–60", "60+"]
    assert dict(zip(buckets["range"], buckets["count"])) == {
        "Not due": 1, "1–7": 0, "8–30": 1, "31–60": 0, "60+": 0,
    }

    summary = context.get("aging_summary").iloc[0]
    assert summary["overdue_amount"] == 1070.0
    assert summary["next_7_days_due"] == 3210.0
    assert summary["total_outstanding"] == 4280.0

    overdue = context.get("overdue_invoices")
    assert list(overdue["line_id"]) == ["b"]
    assert list(overdue["days_overdue"]) == [14]

    top = context.get("aging_top_customers")
    assert list(zip(top["range"], top["rank"], top["client"], top["amount"])) == [
        ("Not due", 1, "Beta", 3210.0),
        ("8–30", 1, "Jane", 1070.0),
    ]


# =============================================================================
# PromotionBlock Tests
# =============================================================================

def test_promotion_block():
    unused = PercentageDiscount(id="summer", name="Summer", value=Decimal("15"))
    context = make_context()
    BlockExecutor([PricingBlock(), PromotionBlock(catalog=[unused])]).execute(context)

    leaderboard = context.get("promotion_leaderboard")
    assert list(leaderboard["key"]) == ["g4", "eb", "summer"]
    assert list(leaderboard["impact_tag"]) == ["Standard", "High Margin", "Underperforming"]

    summary = context.get("promotion_summary").iloc[0]
    assert summary["promo_lines"] == 2
    assert summary["promo_seats"] == 6
    assert summary["promo_revenue"] == 5136.0
    assert summary["total_discount"] == 1200.0
    assert summary["best_promo_name"] == "Group deal"


def test_promotion_summary_counts_lines_with_inactive_promotions():
    paused = PercentageDiscount(id="paused", name="Paused", value=Decimal("20"), active=False)
    lines = make_lines()
    lines.append(RegistrationLine(id="d", base_unit_price=Decimal("1000"), discounts=[paused]))
    context = make_context(lines=lines)
    BlockExecutor([PricingBlock(), PromotionBlock()]).execute(context)

    summary = context.get("promotion_summary").iloc[0]
    assert summary["promo_lines"] == 3
    assert summary["promo_seats"] == 7
    assert summary["promo_revenue"] == 6206.0
    assert summary["total_discount"] == 1200.0


# =============================================================================
# Full Report
# =============================================================================

def test_run_finance_report():
    context = run_finance_report(make_lines(), as_of=AS_OF)

    for key in (
        "line_pricing",
        "rollup_summary",
        "rollup_by_class",
        "rollup_by_company",
        "rollup_by_channel",
        "rollup_by_participant_type",
        "rollup_by_month",
        "aging_buckets",
        "aging_summary",
        "overdue_invoices",
        "aging_top_customers",
        "revenue_concentration",
        "segment_mix",
        "cash_trend",
        "promotion_leaderboard",
        "promotion_summary",
    ):
        assert context.has(key), key

    assert context.get("rollup_summary").iloc[0]["net_before_vat"] == 5800.0


def test_run_finance_report_empty():
    context = run_finance_report([], as_of=AS_OF)

    summary = context.get("rollup_summary").iloc[0]
    assert summary["total_incl_vat"] == 0.0
    assert summary["collection_rate_pct"] == 0.0
    assert context.get("overdue_invoices").empty
    assert context.get("promotion_leaderboard").empty
