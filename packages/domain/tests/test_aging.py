"""Tests for receivables aging.

Tests cover:
- Bucket boundaries (Not due, 1–7, 8–30, 31–60, 60+)
- Every pending line lands in exactly one bucket
- Due-soon window (today .. today + 7, inclusive)
- Paid lines are ignored
- Largest pending lines listed per bucket
- Bucket layout validation
"""

import pytest
from decimal import Decimal
from datetime import date, timedelta

from classfinance_domain.schemas import (
    AgingBucketSpec,
    AgingCFG,
    RegistrationLine,
    age_receivables,
)

AS_OF = date(2025, 6, 15)


def pending(line_id, due_date, price="100", **kwargs):
    """Individual pending line; 100.00 base -> 107.00 incl. VAT."""
    return RegistrationLine(
        id=line_id,
        base_unit_price=Decimal(price),
        due_date=due_date,
        **kwargs,
    )


def make_lines():
    return [
        pending("no_due", None),
        pending("due_today", date(2025, 6, 15)),
        pending("due_in_5", date(2025, 6, 20)),
        pending("due_in_7", date(2025, 6, 22)),
        pending("due_in_8", date(2025, 6, 23)),
        pending("late_1", date(2025, 6, 14)),
        pending("late_14", date(2025, 6, 1)),
        pending("late_30", date(2025, 5, 16)),
        pending("late_31", date(2025, 5, 15)),
        pending("late_60", date(2025, 4, 16)),
        pending("late_61", date(2025, 4, 15)),
        pending("paid_late", date(2025, 1, 1), payment_status="paid"),
    ]


# =============================================================================
# Bucketing
# =============================================================================

def test_fourteen_days_overdue_is_8_to_30():
    report = age_receivables([pending("x", date(2025, 6, 1))], as_of=AS_OF)

    assert report.bucket("8–30").count == 1
    assert report.bucket("8–30").amount == Decimal("107.00")
    assert report.overdue[0].days_overdue == 14


def test_bucket_counts_and_amounts():
    report = age_receivables(make_lines(), as_of=AS_OF)

    counts = {bucket.label: bucket.count for bucket in report.buckets}
    assert counts == {"Not due": 5, "1–7": 1, "8–30": 2, "31–60": 2, "60+": 1}

    amounts = {bucket.label: bucket.amount for bucket in report.buckets}
    assert amounts == {
        "Not due": Decimal("535.00"),
        "1–7": Decimal("107.00"),
        "8–30": Decimal("214.00"),
        "31–60": Decimal("214.00"),
        "60+": Decimal("107.00"),
    }


def test_bucket_order():
    report = age_receivables([], as_of=AS_OF)
    assert [bucket.label for bucket in report.buckets] == ["Not due", "1–7", "8–30", "31–60", "60+"]


def test_report_totals():
    report = age_receivables(make_lines(), as_of=AS_OF)

    assert report.as_of == AS_OF
    assert report.total_outstanding == Decimal("1177.00")
    assert report.overdue_amount == Decimal("642.00")
    assert report.overdue_count == 6
    assert report.max_overdue_days == 61


def test_next_7_days_due_is_inclusive():
    report = age_receivables(make_lines(), as_of=AS_OF)

    # due today, in 5 days and in 7 days; not the one due in 8 days
    assert report.next_7_days_due == Decimal("321.00")


def test_every_pending_line_lands_in_exactly_one_bucket():
    lines = [pending(f"l{i}", AS_OF - timedelta(days=i)) for i in range(-10, 120)]
    lines.append(pending("no_due", None))

    report = age_receivables(lines, as_of=AS_OF)

    assert sum(bucket.count for bucket in report.buckets) == len(lines)
    assert sum(bucket.amount for bucket in report.buckets) == report.total_outstanding


def test_paid_lines_are_ignored():
    paid = pending("paid", date(2025, 1, 1), payment_status="paid")
    report = age_receivables([paid], as_of=AS_OF)

    assert report.total_outstanding == Decimal("0")
    assert all(bucket.count == 0 for bucket in report.buckets)
    assert report.max_overdue_days is None


def test_amounts_use_seat_totals():
    line = pending(
        "corp", date(2025, 6, 10), price="1000",
        participant_type="corporate", seats=3, company="Acme",
    )
    report = age_receivables([line], as_of=AS_OF)

    assert report.bucket("1–7").amount == Decimal("3210.00")
    assert report.overdue[0].client == "Acme"


def test_overdue_list_oldest_first():
    report = age_receivables(make_lines(), as_of=AS_OF)

    assert [item.line_id for item in report.overdue] == [
        "late_61", "late_60", "late_31", "late_30", "late_14", "late_1",
    ]


def test_as_of_defaults_to_today():
    line = pending("x", date.today() - timedelta(days=3))
    report = age_receivables([line])

    assert report.as_of == date.today()
    assert report.bucket("1–7").count == 1


def test_top_customers_per_bucket():
    lines = [
        pending("a", date(2025, 6, 1), price="100", customer_name="Ann"),
        pending("b", date(2025, 6, 1), price="300", customer_name="Bob"),
        pending("c", date(2025, 6, 1), price="200", customer_name="Cat"),
        pending(
            "d", date(2025, 6, 1), price="400",
            participant_type="corporate", company="Dune Co.", customer_name="Dan",
        ),
        pending("e", date(2025, 6, 30), price="50"),
    ]

    report = age_receivables(lines, as_of=AS_OF)

    top = report.bucket("8–30").top_customers
    assert [(c.name, c.amount) for c in top] == [
        ("Dune Co.", Decimal("428.00")),
        ("Bob", Decimal("321.00")),
        ("Cat", Decimal("214.00")),
    ]
    assert [c.name for c in report.bucket("Not due").top_customers] == ["—"]
    assert report.bucket("60+").top_customers == []


def test_top_customers_per_bucket_is_configurable():
    lines = [pending(f"l{i}", date(2025, 6, 1), customer_name=f"c{i}") for i in range(3)]
    cfg = AgingCFG(top_customers_per_bucket=1)

    report = age_receivables(lines, as_of=AS_OF, cfg=cfg)

    assert [c.name for c in report.bucket("8–30").top_customers] == ["c0"]


def test_unknown_bucket_label_raises():
    report = age_receivables([], as_of=AS_OF)
    with pytest.raises(KeyError, match="No aging bucket"):
        report.bucket("90+")


# =============================================================================
# Bucket Configuration
# =============================================================================

def test_custom_buckets():
    cfg = AgingCFG(buckets=[
        AgingBucketSpec(label="0–30", min_days=1, max_days=30),
        AgingBucketSpec(label="30+", min_days=31),
    ])
    report = age_receivables(make_lines(), as_of=AS_OF, cfg=cfg)

    counts = {bucket.label: bucket.count for bucket in report.buckets}
    assert counts == {"Not due": 5, "0–30": 3, "30+": 3}


def test_buckets_must_start_at_day_one():
    with pytest.raises(ValueError, match="expected 1"):
        AgingCFG(buckets=[AgingBucketSpec(label="8+", min_days=8)])


def test_buckets_must_not_leave_gaps():
    with pytest.raises(ValueError, match="expected 8"):
        AgingCFG(buckets=[
            AgingBucketSpec(label="1–7", min_days=1, max_days=7),
            AgingBucketSpec(label="10+", min_days=10),
        ])


def test_last_bucket_must_be_open_ended():
    with pytest.raises(ValueError, match="must be open ended"):
        AgingCFG(buckets=[AgingBucketSpec(label="1–7", min_days=1, max_days=7)])


def test_only_last_bucket_may_be_open_ended():
    with pytest.raises(ValueError, match="Only the last bucket"):
        AgingCFG(buckets=[
            AgingBucketSpec(label="1+", min_days=1),
            AgingBucketSpec(label="8+", min_days=8),
        ])


def test_bucket_range_must_be_ordered():
    with pytest.raises(ValueError, match="max_days"):
        AgingBucketSpec(label="bad", min_days=10, max_days=5)
