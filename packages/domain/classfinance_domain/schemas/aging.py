"""Accounts-receivable aging.

Pending registrations are classified by how many days they are past their
due date:

    Not due | 1–7 | 8–30 | 31–60 | 60+

Lines without a due date, or due today or later, are "Not due". Overdue
buckets are checked in ascending order and never overlap, so each overdue
line lands in exactly one of them. Each bucket also lists its largest
pending lines for follow-up.
"""

import logging
from typing import Dict, Iterable, List, Optional, Union
from decimal import Decimal
from datetime import date, timedelta
from pydantic import Field, model_validator

from .base import DomainModel, PLACEHOLDER_LABEL, ZERO, round_money
from .pricing import PricingCFG
from .registrations import PricedLine, RegistrationLine, price_lines

logger = logging.getLogger(__name__)


# =============================================================================
# Aging Configuration
# =============================================================================

class AgingBucketSpec(DomainModel):
    """Day range of one overdue bucket (inclusive on both ends)."""

    label: str
    min_days: int = Field(ge=1, description="First day overdue in this bucket")
    max_days: Optional[int] = Field(
        default=None,
        description="Last day overdue in this bucket (None = open ended)"
    )

    @model_validator(mode='after')
    def validate_range(self):
        if self.max_days is not None and self.max_days < self.min_days:
            raise ValueError(
                f"Bucket '{self.label}': max_days ({self.max_days}) < min_days ({self.min_days})"
            )
        return self

    def contains(self, days_overdue: int) -> bool:
        if days_overdue < self.min_days:
            return False
        return self.max_days is None or days_overdue <= self.max_days


def _default_buckets() -> List[AgingBucketSpec]:
    return [
        AgingBucketSpec(label="1–7", min_days=1, max_days=7),
        AgingBucketSpec(label="8–30", min_days=8, max_days=30),
        AgingBucketSpec(label="31–60", min_days=31, max_days=60),
        AgingBucketSpec(label="60+", min_days=61),
    ]


class AgingCFG(DomainModel):
    """Aging bucket layout.

    Buckets must start at day 1, be contiguous, and end open ended, so every
    overdue day count falls in exactly one bucket.

    Example:
        AgingCFG(buckets=[
            AgingBucketSpec(label="0–30", min_days=1, max_days=30),
            AgingBucketSpec(label="30+", min_days=31),
        ])
    """

    buckets: List[AgingBucketSpec] = Field(
        default_factory=_default_buckets,
        description="Overdue buckets in ascending order"
    )

    not_due_label: str = Field(
        default="Not due",
        description="Label of the bucket for lines not yet overdue"
    )

    upcoming_window_days: int = Field(
        default=7,
        ge=0,
        description="Window for 'due soon' (as_of .. as_of + N days, inclusive)"
    )

    top_customers_per_bucket: int = Field(
        default=3,
        ge=0,
        description="Largest pending lines listed per bucket"
    )

    @model_validator(mode='after')
    def validate_coverage(self):
        """Buckets must cover 1..infinity without gaps or overlaps."""
        if not self.buckets:
            raise ValueError("AgingCFG requires at least one bucket")

        expected_min = 1
        for i, spec in enumerate(self.buckets):
            if spec.min_days != expected_min:
                raise ValueError(
                    f"Bucket '{spec.label}' starts at day {spec.min_days}, expected {expected_min}"
                )
            is_last = i == len(self.buckets) - 1
            if spec.max_days is None:
                if not is_last:
                    raise ValueError(f"Only the last bucket may be open ended, not '{spec.label}'")
            else:
                if is_last:
                    raise ValueError(f"Last bucket '{spec.label}' must be open ended (max_days=None)")
                expected_min = spec.max_days + 1
        return self


# =============================================================================
# Aging Results
# =============================================================================

class AgingCustomer(DomainModel):
    """One of the largest pending lines in a bucket."""

    name: str
    amount: Decimal


class AgingBucket(DomainModel):
    """Amount and count of pending lines in one aging bucket."""

    label: str
    min_days: Optional[int] = None
    max_days: Optional[int] = None
    amount: Decimal = ZERO
    count: int = 0
    top_customers: List[AgingCustomer] = Field(default_factory=list)


class OverdueItem(DomainModel):
    """One overdue registration, for follow-up tables."""

    line_id: Optional[str] = None
    client: str = PLACEHOLDER_LABEL
    due_date: date
    days_overdue: int
    amount: Decimal


class AgingReport(DomainModel):
    """Receivables aging as of a date.

    ``buckets[0]`` is always the not-due bucket, followed by the overdue
    buckets in ascending order.
    """

    as_of: date
    buckets: List[AgingBucket]
    total_outstanding: Decimal = ZERO
    overdue_amount: Decimal = ZERO
    overdue_count: int = 0
    next_7_days_due: Decimal = Field(
        default=ZERO,
        description="Pending amount due within the upcoming window"
    )
    max_overdue_days: Optional[int] = None
    overdue: List[OverdueItem] = Field(default_factory=list)

    def bucket(self, label: str) -> AgingBucket:
        """Look up a bucket by label.

        Raises:
            KeyError: If no bucket has that label
        """
        for bucket in self.buckets:
            if bucket.label == label:
                return bucket
        raise KeyError(f"No aging bucket '{label}'. Available: {[b.label for b in self.buckets]}")


# =============================================================================
# Aging Bucketer
# =============================================================================

def age_receivables(
    lines: Iterable[Union[RegistrationLine, PricedLine]],
    as_of: Optional[date] = None,
    cfg: Optional[AgingCFG] = None,
    pricing_cfg: Optional[PricingCFG] = None,
) -> AgingReport:
    """Classify pending registrations into aging buckets.

    Paid lines in the input are ignored.

    Args:
        lines: Registration lines (priced or not)
        as_of: Reference date (default: today)
        cfg: Bucket layout (default: Not due, 1–7, 8–30, 31–60, 60+)
        pricing_cfg: Pricing configuration used for lines not yet priced

    Returns:
        AgingReport with per-bucket amounts and counts

    Example:
        as_of=2025-06-15, pending line due 2025-06-01 (14 days overdue)
        -> counted in bucket "8–30"
    """
    as_of = as_of or date.today()
    cfg = cfg or AgingCFG()

    pending = [p for p in price_lines(lines, pricing_cfg) if p.is_pending]

    not_due = AgingBucket(label=cfg.not_due_label)
    overdue_buckets = [
        AgingBucket(label=spec.label, min_days=spec.min_days, max_days=spec.max_days)
        for spec in cfg.buckets
    ]

    upcoming_end = as_of + timedelta(days=cfg.upcoming_window_days)
    next_due = ZERO
    overdue_items: List[OverdueItem] = []
    members: Dict[int, List[AgingCustomer]] = {}

    for item in pending:
        line = item.line
        amount = item.total_final_price
        days = line.days_overdue(as_of)
        client = line.company or line.customer_name or PLACEHOLDER_LABEL

        if days is None:
            not_due.amount += amount
            not_due.count += 1
            members.setdefault(id(not_due), []).append(AgingCustomer(name=client, amount=amount))
            if line.due_date is not None and as_of <= line.due_date <= upcoming_end:
                next_due += amount
            continue

        # Coverage is validated on AgingCFG, so exactly one bucket matches.
        index = next(i for i, spec in enumerate(cfg.buckets) if spec.contains(days))
        bucket = overdue_buckets[index]
        bucket.amount += amount
        bucket.count += 1
        members.setdefault(id(bucket), []).append(AgingCustomer(name=client, amount=amount))
        overdue_items.append(OverdueItem(
            line_id=line.id,
            client=client,
            due_date=line.due_date,
            days_overdue=days,
            amount=amount,
        ))

    buckets = [not_due] + overdue_buckets
    for bucket in buckets:
        bucket.amount = round_money(bucket.amount)
        largest = sorted(members.get(id(bucket), []), key=lambda c: c.amount, reverse=True)
        bucket.top_customers = largest[:cfg.top_customers_per_bucket]

    overdue_items.sort(key=lambda o: (o.due_date, -o.amount))

    report = AgingReport(
        as_of=as_of,
        buckets=buckets,
        total_outstanding=round_money(sum((p.total_final_price for p in pending), ZERO)),
        overdue_amount=round_money(sum((b.amount for b in overdue_buckets), ZERO)),
        overdue_count=len(overdue_items),
        next_7_days_due=round_money(next_due),
        max_overdue_days=max((o.days_overdue for o in overdue_items), default=None),
        overdue=overdue_items,
    )

    logger.debug(
        "Aged %d pending lines as of %s: overdue=%s (%d lines)",
        len(pending), as_of, report.overdue_amount, report.overdue_count,
    )
    return report
