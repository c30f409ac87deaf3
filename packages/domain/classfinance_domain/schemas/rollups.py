"""Registration rollups: sales, discounts, VAT, cash and receivables.

A rollup folds priced registration lines into one set of totals. Grouped
rollups apply the same fold per class, company, channel, participant type or
month.

All money sums are exact Decimal sums of per-line seat totals (which are
already whole cents), so aggregating a list in one go or in two halves and
adding the results gives identical figures.

The module also covers paid-revenue concentration across clients, the
corporate/individual segment mix and a weekly cash trend.
"""

import logging
import math
from typing import Callable, Dict, Iterable, List, Literal, Optional, Tuple, Union
from decimal import Decimal
from datetime import date, timedelta
from pydantic import Field

from .base import (
    DomainModel,
    PLACEHOLDER_LABEL,
    ZERO,
    round_money,
    safe_pct,
)
from .pricing import PricingCFG
from .registrations import PricedLine, RegistrationLine, price_lines

logger = logging.getLogger(__name__)

GroupBy = Literal["class", "company", "channel", "participant_type", "month"]

GROUP_DIMENSIONS: Tuple[str, ...] = ("class", "company", "channel", "participant_type", "month")


# =============================================================================
# Rollup
# =============================================================================

class Rollup(DomainModel):
    """Aggregated figures for a set of registration lines.

    Money fields are 2-decimal Decimals; rates are percentages rounded to
    1 decimal. Rates with a zero denominator are 0.
    """

    key: Optional[str] = Field(
        default=None,
        description="Group key (None for an ungrouped rollup)"
    )

    label: Optional[str] = Field(
        default=None,
        description="Display label for the group"
    )

    line_count: int = 0
    paid_count: int = 0
    seats: int = 0

    gross_sales: Decimal = ZERO
    total_discounts: Decimal = ZERO
    net_before_vat: Decimal = ZERO
    vat_amount: Decimal = ZERO
    total_incl_vat: Decimal = ZERO
    cash_received: Decimal = ZERO
    outstanding: Decimal = ZERO

    collection_rate_pct: Decimal = Field(
        default=Decimal("0.0"),
        description="cash_received / total_incl_vat × 100"
    )

    discount_rate_pct: Decimal = Field(
        default=Decimal("0.0"),
        description="total_discounts / gross_sales × 100"
    )

    avg_revenue_per_seat: Decimal = Field(
        default=ZERO,
        description="net_before_vat / seats"
    )

    avg_discount_per_seat: Decimal = Field(
        default=ZERO,
        description="total_discounts / seats"
    )

    @property
    def billing_status(self) -> str:
        """Unpaid (nothing collected), Partial, or Paid."""
        if self.cash_received == 0:
            return "Unpaid"
        if self.total_incl_vat - self.cash_received > 0:
            return "Partial"
        return "Paid"

    @classmethod
    def from_priced(
        cls,
        priced: List[PricedLine],
        key: Optional[str] = None,
        label: Optional[str] = None,
    ) -> "Rollup":
        """Fold priced lines into a rollup."""
        gross = sum((p.pricing.gross_amount for p in priced), ZERO)
        discounts = sum((p.pricing.total_discount_amount for p in priced), ZERO)
        net = sum((p.pricing.total_price_before_vat for p in priced), ZERO)
        vat = sum((p.pricing.total_vat_amount for p in priced), ZERO)
        total = sum((p.total_final_price for p in priced), ZERO)
        cash = sum((p.total_final_price for p in priced if p.is_paid), ZERO)
        outstanding = sum((p.total_final_price for p in priced if p.is_pending), ZERO)
        seats = sum(p.pricing.seats for p in priced)

        return cls(
            key=key,
            label=label,
            line_count=len(priced),
            paid_count=sum(1 for p in priced if p.is_paid),
            seats=seats,
            gross_sales=round_money(gross),
            total_discounts=round_money(discounts),
            net_before_vat=round_money(net),
            vat_amount=round_money(vat),
            total_incl_vat=round_money(total),
            cash_received=round_money(cash),
            outstanding=round_money(outstanding),
            collection_rate_pct=safe_pct(cash, total),
            discount_rate_pct=safe_pct(discounts, gross),
            avg_revenue_per_seat=round_money(net / seats) if seats else ZERO,
            avg_discount_per_seat=round_money(discounts / seats) if seats else ZERO,
        )


# =============================================================================
# Rollup Configuration
# =============================================================================

class RollupCFG(DomainModel):
    """Which grouped breakdowns a report computes.

    Example:
        RollupCFG(group_by=["class", "channel"])
    """

    group_by: List[GroupBy] = Field(
        default_factory=lambda: list(GROUP_DIMENSIONS),
        description="Group dimensions to break the summary down by"
    )

    trend_start: Optional[date] = Field(
        default=None,
        description="First day of the weekly cash trend (None = earliest class date)"
    )

    trend_end: Optional[date] = Field(
        default=None,
        description="Last day of the weekly cash trend (None = latest class date)"
    )


# =============================================================================
# Grouping
# =============================================================================

_PARTICIPANT_LABELS = {"corporate": "Corporate", "individual": "Individual"}


def _class_key(line: RegistrationLine) -> Tuple[str, str]:
    key = line.class_id or PLACEHOLDER_LABEL
    return key, line.class_title or key


def _company_key(line: RegistrationLine) -> Tuple[str, str]:
    name = line.company or line.customer_name or PLACEHOLDER_LABEL
    return name, name


def _channel_key(line: RegistrationLine) -> Tuple[str, str]:
    channel = line.channel or PLACEHOLDER_LABEL
    return channel, channel


def _participant_key(line: RegistrationLine) -> Tuple[str, str]:
    return line.participant_type, _PARTICIPANT_LABELS[line.participant_type]


def _month_key(line: RegistrationLine) -> Tuple[str, str]:
    if line.class_date is None:
        return PLACEHOLDER_LABEL, PLACEHOLDER_LABEL
    return line.class_date.strftime("%Y-%m"), line.class_date.strftime("%b %Y")


_KEY_FUNCS: Dict[str, Callable[[RegistrationLine], Tuple[str, str]]] = {
    "class": _class_key,
    "company": _company_key,
    "channel": _channel_key,
    "participant_type": _participant_key,
    "month": _month_key,
}

# Revenue field each breakdown is ranked by (descending). Months are
# chronological instead.
_SORT_FIELDS: Dict[str, Optional[str]] = {
    "class": "net_before_vat",
    "company": "net_before_vat",
    "participant_type": "net_before_vat",
    "channel": "total_incl_vat",
    "month": None,
}


def group_rollups(priced: List[PricedLine], group_by: str) -> Dict[str, Rollup]:
    """Roll priced lines up per group, ordered for display.

    Args:
        priced: Priced lines
        group_by: One of "class", "company", "channel", "participant_type", "month"

    Returns:
        Mapping of group key to rollup, in display order

    Raises:
        ValueError: If group_by is not a known dimension
    """
    if group_by not in _KEY_FUNCS:
        raise ValueError(
            f"Unknown group_by '{group_by}'. Expected one of: {', '.join(GROUP_DIMENSIONS)}"
        )

    key_func = _KEY_FUNCS[group_by]
    groups: Dict[str, List[PricedLine]] = {}
    labels: Dict[str, str] = {}
    for item in priced:
        key, label = key_func(item.line)
        groups.setdefault(key, []).append(item)
        labels.setdefault(key, label)

    rollups = [
        Rollup.from_priced(items, key=key, label=labels[key])
        for key, items in groups.items()
    ]

    sort_field = _SORT_FIELDS[group_by]
    if sort_field is None:
        rollups.sort(key=lambda r: (r.key == PLACEHOLDER_LABEL, r.key))
    else:
        rollups.sort(key=lambda r: getattr(r, sort_field), reverse=True)

    logger.debug("Grouped %d lines into %d %s rollups", len(priced), len(rollups), group_by)
    return {rollup.key: rollup for rollup in rollups}


def aggregate(
    lines: Iterable[Union[RegistrationLine, PricedLine]],
    group_by: Optional[GroupBy] = None,
    cfg: Optional[PricingCFG] = None,
) -> Union[Rollup, Dict[str, Rollup]]:
    """Aggregate registration lines into rollups.

    Args:
        lines: Registration lines (priced or not), already filtered by the caller
        group_by: Optional group dimension; None returns a single rollup
        cfg: Pricing configuration used for lines that are not yet priced

    Returns:
        A Rollup, or a mapping of group key to Rollup when grouped

    Example:
        summary = aggregate(lines)
        summary.collection_rate_pct   # Decimal("62.5")

        by_class = aggregate(lines, group_by="class")
        list(by_class)                # class ids, highest net revenue first
    """
    priced = price_lines(lines, cfg)
    if group_by is None:
        return Rollup.from_priced(priced)
    return group_rollups(priced, group_by)


# =============================================================================
# Client Revenue Analysis
# =============================================================================

class RevenueConcentration(DomainModel):
    """Share of paid revenue held by the top clients.

    Each share takes the top ``max(ceil(n × p), 1)`` clients out of ``n``
    paying clients. All shares are 0 when nothing has been paid.
    """

    client_count: int = 0
    top_10_pct: Decimal = Decimal("0.0")
    top_20_pct: Decimal = Decimal("0.0")
    top_50_pct: Decimal = Decimal("0.0")


class SegmentMix(DomainModel):
    """Paid revenue split between corporate and individual buyers."""

    corporate: Decimal = ZERO
    individual: Decimal = ZERO
    total: Decimal = ZERO
    corporate_pct: Decimal = Decimal("0.0")
    individual_pct: Decimal = Decimal("0.0")


def _top_share(sorted_revenues: List[Decimal], total: Decimal, pct: int) -> Decimal:
    cutoff = max(math.ceil(len(sorted_revenues) * pct / 100), 1)
    return safe_pct(sum(sorted_revenues[:cutoff], ZERO), total)


def revenue_concentration(
    lines: Iterable[Union[RegistrationLine, PricedLine]],
    cfg: Optional[PricingCFG] = None,
) -> RevenueConcentration:
    """How much of the paid revenue comes from the biggest clients.

    Clients are keyed like the company breakdown (company, else customer
    name). Only paid lines count.

    Example:
        paid totals per client: 2140, 535, 214, 107
        -> top_10_pct = top_20_pct = 71.4 (1 client), top_50_pct = 89.3 (2 clients)
    """
    by_client: Dict[str, Decimal] = {}
    for item in price_lines(lines, cfg):
        if not item.is_paid:
            continue
        client, _ = _company_key(item.line)
        by_client[client] = by_client.get(client, ZERO) + item.total_final_price

    revenues = sorted(by_client.values(), reverse=True)
    total = round_money(sum(revenues, ZERO))
    if total == 0:
        return RevenueConcentration(client_count=len(revenues))

    return RevenueConcentration(
        client_count=len(revenues),
        top_10_pct=_top_share(revenues, total, 10),
        top_20_pct=_top_share(revenues, total, 20),
        top_50_pct=_top_share(revenues, total, 50),
    )


def segment_mix(
    lines: Iterable[Union[RegistrationLine, PricedLine]],
    cfg: Optional[PricingCFG] = None,
) -> SegmentMix:
    """Paid revenue (incl. VAT) by participant type."""
    paid = [item for item in price_lines(lines, cfg) if item.is_paid]
    corporate = round_money(sum(
        (p.total_final_price for p in paid if p.line.participant_type == "corporate"), ZERO
    ))
    individual = round_money(sum(
        (p.total_final_price for p in paid if p.line.participant_type != "corporate"), ZERO
    ))
    total = corporate + individual

    return SegmentMix(
        corporate=corporate,
        individual=individual,
        total=total,
        corporate_pct=safe_pct(corporate, total),
        individual_pct=safe_pct(individual, total),
    )


# =============================================================================
# Cash Trend
# =============================================================================

class CashTrendRow(DomainModel):
    """Revenue and collections for one week of class dates."""

    label: str
    week_start: date
    week_end: date
    revenue_net: Decimal = ZERO
    cash_received: Decimal = ZERO
    outstanding: Decimal = ZERO


def cash_trend(
    lines: Iterable[Union[RegistrationLine, PricedLine]],
    start: Optional[date] = None,
    end: Optional[date] = None,
    cfg: Optional[PricingCFG] = None,
) -> List[CashTrendRow]:
    """Weekly buckets of net revenue, cash received and outstanding.

    Weeks are consecutive 7-day slices starting at ``start``; the last one is
    cut at ``end``. Lines are placed by class date; lines without one, or
    outside the window, are left out.

    Args:
        lines: Registration lines (priced or not)
        start: First day of the window (default: earliest class date)
        end: Last day of the window (default: latest class date)
        cfg: Pricing configuration used for lines not yet priced

    Returns:
        One row per week, oldest first; empty when there is no window

    Example:
        start=2025-06-01, end=2025-06-15
        -> "01/06–07/06", "08/06–14/06", "15/06–15/06"
    """
    priced = [p for p in price_lines(lines, cfg) if p.line.class_date is not None]
    class_dates = [p.line.class_date for p in priced]
    start = start or min(class_dates, default=None)
    end = end or max(class_dates, default=None)
    if start is None or end is None or end < start:
        return []

    rows = []
    week_start = start
    while week_start <= end:
        week_end = min(week_start + timedelta(days=6), end)
        week = [p for p in priced if week_start <= p.line.class_date <= week_end]
        rows.append(CashTrendRow(
            label=f"{week_start:%d/%m}–{week_end:%d/%m}",
            week_start=week_start,
            week_end=week_end,
            revenue_net=round_money(sum((p.pricing.total_price_before_vat for p in week), ZERO)),
            cash_received=round_money(sum((p.total_final_price for p in week if p.is_paid), ZERO)),
            outstanding=round_money(sum((p.total_final_price for p in week if p.is_pending), ZERO)),
        ))
        week_start = week_end + timedelta(days=1)

    logger.debug("Built %d cash trend weeks from %s to %s", len(rows), start, end)
    return rows
