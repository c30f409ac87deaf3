"""Registration lines: one purchased seat-block for one class by one buyer.

Lines arrive already loaded and filtered by the caller (persistence layer,
report controller). The engine only reads them: payment and document
status are set by workflow actions elsewhere.
"""

from typing import Iterable, List, Literal, Optional, Union
from decimal import Decimal
from datetime import date
from pydantic import Field, model_validator

from .base import DomainModel, MoneyAmount, SeatCount, round_money
from .discounts import DiscountRule, DiscountRuleBase
from .pricing import LinePricing, PricingCFG, price_line

ParticipantType = Literal["individual", "corporate"]
PaymentStatus = Literal["pending", "paid"]
DocumentStatus = Literal["quoted", "invoiced", "receipted"]


class RegistrationLine(DomainModel):
    """A registration for one training class.

    Individuals always book a single seat; corporate buyers may book several
    seats on one line.

    Example:
        RegistrationLine(
            id="att_42",
            class_id="excel_101",
            class_title="Excel for Finance",
            class_date=date(2025, 6, 20),
            company="Acme Co.",
            participant_type="corporate",
            seats=3,
            base_unit_price=Decimal("4500"),
            discounts=[PercentageDiscount(name="Early bird", value=Decimal("10"))],
            due_date=date(2025, 6, 30),
        )
    """

    id: Optional[str] = Field(
        default=None,
        description="Registration identifier (attendee record id)"
    )

    # Grouping attributes
    class_id: Optional[str] = Field(
        default=None,
        description="Training class identifier"
    )

    class_title: Optional[str] = Field(
        default=None,
        description="Training class title, used as group label"
    )

    class_date: Optional[date] = Field(
        default=None,
        description="Date the class runs (drives month buckets)"
    )

    customer_name: Optional[str] = Field(
        default=None,
        description="Contact or customer name"
    )

    company: Optional[str] = Field(
        default=None,
        description="Billing company for corporate registrations"
    )

    channel: Optional[str] = Field(
        default=None,
        description="Acquisition channel (e.g., 'facebook', 'referral')"
    )

    # Pricing inputs
    base_unit_price: MoneyAmount = Field(
        description="Base price of one seat before discounts"
    )

    seats: SeatCount = Field(
        default=1,
        description="Seats purchased on this line"
    )

    participant_type: ParticipantType = Field(
        default="individual",
        description="Individual or corporate buyer"
    )

    discounts: List[DiscountRule] = Field(
        default_factory=list,
        description="Promotions attached to this registration, in application order"
    )

    # Workflow state (read only here)
    payment_status: PaymentStatus = Field(
        default="pending",
        description="Pending or paid"
    )

    due_date: Optional[date] = Field(
        default=None,
        description="Payment due date (None = no due date agreed)"
    )

    payment_date: Optional[date] = Field(
        default=None,
        description="Date the payment was received"
    )

    document_status: Optional[DocumentStatus] = Field(
        default=None,
        description="Latest document issued: quotation, invoice or receipt"
    )

    has_payment_slip: bool = Field(
        default=False,
        description="Whether a payment slip has been uploaded"
    )

    @model_validator(mode='after')
    def validate_individual_single_seat(self):
        """Individual registrations cover exactly one seat."""
        if self.participant_type == "individual" and self.seats != 1:
            raise ValueError(
                f"Individual registrations must have exactly 1 seat, got {self.seats}"
            )
        return self

    @property
    def active_discounts(self) -> List[DiscountRuleBase]:
        return [rule for rule in self.discounts if rule.active]

    @property
    def is_paid(self) -> bool:
        return self.payment_status == "paid"

    @property
    def is_pending(self) -> bool:
        return self.payment_status == "pending"

    @property
    def gross_sales_amount(self) -> Decimal:
        """Base price (to the cent) × seats, before any discount."""
        return round_money(self.base_unit_price) * self.seats

    def price(self, cfg: Optional[PricingCFG] = None) -> LinePricing:
        """Price this line with its active discounts."""
        return price_line(self.base_unit_price, self.active_discounts, self.seats, cfg)

    def days_overdue(self, as_of: date) -> Optional[int]:
        """Days past due as of ``as_of``; None unless pending and past the due date."""
        if not self.is_pending or self.due_date is None or self.due_date >= as_of:
            return None
        return (as_of - self.due_date).days

    def missing_documents(self) -> List[str]:
        """Documents still owed for this registration.

        - QT: pending with no document issued yet
        - INV: pending and not yet invoiced
        - Receipt: paid but no receipt issued
        - Slip: paid but no payment slip uploaded
        """
        missing = []
        if self.is_pending and self.document_status is None:
            missing.append("QT")
        if self.is_pending and self.document_status in (None, "quoted"):
            missing.append("INV")
        if self.is_paid and self.document_status != "receipted":
            missing.append("Receipt")
        if self.is_paid and not self.has_payment_slip:
            missing.append("Slip")
        return missing


class PricedLine(DomainModel):
    """A registration line together with its pricing result."""

    line: RegistrationLine
    pricing: LinePricing

    @property
    def total_final_price(self) -> Decimal:
        return self.pricing.total_final_price

    @property
    def is_paid(self) -> bool:
        return self.line.is_paid

    @property
    def is_pending(self) -> bool:
        return self.line.is_pending


def price_lines(
    lines: Iterable[Union[RegistrationLine, PricedLine]],
    cfg: Optional[PricingCFG] = None,
) -> List[PricedLine]:
    """Price every line; already priced lines pass through unchanged."""
    priced = []
    for line in lines:
        if isinstance(line, PricedLine):
            priced.append(line)
        else:
            priced.append(PricedLine(line=line, pricing=line.price(cfg)))
    return priced
