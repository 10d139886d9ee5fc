"""
models/invoice.py — Invoice and InvoiceItem records.

No business logic. No imports from services or routes.

Key design points:
  - Money is Decimal end to end. Never float.
  - `Invoice.total` is stored as entered/extracted and is NOT required to equal
    the sum of item totals (tax lines, rounding). Both are exposed separately:
    `total` and `items_total`.
  - `InvoiceItem.split_among` is the PERSISTED assignment. It is written only by
    invoice_service.finalize(); editing happens on an EditSession working copy.
  - Status transitions live in invoice_service.TRANSITIONS. Do not assign
    `status` anywhere else.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal


class InvoiceStatus(str, enum.Enum):
    DRAFT        = "draft"
    NEEDS_REVIEW = "needs-review"
    REVIEWED     = "reviewed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class InvoiceItem:
    id:       str
    name:     str
    quantity: int
    price:    Decimal   # per unit

    # Ordered set of member ids. Empty until finalized (or left unassigned).
    split_among: list[str] = field(default_factory=list)

    @property
    def total(self) -> Decimal:
        """quantity × price. Zero quantity or price simply yields zero."""
        return Decimal(self.quantity) * self.price


@dataclass
class Invoice:
    id:       str
    group_id: str
    name:     str
    merchant: str
    date:     date
    total:    Decimal

    status: InvoiceStatus = InvoiceStatus.NEEDS_REVIEW
    items:  list[InvoiceItem] = field(default_factory=list)

    uploaded_by: str | None = None   # member id
    created_at:  datetime = field(default_factory=_utcnow)

    @property
    def items_total(self) -> Decimal:
        return sum((item.total for item in self.items), Decimal("0"))

    @property
    def is_finalized(self) -> bool:
        return self.status == InvoiceStatus.REVIEWED

    def find_item(self, item_id: str) -> InvoiceItem | None:
        return next((i for i in self.items if i.id == item_id), None)

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Invoice id={self.id} "
            f"group_id={self.group_id} "
            f"total={self.total} "
            f"status={self.status.value}>"
        )
