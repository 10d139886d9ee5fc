"""
services/split_service.py — Item-level split engine.

This file is the SINGLE SOURCE OF TRUTH for how an invoice's line items are
divided among members. Any other module that needs a share, a per-person
amount or a completeness check calls into here.

Rules:
  - An item with a non-empty assignment is divided EVENLY:
        share = (quantity × price) / len(assigned)
    No weighted or proportional allocation.
  - An item with an empty assignment contributes 0 to everyone. It is NOT
    spread across the group as a fallback.
  - `item_splits` (item id → member ids) is the working state of an edit
    session and overrides each item's persisted `split_among`. Items missing
    from the mapping count as unassigned.
  - Full Decimal precision internally. Round ONLY for display, via to_display().
    Rounding per member and then summing compounds error across members.
  - Member ids in a split set are not checked against the group roster. A
    member removed after assignment still receives their share.

Layer rules:
  - No Flask imports. Pure functions over model objects and plain dicts.
  - No mutation of the invoice or of `item_splits`.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from decimal import ROUND_HALF_UP, Decimal

from billtribe.app.models.invoice import Invoice, InvoiceItem

ItemSplits = Mapping[str, Sequence[str]]

_ZERO = Decimal("0")
_CENT = Decimal("0.01")


def to_display(amount: Decimal) -> Decimal:
    """Rounds a full-precision amount to cents for display."""
    return amount.quantize(_CENT, rounding=ROUND_HALF_UP)


def splits_from_invoice(invoice: Invoice) -> dict[str, list[str]]:
    """Seeds a working split state from the persisted `split_among` fields."""
    return {item.id: list(item.split_among) for item in invoice.items}


def _assigned(item: InvoiceItem, item_splits: ItemSplits) -> Sequence[str]:
    return item_splits.get(item.id) or ()


def per_person_amount(item: InvoiceItem, assigned: Sequence[str]) -> Decimal:
    """
    Returns each assignee's share of `item`.

    Returns 0 for an empty assignment. quantity/price of zero give a zero
    total; they never feed the divisor, so there is no division error.
    """
    if not assigned:
        return _ZERO
    return item.total / Decimal(len(assigned))


def compute_member_share(
        invoice: Invoice,
        item_splits: ItemSplits,
        member_id: str,
) -> Decimal:
    """
    Total amount `member_id` owes for `invoice` under `item_splits`.

    Pure: identical inputs always give an identical result.
    """
    total = _ZERO
    for item in invoice.items:
        assigned = _assigned(item, item_splits)
        if member_id in assigned:
            total += per_person_amount(item, assigned)
    return total


def compute_member_totals(
        invoice: Invoice,
        item_splits: ItemSplits,
        member_ids: Iterable[str] = (),
) -> dict[str, Decimal]:
    """
    Returns {member_id: amount owed} for `invoice`.

    Every id in `member_ids` (normally the current roster) appears, at zero if
    nothing is assigned to it. Ids that appear only in split sets (stale
    assignments) are included too, so the values always add up to the sum of
    the assigned item totals.
    """
    totals: dict[str, Decimal] = {mid: _ZERO for mid in member_ids}

    for item in invoice.items:
        assigned = _assigned(item, item_splits)
        share = per_person_amount(item, assigned)
        for mid in assigned:
            totals[mid] = totals.get(mid, _ZERO) + share

    return totals


def item_breakdown(invoice: Invoice, item_splits: ItemSplits) -> list[dict]:
    """
    Per-item view of the working split: item total, assignee count and the
    per-person amount (None when the item is unassigned).
    """
    rows = []
    for item in invoice.items:
        assigned = list(_assigned(item, item_splits))
        rows.append({
            "item_id": item.id,
            "name": item.name,
            "quantity": item.quantity,
            "price": item.price,
            "item_total": item.total,
            "split_among": assigned,
            "split_count": len(assigned),
            "per_person_amount": per_person_amount(item, assigned) if assigned else None,
        })
    return rows


def unassigned_items(invoice: Invoice, item_splits: ItemSplits) -> list[InvoiceItem]:
    """Items whose working assignment is empty."""
    return [item for item in invoice.items if not _assigned(item, item_splits)]


def all_items_assigned(invoice: Invoice, item_splits: ItemSplits) -> bool:
    """
    Finalize precondition: every item has at least one assignee.

    An invoice with no items trivially satisfies it.
    """
    return not unassigned_items(invoice, item_splits)


def assigned_total(invoice: Invoice, item_splits: ItemSplits) -> Decimal:
    """Sum of the totals of all assigned items — what the members owe together."""
    return sum(
        (item.total for item in invoice.items if _assigned(item, item_splits)),
        _ZERO,
    )
