"""
services/balance_service.py — Group aggregates and member balances.

This file is the SINGLE SOURCE OF TRUTH for the figures rolled up from a
group's invoices. Nothing else sums invoice totals.

Aggregates (derived, never incrementally maintained):
  total_expense   = sum(invoice.total) over all invoices of the group
  pending_balance = sum(invoice.total) over invoices that are not reviewed

The Ledger calls refresh_group_totals() after every change to the invoice
collection, and every read path recomputes instead of trusting the cached
fields on Group.

Member balances:
  Only reviewed invoices count. The uploader fronted the bill, so they are
  credited with everything the members owe for it; each member is debited
  their own share (split_service). Every roster member appears, at zero if
  untouched. The values sum to zero because credits and debits are built from
  the same shares.

Layer rules:
  - No Flask imports. Receives model objects; returns Decimals, dicts, lists.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from decimal import Decimal

from billtribe.app.models.balance import Balance
from billtribe.app.models.group import Group
from billtribe.app.models.invoice import Invoice, InvoiceStatus
from billtribe.app.services import split_service

_ZERO = Decimal("0")


# ── Aggregates ─────────────────────────────────────────────────────────────

def compute_total_expense(invoices: Iterable[Invoice]) -> Decimal:
    return sum((inv.total for inv in invoices), _ZERO)


def compute_pending_balance(invoices: Iterable[Invoice]) -> Decimal:
    return sum(
        (inv.total for inv in invoices if inv.status != InvoiceStatus.REVIEWED),
        _ZERO,
    )


def refresh_group_totals(group: Group, invoices: list[Invoice]) -> Group:
    """Recomputes and stores the derived totals of `group` from `invoices`."""
    group.total_expense = compute_total_expense(invoices)
    group.pending_balance = compute_pending_balance(invoices)
    return group


def group_summary(group: Group, invoices: list[Invoice]) -> dict:
    """
    Fresh aggregate figures for a group, recomputed on read.

    `has_pending` drives the "Pending" badge on the group card.
    """
    refresh_group_totals(group, invoices)
    return {
        "total_expense": group.total_expense,
        "pending_balance": group.pending_balance,
        "has_pending": group.pending_balance > _ZERO,
        "invoice_count": len(invoices),
    }


# ── Member balances ────────────────────────────────────────────────────────

def compute_member_balances(group: Group, invoices: Iterable[Invoice]) -> dict[str, Decimal]:
    """
    Returns {member_id: net_balance} for a group at full precision.

    Algorithm:
      1. For every reviewed invoice with a known uploader, compute the
         persisted per-member shares.
      2. Credit the uploader with the sum of those shares.
      3. Debit each member their share.
      4. Ensure every current roster member appears.

    Invoices that are not reviewed are excluded: their splits are not final.
    """
    balances: dict[str, Decimal] = defaultdict(Decimal)

    for invoice in invoices:
        if invoice.status != InvoiceStatus.REVIEWED or invoice.uploaded_by is None:
            continue

        shares = split_service.compute_member_totals(
            invoice,
            split_service.splits_from_invoice(invoice),
        )
        balances[invoice.uploaded_by] += sum(shares.values(), _ZERO)
        for member_id, share in shares.items():
            balances[member_id] -= share

    for member_id in group.member_ids:
        balances.setdefault(member_id, _ZERO)

    return dict(balances)


def to_balances(balances: dict[str, Decimal]) -> list[Balance]:
    return [Balance(member_id=mid, amount=amount) for mid, amount in balances.items()]


def get_balance_response(group: Group, invoices: list[Invoice]) -> dict:
    """
    Builds the payload for GET /groups/:id/balances.

    Balances are rounded for display only after the full-precision
    computation. Members no longer on the roster keep their balance and are
    labelled by id.
    """
    balances = compute_member_balances(group, invoices)
    rounded = {mid: split_service.to_display(amount) for mid, amount in balances.items()}
    names = {m.id: m.name for m in group.members}

    def _name(member_id: str) -> str:
        return names.get(member_id, member_id)

    summary = group_summary(group, invoices)

    return {
        "group_id": group.id,
        "total_expense": split_service.to_display(summary["total_expense"]),
        "pending_balance": split_service.to_display(summary["pending_balance"]),
        "balances": [
            {
                "member_id": b.member_id,
                "name": _name(b.member_id),
                "amount": b.amount,
            }
            for b in to_balances(rounded)
        ],
    }
