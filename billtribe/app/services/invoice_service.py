"""
services/invoice_service.py — Invoice lifecycle business logic.

State machine (the ONLY place invoice.status changes):

    needs-review ──finalize──▶ reviewed
    draft        ──finalize──▶ reviewed
    reviewed     ──reopen────▶ draft

  - New invoices start in needs-review. Drafts only arise by reopening.
  - finalize requires every item to have at least one assignee in the
    working state. It then copies the working state into each item's
    split_among, moves to reviewed and closes the edit session. This is the
    only path that persists assignments.
  - finalize on an invoice that is already reviewed is idempotent: nothing
    changes and the call is reported as accepted. Explicit item_splits that
    differ from the persisted split_among are rejected (ALREADY_REVIEWED);
    the invoice has to be reopened first.
  - Entering edit mode on a reviewed invoice reopens it FIRST
    (reopen_for_edit), so an invoice is never left finalized while edited.
    The previous split_among seeds the new session.
  - View mode opens a read-only session and never changes status.

Failure semantics:
  Rejections are return values, never exceptions. Unknown ids give None or
  False. An incomplete finalize gives a FinalizeResult with accepted=False
  and the ids of the unassigned items; the invoice is left untouched.
  Assigned member ids are NOT checked against the current roster.

Layer rules:
  - No Flask imports. Receives plain values and a Ledger.
"""

from __future__ import annotations

import dataclasses
import enum
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from billtribe.app.ledger import Ledger
from billtribe.app.models.invoice import Invoice, InvoiceItem, InvoiceStatus
from billtribe.app.services import split_service
from billtribe.app.services.edit_session import EditSession, SessionMode

INCOMPLETE_ASSIGNMENT_MESSAGE = "Please assign members to all items before finalizing"
ALREADY_REVIEWED_MESSAGE = "Invoice is already reviewed; enter edit mode to change its splits"


class Transition(str, enum.Enum):
    FINALIZE = "finalize"
    REOPEN   = "reopen"


TRANSITIONS: dict[tuple[InvoiceStatus, Transition], InvoiceStatus] = {
    (InvoiceStatus.NEEDS_REVIEW, Transition.FINALIZE): InvoiceStatus.REVIEWED,
    (InvoiceStatus.DRAFT,        Transition.FINALIZE): InvoiceStatus.REVIEWED,
    (InvoiceStatus.REVIEWED,     Transition.REOPEN):   InvoiceStatus.DRAFT,
}


class RejectReason(str, enum.Enum):
    NOT_FOUND             = "not-found"
    INCOMPLETE_ASSIGNMENT = "incomplete-assignment"
    ALREADY_REVIEWED      = "already-reviewed"


@dataclass
class FinalizeResult:
    invoice: Invoice | None
    accepted: bool
    reason: RejectReason | None = None
    unassigned_item_ids: list[str] = field(default_factory=list)

    @property
    def message(self) -> str | None:
        if self.reason == RejectReason.INCOMPLETE_ASSIGNMENT:
            return INCOMPLETE_ASSIGNMENT_MESSAGE
        if self.reason == RejectReason.ALREADY_REVIEWED:
            return ALREADY_REVIEWED_MESSAGE
        return None


# ── Private helpers ────────────────────────────────────────────────────────

def can_transition(status: InvoiceStatus, transition: Transition) -> bool:
    return (status, transition) in TRANSITIONS


def _apply(invoice: Invoice, transition: Transition) -> bool:
    """Moves `invoice` along `transition` if the table allows it."""
    target = TRANSITIONS.get((invoice.status, transition))
    if target is None:
        return False
    invoice.status = target
    return True


def _normalise_splits(invoice: Invoice, item_splits: Mapping[str, Sequence[str]]) -> dict[str, list[str]]:
    """
    Restricts `item_splits` to the invoice's items and drops duplicate ids
    while keeping first-seen order.
    """
    return {
        item.id: list(dict.fromkeys(item_splits.get(item.id) or ()))
        for item in invoice.items
    }


def _build_item(raw: Mapping) -> InvoiceItem:
    return InvoiceItem(
        id=Ledger.new_id("item"),
        name=(raw.get("name") or "").strip(),
        quantity=int(raw["quantity"]),
        price=Decimal(str(raw["price"])),
    )


# ── Public service functions ───────────────────────────────────────────────

def create_invoice(
        group_id: str,
        merchant: str,
        invoice_date: date,
        total: Decimal | None,
        items: Iterable[Mapping],
        ledger: Ledger,
        uploaded_by: str | None = None,
) -> Invoice | None:
    """
    Attaches a new invoice to a group. Always starts in needs-review.

    Args:
        group_id:     Owning group.
        merchant:     Required; blank after trimming → no-op.
        invoice_date: Date printed on the receipt.
        total:        Stored as given. When None, the sum of item totals is
                      used, as the entry form does.
        items:        {"name", "quantity", "price"} mappings. Items start
                      unassigned.
        uploaded_by:  Member id of the uploader. Defaults to the first
                      roster member.

    Returns:
        The new Invoice, or None if the group does not exist or the merchant
        is blank.
    """
    group = ledger.get_group(group_id)
    if group is None:
        return None

    merchant = (merchant or "").strip()
    if not merchant:
        return None

    built_items = [_build_item(raw) for raw in items]
    if total is None:
        total = sum((item.total for item in built_items), Decimal("0"))

    if uploaded_by is None and group.members:
        uploaded_by = group.members[0].id

    invoice = Invoice(
        id=Ledger.new_id("inv"),
        group_id=group_id,
        name=f"Invoice from {merchant}",
        merchant=merchant,
        date=invoice_date,
        total=total,
        status=InvoiceStatus.NEEDS_REVIEW,
        items=built_items,
        uploaded_by=uploaded_by,
    )
    ledger.add_invoice(invoice)
    return invoice


def list_invoices(group_id: str, ledger: Ledger) -> list[Invoice] | None:
    """Invoices of a group in creation order, or None if the group does not exist."""
    if ledger.get_group(group_id) is None:
        return None
    return ledger.invoices_for_group(group_id)


def get_invoice(invoice_id: str, ledger: Ledger) -> Invoice | None:
    return ledger.get_invoice(invoice_id)


def delete_invoice(invoice_id: str, ledger: Ledger) -> bool:
    """Removes the invoice and any open session on it. False if it did not exist."""
    return ledger.remove_invoice(invoice_id) is not None


def reopen_for_edit(invoice_id: str, ledger: Ledger) -> bool:
    """
    reviewed → draft.

    Returns True if the invoice was reopened, False if it does not exist or
    is not reviewed. split_among is kept as the starting point for editing.
    """
    invoice = ledger.get_invoice(invoice_id)
    if invoice is None or not _apply(invoice, Transition.REOPEN):
        return False

    ledger.invoices_changed(invoice.group_id)
    return True


def enter_edit_mode(invoice_id: str, ledger: Ledger) -> EditSession | None:
    """
    Opens an edit session seeded from the persisted assignments.

    A reviewed invoice is reopened to draft before the session opens.
    Any session already open on the invoice is replaced.
    """
    invoice = ledger.get_invoice(invoice_id)
    if invoice is None:
        return None

    if invoice.is_finalized:
        reopen_for_edit(invoice_id, ledger)

    return ledger.open_session(EditSession.from_invoice(invoice, SessionMode.EDIT))


def enter_view_mode(invoice_id: str, ledger: Ledger) -> EditSession | None:
    """
    Opens a read-only session. Status is never changed.

    Any session already open on the invoice is replaced; callers that need
    to know whether unsaved toggles are lost check has_unsaved_changes()
    first.
    """
    invoice = ledger.get_invoice(invoice_id)
    if invoice is None:
        return None

    return ledger.open_session(EditSession.from_invoice(invoice, SessionMode.VIEW))


def has_unsaved_changes(invoice_id: str, ledger: Ledger) -> bool:
    """True when an open edit session differs from the persisted split_among."""
    invoice = ledger.get_invoice(invoice_id)
    session = ledger.get_session(invoice_id)
    if invoice is None or session is None or session.read_only:
        return False
    return session.snapshot() != split_service.splits_from_invoice(invoice)


def close_session(invoice_id: str, ledger: Ledger) -> bool:
    """
    Leaves the invoice without finalizing. The working state is discarded;
    split_among and status stay as they were.
    """
    return ledger.close_session(invoice_id) is not None


def toggle_assignment(
        invoice_id: str,
        item_id: str,
        member_id: str,
        ledger: Ledger,
) -> EditSession | None:
    """
    Flips `member_id` on or off for `item_id` in the open edit session.

    Returns the (possibly unchanged) session, or None when the invoice does
    not exist or has no open session. Stale references are no-ops:
      - unknown item
      - member not on the group's current roster
      - read-only (view) session
    """
    invoice = ledger.get_invoice(invoice_id)
    if invoice is None:
        return None

    session = ledger.get_session(invoice_id)
    if session is None:
        return None

    group = ledger.get_group(invoice.group_id)
    if group is None or group.find_member(member_id) is None:
        return session

    session.toggle(item_id, member_id)
    return session


def finalize(
        invoice_id: str,
        ledger: Ledger,
        item_splits: Mapping[str, Sequence[str]] | None = None,
) -> FinalizeResult:
    """
    Commits the working assignments and marks the invoice reviewed.

    The working state is, in order of preference: `item_splits` if given,
    the open session's state, or the persisted split_among.

    Returns:
        FinalizeResult(accepted=True) with the reviewed invoice, or
        accepted=False with reason NOT_FOUND / INCOMPLETE_ASSIGNMENT /
        ALREADY_REVIEWED. A rejected call changes nothing.
    """
    invoice = ledger.get_invoice(invoice_id)
    if invoice is None:
        return FinalizeResult(invoice=None, accepted=False, reason=RejectReason.NOT_FOUND)

    if invoice.is_finalized:
        if item_splits is not None and (
                _normalise_splits(invoice, item_splits) != split_service.splits_from_invoice(invoice)
        ):
            return FinalizeResult(invoice=invoice, accepted=False, reason=RejectReason.ALREADY_REVIEWED)
        return FinalizeResult(invoice=invoice, accepted=True)

    if item_splits is None:
        session = ledger.get_session(invoice_id)
        item_splits = session.item_splits if session else split_service.splits_from_invoice(invoice)

    working = _normalise_splits(invoice, item_splits)

    unassigned = split_service.unassigned_items(invoice, working)
    if unassigned:
        return FinalizeResult(
            invoice=invoice,
            accepted=False,
            reason=RejectReason.INCOMPLETE_ASSIGNMENT,
            unassigned_item_ids=[item.id for item in unassigned],
        )

    invoice.items = [
        dataclasses.replace(item, split_among=working[item.id])
        for item in invoice.items
    ]
    _apply(invoice, Transition.FINALIZE)
    ledger.close_session(invoice_id)
    ledger.invoices_changed(invoice.group_id)
    return FinalizeResult(invoice=invoice, accepted=True)


def compute_member_totals(
        invoice: Invoice,
        item_splits: Mapping[str, Sequence[str]],
        ledger: Ledger,
) -> dict[str, Decimal]:
    """
    {member_id: amount} for the invoice under `item_splits`, with every
    current roster member present.
    """
    group = ledger.get_group(invoice.group_id)
    roster = group.member_ids if group is not None else []
    return split_service.compute_member_totals(invoice, item_splits, roster)


def get_split_state(invoice_id: str, ledger: Ledger) -> dict | None:
    """
    Everything the invoice detail view needs about the current split.

    Uses the open session when there is one, else the persisted state
    (mode "view"). Amounts are full precision; the route rounds them.
    """
    invoice = ledger.get_invoice(invoice_id)
    if invoice is None:
        return None

    session = ledger.get_session(invoice_id)
    working = session.snapshot() if session else split_service.splits_from_invoice(invoice)
    unassigned = split_service.unassigned_items(invoice, working)

    return {
        "invoice": invoice,
        "mode": session.mode if session else SessionMode.VIEW,
        "item_splits": working,
        "items": split_service.item_breakdown(invoice, working),
        "member_totals": compute_member_totals(invoice, working, ledger),
        "all_items_assigned": not unassigned,
        "unassigned_item_ids": [item.id for item in unassigned],
        "can_finalize": (
            session is not None
            and not session.read_only
            and not invoice.is_finalized
            and not unassigned
        ),
    }
