"""
ledger.py — In-memory collections of groups, invoices and edit sessions.

The Ledger is the only state the core touches. It stands where a database
session would stand: services receive it as a `ledger` argument and never
reach for a global. One Ledger lives on each Flask app (see extensions.py);
unit tests construct their own.

Rules:
  - Every mutation of the invoice collection goes through add_invoice() /
    remove_invoice() / invoices_changed() so the derived group totals are
    recomputed (balance_service.refresh_group_totals). Nothing increments
    totals by hand.
  - Lookups of unknown ids return None. Callers decide whether that is a
    no-op (core) or a 404 (routes).
"""

from __future__ import annotations

import uuid

from billtribe.app.models.group import Group
from billtribe.app.models.invoice import Invoice
from billtribe.app.services import balance_service
from billtribe.app.services.edit_session import EditSession


class Ledger:

    def __init__(self) -> None:
        self.groups:   list[Group]   = []   # most recently created first
        self.invoices: list[Invoice] = []   # creation order
        self.sessions: dict[str, EditSession] = {}   # invoice_id → open session

    @staticmethod
    def new_id(prefix: str) -> str:
        """Generates an opaque id such as 'inv-3f2a9c0d1e4b'."""
        return f"{prefix}-{uuid.uuid4().hex[:12]}"

    # ── Groups ─────────────────────────────────────────────────────────────

    def add_group(self, group: Group) -> None:
        self.groups.insert(0, group)

    def get_group(self, group_id: str) -> Group | None:
        return next((g for g in self.groups if g.id == group_id), None)

    # ── Invoices ───────────────────────────────────────────────────────────

    def add_invoice(self, invoice: Invoice) -> None:
        self.invoices.append(invoice)
        self.invoices_changed(invoice.group_id)

    def get_invoice(self, invoice_id: str) -> Invoice | None:
        return next((i for i in self.invoices if i.id == invoice_id), None)

    def invoices_for_group(self, group_id: str) -> list[Invoice]:
        return [i for i in self.invoices if i.group_id == group_id]

    def remove_invoice(self, invoice_id: str) -> Invoice | None:
        """Removes and returns the invoice, or None if it does not exist."""
        invoice = self.get_invoice(invoice_id)
        if invoice is None:
            return None

        self.invoices = [i for i in self.invoices if i.id != invoice_id]
        self.sessions.pop(invoice_id, None)
        self.invoices_changed(invoice.group_id)
        return invoice

    def invoices_changed(self, group_id: str) -> None:
        """Recomputes the derived totals of `group_id` after any invoice change."""
        group = self.get_group(group_id)
        if group is not None:
            balance_service.refresh_group_totals(group, self.invoices_for_group(group_id))

    # ── Edit sessions ──────────────────────────────────────────────────────

    def open_session(self, session: EditSession) -> EditSession:
        """Registers `session`, replacing any session already open on that invoice."""
        self.sessions[session.invoice_id] = session
        return session

    def get_session(self, invoice_id: str) -> EditSession | None:
        return self.sessions.get(invoice_id)

    def close_session(self, invoice_id: str) -> EditSession | None:
        return self.sessions.pop(invoice_id, None)
