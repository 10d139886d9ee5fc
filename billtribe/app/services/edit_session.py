"""
services/edit_session.py — Working copy of an invoice's split assignments.

An EditSession holds the in-progress `item_splits` (item id → member ids)
while a user edits an invoice. It is never the persisted state: the invoice
items keep their `split_among` untouched until invoice_service.finalize()
merges the session in. Closing a session without finalizing discards it.

A session opened in VIEW mode is read-only; toggle() refuses to change it.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from billtribe.app.models.invoice import Invoice
from billtribe.app.services.split_service import splits_from_invoice


class SessionMode(str, enum.Enum):
    VIEW = "view"
    EDIT = "edit"


@dataclass
class EditSession:
    invoice_id: str
    mode: SessionMode = SessionMode.EDIT
    item_splits: dict[str, list[str]] = field(default_factory=dict)

    @classmethod
    def from_invoice(cls, invoice: Invoice, mode: SessionMode = SessionMode.EDIT) -> EditSession:
        """Opens a session seeded from the invoice's persisted assignments."""
        return cls(
            invoice_id=invoice.id,
            mode=mode,
            item_splits=splits_from_invoice(invoice),
        )

    @property
    def read_only(self) -> bool:
        return self.mode == SessionMode.VIEW

    def assigned(self, item_id: str) -> list[str]:
        return list(self.item_splits.get(item_id, []))

    def toggle(self, item_id: str, member_id: str) -> bool:
        """
        Adds `member_id` to the item's assignment, or removes it if present.

        Returns False (and changes nothing) when the session is read-only or
        the item is not part of the invoice.
        """
        if self.read_only or item_id not in self.item_splits:
            return False

        current = self.item_splits[item_id]
        if member_id in current:
            self.item_splits[item_id] = [m for m in current if m != member_id]
        else:
            self.item_splits[item_id] = [*current, member_id]
        return True

    def snapshot(self) -> dict[str, list[str]]:
        """Independent copy of the working state."""
        return {item_id: list(members) for item_id, members in self.item_splits.items()}
