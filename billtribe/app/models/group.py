"""
models/group.py — Group record.

No business logic. No imports from services or routes.

Key design points:
  - `members` keeps insertion order; the roster manager appends new members.
  - `total_expense` and `pending_balance` are DERIVED values. They are written
    only by balance_service.refresh_group_totals(), which the ledger calls every
    time the invoice collection changes. Read paths recompute them anyway —
    never trust the cached values for decisions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal

from billtribe.app.models.member import Member


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Group:
    id:   str
    name: str

    members: list[Member] = field(default_factory=list)

    # Derived — see balance_service.
    total_expense:   Decimal = Decimal("0")
    pending_balance: Decimal = Decimal("0")

    created_at: datetime = field(default_factory=_utcnow)

    def find_member(self, member_id: str) -> Member | None:
        """Returns the roster member with `member_id`, or None if not on the roster."""
        return next((m for m in self.members if m.id == member_id), None)

    @property
    def member_ids(self) -> list[str]:
        return [m.id for m in self.members]

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Group id={self.id} name={self.name!r} members={len(self.members)}>"
