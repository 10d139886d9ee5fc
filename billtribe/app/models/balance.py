"""
models/balance.py — Balance projection.

Computed by balance_service.compute_member_balances(); never stored.
Sign convention: positive = the member is owed money, negative = the member owes.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class Balance:
    member_id: str
    amount:    Decimal
