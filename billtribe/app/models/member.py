"""
models/member.py — Member record.

No business logic. Avatar and color are assigned by the roster manager
(services/group_service.py) at creation time and never recomputed.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Member:
    id:     str
    name:   str
    email:  str
    avatar: str   # 2-letter initials
    color:  str   # palette hex, e.g. "#3b82f6"

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Member id={self.id} name={self.name!r}>"
