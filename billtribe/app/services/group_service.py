"""
services/group_service.py — Group roster business logic.

Rules:
  - Blank input is a no-op, not an error: create_group() and add_member()
    return None when a required field is blank after trimming. The route
    layer has already validated shape with a marshmallow schema; these checks
    keep the core safe for any other caller.
  - Colors come from MEMBER_COLORS: the first palette entry not used by an
    existing member of the group. When all are used, the first entry is
    reused. Collisions past ten members are accepted behaviour.
  - remove_member() does NOT enforce a minimum roster size. Callers must
    refuse to remove the last member (routes/groups.py does).
  - Removing a member leaves their id in every invoice's split_among.

Layer rules:
  - No Flask imports. Receives plain values and a Ledger.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime, timezone

from billtribe.app.ledger import Ledger
from billtribe.app.models.group import Group
from billtribe.app.models.member import Member

MEMBER_COLORS: tuple[str, ...] = (
    "#3b82f6",
    "#8b5cf6",
    "#ec4899",
    "#10b981",
    "#f59e0b",
    "#ef4444",
    "#06b6d4",
    "#f97316",
    "#84cc16",
    "#a855f7",
)


# ── Private helpers ────────────────────────────────────────────────────────

def make_initials(name: str) -> str:
    """
    Two-letter avatar text.

    "Ada Lovelace" → "AL"; "plato" → "PL"; "Jo" → "JO".
    """
    parts = name.split()
    if len(parts) >= 2:
        return (parts[0][0] + parts[1][0]).upper()
    return name.strip()[:2].upper()


def next_color(existing: Iterable[Member]) -> str:
    """First palette color not taken by `existing`, else the first palette color."""
    used = {m.color for m in existing}
    return next((c for c in MEMBER_COLORS if c not in used), MEMBER_COLORS[0])


def _build_member(name: str, email: str, existing: list[Member]) -> Member | None:
    name, email = (name or "").strip(), (email or "").strip()
    if not name or not email:
        return None

    return Member(
        id=Ledger.new_id("m"),
        name=name,
        email=email,
        avatar=make_initials(name),
        color=next_color(existing),
    )


# ── Public service functions ───────────────────────────────────────────────

def create_group(
        name: str,
        members: Iterable[Member | Mapping[str, str]],
        ledger: Ledger,
) -> Group | None:
    """
    Creates a group and prepends it to the ledger (newest first).

    Args:
        name:    Group name. Blank after trimming → no-op.
        members: Ready-made Member objects, or {"name", "email"} drafts that
                 get an id, avatar and color here. Colors are unique among
                 the new members until the palette runs out.

    Returns:
        The new Group, or None if the name is blank or no valid member was given.
    """
    name = (name or "").strip()
    if not name:
        return None

    roster: list[Member] = []
    for entry in members:
        if isinstance(entry, Member):
            roster.append(entry)
            continue
        member = _build_member(entry.get("name", ""), entry.get("email", ""), roster)
        if member is not None:
            roster.append(member)

    if not roster:
        return None

    group = Group(
        id=Ledger.new_id("g"),
        name=name,
        members=roster,
        created_at=datetime.now(timezone.utc),
    )
    ledger.add_group(group)
    return group


def list_groups(ledger: Ledger) -> list[Group]:
    """All groups, most recently created first."""
    return list(ledger.groups)


def get_group(group_id: str, ledger: Ledger) -> Group | None:
    return ledger.get_group(group_id)


def add_member(
        group_id: str,
        name: str,
        email: str,
        ledger: Ledger,
) -> Member | None:
    """
    Appends a new member to the group roster.

    Returns None (and changes nothing) if the group does not exist or the
    name or email is blank after trimming.
    """
    group = ledger.get_group(group_id)
    if group is None:
        return None

    member = _build_member(name, email, group.members)
    if member is None:
        return None

    group.members = [*group.members, member]
    return member


def remove_member(group_id: str, member_id: str, ledger: Ledger) -> bool:
    """
    Removes `member_id` from the group roster.

    Unconditional at this level: the last member can be removed. Returns
    False when the group or the member does not exist (stale id, no-op).
    Invoice split_among fields are left untouched.
    """
    group = ledger.get_group(group_id)
    if group is None or group.find_member(member_id) is None:
        return False

    group.members = [m for m in group.members if m.id != member_id]
    return True


def can_remove_member(group: Group) -> bool:
    """True while removing one member would still leave at least one."""
    return len(group.members) > 1
