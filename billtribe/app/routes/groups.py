"""
routes/groups.py — Group and roster route handlers.

Layer rules:
  - Parse, validate, call ONE service, return envelope.
  - Translate core rejections (None / False) into AppError.
  - No business logic beyond the caller-side roster minimum.

Endpoints (base url_prefix=/api/v1/groups):
  POST   /groups                        → 201  create group
  GET    /groups                        → 200  list groups, newest first
  GET    /groups/:id                    → 200  group + members + fresh totals
  POST   /groups/:id/members            → 201  add member
  DELETE /groups/:id/members/:mid       → 200  remove member
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from billtribe.app.errors import AppError, ErrorCode
from billtribe.app.extensions import store
from billtribe.app.models.group import Group
from billtribe.app.models.member import Member
from billtribe.app.schemas.group_schema import AddMemberSchema, CreateGroupSchema
from billtribe.app.services import balance_service, group_service
from billtribe.app.services.split_service import to_display

groups_bp = Blueprint("groups", __name__)


# ── Serialization helpers ──────────────────────────────────────────────────

def serialize_member(member: Member) -> dict:
    return {
        "id": member.id,
        "name": member.name,
        "email": member.email,
        "avatar": member.avatar,
        "color": member.color,
    }


def _serialize_group(group: Group) -> dict:
    """Group with members. Totals are recomputed here, never read stale."""
    summary = balance_service.group_summary(
        group,
        store.ledger.invoices_for_group(group.id),
    )
    return {
        "id": group.id,
        "name": group.name,
        "created_at": group.created_at.isoformat(),
        "members": [serialize_member(m) for m in group.members],
        "total_expense": to_display(summary["total_expense"]),
        "pending_balance": to_display(summary["pending_balance"]),
        "has_pending": summary["has_pending"],
        "invoice_count": summary["invoice_count"],
        "can_remove_members": group_service.can_remove_member(group),
    }


def get_group_or_404(group_id: str) -> Group:
    """Returns the Group or raises GROUP_NOT_FOUND (404)."""
    group = group_service.get_group(group_id, store.ledger)
    if group is None:
        raise AppError(
            ErrorCode.GROUP_NOT_FOUND,
            f"Group {group_id} does not exist.",
            404,
        )
    return group


# ── Routes ─────────────────────────────────────────────────────────────────

@groups_bp.route("/", methods=["POST"])
def create_group():
    """POST /groups — Create a group with at least one member."""
    data = CreateGroupSchema().load(request.get_json(force=True) or {})
    group = group_service.create_group(
        name=data["name"],
        members=data["members"],
        ledger=store.ledger,
    )
    if group is None:
        raise AppError(
            ErrorCode.INVALID_REQUEST,
            "A group needs a name and at least one member.",
            422,
        )

    current_app.logger.info("Group %s created with %d members", group.id, len(group.members))
    return jsonify({"data": _serialize_group(group), "warnings": []}), 201


@groups_bp.route("/", methods=["GET"])
def list_groups():
    """GET /groups — All groups, most recently created first."""
    groups = group_service.list_groups(store.ledger)
    return jsonify({
        "data": [_serialize_group(g) for g in groups],
        "warnings": [],
    }), 200


@groups_bp.route("/<group_id>", methods=["GET"])
def get_group(group_id: str):
    """GET /groups/:id — Group details with member list and totals."""
    group = get_group_or_404(group_id)
    return jsonify({"data": _serialize_group(group), "warnings": []}), 200


@groups_bp.route("/<group_id>/members", methods=["POST"])
def add_member(group_id: str):
    """POST /groups/:id/members — Append a member; avatar and color are assigned."""
    get_group_or_404(group_id)
    data = AddMemberSchema().load(request.get_json(force=True) or {})
    member = group_service.add_member(
        group_id=group_id,
        name=data["name"],
        email=data["email"],
        ledger=store.ledger,
    )
    if member is None:
        raise AppError(
            ErrorCode.INVALID_REQUEST,
            "Member name and email must not be blank.",
            422,
        )

    current_app.logger.info("Member %s added to group %s", member.id, group_id)
    return jsonify({"data": serialize_member(member), "warnings": []}), 201


@groups_bp.route("/<group_id>/members/<member_id>", methods=["DELETE"])
def remove_member(group_id: str, member_id: str):
    """
    DELETE /groups/:id/members/:mid — Remove a member from the roster.

    The last member cannot be removed (LAST_MEMBER, 422). Removing a member
    who is not on the roster is a no-op ("removed": false).
    """
    group = get_group_or_404(group_id)

    if group.find_member(member_id) is not None and not group_service.can_remove_member(group):
        raise AppError(
            ErrorCode.LAST_MEMBER,
            "A group must keep at least one member.",
            422,
            field="member_id",
        )

    removed = group_service.remove_member(group_id, member_id, store.ledger)
    if removed:
        current_app.logger.info("Member %s removed from group %s", member_id, group_id)

    return jsonify({
        "data": {
            "removed": removed,
            "group_id": group_id,
            "member_id": member_id,
        },
        "warnings": [],
    }), 200
