"""
schemas/group_schema.py — Marshmallow schemas for group and roster endpoints.

Validation responsibility:
  - This file: field types, string lengths, non-empty checks (including trim).
  - services/group_service.py:
      - avatar/color assignment
      - the same blank checks again, as no-ops, for non-HTTP callers
  - routes/groups.py:
      - GROUP_NOT_FOUND (requires a ledger lookup)
      - LAST_MEMBER (the caller enforces the minimum roster size)

IMPORTANT: Inherits from marshmallow.Schema directly. Schemas must be usable
           in unit tests without a Flask application context.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, post_load, validate


def _validate_non_empty_after_trim(value: str) -> None:
    """
    Raises ValidationError if the string is blank or contains only whitespace.
    validate.Length(min=1) alone lets "   " through.
    """
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


def _trimmed_str(max_length: int, label: str) -> fields.Str:
    return fields.Str(
        required=True,
        validate=[
            validate.Length(
                min=1,
                max=max_length,
                error=f"{label} must be between 1 and {max_length} characters.",
            ),
            _validate_non_empty_after_trim,
        ],
    )


class MemberInputSchema(Schema):
    """
    One member draft: {name, email}. Both required, non-empty after trim.

    Id, avatar and color are assigned by the roster manager, never by the client.
    """

    name = _trimmed_str(100, "Member name")
    email = _trimmed_str(255, "Email")

    @post_load
    def strip_values(self, data: dict, **kwargs) -> dict:
        return {key: value.strip() for key, value in data.items()}


class CreateGroupSchema(Schema):
    """
    POST /groups

    name    — non-empty after trim, max 100 chars.
    members — at least one member draft; a group is never created empty.
    """

    name = _trimmed_str(100, "Group name")

    members = fields.List(
        fields.Nested(MemberInputSchema),
        required=True,
        validate=validate.Length(min=1, error="A group needs at least one member."),
    )

    @post_load
    def strip_name(self, data: dict, **kwargs) -> dict:
        data["name"] = data["name"].strip()
        return data


class AddMemberSchema(MemberInputSchema):
    """POST /groups/:id/members — same shape as a member draft."""
