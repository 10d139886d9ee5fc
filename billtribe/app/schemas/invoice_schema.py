"""
schemas/invoice_schema.py — Marshmallow schemas for invoice endpoints.

Validation responsibility:
  - This file:
      - Field types, lengths, decimal precision of money values
      - quantity is a positive integer; price and total are non-negative
      - merchant non-empty after trim
      - Shape of the item_splits mapping sent to finalize
  - services/invoice_service.py:
      - INCOMPLETE_ASSIGNMENT (every item needs an assignee)
      - status transitions
  - routes/invoices.py:
      - GROUP_NOT_FOUND / INVOICE_NOT_FOUND / MEMBER_NOT_FOUND (requires a ledger lookup)

Money values are Decimal. Input with more than 2 decimal places is REJECTED
with INVALID_AMOUNT_PRECISION, never rounded.

IMPORTANT: Inherits from marshmallow.Schema directly. See group_schema.py.
"""

from __future__ import annotations

from decimal import Decimal

from marshmallow import Schema, ValidationError, fields, post_load, validate

from billtribe.app.errors import ErrorCode


def _validate_money(value: Decimal) -> None:
    """
    Validates a monetary Decimal:
      - Must be zero or positive (free items and zero-total receipts exist).
      - Must have at most 2 decimal places.

    Decimal.as_tuple().exponent is the negated scale:
      Decimal("10.123") → -3 → reject; Decimal("10.12") → -2 → accept.
    """
    if value < Decimal("0"):
        raise ValidationError("Amount must not be negative.")
    if value.as_tuple().exponent < -2:
        raise ValidationError(ErrorCode.INVALID_AMOUNT_PRECISION)


def _validate_non_empty_after_trim(value: str) -> None:
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


class InvoiceItemInputSchema(Schema):
    """One line item as entered or extracted: {name, quantity, price}."""

    name = fields.Str(
        load_default="",
        validate=validate.Length(max=255, error="Item name must be at most 255 characters."),
    )

    quantity = fields.Int(
        load_default=1,
        strict=True,   # reject 1.5
        validate=validate.Range(min=1, error="quantity must be a positive integer."),
    )

    # Per-unit price.
    price = fields.Decimal(
        required=True,
        validate=_validate_money,
    )


class CreateInvoiceSchema(Schema):
    """
    POST /groups/:id/invoices

    `total` is optional. When omitted the service stores the sum of the item
    totals. When present it is kept as sent even if it differs from that sum.
    """

    merchant = fields.Str(
        required=True,
        validate=[
            validate.Length(
                min=1,
                max=255,
                error="Merchant must be between 1 and 255 characters.",
            ),
            _validate_non_empty_after_trim,
        ],
    )

    date = fields.Date(required=True)

    total = fields.Decimal(
        load_default=None,
        allow_none=True,
        validate=_validate_money,
    )

    items = fields.List(
        fields.Nested(InvoiceItemInputSchema),
        load_default=list,
        validate=validate.Length(max=200, error="An invoice may have at most 200 items."),
    )

    # Member id of the uploader; defaults to the group's first member.
    uploaded_by = fields.Str(load_default=None, allow_none=True)

    @post_load
    def strip_merchant(self, data: dict, **kwargs) -> dict:
        data["merchant"] = data["merchant"].strip()
        return data


class ToggleAssignmentSchema(Schema):
    """POST /invoices/:id/assignments — flip one member on one item."""

    item_id = fields.Str(required=True, validate=validate.Length(min=1))
    member_id = fields.Str(required=True, validate=validate.Length(min=1))


class FinalizeSchema(Schema):
    """
    POST /invoices/:id/finalize

    `item_splits` is optional. When omitted, the open edit session (or the
    persisted assignment) is finalized.
    """

    item_splits = fields.Dict(
        keys=fields.Str(),
        values=fields.List(fields.Str()),
        load_default=None,
        allow_none=True,
    )
