"""
routes/invoices.py — Invoice and split-editing route handlers.

Registered at url_prefix=/api/v1 (not /api/v1/invoices) because this blueprint
owns BOTH the group-scoped paths (/groups/:id/invoices) and the invoice-ID
paths (/invoices/:id/...).

Layer rules:
  - Parse, validate, call ONE service, return envelope.
  - Translate core rejections into AppError. The services never raise.
  - Round amounts for display here (to_display), never in the services.

Endpoints:
  POST   /groups/:id/invoices          → 201  create invoice (needs-review)
                                              404 MEMBER_NOT_FOUND for an unknown uploaded_by
  GET    /groups/:id/invoices          → 200  list group invoices
  GET    /invoices/:id                 → 200  invoice detail
  DELETE /invoices/:id                 → 200  delete invoice
  POST   /invoices/:id/edit            → 200  enter edit mode (reopens reviewed)
  POST   /invoices/:id/view            → 200  enter view mode (read-only)
  POST   /invoices/:id/reopen          → 200  reviewed → draft
  POST   /invoices/:id/assignments     → 200  toggle one member on one item
  GET    /invoices/:id/split           → 200  working split state + totals
  POST   /invoices/:id/finalize        → 200  commit splits, mark reviewed
  DELETE /invoices/:id/session         → 200  leave without saving
"""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from billtribe.app.errors import AppError, ErrorCode, WarningCode
from billtribe.app.extensions import store
from billtribe.app.models.invoice import Invoice
from billtribe.app.routes.groups import get_group_or_404
from billtribe.app.schemas.invoice_schema import (
    CreateInvoiceSchema,
    FinalizeSchema,
    ToggleAssignmentSchema,
)
from billtribe.app.services import invoice_service
from billtribe.app.services.invoice_service import RejectReason
from billtribe.app.services.split_service import to_display

invoices_bp = Blueprint("invoices", __name__)


# ── Serialization helpers ──────────────────────────────────────────────────
# Pure data-shaping. Amounts rounded to cents and sent as strings.

def _serialize_invoice(invoice: Invoice) -> dict:
    return {
        "id": invoice.id,
        "group_id": invoice.group_id,
        "name": invoice.name,
        "merchant": invoice.merchant,
        "date": invoice.date.isoformat(),
        "total": to_display(invoice.total),
        "items_total": to_display(invoice.items_total),
        "status": invoice.status.value,
        "is_finalized": invoice.is_finalized,
        "uploaded_by": invoice.uploaded_by,
        "created_at": invoice.created_at.isoformat(),
        "items": [
            {
                "id": item.id,
                "name": item.name,
                "quantity": item.quantity,
                "price": to_display(item.price),
                "item_total": to_display(item.total),
                "split_among": list(item.split_among),
            }
            for item in invoice.items
        ],
    }


def _serialize_split_state(state: dict) -> dict:
    invoice = state["invoice"]
    return {
        "invoice_id": invoice.id,
        "status": invoice.status.value,
        "mode": state["mode"].value,
        "item_splits": state["item_splits"],
        "items": [
            {
                **row,
                "price": to_display(row["price"]),
                "item_total": to_display(row["item_total"]),
                "per_person_amount": (
                    to_display(row["per_person_amount"])
                    if row["per_person_amount"] is not None else None
                ),
            }
            for row in state["items"]
        ],
        "member_totals": {
            mid: to_display(amount) for mid, amount in state["member_totals"].items()
        },
        "total": to_display(invoice.total),
        "items_total": to_display(invoice.items_total),
        "all_items_assigned": state["all_items_assigned"],
        "unassigned_item_ids": state["unassigned_item_ids"],
        "can_finalize": state["can_finalize"],
    }


def _invoice_warnings(invoice: Invoice, unassigned_item_ids: list[str]) -> list[dict]:
    warnings: list[dict] = []
    if unassigned_item_ids and not invoice.is_finalized:
        warnings.append({
            "code": WarningCode.UNASSIGNED_ITEMS,
            "message": invoice_service.INCOMPLETE_ASSIGNMENT_MESSAGE,
            "item_ids": unassigned_item_ids,
        })
    if invoice.total != invoice.items_total:
        warnings.append({
            "code": WarningCode.TOTAL_MISMATCH,
            "message": (
                f"Invoice total {to_display(invoice.total)} differs from the sum of "
                f"its items {to_display(invoice.items_total)}."
            ),
        })
    return warnings


def _get_invoice_or_404(invoice_id: str) -> Invoice:
    """Returns the Invoice or raises INVOICE_NOT_FOUND (404)."""
    invoice = invoice_service.get_invoice(invoice_id, store.ledger)
    if invoice is None:
        raise AppError(
            ErrorCode.INVOICE_NOT_FOUND,
            f"Invoice {invoice_id} does not exist.",
            404,
        )
    return invoice


def _discarded_warning(invoice_id: str) -> list[dict]:
    """Warning for the caller when opening a new session drops unsaved toggles."""
    if not invoice_service.has_unsaved_changes(invoice_id, store.ledger):
        return []
    return [{
        "code": WarningCode.UNSAVED_CHANGES_DISCARDED,
        "message": "Unsaved assignments from the previous edit session were discarded.",
    }]


def _split_response(invoice_id: str, status: int = 200, warnings: list[dict] | None = None):
    state = invoice_service.get_split_state(invoice_id, store.ledger)
    return jsonify({
        "data": _serialize_split_state(state),
        "warnings": [
            *(warnings or []),
            *_invoice_warnings(state["invoice"], state["unassigned_item_ids"]),
        ],
    }), status


# ── Group-scoped invoice routes ────────────────────────────────────────────

@invoices_bp.route("/groups/<group_id>/invoices", methods=["POST"])
def create_invoice(group_id: str):
    """POST /groups/:id/invoices — Attach an invoice. Starts in needs-review."""
    group = get_group_or_404(group_id)
    data = CreateInvoiceSchema().load(request.get_json(force=True) or {})
    if data["uploaded_by"] is not None and group.find_member(data["uploaded_by"]) is None:
        raise AppError(
            ErrorCode.MEMBER_NOT_FOUND,
            f"Member {data['uploaded_by']} is not in group {group_id}.",
            404,
            field="uploaded_by",
        )
    invoice = invoice_service.create_invoice(
        group_id=group_id,
        merchant=data["merchant"],
        invoice_date=data["date"],
        total=data["total"],
        items=data["items"],
        ledger=store.ledger,
        uploaded_by=data["uploaded_by"],
    )
    if invoice is None:
        raise AppError(
            ErrorCode.INVALID_REQUEST,
            "Merchant must not be blank.",
            422,
            field="merchant",
        )

    current_app.logger.info("Invoice %s created in group %s", invoice.id, group_id)
    return jsonify({
        "data": _serialize_invoice(invoice),
        "warnings": _invoice_warnings(invoice, []),
    }), 201


@invoices_bp.route("/groups/<group_id>/invoices", methods=["GET"])
def list_invoices(group_id: str):
    """GET /groups/:id/invoices — Invoices of a group in creation order."""
    get_group_or_404(group_id)
    invoices = invoice_service.list_invoices(group_id, store.ledger) or []
    return jsonify({
        "data": [_serialize_invoice(i) for i in invoices],
        "warnings": [],
    }), 200


# ── Invoice-ID routes ──────────────────────────────────────────────────────

@invoices_bp.route("/invoices/<invoice_id>", methods=["GET"])
def get_invoice(invoice_id: str):
    """GET /invoices/:id — Invoice detail with persisted assignments."""
    invoice = _get_invoice_or_404(invoice_id)
    return jsonify({"data": _serialize_invoice(invoice), "warnings": []}), 200


@invoices_bp.route("/invoices/<invoice_id>", methods=["DELETE"])
def delete_invoice(invoice_id: str):
    """DELETE /invoices/:id — Remove the invoice from its group."""
    deleted = invoice_service.delete_invoice(invoice_id, store.ledger)
    if not deleted:
        raise AppError(
            ErrorCode.INVOICE_NOT_FOUND,
            f"Invoice {invoice_id} does not exist.",
            404,
        )

    current_app.logger.info("Invoice %s deleted", invoice_id)
    return jsonify({
        "data": {"deleted": True, "invoice_id": invoice_id},
        "warnings": [],
    }), 200


@invoices_bp.route("/invoices/<invoice_id>/edit", methods=["POST"])
def enter_edit_mode(invoice_id: str):
    """
    POST /invoices/:id/edit — Open an edit session.
    A reviewed invoice is reopened to draft first.
    """
    invoice = _get_invoice_or_404(invoice_id)
    was_finalized = invoice.is_finalized
    discarded = _discarded_warning(invoice_id)

    invoice_service.enter_edit_mode(invoice_id, store.ledger)
    if was_finalized:
        current_app.logger.info("Invoice %s reopened for edit", invoice_id)

    return _split_response(invoice_id, warnings=discarded)


@invoices_bp.route("/invoices/<invoice_id>/view", methods=["POST"])
def enter_view_mode(invoice_id: str):
    """POST /invoices/:id/view — Open a read-only session. Status unchanged."""
    _get_invoice_or_404(invoice_id)
    discarded = _discarded_warning(invoice_id)
    invoice_service.enter_view_mode(invoice_id, store.ledger)
    return _split_response(invoice_id, warnings=discarded)


@invoices_bp.route("/invoices/<invoice_id>/reopen", methods=["POST"])
def reopen_invoice(invoice_id: str):
    """POST /invoices/:id/reopen — reviewed → draft without opening a session."""
    invoice = _get_invoice_or_404(invoice_id)
    if not invoice_service.reopen_for_edit(invoice_id, store.ledger):
        raise AppError(
            ErrorCode.INVALID_TRANSITION,
            f"Invoice {invoice_id} is {invoice.status.value}; only reviewed invoices can be reopened.",
            422,
        )

    current_app.logger.info("Invoice %s reopened", invoice_id)
    return jsonify({"data": _serialize_invoice(invoice), "warnings": []}), 200


@invoices_bp.route("/invoices/<invoice_id>/assignments", methods=["POST"])
def toggle_assignment(invoice_id: str):
    """
    POST /invoices/:id/assignments — Flip one member on one item.

    Unknown items and members not on the roster are ignored (no-op).
    """
    _get_invoice_or_404(invoice_id)
    data = ToggleAssignmentSchema().load(request.get_json(force=True) or {})

    session = invoice_service.toggle_assignment(
        invoice_id=invoice_id,
        item_id=data["item_id"],
        member_id=data["member_id"],
        ledger=store.ledger,
    )
    if session is None:
        raise AppError(
            ErrorCode.NO_EDIT_SESSION,
            f"Invoice {invoice_id} is not being edited. Enter edit mode first.",
            422,
        )
    if session.read_only:
        raise AppError(
            ErrorCode.READ_ONLY_SESSION,
            f"Invoice {invoice_id} is open in view mode; assignments cannot change.",
            422,
        )

    return _split_response(invoice_id)


@invoices_bp.route("/invoices/<invoice_id>/split", methods=["GET"])
def get_split(invoice_id: str):
    """GET /invoices/:id/split — Working split, per-item shares and member totals."""
    _get_invoice_or_404(invoice_id)
    return _split_response(invoice_id)


@invoices_bp.route("/invoices/<invoice_id>/finalize", methods=["POST"])
def finalize_invoice(invoice_id: str):
    """
    POST /invoices/:id/finalize — Commit assignments and mark reviewed.

    Blocked with INCOMPLETE_ASSIGNMENT (422) while any item is unassigned,
    and with INVALID_TRANSITION (422) when a reviewed invoice is sent
    item_splits that differ from its persisted split. Nothing changes in
    either case.
    """
    _get_invoice_or_404(invoice_id)
    data = FinalizeSchema().load(request.get_json(silent=True) or {})

    result = invoice_service.finalize(
        invoice_id,
        store.ledger,
        item_splits=data["item_splits"],
    )
    if result.reason == RejectReason.ALREADY_REVIEWED:
        raise AppError(
            ErrorCode.INVALID_TRANSITION,
            result.message,
            422,
            field="item_splits",
        )
    if not result.accepted:
        raise AppError(
            ErrorCode.INCOMPLETE_ASSIGNMENT,
            result.message or "Invoice cannot be finalized.",
            422,
            details={"unassigned_item_ids": result.unassigned_item_ids},
        )

    current_app.logger.info("Invoice %s finalized", invoice_id)
    return jsonify({
        "data": _serialize_invoice(result.invoice),
        "warnings": _invoice_warnings(result.invoice, []),
    }), 200


@invoices_bp.route("/invoices/<invoice_id>/session", methods=["DELETE"])
def close_session(invoice_id: str):
    """DELETE /invoices/:id/session — Leave the invoice; unsaved toggles are dropped."""
    _get_invoice_or_404(invoice_id)
    closed = invoice_service.close_session(invoice_id, store.ledger)
    return jsonify({
        "data": {"closed": closed, "invoice_id": invoice_id},
        "warnings": [],
    }), 200
