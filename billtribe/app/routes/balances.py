"""
routes/balances.py — Group balance route handler.

Endpoint (base url_prefix=/api/v1/groups):
  GET /groups/:id/balances → 200  totals and member balances
"""

from __future__ import annotations

from flask import Blueprint, jsonify

from billtribe.app.extensions import store
from billtribe.app.routes.groups import get_group_or_404
from billtribe.app.services import balance_service

balances_bp = Blueprint("balances", __name__)


@balances_bp.route("/<group_id>/balances", methods=["GET"])
def get_balances(group_id: str):
    """
    GET /groups/:id/balances

    Only reviewed invoices contribute to member balances; pending_balance
    shows what is still waiting for review.
    """
    group = get_group_or_404(group_id)
    result = balance_service.get_balance_response(
        group,
        store.ledger.invoices_for_group(group_id),
    )
    return jsonify({"data": result, "warnings": []}), 200
