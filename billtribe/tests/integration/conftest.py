"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - The app is created once per session using create_app("testing").
  - State lives in the app's in-memory Ledger. Before every test the Ledger
    is replaced with an empty one (store.reset()), so tests are isolated.
  - Requests go through Flask's test client and the JSON envelope
    {"data": ..., "warnings": [...]} / {"error": {...}}.

The `api` fixture wraps the common calls (make_group, make_invoice, edit,
toggle, finalize, ...). Helpers that are expected to succeed assert the
status code so failures point at the setup step, not the assertion.
"""

from __future__ import annotations

import pytest

from billtribe.app import create_app
from billtribe.app.extensions import store


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    """Creates the Flask application in 'testing' mode once for the entire test session."""
    return create_app("testing")


# ═══════════════════════════════════════════════════════════════════════════
# Function-scoped test isolation
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def fresh_ledger(app):
    """Gives every test an empty Ledger."""
    with app.app_context():
        store.reset()
    yield


# ═══════════════════════════════════════════════════════════════════════════
# Client fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (function-scoped)."""
    return app.test_client()


# ═══════════════════════════════════════════════════════════════════════════
# API helper
# ═══════════════════════════════════════════════════════════════════════════

GROCERY_ITEMS = [
    {"name": "Organic Vegetables", "quantity": 1, "price": "24.99"},
    {"name": "Milk & Dairy",       "quantity": 2, "price": "15.98"},
    {"name": "Fresh Bread",        "quantity": 1, "price": "4.50"},
]


class Api:
    """Thin wrappers around the endpoints used to set up test scenarios."""

    def __init__(self, client) -> None:
        self.client = client

    # ── Groups ─────────────────────────────────────────────────────────────

    def make_group(self, name: str = "Flatmates", members: list[str] | None = None) -> dict:
        """
        Creates a group and returns the group data dict.
        `members` is a list of names; emails are derived from them.
        """
        names = members or ["Ada Lovelace", "Bob Stone", "Cy Young"]
        resp = self.client.post("/api/v1/groups/", json={
            "name": name,
            "members": [
                {"name": n, "email": f"{n.split()[0].lower()}@example.com"} for n in names
            ],
        })
        assert resp.status_code == 201, f"make_group failed: {resp.get_json()}"
        return resp.get_json()["data"]

    def get_group(self, group_id: str) -> dict:
        resp = self.client.get(f"/api/v1/groups/{group_id}")
        assert resp.status_code == 200, f"get_group failed: {resp.get_json()}"
        return resp.get_json()["data"]

    def add_member(self, group_id: str, name: str, email: str):
        """Returns the HTTP response."""
        return self.client.post(
            f"/api/v1/groups/{group_id}/members",
            json={"name": name, "email": email},
        )

    def remove_member(self, group_id: str, member_id: str):
        """Returns the HTTP response."""
        return self.client.delete(f"/api/v1/groups/{group_id}/members/{member_id}")

    # ── Invoices ───────────────────────────────────────────────────────────

    def make_invoice(
            self,
            group_id: str,
            merchant: str = "Whole Foods Market",
            total: str | None = "45.47",
            items: list[dict] | None = None,
            invoice_date: str = "2026-10-01",
    ) -> dict:
        """Creates an invoice (GROCERY_ITEMS by default) and returns its data dict."""
        payload: dict = {
            "merchant": merchant,
            "date": invoice_date,
            "items": GROCERY_ITEMS if items is None else items,
        }
        if total is not None:
            payload["total"] = total

        resp = self.client.post(f"/api/v1/groups/{group_id}/invoices", json=payload)
        assert resp.status_code == 201, f"make_invoice failed: {resp.get_json()}"
        return resp.get_json()["data"]

    def get_invoice(self, invoice_id: str) -> dict:
        resp = self.client.get(f"/api/v1/invoices/{invoice_id}")
        assert resp.status_code == 200, f"get_invoice failed: {resp.get_json()}"
        return resp.get_json()["data"]

    def edit(self, invoice_id: str):
        return self.client.post(f"/api/v1/invoices/{invoice_id}/edit")

    def view(self, invoice_id: str):
        return self.client.post(f"/api/v1/invoices/{invoice_id}/view")

    def toggle(self, invoice_id: str, item_id: str, member_id: str):
        return self.client.post(
            f"/api/v1/invoices/{invoice_id}/assignments",
            json={"item_id": item_id, "member_id": member_id},
        )

    def split(self, invoice_id: str):
        return self.client.get(f"/api/v1/invoices/{invoice_id}/split")

    def finalize(self, invoice_id: str, item_splits: dict | None = None):
        if item_splits is None:
            return self.client.post(f"/api/v1/invoices/{invoice_id}/finalize")
        return self.client.post(
            f"/api/v1/invoices/{invoice_id}/finalize",
            json={"item_splits": item_splits},
        )

    def assign_all_and_finalize(self, invoice: dict, member_ids: list[str]) -> dict:
        """Gives every item to every member in `member_ids` and finalizes."""
        resp = self.finalize(
            invoice["id"],
            {item["id"]: list(member_ids) for item in invoice["items"]},
        )
        assert resp.status_code == 200, f"finalize failed: {resp.get_json()}"
        return resp.get_json()["data"]

    def balances(self, group_id: str):
        return self.client.get(f"/api/v1/groups/{group_id}/balances")

    @staticmethod
    def member_ids(group: dict) -> list[str]:
        return [m["id"] for m in group["members"]]


@pytest.fixture
def api(client) -> Api:
    return Api(client)

