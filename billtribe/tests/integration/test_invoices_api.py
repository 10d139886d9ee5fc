"""
tests/integration/test_invoices_api.py — Integration tests for invoice endpoints.

Endpoints covered:
  POST   /groups/:id/invoices         → 201 / 400 / 404
  GET    /groups/:id/invoices         → 200
  GET    /invoices/:id                → 200 / 404
  DELETE /invoices/:id                → 200 / 404
  POST   /invoices/:id/edit           → 200 (reopens reviewed)
  POST   /invoices/:id/view           → 200 (read-only)
  POST   /invoices/:id/reopen         → 200 / 422 INVALID_TRANSITION
  POST   /invoices/:id/assignments    → 200 / 422 NO_EDIT_SESSION / READ_ONLY_SESSION
  GET    /invoices/:id/split          → 200
  POST   /invoices/:id/finalize       → 200 / 422 INCOMPLETE_ASSIGNMENT
  DELETE /invoices/:id/session        → 200

Properties verified:
  - New invoices are needs-review with every item unassigned
  - Amounts leave the server as 2-decimal strings
  - Per-member totals are rounded only after summing full-precision shares
  - Finalize is blocked while any item is unassigned and changes nothing
  - Toggles never touch the persisted split until finalize
"""

from __future__ import annotations

from decimal import Decimal


def _setup(api):
    group = api.make_group()
    invoice = api.make_invoice(group["id"])
    return group, invoice


# ═══════════════════════════════════════════════════════════════════════════
# Create / read / delete
# ═══════════════════════════════════════════════════════════════════════════

class TestCreateInvoice:

    def test_create_invoice(self, api):
        group, invoice = _setup(api)

        assert invoice["status"] == "needs-review"
        assert invoice["is_finalized"] is False
        assert invoice["name"] == "Invoice from Whole Foods Market"
        assert invoice["total"] == "45.47"
        assert invoice["uploaded_by"] == group["members"][0]["id"]
        assert [i["item_total"] for i in invoice["items"]] == ["24.99", "31.96", "4.50"]
        assert all(i["split_among"] == [] for i in invoice["items"])

    def test_total_mismatch_is_a_warning_not_an_error(self, api, client):
        group = api.make_group()
        resp = client.post(f"/api/v1/groups/{group['id']}/invoices", json={
            "merchant": "Whole Foods Market",
            "date": "2026-10-01",
            "total": "45.47",
            "items": [{"name": "Bread", "quantity": 1, "price": "4.50"}],
        })

        assert resp.status_code == 201
        body = resp.get_json()
        assert body["data"]["total"] == "45.47"
        assert body["data"]["items_total"] == "4.50"
        assert [w["code"] for w in body["warnings"]] == ["TOTAL_MISMATCH"]

    def test_total_defaults_to_item_sum(self, api):
        group = api.make_group()
        invoice = api.make_invoice(group["id"], total=None)
        assert invoice["total"] == "61.45"

    def test_precision_error(self, api, client):
        group = api.make_group()
        resp = client.post(f"/api/v1/groups/{group['id']}/invoices", json={
            "merchant": "Shop",
            "date": "2026-10-01",
            "items": [{"name": "Gum", "quantity": 1, "price": "0.999"}],
        })
        assert resp.status_code == 400
        error = resp.get_json()["error"]
        assert error["code"] == "INVALID_AMOUNT_PRECISION"
        assert error["field"] == "items.0.price"

    def test_missing_merchant(self, api, client):
        group = api.make_group()
        resp = client.post(f"/api/v1/groups/{group['id']}/invoices", json={"date": "2026-10-01"})
        assert resp.status_code == 400
        assert resp.get_json()["error"]["code"] == "MISSING_FIELD"
        assert api.get_group(group["id"])["invoice_count"] == 0

    def test_uploader_must_be_on_roster(self, api, client):
        group = api.make_group()
        resp = client.post(f"/api/v1/groups/{group['id']}/invoices", json={
            "merchant": "Shop", "date": "2026-10-01", "uploaded_by": "m-stranger",
        })
        assert resp.status_code == 404
        error = resp.get_json()["error"]
        assert error["code"] == "MEMBER_NOT_FOUND"
        assert error["field"] == "uploaded_by"

    def test_explicit_uploader(self, api, client):
        group = api.make_group()
        bob = group["members"][1]["id"]
        resp = client.post(f"/api/v1/groups/{group['id']}/invoices", json={
            "merchant": "Shop", "date": "2026-10-01", "uploaded_by": bob,
        })
        assert resp.status_code == 201
        assert resp.get_json()["data"]["uploaded_by"] == bob

    def test_unknown_group(self, api):
        resp = api.client.post("/api/v1/groups/g-missing/invoices", json={
            "merchant": "Shop", "date": "2026-10-01",
        })
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "GROUP_NOT_FOUND"


class TestReadAndDelete:

    def test_list_invoices_in_creation_order(self, api, client):
        group = api.make_group()
        first = api.make_invoice(group["id"], merchant="First")
        second = api.make_invoice(group["id"], merchant="Second")

        resp = client.get(f"/api/v1/groups/{group['id']}/invoices")

        assert [i["id"] for i in resp.get_json()["data"]] == [first["id"], second["id"]]

    def test_unknown_invoice_is_404(self, client):
        resp = client.get("/api/v1/invoices/inv-missing")
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "INVOICE_NOT_FOUND"

    def test_delete_invoice_updates_group_totals(self, api, client):
        group, invoice = _setup(api)

        resp = client.delete(f"/api/v1/invoices/{invoice['id']}")

        assert resp.status_code == 200
        assert client.get(f"/api/v1/invoices/{invoice['id']}").status_code == 404
        data = api.get_group(group["id"])
        assert data["total_expense"] == "0.00"
        assert data["has_pending"] is False
        assert client.delete(f"/api/v1/invoices/{invoice['id']}").status_code == 404


# ═══════════════════════════════════════════════════════════════════════════
# Split editing
# ═══════════════════════════════════════════════════════════════════════════

class TestSplitEditing:

    def test_toggle_without_edit_session(self, api):
        group, invoice = _setup(api)
        resp = api.toggle(invoice["id"], invoice["items"][0]["id"], group["members"][0]["id"])
        assert resp.status_code == 422
        assert resp.get_json()["error"]["code"] == "NO_EDIT_SESSION"

    def test_toggle_in_view_mode_is_refused(self, api):
        group, invoice = _setup(api)
        assert api.view(invoice["id"]).get_json()["data"]["mode"] == "view"

        resp = api.toggle(invoice["id"], invoice["items"][0]["id"], group["members"][0]["id"])

        assert resp.status_code == 422
        assert resp.get_json()["error"]["code"] == "READ_ONLY_SESSION"

    def test_grocery_scenario_totals(self, api):
        group, invoice = _setup(api)
        a, b, c = api.member_ids(group)
        veg, milk, bread = (i["id"] for i in invoice["items"])

        api.edit(invoice["id"])
        for mid in (a, b, c):
            api.toggle(invoice["id"], veg, mid)
        resp = api.toggle(invoice["id"], milk, a)

        assert resp.status_code == 200
        body = resp.get_json()
        data = body["data"]
        assert data["mode"] == "edit"
        assert data["member_totals"] == {a: "40.29", b: "8.33", c: "8.33"}
        assert data["items"][0]["per_person_amount"] == "8.33"
        assert data["items"][2]["per_person_amount"] is None
        assert data["unassigned_item_ids"] == [bread]
        assert data["can_finalize"] is False
        assert "UNASSIGNED_ITEMS" in [w["code"] for w in body["warnings"]]

        # Nothing persisted yet.
        assert all(i["split_among"] == [] for i in api.get_invoice(invoice["id"])["items"])

    def test_toggle_twice_removes(self, api):
        group, invoice = _setup(api)
        item_id, member_id = invoice["items"][0]["id"], group["members"][0]["id"]
        api.edit(invoice["id"])

        api.toggle(invoice["id"], item_id, member_id)
        resp = api.toggle(invoice["id"], item_id, member_id)

        assert resp.get_json()["data"]["item_splits"][item_id] == []

    def test_toggle_unknown_member_is_noop(self, api):
        _, invoice = _setup(api)
        item_id = invoice["items"][0]["id"]
        api.edit(invoice["id"])

        resp = api.toggle(invoice["id"], item_id, "m-stranger")

        assert resp.status_code == 200
        assert resp.get_json()["data"]["item_splits"][item_id] == []

    def test_close_session_discards_toggles(self, api, client):
        group, invoice = _setup(api)
        item_id = invoice["items"][0]["id"]
        api.edit(invoice["id"])
        api.toggle(invoice["id"], item_id, group["members"][0]["id"])

        resp = client.delete(f"/api/v1/invoices/{invoice['id']}/session")
        assert resp.get_json()["data"]["closed"] is True

        split = api.split(invoice["id"]).get_json()["data"]
        assert split["mode"] == "view"
        assert split["item_splits"][item_id] == []


# ═══════════════════════════════════════════════════════════════════════════
# Finalize / reopen
# ═══════════════════════════════════════════════════════════════════════════

class TestFinalize:

    def test_finalize_blocked_while_items_unassigned(self, api):
        group, invoice = _setup(api)
        api.edit(invoice["id"])
        api.toggle(invoice["id"], invoice["items"][0]["id"], group["members"][0]["id"])

        resp = api.finalize(invoice["id"])

        assert resp.status_code == 422
        error = resp.get_json()["error"]
        assert error["code"] == "INCOMPLETE_ASSIGNMENT"
        assert error["message"] == "Please assign members to all items before finalizing"
        assert error["details"]["unassigned_item_ids"] == [i["id"] for i in invoice["items"][1:]]
        assert api.get_invoice(invoice["id"])["status"] == "needs-review"

    def test_finalize_from_session(self, api):
        group, invoice = _setup(api)
        a, b, _ = api.member_ids(group)
        api.edit(invoice["id"])
        for item in invoice["items"]:
            api.toggle(invoice["id"], item["id"], a)
        api.toggle(invoice["id"], invoice["items"][0]["id"], b)

        resp = api.finalize(invoice["id"])

        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["status"] == "reviewed"
        assert data["is_finalized"] is True
        assert [i["split_among"] for i in data["items"]] == [[a, b], [a], [a]]
        assert api.get_group(group["id"])["pending_balance"] == "0.00"

    def test_finalize_is_idempotent(self, api):
        group, invoice = _setup(api)
        first = api.assign_all_and_finalize(invoice, api.member_ids(group))

        resp = api.finalize(invoice["id"])

        assert resp.status_code == 200
        assert resp.get_json()["data"]["items"] == first["items"]
        assert resp.get_json()["data"]["status"] == "reviewed"

    def test_edit_reopens_reviewed_invoice_with_previous_split(self, api):
        group, invoice = _setup(api)
        everyone = api.member_ids(group)
        api.assign_all_and_finalize(invoice, everyone)

        resp = api.edit(invoice["id"])

        data = resp.get_json()["data"]
        assert data["status"] == "draft"
        assert data["mode"] == "edit"
        assert all(members == everyone for members in data["item_splits"].values())
        assert api.get_group(group["id"])["pending_balance"] == "45.47"

    def test_view_keeps_reviewed_status(self, api):
        group, invoice = _setup(api)
        api.assign_all_and_finalize(invoice, api.member_ids(group))

        data = api.view(invoice["id"]).get_json()["data"]

        assert data["status"] == "reviewed"
        assert data["can_finalize"] is False

    def test_reopen(self, api, client):
        group, invoice = _setup(api)

        resp = client.post(f"/api/v1/invoices/{invoice['id']}/reopen")
        assert resp.status_code == 422
        assert resp.get_json()["error"]["code"] == "INVALID_TRANSITION"

        api.assign_all_and_finalize(invoice, api.member_ids(group))
        resp = client.post(f"/api/v1/invoices/{invoice['id']}/reopen")

        assert resp.status_code == 200
        assert resp.get_json()["data"]["status"] == "draft"

    def test_finalize_unknown_invoice(self, api):
        resp = api.finalize("inv-missing")
        assert resp.status_code == 404

    def test_split_amounts_are_strings(self, api):
        group, invoice = _setup(api)
        api.assign_all_and_finalize(invoice, api.member_ids(group))

        totals = api.split(invoice["id"]).get_json()["data"]["member_totals"]

        # 8.33 + 10.65333... + 1.50 per person, rounded once at the end.
        assert set(totals.values()) == {"20.48"}
        assert Decimal(totals[group["members"][0]["id"]]) == Decimal("20.48")


# ═══════════════════════════════════════════════════════════════════════════
# Reviewed invoices and replaced sessions
# ═══════════════════════════════════════════════════════════════════════════

class TestReviewedAndReplacedSessions:

    def test_refinalize_with_different_splits_is_invalid_transition(self, api):
        group, invoice = _setup(api)
        everyone = api.member_ids(group)
        api.assign_all_and_finalize(invoice, everyone)

        resp = api.finalize(invoice["id"], {item["id"]: [everyone[0]] for item in invoice["items"]})

        assert resp.status_code == 422
        error = resp.get_json()["error"]
        assert error["code"] == "INVALID_TRANSITION"
        assert error["field"] == "item_splits"
        persisted = api.get_invoice(invoice["id"])
        assert persisted["status"] == "reviewed"
        assert all(item["split_among"] == everyone for item in persisted["items"])

    def test_refinalize_with_same_splits_is_accepted(self, api):
        group, invoice = _setup(api)
        everyone = api.member_ids(group)
        api.assign_all_and_finalize(invoice, everyone)

        resp = api.finalize(invoice["id"], {item["id"]: everyone for item in invoice["items"]})

        assert resp.status_code == 200
        assert resp.get_json()["data"]["status"] == "reviewed"

    def test_view_warns_when_edit_toggles_are_dropped(self, api):
        group, invoice = _setup(api)
        api.edit(invoice["id"])
        api.toggle(invoice["id"], invoice["items"][0]["id"], group["members"][0]["id"])

        body = api.view(invoice["id"]).get_json()

        assert body["data"]["mode"] == "view"
        assert "UNSAVED_CHANGES_DISCARDED" in [w["code"] for w in body["warnings"]]
        assert body["data"]["item_splits"][invoice["items"][0]["id"]] == []

    def test_view_without_pending_toggles_has_no_discard_warning(self, api):
        _, invoice = _setup(api)
        api.edit(invoice["id"])

        body = api.view(invoice["id"]).get_json()

        assert "UNSAVED_CHANGES_DISCARDED" not in [w["code"] for w in body["warnings"]]

    def test_edit_again_warns_when_toggles_are_dropped(self, api):
        group, invoice = _setup(api)
        api.edit(invoice["id"])
        api.toggle(invoice["id"], invoice["items"][0]["id"], group["members"][0]["id"])

        body = api.edit(invoice["id"]).get_json()

        assert "UNSAVED_CHANGES_DISCARDED" in [w["code"] for w in body["warnings"]]
