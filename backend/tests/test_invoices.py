from __future__ import annotations

from conftest import OTHER_USER_ID, USER_ID

from ledgr.core.security import make_public_token


def _create_invoice(client, **overrides):
    body = {
        "currency": "USD",
        "customer": "Acme & Co. Ltd!!",
        "items": [{"description": "Consulting", "quantity": 2, "rate": 10.5}],
        "tax_rate": 10,
    }
    body.update(overrides)
    response = client.post("/api/invoices", json=body)
    assert response.status_code == 201, response.text
    return response.json()


def test_create_invoice_derives_amount(client):
    created = _create_invoice(client, amount=1)
    assert created["amount"] == 2310
    assert created["status"] == "pending"
    assert created["template_kind"] == "simple"
    assert created["user_id"] == USER_ID


def test_create_without_items_requires_amount(client):
    response = client.post("/api/invoices", json={"currency": "USD", "customer": "Acme"})
    assert response.status_code == 400
    assert response.json()["error"] == "InvalidAmount"


def test_create_rejects_bad_shape(client):
    response = client.post(
        "/api/invoices",
        json={"currency": "USD", "customer": "", "items": [{"description": "", "quantity": 0, "rate": -1}]},
    )
    assert response.status_code == 400
    payload = response.json()
    assert payload["error"] == "ValidationFailed"
    assert payload["issues"]


def test_list_newest_first_and_scoped(client, current_user):
    first = _create_invoice(client, customer="First")
    second = _create_invoice(client, customer="Second")

    response = client.get("/api/invoices")
    assert response.status_code == 200
    ids = [row["id"] for row in response.json()["invoices"]]
    assert ids[:2] == [second["id"], first["id"]]

    current_user["id"] = OTHER_USER_ID
    assert client.get("/api/invoices").json()["invoices"] == []
    assert client.get(f"/api/invoices/{first['id']}").status_code == 404


def test_patch_clears_tax_with_empty_items(client):
    created = _create_invoice(client)
    response = client.patch(
        f"/api/invoices/{created['id']}",
        json={"items": [], "tax_rate": 15, "amount": 700},
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["items"] is None
    assert body["tax_rate"] is None
    assert body["amount"] == 700


def test_patch_with_invalid_amount_changes_nothing(client):
    created = _create_invoice(client, items=None, tax_rate=None, amount=1000)
    response = client.patch(f"/api/invoices/{created['id']}", json={"amount": 0, "notes": "x"})
    assert response.status_code == 400
    assert response.json()["error"] == "InvalidAmount"

    stored = client.get(f"/api/invoices/{created['id']}").json()
    assert stored["amount"] == 1000
    assert stored["notes"] is None


def test_empty_patch_is_rejected(client):
    created = _create_invoice(client)
    response = client.patch(f"/api/invoices/{created['id']}", json={})
    assert response.status_code == 400
    assert response.json()["error"] == "ValidationFailed"


def test_patch_other_users_invoice_is_not_found(client, current_user):
    created = _create_invoice(client)
    current_user["id"] = OTHER_USER_ID
    response = client.patch(f"/api/invoices/{created['id']}", json={"notes": "mine now"})
    assert response.status_code == 404


def test_pay_is_idempotent(client):
    created = _create_invoice(client)
    first = client.post(f"/api/invoices/{created['id']}/pay")
    second = client.post(f"/api/invoices/{created['id']}/pay")
    assert first.status_code == second.status_code == 200
    assert first.json()["status"] == second.json()["status"] == "paid"


def test_void_paid_invoice_is_rejected(client):
    created = _create_invoice(client)
    client.post(f"/api/invoices/{created['id']}/pay")
    response = client.post(f"/api/invoices/{created['id']}/void")
    assert response.status_code == 400


def test_pdf_download_and_cache(client, blob_store):
    created = _create_invoice(client)
    first = client.get(f"/api/invoices/{created['id']}/pdf")
    assert first.status_code == 200
    assert first.headers["content-type"] == "application/pdf"
    assert first.content.startswith(b"%PDF")
    disposition = first.headers["content-disposition"]
    assert disposition.startswith("attachment;")
    assert "invoice-acme-co-ltd-" in disposition
    assert created["id"][:8] in disposition

    inline = client.get(f"/api/invoices/{created['id']}/pdf", params={"download": 0})
    assert inline.headers["content-disposition"].startswith("inline;")
    assert len(blob_store.puts) == 1

    client.get(f"/api/invoices/{created['id']}/pdf", params={"regenerate": "true"})
    assert len(blob_store.puts) == 2


def test_share_link(client, blob_store):
    created = _create_invoice(client)
    response = client.get(f"/api/invoices/{created['id']}/share")
    assert response.status_code == 200
    body = response.json()
    assert body["expires_in"] == 60 * 60 * 24 * 7
    assert body["url"].startswith("memory://invoices/" + USER_ID + "/invoice-acme-co-ltd-")


def test_public_url(client):
    created = _create_invoice(client)
    response = client.get(f"/api/invoices/{created['id']}/public-url")
    assert response.status_code == 200
    body = response.json()
    assert body["token"] == make_public_token(USER_ID, created["id"])
    assert body["url"] == f"http://app.test/p/{created['id']}?token={body['token']}"
