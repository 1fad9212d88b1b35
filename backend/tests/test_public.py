from __future__ import annotations

import time
from urllib.parse import urlparse

import pytest

from ledgr.core.deps import get_blob_store
from ledgr.core.security import sign_file_path
from ledgr.main import app
from ledgr.services.blob_store import LocalBlobStore


def _create_invoice(client):
    response = client.post(
        "/api/invoices",
        json={"currency": "USD", "customer": "Acme", "amount": 5000, "notes": "Due on receipt"},
    )
    assert response.status_code == 201
    return response.json()


def test_public_invoice_with_valid_token(client):
    created = _create_invoice(client)
    link = client.get(f"/api/invoices/{created['id']}/public-url").json()

    response = client.get(f"/api/public/invoices/{created['id']}", params={"token": link["token"]})
    assert response.status_code == 200
    body = response.json()
    assert body["id"] == created["id"]
    assert body["amount"] == 5000
    assert body["notes"] == "Due on receipt"
    assert "user_id" not in body


def test_public_invoice_rejects_bad_token(client):
    created = _create_invoice(client)
    response = client.get(f"/api/public/invoices/{created['id']}", params={"token": "nope"})
    assert response.status_code == 403
    assert response.json()["error"] == "Forbidden"


def test_public_invoice_unknown_id(client):
    response = client.get("/api/public/invoices/missing", params={"token": "x"})
    assert response.status_code == 404


@pytest.fixture()
def local_store(client, tmp_path):
    store = LocalBlobStore(tmp_path, base_url="http://testserver")
    app.dependency_overrides[get_blob_store] = lambda: store
    return store


def test_signed_file_roundtrip(client, local_store):
    local_store.put("invoices", "user-a/inv.pdf", b"%PDF-1.4 data", content_type="application/pdf")
    url = urlparse(local_store.create_signed_url("invoices", "user-a/inv.pdf", 300))

    response = client.get(f"{url.path}?{url.query}")
    assert response.status_code == 200
    assert response.content == b"%PDF-1.4 data"
    assert response.headers["content-type"] == "application/pdf"


def test_signed_file_rejects_tampered_signature(client, local_store):
    local_store.put("invoices", "user-a/inv.pdf", b"%PDF", content_type="application/pdf")
    expires = int(time.time()) + 300
    response = client.get(
        "/api/public/files/invoices/user-a/inv.pdf",
        params={"expires": expires, "signature": "0" * 64},
    )
    assert response.status_code == 403


def test_signed_file_rejects_expired_link(client, local_store):
    local_store.put("invoices", "user-a/inv.pdf", b"%PDF", content_type="application/pdf")
    expires = int(time.time()) - 10
    response = client.get(
        "/api/public/files/invoices/user-a/inv.pdf",
        params={"expires": expires, "signature": sign_file_path("invoices", "user-a/inv.pdf", expires)},
    )
    assert response.status_code == 403
    assert response.json()["detail"] == "Link expired"


def test_signed_file_route_is_disabled_for_remote_stores(client):
    expires = int(time.time()) + 300
    response = client.get(
        "/api/public/files/invoices/a.pdf",
        params={"expires": expires, "signature": sign_file_path("invoices", "a.pdf", expires)},
    )
    assert response.status_code == 404
