from __future__ import annotations

import base64

import pytest
from conftest import USER_ID

from ledgr.services.profiles import logo_extension


def test_profile_is_created_on_first_read(client):
    response = client.get("/api/profile")
    assert response.status_code == 200
    assert response.json()["profile"] == {"id": USER_ID, "name": None, "plan": "free", "avatar_id": None}


def test_update_profile(client):
    response = client.patch("/api/profile", json={"name": "Ada", "avatar_id": 7})
    assert response.status_code == 200
    profile = response.json()["profile"]
    assert profile["name"] == "Ada"
    assert profile["avatar_id"] == 7


def test_update_profile_requires_a_field(client):
    assert client.patch("/api/profile", json={}).status_code == 400
    assert client.patch("/api/profile", json={"avatar_id": 65}).status_code == 400


def test_profile_name_brands_rendered_pdf(client, blob_store):
    client.patch("/api/profile", json={"name": "Ada Studio"})
    invoice = client.post("/api/invoices", json={"currency": "USD", "customer": "Acme", "amount": 100}).json()
    response = client.get(f"/api/invoices/{invoice['id']}/pdf")
    assert response.status_code == 200
    assert response.content.startswith(b"%PDF")


def test_settings_shallow_merge(client):
    assert client.get("/api/settings").json() == {"settings": {}}

    client.put("/api/settings", json={"settings": {"theme": "dark", "email": {"brand_name": "A"}}})
    response = client.put("/api/settings", json={"settings": {"email": {"reply_to": "x@example.com"}}})
    assert response.status_code == 200
    assert response.json()["settings"] == {"theme": "dark", "email": {"reply_to": "x@example.com"}}
    assert client.get("/api/settings").json()["settings"]["theme"] == "dark"


PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-logo"


def test_company_logo_url_is_null_before_upload(client):
    response = client.get("/api/settings/company-logo-url")
    assert response.status_code == 200
    assert response.json() == {"url": None}


def test_upload_company_logo_from_data_url(client, blob_store):
    encoded = base64.b64encode(PNG_BYTES).decode()
    response = client.post(
        "/api/settings/company-logo",
        json={"file_base64": f"data:image/jpeg;base64,{encoded}", "content_type": "image/png"},
    )
    assert response.status_code == 200, response.text
    path = f"{USER_ID}/company-logo.jpg"
    assert response.json() == {"path": path}
    assert blob_store.objects[("logos", path)] == PNG_BYTES
    assert "logos" in blob_store.buckets

    settings = client.get("/api/settings").json()["settings"]
    assert settings["company_logo_path"] == path

    url = client.get("/api/settings/company-logo-url").json()["url"]
    assert url == f"memory://logos/{path}?ttl=3600"


def test_upload_company_logo_keeps_other_settings(client, blob_store):
    client.put("/api/settings", json={"settings": {"theme": "dark"}})
    encoded = base64.b64encode(PNG_BYTES).decode()
    response = client.post("/api/settings/company-logo", json={"file_base64": encoded})
    assert response.status_code == 200
    assert response.json()["path"] == f"{USER_ID}/company-logo.png"
    assert client.get("/api/settings").json()["settings"]["theme"] == "dark"


@pytest.mark.parametrize(
    "payload",
    [
        {"file_base64": "short"},
        {"file_base64": "not base64 at all!!"},
        {"file_base64": "data:image/png;base64,"},
    ],
)
def test_upload_company_logo_rejects_bad_payloads(client, blob_store, payload):
    response = client.post("/api/settings/company-logo", json=payload)
    assert response.status_code == 400
    assert blob_store.puts == []


@pytest.mark.parametrize(
    "content_type,extension",
    [("image/jpeg", "jpg"), ("image/svg+xml", "svgxml"), ("image/webp; q=1", "webp"), ("application", "png")],
)
def test_logo_extension(content_type, extension):
    assert logo_extension(content_type) == extension
