from __future__ import annotations

from ledgr.core.observability import normalize_path


def test_healthz(client):
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_expose_pdf_counters(client):
    invoice = client.post("/api/invoices", json={"currency": "USD", "customer": "Acme", "amount": 100}).json()
    client.get(f"/api/invoices/{invoice['id']}/pdf")
    client.get(f"/api/invoices/{invoice['id']}/pdf")

    body = client.get("/metrics").text
    assert "ledgr_pdf_renders_total" in body
    assert "ledgr_pdf_cache_hits_total" in body
    assert 'path="/api/invoices/{invoice_id}/pdf"' in body


def test_unmatched_paths_collapse_ids():
    path = "/api/unknown/0f8fad5b-d9cb-469f-a165-70867728950e/42/extra/segments"
    assert normalize_path(path) == "/api/unknown/{id}/{id}"
