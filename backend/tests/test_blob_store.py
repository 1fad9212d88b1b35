from __future__ import annotations

import json
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from ledgr.core.errors import NotFound, StorageUnavailable
from ledgr.core.security import verify_file_signature
from ledgr.services.blob_store import LocalBlobStore, SupabaseBlobStore, split_key


@pytest.fixture()
def store(tmp_path):
    return LocalBlobStore(tmp_path, base_url="http://api.test/")


def test_split_key():
    assert split_key("user/invoice.pdf") == ("user", "invoice.pdf")
    assert split_key("invoice.pdf") == ("", "invoice.pdf")


def test_local_put_get_list(store):
    store.ensure_bucket("invoices")
    store.put("invoices", "user-a/one.pdf", b"%PDF one", content_type="application/pdf")
    store.put("invoices", "user-a/two.pdf", b"%PDF two", content_type="application/pdf")

    assert store.exists("invoices", "user-a/one.pdf")
    assert not store.exists("invoices", "user-a/three.pdf")
    assert store.get("invoices", "user-a/two.pdf") == b"%PDF two"
    assert store.list("invoices", "user-a") == ["one.pdf", "two.pdf"]
    assert store.list("invoices", "user-a", search="two") == ["two.pdf"]
    assert store.list("invoices", "nobody") == []


def test_local_put_overwrites_and_leaves_no_temp_files(store, tmp_path):
    store.put("invoices", "user-a/one.pdf", b"old", content_type="application/pdf")
    store.put("invoices", "user-a/one.pdf", b"new", content_type="application/pdf")
    assert store.get("invoices", "user-a/one.pdf") == b"new"
    assert sorted(p.name for p in (tmp_path / "invoices" / "user-a").iterdir()) == ["one.pdf"]


def test_local_put_without_upsert_refuses_overwrite(store):
    store.put("invoices", "a.pdf", b"x", content_type="application/pdf")
    with pytest.raises(StorageUnavailable):
        store.put("invoices", "a.pdf", b"y", content_type="application/pdf", upsert=False)


@pytest.mark.parametrize("path", ["../escape.pdf", "/etc/passwd", "a/../../b.pdf", ""])
def test_local_rejects_unsafe_paths(store, path):
    with pytest.raises(NotFound):
        store.get("invoices", path)


def test_local_signed_url(store):
    url = store.create_signed_url("invoices", "user-a/one.pdf", 60)
    parsed = urlparse(url)
    assert f"{parsed.scheme}://{parsed.netloc}" == "http://api.test"
    assert parsed.path == "/api/public/files/invoices/user-a/one.pdf"
    query = parse_qs(parsed.query)
    expires = int(query["expires"][0])
    assert verify_file_signature(query["signature"][0], bucket="invoices", path="user-a/one.pdf", expires=expires)


def _supabase(handler) -> SupabaseBlobStore:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return SupabaseBlobStore("https://proj.supabase.test", "service-key", client=client)


def test_supabase_bucket_already_exists_is_ok():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/storage/v1/bucket"
        return httpx.Response(400, json={"error": "Duplicate", "message": "The resource already exists"})

    _supabase(handler).ensure_bucket("invoices")


def test_supabase_exists_uses_prefix_listing():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=[{"name": "one.pdf"}])

    store = _supabase(handler)
    assert store.exists("invoices", "user-a/one.pdf")
    assert seen["path"] == "/storage/v1/object/list/invoices"
    assert seen["body"]["prefix"] == "user-a"
    assert seen["body"]["search"] == "one.pdf"


def test_supabase_put_sends_upsert_header():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["headers"] = request.headers
        seen["content"] = request.content
        return httpx.Response(200, json={"Key": "invoices/user-a/one.pdf"})

    _supabase(handler).put("invoices", "user-a/one.pdf", b"%PDF", content_type="application/pdf")
    assert seen["headers"]["x-upsert"] == "true"
    assert seen["headers"]["content-type"] == "application/pdf"
    assert seen["content"] == b"%PDF"


def test_supabase_signed_url_is_absolute():
    def handler(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content) == {"expiresIn": 120}
        return httpx.Response(200, json={"signedURL": "/object/sign/invoices/a.pdf?token=abc"})

    url = _supabase(handler).create_signed_url("invoices", "a.pdf", 120)
    assert url == "https://proj.supabase.test/storage/v1/object/sign/invoices/a.pdf?token=abc"


def test_supabase_errors_map_to_storage_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom")

    with pytest.raises(StorageUnavailable):
        _supabase(handler).put("invoices", "a.pdf", b"x", content_type="application/pdf")


def test_supabase_missing_object_is_not_found():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"message": "Object not found"})

    with pytest.raises(NotFound):
        _supabase(handler).get("invoices", "a.pdf")


def test_supabase_transport_failure_is_storage_unavailable():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(StorageUnavailable):
        _supabase(handler).get("invoices", "a.pdf")


@pytest.mark.parametrize("bucket,prefix", [("invoices", "../other"), ("invoices", "/etc"), ("..", "user-a"), ("", "")])
def test_local_list_rejects_unsafe_locations(store, bucket, prefix):
    with pytest.raises(NotFound):
        store.list(bucket, prefix)
