"""Blob store backends for rendered artifacts.

``LocalBlobStore`` keeps objects under ``UPLOAD_DIR`` and signs URLs with the
share secret; ``SupabaseBlobStore`` talks to the Supabase Storage REST API.
"""
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import List, Optional, Protocol
from urllib.parse import quote, urlencode

import httpx

from ledgr.core.errors import NotFound, StorageUnavailable
from ledgr.core.security import sign_file_path
from ledgr.core.settings import settings


logger = logging.getLogger(__name__)


class BlobStore(Protocol):
    def ensure_bucket(self, bucket: str) -> None: ...

    def list(self, bucket: str, prefix: str, *, search: Optional[str] = None) -> List[str]: ...

    def exists(self, bucket: str, path: str) -> bool: ...

    def put(self, bucket: str, path: str, data: bytes, *, content_type: str, upsert: bool = True) -> None: ...

    def get(self, bucket: str, path: str) -> bytes: ...

    def create_signed_url(self, bucket: str, path: str, ttl_seconds: int) -> str: ...


def split_key(path: str) -> tuple[str, str]:
    prefix, _, name = path.rpartition("/")
    return prefix, name


def _check_relative(path: str) -> None:
    parts = Path(path).parts
    if not parts or path.startswith("/") or ".." in parts:
        raise NotFound("File not found")


class LocalBlobStore:
    def __init__(self, root: Optional[Path] = None, *, base_url: Optional[str] = None) -> None:
        self.root = root or settings.ensure_uploads_dir()
        self.base_url = (base_url or settings.api_base_url).rstrip("/")

    def _path(self, bucket: str, path: str) -> Path:
        _check_relative(bucket)
        _check_relative(path)
        return self.root / bucket / path

    def ensure_bucket(self, bucket: str) -> None:
        _check_relative(bucket)
        try:
            (self.root / bucket).mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageUnavailable() from exc

    def list(self, bucket: str, prefix: str, *, search: Optional[str] = None) -> List[str]:
        _check_relative(bucket)
        folder = self.root / bucket
        if prefix:
            _check_relative(prefix)
            folder = folder / prefix
        if not folder.is_dir():
            return []
        names = sorted(entry.name for entry in folder.iterdir() if entry.is_file())
        if search:
            names = [name for name in names if search in name]
        return names

    def exists(self, bucket: str, path: str) -> bool:
        return self._path(bucket, path).is_file()

    def put(self, bucket: str, path: str, data: bytes, *, content_type: str, upsert: bool = True) -> None:
        target = self._path(bucket, path)
        if target.exists() and not upsert:
            raise StorageUnavailable("Object already exists")
        tmp = target.with_name(f".{target.name}.tmp")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_bytes(data)
            tmp.replace(target)
        except OSError as exc:
            logger.exception("blob_put_failed", extra={"storage_key": path})
            raise StorageUnavailable() from exc

    def get(self, bucket: str, path: str) -> bytes:
        target = self._path(bucket, path)
        if not target.is_file():
            raise NotFound("File not found")
        try:
            return target.read_bytes()
        except OSError as exc:
            raise StorageUnavailable() from exc

    def create_signed_url(self, bucket: str, path: str, ttl_seconds: int) -> str:
        expires = int(time.time()) + ttl_seconds
        query = urlencode({"expires": expires, "signature": sign_file_path(bucket, path, expires)})
        return f"{self.base_url}/api/public/files/{quote(bucket)}/{quote(path)}?{query}"


class SupabaseBlobStore:
    def __init__(
        self,
        base_url: Optional[str] = None,
        service_key: Optional[str] = None,
        *,
        client: Optional[httpx.Client] = None,
    ) -> None:
        url = base_url or settings.supabase_url
        key = service_key or settings.supabase_service_role_key
        if not url or not key:
            raise StorageUnavailable("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required")
        self.storage_url = f"{url.rstrip('/')}/storage/v1"
        self.client = client or httpx.Client(
            timeout=settings.storage_http_timeout_seconds,
            headers={"Authorization": f"Bearer {key}", "apikey": key},
        )

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            return self.client.request(method, f"{self.storage_url}{path}", **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("blob_request_failed", extra={"path": path})
            raise StorageUnavailable() from exc

    @staticmethod
    def _raise_for_status(resp: httpx.Response, storage_key: Optional[str] = None) -> None:
        if resp.status_code == 404:
            raise NotFound("File not found")
        if resp.status_code >= 400:
            logger.warning(
                "blob_store_error",
                extra={"status_code": resp.status_code, "storage_key": storage_key},
            )
            raise StorageUnavailable(f"Storage error: {resp.status_code}")

    def ensure_bucket(self, bucket: str) -> None:
        resp = self._request("POST", "/bucket", json={"id": bucket, "name": bucket, "public": False})
        if resp.status_code < 400:
            return
        if resp.status_code in (400, 409) and "already exists" in resp.text.lower():
            return
        self._raise_for_status(resp)

    def list(self, bucket: str, prefix: str, *, search: Optional[str] = None) -> List[str]:
        body = {"prefix": prefix, "limit": 100, "offset": 0}
        if search:
            body["search"] = search
        resp = self._request("POST", f"/object/list/{quote(bucket)}", json=body)
        self._raise_for_status(resp)
        return [entry["name"] for entry in resp.json() if entry.get("name")]

    def exists(self, bucket: str, path: str) -> bool:
        prefix, name = split_key(path)
        return name in self.list(bucket, prefix, search=name)

    def put(self, bucket: str, path: str, data: bytes, *, content_type: str, upsert: bool = True) -> None:
        resp = self._request(
            "POST",
            f"/object/{quote(bucket)}/{quote(path)}",
            content=data,
            headers={"Content-Type": content_type, "x-upsert": "true" if upsert else "false"},
        )
        self._raise_for_status(resp, path)

    def get(self, bucket: str, path: str) -> bytes:
        resp = self._request("GET", f"/object/{quote(bucket)}/{quote(path)}")
        self._raise_for_status(resp, path)
        return resp.content

    def create_signed_url(self, bucket: str, path: str, ttl_seconds: int) -> str:
        resp = self._request(
            "POST",
            f"/object/sign/{quote(bucket)}/{quote(path)}",
            json={"expiresIn": ttl_seconds},
        )
        self._raise_for_status(resp, path)
        signed = resp.json().get("signedURL") or resp.json().get("signedUrl")
        if not signed:
            raise StorageUnavailable("Storage did not return a signed URL")
        return f"{self.storage_url}{signed}" if signed.startswith("/") else signed


def build_blob_store() -> BlobStore:
    if settings.blob_backend == "supabase":
        return SupabaseBlobStore()
    return LocalBlobStore()
