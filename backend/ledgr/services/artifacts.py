"""Deterministic storage of rendered invoice PDFs.

An invoice maps to exactly one object key built from immutable attributes
(owner, customer slug, creation date, id prefix). Objects are rendered only
when nothing exists at that key; later edits to the invoice do not invalidate
an existing object unless the caller asks to regenerate.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import timezone
from typing import Callable, Optional

from ledgr.core.observability import pdf_cache_hits_total, pdf_renders_total
from ledgr.core.settings import settings
from ledgr.schemas.invoice import InvoiceSnapshot
from ledgr.services.blob_store import BlobStore, split_key
from ledgr.services.invoice_pdf import Branding, render_invoice_pdf


logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
_NON_ALNUM = re.compile(r"[^a-z0-9]+")

Renderer = Callable[[InvoiceSnapshot, Optional[Branding]], bytes]


def slugify(value: str, max_length: int = 50) -> str:
    slug = _NON_ALNUM.sub("-", (value or "").lower()).strip("-")
    return slug[:max_length]


def artifact_filename(invoice: InvoiceSnapshot) -> str:
    created_at = invoice.created_at
    if created_at.tzinfo is not None:
        # Keys use the UTC calendar date.
        created_at = created_at.astimezone(timezone.utc)
    created = created_at.date().isoformat()
    return f"invoice-{slugify(invoice.customer)}-{created}-{invoice.id[:8]}.pdf"


def storage_key(invoice: InvoiceSnapshot) -> str:
    return f"{invoice.user_id}/{artifact_filename(invoice)}"


@dataclass(frozen=True)
class RenderedArtifact:
    storage_key: str
    data: bytes
    content_type: str = PDF_CONTENT_TYPE
    cache_hit: bool = False

    @property
    def filename(self) -> str:
        return split_key(self.storage_key)[1]


@dataclass(frozen=True)
class ShareLink:
    url: str
    expires_in: int


class ArtifactCache:
    def __init__(
        self,
        store: BlobStore,
        *,
        bucket: Optional[str] = None,
        renderer: Renderer = render_invoice_pdf,
        ttl_seconds: Optional[int] = None,
    ) -> None:
        self.store = store
        self.bucket = bucket or settings.invoice_bucket
        self.renderer = renderer
        self.ttl_seconds = ttl_seconds or settings.share_link_ttl_seconds
        self._bucket_ready = False

    def ensure_bucket(self) -> None:
        if not self._bucket_ready:
            self.store.ensure_bucket(self.bucket)
            self._bucket_ready = True

    def _render_and_store(self, invoice: InvoiceSnapshot, branding: Optional[Branding], key: str) -> bytes:
        # Render fully before touching the store so a failure never leaves a partial object.
        data = self.renderer(invoice, branding)
        self.store.put(self.bucket, key, data, content_type=PDF_CONTENT_TYPE, upsert=True)
        pdf_renders_total.inc()
        logger.info(
            "pdf_rendered",
            extra={"user_id": invoice.user_id, "invoice_id": invoice.id, "storage_key": key},
        )
        return data

    def ensure_artifact(
        self,
        invoice: InvoiceSnapshot,
        branding: Optional[Branding] = None,
        *,
        regenerate: bool = False,
    ) -> tuple[str, Optional[bytes]]:
        """Make sure an object exists at the invoice's key.

        Returns the key and, when a render happened, the fresh bytes.
        """
        key = storage_key(invoice)
        self.ensure_bucket()
        if not regenerate and self.store.exists(self.bucket, key):
            pdf_cache_hits_total.inc()
            logger.info(
                "pdf_cache_hit",
                extra={"user_id": invoice.user_id, "invoice_id": invoice.id, "storage_key": key},
            )
            return key, None
        return key, self._render_and_store(invoice, branding, key)

    def get_or_render(
        self,
        invoice: InvoiceSnapshot,
        branding: Optional[Branding] = None,
        *,
        regenerate: bool = False,
    ) -> RenderedArtifact:
        key, data = self.ensure_artifact(invoice, branding, regenerate=regenerate)
        if data is not None:
            return RenderedArtifact(storage_key=key, data=data)
        return RenderedArtifact(storage_key=key, data=self.store.get(self.bucket, key), cache_hit=True)

    def create_share_link(self, invoice: InvoiceSnapshot, branding: Optional[Branding] = None) -> ShareLink:
        key, _ = self.ensure_artifact(invoice, branding)
        url = self.store.create_signed_url(self.bucket, key, self.ttl_seconds)
        logger.info(
            "share_link_created",
            extra={"user_id": invoice.user_id, "invoice_id": invoice.id, "storage_key": key},
        )
        return ShareLink(url=url, expires_in=self.ttl_seconds)
