from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ledgr.core.deps import get_artifact_cache, get_current_user_id
from ledgr.core.security import public_invoice_link
from ledgr.db.session import get_db
from ledgr.schemas.invoice import (
    InvoiceCreate,
    InvoiceListResponse,
    InvoiceSnapshot,
    InvoiceUpdate,
    PublicUrlRead,
    ShareLinkRead,
)
from ledgr.services import invoices as invoice_service
from ledgr.services.artifacts import ArtifactCache
from ledgr.services.profiles import branding_for

router = APIRouter(prefix="/api/invoices", tags=["invoices"])


@router.get("", response_model=InvoiceListResponse)
def list_invoices(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> InvoiceListResponse:
    return InvoiceListResponse(invoices=invoice_service.list_invoices(db, user_id=user_id))


@router.get("/{invoice_id}", response_model=InvoiceSnapshot)
def get_invoice(
    invoice_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> InvoiceSnapshot:
    return invoice_service.load_invoice(db, user_id=user_id, invoice_id=invoice_id)


@router.post("", response_model=InvoiceSnapshot, status_code=status.HTTP_201_CREATED)
def create_invoice(
    payload: InvoiceCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> InvoiceSnapshot:
    snapshot = invoice_service.create_invoice(payload, user_id=user_id)
    return invoice_service.insert_invoice(db, snapshot)


@router.patch("/{invoice_id}", response_model=InvoiceSnapshot)
def update_invoice(
    invoice_id: str,
    payload: InvoiceUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> InvoiceSnapshot:
    return invoice_service.apply_patch(db, user_id=user_id, invoice_id=invoice_id, patch=payload)


@router.post("/{invoice_id}/pay", response_model=InvoiceSnapshot)
def mark_invoice_paid(
    invoice_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> InvoiceSnapshot:
    return invoice_service.apply_mark_paid(db, user_id=user_id, invoice_id=invoice_id)


@router.post("/{invoice_id}/void", response_model=InvoiceSnapshot)
def void_invoice(
    invoice_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> InvoiceSnapshot:
    return invoice_service.apply_void(db, user_id=user_id, invoice_id=invoice_id)


@router.get("/{invoice_id}/pdf")
def get_invoice_pdf(
    invoice_id: str,
    download: int = Query(1, ge=0, le=1, description="1 for attachment, 0 for inline"),
    regenerate: bool = Query(False, description="Force regeneration even if a PDF already exists"),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    cache: ArtifactCache = Depends(get_artifact_cache),
) -> Response:
    invoice = invoice_service.load_invoice(db, user_id=user_id, invoice_id=invoice_id)
    artifact = cache.get_or_render(invoice, branding_for(db, user_id), regenerate=regenerate)
    disposition = "attachment" if download else "inline"
    return Response(
        content=artifact.data,
        media_type=artifact.content_type,
        headers={"Content-Disposition": f'{disposition}; filename="{artifact.filename}"'},
    )


@router.get("/{invoice_id}/share", response_model=ShareLinkRead)
def share_invoice(
    invoice_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    cache: ArtifactCache = Depends(get_artifact_cache),
) -> ShareLinkRead:
    invoice = invoice_service.load_invoice(db, user_id=user_id, invoice_id=invoice_id)
    link = cache.create_share_link(invoice, branding_for(db, user_id))
    return ShareLinkRead(url=link.url, expires_in=link.expires_in)


@router.get("/{invoice_id}/public-url", response_model=PublicUrlRead)
def get_public_url(
    invoice_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> PublicUrlRead:
    invoice = invoice_service.load_invoice(db, user_id=user_id, invoice_id=invoice_id)
    url, token = public_invoice_link(invoice.user_id, invoice.id)
    return PublicUrlRead(url=url, token=token)
