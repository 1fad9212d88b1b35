from __future__ import annotations

import time

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ledgr.core.deps import get_blob_store
from ledgr.core.errors import Forbidden, NotFound
from ledgr.core.security import verify_file_signature, verify_public_token
from ledgr.db.session import get_db
from ledgr.schemas.invoice import PublicInvoiceRead
from ledgr.services import invoices as invoice_service
from ledgr.services.blob_store import BlobStore, LocalBlobStore

router = APIRouter(prefix="/api/public", tags=["public"])


@router.get("/invoices/{invoice_id}", response_model=PublicInvoiceRead)
def get_public_invoice(
    invoice_id: str,
    token: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
) -> PublicInvoiceRead:
    invoice = invoice_service.load_public_invoice(db, invoice_id=invoice_id)
    if not verify_public_token(token, user_id=invoice.user_id, invoice_id=invoice.id):
        raise Forbidden("Invalid token")
    return PublicInvoiceRead.model_validate(invoice)


@router.get("/files/{bucket}/{path:path}")
def get_signed_file(
    bucket: str,
    path: str,
    expires: int = Query(...),
    signature: str = Query(..., min_length=1),
    store: BlobStore = Depends(get_blob_store),
) -> Response:
    if not isinstance(store, LocalBlobStore):
        raise NotFound("File not found")
    if expires < int(time.time()):
        raise Forbidden("Link expired")
    if not verify_file_signature(signature, bucket=bucket, path=path, expires=expires):
        raise Forbidden("Invalid signature")
    data = store.get(bucket, path)
    filename = path.rsplit("/", 1)[-1]
    return Response(
        content=data,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )
