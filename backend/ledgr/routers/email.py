from __future__ import annotations

import logging
from html import escape
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ledgr.core.deps import get_current_user_id, get_mailer
from ledgr.core.errors import DeliveryFailed
from ledgr.core.security import public_invoice_link
from ledgr.db.session import get_db
from ledgr.schemas.email import (
    EmailSettingsRead,
    EmailSettingsUpdate,
    EmailStatusRead,
    SendEmailRequest,
    SendEmailResponse,
    SendInvoiceRequest,
    SendInvoiceResponse,
    SendTestEmailRequest,
)
from ledgr.services import invoices as invoice_service
from ledgr.services import profiles as profile_service
from ledgr.services.email import EmailSendError, EmailSendResult, Mailer, Sender
from ledgr.services.email_templates import (
    invoice_email_body,
    invoice_short_id,
    plain_text_from_html,
    render_email,
)

router = APIRouter(prefix="/api/email", tags=["email"])
logger = logging.getLogger(__name__)

TEST_EMAIL_MESSAGE = "This is a test email to confirm your email settings."


def _deliver(
    mailer: Mailer,
    *,
    to: str,
    subject: str,
    html: str,
    text: Optional[str],
    sender: Optional[Sender],
    event: str,
    log_extra: dict,
) -> EmailSendResult:
    try:
        return mailer.send(to, subject, html, text, sender=sender)
    except EmailSendError as exc:
        logger.warning(event, extra=log_extra)
        raise DeliveryFailed(str(exc)) from exc


@router.post("/send", response_model=SendEmailResponse)
def send_email(
    payload: SendEmailRequest,
    user_id: str = Depends(get_current_user_id),
    mailer: Mailer = Depends(get_mailer),
) -> SendEmailResponse:
    html = payload.html or "<p>{}</p>".format(escape(payload.text or "").replace("\n", "<br>"))
    text = payload.text or plain_text_from_html(html)
    result = _deliver(
        mailer,
        to=payload.to,
        subject=payload.subject,
        html=html,
        text=text,
        sender=None,
        event="email_send_failed",
        log_extra={"user_id": user_id},
    )
    return SendEmailResponse(id=result.message_id)


@router.post("/send-test", response_model=SendEmailResponse)
def send_test_email(
    payload: SendTestEmailRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    mailer: Mailer = Depends(get_mailer),
) -> SendEmailResponse:
    sender, brand = profile_service.email_sender(db, user_id)
    body = f"<p>{escape(payload.message or TEST_EMAIL_MESSAGE)}</p>"
    html = render_email(
        title="Test email",
        heading="Email configuration looks good",
        preview_text="This is a test email from your app settings.",
        body_html=body,
        brand_name=brand,
    )
    result = _deliver(
        mailer,
        to=payload.to,
        subject=f"Test email from {brand}",
        html=html,
        text=plain_text_from_html(body),
        sender=sender,
        event="test_email_failed",
        log_extra={"user_id": user_id},
    )
    return SendEmailResponse(id=result.message_id)


@router.post("/send-invoice", response_model=SendInvoiceResponse)
def send_invoice(
    payload: SendInvoiceRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    mailer: Mailer = Depends(get_mailer),
) -> SendInvoiceResponse:
    invoice = invoice_service.load_invoice(db, user_id=user_id, invoice_id=payload.invoice_id)
    url, _token = public_invoice_link(invoice.user_id, invoice.id)
    sender, brand = profile_service.email_sender(db, user_id)

    subject = f"Invoice {invoice_short_id(invoice)}"
    body = invoice_email_body(invoice, url=url, message=payload.message)
    html = render_email(
        title=subject,
        heading=subject,
        preview_text=f"View invoice {invoice_short_id(invoice)}",
        body_html=body,
        brand_name=brand,
    )
    result = _deliver(
        mailer,
        to=payload.to,
        subject=subject,
        html=html,
        text=plain_text_from_html(body),
        sender=sender,
        event="invoice_email_failed",
        log_extra={"user_id": user_id, "invoice_id": invoice.id},
    )
    return SendInvoiceResponse(id=result.message_id, url=url)


@router.get("/settings", response_model=EmailSettingsRead)
def get_email_settings(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> EmailSettingsRead:
    return EmailSettingsRead(**profile_service.email_settings(db, user_id))


@router.patch("/settings", response_model=EmailSettingsRead)
def update_email_settings(
    payload: EmailSettingsUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> EmailSettingsRead:
    changes = payload.model_dump(exclude_none=True)
    return EmailSettingsRead(**profile_service.update_email_settings(db, user_id, changes))


@router.get("/status", response_model=EmailStatusRead)
def email_status(
    user_id: str = Depends(get_current_user_id),
    mailer: Mailer = Depends(get_mailer),
) -> EmailStatusRead:
    return EmailStatusRead(**mailer.status())
