"""Outbound mail for invoice delivery.

Providers are picked by ``EMAIL_PROVIDER``. Every failure, whether missing
configuration, transport or provider rejection, surfaces as ``EmailSendError``
so the router can map it to a single 502.
"""
from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formataddr
from typing import Callable, Dict, Optional

import httpx

from ledgr.core.settings import settings


logger = logging.getLogger(__name__)

RESEND_URL = "https://api.resend.com/emails"
POSTMARK_URL = "https://api.postmarkapp.com/email"
SMTP_FALLBACK_TEXT = "Open this message in an HTML-capable mail client to view the invoice."


class EmailSendError(RuntimeError):
    pass


@dataclass
class EmailSendResult:
    provider: str
    message_id: Optional[str] = None


@dataclass(frozen=True)
class Sender:
    """Per-user overrides for the From name/address and Reply-To."""

    name: Optional[str] = None
    email: Optional[str] = None
    reply_to: Optional[str] = None


@dataclass(frozen=True)
class Outgoing:
    to: str
    subject: str
    html: str
    text: Optional[str]
    from_header: str
    reply_to: Optional[str]


def _provider() -> str:
    return (settings.email_provider or "disabled").strip().lower()


def _from_header(sender: Sender) -> str:
    address = sender.email or settings.email_from
    if not address:
        raise EmailSendError("EMAIL_FROM not configured")
    return formataddr((sender.name or settings.mail_from_name, address))


def _require_api_key(provider: str) -> str:
    if not settings.email_api_key:
        raise EmailSendError(f"EMAIL_API_KEY not configured for {provider}")
    return settings.email_api_key


def _post_json(url: str, payload: dict, headers: dict, provider: str) -> dict:
    try:
        with httpx.Client(timeout=settings.storage_http_timeout_seconds) as client:
            response = client.post(url, json=payload, headers=headers)
    except httpx.HTTPError as exc:
        raise EmailSendError(f"{provider} request failed: {exc}") from exc
    if response.is_error:
        raise EmailSendError(f"{provider} rejected message: {response.status_code} {response.text}")
    return response.json()


def _via_resend(message: Outgoing) -> EmailSendResult:
    key = _require_api_key("Resend")
    body: dict = {"from": message.from_header, "to": [message.to], "subject": message.subject, "html": message.html}
    if message.text:
        body["text"] = message.text
    if message.reply_to:
        body["reply_to"] = message.reply_to
    data = _post_json(RESEND_URL, body, {"Authorization": f"Bearer {key}"}, "Resend")
    return EmailSendResult(provider="resend", message_id=data.get("id"))


def _via_postmark(message: Outgoing) -> EmailSendResult:
    key = _require_api_key("Postmark")
    body: dict = {"From": message.from_header, "To": message.to, "Subject": message.subject, "HtmlBody": message.html}
    if message.text:
        body["TextBody"] = message.text
    if message.reply_to:
        body["ReplyTo"] = message.reply_to
    data = _post_json(POSTMARK_URL, body, {"X-Postmark-Server-Token": key, "Accept": "application/json"}, "Postmark")
    return EmailSendResult(provider="postmark", message_id=data.get("MessageID"))


def _via_smtp(message: Outgoing) -> EmailSendResult:
    if not settings.smtp_host:
        raise EmailSendError("SMTP_HOST not configured")
    mime = EmailMessage()
    mime["Subject"] = message.subject
    mime["From"] = message.from_header
    mime["To"] = message.to
    if message.reply_to:
        mime["Reply-To"] = message.reply_to
    mime.set_content(message.text or SMTP_FALLBACK_TEXT)
    mime.add_alternative(message.html, subtype="html")

    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=15) as smtp:
            if settings.smtp_use_tls:
                smtp.starttls()
            if settings.smtp_username and settings.smtp_password:
                smtp.login(settings.smtp_username, settings.smtp_password)
            smtp.send_message(mime)
    except (smtplib.SMTPException, OSError) as exc:
        raise EmailSendError(f"SMTP delivery failed: {exc}") from exc
    return EmailSendResult(provider="smtp", message_id=mime.get("Message-ID"))


_TRANSPORTS: Dict[str, Callable[[Outgoing], EmailSendResult]] = {
    "resend": _via_resend,
    "postmark": _via_postmark,
    "smtp": _via_smtp,
}


def send_email(
    *,
    to_address: str,
    subject: str,
    html: str,
    text: str | None = None,
    sender: Sender | None = None,
) -> EmailSendResult:
    provider = _provider()
    if provider in ("disabled", "none", ""):
        raise EmailSendError("EMAIL_PROVIDER disabled")
    transport = _TRANSPORTS.get(provider)
    if transport is None:
        raise EmailSendError(f"Unsupported EMAIL_PROVIDER: {provider}")

    sender = sender or Sender()
    message = Outgoing(
        to=to_address,
        subject=subject,
        html=html,
        text=text,
        from_header=_from_header(sender),
        reply_to=sender.reply_to,
    )
    return transport(message)


def provider_status() -> dict[str, object]:
    provider = _provider()
    has_from = bool(settings.email_from)
    if provider == "smtp":
        ready = has_from and bool(settings.smtp_host)
    elif provider in _TRANSPORTS:
        ready = has_from and bool(settings.email_api_key)
    else:
        ready = False
    return {
        "provider": provider,
        "from_configured": has_from,
        "api_key_configured": bool(settings.email_api_key),
        "smtp_host_configured": bool(settings.smtp_host),
        "ready": ready,
    }


class Mailer:
    """Mail delivery seam handed to request handlers."""

    def send(
        self,
        to: str,
        subject: str,
        html: str,
        text: str | None = None,
        *,
        sender: Sender | None = None,
    ) -> EmailSendResult:
        result = send_email(to_address=to, subject=subject, html=html, text=text, sender=sender)
        logger.info("email_sent provider=%s", result.provider)
        return result

    def status(self) -> dict[str, object]:
        return provider_status()
