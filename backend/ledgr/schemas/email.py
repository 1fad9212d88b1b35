from __future__ import annotations

from typing import Optional

from pydantic import EmailStr, Field, model_validator

from ledgr.schemas.base import ORMModel


class SendInvoiceRequest(ORMModel):
    invoice_id: str = Field(..., min_length=1)
    to: EmailStr
    message: Optional[str] = Field(default=None, max_length=2000)


class SendInvoiceResponse(ORMModel):
    ok: bool = True
    id: Optional[str] = None
    url: str


class EmailSettingsRead(ORMModel):
    from_name: str
    from_email: Optional[str] = None
    brand_name: str
    reply_to: Optional[str] = None


class EmailSettingsUpdate(ORMModel):
    from_name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    from_email: Optional[EmailStr] = None
    brand_name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    reply_to: Optional[EmailStr] = None


class EmailStatusRead(ORMModel):
    provider: str
    from_configured: bool
    api_key_configured: bool
    smtp_host_configured: bool
    ready: bool


class SendEmailRequest(ORMModel):
    to: EmailStr
    subject: str = Field(..., min_length=1, max_length=200)
    html: Optional[str] = None
    text: Optional[str] = None

    @model_validator(mode="after")
    def require_a_body(self) -> "SendEmailRequest":
        if not (self.html or self.text):
            raise ValueError("html or text is required")
        return self


class SendTestEmailRequest(ORMModel):
    to: EmailStr
    message: Optional[str] = Field(default=None, max_length=2000)


class SendEmailResponse(ORMModel):
    ok: bool = True
    id: Optional[str] = None
