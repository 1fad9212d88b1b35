from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from pydantic import ConfigDict, EmailStr, Field

from ledgr.models.enums import InvoiceStatus, TemplateKind
from ledgr.schemas.base import ORMModel


class LineItem(ORMModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    description: str = Field(..., min_length=1, max_length=255)
    quantity: float = Field(..., gt=0)
    rate: float = Field(..., ge=0)

    @property
    def amount(self) -> float:
        return self.quantity * self.rate


class InvoiceCreate(ORMModel):
    # Ignored when items are supplied; the server derives it from the items.
    amount: Optional[int] = None
    currency: str = Field(..., min_length=3, max_length=10)
    customer: str = Field(..., min_length=1, max_length=120)
    items: Optional[List[LineItem]] = None
    tax_rate: Optional[float] = Field(default=None, ge=0, le=100)
    notes: Optional[str] = None
    company_name: Optional[str] = None
    company_address: Optional[str] = None
    client_email: Optional[EmailStr] = None
    client_address: Optional[str] = None
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    template_kind: Optional[TemplateKind] = None


class InvoiceUpdate(ORMModel):
    amount: Optional[int] = None
    currency: Optional[str] = Field(default=None, min_length=3, max_length=10)
    customer: Optional[str] = Field(default=None, min_length=1, max_length=120)
    items: Optional[List[LineItem]] = None
    tax_rate: Optional[float] = Field(default=None, ge=0, le=100)
    notes: Optional[str] = None
    company_name: Optional[str] = None
    company_address: Optional[str] = None
    client_email: Optional[EmailStr] = None
    client_address: Optional[str] = None
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    template_kind: Optional[TemplateKind] = None


class InvoiceSnapshot(ORMModel):
    """Full persisted state of one invoice."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    user_id: str
    amount: int
    currency: str
    customer: str
    status: InvoiceStatus = InvoiceStatus.PENDING
    items: Optional[List[LineItem]] = None
    tax_rate: Optional[float] = None
    notes: Optional[str] = None
    company_name: Optional[str] = None
    company_address: Optional[str] = None
    client_email: Optional[str] = None
    client_address: Optional[str] = None
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    created_at: datetime
    template_kind: TemplateKind = TemplateKind.SIMPLE

    @property
    def has_items(self) -> bool:
        return bool(self.items)


class InvoiceListResponse(ORMModel):
    invoices: List[InvoiceSnapshot]


class ShareLinkRead(ORMModel):
    url: str
    expires_in: int


class PublicUrlRead(ORMModel):
    url: str
    token: str


class PublicInvoiceRead(ORMModel):
    id: str
    created_at: datetime
    status: InvoiceStatus
    amount: int
    currency: str
    customer: str
    items: Optional[List[LineItem]] = None
    tax_rate: Optional[float] = None
    notes: Optional[str] = None
    company_name: Optional[str] = None
    company_address: Optional[str] = None
    client_email: Optional[str] = None
    client_address: Optional[str] = None
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    template_kind: TemplateKind
