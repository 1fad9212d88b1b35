from __future__ import annotations

from datetime import date
from typing import Optional

from sqlalchemy import BigInteger, Date, Enum, Float, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ledgr.db.base import Base, CreatedAtMixin, IDMixin, OwnedMixin
from ledgr.models.enums import InvoiceStatus, TemplateKind, enum_values


class Invoice(IDMixin, OwnedMixin, CreatedAtMixin, Base):
    __tablename__ = "invoices"

    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    currency: Mapped[str] = mapped_column(String(10), nullable=False)
    customer: Mapped[str] = mapped_column(String(120), nullable=False)
    status: Mapped[InvoiceStatus] = mapped_column(
        Enum(InvoiceStatus, name="invoice_status", values_callable=enum_values),
        default=InvoiceStatus.PENDING,
        nullable=False,
        index=True,
    )

    items: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    tax_rate: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    company_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    company_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    client_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    client_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    issue_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    template_kind: Mapped[TemplateKind] = mapped_column(
        Enum(TemplateKind, name="invoice_template_kind", values_callable=enum_values),
        default=TemplateKind.SIMPLE,
        nullable=False,
    )


class InvoiceTemplate(IDMixin, OwnedMixin, CreatedAtMixin, Base):
    __tablename__ = "invoice_templates"

    name: Mapped[str] = mapped_column(String(120), nullable=False)
    items: Mapped[list] = mapped_column(JSON, nullable=False)
    tax_rate: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
