from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, DateTime, Enum, ForeignKey, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from ledgr.db.base import Base, CreatedAtMixin, IDMixin, OwnedMixin
from ledgr.models.enums import PaymentIntentStatus, WalletTransactionType, enum_values


class Wallet(IDMixin, OwnedMixin, CreatedAtMixin, Base):
    __tablename__ = "wallets"

    currency: Mapped[str] = mapped_column(String(10), default="USD", nullable=False)
    balance_cents: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)


class WalletTransaction(IDMixin, OwnedMixin, CreatedAtMixin, Base):
    __tablename__ = "wallet_transactions"

    wallet_id: Mapped[str] = mapped_column(ForeignKey("wallets.id", ondelete="CASCADE"), nullable=False, index=True)
    type: Mapped[WalletTransactionType] = mapped_column(
        Enum(WalletTransactionType, name="wallet_transaction_type", values_callable=enum_values),
        nullable=False,
    )
    amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    reference: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    metadata_json: Mapped[Optional[dict]] = mapped_column("metadata", JSON, nullable=True)


class PaymentIntent(IDMixin, OwnedMixin, CreatedAtMixin, Base):
    __tablename__ = "payment_intents"

    invoice_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("invoices.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    amount_cents: Mapped[int] = mapped_column(BigInteger, nullable=False)
    currency: Mapped[str] = mapped_column(String(10), default="USD", nullable=False)
    status: Mapped[PaymentIntentStatus] = mapped_column(
        Enum(PaymentIntentStatus, name="payment_intent_status", values_callable=enum_values),
        default=PaymentIntentStatus.PENDING,
        nullable=False,
        index=True,
    )
    provider: Mapped[str] = mapped_column(String(50), default="mock", nullable=False)
    provider_ref: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
