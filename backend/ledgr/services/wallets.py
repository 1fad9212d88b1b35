from __future__ import annotations

import logging
import secrets
import string
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ledgr.core.errors import StorageUnavailable, ValidationFailed
from ledgr.db.base import utcnow
from ledgr.models.enums import PaymentIntentStatus, WalletTransactionType
from ledgr.models.wallet import PaymentIntent, Wallet, WalletTransaction
from ledgr.services import invoices as invoice_service
from ledgr.services.money import require_positive_amount
from ledgr.services.records import OwnedRepository


logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "USD"
TRANSACTION_LIMIT = 200
_REF_ALPHABET = string.ascii_lowercase + string.digits


def _mock_provider_ref() -> str:
    return "mock_" + "".join(secrets.choice(_REF_ALPHABET) for _ in range(8))


def ensure_usd_wallet(db: Session, *, user_id: str) -> Wallet:
    """Return the user's USD wallet, creating it on first use.

    If duplicates exist the earliest created wallet wins.
    """
    repo = OwnedRepository(db, Wallet)
    existing = repo.list(
        user_id,
        order_by=Wallet.created_at.asc(),
        limit=1,
        currency=DEFAULT_CURRENCY,
    )
    if existing:
        return existing[0]
    wallet = repo.create(user_id=user_id, currency=DEFAULT_CURRENCY, balance_cents=0)
    repo.commit()
    return wallet


def list_wallets(db: Session, *, user_id: str) -> List[Wallet]:
    ensure_usd_wallet(db, user_id=user_id)
    return OwnedRepository(db, Wallet).list(user_id, order_by=Wallet.created_at.asc())


def list_transactions(db: Session, *, user_id: str) -> List[WalletTransaction]:
    return OwnedRepository(db, WalletTransaction).list(
        user_id,
        order_by=WalletTransaction.created_at.desc(),
        limit=TRANSACTION_LIMIT,
    )


def credit_wallet(db: Session, *, wallet_id: str, amount_cents: int) -> None:
    """Increment the balance with a single UPDATE; never read-modify-write."""
    try:
        db.execute(
            update(Wallet)
            .where(Wallet.id == wallet_id)
            .values(balance_cents=Wallet.balance_cents + amount_cents)
            .execution_options(synchronize_session="fetch")
        )
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageUnavailable() from exc


def create_intent(
    db: Session,
    *,
    user_id: str,
    amount_cents: int,
    invoice_id: Optional[str] = None,
) -> PaymentIntent:
    amount_cents = require_positive_amount(amount_cents)
    if invoice_id:
        invoice_service.load_invoice(db, user_id=user_id, invoice_id=invoice_id)
    ensure_usd_wallet(db, user_id=user_id)
    repo = OwnedRepository(db, PaymentIntent, label="Intent")
    intent = repo.create(
        user_id=user_id,
        invoice_id=invoice_id,
        amount_cents=amount_cents,
        currency=DEFAULT_CURRENCY,
        status=PaymentIntentStatus.PENDING,
        provider="mock",
        provider_ref=_mock_provider_ref(),
    )
    repo.commit()
    return intent


def list_intents(db: Session, *, user_id: str) -> List[PaymentIntent]:
    return OwnedRepository(db, PaymentIntent).list(
        user_id,
        order_by=PaymentIntent.created_at.desc(),
        limit=TRANSACTION_LIMIT,
    )


def get_intent(db: Session, *, user_id: str, intent_id: str) -> PaymentIntent:
    return OwnedRepository(db, PaymentIntent, label="Intent").get_or_404(user_id, intent_id)


def confirm_intent(db: Session, *, user_id: str, intent_id: str) -> PaymentIntent:
    """Settle a mock payment: credit the wallet and mark the linked invoice paid.

    All writes land in one transaction; confirming twice is a no-op.
    """
    repo = OwnedRepository(db, PaymentIntent, label="Intent")
    intent = repo.get_or_404(user_id, intent_id)
    if intent.status == PaymentIntentStatus.CONFIRMED:
        return intent
    if intent.status != PaymentIntentStatus.PENDING:
        raise ValidationFailed(f"Cannot confirm intent in status {intent.status}")

    invoice = None
    if intent.invoice_id:
        invoice = invoice_service.load_invoice(db, user_id=user_id, invoice_id=intent.invoice_id)

    wallet = ensure_usd_wallet(db, user_id=user_id)

    # Guarded transition so a concurrent confirm cannot credit twice.
    try:
        result = db.execute(
            update(PaymentIntent)
            .where(
                PaymentIntent.id == intent.id,
                PaymentIntent.user_id == user_id,
                PaymentIntent.status == PaymentIntentStatus.PENDING,
            )
            .values(status=PaymentIntentStatus.CONFIRMED, confirmed_at=utcnow())
            .execution_options(synchronize_session=False)
        )
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageUnavailable() from exc
    if result.rowcount == 0:
        db.rollback()
        return repo.get_or_404(user_id, intent_id)

    OwnedRepository(db, WalletTransaction).create(
        user_id=user_id,
        wallet_id=wallet.id,
        type=WalletTransactionType.CREDIT,
        amount_cents=intent.amount_cents,
        reference=f"intent:{intent.id}",
        metadata_json={"provider": intent.provider, "provider_ref": intent.provider_ref},
    )
    credit_wallet(db, wallet_id=wallet.id, amount_cents=intent.amount_cents)

    if invoice is not None:
        paid = invoice_service.mark_paid(invoice, user_id=user_id)
        invoice_service.save_invoice(db, invoice, paid, commit=False)
    repo.commit()
    logger.info(
        "payment_intent_confirmed",
        extra={"user_id": user_id, "invoice_id": intent.invoice_id},
    )

    stmt = select(PaymentIntent).where(PaymentIntent.id == intent.id).execution_options(populate_existing=True)
    return db.execute(stmt).scalar_one()
