from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ledgr.core.deps import get_current_user_id
from ledgr.core.settings import settings
from ledgr.db.session import get_db
from ledgr.schemas.wallet import (
    MockConfirmRequest,
    MockConfirmResponse,
    PaymentIntentCreate,
    PaymentIntentCreated,
    PaymentIntentListResponse,
    PaymentIntentRead,
    PaymentIntentResponse,
    WalletListResponse,
    WalletRead,
    WalletTransactionListResponse,
    WalletTransactionRead,
)
from ledgr.services import wallets as wallet_service

router = APIRouter(prefix="/api/wallets", tags=["wallets"])
payments_router = APIRouter(prefix="/api/payments", tags=["payments"])


@router.get("", response_model=WalletListResponse)
def list_wallets(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> WalletListResponse:
    wallets = wallet_service.list_wallets(db, user_id=user_id)
    return WalletListResponse(wallets=[WalletRead.model_validate(w) for w in wallets])


@router.get("/transactions", response_model=WalletTransactionListResponse)
def list_transactions(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> WalletTransactionListResponse:
    rows = wallet_service.list_transactions(db, user_id=user_id)
    return WalletTransactionListResponse(transactions=[WalletTransactionRead.model_validate(r) for r in rows])


@payments_router.get("/intents", response_model=PaymentIntentListResponse)
def list_intents(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> PaymentIntentListResponse:
    rows = wallet_service.list_intents(db, user_id=user_id)
    return PaymentIntentListResponse(intents=[PaymentIntentRead.model_validate(r) for r in rows])


@payments_router.get("/intents/{intent_id}", response_model=PaymentIntentResponse)
def get_intent(
    intent_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> PaymentIntentResponse:
    intent = wallet_service.get_intent(db, user_id=user_id, intent_id=intent_id)
    return PaymentIntentResponse(intent=PaymentIntentRead.model_validate(intent))


@payments_router.post("/intents", response_model=PaymentIntentCreated, status_code=status.HTTP_201_CREATED)
def create_intent(
    payload: PaymentIntentCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> PaymentIntentCreated:
    intent = wallet_service.create_intent(
        db,
        user_id=user_id,
        amount_cents=payload.amount_cents,
        invoice_id=payload.invoice_id,
    )
    checkout_url = f"{settings.frontend_origin.rstrip('/')}/mock/checkout/{intent.id}"
    return PaymentIntentCreated(intent=PaymentIntentRead.model_validate(intent), checkout_url=checkout_url)


@payments_router.post("/mock/confirm", response_model=MockConfirmResponse)
def confirm_mock_intent(
    payload: MockConfirmRequest,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> MockConfirmResponse:
    intent = wallet_service.confirm_intent(db, user_id=user_id, intent_id=payload.intent_id)
    return MockConfirmResponse(intent=PaymentIntentRead.model_validate(intent))
