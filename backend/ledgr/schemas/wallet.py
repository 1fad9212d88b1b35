from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, Field

from ledgr.models.enums import PaymentIntentStatus, WalletTransactionType
from ledgr.schemas.base import ORMModel


class WalletRead(ORMModel):
    id: str
    currency: str
    balance_cents: int
    created_at: datetime


class WalletListResponse(ORMModel):
    wallets: List[WalletRead]


class WalletTransactionRead(ORMModel):
    id: str
    wallet_id: str
    type: WalletTransactionType
    amount_cents: int
    reference: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(
        default=None,
        validation_alias=AliasChoices("metadata_json", "metadata"),
    )
    created_at: datetime


class WalletTransactionListResponse(ORMModel):
    transactions: List[WalletTransactionRead]


class PaymentIntentCreate(ORMModel):
    # Range is enforced by the money rules so the error kind is InvalidAmount.
    amount_cents: int
    invoice_id: Optional[str] = None


class PaymentIntentRead(ORMModel):
    id: str
    invoice_id: Optional[str] = None
    amount_cents: int
    currency: str
    status: PaymentIntentStatus
    provider: str
    provider_ref: Optional[str] = None
    created_at: datetime
    confirmed_at: Optional[datetime] = None


class PaymentIntentResponse(ORMModel):
    intent: PaymentIntentRead


class PaymentIntentCreated(PaymentIntentResponse):
    checkout_url: str


class PaymentIntentListResponse(ORMModel):
    intents: List[PaymentIntentRead]


class MockConfirmRequest(ORMModel):
    intent_id: str = Field(..., min_length=1)


class MockConfirmResponse(PaymentIntentResponse):
    ok: bool = True
