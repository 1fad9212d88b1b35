from __future__ import annotations

from enum import StrEnum


class InvoiceStatus(StrEnum):
    PENDING = "pending"
    PAID = "paid"
    VOID = "void"


class TemplateKind(StrEnum):
    SIMPLE = "simple"
    DETAILED = "detailed"
    PROFORMA = "proforma"


class WalletTransactionType(StrEnum):
    CREDIT = "credit"
    DEBIT = "debit"


class PaymentIntentStatus(StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


def enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]
