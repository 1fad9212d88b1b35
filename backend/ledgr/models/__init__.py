"""Import all models so SQLAlchemy metadata is fully registered."""

from ledgr.db.base import Base

from ledgr.models.enums import InvoiceStatus, PaymentIntentStatus, TemplateKind, WalletTransactionType
from ledgr.models.invoice import Invoice, InvoiceTemplate
from ledgr.models.profile import Profile
from ledgr.models.wallet import PaymentIntent, Wallet, WalletTransaction

__all__ = [
    "Base",
    "Invoice",
    "InvoiceStatus",
    "InvoiceTemplate",
    "PaymentIntent",
    "PaymentIntentStatus",
    "Profile",
    "TemplateKind",
    "Wallet",
    "WalletTransaction",
    "WalletTransactionType",
]
