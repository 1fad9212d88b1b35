from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable, List, Optional

from sqlalchemy.orm import Session

from ledgr.core.errors import InvalidAmount, NotFound, ValidationFailed
from ledgr.db.base import new_id, utcnow
from ledgr.models.enums import InvoiceStatus, TemplateKind
from ledgr.models.invoice import Invoice
from ledgr.schemas.invoice import InvoiceCreate, InvoiceSnapshot, InvoiceUpdate, LineItem
from ledgr.services.money import compute_totals, require_positive_amount
from ledgr.services.records import OwnedRepository


logger = logging.getLogger(__name__)

# Fields a patch copies verbatim; money fields go through reconcile_money().
_TEXT_FIELDS = (
    "currency",
    "customer",
    "notes",
    "company_name",
    "company_address",
    "client_email",
    "client_address",
    "issue_date",
    "due_date",
    "template_kind",
)
_NON_NULLABLE = {"currency", "customer", "template_kind"}


def items_total(items: Iterable[LineItem], tax_rate: Optional[float]) -> int:
    amount = compute_totals(items, tax_rate or 0).total_minor_units
    if amount <= 0:
        raise InvalidAmount()
    return amount


def create_invoice(payload: InvoiceCreate, *, user_id: str, now: Optional[datetime] = None) -> InvoiceSnapshot:
    items: List[LineItem] = list(payload.items or [])
    if items:
        tax_rate: Optional[float] = payload.tax_rate if payload.tax_rate is not None else 0.0
        amount = items_total(items, tax_rate)
    else:
        tax_rate = None
        amount = require_positive_amount(payload.amount)

    return InvoiceSnapshot(
        id=new_id(),
        user_id=user_id,
        amount=amount,
        currency=payload.currency,
        customer=payload.customer,
        status=InvoiceStatus.PENDING,
        items=items or None,
        tax_rate=tax_rate,
        notes=payload.notes,
        company_name=payload.company_name,
        company_address=payload.company_address,
        client_email=payload.client_email,
        client_address=payload.client_address,
        issue_date=payload.issue_date,
        due_date=payload.due_date,
        created_at=now or utcnow(),
        template_kind=payload.template_kind or TemplateKind.SIMPLE,
    )


def reconcile_money(existing: InvoiceSnapshot, data: dict[str, Any]) -> dict[str, Any]:
    """Resolve items, tax_rate and amount for a patch.

    Items always win: whenever the effective item list is non-empty the amount
    is recomputed from it, even if the patch carries an explicit amount.
    """
    updates: dict[str, Any] = {}
    if "items" in data:
        new_items = list(data["items"] or [])
        updates["items"] = new_items or None
        if new_items:
            tax_rate = data.get("tax_rate")
            updates["tax_rate"] = tax_rate if tax_rate is not None else 0.0
        else:
            updates["tax_rate"] = None
    elif "tax_rate" in data:
        updates["tax_rate"] = data["tax_rate"]

    effective_items = updates["items"] if "items" in updates else existing.items
    effective_tax = updates["tax_rate"] if "tax_rate" in updates else existing.tax_rate

    if effective_items:
        amount = items_total(effective_items, effective_tax)
    elif data.get("amount") is not None:
        amount = data["amount"]
    else:
        amount = existing.amount
    updates["amount"] = require_positive_amount(amount)
    return updates


def patch_invoice(existing: InvoiceSnapshot, patch: InvoiceUpdate) -> InvoiceSnapshot:
    data = {field: getattr(patch, field) for field in patch.model_fields_set}
    if not data:
        raise ValidationFailed("No fields to update")

    updates: dict[str, Any] = {}
    for field in _TEXT_FIELDS:
        if field not in data:
            continue
        if data[field] is None and field in _NON_NULLABLE:
            raise ValidationFailed(f"{field} cannot be null")
        updates[field] = data[field]

    updates.update(reconcile_money(existing, data))
    return existing.model_copy(update=updates)


def _ensure_owner(existing: InvoiceSnapshot, user_id: str) -> None:
    if existing.user_id != user_id:
        raise NotFound("Invoice not found")


def mark_paid(existing: InvoiceSnapshot, *, user_id: str) -> InvoiceSnapshot:
    _ensure_owner(existing, user_id)
    if existing.status == InvoiceStatus.PAID:
        return existing
    return existing.model_copy(update={"status": InvoiceStatus.PAID})


def void_invoice(existing: InvoiceSnapshot, *, user_id: str) -> InvoiceSnapshot:
    _ensure_owner(existing, user_id)
    if existing.status == InvoiceStatus.VOID:
        return existing
    if existing.status != InvoiceStatus.PENDING:
        raise ValidationFailed(f"Cannot void an invoice in status {existing.status}")
    return existing.model_copy(update={"status": InvoiceStatus.VOID})


def row_values(snapshot: InvoiceSnapshot) -> dict[str, Any]:
    values = snapshot.model_dump(exclude={"items"})
    values["items"] = [item.model_dump() for item in snapshot.items] if snapshot.items else None
    return values


def changed_fields(before: InvoiceSnapshot, after: InvoiceSnapshot) -> dict[str, Any]:
    old = row_values(before)
    new = row_values(after)
    return {field: value for field, value in new.items() if old.get(field) != value}


# ============ PERSISTENCE ============


def invoice_repository(db: Session) -> OwnedRepository[Invoice]:
    return OwnedRepository(db, Invoice, label="Invoice")


def load_invoice(db: Session, *, user_id: str, invoice_id: str) -> InvoiceSnapshot:
    row = invoice_repository(db).get_or_404(user_id, invoice_id)
    return InvoiceSnapshot.model_validate(row)


def list_invoices(db: Session, *, user_id: str) -> List[InvoiceSnapshot]:
    rows = invoice_repository(db).list(user_id, order_by=Invoice.created_at.desc())
    return [InvoiceSnapshot.model_validate(row) for row in rows]


def insert_invoice(db: Session, snapshot: InvoiceSnapshot) -> InvoiceSnapshot:
    repo = invoice_repository(db)
    row = repo.create(**row_values(snapshot))
    repo.commit()
    logger.info("invoice_created", extra={"user_id": snapshot.user_id, "invoice_id": snapshot.id})
    return InvoiceSnapshot.model_validate(row)


def save_invoice(
    db: Session,
    before: InvoiceSnapshot,
    after: InvoiceSnapshot,
    *,
    commit: bool = True,
) -> InvoiceSnapshot:
    """Persist the difference between two snapshots with an owner-filtered update."""
    repo = invoice_repository(db)
    row = repo.update(before.user_id, before.id, changed_fields(before, after))
    if row is None:
        raise NotFound("Invoice not found")
    if commit:
        repo.commit()
    return InvoiceSnapshot.model_validate(row)


def apply_patch(db: Session, *, user_id: str, invoice_id: str, patch: InvoiceUpdate) -> InvoiceSnapshot:
    existing = load_invoice(db, user_id=user_id, invoice_id=invoice_id)
    updated = patch_invoice(existing, patch)
    saved = save_invoice(db, existing, updated)
    logger.info(
        "invoice_patched",
        extra={"user_id": user_id, "invoice_id": invoice_id},
    )
    return saved


def apply_mark_paid(db: Session, *, user_id: str, invoice_id: str) -> InvoiceSnapshot:
    existing = load_invoice(db, user_id=user_id, invoice_id=invoice_id)
    saved = save_invoice(db, existing, mark_paid(existing, user_id=user_id))
    logger.info("invoice_paid", extra={"user_id": user_id, "invoice_id": invoice_id})
    return saved


def apply_void(db: Session, *, user_id: str, invoice_id: str) -> InvoiceSnapshot:
    existing = load_invoice(db, user_id=user_id, invoice_id=invoice_id)
    return save_invoice(db, existing, void_invoice(existing, user_id=user_id))


def load_public_invoice(db: Session, *, invoice_id: str) -> InvoiceSnapshot:
    """Fetch an invoice by id alone; callers must verify a share token first."""
    row = db.get(Invoice, invoice_id)
    if row is None:
        raise NotFound("Invoice not found")
    return InvoiceSnapshot.model_validate(row)
