from __future__ import annotations

from typing import List

from sqlalchemy.orm import Session

from ledgr.core.errors import NotFound, ValidationFailed
from ledgr.models.invoice import InvoiceTemplate
from ledgr.schemas.template import TemplateCreate, TemplateRead, TemplateUpdate
from ledgr.services.money import compute_totals
from ledgr.services.records import OwnedRepository


def _repo(db: Session) -> OwnedRepository[InvoiceTemplate]:
    return OwnedRepository(db, InvoiceTemplate, label="Template")


def to_read(template: InvoiceTemplate) -> TemplateRead:
    read = TemplateRead.model_validate(template)
    totals = compute_totals(read.items, read.tax_rate)
    return read.model_copy(update={"total_minor_units": totals.total_minor_units})


def list_templates(db: Session, *, user_id: str) -> List[TemplateRead]:
    rows = _repo(db).list(user_id, order_by=InvoiceTemplate.created_at.desc())
    return [to_read(row) for row in rows]


def create_template(db: Session, *, user_id: str, payload: TemplateCreate) -> TemplateRead:
    repo = _repo(db)
    values = payload.model_dump()
    row = repo.create(user_id=user_id, **values)
    repo.commit()
    return to_read(row)


def update_template(db: Session, *, user_id: str, template_id: str, payload: TemplateUpdate) -> TemplateRead:
    changes = payload.model_dump(exclude_unset=True)
    for field in ("name", "items", "tax_rate"):
        if field in changes and changes[field] is None:
            raise ValidationFailed(f"{field} cannot be null")
    repo = _repo(db)
    row = repo.update(user_id, template_id, changes)
    if row is None:
        raise NotFound("Template not found")
    repo.commit()
    return to_read(row)


def delete_template(db: Session, *, user_id: str, template_id: str) -> None:
    repo = _repo(db)
    if not repo.delete(user_id, template_id):
        raise NotFound("Template not found")
    repo.commit()
