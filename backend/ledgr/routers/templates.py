from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from ledgr.core.deps import get_current_user_id
from ledgr.db.session import get_db
from ledgr.schemas.template import TemplateCreate, TemplateListResponse, TemplateRead, TemplateUpdate
from ledgr.services import templates as template_service

router = APIRouter(prefix="/api/templates", tags=["templates"])


@router.get("", response_model=TemplateListResponse)
def list_templates(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> TemplateListResponse:
    return TemplateListResponse(templates=template_service.list_templates(db, user_id=user_id))


@router.post("", response_model=TemplateRead, status_code=status.HTTP_201_CREATED)
def create_template(
    payload: TemplateCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> TemplateRead:
    return template_service.create_template(db, user_id=user_id, payload=payload)


@router.put("/{template_id}", response_model=TemplateRead)
def update_template(
    template_id: str,
    payload: TemplateUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> TemplateRead:
    return template_service.update_template(db, user_id=user_id, template_id=template_id, payload=payload)


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_template(
    template_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> Response:
    template_service.delete_template(db, user_id=user_id, template_id=template_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
