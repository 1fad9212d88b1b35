from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from ledgr.schemas.base import ORMModel
from ledgr.schemas.invoice import LineItem


class TemplateCreate(ORMModel):
    name: str = Field(..., min_length=1, max_length=120)
    items: List[LineItem] = Field(..., min_length=1)
    tax_rate: float = Field(default=0, ge=0, le=100)
    notes: str = ""


class TemplateUpdate(ORMModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    items: Optional[List[LineItem]] = Field(default=None, min_length=1)
    tax_rate: Optional[float] = Field(default=None, ge=0, le=100)
    notes: Optional[str] = None


class TemplateRead(ORMModel):
    id: str
    user_id: str
    name: str
    items: List[LineItem]
    tax_rate: float
    notes: Optional[str] = None
    created_at: datetime
    total_minor_units: Optional[int] = None


class TemplateListResponse(ORMModel):
    templates: List[TemplateRead]
