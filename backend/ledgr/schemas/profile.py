from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import Field, model_validator

from ledgr.schemas.base import ORMModel


class ProfileRead(ORMModel):
    id: str
    name: Optional[str] = None
    plan: str
    avatar_id: Optional[int] = None


class ProfileResponse(ORMModel):
    profile: ProfileRead


class ProfileUpdate(ORMModel):
    avatar_id: Optional[int] = Field(default=None, ge=1, le=64)
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)

    @model_validator(mode="after")
    def require_a_field(self) -> "ProfileUpdate":
        if self.avatar_id is None and self.name is None:
            raise ValueError("No fields to update")
        return self


class SettingsPayload(ORMModel):
    settings: Dict[str, Any] = Field(default_factory=dict)


class CompanyLogoUpload(ORMModel):
    file_base64: str = Field(..., min_length=10)
    content_type: Optional[str] = Field(default=None, min_length=3, max_length=100)


class CompanyLogoStored(ORMModel):
    path: str


class CompanyLogoUrl(ORMModel):
    url: Optional[str] = None
