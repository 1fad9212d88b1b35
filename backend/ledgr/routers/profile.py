from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ledgr.core.deps import get_blob_store, get_current_user_id
from ledgr.db.session import get_db
from ledgr.schemas.profile import (
    CompanyLogoStored,
    CompanyLogoUpload,
    CompanyLogoUrl,
    ProfileRead,
    ProfileResponse,
    ProfileUpdate,
    SettingsPayload,
)
from ledgr.services import profiles as profile_service
from ledgr.services.blob_store import BlobStore

router = APIRouter(prefix="/api/profile", tags=["profile"])
settings_router = APIRouter(prefix="/api/settings", tags=["settings"])


@router.get("", response_model=ProfileResponse)
def get_profile(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> ProfileResponse:
    profile = profile_service.get_or_create_profile(db, user_id)
    return ProfileResponse(profile=ProfileRead.model_validate(profile))


@router.patch("", response_model=ProfileResponse)
def update_profile(
    payload: ProfileUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> ProfileResponse:
    changes = payload.model_dump(exclude_none=True)
    profile = profile_service.update_profile(db, user_id, changes)
    return ProfileResponse(profile=ProfileRead.model_validate(profile))


@settings_router.get("", response_model=SettingsPayload)
def get_settings(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> SettingsPayload:
    return SettingsPayload(settings=profile_service.get_settings(db, user_id))


@settings_router.put("", response_model=SettingsPayload)
def put_settings(
    payload: SettingsPayload,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> SettingsPayload:
    return SettingsPayload(settings=profile_service.merge_settings(db, user_id, payload.settings))


@settings_router.post("/company-logo", response_model=CompanyLogoStored)
def upload_company_logo(
    payload: CompanyLogoUpload,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    store: BlobStore = Depends(get_blob_store),
) -> CompanyLogoStored:
    path = profile_service.store_company_logo(
        db,
        store,
        user_id,
        file_base64=payload.file_base64,
        content_type=payload.content_type,
    )
    return CompanyLogoStored(path=path)


@settings_router.get("/company-logo-url", response_model=CompanyLogoUrl)
def get_company_logo_url(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    store: BlobStore = Depends(get_blob_store),
) -> CompanyLogoUrl:
    return CompanyLogoUrl(url=profile_service.company_logo_url(db, store, user_id))
