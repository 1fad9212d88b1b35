from __future__ import annotations

import base64
import binascii
import re
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ledgr.core.errors import StorageUnavailable, ValidationFailed
from ledgr.core.settings import settings as app_settings
from ledgr.models.profile import Profile
from ledgr.services.blob_store import BlobStore
from ledgr.services.email import Sender
from ledgr.services.invoice_pdf import Branding


LOGO_BUCKET = "logos"
LOGO_SETTINGS_KEY = "company_logo_path"
LOGO_URL_TTL_SECONDS = 60 * 60
_DATA_URL = re.compile(r"^data:(?P<content_type>.+?);base64,(?P<data>.*)$", re.DOTALL)


def _commit(db: Session) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise StorageUnavailable() from exc


def find_profile(db: Session, user_id: str) -> Optional[Profile]:
    try:
        return db.get(Profile, user_id)
    except SQLAlchemyError as exc:
        raise StorageUnavailable() from exc


def get_or_create_profile(db: Session, user_id: str) -> Profile:
    profile = find_profile(db, user_id)
    if profile is None:
        profile = Profile(id=user_id, plan="free", settings={})
        db.add(profile)
        _commit(db)
    return profile


def update_profile(db: Session, user_id: str, changes: dict[str, Any]) -> Profile:
    if not changes:
        raise ValidationFailed("No fields to update")
    profile = get_or_create_profile(db, user_id)
    for field, value in changes.items():
        setattr(profile, field, value)
    _commit(db)
    return profile


def get_settings(db: Session, user_id: str) -> dict[str, Any]:
    profile = find_profile(db, user_id)
    return dict(profile.settings or {}) if profile else {}


def merge_settings(db: Session, user_id: str, patch: dict[str, Any]) -> dict[str, Any]:
    """Shallow merge: top-level keys in ``patch`` replace stored keys."""
    profile = get_or_create_profile(db, user_id)
    merged = {**(profile.settings or {}), **patch}
    # Reassign so the JSON column is flagged dirty.
    profile.settings = merged
    _commit(db)
    return merged


def email_settings(db: Session, user_id: str) -> dict[str, Any]:
    stored = get_settings(db, user_id).get("email") or {}
    return {
        "from_name": stored.get("from_name") or app_settings.mail_from_name,
        "from_email": stored.get("from_email") or app_settings.email_from,
        "brand_name": stored.get("brand_name") or app_settings.mail_from_name,
        "reply_to": stored.get("reply_to"),
    }


def update_email_settings(db: Session, user_id: str, patch: dict[str, Any]) -> dict[str, Any]:
    current = get_settings(db, user_id).get("email") or {}
    merge_settings(db, user_id, {"email": {**current, **patch}})
    return email_settings(db, user_id)


def email_sender(db: Session, user_id: str) -> tuple[Sender, str]:
    cfg = get_settings(db, user_id).get("email") or {}
    sender = Sender(name=cfg.get("from_name"), email=cfg.get("from_email"), reply_to=cfg.get("reply_to"))
    return sender, cfg.get("brand_name") or app_settings.mail_from_name


def branding_for(db: Session, user_id: str) -> Branding:
    profile = find_profile(db, user_id)
    return Branding(name=profile.name if profile else None)


def decode_logo(file_base64: str, content_type: Optional[str] = None) -> tuple[bytes, str]:
    """Accept raw base64 or a ``data:<type>;base64,`` URL; the URL's type wins."""
    content_type = content_type or "image/png"
    encoded = file_base64.strip()
    match = _DATA_URL.match(encoded)
    if match:
        content_type = match.group("content_type") or content_type
        encoded = match.group("data")
    try:
        data = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationFailed("Logo is not valid base64") from exc
    if not data:
        raise ValidationFailed("Logo is empty")
    return data, content_type


def logo_extension(content_type: str) -> str:
    if "jpeg" in content_type:
        return "jpg"
    subtype = content_type.partition("/")[2].split(";")[0]
    return re.sub(r"[^a-z0-9]", "", subtype.lower()) or "png"


def store_company_logo(
    db: Session,
    store: BlobStore,
    user_id: str,
    *,
    file_base64: str,
    content_type: Optional[str] = None,
) -> str:
    data, content_type = decode_logo(file_base64, content_type)
    path = f"{user_id}/company-logo.{logo_extension(content_type)}"
    store.ensure_bucket(LOGO_BUCKET)
    store.put(LOGO_BUCKET, path, data, content_type=content_type, upsert=True)
    merge_settings(db, user_id, {LOGO_SETTINGS_KEY: path})
    return path


def company_logo_url(db: Session, store: BlobStore, user_id: str) -> Optional[str]:
    path = get_settings(db, user_id).get(LOGO_SETTINGS_KEY)
    if not path:
        return None
    return store.create_signed_url(LOGO_BUCKET, path, LOGO_URL_TTL_SECONDS)
