from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ledgr.core.errors import Unauthenticated
from ledgr.core.security import verify_access_token
from ledgr.core.settings import settings
from ledgr.services.artifacts import ArtifactCache
from ledgr.services.blob_store import BlobStore, build_blob_store
from ledgr.services.email import Mailer

bearer_scheme = HTTPBearer(auto_error=False)
logger = logging.getLogger("security")


def _log_auth_event(event: str, *, request: Request) -> None:
    payload = {
        "event": event,
        "request_id": getattr(request.state, "request_id", None),
        "path": request.url.path,
        "method": request.method,
        "client": request.client.host if request.client else None,
    }
    logger.info(json.dumps(payload, default=str))


def get_current_user_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
) -> str:
    """Resolve the caller from a bearer token or the session cookie."""
    token = credentials.credentials if credentials else request.cookies.get(settings.auth_cookie_name)
    if not token:
        _log_auth_event("token_missing", request=request)
        raise Unauthenticated("Unauthenticated")
    try:
        user_id = verify_access_token(token)
    except Unauthenticated:
        _log_auth_event("token_invalid", request=request)
        raise
    request.state.user_id = user_id
    return user_id


@lru_cache(maxsize=1)
def _blob_store() -> BlobStore:
    return build_blob_store()


def get_blob_store() -> BlobStore:
    return _blob_store()


def get_artifact_cache(store: BlobStore = Depends(get_blob_store)) -> ArtifactCache:
    return ArtifactCache(store)


def get_mailer() -> Mailer:
    return Mailer()
