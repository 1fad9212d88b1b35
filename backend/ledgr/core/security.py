from __future__ import annotations

import hashlib
import hmac
from typing import Any, Dict

from jose import JWTError, jwt

from ledgr.core.errors import ConfigMissing, Unauthenticated
from ledgr.core.settings import settings


def decode_token(token: str) -> Dict[str, Any]:
    options = {"verify_aud": bool(settings.jwt_audience)}
    return jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=[settings.jwt_algorithm],
        audience=settings.jwt_audience,
        options=options,
    )


def verify_access_token(token: str) -> str:
    """Return the user id carried by an identity provider access token."""
    try:
        payload = decode_token(token)
    except JWTError as exc:
        raise Unauthenticated() from exc
    user_id = payload.get("sub")
    if not user_id:
        raise Unauthenticated()
    return str(user_id)


def require_share_secret() -> str:
    secret = settings.public_share_secret
    if not secret:
        raise ConfigMissing("PUBLIC_SHARE_SECRET is not set")
    return secret


def _hmac_hex(message: str) -> str:
    return hmac.new(require_share_secret().encode(), message.encode(), hashlib.sha256).hexdigest()


def make_public_token(user_id: str, invoice_id: str) -> str:
    return _hmac_hex(f"{user_id}:{invoice_id}")


def verify_public_token(token: str, *, user_id: str, invoice_id: str) -> bool:
    return hmac.compare_digest(token, make_public_token(user_id, invoice_id))


def sign_file_path(bucket: str, path: str, expires: int) -> str:
    return _hmac_hex(f"{bucket}/{path}:{expires}")


def verify_file_signature(signature: str, *, bucket: str, path: str, expires: int) -> bool:
    return hmac.compare_digest(signature, sign_file_path(bucket, path, expires))


def public_invoice_link(user_id: str, invoice_id: str) -> tuple[str, str]:
    """Return ``(url, token)`` for the read-only public invoice page."""
    token = make_public_token(user_id, invoice_id)
    return f"{settings.frontend_origin.rstrip('/')}/p/{invoice_id}?token={token}", token
