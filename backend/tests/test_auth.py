from __future__ import annotations

import time

import pytest
from conftest import USER_ID
from jose import jwt

from ledgr.core.deps import get_current_user_id
from ledgr.core.settings import settings
from ledgr.main import app


def _token(**overrides) -> str:
    claims = {"sub": USER_ID, "aud": "authenticated", "exp": int(time.time()) + 600}
    claims.update(overrides)
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


@pytest.fixture()
def auth_client(client):
    app.dependency_overrides.pop(get_current_user_id, None)
    return client


def test_missing_token_is_unauthenticated(auth_client):
    response = auth_client.get("/api/invoices")
    assert response.status_code == 401
    assert response.json()["error"] == "Unauthenticated"
    assert response.headers["www-authenticate"] == "Bearer"


def test_bearer_token(auth_client):
    response = auth_client.get("/api/invoices", headers={"Authorization": f"Bearer {_token()}"})
    assert response.status_code == 200
    assert response.json() == {"invoices": []}


def test_cookie_token(auth_client):
    auth_client.cookies.set(settings.auth_cookie_name, _token())
    assert auth_client.get("/api/profile").json()["profile"]["id"] == USER_ID


@pytest.mark.parametrize(
    "token",
    [
        "not-a-jwt",
        _token(aud="someone-else"),
        _token(exp=int(time.time()) - 60),
        _token(sub=None),
        jwt.encode({"sub": USER_ID, "aud": "authenticated"}, "wrong-secret", algorithm="HS256"),
    ],
)
def test_invalid_tokens_are_rejected(auth_client, token):
    response = auth_client.get("/api/invoices", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_public_routes_do_not_require_auth(auth_client):
    assert auth_client.get("/healthz").status_code == 200
    assert auth_client.get("/api/public/invoices/x", params={"token": "t"}).status_code == 404
