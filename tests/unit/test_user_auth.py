"""Unit tests for Google token authentication

Tokens are placed in the verification cache so no request reaches Google.
"""

from __future__ import annotations

import pytest
from fastapi import Depends, FastAPI, HTTPException
from fastapi.testclient import TestClient

from dmpilot.api.middleware import user_auth
from dmpilot.api.middleware.user_auth import (
    AuthenticatedUser,
    _check_audience,
    clear_token_cache,
    get_current_user,
)


@pytest.fixture
def client():
    app = FastAPI()

    @app.get("/me")
    async def me(user: AuthenticatedUser = Depends(get_current_user)):
        return {"id": user.id, "email": user.email}

    clear_token_cache()
    yield TestClient(app)
    clear_token_cache()


def test_missing_header_is_rejected(client):
    response = client.get("/me")

    assert response.status_code == 401
    assert response.json()["detail"] == "Missing authorization header"
    assert response.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.parametrize("header", ["Basic abc123", "Bearer", "Bearer a b"])
def test_malformed_header_is_rejected(client, header):
    response = client.get("/me", headers={"Authorization": header})

    assert response.status_code == 401
    assert "Invalid authorization header format" in response.json()["detail"]


def test_cached_token_is_accepted(client):
    user_auth._token_cache["good-token"] = AuthenticatedUser(id="g-123", email="maya@example.com")

    response = client.get("/me", headers={"Authorization": "Bearer good-token"})

    assert response.status_code == 200
    assert response.json() == {"id": "g-123", "email": "maya@example.com"}


def test_audience_must_match_exactly(monkeypatch):
    monkeypatch.setenv("GOOGLE_OAUTH_CLIENT_ID", "client-abc.apps.googleusercontent.com")

    _check_audience({"aud": "client-abc.apps.googleusercontent.com"})
    with pytest.raises(HTTPException) as exc_info:
        _check_audience({"aud": "evil-client-abc.apps.googleusercontent.com"})

    assert exc_info.value.status_code == 401


def test_missing_client_id_is_fatal_in_production(monkeypatch):
    monkeypatch.delenv("GOOGLE_OAUTH_CLIENT_ID", raising=False)
    monkeypatch.setattr(user_auth, "is_production", lambda: True)

    with pytest.raises(HTTPException) as exc_info:
        _check_audience({"aud": "anything"})

    assert exc_info.value.status_code == 500


def test_missing_client_id_is_allowed_in_development(monkeypatch):
    monkeypatch.delenv("GOOGLE_OAUTH_CLIENT_ID", raising=False)
    monkeypatch.setattr(user_auth, "is_production", lambda: False)

    _check_audience({"aud": "anything"})
