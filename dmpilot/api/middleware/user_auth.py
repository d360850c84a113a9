"""
User authentication for the DM Pilot API.

Verifies Google OAuth access tokens sent by the mobile app and extracts the
caller's identity. The Google user id is the DM Pilot user id.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

import httpx
from cachetools import TTLCache
from fastapi import HTTPException, Request, status

from dmpilot.infrastructure.settings import is_production
from dmpilot.observability.logging import get_logger
from dmpilot.observability.telemetry import counter

logger = get_logger(__name__)

GOOGLE_TOKEN_INFO_URL = "https://oauth2.googleapis.com/tokeninfo"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"

_CACHE_MAX_SIZE = 1000
_CACHE_TTL_SECONDS = 600  # shorter than Google's 1 hour token lifetime


@dataclass
class AuthenticatedUser:
    id: str  # Google's unique user ID
    email: str
    name: str | None = None
    picture: str | None = None

    def __str__(self) -> str:
        return f"User({self.id})"


_token_cache: TTLCache[str, AuthenticatedUser] = TTLCache(
    maxsize=_CACHE_MAX_SIZE, ttl=_CACHE_TTL_SECONDS
)


def _unauthorized(detail: str) -> HTTPException:
    counter("api.auth.rejected")
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _check_audience(token_info: dict) -> None:
    expected_client_id = os.getenv("GOOGLE_OAUTH_CLIENT_ID")

    if not expected_client_id:
        if is_production():
            logger.error("GOOGLE_OAUTH_CLIENT_ID not configured in production")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Server misconfiguration: OAuth client ID not set",
            )
        logger.warning("GOOGLE_OAUTH_CLIENT_ID not set - skipping audience validation")
        return

    # Exact match only; a substring check would accept other apps' tokens
    if token_info.get("aud", "") != expected_client_id:
        logger.warning("Token audience mismatch")
        raise _unauthorized("Token not issued for this application")


async def verify_google_token(token: str) -> AuthenticatedUser:
    """
    Verify a Google OAuth token and return the user behind it.

    Raises:
        HTTPException: 401 for invalid tokens, 503 if Google is unreachable
    """
    if token in _token_cache:
        return _token_cache[token]

    async with httpx.AsyncClient(timeout=10.0) as client:
        try:
            token_response = await client.get(GOOGLE_TOKEN_INFO_URL, params={"access_token": token})
            if token_response.status_code != 200:
                raise _unauthorized("Invalid or expired token")

            _check_audience(token_response.json())

            userinfo_response = await client.get(
                GOOGLE_USERINFO_URL, headers={"Authorization": f"Bearer {token}"}
            )
        except httpx.RequestError as e:
            logger.error("Token validation request failed: %s", e)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Authentication service unavailable",
            ) from e

    if userinfo_response.status_code != 200:
        raise _unauthorized("Failed to retrieve user information")

    userinfo = userinfo_response.json()
    user = AuthenticatedUser(
        id=userinfo["id"],
        email=userinfo.get("email", ""),
        name=userinfo.get("name"),
        picture=userinfo.get("picture"),
    )

    _token_cache[token] = user
    logger.info("Authenticated %s (cache size: %d)", user, len(_token_cache))
    return user


def _extract_bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise _unauthorized("Missing authorization header")

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise _unauthorized("Invalid authorization header format. Expected: Bearer <token>")

    return parts[1]


async def get_current_user(request: Request) -> AuthenticatedUser:
    """
    FastAPI dependency for the authenticated caller.

    Usage:
        @router.post("/run")
        async def run(user: AuthenticatedUser = Depends(get_current_user)):
            ...
    """
    token = _extract_bearer_token(request.headers.get("Authorization"))
    return await verify_google_token(token)


def clear_token_cache() -> None:
    """Clear the token cache. Useful for testing."""
    _token_cache.clear()
