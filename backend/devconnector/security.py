"""
DevConnector Backend — Token Authentication
=============================================

What:  Verifies bearer tokens and builds the per-request caller context.
How:   Tokens are JWTs signed with settings.jwt_secret (PyJWT). The caller's
       user id is the `sub` claim. Tokens issued by the legacy Node API
       carry it as `{"user": {"id": ...}}` instead; both are accepted.
Who:   `get_request_context` is a FastAPI dependency on every /posts route.

Accepted headers:
    Authorization: Bearer <token>
    x-auth-token: <token>          (legacy clients)
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from devconnector.config import settings
from devconnector.exceptions import AuthenticationError
from devconnector.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

LEGACY_TOKEN_HEADER = "x-auth-token"

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class RequestContext:
    """
    The resolved caller of a request.

    Passed explicitly into every PostService call so the service never reads
    ambient request state.
    """
    user_id: uuid.UUID
    request_id: str = ""


def create_access_token(user_id: uuid.UUID, expires_minutes: Optional[int] = None) -> str:
    """Sign a token for `user_id`. Used by the login flow and by tests."""
    now = datetime.now(timezone.utc)
    minutes = expires_minutes if expires_minutes is not None else settings.access_token_expire_minutes
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + timedelta(minutes=minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def _subject(payload: Dict[str, Any]) -> Optional[str]:
    if payload.get("sub"):
        return payload["sub"]
    legacy_user = payload.get("user")
    if isinstance(legacy_user, dict):
        return legacy_user.get("id")
    return None


def decode_access_token(token: str) -> uuid.UUID:
    """
    Verify signature and expiry, and return the user id the token was issued to.

    Raises:
        AuthenticationError: bad signature, expired, or no usable subject
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"verify_exp": True},
        )
    except jwt.InvalidTokenError as e:
        logger.info("Rejected token: %s", type(e).__name__)
        raise AuthenticationError("Token is not valid.", context={"reason": type(e).__name__})

    subject = _subject(payload)
    try:
        return uuid.UUID(str(subject))
    except ValueError:
        raise AuthenticationError("Token is not valid.", context={"reason": "bad_subject"})


async def get_request_context(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> RequestContext:
    """
    FastAPI dependency resolving the caller of the current request.

    Raises:
        AuthenticationError: no token in either header, or token invalid (→ 401)
    """
    token = credentials.credentials if credentials else request.headers.get(LEGACY_TOKEN_HEADER)
    if not token:
        raise AuthenticationError()

    user_id = decode_access_token(token)
    return RequestContext(user_id=user_id, request_id=request_id_var.get(""))
