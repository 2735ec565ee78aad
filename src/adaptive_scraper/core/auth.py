"""Session tokens and Google identity verification.

Session tokens are HS256 JWTs signed with ``SECRET_KEY`` and issued by the
``/auth/google`` exchange.  They carry the user's ``email``, ``name`` and
``picture`` claims; there is no server-side user store.

Encoding and decoding reuse the FastAPI-Users JWT helpers so the token
format matches the library's own strategies (``aud`` claim, HS256).
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import jwt
from fastapi_users.jwt import decode_jwt, generate_jwt
from google.auth import exceptions as google_exceptions
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token as google_id_token

from adaptive_scraper.config.settings import Settings
from adaptive_scraper.core.exceptions import IdentityVerificationError, InvalidTokenError
from adaptive_scraper.core.schemas.auth import SessionUser

logger = logging.getLogger(__name__)

SESSION_TOKEN_AUDIENCE = "adaptive_scraper:session"
SESSION_TOKEN_ALGORITHM = "HS256"


def create_session_token(user: SessionUser, settings: Settings) -> str:
    """Issue a signed session token for ``user``.

    Args:
        user: Verified identity.
        settings: Application settings supplying the secret and lifetime.

    Returns:
        The encoded JWT.
    """
    data: dict[str, Any] = {
        "sub": user.email,
        "email": user.email,
        "name": user.name,
        "picture": user.picture,
        "aud": SESSION_TOKEN_AUDIENCE,
    }
    return generate_jwt(
        data,
        settings.secret_key,
        lifetime_seconds=settings.access_token_expire_minutes * 60,
        algorithm=SESSION_TOKEN_ALGORITHM,
    )


def decode_session_token(token: str, settings: Settings) -> SessionUser:
    """Validate a session token and return the identity it carries.

    Raises:
        InvalidTokenError: If the token is malformed, expired, badly signed,
            or lacks an ``email`` claim.
    """
    try:
        claims = decode_jwt(
            token,
            settings.secret_key,
            audience=[SESSION_TOKEN_AUDIENCE],
            algorithms=[SESSION_TOKEN_ALGORITHM],
        )
    except jwt.PyJWTError as exc:
        raise InvalidTokenError(str(exc)) from exc

    email = claims.get("email")
    if not isinstance(email, str) or not email:
        raise InvalidTokenError("token has no email claim")
    return SessionUser(email=email, name=claims.get("name"), picture=claims.get("picture"))


def _verify_google_token_sync(token: str, client_id: str) -> dict[str, Any]:
    return google_id_token.verify_oauth2_token(token, google_requests.Request(), client_id)


async def verify_google_token(token: str, client_id: str) -> SessionUser:
    """Verify a Google ID token and return the identity it asserts.

    google-auth fetches Google's signing certificates with a blocking
    transport, so verification runs in a worker thread.

    Args:
        token: The ID token from Google Sign-In.
        client_id: The OAuth client ID the token must be issued for.

    Raises:
        IdentityVerificationError: If the token is invalid, issued for
            another client, lacks an e-mail, or the certificates cannot be
            fetched.
    """
    try:
        claims = await asyncio.to_thread(_verify_google_token_sync, token, client_id)
    except (ValueError, google_exceptions.GoogleAuthError) as exc:
        logger.info("auth: google token rejected: %s", exc)
        raise IdentityVerificationError("Invalid Google ID token") from exc

    email = claims.get("email")
    if not email:
        raise IdentityVerificationError("Google ID token has no email claim")
    return SessionUser(email=email, name=claims.get("name"), picture=claims.get("picture"))
