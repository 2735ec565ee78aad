"""Authentication routes: Google login exchange and session introspection.

``POST /auth/google``
    Verifies a Google ID token against ``GOOGLE_CLIENT_ID`` and returns a
    signed session token plus the user it identifies.  Answers 503 when no
    client ID is configured and 401 when the token does not verify.

``GET /auth/me``
    Returns the identity of a valid bearer session token.
"""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, status

from adaptive_scraper.api.dependencies import get_current_identity
from adaptive_scraper.config.settings import Settings, get_settings
from adaptive_scraper.core.auth import create_session_token, verify_google_token
from adaptive_scraper.core.exceptions import IdentityVerificationError
from adaptive_scraper.core.schemas.auth import GoogleLoginRequest, SessionUser, TokenResponse

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/google", response_model=TokenResponse)
async def google_login(
    body: GoogleLoginRequest,
    settings: Annotated[Settings, Depends(get_settings)],
) -> TokenResponse:
    if not settings.google_client_id:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Google login is not configured.",
        )
    try:
        user = await verify_google_token(body.id_token, settings.google_client_id)
    except IdentityVerificationError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc

    logger.info("login_success", user=user.email)
    return TokenResponse(token=create_session_token(user, settings), user=user)


@router.get("/me", response_model=SessionUser)
async def me(identity: Annotated[SessionUser, Depends(get_current_identity)]) -> SessionUser:
    return identity
