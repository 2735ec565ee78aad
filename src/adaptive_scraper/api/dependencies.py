"""FastAPI dependency injection providers.

Dependency hierarchy::

    get_pipeline            — the process-wide ScrapePipeline from app.state
    get_optional_identity   — verified bearer identity, or None
    get_current_identity    — requires a valid bearer token (401 otherwise)
    scrape_identity         — get_current_identity when AUTH_REQUIRED,
                              else get_optional_identity

Verified identities are also attached to ``request.state.identity``.
"""

from __future__ import annotations

from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from adaptive_scraper.config.settings import Settings, get_settings
from adaptive_scraper.core.auth import decode_session_token
from adaptive_scraper.core.exceptions import InvalidTokenError
from adaptive_scraper.core.schemas.auth import SessionUser
from adaptive_scraper.scraper.pipeline import ScrapePipeline

_bearer = HTTPBearer(auto_error=False)

_UNAUTHORIZED = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Not authenticated.",
    headers={"WWW-Authenticate": "Bearer"},
)


def get_pipeline(request: Request) -> ScrapePipeline:
    """Return the pipeline built by the application lifespan."""
    return request.app.state.pipeline


async def get_optional_identity(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(_bearer)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Optional[SessionUser]:
    """Verify a bearer token if one is present.

    Returns:
        The identity carried by a valid token; ``None`` when no token was
        sent or the token does not verify.
    """
    request.state.identity = None
    if credentials is None:
        return None
    try:
        identity = decode_session_token(credentials.credentials, settings)
    except InvalidTokenError:
        return None
    request.state.identity = identity
    return identity


async def get_current_identity(
    identity: Annotated[Optional[SessionUser], Depends(get_optional_identity)],
) -> SessionUser:
    """Require a valid bearer token.

    Raises:
        HTTPException 401: If no valid token is present.
    """
    if identity is None:
        raise _UNAUTHORIZED
    return identity


async def scrape_identity(
    identity: Annotated[Optional[SessionUser], Depends(get_optional_identity)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Optional[SessionUser]:
    """Apply the ``AUTH_REQUIRED`` gate to ``POST /scrape``."""
    if settings.auth_required and identity is None:
        raise _UNAUTHORIZED
    return identity
