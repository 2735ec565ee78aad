"""Pydantic request/response schemas for the authentication routes."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class GoogleLoginRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id_token: str = Field(alias="idToken", min_length=1)


class SessionUser(BaseModel):
    """Identity carried by a session token.

    Attributes:
        email: Verified e-mail address from the identity provider.
        name: Display name, if the provider supplied one.
        picture: Avatar URL, if the provider supplied one.
    """

    email: str
    name: Optional[str] = None
    picture: Optional[str] = None


class TokenResponse(BaseModel):
    token: str
    user: SessionUser
