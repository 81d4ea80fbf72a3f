"""
Pydantic schemas for the door-lock grant service.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr

# Upper bound on a hub-issued token lifetime (ten years)
MAX_TOKEN_LIFETIME_SECONDS = 10 * 365 * 24 * 3600


# ═══════════════════════════════════════════════════════════════════════════════
# Hub wire formats
# ═══════════════════════════════════════════════════════════════════════════════


class HubTokenRefresh(BaseModel):
    """Token endpoint response to a ``refresh_token`` grant."""

    access_token: str = Field(..., min_length=1)
    expires_in: int = Field(..., ge=0, le=MAX_TOKEN_LIFETIME_SECONDS)
    # Present only when the hub rotates refresh tokens
    refresh_token: Optional[str] = None


class HubTokenGrant(HubTokenRefresh):
    """Token endpoint response to an ``authorization_code`` grant."""

    refresh_token: str = Field(..., min_length=1)


class HubEntityState(BaseModel):
    entity_id: str
    attributes: Dict[str, Any] = Field(default_factory=dict)


# ═══════════════════════════════════════════════════════════════════════════════
# OAuth correlation state
# ═══════════════════════════════════════════════════════════════════════════════


class OAuthState(BaseModel):
    url: str
    frontend_callback: str


# ═══════════════════════════════════════════════════════════════════════════════
# API request / response bodies
# ═══════════════════════════════════════════════════════════════════════════════


class SetupRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    base_url: str = Field(..., alias="baseURL", min_length=1)
    frontend_callback: str = Field(..., alias="frontendCallback", min_length=1)
    client_secret: Optional[SecretStr] = Field(None, alias="clientSecret")


class SetupResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    auth_url: str = Field(..., serialization_alias="authUrl")


class MessageResponse(BaseModel):
    message: str


class LockSummary(BaseModel):
    id: str
    name: Optional[str] = None


class OpenRequest(BaseModel):
    token: str
