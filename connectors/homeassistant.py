"""
HomeAssistantConnector — OAuth2 and REST access to a Home Assistant hub.

Home Assistant identifies OAuth clients by URL, so this service's public
base URL is the ``client_id``.  Endpoints used:

  • ``/auth/authorize``            — consent screen
  • ``/auth/token``                — code exchange and refresh (form-encoded)
  • ``/api/states``                — entity listing
  • ``/api/services/<d>/<s>``      — service calls (e.g. ``lock.open``)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Type, TypeVar
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from config.settings import config
from connectors.base import BaseHubConnector
from core.errors import UpstreamActuationError, UpstreamAuthError, UpstreamHubError
from utils.schemas import HubTokenGrant, HubTokenRefresh

logger = logging.getLogger(__name__)

TokenT = TypeVar("TokenT", bound=HubTokenRefresh)


class HomeAssistantConnector(BaseHubConnector):
    """Connector for Home Assistant hubs."""

    def __init__(
        self,
        client_id: Optional[str] = None,
        redirect_uri: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._client_id = client_id or config.oauth_client_id
        self._redirect_uri = redirect_uri or config.oauth_redirect_uri
        self._timeout = timeout if timeout is not None else config.hub_http_timeout
        self._transport = transport

    @property
    def client_id(self) -> str:
        return self._client_id

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    # ── OAuth ───────────────────────────────────────────────────────────

    def get_auth_url(self, base_url: str, state: str) -> str:
        params = {
            "client_id": self._client_id,
            "redirect_uri": self._redirect_uri,
            "state": state,
        }
        return f"{base_url}/auth/authorize?{urlencode(params)}"

    async def exchange_code(
        self, base_url: str, code: str, client_secret: str
    ) -> HubTokenGrant:
        """Exchange the authorization code from the callback for tokens."""
        return await self._token_request(
            base_url,
            {
                "grant_type": "authorization_code",
                "code": code,
                "client_id": self._client_id,
                "client_secret": client_secret,
            },
            HubTokenGrant,
        )

    async def refresh_access_token(
        self, base_url: str, refresh_token: str, client_secret: str
    ) -> HubTokenRefresh:
        return await self._token_request(
            base_url,
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": self._client_id,
                "client_secret": client_secret,
            },
            HubTokenRefresh,
        )

    async def _token_request(
        self, base_url: str, form: Dict[str, str], schema: Type[TokenT]
    ) -> TokenT:
        grant_type = form["grant_type"]
        try:
            async with self._client() as client:
                resp = await client.post(
                    f"{base_url}/auth/token",
                    data=form,
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as exc:
            logger.warning("Token endpoint at %s unreachable (%s): %s", base_url, grant_type, exc)
            raise UpstreamAuthError(f"token endpoint unreachable: {exc}") from exc

        if not resp.is_success:
            logger.warning(
                "Token endpoint at %s rejected %s grant: HTTP %s",
                base_url, grant_type, resp.status_code,
            )
            raise UpstreamAuthError(f"token endpoint returned HTTP {resp.status_code}")

        try:
            return schema.model_validate(resp.json())
        except (ValueError, ValidationError) as exc:
            logger.warning("Malformed %s response from %s: %s", grant_type, base_url, exc)
            raise UpstreamAuthError("token endpoint returned a malformed response") from exc

    # ── Hub API ─────────────────────────────────────────────────────────

    def _auth_headers(self, access_token: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {access_token}"}

    async def list_states(self, base_url: str, access_token: str) -> List[Dict[str, Any]]:
        try:
            async with self._client() as client:
                resp = await client.get(
                    f"{base_url}/api/states",
                    headers=self._auth_headers(access_token),
                )
        except httpx.HTTPError as exc:
            logger.warning("State listing at %s failed: %s", base_url, exc)
            raise UpstreamHubError(f"hub unreachable: {exc}") from exc

        if not resp.is_success:
            logger.warning("State listing at %s returned HTTP %s", base_url, resp.status_code)
            raise UpstreamHubError(f"hub returned HTTP {resp.status_code}")

        try:
            states = resp.json()
        except ValueError as exc:
            raise UpstreamHubError("hub returned malformed JSON") from exc
        if not isinstance(states, list):
            raise UpstreamHubError("hub returned an unexpected state payload")
        return states

    async def call_service(
        self,
        base_url: str,
        access_token: str,
        domain: str,
        service: str,
        data: Dict[str, Any],
    ) -> int:
        try:
            async with self._client() as client:
                resp = await client.post(
                    f"{base_url}/api/services/{domain}/{service}",
                    json=data,
                    headers=self._auth_headers(access_token),
                )
        except httpx.HTTPError as exc:
            logger.warning("Service call %s.%s at %s failed: %s", domain, service, base_url, exc)
            raise UpstreamActuationError(f"hub unreachable: {exc}", status_code=502) from exc

        logger.debug("Service call %s.%s at %s → HTTP %s", domain, service, base_url, resp.status_code)
        return resp.status_code


def get_default_connector() -> HomeAssistantConnector:
    """Connector configured from settings; FastAPI dependency."""
    return HomeAssistantConnector()
