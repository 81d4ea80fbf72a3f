"""
BaseHubConnector — abstract interface for home-automation hub backends.

A hub is addressed by the base URL stored on its Integration; the connector
holds only this service's own OAuth identity (client_id / redirect_uri) and
never persists anything itself.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List

from utils.schemas import HubTokenGrant, HubTokenRefresh


class BaseHubConnector(ABC):
    """Abstract base for hub connectors."""

    # ── Identity ────────────────────────────────────────────────────────
    @property
    @abstractmethod
    def client_id(self) -> str:
        """OAuth client_id this service presents to the hub."""
        ...

    # ── OAuth flow ──────────────────────────────────────────────────────

    @abstractmethod
    def get_auth_url(self, base_url: str, state: str) -> str:
        """
        Build the hub's OAuth2 authorization URL.

        Parameters
        ----------
        base_url : str
            Root URL of the hub.
        state : str
            Opaque correlation string echoed back on the callback.
        """
        ...

    @abstractmethod
    async def exchange_code(
        self, base_url: str, code: str, client_secret: str
    ) -> HubTokenGrant:
        """Exchange an authorization code for the initial token pair."""
        ...

    @abstractmethod
    async def refresh_access_token(
        self, base_url: str, refresh_token: str, client_secret: str
    ) -> HubTokenRefresh:
        """Trade a refresh token for a new access token."""
        ...

    # ── Hub API ─────────────────────────────────────────────────────────

    @abstractmethod
    async def list_states(self, base_url: str, access_token: str) -> List[Dict[str, Any]]:
        """Return every entity state the hub exposes."""
        ...

    @abstractmethod
    async def call_service(
        self,
        base_url: str,
        access_token: str,
        domain: str,
        service: str,
        data: Dict[str, Any],
    ) -> int:
        """Invoke ``domain.service`` on the hub and return its HTTP status."""
        ...
