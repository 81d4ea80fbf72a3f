"""
TokenRefresher — hands out a usable hub access token for an Integration.

The cached token is returned untouched while it is unexpired.  Once expired,
a ``refresh_token`` grant is performed and the refreshed credentials are
written back in a single save.  A failed refresh raises
``UpstreamAuthError`` and leaves both the database row and the in-memory
record exactly as they were.

There is no lock around check-then-refresh: two requests that
see the same expired token may both refresh.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from connectors.base import BaseHubConnector
from core.clock import Clock, system_clock
from core.errors import UpstreamAuthError
from database.models import Integration
from database.store import CredentialStore

logger = logging.getLogger(__name__)


class TokenRefresher:
    def __init__(
        self,
        store: CredentialStore,
        connector: BaseHubConnector,
        clock: Clock = system_clock,
    ) -> None:
        self.store = store
        self.connector = connector
        self.clock = clock

    def is_expired(self, integration: Integration) -> bool:
        expires_at = integration.access_token_expires_at
        return expires_at is None or expires_at <= self.clock.now()

    async def get_valid_access_token(self, integration: Integration) -> str:
        if integration.access_token and not self.is_expired(integration):
            return integration.access_token

        if not integration.refresh_token:
            raise UpstreamAuthError(
                f"integration {integration.id} has no refresh token (setup pending)"
            )

        refreshed = await self.connector.refresh_access_token(
            integration.base_url,
            integration.refresh_token,
            integration.client_secret_value(),
        )

        integration.access_token = refreshed.access_token
        integration.access_token_expires_at = self.clock.now() + timedelta(
            seconds=refreshed.expires_in
        )
        if refreshed.refresh_token:
            integration.refresh_token = refreshed.refresh_token
        await self.store.save(integration)

        logger.info(
            "Refreshed hub token for integration %s (expires %s)",
            integration.id, integration.access_token_expires_at.isoformat(),
        )
        return integration.access_token
