"""
AuthorizationCodeFlow — one-time OAuth bootstrap of a hub Integration.

``begin_setup`` finds or creates the Integration for a hub URL and, unless
it already holds a refresh token, returns the hub's consent URL.
``complete_setup`` runs on the OAuth callback: it exchanges the code for the
initial token pair and tells the caller where to send the browser.

The ``state`` parameter only carries routing data (which hub, where to
redirect afterwards).  It authenticates nothing; the authorization code is
what the hub verifies.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional, Union

from pydantic import SecretStr, ValidationError
from sqlalchemy.exc import IntegrityError

from connectors.base import BaseHubConnector
from core.clock import Clock, system_clock
from core.errors import InvalidState, NotFound
from database.models import Integration
from database.store import CredentialStore
from utils.schemas import OAuthState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthorizationRedirect:
    integration_id: uuid.UUID
    auth_url: str


@dataclass(frozen=True)
class AlreadyConfigured:
    integration_id: uuid.UUID


SetupOutcome = Union[AuthorizationRedirect, AlreadyConfigured]


# ── State encoding ─────────────────────────────────────────────────────


def normalize_base_url(base_url: str) -> str:
    return base_url.strip().rstrip("/")


def encode_state(base_url: str, frontend_callback: str) -> str:
    """URL-safe, unpadded base64 of the compact JSON routing payload."""
    payload = OAuthState(url=base_url, frontend_callback=frontend_callback)
    raw = json.dumps(payload.model_dump(), separators=(",", ":")).encode()
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def decode_state(state: str) -> OAuthState:
    padded = state + "=" * (-len(state) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded.encode())
        return OAuthState.model_validate(json.loads(raw))
    except (binascii.Error, UnicodeDecodeError, ValueError, ValidationError) as exc:
        raise InvalidState(f"undecodable OAuth state: {exc}") from exc


# ── Flow ───────────────────────────────────────────────────────────────


class AuthorizationCodeFlow:
    def __init__(
        self,
        store: CredentialStore,
        connector: BaseHubConnector,
        clock: Clock = system_clock,
    ) -> None:
        self.store = store
        self.connector = connector
        self.clock = clock

    async def _find_or_create(
        self,
        base_url: str,
        caller_id: str | uuid.UUID,
        client_secret: Optional[SecretStr],
    ) -> Integration:
        if await self.store.count_matching(Integration, Integration.base_url == base_url) == 0:
            integration = Integration(
                base_url=base_url,
                owner_id=uuid.UUID(str(caller_id)),
                client_secret=client_secret,
            )
            try:
                await self.store.save(integration)
                logger.info("Created integration %s for %s", integration.id, base_url)
                return integration
            except IntegrityError:
                # Only a concurrent insert of the same base_url is recoverable
                existing = await self.store.find_by_unique_field(
                    Integration, "base_url", base_url
                )
                if existing is None:
                    raise
                logger.info("Integration for %s created concurrently; reusing it", base_url)
                return existing

        integration = await self.store.find_by_unique_field(Integration, "base_url", base_url)
        if integration is None:
            raise NotFound(f"integration for {base_url} not found")
        return integration

    async def begin_setup(
        self,
        base_url: str,
        caller_id: str | uuid.UUID,
        frontend_callback: str,
        client_secret: Optional[SecretStr] = None,
    ) -> SetupOutcome:
        base_url = normalize_base_url(base_url)
        integration = await self._find_or_create(base_url, caller_id, client_secret)

        if integration.is_configured:
            return AlreadyConfigured(integration_id=integration.id)

        state = encode_state(base_url, frontend_callback)
        return AuthorizationRedirect(
            integration_id=integration.id,
            auth_url=self.connector.get_auth_url(base_url, state),
        )

    async def complete_setup(self, state: str, code: str) -> str:
        """Store the initial token pair; returns the frontend callback URL."""
        routing = decode_state(state)
        integration = await self.store.find_by_unique_field(
            Integration, "base_url", routing.url
        )
        if integration is None:
            raise NotFound(f"integration for {routing.url} not found")

        tokens = await self.connector.exchange_code(
            integration.base_url, code, integration.client_secret_value()
        )

        integration.access_token = tokens.access_token
        integration.refresh_token = tokens.refresh_token
        integration.access_token_expires_at = self.clock.now() + timedelta(
            seconds=tokens.expires_in
        )
        await self.store.save(integration)

        logger.info("Integration %s completed OAuth setup", integration.id)
        return routing.frontend_callback
