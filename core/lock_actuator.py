"""
LockActuator — sends one ``lock.open`` service call for an admitted redemption.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from connectors.base import BaseHubConnector
from core.errors import UpstreamActuationError
from core.token_refresher import TokenRefresher
from database.models import Lock
from database.store import CredentialStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PhysicalResult:
    status_code: int


class LockActuator:
    def __init__(
        self,
        store: CredentialStore,
        refresher: TokenRefresher,
        connector: BaseHubConnector,
    ) -> None:
        self.store = store
        self.refresher = refresher
        self.connector = connector

    async def open(self, lock: Lock) -> PhysicalResult:
        """
        Open ``lock`` through its hub.  The hub's status is reported
        verbatim; a non-2xx answer raises ``UpstreamActuationError`` carrying
        it.  No retries.
        """
        integration = await self.store.load_integration(lock.integration_id)
        access_token = await self.refresher.get_valid_access_token(integration)

        status_code = await self.connector.call_service(
            integration.base_url,
            access_token,
            "lock",
            "open",
            {"entity_id": lock.entity_id},
        )
        if not 200 <= status_code < 300:
            logger.warning("Hub refused to open %s: HTTP %s", lock.entity_id, status_code)
            raise UpstreamActuationError(
                f"hub returned HTTP {status_code} for lock.open", status_code=status_code
            )

        logger.info("Opened %s via integration %s", lock.entity_id, integration.id)
        return PhysicalResult(status_code=status_code)
