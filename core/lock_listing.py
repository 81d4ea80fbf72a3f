"""
Lock listing — which of a hub's entities this service can open.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List

from pydantic import ValidationError

from connectors.base import BaseHubConnector
from core.errors import Forbidden
from core.token_refresher import TokenRefresher
from database.store import CredentialStore
from utils.schemas import HubEntityState, LockSummary

logger = logging.getLogger(__name__)

LOCK_DOMAIN_PREFIX = "lock."
# LockEntityFeature.OPEN in Home Assistant's lock component
SUPPORT_OPEN = 1


def openable_locks(states: List[Dict[str, Any]]) -> List[LockSummary]:
    """Keep ``lock.*`` entities advertising the open feature bit."""
    locks: List[LockSummary] = []
    for raw in states:
        try:
            state = HubEntityState.model_validate(raw)
        except ValidationError:
            logger.debug("Skipping malformed hub state entry: %r", raw)
            continue
        if not state.entity_id.startswith(LOCK_DOMAIN_PREFIX):
            continue
        features = state.attributes.get("supported_features") or 0
        if not isinstance(features, int) or not features & SUPPORT_OPEN:
            continue
        locks.append(
            LockSummary(id=state.entity_id, name=state.attributes.get("friendly_name"))
        )
    return locks


async def list_openable_locks(
    store: CredentialStore,
    refresher: TokenRefresher,
    connector: BaseHubConnector,
    integration_id: str | uuid.UUID,
    caller_id: str | uuid.UUID,
) -> List[LockSummary]:
    """Owner-only listing of the hub's openable locks."""
    integration = await store.load_integration(integration_id)
    if str(integration.owner_id) != str(caller_id):
        logger.info("User %s denied lock listing of integration %s", caller_id, integration.id)
        raise Forbidden("not the integration owner")

    access_token = await refresher.get_valid_access_token(integration)
    states = await connector.list_states(integration.base_url, access_token)
    return openable_locks(states)
