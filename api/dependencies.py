"""
FastAPI dependencies that assemble the core components per request.

Tests swap ``get_clock`` and ``get_connector`` through
``app.dependency_overrides``.
"""

from __future__ import annotations

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from auth.dependencies import db_session
from connectors.base import BaseHubConnector
from connectors.homeassistant import get_default_connector
from core.authorization_flow import AuthorizationCodeFlow
from core.clock import Clock, system_clock
from core.grant_validator import GrantValidator
from core.lock_actuator import LockActuator
from core.token_refresher import TokenRefresher
from database.store import CredentialStore


def get_clock() -> Clock:
    return system_clock


def get_connector() -> BaseHubConnector:
    return get_default_connector()


async def get_store(session: AsyncSession = Depends(db_session)) -> CredentialStore:
    return CredentialStore(session)


async def get_token_refresher(
    store: CredentialStore = Depends(get_store),
    connector: BaseHubConnector = Depends(get_connector),
    clock: Clock = Depends(get_clock),
) -> TokenRefresher:
    return TokenRefresher(store, connector, clock)


async def get_authorization_flow(
    store: CredentialStore = Depends(get_store),
    connector: BaseHubConnector = Depends(get_connector),
    clock: Clock = Depends(get_clock),
) -> AuthorizationCodeFlow:
    return AuthorizationCodeFlow(store, connector, clock)


async def get_grant_validator(
    store: CredentialStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
) -> GrantValidator:
    return GrantValidator(store, clock)


async def get_lock_actuator(
    store: CredentialStore = Depends(get_store),
    refresher: TokenRefresher = Depends(get_token_refresher),
    connector: BaseHubConnector = Depends(get_connector),
) -> LockActuator:
    return LockActuator(store, refresher, connector)
