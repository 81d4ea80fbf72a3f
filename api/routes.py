"""
REST API routes — hub integration setup, lock listing, grant redemption.
"""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse, RedirectResponse, Response

from api.dependencies import (
    get_authorization_flow,
    get_connector,
    get_grant_validator,
    get_lock_actuator,
    get_store,
    get_token_refresher,
)
from auth.dependencies import get_current_user_id
from connectors.base import BaseHubConnector
from core.authorization_flow import AlreadyConfigured, AuthorizationCodeFlow
from core.grant_validator import GrantValidator
from core.lock_actuator import LockActuator
from core.lock_listing import list_openable_locks
from core.token_refresher import TokenRefresher
from database.store import CredentialStore
from utils.schemas import LockSummary, MessageResponse, OpenRequest, SetupRequest, SetupResponse

logger = logging.getLogger(__name__)

router = APIRouter()


# ── Integration setup (OAuth) ──────────────────────────────────────────


@router.post(
    "/integration/setup",
    tags=["integration"],
    responses={
        status.HTTP_200_OK: {"model": MessageResponse},
        status.HTTP_201_CREATED: {"model": SetupResponse},
    },
)
async def setup_integration(
    request: SetupRequest,
    user_id: str = Depends(get_current_user_id),
    flow: AuthorizationCodeFlow = Depends(get_authorization_flow),
) -> JSONResponse:
    """Start (or confirm) the OAuth connection to a hub."""
    outcome = await flow.begin_setup(
        request.base_url,
        user_id,
        request.frontend_callback,
        client_secret=request.client_secret,
    )
    if isinstance(outcome, AlreadyConfigured):
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content=MessageResponse(message="Already setup").model_dump(),
        )
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=SetupResponse(auth_url=outcome.auth_url).model_dump(by_alias=True),
    )


@router.get("/integration/callback", tags=["integration"])
async def integration_callback(
    state: str = Query(...),
    code: str = Query(...),
    flow: AuthorizationCodeFlow = Depends(get_authorization_flow),
) -> RedirectResponse:
    """
    OAuth callback — the hub redirects here after consent.

    Exchanges the code for tokens, then sends the browser back to the
    frontend callback carried in ``state``.
    """
    frontend_callback = await flow.complete_setup(state, code)
    return RedirectResponse(frontend_callback, status_code=status.HTTP_307_TEMPORARY_REDIRECT)


@router.get(
    "/integration/{integration_id}/locks",
    tags=["integration"],
    response_model=List[LockSummary],
)
async def integration_locks(
    integration_id: str,
    user_id: str = Depends(get_current_user_id),
    store: CredentialStore = Depends(get_store),
    refresher: TokenRefresher = Depends(get_token_refresher),
    connector: BaseHubConnector = Depends(get_connector),
) -> List[LockSummary]:
    """Locks on the hub that support being opened (owner only)."""
    return await list_openable_locks(store, refresher, connector, integration_id, user_id)


# ── Grant redemption ───────────────────────────────────────────────────


@router.post("/locks/{token}/open", tags=["locks"])
async def open_lock(
    token: str,
    request: OpenRequest,
    validator: GrantValidator = Depends(get_grant_validator),
    actuator: LockActuator = Depends(get_lock_actuator),
) -> Response:
    """
    Redeem a grant against the lock identified by ``token``.

    No user auth: the grant token in the body is the credential.  The hub's
    status is returned as-is with an empty body.
    """
    redemption = await validator.redeem(token, request.token)
    result = await actuator.open(redemption.lock)
    return Response(status_code=result.status_code)
