"""
GrantValidator — decides whether a grant token opens a lock right now.

A redemption presents two identifiers: the lock's public identification
token and the grant's secret bearer token.  It is admitted only when

  1. a lock with that identification token exists,
  2. a grant with that token exists,
  3. the grant belongs to that lock,
  4. ``not_before < now < not_after`` (both bounds exclusive),
  5. the grant is unlimited or has uses left.

Every failure raises the same ``GrantDenied``; the reason is logged but never
returned.  A finite grant's use is consumed (and committed) before the lock
is actuated, so a failed open still costs a use.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from core.clock import Clock, system_clock
from core.errors import GrantDenied
from database.models import Grant, Lock, UNLIMITED_USES
from database.store import CredentialStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Redemption:
    lock: Lock
    grant: Grant


def denial_reason(grant: Optional[Grant], lock: Optional[Lock], now: datetime) -> Optional[str]:
    """Return why the pair is not redeemable at ``now``, or None if it is."""
    if lock is None:
        return "unknown lock"
    if grant is None:
        return "unknown grant"
    if grant.lock_id != lock.id:
        return "grant belongs to another lock"
    if not (grant.not_before < now < grant.not_after):
        return "outside validity window"
    if grant.usage_limit != UNLIMITED_USES and grant.usage_limit <= 0:
        return "usage limit exhausted"
    return None


def is_redeemable(grant: Optional[Grant], lock: Optional[Lock], now: datetime) -> bool:
    return denial_reason(grant, lock, now) is None


class GrantValidator:
    def __init__(self, store: CredentialStore, clock: Clock = system_clock) -> None:
        self.store = store
        self.clock = clock

    async def redeem(self, lock_identification_token: str, grant_token: str) -> Redemption:
        lock = await self.store.find_by_unique_field(
            Lock, "identification_token", lock_identification_token
        )
        grant = await self.store.find_by_unique_field(Grant, "token", grant_token)

        reason = denial_reason(grant, lock, self.clock.now())
        if reason is not None:
            logger.info("Redemption denied: %s", reason)
            raise GrantDenied(reason)

        if not grant.is_unlimited and not await self.store.decrement_usage(grant):
            logger.info("Redemption denied: grant %s exhausted concurrently", grant.id)
            raise GrantDenied("usage limit exhausted")

        logger.info(
            "Redemption admitted for lock %s (grant %s, uses left %s)",
            lock.id, grant.id, "unlimited" if grant.is_unlimited else grant.usage_limit,
        )
        return Redemption(lock=lock, grant=grant)
