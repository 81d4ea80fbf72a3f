"""
CredentialStore — the record-store seam the core talks to.

Thin wrapper over one ``AsyncSession``: single-record loads, indexed unique
lookups, counts, full-record saves and the conditional usage decrement.
Every write commits immediately so later reads (and other requests) see it.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Optional, Type, TypeVar

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from core.errors import NotFound
from database.models import Base, Grant, Integration

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=Base)


def _to_uuid(value: str | uuid.UUID) -> uuid.UUID:
    return uuid.UUID(value) if isinstance(value, str) else value


class CredentialStore:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def load(self, model: Type[RecordT], record_id: str | uuid.UUID) -> RecordT:
        """Fetch a record by primary key; raises ``NotFound`` if absent or malformed."""
        try:
            key = _to_uuid(record_id)
        except ValueError:
            raise NotFound(f"{model.__name__} {record_id!r} not found")
        record = await self.session.get(model, key)
        if record is None:
            raise NotFound(f"{model.__name__} {record_id!r} not found")
        return record

    async def load_integration(self, integration_id: str | uuid.UUID) -> Integration:
        return await self.load(Integration, integration_id)

    async def save(self, record: RecordT) -> RecordT:
        """Insert or update the whole record and commit."""
        self.session.add(record)
        try:
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        return record

    async def find_by_unique_field(
        self, model: Type[RecordT], field: str, value: Any
    ) -> Optional[RecordT]:
        column = getattr(model, field)
        result = await self.session.execute(select(model).where(column == value))
        return result.scalar_one_or_none()

    async def count_matching(self, model: Type[Base], *criteria: Any) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(model).where(*criteria)
        )
        return int(result.scalar_one())

    async def decrement_usage(self, grant: Grant) -> bool:
        """
        Consume one use of a finite grant.

        The row only changes while its stored count is positive, so racing
        redemptions each take a use until none is left. Returns False when
        the grant was already exhausted. The in-memory grant is updated to
        the count the database now holds.
        """
        stmt = (
            update(Grant)
            .where(Grant.id == grant.id, Grant.usage_limit > 0)
            .values(usage_limit=Grant.usage_limit - 1)
            .returning(Grant.usage_limit)
            .execution_options(synchronize_session=False)
        )
        remaining = (await self.session.execute(stmt)).scalar_one_or_none()
        await self.session.commit()

        if remaining is None:
            logger.info("Usage decrement found grant %s exhausted", grant.id)
            return False

        set_committed_value(grant, "usage_limit", remaining)
        return True
