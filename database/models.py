"""
SQLAlchemy ORM models for users, hub integrations, locks and grants.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional, Union

from pydantic import SecretStr
from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    TypeDecorator,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase

from connectors.encryption import decrypt_secret, encrypt_secret

# Sentinel stored in ``Grant.usage_limit`` for grants that never run out.
UNLIMITED_USES = -1


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Column types ──────────────────────────────────────────────────────


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetimes, also on backends that drop tzinfo (SQLite)."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class EncryptedText(TypeDecorator):
    """Text encrypted at rest with the configured Fernet key."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Optional[str], dialect) -> Optional[str]:
        if value is None:
            return None
        return encrypt_secret(value)

    def process_result_value(self, value: Optional[str], dialect) -> Optional[str]:
        if value is None:
            return None
        return decrypt_secret(value)


class SecretText(TypeDecorator):
    """
    Encrypted text that only ever surfaces in Python as ``SecretStr``.

    ``repr``/``str``/JSON encoding of the loaded value yield ``**********``;
    the plaintext is reachable only through ``get_secret_value()``.
    """

    impl = Text
    cache_ok = True

    def process_bind_param(
        self, value: Union[SecretStr, str, None], dialect
    ) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, SecretStr):
            value = value.get_secret_value()
        return encrypt_secret(value)

    def process_result_value(self, value: Optional[str], dialect) -> Optional[SecretStr]:
        if value is None:
            return None
        return SecretStr(decrypt_secret(value))


# ── Models ────────────────────────────────────────────────────────────


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    user_id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False)
    display_name = Column(String(128))
    password_hash = Column(String(255), nullable=False, default="")
    created_at = Column(UTCDateTime, default=utcnow)


class Integration(Base):
    """One connected home-automation hub and its OAuth credentials."""

    __tablename__ = "integrations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    base_url = Column(String(512), unique=True, nullable=False, index=True)
    client_secret = Column(SecretText)
    access_token = Column(EncryptedText)
    refresh_token = Column(EncryptedText)
    access_token_expires_at = Column(UTCDateTime)
    created_at = Column(UTCDateTime, default=utcnow)
    updated_at = Column(UTCDateTime, default=utcnow, onupdate=utcnow)

    @property
    def is_configured(self) -> bool:
        """True once the authorization-code exchange has completed."""
        return bool(self.refresh_token)

    def client_secret_value(self) -> str:
        if self.client_secret is None:
            return ""
        return self.client_secret.get_secret_value()


class Lock(Base):
    __tablename__ = "locks"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    identification_token = Column(String(128), unique=True, nullable=False, index=True)
    integration_id = Column(
        Uuid, ForeignKey("integrations.id", ondelete="CASCADE"), nullable=False
    )
    entity_id = Column(String(255), nullable=False)
    name = Column(String(128))
    created_at = Column(UTCDateTime, default=utcnow)


class Grant(Base):
    __tablename__ = "grants"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    token = Column(String(128), unique=True, nullable=False, index=True)
    lock_id = Column(Uuid, ForeignKey("locks.id", ondelete="CASCADE"), nullable=False)
    not_before = Column(UTCDateTime, nullable=False)
    not_after = Column(UTCDateTime, nullable=False)
    usage_limit = Column(Integer, nullable=False, default=UNLIMITED_USES)
    created_at = Column(UTCDateTime, default=utcnow)

    @property
    def is_unlimited(self) -> bool:
        return self.usage_limit == UNLIMITED_USES
