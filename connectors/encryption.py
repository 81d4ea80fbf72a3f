"""
Secret encryption — encrypt / decrypt hub credentials at rest.

Uses Fernet (AES-128-CBC + HMAC-SHA256) from the ``cryptography`` library.
The key is loaded from ``config.token_encryption_key``
(env var: ``TOKEN_ENCRYPTION_KEY``) and covers the integration's OAuth
client secret as well as its access / refresh tokens.

If no key is configured, encryption is **disabled** and values are stored
as plaintext (with a startup warning).  Generate a key with::

    python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"
"""

from __future__ import annotations

import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from config.settings import config

logger = logging.getLogger(__name__)

_fernet: Optional[Fernet] = None
_initialised = False


def _init_fernet() -> None:
    """Lazy-initialise the Fernet cipher once."""
    global _fernet, _initialised

    _initialised = True
    key = config.token_encryption_key
    if not key:
        logger.warning(
            "TOKEN_ENCRYPTION_KEY not set — hub secrets will be stored as plaintext"
        )
        _fernet = None
        return

    try:
        _fernet = Fernet(key.encode() if isinstance(key, str) else key)
        logger.info("Secret encryption enabled (Fernet/AES-128-CBC)")
    except ValueError as exc:
        logger.error("Failed to initialise Fernet with provided key: %s", exc)
        _fernet = None


def configure(key: Optional[str]) -> None:
    """Swap the active key at runtime (``None`` or empty disables encryption)."""
    global _fernet, _initialised
    _initialised = True
    _fernet = Fernet(key.encode()) if key else None


def encrypt_secret(plaintext: str) -> str:
    """
    Encrypt a value for database storage.

    Returns the Fernet ciphertext (URL-safe base64), or the plaintext
    unchanged when encryption is disabled.
    """
    if not _initialised:
        _init_fernet()

    if _fernet is None:
        return plaintext

    return _fernet.encrypt(plaintext.encode()).decode()


def decrypt_secret(ciphertext: str) -> str:
    """
    Decrypt a value read from the database.

    Values written before encryption was enabled are not valid Fernet
    tokens and are returned as-is.
    """
    if not _initialised:
        _init_fernet()

    if _fernet is None:
        return ciphertext

    try:
        return _fernet.decrypt(ciphertext.encode()).decode()
    except InvalidToken:
        logger.debug("Value is not a Fernet token; treating as legacy plaintext")
        return ciphertext


def is_encryption_enabled() -> bool:
    """Check whether at-rest encryption is active."""
    if not _initialised:
        _init_fernet()
    return _fernet is not None
