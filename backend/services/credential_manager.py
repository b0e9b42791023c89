"""Keyring-backed credential storage for price-provider secrets.

A thin wrapper around the ``keyring`` library so API keys such as the
CoinGecko demo key can live in the OS keychain instead of ``.env``.
Lookups never raise: a missing or broken keychain backend simply means
the next settings source (environment, ``.env``) is consulted.
"""

import logging

import keyring
from keyring.errors import KeyringError

logger = logging.getLogger(__name__)

SERVICE_NAME = "investment-ledger"

CREDENTIAL_KEYS: frozenset[str] = frozenset({"COINGECKO_API_KEY"})


def get_credential(key: str) -> str | None:
    """Retrieve a credential from the keychain.

    Args:
        key: The credential name (e.g. ``"COINGECKO_API_KEY"``).

    Returns:
        The credential value, or ``None`` if not found or no usable
        keychain backend is available.
    """
    try:
        return keyring.get_password(SERVICE_NAME, key)
    except KeyringError:
        logger.debug("keyring lookup failed for %s", key, exc_info=True)
        return None


def set_credential(key: str, value: str) -> bool:
    """Store a credential in the keychain.

    Only keys listed in :data:`CREDENTIAL_KEYS` are accepted.

    Returns:
        ``True`` if stored successfully, ``False`` otherwise.
    """
    if key not in CREDENTIAL_KEYS:
        logger.warning("Attempted to store non-credential key: %s", key)
        return False
    if not value or not value.strip():
        logger.warning("Attempted to store empty value for %s", key)
        return False

    try:
        keyring.set_password(SERVICE_NAME, key, value.strip())
    except KeyringError:
        logger.warning("Failed to store %s in keychain", key, exc_info=True)
        return False
    logger.info("Stored %s in keychain", key)
    return True
