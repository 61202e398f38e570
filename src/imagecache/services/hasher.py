"""
Cache key derivation.

Keys are HMAC-MD5 digests of the source URL under a per-installation secret
salt. The salt doubles as the anti open-proxy secret: without it nobody can
mint a valid ``hash`` for an arbitrary URL.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets

from sqlalchemy.ext.asyncio import AsyncSession

from imagecache.exceptions import ConfigurationError
from imagecache.models.options import SALT_KEY
from imagecache.repositories.mod_settings_repository import ModSettingsRepository

logger = logging.getLogger(__name__)

# 128 bits of entropy, hex encoded
_SALT_BYTES = 16


def compute_key(url: str, salt: str) -> str:
    """Return the 32-character hex HMAC-MD5 of ``url`` keyed by ``salt``."""
    return hmac.new(salt.encode("utf-8"), url.encode("utf-8"), hashlib.md5).hexdigest()


def generate_salt() -> str:
    """Generate a fresh random salt."""
    return secrets.token_hex(_SALT_BYTES)


class Hasher:
    """Computes and verifies cache keys for a fixed salt.

    Parameters
    ----------
    salt : str
        The installation's secret salt.
    """

    def __init__(self, salt: str) -> None:
        if not salt:
            raise ConfigurationError("Image cache salt must not be empty")
        self._salt = salt

    def key_for(self, url: str) -> str:
        """Cache key for ``url``."""
        return compute_key(url, self._salt)

    def verify(self, url: str, supplied_hash: str) -> bool:
        """Check a client-supplied hash against the key for ``url``."""
        return hmac.compare_digest(
            self.key_for(url).encode("ascii"), supplied_hash.encode("utf-8")
        )


async def load_or_create_salt(
    session: AsyncSession,
    settings_repo: ModSettingsRepository | None = None,
) -> str:
    """Return the persisted salt, generating and storing it on first use.

    Generation is an insert-if-absent followed by a re-read, so concurrent
    cold starts all end up with whichever salt was written first.

    Parameters
    ----------
    session : AsyncSession
        Database session.
    settings_repo : ModSettingsRepository | None
        Repository override (a new one is created if omitted).

    Returns
    -------
    str
        The installation salt.
    """
    repo = settings_repo or ModSettingsRepository()
    salt = await repo.get_value(session, SALT_KEY)
    if salt:
        return salt

    candidate = generate_salt()
    if await repo.set_value_if_absent(session, SALT_KEY, candidate):
        await session.commit()
        logger.info("Generated new image cache salt")
        return candidate

    # Lost the race (or an empty value is stored): use what is there
    stored = await repo.get_value(session, SALT_KEY)
    if stored:
        return stored

    await repo.set_values(session, {SALT_KEY: candidate})
    await session.commit()
    logger.warning("Replaced empty image cache salt")
    return candidate
