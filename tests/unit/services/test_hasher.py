"""
Tests for cache key derivation and salt management.
"""

from __future__ import annotations

import hashlib
import hmac

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from imagecache.exceptions import ConfigurationError
from imagecache.models.options import SALT_KEY
from imagecache.repositories.mod_settings_repository import ModSettingsRepository
from imagecache.services.hasher import (
    Hasher,
    compute_key,
    generate_salt,
    load_or_create_salt,
)


class TestComputeKey:
    """Tests for compute_key."""

    def test_matches_hmac_md5(self) -> None:
        expected = hmac.new(b"sauce", b"http://example.com/a.png", hashlib.md5).hexdigest()
        assert compute_key("http://example.com/a.png", "sauce") == expected

    def test_is_32_lowercase_hex(self) -> None:
        key = compute_key("http://example.com/a.png", "sauce")
        assert len(key) == 32
        assert key == key.lower()
        int(key, 16)

    def test_deterministic(self) -> None:
        url = "http://example.com/a.png"
        assert compute_key(url, "sauce") == compute_key(url, "sauce")

    def test_depends_on_url_and_salt(self) -> None:
        base = compute_key("http://example.com/a.png", "sauce")
        assert compute_key("http://example.com/b.png", "sauce") != base
        assert compute_key("http://example.com/a.png", "other") != base


class TestHasher:
    """Tests for the Hasher object."""

    def test_empty_salt_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            Hasher("")

    def test_verify_accepts_own_key(self, hasher: Hasher) -> None:
        url = "http://example.com/a.png"
        assert hasher.verify(url, hasher.key_for(url)) is True

    def test_verify_rejects_tampered_key(self, hasher: Hasher) -> None:
        url = "http://example.com/a.png"
        tampered = "0" * 32
        assert hasher.key_for(url) != tampered
        assert hasher.verify(url, tampered) is False

    def test_verify_rejects_non_ascii_hash(self, hasher: Hasher) -> None:
        assert hasher.verify("http://example.com/a.png", "\u00e9" * 32) is False

    def test_generate_salt_is_128_bit_hex(self) -> None:
        salt = generate_salt()
        assert len(salt) == 32
        int(salt, 16)
        assert generate_salt() != salt


class TestLoadOrCreateSalt:
    """Tests for lazy salt generation."""

    async def test_generates_and_persists(self, db_session: AsyncSession) -> None:
        salt = await load_or_create_salt(db_session)

        assert len(salt) == 32
        stored = await ModSettingsRepository().get_value(db_session, SALT_KEY)
        assert stored == salt

    async def test_returns_existing_salt(self, db_session: AsyncSession) -> None:
        repo = ModSettingsRepository()
        await repo.set_values(db_session, {SALT_KEY: "existing-salt"})
        await db_session.commit()

        assert await load_or_create_salt(db_session, repo) == "existing-salt"

    async def test_concurrent_cold_starts_converge(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        async with session_factory() as first:
            salt_a = await load_or_create_salt(first)
        async with session_factory() as second:
            salt_b = await load_or_create_salt(second)

        assert salt_a == salt_b

    async def test_loser_of_insert_reads_winner(self, db_session: AsyncSession) -> None:
        repo = ModSettingsRepository()
        # Another process wrote the salt between our read and our insert
        assert await repo.set_value_if_absent(db_session, SALT_KEY, "winner") is True
        await db_session.commit()

        assert await repo.set_value_if_absent(db_session, SALT_KEY, "loser") is False
        assert await load_or_create_salt(db_session, repo) == "winner"
