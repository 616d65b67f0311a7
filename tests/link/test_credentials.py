"""Tests for credential persistence."""

import json

import pytest

from pairline.errors import StorageError
from pairline.link.credentials import CredentialStore


class TestCredentialStore:
    """Tests for CredentialStore."""

    @pytest.mark.asyncio
    async def test_load_missing_returns_none(self, credentials):
        assert not credentials.exists()
        assert await credentials.load() is None

    @pytest.mark.asyncio
    async def test_save_and_load(self, credentials):
        await credentials.save({"me": {"id": "254700000000"}, "registered": True})

        assert credentials.exists()
        assert await credentials.load() == {
            "me": {"id": "254700000000"},
            "registered": True,
        }

    @pytest.mark.asyncio
    async def test_save_creates_auth_dir(self, tmp_path):
        store = CredentialStore(tmp_path / "nested" / "auth")
        await store.save({"a": 1})
        assert (tmp_path / "nested" / "auth" / "creds.json").exists()

    @pytest.mark.asyncio
    async def test_save_leaves_no_temp_file(self, credentials):
        await credentials.save({"a": 1})
        assert [p.name for p in credentials.auth_dir.iterdir()] == ["creds.json"]

    @pytest.mark.asyncio
    async def test_save_overwrites(self, credentials):
        await credentials.save({"a": 1})
        await credentials.save({"a": 2})
        assert await credentials.load() == {"a": 2}

    @pytest.mark.asyncio
    async def test_save_unserializable_raises(self, credentials):
        with pytest.raises(StorageError):
            await credentials.save({"a": object()})

    @pytest.mark.asyncio
    async def test_load_corrupt_file_returns_none(self, credentials):
        credentials.auth_dir.mkdir(parents=True)
        credentials.path.write_text("{not json")
        assert await credentials.load() is None

    @pytest.mark.asyncio
    async def test_load_non_object_returns_none(self, credentials):
        credentials.auth_dir.mkdir(parents=True)
        credentials.path.write_text(json.dumps([1, 2, 3]))
        assert await credentials.load() is None

    @pytest.mark.asyncio
    async def test_clear_removes_everything(self, credentials):
        await credentials.save({"a": 1})
        (credentials.auth_dir / "app-state-sync-key-1.json").write_text("{}")

        await credentials.clear()

        assert credentials.auth_dir.exists()
        assert list(credentials.auth_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_clear_when_missing(self, credentials):
        await credentials.clear()
        assert credentials.auth_dir.exists()
