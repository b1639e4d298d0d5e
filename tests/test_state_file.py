# tests/test_state_file.py
"""Tests for the JSON-file key-value store."""

from __future__ import annotations

import json

import pytest

from genroute.engine.exhaustion import ExhaustionRegistry, RegistryStore
from genroute.exceptions import StorageUnavailable
from genroute.state.file import FileStore


@pytest.mark.asyncio
class TestFileStore:
    async def test_round_trip_survives_new_instance(self, tmp_path):
        await FileStore(tmp_path).set("genroute:exhaustion", '{"a": 1}')
        assert await FileStore(tmp_path).get("genroute:exhaustion") == '{"a": 1}'

    async def test_directory_created_on_write(self, tmp_path):
        target = tmp_path / "nested" / "state"
        await FileStore(target).set("k", "v")
        assert target.is_dir()
        assert len(list(target.glob("*.json"))) == 1

    async def test_missing_key_is_none(self, tmp_path):
        assert await FileStore(tmp_path).get("nope") is None

    async def test_delete(self, tmp_path):
        store = FileStore(tmp_path)
        await store.set("k", "v")
        await store.delete("k")
        await store.delete("k")
        assert await store.get("k") is None

    async def test_expired_value_is_removed(self, tmp_path):
        store = FileStore(tmp_path)
        await store.set("k", "v", ttl_seconds=60)
        path = next(tmp_path.glob("*.json"))
        record = json.loads(path.read_text())
        record["expires_at"] = 0
        path.write_text(json.dumps(record))

        assert await store.get("k") is None
        assert not path.exists()

    async def test_corrupt_file_returns_raw_text(self, tmp_path):
        store = FileStore(tmp_path)
        await store.set("k", "v")
        path = next(tmp_path.glob("*.json"))
        path.write_text("{truncated")
        assert await store.get("k") == "{truncated"

    async def test_unwritable_directory_raises_storage_unavailable(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        with pytest.raises(StorageUnavailable):
            await FileStore(blocker).set("k", "v")

    async def test_undecodable_file_raises_storage_unavailable(self, tmp_path):
        store = FileStore(tmp_path)
        await store.set("k", "v")
        next(tmp_path.glob("*.json")).write_bytes(b"\xff\xfe\x00garbage")
        with pytest.raises(StorageUnavailable):
            await store.get("k")

    async def test_write_leaves_no_temp_file(self, tmp_path):
        store = FileStore(tmp_path)
        await store.set("k", "v1")
        await store.set("k", "v2")
        assert list(tmp_path.glob("*.tmp")) == []
        assert await store.get("k") == "v2"

    async def test_undecodable_registry_file_loads_empty(self, tmp_path):
        store = FileStore(tmp_path)
        registry = ExhaustionRegistry(RegistryStore(store))
        await registry.mark("alpha")
        next(tmp_path.glob("*.json")).write_bytes(b"\xff\xfe\x00garbage")

        fresh = ExhaustionRegistry(RegistryStore(store))
        await fresh.load()
        assert not fresh.is_exhausted("alpha")
