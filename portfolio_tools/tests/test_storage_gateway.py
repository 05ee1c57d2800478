"""
Unit tests for the keyed store gateway.
"""

import sqlite3

import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from portfolio_tools.storage import (
    READONLY,
    READWRITE,
    KeyedStore,
    StoredRecord,
    StorageUnavailable,
    StorageVersionError,
    StorageWriteFailed,
)


def make_record(record_id: str, created_at: int, payload=b"data", **meta) -> StoredRecord:
    return StoredRecord(id=record_id, label=f"label-{record_id}", created_at=created_at, payload=payload, meta=meta)


class TestKeyedStore:
    """Test cases for KeyedStore."""

    @pytest.fixture
    def store(self, tmp_path):
        """Create a store rooted in a temporary directory."""
        return KeyedStore("test-db", "items", root_dir=tmp_path)

    @pytest.fixture
    def unavailable_store(self):
        """Create a store with no root directory."""
        return KeyedStore("test-db", "items")

    def test_is_supported(self, store, unavailable_store):
        """Test capability check."""
        assert store.is_supported() is True
        assert unavailable_store.is_supported() is False

    def test_invalid_names_rejected(self, tmp_path):
        """Test that unsafe store names are refused."""
        with pytest.raises(ValueError):
            KeyedStore("test-db", 'items"; DROP TABLE x; --', root_dir=tmp_path)

    @pytest.mark.asyncio
    async def test_put_and_get_blob(self, store):
        """Test blob payload round trip."""
        await store.put(make_record("a", 1000, payload=b"\x00\x01binary", source="x"))

        record = await store.get("a")

        assert record is not None
        assert record.payload == b"\x00\x01binary"
        assert record.label == "label-a"
        assert record.created_at == 1000
        assert record.meta == {"source": "x"}

    @pytest.mark.asyncio
    async def test_put_and_get_json(self, store):
        """Test structured payload round trip."""
        payload = {"visuals": [{"stage": "cut", "svg": "<svg/>"}], "count": 2}
        await store.put(make_record("j", 1000, payload=payload))

        record = await store.get("j")

        assert record.payload == payload

    @pytest.mark.asyncio
    async def test_put_upserts_by_id(self, store):
        """Test that a second put with the same id replaces the record."""
        await store.put(make_record("a", 1000, payload=b"old"))
        await store.put(make_record("a", 2000, payload=b"new"))

        records = await store.get_all()

        assert len(records) == 1
        assert records[0].payload == b"new"

    @pytest.mark.asyncio
    async def test_get_all_newest_first(self, store):
        """Test listing order."""
        await store.put(make_record("old", 1000))
        await store.put(make_record("newest", 3000))
        await store.put(make_record("middle", 2000))

        records = await store.get_all()

        assert [r.id for r in records] == ["newest", "middle", "old"]

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, store):
        """Test lookup of an unknown id."""
        assert await store.get("missing") is None

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, store):
        """Test deleting present and absent ids."""
        await store.put(make_record("a", 1000))

        await store.delete_by_id("a")
        await store.delete_by_id("a")

        assert await store.get("a") is None

    @pytest.mark.asyncio
    async def test_clear(self, store):
        """Test removing every record."""
        await store.put(make_record("a", 1000))
        await store.put(make_record("b", 2000))

        await store.clear()

        assert await store.get_all() == []

    @pytest.mark.asyncio
    async def test_unavailable_store_degrades(self, unavailable_store):
        """Test that every convenience operation degrades gracefully."""
        await unavailable_store.put(make_record("a", 1000))
        await unavailable_store.delete_by_id("a")
        await unavailable_store.clear()

        assert await unavailable_store.get("a") is None
        assert await unavailable_store.get_all() == []

    @pytest.mark.asyncio
    async def test_open_unavailable_raises(self, unavailable_store):
        """Test that open reports a missing capability."""
        with pytest.raises(StorageUnavailable):
            await unavailable_store.open()

    @pytest.mark.asyncio
    async def test_run_transaction_returns_result(self, store):
        """Test that the action's result is returned after commit."""
        async def action(table):
            await table.put(make_record("a", 1000))
            await table.put(make_record("b", 2000))
            return "done"

        result = await store.run_transaction(READWRITE, action)

        assert result == "done"
        assert len(await store.get_all()) == 2

    @pytest.mark.asyncio
    async def test_run_transaction_rolls_back_on_error(self, store):
        """Test that a failing action leaves no partial writes."""
        async def action(table):
            await table.put(make_record("a", 1000))
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await store.run_transaction(READWRITE, action)

        assert await store.get("a") is None

    @pytest.mark.asyncio
    async def test_readonly_transaction_rejects_writes(self, store):
        """Test that writes inside a read-only transaction fail."""
        with pytest.raises(StorageWriteFailed):
            await store.run_transaction(READONLY, lambda table: table.put(make_record("a", 1000)))

    @pytest.mark.asyncio
    async def test_unknown_mode_rejected(self, store):
        """Test transaction mode validation."""
        with pytest.raises(ValueError):
            await store.run_transaction("exclusive", lambda table: table.get_all())

    @pytest.mark.asyncio
    async def test_unserializable_payload_raises(self, store):
        """Test serialization failures surface as write failures."""
        with pytest.raises(StorageWriteFailed):
            await store.put(make_record("a", 1000, payload={"bad": object()}))

    @pytest.mark.asyncio
    async def test_newer_version_on_disk_raises(self, tmp_path):
        """Test opening a store with an older version than the file."""
        newer = KeyedStore("test-db", "items", version=2, root_dir=tmp_path)
        await newer.put(make_record("a", 1000))

        older = KeyedStore("test-db", "items", version=1, root_dir=tmp_path)
        with pytest.raises(StorageVersionError):
            await older.open()

    @pytest.mark.asyncio
    async def test_version_recorded_on_disk(self, store):
        """Test that the schema version is stored with the file."""
        await store.put(make_record("a", 1000))

        with sqlite3.connect(str(store.path)) as conn:
            version = conn.execute("PRAGMA user_version").fetchone()[0]

        assert version == 1

    @pytest.mark.asyncio
    async def test_two_stores_share_one_file(self, tmp_path):
        """Test a second store name in an existing file gets its own table."""
        alpha = KeyedStore("shared-db", "alpha", root_dir=tmp_path)
        beta = KeyedStore("shared-db", "beta", root_dir=tmp_path)

        await alpha.put(make_record("1", 1000, payload=b"a"))
        await beta.put(make_record("1", 2000, payload=b"b"))

        assert (await alpha.get("1")).payload == b"a"
        assert (await beta.get("1")).payload == b"b"
        assert alpha.path == beta.path

    @pytest.mark.asyncio
    async def test_connection_closed_after_error(self, store):
        """Test that the scoped connection is closed when the action raises."""
        captured = {}

        async def action(table):
            captured["conn"] = table._conn
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await store.run_transaction(READWRITE, action)

        with pytest.raises(ValueError):
            await captured["conn"].execute("SELECT 1")

    @pytest.mark.asyncio
    async def test_quota_exhaustion_raises(self, tmp_path):
        """Test that exceeding the byte quota fails the write."""
        store = KeyedStore("quota-db", "items", root_dir=tmp_path, quota_bytes=64 * 1024)

        with pytest.raises(StorageWriteFailed):
            await store.put(make_record("big", 1000, payload=b"x" * (512 * 1024)))

    def test_encoded_size(self):
        """Test encoded size accounts for every serialized field."""
        record = make_record("ab", 1000, payload=b"12345")

        # "ab" + "label-ab" + payload + "{}"
        assert record.encoded_size == 2 + 8 + 5 + 2
