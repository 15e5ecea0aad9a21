"""
Unit tests for the in-process session store
"""

import pytest

from sessionstore.core.exceptions import ConstraintViolation
from sessionstore.core.utils.codec import FORMAT_ENCRYPTED, RecordCodec
from sessionstore.core.utils.encryption import PayloadEncryption
from sessionstore.core.utils.memory_store import MemorySessionStore
from sessionstore.core.utils.session_store import generate_session_id

pytestmark = pytest.mark.unit


class TestMemorySessionStore:
    async def test_create_skips_taken_id(self, memory_store, later):
        await memory_store.save("taken", b"original", later)
        ids = iter(["taken", "free"])
        memory_store.id_generator = lambda: next(ids)

        assert await memory_store.create(b"new", later) == "free"
        assert (await memory_store.load("taken")).data == b"original"

    async def test_create_exhausts_attempts(self, clock, later):
        store = MemorySessionStore(clock=clock, id_generator=lambda: "same", max_create_attempts=3)
        await store.create(b"first", later)

        with pytest.raises(ConstraintViolation):
            await store.create(b"second", later)

    async def test_len_counts_expired_rows_until_purged(self, memory_store, earlier, later):
        await memory_store.create(b"old", earlier)
        await memory_store.create(b"new", later)

        assert len(memory_store) == 2
        assert await memory_store.purge_expired() == 1
        assert len(memory_store) == 1

    async def test_stores_encoded_bytes(self, clock, later):
        codec = RecordCodec(PayloadEncryption([PayloadEncryption.generate_key()]))
        store = MemorySessionStore(codec=codec, clock=clock)

        session_id = await store.create(b"cart", later)

        stored = store._rows[session_id].data
        assert stored[0] == FORMAT_ENCRYPTED
        assert (await store.load(session_id)).data == b"cart"

    def test_invalid_max_attempts(self):
        with pytest.raises(ValueError):
            MemorySessionStore(max_create_attempts=0)


class TestGenerateSessionId:
    def test_default_length(self):
        assert len(generate_session_id()) == 22

    def test_url_safe_alphabet(self):
        allowed = set("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_")
        assert set(generate_session_id(64)) <= allowed
