"""In-process session store honoring the same contract as SqlSessionStore.

Intended for tests and single-process development servers. Each operation
completes without awaiting between its read and write, so it is atomic with
respect to other asyncio tasks.
"""
from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional

from sessionstore.core.schemas.session import SessionRecord
from sessionstore.core.utils.codec import BytesLike, RecordCodec
from sessionstore.core.utils.session_store import (
    DEFAULT_MAX_CREATE_ATTEMPTS,
    Clock,
    IdGenerator,
    SessionStore,
    _require_aware,
)


class MemorySessionStore(SessionStore):
    def __init__(
        self,
        *,
        codec: Optional[RecordCodec] = None,
        id_generator: Optional[IdGenerator] = None,
        clock: Optional[Clock] = None,
        max_create_attempts: int = DEFAULT_MAX_CREATE_ATTEMPTS,
    ):
        super().__init__(
            id_generator=id_generator,
            clock=clock,
            max_create_attempts=max_create_attempts,
        )
        self.codec = codec or RecordCodec()
        # Rows hold codec output in ``data``, as the SQL table does
        self._rows: Dict[str, SessionRecord] = {}

    def __len__(self) -> int:
        # Physical rows, expired ones included until purged
        return len(self._rows)

    def _row(self, session_id: str, data: BytesLike, expiry: datetime) -> SessionRecord:
        return SessionRecord(id=session_id, data=self.codec.encode(data), expiry=expiry)

    async def _insert_new(self, session_id: str, data: BytesLike, expiry: datetime) -> bool:
        if session_id in self._rows:
            return False
        self._rows[session_id] = self._row(session_id, data, expiry)
        return True

    async def load(self, session_id: str) -> Optional[SessionRecord]:
        row = self._rows.get(session_id)
        if row is None or row.is_expired(self.clock()):
            return None
        return row.model_copy(update={"data": self.codec.decode(row.data)})

    async def save(self, session_id: str, data: BytesLike, expiry: datetime) -> None:
        self._rows[session_id] = self._row(session_id, data, _require_aware(expiry))

    async def delete(self, session_id: str) -> None:
        self._rows.pop(session_id, None)

    async def purge_expired(self) -> int:
        now = self.clock()
        expired = [session_id for session_id, row in self._rows.items() if row.is_expired(now)]
        for session_id in expired:
            del self._rows[session_id]
        return len(expired)
