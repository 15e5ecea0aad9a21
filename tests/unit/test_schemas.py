"""
Unit tests for the session record model
"""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from sessionstore.core.schemas.session import SessionRecord

pytestmark = pytest.mark.unit


class TestSessionRecord:
    def test_expiry_normalized_to_utc(self):
        expiry = datetime(2026, 1, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))

        record = SessionRecord(id="abc", data=b"x", expiry=expiry)

        assert record.expiry.utcoffset() == timedelta(0)
        assert record.expiry == expiry

    def test_naive_expiry_rejected(self):
        with pytest.raises(ValidationError):
            SessionRecord(id="abc", data=b"x", expiry=datetime(2026, 1, 1))

    def test_frozen(self):
        record = SessionRecord(id="abc", data=b"x", expiry=datetime(2026, 1, 1, tzinfo=timezone.utc))
        with pytest.raises(ValidationError):
            record.data = b"y"

    def test_is_expired_at_boundary(self):
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        record = SessionRecord(id="abc", data=b"x", expiry=now)

        assert record.is_expired(now)
        assert not record.is_expired(now - timedelta(microseconds=1))
