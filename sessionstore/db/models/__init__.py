"""Database models"""

from sessionstore.db.models.session_store import (
    SESSION_ID_LENGTH,
    build_session_table,
    is_valid_identifier,
)

__all__ = ["SESSION_ID_LENGTH", "build_session_table", "is_valid_identifier"]
