"""
Error taxonomy surfaced by the session store.

Every storage-layer failure is wrapped into one of these classes at the
repository boundary, so callers never need to understand the underlying
database driver's native error codes. A missing or expired session is not an
error: ``load`` returns ``None``.
"""


class SessionStoreError(Exception):
    """Base class for all session store errors."""

    pass


class ConnectionUnavailable(SessionStoreError):
    """Pool exhausted or connection dropped. Callers may retry with backoff."""

    pass


class ConstraintViolation(SessionStoreError):
    """A storage constraint was violated, e.g. id collision retries exhausted."""

    pass


class EncodingError(SessionStoreError):
    """Stored session bytes could not be decoded."""

    pass


class StorageError(SessionStoreError):
    """Any other backend failure (invalid SQL, missing table, driver bug)."""

    pass


class SchemaInitializationError(SessionStoreError):
    """The session table could not be created. The host should abort startup."""

    pass


class DuplicateKey(ConstraintViolation):
    """An insert hit an existing primary key. ``create`` retries with a fresh id."""

    pass
