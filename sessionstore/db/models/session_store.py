"""Session record table definition."""

from typing import Optional

from sqlalchemy import Column, Index, LargeBinary, String, Table

from sessionstore.db.base import UTCDateTime, new_metadata

# Default tokens are 22 characters; leave headroom for longer configured ids
SESSION_ID_LENGTH = 128


def is_valid_identifier(name: str) -> bool:
    """
    Check that a schema or table name is a plain SQL identifier.

    The first character must be a letter (including letters with diacritical
    marks and non-Latin letters) or an underscore. Subsequent characters can be
    letters, underscores, digits or dollar signs.
    """
    if not name:
        return False
    first = name[0]
    if not (first.isalpha() or first == "_"):
        return False
    return all(c.isalnum() or c in ("_", "$") for c in name)


def build_session_table(table_name: str = "session", schema: Optional[str] = None) -> Table:
    """
    Build the session table bound to a fresh MetaData collection.

    Args:
        table_name: Table name, validated as an identifier
        schema: Optional schema name (only meaningful on PostgreSQL)

    Returns:
        Table with ``id``, ``data`` and ``expiry`` columns and an index on ``expiry``

    Raises:
        ValueError: If either name is not a valid identifier
    """
    if not is_valid_identifier(table_name):
        raise ValueError(
            f"Invalid table name '{table_name}'. Table names must start with a letter or "
            "underscore; subsequent characters can be letters, underscores, digits or "
            "dollar signs."
        )
    if schema is not None and not is_valid_identifier(schema):
        raise ValueError(
            f"Invalid schema name '{schema}'. Schema names must start with a letter or "
            "underscore; subsequent characters can be letters, underscores, digits or "
            "dollar signs."
        )

    metadata = new_metadata(schema=schema)
    table = Table(
        table_name,
        metadata,
        Column("id", String(SESSION_ID_LENGTH), primary_key=True, nullable=False),
        Column("data", LargeBinary, nullable=False),
        Column("expiry", UTCDateTime(), nullable=False),
    )
    Index(f"ix_{table_name}_expiry", table.c.expiry)
    return table
