"""CacheEntry model — one cached metadata record per row.

Provides ``CacheEntryBase`` as a non-table base class.  Subclass with
``table=True`` and a custom ``__tablename__`` to use a different table.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


class CacheEntryBase(SQLModel):
    """Base fields for a cached path. Subclass with ``table=True`` for a concrete table."""

    namespace: str = Field(default="default", primary_key=True)
    path: str = Field(primary_key=True)
    payload: str = Field(default="{}")
    """JSON-encoded ``FileInfo.to_dict()``."""
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        sa_type=DateTime(timezone=True),
    )


class CacheEntry(CacheEntryBase, table=True):
    """Default cache table — ``mountfs_cache_entries``."""

    __tablename__ = "mountfs_cache_entries"
