"""SQLModel tables used by the persistent cache store."""

from mountfs.models.cache import CacheEntry, CacheEntryBase

__all__ = ["CacheEntry", "CacheEntryBase"]
