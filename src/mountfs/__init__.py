"""mountfs: one namespace over many storage backends.

Route ``name://path`` addresses to mounted backends, copy, sync and move
trees between them, and cache metadata in front of slow backends.
"""

__version__ = "0.1.0"

from mountfs.fs import (
    ArrayDirectory,
    CachedBackend,
    Capability,
    Context,
    DatabaseCacheStore,
    Directory,
    FileInfo,
    JsonFileCacheStore,
    LocalDiskBackend,
    MemoryCacheStore,
    MountManager,
    Stat,
    StorageBackend,
    merge_paths,
    normalize_path,
    sync_predicate,
)

__all__ = [
    "ArrayDirectory",
    "CachedBackend",
    "Capability",
    "Context",
    "DatabaseCacheStore",
    "Directory",
    "FileInfo",
    "JsonFileCacheStore",
    "LocalDiskBackend",
    "MemoryCacheStore",
    "MountManager",
    "Stat",
    "StorageBackend",
    "__version__",
    "merge_paths",
    "normalize_path",
    "sync_predicate",
]
