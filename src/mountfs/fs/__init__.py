"""Filesystem layer — mounts, backends, cursors, metadata cache."""

from mountfs.fs.cache_stores import (
    CacheStore,
    DatabaseCacheStore,
    JsonFileCacheStore,
    MemoryCacheStore,
)
from mountfs.fs.cached import CachedBackend
from mountfs.fs.directories import (
    ArrayDirectory,
    CachedDirectory,
    CursorState,
    Directory,
    IteratorDirectory,
    LocalDirectory,
)
from mountfs.fs.exceptions import (
    CapabilityNotSupportedError,
    InvalidBackendError,
    MalformedAddressError,
    MountFSError,
    MountNotFoundError,
)
from mountfs.fs.local_disk import LocalDiskBackend
from mountfs.fs.manager import MountManager, TransferStats, sync_predicate
from mountfs.fs.mounts import MountConfig, MountRegistry
from mountfs.fs.protocol import (
    Capability,
    StorageBackend,
    SupportsAccess,
    SupportsContext,
    SupportsSearch,
    probe_capabilities,
)
from mountfs.fs.types import Context, FileInfo, Stat
from mountfs.fs.utils import (
    absolute_path,
    merge_paths,
    normalize_path,
    parse_address,
)

__all__ = [
    "ArrayDirectory",
    "CacheStore",
    "CachedBackend",
    "CachedDirectory",
    "Capability",
    "CapabilityNotSupportedError",
    "Context",
    "CursorState",
    "DatabaseCacheStore",
    "Directory",
    "FileInfo",
    "InvalidBackendError",
    "IteratorDirectory",
    "JsonFileCacheStore",
    "LocalDirectory",
    "LocalDiskBackend",
    "MalformedAddressError",
    "MemoryCacheStore",
    "MountConfig",
    "MountFSError",
    "MountManager",
    "MountNotFoundError",
    "MountRegistry",
    "Stat",
    "StorageBackend",
    "SupportsAccess",
    "SupportsContext",
    "SupportsSearch",
    "TransferStats",
    "absolute_path",
    "merge_paths",
    "normalize_path",
    "parse_address",
    "probe_capabilities",
    "sync_predicate",
]
