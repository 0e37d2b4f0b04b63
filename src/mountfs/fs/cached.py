"""CachedBackend — metadata cache decorator for any StorageBackend."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, BinaryIO

from .cache_stores import MemoryCacheStore
from .directories import ArrayDirectory, CachedDirectory, Directory
from .protocol import Capability, probe_capabilities, validate_backend
from .utils import normalize_path

if TYPE_CHECKING:
    from collections.abc import Iterator

    from .cache_stores import CacheData, CacheStore
    from .protocol import EntryFilter, StorageBackend
    from .types import Context, FileInfo, Stat

logger = logging.getLogger(__name__)


class CachedBackend:
    """Wraps a backend and memoizes file/directory metadata.

    Reads are served from the cache when the path is known; every
    successful mutation on the wrapped backend updates or invalidates the
    affected entries before returning.  File contents are never cached.

    ``lazy_dir_cache`` selects how uncached listings populate the cache:
    eagerly (drain the wrapped cursor, return an in-memory copy) or lazily
    (cache entries as the caller consumes them).  ``ignore_links`` makes
    ``stat(path, resolve_links=False)`` answer from the cache as well.

    Not safe for concurrent use; serialize access per instance.
    """

    def __init__(
        self,
        backend: StorageBackend,
        store: CacheStore | None = None,
        *,
        lazy_dir_cache: bool = False,
        ignore_links: bool = True,
    ) -> None:
        validate_backend(backend)
        self._backend = backend
        self._store: CacheStore = store if store is not None else MemoryCacheStore()
        self.lazy_dir_cache = lazy_dir_cache
        self.ignore_links = ignore_links
        self.capabilities = probe_capabilities(backend)
        self._data: CacheData | None = None

    @property
    def backend(self) -> StorageBackend:
        """The wrapped backend."""
        return self._backend

    @property
    def store(self) -> CacheStore:
        return self._store

    # ------------------------------------------------------------------
    # Cache maintenance
    # ------------------------------------------------------------------

    def _cache(self) -> CacheData:
        if self._data is None:
            self._data = self._store.load() or {}
        return self._data

    @staticmethod
    def _key(path: str) -> str:
        return normalize_path(path)

    def is_cached(self, path: str) -> bool:
        return self._key(path) in self._cache()

    def update_cache(self, info: FileInfo) -> bool:
        """Write *info* through to the cache under its own path."""
        data = self._cache()
        key = self._key(info.path)
        data[key] = info.with_protocol(None)
        return self._store.save(data)

    def remove_cache(self, path: str) -> bool:
        """Drop the single entry for *path*.  ``False`` if it was not cached."""
        data = self._cache()
        key = self._key(path)
        if key not in data:
            return False
        del data[key]
        return self._store.save(data)

    def clear_cache(self, dir: str | None = None) -> bool:
        """Drop *dir* and everything below it; the whole map when *dir* is empty.

        Returns ``True`` when the store was updated.
        """
        data = self._cache()
        if not data:
            return True

        key = self._key(dir or "")
        if not key:
            self._data = {}
            return self._store.save(self._data)

        prefix = key + "/"
        doomed = [name for name in data if name == key or name.startswith(prefix)]
        if not doomed:
            return False
        for name in doomed:
            del data[name]
        return self._store.save(data)

    def rebuild_cache(self) -> bool:
        """Walk the wrapped backend from its root and replace the whole map."""
        root = self._backend.get_info("")
        if root is None:
            logger.warning("Cannot rebuild cache: backend root has no info")
            return False

        data: CacheData = {}
        self._collect(data, root)

        if not self._store.save(data):
            return False
        self._data = data
        self._store.commit()
        logger.debug("Rebuilt cache with %d entries", len(data))
        return True

    def _collect(self, data: CacheData, info: FileInfo) -> None:
        data[self._key(info.path)] = info.with_protocol(None)
        if not info.stat.is_dir:
            return
        listing = self._backend.list_dir(info.path)
        if listing is None:
            return
        with listing:
            for item in listing:
                self._collect(data, item)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_info(self, path: str) -> FileInfo | None:
        data = self._cache()
        key = self._key(path)
        cached = data.get(key)
        if cached is not None:
            return cached

        info = self._backend.get_info(key)
        if info is not None:
            self.update_cache(info)
        return info

    def stat(self, path: str, resolve_links: bool = True) -> Stat | None:
        if not resolve_links and not self.ignore_links:
            return self._backend.stat(path, False)

        info = self.get_info(path)
        return info.stat if info is not None else None

    def list_dir(self, path: str) -> Directory | None:
        data = self._cache()
        key = self._key(path)

        if key in data:
            prefix = key + "/" if key else ""
            children = [
                info
                for name, info in data.items()
                if name and name.startswith(prefix) and "/" not in name[len(prefix):]
            ]
            if children:
                return ArrayDirectory(key, children)

        listing = self._backend.list_dir(key)
        if listing is None:
            return None

        if self.lazy_dir_cache:
            return CachedDirectory(listing, self)

        with listing:
            items = list(listing)
        if items:
            for item in items:
                data[self._key(item.path)] = item.with_protocol(None)
            self._store.save(data)
        return ArrayDirectory(key, items, listing.protocol)

    def open_file(self, path: str, mode: str = "rb") -> BinaryIO | None:
        return self._backend.open_file(path, mode)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def mkdir(self, path: str, mode: int = 0o777, recursive: bool = True) -> FileInfo | None:
        info = self._backend.mkdir(path, mode, recursive)
        if info is not None:
            self.update_cache(info)
        return info

    def rmdir(self, path: str, recursive: bool = True) -> bool:
        if not self._backend.rmdir(path, recursive):
            return False
        self.clear_cache(path)
        return True

    def unlink(self, path: str) -> bool:
        if not self._backend.unlink(path):
            return False
        self.remove_cache(path)
        return True

    def rename(self, src: str, dest: str) -> FileInfo | None:
        info = self._backend.rename(src, dest)
        if info is not None:
            self.clear_cache(src)
            self.update_cache(info)
        return info

    def copy(self, src: str, dest: str, overwrite: bool = True) -> FileInfo | None:
        info = self._backend.copy(src, dest, overwrite)
        if info is not None:
            self.update_cache(info)
        return info

    def write(self, path: str, stream: BinaryIO, mode: int | None = None) -> FileInfo | None:
        info = self._backend.write(path, stream, mode)
        if info is not None:
            self.update_cache(info)
        return info

    # ------------------------------------------------------------------
    # Optional capabilities (no-op failures when the backend lacks them)
    # ------------------------------------------------------------------

    def _access(self, method: str, path: str, *args: Any) -> FileInfo | None:
        if Capability.ACCESS not in self.capabilities:
            return None
        info = getattr(self._backend, method)(path, *args)
        if info is not None:
            self.update_cache(info)
        return info

    def touch(
        self, path: str, time: float | None = None, atime: float | None = None
    ) -> FileInfo | None:
        return self._access("touch", path, time, atime)

    def chmod(self, path: str, mode: int) -> FileInfo | None:
        return self._access("chmod", path, mode)

    def chown(self, path: str, owner: str) -> FileInfo | None:
        return self._access("chown", path, owner)

    def chgrp(self, path: str, group: str) -> FileInfo | None:
        return self._access("chgrp", path, group)

    def search(
        self,
        path: str,
        text: str,
        filter: EntryFilter | None = None,
        options: dict[str, Any] | None = None,
        depth: int | None = 0,
        limit: int | None = None,
    ) -> Iterator[FileInfo]:
        if Capability.SEARCH not in self.capabilities:
            return iter(())
        return self._backend.search(path, text, filter, options, depth, limit)  # type: ignore[attr-defined]

    def set_context(self, context: Context | None) -> bool:
        if Capability.CONTEXT not in self.capabilities:
            return False
        return self._backend.set_context(context)  # type: ignore[attr-defined]

    def get_context(self) -> Context | None:
        if Capability.CONTEXT not in self.capabilities:
            return None
        return self._backend.get_context()  # type: ignore[attr-defined]
