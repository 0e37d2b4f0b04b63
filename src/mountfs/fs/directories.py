"""Directory cursors — lazy, rewindable, closeable listings.

Every cursor moves through ``ready -> exhausted -> closed``.  ``next()``
returns ``None`` once exhausted (and keeps doing so) until ``rewind()``
succeeds; after ``close()`` it always returns ``None`` and ``rewind()``
fails.  ``close()`` is idempotent and also runs when a cursor is garbage
collected.
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING

from .utils import join_path, normalize_path

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from types import TracebackType

    from .cached import CachedBackend
    from .protocol import StorageBackend
    from .types import FileInfo

logger = logging.getLogger(__name__)


class CursorState(str, Enum):
    READY = "ready"
    EXHAUSTED = "exhausted"
    CLOSED = "closed"


class Directory(ABC):
    """Base cursor over the entries of one directory.

    Subclasses implement ``_next``, ``_rewind`` and ``_close``; the base
    class owns the state machine and tags yielded records with
    ``protocol`` when one is set.
    """

    def __init__(self, path: str, protocol: str | None = None) -> None:
        self._path = normalize_path(path)
        self.protocol = protocol
        self._state = CursorState.READY

    @property
    def path(self) -> str:
        return self._path

    @property
    def full_path(self) -> str:
        if self.protocol is None:
            return self._path
        return f"{self.protocol}://{self._path}"

    @property
    def state(self) -> CursorState:
        return self._state

    # ------------------------------------------------------------------
    # Cursor API
    # ------------------------------------------------------------------

    def next(self) -> FileInfo | None:
        """Return the next entry, or ``None`` when there are no more."""
        if self._state is not CursorState.READY:
            return None
        item = self._next()
        if item is None:
            self._state = CursorState.EXHAUSTED
            return None
        if self.protocol is not None:
            item = item.with_protocol(self.protocol)
        return item

    def rewind(self) -> bool:
        """Restart from the first entry.  ``False`` if the source cannot replay."""
        if self._state is CursorState.CLOSED:
            return False
        if not self._rewind():
            return False
        self._state = CursorState.READY
        return True

    def close(self) -> None:
        """Release the underlying resource.  Safe to call repeatedly."""
        if self._state is CursorState.CLOSED:
            return
        self._state = CursorState.CLOSED
        try:
            self._close()
        except OSError:
            logger.warning("Failed to close directory cursor for %r", self._path, exc_info=True)

    # ------------------------------------------------------------------
    # Python protocols
    # ------------------------------------------------------------------

    def __iter__(self) -> Iterator[FileInfo]:
        return self

    def __next__(self) -> FileInfo:
        item = self.next()
        if item is None:
            raise StopIteration
        return item

    def __enter__(self) -> Directory:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def __del__(self) -> None:
        if getattr(self, "_state", CursorState.CLOSED) is not CursorState.CLOSED:
            self.close()

    # ------------------------------------------------------------------
    # Source hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def _next(self) -> FileInfo | None: ...

    @abstractmethod
    def _rewind(self) -> bool: ...

    @abstractmethod
    def _close(self) -> None: ...


class ArrayDirectory(Directory):
    """Cursor over an in-memory list of records.  Always replayable."""

    def __init__(
        self, path: str, items: Iterable[FileInfo], protocol: str | None = None
    ) -> None:
        super().__init__(path, protocol)
        self._items: list[FileInfo] = list(items)
        self._index = 0

    def __len__(self) -> int:
        return len(self._items)

    def _next(self) -> FileInfo | None:
        if self._index >= len(self._items):
            return None
        item = self._items[self._index]
        self._index += 1
        return item

    def _rewind(self) -> bool:
        self._index = 0
        return True

    def _close(self) -> None:
        self._items = []


class IteratorDirectory(Directory):
    """Cursor over any iterable of records.

    Replays by calling ``iter()`` on the source again, so re-iterable
    sources (lists, views, objects with ``__iter__``) rewind; a one-shot
    iterator or generator can only be rewound before it has been read.
    """

    def __init__(
        self, path: str, source: Iterable[FileInfo], protocol: str | None = None
    ) -> None:
        super().__init__(path, protocol)
        self._source: Iterable[FileInfo] | None = source
        self._iterator: Iterator[FileInfo] | None = iter(source)
        self._started = False

    def _next(self) -> FileInfo | None:
        if self._iterator is None:
            return None
        self._started = True
        return next(self._iterator, None)

    def _rewind(self) -> bool:
        if self._source is None:
            return False
        if not self._started:
            return True
        fresh = iter(self._source)
        if fresh is self._source:
            return False
        self._iterator = fresh
        self._started = False
        return True

    def _close(self) -> None:
        close = getattr(self._iterator, "close", None)
        if close is not None:
            close()
        self._iterator = None
        self._source = None


class LocalDirectory(Directory):
    """Cursor over a live ``os.scandir`` handle.

    The handle is opened on the first ``next()``; each name is turned into
    a record through the owning backend's ``get_info``.  Rewinding reopens
    the handle, which is impossible once the cursor has been closed.
    """

    def __init__(
        self,
        backend: StorageBackend,
        path: str,
        root: str | os.PathLike[str],
        protocol: str | None = None,
    ) -> None:
        super().__init__(path, protocol)
        self._backend = backend
        self._physical = os.path.join(os.fspath(root), self._path)
        self._handle: Iterator[os.DirEntry[str]] | None = None

    def _next(self) -> FileInfo | None:
        if self._handle is None:
            try:
                self._handle = os.scandir(self._physical)
            except OSError:
                logger.debug("Cannot open directory %r", self._physical)
                return None

        for entry in self._handle:
            info = self._backend.get_info(join_path(self._path, entry.name))
            if info is not None:
                return info
        return None

    def _rewind(self) -> bool:
        self._close()
        return True

    def _close(self) -> None:
        if self._handle is not None:
            self._handle.close()  # type: ignore[attr-defined]
            self._handle = None


class CachedDirectory(Directory):
    """Lazy cache-observing cursor.

    Wraps another cursor and writes every record it yields through to the
    cache layer before handing it to the caller.
    """

    def __init__(self, directory: Directory, cache: CachedBackend) -> None:
        super().__init__(directory.path, directory.protocol)
        self._directory: Directory | None = directory
        self._cache = cache

    def _next(self) -> FileInfo | None:
        if self._directory is None:
            return None
        item = self._directory.next()
        if item is not None:
            self._cache.update_cache(item)
        return item

    def _rewind(self) -> bool:
        if self._directory is None:
            return False
        return self._directory.rewind()

    def _close(self) -> None:
        if self._directory is not None:
            self._directory.close()
            self._directory = None
