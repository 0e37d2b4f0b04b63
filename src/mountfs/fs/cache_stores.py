"""Cache stores — persistence for the cache layer's path -> FileInfo map.

A store loads the whole map, saves (replaces) the whole map, and receives
a ``commit()`` signal after a full rebuild.  Stores created with
``deferred=True`` only buffer on ``save()`` and write on ``commit()``.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from sqlalchemy import delete as sa_delete
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, select

from mountfs.models.cache import CacheEntry

from .types import FileInfo

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from mountfs.models.cache import CacheEntryBase

logger = logging.getLogger(__name__)

CacheData = dict[str, FileInfo]


@runtime_checkable
class CacheStore(Protocol):
    """Contract the cache layer expects from a persistence backend."""

    def load(self) -> CacheData | None: ...

    def save(self, data: CacheData) -> bool: ...

    def commit(self) -> None: ...


class MemoryCacheStore:
    """Process-local store.  ``load()`` returns ``None`` until first save."""

    def __init__(self) -> None:
        self._data: CacheData | None = None

    def load(self) -> CacheData | None:
        return None if self._data is None else dict(self._data)

    def save(self, data: CacheData) -> bool:
        self._data = dict(data)
        return True

    def commit(self) -> None:
        pass


class JsonFileCacheStore:
    """Store the map as a JSON document on disk.

    Writes are atomic (tempfile + replace).  A missing or unreadable file
    loads as ``None``.
    """

    def __init__(self, path: Path | str, *, deferred: bool = False) -> None:
        self.path = Path(path)
        self.deferred = deferred
        self._pending: CacheData | None = None

    def load(self) -> CacheData | None:
        if self._pending is not None:
            return dict(self._pending)
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError):
            logger.warning("Cannot read cache file %s", self.path, exc_info=True)
            return None
        return {key: FileInfo.from_dict(value) for key, value in raw.items()}

    def save(self, data: CacheData) -> bool:
        if self.deferred:
            self._pending = dict(data)
            return True
        return self._write(data)

    def commit(self) -> None:
        if self._pending is not None and self._write(self._pending):
            self._pending = None

    def _write(self, data: CacheData) -> bool:
        payload = json.dumps({key: info.to_dict() for key, info in data.items()})
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                Path(tmp_path).replace(self.path)
            except Exception:
                with contextlib.suppress(OSError):
                    Path(tmp_path).unlink()
                raise
        except OSError:
            logger.warning("Cannot write cache file %s", self.path, exc_info=True)
            return False
        return True


class DatabaseCacheStore:
    """Store the map in a SQL table, one row per path.

    ``namespace`` separates several cached backends sharing one database.
    Tables are created on construction.  ``save()`` replaces every row of
    the namespace inside one transaction.
    """

    def __init__(
        self,
        engine: Engine,
        namespace: str = "default",
        *,
        deferred: bool = False,
        entry_model: type[CacheEntryBase] = CacheEntry,
    ) -> None:
        self.engine = engine
        self.namespace = namespace
        self.deferred = deferred
        self._model = entry_model
        self._pending: CacheData | None = None
        SQLModel.metadata.create_all(engine)

    def load(self) -> CacheData | None:
        if self._pending is not None:
            return dict(self._pending)
        model = self._model
        try:
            with Session(self.engine) as session:
                rows = session.exec(
                    select(model).where(model.namespace == self.namespace)
                ).all()
        except SQLAlchemyError:
            logger.warning("Cannot load cache namespace %r", self.namespace, exc_info=True)
            return None
        if not rows:
            return None
        return {row.path: FileInfo.from_dict(json.loads(row.payload)) for row in rows}

    def save(self, data: CacheData) -> bool:
        if self.deferred:
            self._pending = dict(data)
            return True
        return self._write(data)

    def commit(self) -> None:
        if self._pending is not None and self._write(self._pending):
            self._pending = None

    def _write(self, data: CacheData) -> bool:
        model = self._model
        try:
            with Session(self.engine) as session:
                session.execute(sa_delete(model).where(model.namespace == self.namespace))
                session.add_all(
                    model(
                        namespace=self.namespace,
                        path=key,
                        payload=json.dumps(info.to_dict()),
                    )
                    for key, info in data.items()
                )
                session.commit()
        except SQLAlchemyError:
            logger.warning("Cannot save cache namespace %r", self.namespace, exc_info=True)
            return False
        return True
