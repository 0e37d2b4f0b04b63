"""LocalDiskBackend — direct disk access rooted at one host directory."""

from __future__ import annotations

import contextlib
import os
import shutil
import tempfile
from itertools import islice
from pathlib import Path
from typing import TYPE_CHECKING, Any, BinaryIO

from .directories import LocalDirectory
from .types import FileInfo, Stat
from .utils import guess_mime_type, join_path, normalize_path

if TYPE_CHECKING:
    from collections.abc import Iterator

    from .directories import Directory
    from .protocol import EntryFilter

WRITE_MODE_CHARS = frozenset("wax+")


class LocalDiskBackend:
    """Pure local disk access backend.

    Implements ``StorageBackend`` plus the ``SupportsAccess`` and
    ``SupportsSearch`` capabilities.  Backend paths are relative to
    ``root``; normalization strips ``..`` so no path escapes it.

    ``base_url`` (optional) yields a public URL for every entry.
    """

    def __init__(
        self,
        root: Path | str,
        *,
        base_url: str | None = None,
        dir_mode: int = 0o777,
        file_mode: int = 0o644,
    ) -> None:
        self.root = Path(root).resolve()
        self.base_url = base_url.rstrip("/") + "/" if base_url else None
        self.dir_mode = dir_mode
        self.file_mode = file_mode

        if not self.root.exists():
            raise FileNotFoundError(f"Root directory does not exist: {self.root}")
        if not self.root.is_dir():
            raise NotADirectoryError(f"Root path is not a directory: {self.root}")

    # =========================================================================
    # Path Resolution
    # =========================================================================

    def _full_path(self, path: str) -> Path:
        rel = normalize_path(path)
        return self.root / rel if rel else self.root

    def _ensure_parent(self, full: Path) -> bool:
        try:
            full.parent.mkdir(mode=self.dir_mode, parents=True, exist_ok=True)
        except OSError:
            return False
        return True

    # =========================================================================
    # Read Operations
    # =========================================================================

    def stat(self, path: str, resolve_links: bool = True) -> Stat | None:
        full = self._full_path(path)
        try:
            st = os.stat(full) if resolve_links else os.lstat(full)
        except OSError:
            return None
        return Stat.from_os(st)

    def get_info(self, path: str) -> FileInfo | None:
        """Metadata for *path*; the root itself is reported as ``""``."""
        path = normalize_path(path)
        st = self.stat(path)
        if st is None:
            return None

        url = self.base_url + path if self.base_url is not None and path else None
        mime = guess_mime_type(path) if st.is_file else None
        return FileInfo(path=path, stat=st, mime_type=mime, url=url)

    def list_dir(self, path: str) -> Directory | None:
        st = self.stat(path)
        if st is None or not st.is_dir:
            return None
        return LocalDirectory(self, path, self.root)

    def open_file(self, path: str, mode: str = "rb") -> BinaryIO | None:
        full = self._full_path(path)
        if full.is_dir():
            return None
        if "b" not in mode:
            mode += "b"
        if WRITE_MODE_CHARS.intersection(mode) and not self._ensure_parent(full):
            return None
        try:
            return open(full, mode)  # noqa: SIM115
        except OSError:
            return None

    # =========================================================================
    # Write Operations
    # =========================================================================

    def write(self, path: str, stream: BinaryIO, mode: int | None = None) -> FileInfo | None:
        """Write *stream* to *path*. Atomic via tempfile + replace."""
        path = normalize_path(path)
        if not path:
            return None

        full = self._full_path(path)
        if full.is_dir() or not self._ensure_parent(full):
            return None

        try:
            fd, tmp_path = tempfile.mkstemp(dir=str(full.parent), suffix=".tmp")
            try:
                with os.fdopen(fd, "wb") as f:
                    shutil.copyfileobj(stream, f)
                os.chmod(tmp_path, self.file_mode if mode is None else mode)
                Path(tmp_path).replace(full)
            except Exception:
                with contextlib.suppress(OSError):
                    Path(tmp_path).unlink()
                raise
        except OSError:
            return None

        return self.get_info(path)

    def mkdir(self, path: str, mode: int = 0o777, recursive: bool = True) -> FileInfo | None:
        full = self._full_path(path)
        if full.is_dir():
            return None
        try:
            if recursive:
                os.makedirs(full, mode)
            else:
                os.mkdir(full, mode)
        except OSError:
            return None
        return self.get_info(path)

    def rmdir(self, path: str, recursive: bool = True) -> bool:
        path = normalize_path(path)
        full = self._full_path(path)
        if not path or full.is_symlink() or not full.is_dir():
            return False
        try:
            if recursive:
                shutil.rmtree(full)
            else:
                os.rmdir(full)
        except OSError:
            return False
        return True

    def unlink(self, path: str) -> bool:
        full = self._full_path(path)
        if full.is_dir() and not full.is_symlink():
            return False
        try:
            os.unlink(full)
        except OSError:
            return False
        return True

    def rename(self, src: str, dest: str) -> FileInfo | None:
        src = normalize_path(src)
        dest = normalize_path(dest)
        if not src or not dest or src == dest:
            return None

        src_full = self._full_path(src)
        dest_full = self._full_path(dest)
        if not os.path.lexists(src_full) or not self._ensure_parent(dest_full):
            return None
        try:
            os.replace(src_full, dest_full)
        except OSError:
            return None
        return self.get_info(dest)

    def copy(self, src: str, dest: str, overwrite: bool = True) -> FileInfo | None:
        """Copy a file or directory tree; stops at the first failed entry."""
        src = normalize_path(src)
        dest = normalize_path(dest)
        if not src or src == dest:
            return None

        src_stat = self.stat(src)
        if src_stat is None:
            return None

        dest_stat = self.stat(dest)
        if dest_stat is not None and not overwrite:
            return None

        if src_stat.is_dir:
            if dest.startswith(src + "/"):
                return None
            listing = self.list_dir(src)
            if listing is None:
                return None

            with listing:
                if dest_stat is not None and not dest_stat.is_dir:
                    if not self.unlink(dest):
                        return None
                    dest_stat = None
                if dest_stat is None and self.mkdir(dest, src_stat.permissions) is None:
                    return None

                for item in listing:
                    child_src = join_path(src, item.name)
                    child_dest = join_path(dest, item.name)
                    if self.copy(child_src, child_dest, overwrite) is None:
                        return None
            return self.get_info(dest)

        if dest_stat is not None and dest_stat.is_dir and not self.rmdir(dest):
            return None

        stream = self.open_file(src, "rb")
        if stream is None:
            return None
        with stream:
            return self.write(dest, stream, src_stat.permissions)

    # =========================================================================
    # Access Operations
    # =========================================================================

    def touch(
        self, path: str, time: float | None = None, atime: float | None = None
    ) -> FileInfo | None:
        """Create *path* if missing and set its timestamps (now by default)."""
        full = self._full_path(path)
        if not normalize_path(path) or not self._ensure_parent(full):
            return None
        try:
            full.touch(exist_ok=True)
            if time is not None:
                os.utime(full, (time if atime is None else atime, time))
        except OSError:
            return None
        return self.get_info(path)

    def chmod(self, path: str, mode: int) -> FileInfo | None:
        try:
            os.chmod(self._full_path(path), mode)
        except OSError:
            return None
        return self.get_info(path)

    def chown(self, path: str, owner: str) -> FileInfo | None:
        try:
            shutil.chown(self._full_path(path), user=owner)
        except (OSError, LookupError):
            return None
        return self.get_info(path)

    def chgrp(self, path: str, group: str) -> FileInfo | None:
        try:
            shutil.chown(self._full_path(path), group=group)
        except (OSError, LookupError):
            return None
        return self.get_info(path)

    # =========================================================================
    # Search
    # =========================================================================

    def search(
        self,
        path: str,
        text: str,
        filter: EntryFilter | None = None,
        options: dict[str, Any] | None = None,
        depth: int | None = 0,
        limit: int | None = None,
    ) -> Iterator[FileInfo]:
        """Lazily find entries below *path* whose name contains *text*.

        ``depth=0`` searches direct children only, ``depth=n`` descends *n*
        further levels, ``depth=None`` is unlimited.  A rejected entry's
        subtree is skipped.  ``options={"case_sensitive": True}`` turns off
        case folding.
        """
        case_sensitive = bool((options or {}).get("case_sensitive", False))
        needle = text if case_sensitive else text.lower()
        matches = self._walk(normalize_path(path), needle, case_sensitive, filter, depth, 0)
        if limit is not None:
            return islice(matches, max(limit, 0))
        return matches

    def _walk(
        self,
        path: str,
        needle: str,
        case_sensitive: bool,
        filter: EntryFilter | None,
        depth: int | None,
        level: int,
    ) -> Iterator[FileInfo]:
        listing = self.list_dir(path)
        if listing is None:
            return
        with listing:
            for item in listing:
                if filter is not None and not filter(item):
                    continue
                name = item.name if case_sensitive else item.name.lower()
                if needle in name:
                    yield item
                if item.stat.is_dir and (depth is None or level < depth):
                    yield from self._walk(
                        item.path, needle, case_sensitive, filter, depth, level + 1
                    )
