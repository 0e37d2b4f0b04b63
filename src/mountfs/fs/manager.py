"""MountManager — address router with cross-mount copy, sync and rename."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, BinaryIO

from .exceptions import CapabilityNotSupportedError, MountFSError
from .mounts import MountConfig, MountRegistry
from .protocol import Capability
from .utils import absolute_path, is_address, join_path, merge_paths

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping

    from .directories import Directory
    from .protocol import EntryFilter, StorageBackend
    from .types import Context, FileInfo, Stat

    OverwritePolicy = bool | Callable[[FileInfo, Stat], bool]

logger = logging.getLogger(__name__)


def sync_predicate(source: FileInfo, target: Stat) -> bool:
    """Default ``sync`` policy: replace when sizes differ or the source is newer."""
    return source.stat.size != target.size or source.stat.mtime > target.mtime


class Outcome(Enum):
    """What happened to one entry during a transfer."""

    TRANSFERRED = "transferred"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class TransferStats:
    """Per-entry tallies of a recursive transfer.

    Only files count towards ``transferred``; directories that were
    created or reused are not counted.
    """

    transferred: int = 0
    skipped: int = 0
    failed: int = 0


class MountManager:
    """Routes ``name://path`` addresses to mounted backends.

    Presents a single namespace over many backends.  Single-address calls
    are forwarded with the normalized local path and the returned records
    are tagged with the mount name.  Copy, sync and rename work across
    mounts with a depth-first, best-effort transfer.

    Expected failures (malformed address, unknown mount, missing
    capability, missing path) come back as ``None``/``False``/``0`` or an
    empty iterator, never as exceptions.

    ``protocol`` is the optional outer protocol the whole manager is
    exposed under; see :meth:`absolute`.
    """

    def __init__(
        self,
        mounts: Mapping[str, StorageBackend] | None = None,
        *,
        protocol: str | None = None,
    ) -> None:
        self._registry = MountRegistry()
        self.protocol = protocol
        for name, backend in (mounts or {}).items():
            self.mount(name, backend)

    @property
    def registry(self) -> MountRegistry:
        return self._registry

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def mount(self, name: str, backend: StorageBackend, *, label: str = "") -> bool:
        """Mount *backend* under *name*, replacing any previous mount."""
        config = MountConfig(name=name, backend=backend, label=label)
        replaced = self._registry.has_mount(config.name)
        self._registry.add_mount(config)
        logger.debug(
            "%s %r with capabilities %s",
            "Remounted" if replaced else "Mounted",
            config.name,
            sorted(c.value for c in config.capabilities),
        )
        return True

    def unmount(self, name: str) -> bool:
        """Remove a mount.  ``False`` if *name* was not mounted."""
        return self._registry.remove_mount(name)

    def backend(self, name: str) -> StorageBackend | None:
        config = self._registry.get(name)
        return config.backend if config is not None else None

    def mounts(self) -> list[MountConfig]:
        return self._registry.list_mounts()

    # ------------------------------------------------------------------
    # Routing helpers
    # ------------------------------------------------------------------

    def _route(
        self, address: str, capability: Capability | None = None
    ) -> tuple[MountConfig, str]:
        mount, path = self._registry.resolve(address)
        if capability is not None and not mount.supports(capability):
            raise CapabilityNotSupportedError(
                f"Mount {mount.name!r} does not support {capability.value}"
            )
        return mount, path

    def _endpoints(self, src: str, dest: str) -> tuple[MountConfig, str, MountConfig, str]:
        if not is_address(dest):
            dest = merge_paths(dest, src)
        src_mount, src_path = self._route(src)
        dest_mount, dest_path = self._route(dest)
        return src_mount, src_path, dest_mount, dest_path

    @staticmethod
    def _miss(error: MountFSError) -> None:
        logger.debug("Unroutable call: %s", error)

    @staticmethod
    def _tag(info: FileInfo | None, mount: MountConfig) -> FileInfo | None:
        return info.with_protocol(mount.name) if info is not None else None

    def absolute(self, address: str) -> str | None:
        """Express *address* under the manager's outer protocol."""
        if self.protocol is None:
            return None
        try:
            return absolute_path(address, self.protocol)
        except MountFSError as e:
            self._miss(e)
            return None

    # ------------------------------------------------------------------
    # Read Operations
    # ------------------------------------------------------------------

    def get_info(self, address: str) -> FileInfo | None:
        try:
            mount, path = self._route(address)
        except MountFSError as e:
            self._miss(e)
            return None
        return self._tag(mount.backend.get_info(path), mount)

    def stat(self, address: str, resolve_links: bool = True) -> Stat | None:
        try:
            mount, path = self._route(address)
        except MountFSError as e:
            self._miss(e)
            return None
        return mount.backend.stat(path, resolve_links)

    def list_dir(self, address: str) -> Directory | None:
        try:
            mount, path = self._route(address)
        except MountFSError as e:
            self._miss(e)
            return None
        listing = mount.backend.list_dir(path)
        if listing is not None:
            listing.protocol = mount.name
        return listing

    def open_file(self, address: str, mode: str = "rb") -> BinaryIO | None:
        try:
            mount, path = self._route(address)
        except MountFSError as e:
            self._miss(e)
            return None
        return mount.backend.open_file(path, mode)

    def contents(self, address: str) -> bytes | None:
        """Read a whole file."""
        stream = self.open_file(address, "rb")
        if stream is None:
            return None
        with stream:
            return stream.read()

    def exists(self, address: str) -> bool:
        return self.stat(address) is not None

    def is_file(self, address: str) -> bool:
        st = self.stat(address)
        return st is not None and st.is_file

    def is_dir(self, address: str) -> bool:
        st = self.stat(address)
        return st is not None and st.is_dir

    def is_link(self, address: str) -> bool:
        st = self.stat(address, resolve_links=False)
        return st is not None and st.is_link

    def search(
        self,
        address: str,
        text: str,
        filter: EntryFilter | None = None,
        options: dict[str, Any] | None = None,
        depth: int | None = 0,
        limit: int | None = None,
    ) -> Iterator[FileInfo]:
        """Search below *address*; empty when the backend cannot search."""
        try:
            mount, path = self._route(address, Capability.SEARCH)
        except MountFSError as e:
            self._miss(e)
            return iter(())
        results = mount.backend.search(path, text, filter, options, depth, limit)  # type: ignore[attr-defined]
        return (info.with_protocol(mount.name) for info in results)

    # ------------------------------------------------------------------
    # Write Operations
    # ------------------------------------------------------------------

    def write(self, address: str, stream: BinaryIO, mode: int | None = None) -> FileInfo | None:
        try:
            mount, path = self._route(address)
        except MountFSError as e:
            self._miss(e)
            return None
        return self._tag(mount.backend.write(path, stream, mode), mount)

    def mkdir(self, address: str, mode: int = 0o777, recursive: bool = True) -> FileInfo | None:
        try:
            mount, path = self._route(address)
        except MountFSError as e:
            self._miss(e)
            return None
        return self._tag(mount.backend.mkdir(path, mode, recursive), mount)

    def rmdir(self, address: str, recursive: bool = True) -> bool:
        try:
            mount, path = self._route(address)
        except MountFSError as e:
            self._miss(e)
            return False
        return mount.backend.rmdir(path, recursive)

    def unlink(self, address: str) -> bool:
        try:
            mount, path = self._route(address)
        except MountFSError as e:
            self._miss(e)
            return False
        return mount.backend.unlink(path)

    # ------------------------------------------------------------------
    # Access Operations (capability-gated)
    # ------------------------------------------------------------------

    def _access(self, method: str, address: str, *args: Any) -> FileInfo | None:
        try:
            mount, path = self._route(address, Capability.ACCESS)
        except MountFSError as e:
            self._miss(e)
            return None
        return self._tag(getattr(mount.backend, method)(path, *args), mount)

    def touch(
        self, address: str, time: float | None = None, atime: float | None = None
    ) -> FileInfo | None:
        return self._access("touch", address, time, atime)

    def chmod(self, address: str, mode: int) -> FileInfo | None:
        return self._access("chmod", address, mode)

    def chown(self, address: str, owner: str) -> FileInfo | None:
        return self._access("chown", address, owner)

    def chgrp(self, address: str, group: str) -> FileInfo | None:
        return self._access("chgrp", address, group)

    # ------------------------------------------------------------------
    # Request context (capability-gated)
    # ------------------------------------------------------------------

    def set_context(self, name: str, context: Context | None) -> bool:
        """Bind *context* to the backend mounted under *name*."""
        config = self._registry.get(name)
        if config is None or not config.supports(Capability.CONTEXT):
            return False
        return config.backend.set_context(context)  # type: ignore[attr-defined]

    def get_context(self, name: str) -> Context | None:
        config = self._registry.get(name)
        if config is None or not config.supports(Capability.CONTEXT):
            return None
        return config.backend.get_context()  # type: ignore[attr-defined]

    # ------------------------------------------------------------------
    # Copy / Rename / Sync
    # ------------------------------------------------------------------

    def copy(self, src: str, dest: str, overwrite: bool = True) -> FileInfo | None:
        """Copy a file or directory tree.

        *dest* may be relative, in which case it is merged against *src*.
        Returns the destination record, or ``None`` if any entry failed.
        """
        try:
            src_mount, src_path, dest_mount, dest_path = self._endpoints(src, dest)
        except MountFSError as e:
            self._miss(e)
            return None

        if src_mount is dest_mount:
            logger.debug("Native copy on %r: %s -> %s", src_mount.name, src_path, dest_path)
            return self._tag(src_mount.backend.copy(src_path, dest_path, overwrite), dest_mount)

        src_info = src_mount.backend.get_info(src_path)
        if src_info is None:
            return None
        stats = TransferStats()
        outcome = self._transfer(
            src_mount.backend, src_info, dest_mount.backend, dest_path, overwrite, None, True, stats
        )
        if outcome is not Outcome.TRANSFERRED or stats.failed:
            return None
        return self._tag(dest_mount.backend.get_info(dest_path), dest_mount)

    def rename(self, src: str, dest: str) -> FileInfo | None:
        """Move a file or directory tree.

        Across mounts this copies everything and removes the source only
        when no entry failed.
        """
        try:
            src_mount, src_path, dest_mount, dest_path = self._endpoints(src, dest)
        except MountFSError as e:
            self._miss(e)
            return None

        if src_mount is dest_mount:
            logger.debug("Native rename on %r: %s -> %s", src_mount.name, src_path, dest_path)
            return self._tag(src_mount.backend.rename(src_path, dest_path), dest_mount)

        src_info = src_mount.backend.get_info(src_path)
        if src_info is None:
            return None
        stats = TransferStats()
        outcome = self._transfer(
            src_mount.backend, src_info, dest_mount.backend, dest_path, True, None, True, stats
        )
        if outcome is not Outcome.TRANSFERRED or stats.failed:
            logger.debug("Rename %s -> %s left source in place (%s)", src, dest, stats)
            return None

        if src_info.stat.is_dir:
            removed = src_mount.backend.rmdir(src_path, True)
        else:
            removed = src_mount.backend.unlink(src_path)
        if not removed:
            logger.warning("Copied %s to %s but could not remove the source", src, dest)
            return None

        return self._tag(dest_mount.backend.get_info(dest_path), dest_mount)

    def copy_filtered(
        self,
        src: str,
        dest: str,
        recursive: bool = True,
        overwrite: bool = True,
        filter: EntryFilter | None = None,
    ) -> int | None:
        """Copy with an optional per-entry *filter*; returns the number of files copied.

        ``None`` means the addresses could not be resolved or the source
        does not exist.  A lower-than-expected count signals partial failure.
        Always runs the per-entry transfer, even within one mount, so the
        count covers only files this call wrote.
        """
        try:
            src_mount, src_path, dest_mount, dest_path = self._endpoints(src, dest)
        except MountFSError as e:
            self._miss(e)
            return None

        return self._run_transfer(
            src_mount, src_path, dest_mount, dest_path, overwrite, filter, recursive
        )

    def sync(
        self,
        source: str,
        replica: str,
        filter: EntryFilter | None = None,
        overwrite: OverwritePolicy = sync_predicate,
    ) -> int | None:
        """Bring *replica* up to date with *source*; returns the number of files copied.

        Missing replica files are always copied; existing ones only when
        *overwrite* (by default :func:`sync_predicate`) allows it.
        """
        try:
            src_mount, src_path, dest_mount, dest_path = self._endpoints(source, replica)
        except MountFSError as e:
            self._miss(e)
            return None
        return self._run_transfer(
            src_mount, src_path, dest_mount, dest_path, overwrite, filter, True
        )

    # ------------------------------------------------------------------
    # Transfer algorithm
    # ------------------------------------------------------------------

    def _run_transfer(
        self,
        src_mount: MountConfig,
        src_path: str,
        dest_mount: MountConfig,
        dest_path: str,
        policy: OverwritePolicy,
        filter: EntryFilter | None,
        recursive: bool,
    ) -> int | None:
        if src_mount is dest_mount and (
            src_path == dest_path or dest_path.startswith(src_path + "/") or not src_path
        ):
            logger.debug("Refusing to transfer %r into itself on %r", src_path, src_mount.name)
            return None

        src_info = src_mount.backend.get_info(src_path)
        if src_info is None:
            return None

        stats = TransferStats()
        self._transfer(
            src_mount.backend, src_info, dest_mount.backend, dest_path,
            policy, filter, recursive, stats,
        )
        logger.debug(
            "Transfer %s://%s -> %s://%s: %s",
            src_mount.name, src_path, dest_mount.name, dest_path, stats,
        )
        return stats.transferred

    def _transfer(
        self,
        src_backend: StorageBackend,
        src_info: FileInfo,
        dest_backend: StorageBackend,
        dest_path: str,
        policy: OverwritePolicy,
        filter: EntryFilter | None,
        recursive: bool,
        stats: TransferStats,
    ) -> Outcome:
        if filter is not None and not filter(src_info):
            stats.skipped += 1
            return Outcome.SKIPPED

        dest_stat = dest_backend.stat(dest_path)
        if src_info.stat.is_dir:
            return self._transfer_dir(
                src_backend, src_info, dest_backend, dest_path, dest_stat,
                policy, filter, recursive, stats,
            )
        return self._transfer_file(
            src_backend, src_info, dest_backend, dest_path, dest_stat, policy, stats
        )

    @staticmethod
    def _allows(policy: OverwritePolicy, src_info: FileInfo, dest_stat: Stat) -> bool:
        if callable(policy):
            return bool(policy(src_info, dest_stat))
        return bool(policy)

    def _transfer_file(
        self,
        src_backend: StorageBackend,
        src_info: FileInfo,
        dest_backend: StorageBackend,
        dest_path: str,
        dest_stat: Stat | None,
        policy: OverwritePolicy,
        stats: TransferStats,
    ) -> Outcome:
        if dest_stat is not None:
            if not self._allows(policy, src_info, dest_stat):
                stats.skipped += 1
                return Outcome.SKIPPED
            if dest_stat.is_dir and not dest_backend.rmdir(dest_path, True):
                stats.failed += 1
                return Outcome.FAILED

        stream = src_backend.open_file(src_info.path, "rb")
        if stream is None:
            stats.failed += 1
            return Outcome.FAILED
        with stream:
            written = dest_backend.write(dest_path, stream, src_info.stat.permissions)
        if written is None:
            stats.failed += 1
            return Outcome.FAILED

        stats.transferred += 1
        return Outcome.TRANSFERRED

    def _transfer_dir(
        self,
        src_backend: StorageBackend,
        src_info: FileInfo,
        dest_backend: StorageBackend,
        dest_path: str,
        dest_stat: Stat | None,
        policy: OverwritePolicy,
        filter: EntryFilter | None,
        recursive: bool,
        stats: TransferStats,
    ) -> Outcome:
        if dest_stat is not None:
            if dest_stat.is_dir:
                if policy is False:
                    stats.skipped += 1
                    return Outcome.SKIPPED
            else:
                if not self._allows(policy, src_info, dest_stat):
                    stats.skipped += 1
                    return Outcome.SKIPPED
                if not dest_backend.unlink(dest_path):
                    stats.failed += 1
                    return Outcome.FAILED
                dest_stat = None

        if dest_stat is None and dest_backend.mkdir(
            dest_path, src_info.stat.permissions, True
        ) is None:
            stats.failed += 1
            return Outcome.FAILED

        if not recursive:
            return Outcome.TRANSFERRED

        listing = src_backend.list_dir(src_info.path)
        if listing is None:
            stats.failed += 1
            return Outcome.FAILED

        with listing:
            for child in listing:
                self._transfer(
                    src_backend, child, dest_backend, join_path(dest_path, child.name),
                    policy, filter, recursive, stats,
                )
        return Outcome.TRANSFERRED
