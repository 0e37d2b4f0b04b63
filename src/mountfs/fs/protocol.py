"""StorageBackend protocol — runtime-checkable interfaces.

Split into a core protocol and opt-in capability protocols so that
simple backends can implement just the core without being forced to
provide attribute changes, search, or request-context binding.

Capabilities are probed once (at mount time or when a decorator wraps a
backend) with :func:`probe_capabilities` and cached by the caller.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, BinaryIO, Protocol, runtime_checkable

from .exceptions import InvalidBackendError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from .directories import Directory
    from .types import Context, FileInfo, Stat

    EntryFilter = Callable[[FileInfo], bool]


@runtime_checkable
class StorageBackend(Protocol):
    """Core interface every backend must implement.

    Paths are backend-local and normalized.  Expected failures (missing
    path, wrong entry kind, I/O error) are reported as ``None``/``False``,
    never raised.
    """

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def mkdir(self, path: str, mode: int = 0o777, recursive: bool = True) -> FileInfo | None: ...

    def rmdir(self, path: str, recursive: bool = True) -> bool: ...

    def unlink(self, path: str) -> bool: ...

    def rename(self, src: str, dest: str) -> FileInfo | None: ...

    def copy(self, src: str, dest: str, overwrite: bool = True) -> FileInfo | None: ...

    def write(self, path: str, stream: BinaryIO, mode: int | None = None) -> FileInfo | None: ...

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def stat(self, path: str, resolve_links: bool = True) -> Stat | None: ...

    def open_file(self, path: str, mode: str = "rb") -> BinaryIO | None: ...

    def list_dir(self, path: str) -> Directory | None: ...

    def get_info(self, path: str) -> FileInfo | None: ...


@runtime_checkable
class SupportsAccess(Protocol):
    """Opt-in: timestamp, permission and ownership changes."""

    def touch(
        self, path: str, time: float | None = None, atime: float | None = None
    ) -> FileInfo | None: ...

    def chmod(self, path: str, mode: int) -> FileInfo | None: ...

    def chown(self, path: str, owner: str) -> FileInfo | None: ...

    def chgrp(self, path: str, group: str) -> FileInfo | None: ...


@runtime_checkable
class SupportsSearch(Protocol):
    """Opt-in: text/metadata search below a directory."""

    def search(
        self,
        path: str,
        text: str,
        filter: EntryFilter | None = None,
        options: dict[str, Any] | None = None,
        depth: int | None = 0,
        limit: int | None = None,
    ) -> Iterator[FileInfo]: ...


@runtime_checkable
class SupportsContext(Protocol):
    """Opt-in: out-of-band request parameters threaded through later calls."""

    def set_context(self, context: Context | None) -> bool: ...

    def get_context(self) -> Context | None: ...


class Capability(str, Enum):
    """Optional capability sets a backend may advertise."""

    ACCESS = "access"
    SEARCH = "search"
    CONTEXT = "context"


_CAPABILITY_PROTOCOLS: dict[Capability, type] = {
    Capability.ACCESS: SupportsAccess,
    Capability.SEARCH: SupportsSearch,
    Capability.CONTEXT: SupportsContext,
}


def probe_capabilities(backend: Any) -> frozenset[Capability]:
    """Return the optional capabilities *backend* supports.

    Decorating backends (which implement every method and forward) declare
    what they really support through a ``capabilities`` attribute; for
    everything else the capability protocols are checked structurally.
    """
    declared = getattr(backend, "capabilities", None)
    if declared is not None:
        return frozenset(declared)
    return frozenset(
        cap for cap, proto in _CAPABILITY_PROTOCOLS.items() if isinstance(backend, proto)
    )


def validate_backend(backend: Any) -> None:
    """Fail fast when *backend* does not implement the core contract."""
    if not isinstance(backend, StorageBackend):
        raise InvalidBackendError(
            f"{type(backend).__name__} does not implement the StorageBackend protocol"
        )
