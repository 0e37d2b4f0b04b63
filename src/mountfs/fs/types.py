"""Value types: Stat, FileInfo, Context."""

from __future__ import annotations

import stat as stat_module
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    import os


@dataclass(frozen=True, slots=True)
class Stat:
    """Immutable snapshot of raw stat fields.

    Built by backends from ``os.stat_result`` (or by hand for non-disk
    backends).  Never mutated after construction.
    """

    mode: int = 0
    size: int = 0
    atime: float = 0.0
    mtime: float = 0.0
    ctime: float = 0.0
    uid: int = 0
    gid: int = 0
    ino: int = 0
    dev: int = 0
    nlink: int = 1

    @classmethod
    def from_os(cls, st: os.stat_result) -> Stat:
        return cls(
            mode=st.st_mode,
            size=st.st_size,
            atime=st.st_atime,
            mtime=st.st_mtime,
            ctime=st.st_ctime,
            uid=st.st_uid,
            gid=st.st_gid,
            ino=st.st_ino,
            dev=st.st_dev,
            nlink=st.st_nlink,
        )

    @classmethod
    def directory(cls, mode: int = 0o755, mtime: float = 0.0) -> Stat:
        """Stat for a synthetic directory entry."""
        return cls(mode=stat_module.S_IFDIR | mode, mtime=mtime, ctime=mtime, atime=mtime)

    @classmethod
    def file(cls, size: int, mode: int = 0o644, mtime: float = 0.0) -> Stat:
        """Stat for a synthetic regular file entry."""
        return cls(
            mode=stat_module.S_IFREG | mode, size=size, mtime=mtime, ctime=mtime, atime=mtime
        )

    @property
    def is_dir(self) -> bool:
        return stat_module.S_ISDIR(self.mode)

    @property
    def is_file(self) -> bool:
        return stat_module.S_ISREG(self.mode)

    @property
    def is_link(self) -> bool:
        return stat_module.S_ISLNK(self.mode)

    @property
    def permissions(self) -> int:
        """Permission bits only (``mode & 0o7777``)."""
        return stat_module.S_IMODE(self.mode)

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode,
            "size": self.size,
            "atime": self.atime,
            "mtime": self.mtime,
            "ctime": self.ctime,
            "uid": self.uid,
            "gid": self.gid,
            "ino": self.ino,
            "dev": self.dev,
            "nlink": self.nlink,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Stat:
        return cls(**{k: data[k] for k in cls.__dataclass_fields__ if k in data})


@dataclass(frozen=True, eq=False)
class FileInfo:
    """File/directory metadata.

    ``path`` is backend-local and normalized (no leading or trailing
    slash, ``""`` is the backend root).  ``protocol`` is unset until a
    router tags the record with the mount it was resolved under; use
    :meth:`with_protocol` to get a tagged copy.

    Two records describe the same entity when path and protocol match.
    """

    path: str
    stat: Stat
    mime_type: str | None = None
    url: str | None = None
    metadata: dict[str, Any] | None = None
    protocol: str | None = None

    @property
    def name(self) -> str:
        return self.path.rsplit("/", 1)[-1]

    @property
    def full_path(self) -> str:
        """``protocol://path`` when tagged, otherwise the bare path."""
        if self.protocol is None:
            return self.path
        return f"{self.protocol}://{self.path}"

    @property
    def is_directory(self) -> bool:
        return self.stat.is_dir

    def with_protocol(self, protocol: str | None) -> FileInfo:
        """Return a copy tagged with *protocol*."""
        if protocol == self.protocol:
            return self
        return replace(self, protocol=protocol)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FileInfo):
            return NotImplemented
        return self.path == other.path and self.protocol == other.protocol

    def __hash__(self) -> int:
        return hash((self.path, self.protocol))

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "name": self.name,
            "mime": self.mime_type,
            "url": self.url,
            "metadata": self.metadata or None,
            "stat": self.stat.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FileInfo:
        return cls(
            path=data["path"],
            stat=Stat.from_dict(data["stat"]),
            mime_type=data.get("mime"),
            url=data.get("url"),
            metadata=data.get("metadata"),
        )


@dataclass
class Context:
    """Out-of-band request parameters bound to a backend (auth tokens, etc.)."""

    options: dict[str, Any] = field(default_factory=dict)
    params: dict[str, Any] = field(default_factory=dict)

