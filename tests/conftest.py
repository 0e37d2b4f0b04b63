"""Shared fixtures for mountfs tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlmodel import SQLModel, create_engine

from mountfs.fs.local_disk import LocalDiskBackend
from mountfs.fs.manager import MountManager

if TYPE_CHECKING:
    from pathlib import Path

    from sqlalchemy import Engine


@pytest.fixture
def engine() -> Engine:
    """In-memory SQLite engine with all tables created."""
    eng = create_engine("sqlite://", echo=False)
    SQLModel.metadata.create_all(eng)
    return eng


@pytest.fixture
def src_root(tmp_path: Path) -> Path:
    root = tmp_path / "src"
    root.mkdir()
    return root


@pytest.fixture
def dst_root(tmp_path: Path) -> Path:
    root = tmp_path / "dst"
    root.mkdir()
    return root


@pytest.fixture
def disk(src_root: Path) -> LocalDiskBackend:
    """LocalDiskBackend rooted at a temporary directory."""
    return LocalDiskBackend(src_root)


@pytest.fixture
def other_disk(dst_root: Path) -> LocalDiskBackend:
    return LocalDiskBackend(dst_root)


@pytest.fixture
def manager(disk: LocalDiskBackend, other_disk: LocalDiskBackend) -> MountManager:
    """Manager with ``src://`` and ``dst://`` mounted on separate directories."""
    return MountManager({"src": disk, "dst": other_disk})
