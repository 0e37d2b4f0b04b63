"""Tests for copy, rename, copy_filtered and sync across and within mounts."""

from __future__ import annotations

import io
import os
from collections import Counter

import pytest

from mountfs.fs.local_disk import LocalDiskBackend
from mountfs.fs.manager import MountManager, sync_predicate
from mountfs.fs.types import FileInfo, Stat


def _bytes(text: str) -> io.BytesIO:
    return io.BytesIO(text.encode())


class SpyDisk(LocalDiskBackend):
    """LocalDiskBackend that counts native copy/rename calls."""

    def __init__(self, root):
        super().__init__(root)
        self.calls: Counter[str] = Counter()

    def copy(self, src, dest, overwrite=True):
        self.calls["copy"] += 1
        return super().copy(src, dest, overwrite)

    def rename(self, src, dest):
        self.calls["rename"] += 1
        return super().rename(src, dest)


@pytest.fixture
def spy(src_root) -> SpyDisk:
    return SpyDisk(src_root)


@pytest.fixture
def spy_manager(spy, other_disk) -> MountManager:
    return MountManager({"src": spy, "dst": other_disk})


@pytest.fixture
def tree(manager):
    """``src://dir/{a,b/c}``"""
    manager.write("src://dir/a", _bytes("aaa"))
    manager.write("src://dir/b/c", _bytes("cc"))
    return manager


# ---------------------------------------------------------------------------
# Same-mount fast path
# ---------------------------------------------------------------------------


class TestFastPath:
    def test_copy_directory_uses_native_copy(self, spy_manager, spy):
        spy_manager.write("src://dir/a", _bytes("a"))
        spy_manager.write("src://dir/b/c", _bytes("c"))
        spy.calls.clear()

        info = spy_manager.copy("src://dir", "src://other")
        assert info.full_path == "src://other"
        # LocalDiskBackend.copy recurses through self.copy for children.
        assert spy.calls["copy"] >= 1
        assert spy_manager.contents("src://other/b/c") == b"c"

    def test_copy_file_calls_native_exactly_once(self, spy_manager, spy):
        spy_manager.write("src://a", _bytes("a"))
        spy.calls.clear()
        spy_manager.copy("src://a", "src://b")
        assert spy.calls["copy"] == 1

    def test_rename_uses_native_rename(self, spy_manager, spy):
        spy_manager.write("src://a", _bytes("a"))
        info = spy_manager.rename("src://a", "src://b")
        assert info.full_path == "src://b"
        assert spy.calls["rename"] == 1
        assert not spy_manager.exists("src://a")

    def test_relative_destination(self, manager):
        manager.write("src://dir/a.txt", _bytes("a"))
        info = manager.copy("src://dir/a.txt", "b.txt")
        assert info.full_path == "src://dir/b.txt"

    def test_relative_parent_destination(self, manager):
        manager.write("src://dir/sub/a.txt", _bytes("a"))
        info = manager.copy("src://dir/sub/a.txt", "../a.txt")
        assert info.full_path == "src://dir/a.txt"


# ---------------------------------------------------------------------------
# copy_filtered within one mount
# ---------------------------------------------------------------------------


class TestSameMountCopyFiltered:
    def test_counts_files(self, spy_manager, spy):
        spy_manager.write("src://dir/a", _bytes("a"))
        spy_manager.write("src://dir/b/c", _bytes("c"))
        spy.calls.clear()
        assert spy_manager.copy_filtered("src://dir", "src://out") == 2
        assert spy.calls["copy"] == 0
        assert spy_manager.contents("src://out/b/c") == b"c"

    def test_single_file(self, spy_manager):
        spy_manager.write("src://a", _bytes("a"))
        assert spy_manager.copy_filtered("src://a", "src://b") == 1

    def test_existing_destination_files_not_counted(self, manager):
        manager.write("src://dir/a", _bytes("a"))
        manager.write("src://out/old1", _bytes("1"))
        manager.write("src://out/old2", _bytes("2"))
        assert manager.copy_filtered("src://dir", "src://out") == 1
        assert manager.is_file("src://out/old1")
        assert manager.contents("src://out/a") == b"a"

    def test_filter(self, spy_manager, spy):
        spy_manager.write("src://dir/a", _bytes("a"))
        spy_manager.write("src://dir/b", _bytes("b"))
        spy.calls.clear()
        count = spy_manager.copy_filtered("src://dir", "src://out", filter=lambda i: i.name != "b")
        assert count == 1
        assert spy.calls["copy"] == 0

    def test_partial_failure_lowers_count(self, manager, src_root):
        manager.write("src://dir/a", _bytes("a"))
        manager.write("src://dir/b/c", _bytes("c"))
        os.chmod(src_root / "dir" / "a", 0)
        try:
            if os.access(src_root / "dir" / "a", os.R_OK):
                pytest.skip("running with privileges that bypass file modes")
            assert manager.copy_filtered("src://dir", "src://out") == 1
            assert manager.contents("src://out/b/c") == b"c"
        finally:
            os.chmod(src_root / "dir" / "a", 0o644)

    def test_overwrite_disallowed(self, manager):
        manager.write("src://a", _bytes("new"))
        manager.write("src://b", _bytes("old"))
        assert manager.copy_filtered("src://a", "src://b", overwrite=False) == 0
        assert manager.contents("src://b") == b"old"


# ---------------------------------------------------------------------------
# Generic transfer
# ---------------------------------------------------------------------------


class TestCrossMountCopy:
    def test_directory_copy_count(self, tree):
        assert tree.copy_filtered("src://dir", "dst://out") == 2
        assert tree.contents("dst://out/a") == b"aaa"
        assert tree.contents("dst://out/b/c") == b"cc"

    def test_copy_returns_destination(self, tree):
        info = tree.copy("src://dir", "dst://out")
        assert info.full_path == "dst://out"
        assert info.stat.is_dir
        assert tree.exists("src://dir/a")

    def test_copy_file(self, tree):
        info = tree.copy("src://dir/a", "dst://a")
        assert info.stat.size == 3

    def test_copy_preserves_permissions(self, manager):
        manager.write("src://f", _bytes("x"), 0o640)
        manager.copy("src://f", "dst://f")
        assert manager.stat("dst://f").permissions == 0o640

    def test_copy_into_mount_root(self, tree):
        assert tree.copy_filtered("src://dir", "dst://") == 2
        assert tree.is_file("dst://b/c")

    def test_missing_source(self, manager):
        assert manager.copy("src://nope", "dst://x") is None
        assert manager.copy_filtered("src://nope", "dst://x") is None

    def test_unknown_mount(self, manager):
        assert manager.copy("src://a", "nope://a") is None
        assert manager.copy_filtered("nope://a", "dst://a") is None

    def test_overwrite_disallowed_skip(self, manager):
        manager.write("src://f", _bytes("new"))
        manager.write("dst://f", _bytes("old"))
        assert manager.copy_filtered("src://f", "dst://f", overwrite=False) == 0
        assert manager.contents("dst://f") == b"old"

    def test_overwrite_disallowed_copy_returns_none(self, manager):
        manager.write("src://f", _bytes("new"))
        manager.write("dst://f", _bytes("old"))
        assert manager.copy("src://f", "dst://f", overwrite=False) is None

    def test_overwrite_allowed(self, manager):
        manager.write("src://f", _bytes("new"))
        manager.write("dst://f", _bytes("old"))
        assert manager.copy_filtered("src://f", "dst://f") == 1
        assert manager.contents("dst://f") == b"new"

    def test_file_replaces_directory(self, manager):
        manager.write("src://f", _bytes("file"))
        manager.write("dst://f/inner", _bytes("x"))
        assert manager.copy_filtered("src://f", "dst://f") == 1
        assert manager.is_file("dst://f")

    def test_directory_replaces_file(self, tree):
        tree.write("dst://out", _bytes("in the way"))
        assert tree.copy_filtered("src://dir", "dst://out") == 2
        assert tree.is_dir("dst://out")

    def test_directory_merges_into_directory(self, tree):
        tree.write("dst://out/keep", _bytes("k"))
        assert tree.copy_filtered("src://dir", "dst://out") == 2
        assert tree.is_file("dst://out/keep")
        assert tree.is_file("dst://out/a")

    def test_existing_directory_not_descended_without_overwrite(self, tree):
        tree.mkdir("dst://out")
        assert tree.copy_filtered("src://dir", "dst://out", overwrite=False) == 0
        assert not tree.exists("dst://out/a")

    def test_non_recursive_creates_only_directory(self, tree):
        assert tree.copy_filtered("src://dir", "dst://out", recursive=False) == 0
        assert tree.is_dir("dst://out")
        assert not tree.exists("dst://out/a")

    def test_filter_skips_subtree(self, tree):
        count = tree.copy_filtered("src://dir", "dst://out", filter=lambda i: i.name != "b")
        assert count == 1
        assert tree.exists("dst://out/a")
        assert not tree.exists("dst://out/b")

    def test_filter_rejecting_root(self, tree):
        assert tree.copy_filtered("src://dir", "dst://out", filter=lambda i: False) == 0
        assert not tree.exists("dst://out")

    def test_partial_failure_lowers_count(self, tree, src_root):
        os.chmod(src_root / "dir" / "a", 0)
        try:
            if os.access(src_root / "dir" / "a", os.R_OK):
                pytest.skip("running with privileges that bypass file modes")
            assert tree.copy_filtered("src://dir", "dst://out") == 1
            assert tree.copy("src://dir", "dst://again") is None
        finally:
            os.chmod(src_root / "dir" / "a", 0o644)

    def test_into_itself_refused(self, tree):
        count = tree.copy_filtered("src://dir", "src://dir/nested", filter=lambda i: True)
        assert count is None


# ---------------------------------------------------------------------------
# Rename across mounts
# ---------------------------------------------------------------------------


class TestCrossMountRename:
    def test_rename_directory(self, tree):
        info = tree.rename("src://dir", "dst://moved")
        assert info.full_path == "dst://moved"
        assert tree.contents("dst://moved/b/c") == b"cc"
        assert not tree.exists("src://dir")

    def test_rename_file(self, tree):
        tree.rename("src://dir/a", "dst://a")
        assert tree.contents("dst://a") == b"aaa"
        assert not tree.exists("src://dir/a")

    def test_rename_missing(self, manager):
        assert manager.rename("src://nope", "dst://x") is None

    def test_failed_transfer_keeps_source(self, tree, src_root):
        os.chmod(src_root / "dir" / "a", 0)
        try:
            if os.access(src_root / "dir" / "a", os.R_OK):
                pytest.skip("running with privileges that bypass file modes")
            assert tree.rename("src://dir", "dst://moved") is None
            assert tree.exists("src://dir/b/c")
        finally:
            os.chmod(src_root / "dir" / "a", 0o644)


# ---------------------------------------------------------------------------
# Sync
# ---------------------------------------------------------------------------


class TestSyncPredicate:
    @pytest.mark.parametrize(
        ("source", "target", "expected"),
        [
            pytest.param(Stat.file(3, mtime=20.0), Stat.file(3, mtime=10.0), True, id="newer"),
            pytest.param(Stat.file(3, mtime=10.0), Stat.file(3, mtime=20.0), False, id="older"),
            pytest.param(Stat.file(3, mtime=10.0), Stat.file(3, mtime=10.0), False, id="same"),
            pytest.param(Stat.file(4, mtime=10.0), Stat.file(3, mtime=20.0), True, id="size"),
        ],
    )
    def test_predicate(self, source, target, expected):
        assert sync_predicate(FileInfo("f", source), target) is expected


class TestSync:
    def test_missing_replica_copied(self, tree):
        assert tree.sync("src://dir", "dst://replica") == 2

    def test_up_to_date_replica_skipped(self, tree):
        tree.sync("src://dir", "dst://replica")
        assert tree.sync("src://dir", "dst://replica") == 0

    def test_older_source_same_size_skipped(self, manager, src_root):
        manager.write("src://f", _bytes("abc"))
        manager.write("dst://f", _bytes("xyz"))
        os.utime(src_root / "f", (1_000.0, 1_000.0))
        assert manager.sync("src://f", "dst://f") == 0
        assert manager.contents("dst://f") == b"xyz"

    def test_newer_source_copied(self, manager, dst_root):
        manager.write("src://f", _bytes("abc"))
        manager.write("dst://f", _bytes("xyz"))
        os.utime(dst_root / "f", (1_000.0, 1_000.0))
        assert manager.sync("src://f", "dst://f") == 1
        assert manager.contents("dst://f") == b"abc"

    def test_size_difference_copied(self, manager, src_root):
        manager.write("src://f", _bytes("abcdef"))
        manager.write("dst://f", _bytes("xyz"))
        os.utime(src_root / "f", (1_000.0, 1_000.0))
        assert manager.sync("src://f", "dst://f") == 1

    def test_custom_predicate(self, manager):
        manager.write("src://f", _bytes("abc"))
        manager.write("dst://f", _bytes("xyz"))
        assert manager.sync("src://f", "dst://f", overwrite=lambda s, t: True) == 1

    def test_same_mount_uses_transfer(self, spy_manager, spy):
        spy_manager.write("src://dir/a", _bytes("a"))
        assert spy_manager.sync("src://dir", "src://mirror") == 1
        assert spy.calls["copy"] == 0

    def test_sync_filter(self, tree):
        assert tree.sync("src://dir", "dst://replica", filter=lambda i: i.name != "a") == 1
