"""Tests for fs/types.py — Stat and FileInfo value semantics."""

from __future__ import annotations

import dataclasses
import os

import pytest

from mountfs.fs.types import FileInfo, Stat


class TestStat:
    def test_directory(self):
        st = Stat.directory(0o700, mtime=5.0)
        assert st.is_dir is True
        assert st.is_file is False
        assert st.permissions == 0o700
        assert st.mtime == 5.0

    def test_file(self):
        st = Stat.file(12)
        assert st.is_file is True
        assert st.is_dir is False
        assert st.size == 12
        assert st.permissions == 0o644

    def test_from_os(self, tmp_path):
        f = tmp_path / "a.txt"
        f.write_bytes(b"hello")
        st = Stat.from_os(os.stat(f))
        assert st.is_file
        assert st.size == 5
        assert st.ino == os.stat(f).st_ino

    def test_immutable(self):
        st = Stat.file(1)
        with pytest.raises(dataclasses.FrozenInstanceError):
            st.size = 2  # type: ignore[misc]

    def test_dict_roundtrip(self):
        st = Stat.file(3, mtime=10.5)
        assert Stat.from_dict(st.to_dict()) == st

    def test_from_dict_ignores_unknown_keys(self):
        st = Stat.from_dict({"size": 4, "bogus": 1})
        assert st.size == 4


class TestFileInfo:
    def test_name(self):
        assert FileInfo("a/b/c.txt", Stat.file(1)).name == "c.txt"

    def test_name_top_level(self):
        assert FileInfo("c.txt", Stat.file(1)).name == "c.txt"

    def test_root_name_is_empty(self):
        assert FileInfo("", Stat.directory()).name == ""

    def test_full_path_untagged(self):
        assert FileInfo("a/b", Stat.file(1)).full_path == "a/b"

    def test_full_path_tagged(self):
        info = FileInfo("a/b", Stat.file(1)).with_protocol("data")
        assert info.full_path == "data://a/b"

    def test_with_protocol_returns_copy(self):
        info = FileInfo("a", Stat.file(1))
        tagged = info.with_protocol("data")
        assert info.protocol is None
        assert tagged.protocol == "data"
        assert tagged.stat is info.stat

    def test_with_same_protocol_is_identity(self):
        info = FileInfo("a", Stat.file(1), protocol="x")
        assert info.with_protocol("x") is info

    def test_equality_by_path_and_protocol(self):
        a = FileInfo("a", Stat.file(1), protocol="x")
        b = FileInfo("a", Stat.file(99), mime_type="text/plain", protocol="x")
        assert a == b
        assert hash(a) == hash(b)

    def test_different_protocol_not_equal(self):
        a = FileInfo("a", Stat.file(1), protocol="x")
        assert a != a.with_protocol("y")

    def test_is_directory(self):
        assert FileInfo("d", Stat.directory()).is_directory is True
        assert FileInfo("f", Stat.file(0)).is_directory is False

    def test_to_dict(self):
        info = FileInfo("a/b.txt", Stat.file(2), mime_type="text/plain", url="http://h/a/b.txt")
        data = info.to_dict()
        assert data["path"] == "a/b.txt"
        assert data["name"] == "b.txt"
        assert data["mime"] == "text/plain"
        assert data["url"] == "http://h/a/b.txt"
        assert data["metadata"] is None
        assert data["stat"]["size"] == 2

    def test_from_dict_drops_protocol(self):
        info = FileInfo("a", Stat.file(2), metadata={"k": "v"}, protocol="x")
        restored = FileInfo.from_dict(info.to_dict())
        assert restored.protocol is None
        assert restored.metadata == {"k": "v"}
        assert restored.stat == info.stat
