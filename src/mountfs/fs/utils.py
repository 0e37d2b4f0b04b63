"""Path algebra: address parsing, normalization, merging, MIME guessing."""

from __future__ import annotations

import mimetypes

from .exceptions import MalformedAddressError

PROTOCOL_SEPARATOR = "://"

# =============================================================================
# Path Utilities
# =============================================================================


def normalize_path(path: str) -> str:
    """Normalize a backend-local path.

    - Trims surrounding whitespace and slashes
    - Drops empty and ``.`` segments
    - Resolves ``..`` (never above the root)

    Examples:
        normalize_path(" /foo/bar/ ") -> "foo/bar"
        normalize_path("foo//./bar") -> "foo/bar"
        normalize_path("foo/../bar") -> "bar"
        normalize_path("/") -> ""
        normalize_path("") -> ""
    """
    if not path:
        return ""

    path = path.strip(" /")
    if not path:
        return ""

    return "/".join(_apply_segments([], path.split("/")))


def _apply_segments(stack: list[str], segments: list[str]) -> list[str]:
    """Push *segments* onto *stack* with POSIX ``.``/``..`` semantics."""
    for segment in segments:
        segment = segment.strip()
        if not segment or segment == ".":
            continue
        if segment == "..":
            if stack:
                stack.pop()
            continue
        stack.append(segment)
    return stack


def split_path(path: str) -> tuple[str, str]:
    """Split a normalized path into (parent, name).

    Examples:
        split_path("foo/bar.txt") -> ("foo", "bar.txt")
        split_path("foo.txt") -> ("", "foo.txt")
        split_path("") -> ("", "")
    """
    path = normalize_path(path)
    if "/" not in path:
        return "", path
    parent, name = path.rsplit("/", 1)
    return parent, name


def join_path(parent: str, name: str) -> str:
    """Join a directory path and a child name."""
    parent = normalize_path(parent)
    if not parent:
        return normalize_path(name)
    return normalize_path(f"{parent}/{name}")


# =============================================================================
# Addresses
# =============================================================================


def is_address(value: str) -> bool:
    """True when *value* carries a ``protocol://`` prefix."""
    return PROTOCOL_SEPARATOR in value


def parse_address(address: str) -> tuple[str, str]:
    """Split ``mount://path`` into (mount, normalized local path).

    Raises:
        MalformedAddressError: if *address* has no ``://`` separator.
    """
    if PROTOCOL_SEPARATOR not in address:
        raise MalformedAddressError(f"Address has no protocol: {address!r}")
    mount, path = address.split(PROTOCOL_SEPARATOR, 1)
    return mount, normalize_path(path)


def format_address(mount: str, path: str) -> str:
    return f"{mount}{PROTOCOL_SEPARATOR}{normalize_path(path)}"


def absolute_path(address: str, protocol: str) -> str:
    """Re-wrap ``mount://path`` as ``protocol://mount/path``.

    Used when a whole mount manager is exposed under one outer protocol.
    """
    mount, path = parse_address(address)
    if not path:
        return f"{protocol}{PROTOCOL_SEPARATOR}{mount}"
    return f"{protocol}{PROTOCOL_SEPARATOR}{mount}/{path}"


def merge_paths(path: str, base: str, protocol: str | None = None) -> str:
    """Resolve *path* against the address *base*.

    Addresses are returned unchanged.  Relative paths resolve against the
    directory of *base* (its last segment is dropped unless *base* ends
    with ``/``); a leading ``/`` resolves from the mount root.  The result
    keeps the mount of *base*.  When *protocol* is given the result is
    re-expressed through :func:`absolute_path`.

    Examples:
        merge_paths("../x", "proto://a/b/c") -> "proto://a/x"
        merge_paths("x", "proto://a/b/") -> "proto://a/b/x"
        merge_paths("/x", "proto://a/b/c") -> "proto://x"

    Raises:
        MalformedAddressError: if *base* (or *path* when re-wrapping) has no protocol.
    """
    if is_address(path):
        return absolute_path(path, protocol) if protocol else path

    if PROTOCOL_SEPARATOR not in base:
        raise MalformedAddressError(f"Base has no protocol: {base!r}")

    mount, base_path = base.split(PROTOCOL_SEPARATOR, 1)

    stack: list[str] = []
    if not path.strip().startswith("/"):
        base_path = base_path.strip()
        stack = _apply_segments([], base_path.split("/"))
        if stack and not base_path.endswith("/"):
            stack.pop()

    merged = format_address(mount, "/".join(_apply_segments(stack, path.split("/"))))
    return absolute_path(merged, protocol) if protocol else merged


# =============================================================================
# MIME detection
# =============================================================================


def guess_mime_type(filename: str) -> str | None:
    """Guess the MIME type of a file based on its name."""
    mime_type, _ = mimetypes.guess_type(filename)
    return mime_type
