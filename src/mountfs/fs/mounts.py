"""MountRegistry and MountConfig."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .exceptions import MountNotFoundError
from .protocol import Capability, probe_capabilities, validate_backend
from .utils import parse_address

if TYPE_CHECKING:
    from .protocol import StorageBackend


@dataclass
class MountConfig:
    """Configuration for a single mount."""

    name: str
    """Mount name, the ``name`` in ``name://path``."""

    backend: StorageBackend
    """Storage backend implementing the StorageBackend protocol."""

    label: str = ""
    """Display name for the mount."""

    capabilities: frozenset[Capability] = field(init=False)
    """Optional capabilities, probed once when the mount is created."""

    def __post_init__(self) -> None:
        self.name = self.name.strip()
        if not self.name or "/" in self.name or ":" in self.name:
            raise ValueError(f"Invalid mount name: {self.name!r}")
        validate_backend(self.backend)
        self.capabilities = probe_capabilities(self.backend)
        if not self.label:
            self.label = self.name

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities


class MountRegistry:
    """Registry of active mounts.

    Resolves ``name://path`` addresses to (MountConfig, local_path) tuples.
    """

    def __init__(self) -> None:
        self._mounts: dict[str, MountConfig] = {}

    def add_mount(self, config: MountConfig) -> None:
        """Add or replace a mount."""
        self._mounts[config.name] = config

    def remove_mount(self, name: str) -> bool:
        """Remove a mount.  ``False`` if nothing was mounted under *name*."""
        return self._mounts.pop(name.strip(), None) is not None

    def get(self, name: str) -> MountConfig | None:
        return self._mounts.get(name.strip())

    def resolve(self, address: str) -> tuple[MountConfig, str]:
        """Resolve an address to its mount and normalized local path.

        Raises:
            MalformedAddressError: if *address* has no ``://``.
            MountNotFoundError: if the mount name is not registered.
        """
        name, path = parse_address(address)
        config = self._mounts.get(name)
        if config is None:
            raise MountNotFoundError(f"No mount named {name!r}")
        return config, path

    def list_mounts(self) -> list[MountConfig]:
        """List all registered mounts, sorted by name."""
        return sorted(self._mounts.values(), key=lambda m: m.name)

    def has_mount(self, name: str) -> bool:
        return name.strip() in self._mounts
