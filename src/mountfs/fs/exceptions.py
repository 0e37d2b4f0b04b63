"""Custom exception hierarchy for the mountfs filesystem layer."""


class MountFSError(Exception):
    """Base exception for all mountfs filesystem errors."""


class MalformedAddressError(MountFSError):
    """Raised when an address has no ``protocol://`` separator."""


class MountNotFoundError(MountFSError):
    """Raised when an address names a mount that is not registered."""


class CapabilityNotSupportedError(MountFSError):
    """Raised when a backend doesn't support a requested capability."""


class InvalidBackendError(MountFSError):
    """Raised when a mounted object does not implement the core backend contract."""
