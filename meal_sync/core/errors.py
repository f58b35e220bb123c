"""Error taxonomy for the storage and sync layers."""


class SyncError(RuntimeError):
    """Base class for storage and remote-sync errors."""


class ConnectivityError(SyncError):
    """The remote store is unreachable or the request failed."""


class ConstraintError(SyncError):
    """The remote store rejected a write (e.g. a uniqueness violation)."""


class StorageUnavailable(SyncError):
    """The durable local medium is absent or access to it was denied."""
