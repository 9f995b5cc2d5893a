"""
Exception hierarchy for the instance deleter.
"""

from typing import Optional


class DeleterError(Exception):
    """Base class for all instance deleter errors."""


class CloudError(DeleterError):
    """Generic failure reported by the cloud backend."""


class ResourceNotFound(CloudError):
    """The cloud resource no longer exists."""

    def __init__(self, resource_id: str, message: Optional[str] = None):
        self.resource_id = resource_id
        super().__init__(message or f"Resource '{resource_id}' not found")


class VmNotFound(ResourceNotFound):
    """VM does not exist in the cloud."""


class DiskNotFound(ResourceNotFound):
    """Persistent disk does not exist in the cloud."""


class SnapshotNotFound(ResourceNotFound):
    """Disk snapshot does not exist in the cloud."""


class RpcTimeout(DeleterError):
    """Timed out waiting for the instance agent to answer."""


class BlobstoreError(DeleterError):
    """Blobstore operation failed."""


class BlobNotFound(BlobstoreError):
    """Blob does not exist."""


class ReservationError(DeleterError):
    """Network reservation cannot be released."""


class InstanceDeletionError(DeleterError):
    """A pipeline step failed while deleting an instance."""

    def __init__(self, identifier: str, step: str, cause: BaseException):
        self.identifier = identifier
        self.step = step
        self.cause = cause
        super().__init__(f"Deleting instance '{identifier}' failed at {step}: {cause}")
