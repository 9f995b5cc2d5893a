"""
Data models for the instance deleter.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class SnapshotRetention(Enum):
    """What happens to the cloud snapshot when its record is removed."""

    DELETE_FROM_CLOUD = "delete_from_cloud"
    KEEP_IN_CLOUD = "keep_in_cloud"

    @classmethod
    def from_flag(cls, keep_snapshots_in_the_cloud: bool) -> "SnapshotRetention":
        return cls.KEEP_IN_CLOUD if keep_snapshots_in_the_cloud else cls.DELETE_FROM_CLOUD


class DiskNotFoundPolicy(Enum):
    """How a disk deletion treats a "not found" answer from the cloud."""

    IGNORE = "ignore"  # stale leftover disk, already gone is fine
    RAISE = "raise"  # disk the instance relies on, absence is an error

    @classmethod
    def for_disk(cls, disk: "PersistentDiskRecord") -> "DiskNotFoundPolicy":
        return cls.RAISE if disk.active else cls.IGNORE


@dataclass
class RenderedTemplatesArchive:
    """Rendered job templates uploaded to the blobstore for an instance."""

    blobstore_id: str
    sha1: str = ""


@dataclass
class InstanceRecord:
    """Persisted state of a workload instance."""

    uuid: str
    job: str
    index: int
    deployment: str
    state: str = "started"
    vm_cid: Optional[str] = None
    rendered_templates: List[RenderedTemplatesArchive] = field(default_factory=list)


@dataclass
class VmRecord:
    """Persisted cloud VM bound to an instance."""

    cid: str  # opaque cloud resource id
    instance_uuid: Optional[str] = None


@dataclass
class PersistentDiskRecord:
    """Persisted cloud disk owned by an instance."""

    disk_cid: str
    instance_uuid: Optional[str] = None
    active: bool = True


@dataclass
class SnapshotRecord:
    """Persisted point-in-time backup of a persistent disk."""

    snapshot_cid: str
    disk_cid: str


@dataclass
class DnsRecord:
    """DNS record published for an instance."""

    name: str
    type: str  # "A" or "PTR"
    content: str


@dataclass
class NetworkReservation:
    """IP address on a network held for an instance."""

    network_name: str
    ip: str
    type: str = "dynamic"  # "dynamic" or "static"
    reserved: bool = False

    def mark_reserved(self) -> None:
        self.reserved = True


@dataclass
class DeploymentInstance:
    """Instance of a job as seen by the deployment plan."""

    job_name: str
    index: int
    model: InstanceRecord
    state: str = "started"
    network_reservations: List[NetworkReservation] = field(default_factory=list)

    @property
    def identifier(self) -> str:
        """Human readable name used for progress reporting."""
        return f"{self.job_name}/{self.index}"

    def add_network_reservation(self, reservation: NetworkReservation) -> None:
        self.network_reservations.append(reservation)


@dataclass
class InstancePlan:
    """Drain context handed to the stopper: an existing instance with no desired state."""

    instance: DeploymentInstance
    existing_instance: InstanceRecord
    desired_instance: Optional[object] = None


@dataclass
class StepResult:
    """Outcome of a single teardown step."""

    step: str
    succeeded: bool
    error: Optional[str] = None


@dataclass
class InstanceDeletionReport:
    """Result of tearing down one instance."""

    identifier: str
    steps: List[StepResult] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return all(s.succeeded for s in self.steps)

    @property
    def failed_steps(self) -> List[str]:
        return [s.step for s in self.steps if not s.succeeded]
