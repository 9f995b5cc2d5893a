"""
Interfaces of the external systems the instance deleter drives.
"""

import logging
from typing import ContextManager, Protocol

from config import DeleterConfig
from models import InstancePlan, InstanceRecord, NetworkReservation


class Cloud(Protocol):
    def delete_vm(self, vm_cid: str) -> None: ...

    def delete_disk(self, disk_cid: str) -> None: ...

    def delete_snapshot(self, snapshot_cid: str) -> None: ...


class DnsRecordsDeleter(Protocol):
    def delete_dns_records(self, instance_model: InstanceRecord) -> None: ...


class IpReleaser(Protocol):
    def release(self, reservation: NetworkReservation) -> None: ...


class SkipDrainDecider(Protocol):
    def for_job(self, job_name: str) -> bool: ...


class Stopper(Protocol):
    def stop(self) -> None: ...


class StopperFactory(Protocol):
    def __call__(
        self,
        instance_plan: InstancePlan,
        target_state: str,
        skip_drain: bool,
        config: DeleterConfig,
        logger: logging.Logger,
    ) -> Stopper: ...


class Blobstore(Protocol):
    def delete(self, blobstore_id: str) -> None: ...


class TemplatesCleaner(Protocol):
    def clean_all(self) -> None: ...


class ProgressTracker(Protocol):
    def advance_and_track(self, task: str) -> ContextManager[None]: ...
