"""
In-memory persistence of instance, VM, disk, snapshot and DNS records.

All operations take a single lock so the store can be shared by the
deletion worker threads.
"""

import threading
from typing import Dict, List, Optional

from models import (
    DnsRecord,
    InstanceRecord,
    PersistentDiskRecord,
    SnapshotRecord,
    VmRecord,
)


class RecordStore:
    """Thread-safe record store. Deleting a record removes it outright."""

    def __init__(self):
        self._lock = threading.Lock()
        self._instances: Dict[str, InstanceRecord] = {}
        self._vms: Dict[str, VmRecord] = {}
        self._disks: Dict[str, PersistentDiskRecord] = {}
        self._snapshots: Dict[str, SnapshotRecord] = {}
        self._dns_records: List[DnsRecord] = []

    # Instances

    def add_instance(self, instance: InstanceRecord) -> InstanceRecord:
        with self._lock:
            self._instances[instance.uuid] = instance
        return instance

    def find_instance(self, uuid: str) -> Optional[InstanceRecord]:
        with self._lock:
            return self._instances.get(uuid)

    def delete_instance(self, uuid: str) -> None:
        with self._lock:
            self._instances.pop(uuid, None)

    # VMs

    def add_vm(self, vm: VmRecord) -> VmRecord:
        with self._lock:
            self._vms[vm.cid] = vm
        return vm

    def find_vm(self, cid: str) -> Optional[VmRecord]:
        with self._lock:
            return self._vms.get(cid)

    def delete_vm(self, cid: str) -> None:
        with self._lock:
            self._vms.pop(cid, None)

    # Persistent disks

    def add_persistent_disk(self, disk: PersistentDiskRecord) -> PersistentDiskRecord:
        with self._lock:
            self._disks[disk.disk_cid] = disk
        return disk

    def find_persistent_disk(self, disk_cid: str) -> Optional[PersistentDiskRecord]:
        with self._lock:
            return self._disks.get(disk_cid)

    def persistent_disks_for(self, instance_uuid: str) -> List[PersistentDiskRecord]:
        """Disks owned by an instance, in insertion order."""
        with self._lock:
            return [d for d in self._disks.values() if d.instance_uuid == instance_uuid]

    def delete_persistent_disk(self, disk_cid: str) -> None:
        with self._lock:
            self._disks.pop(disk_cid, None)

    # Snapshots

    def add_snapshot(self, snapshot: SnapshotRecord) -> SnapshotRecord:
        with self._lock:
            self._snapshots[snapshot.snapshot_cid] = snapshot
        return snapshot

    def snapshots_for_disk(self, disk_cid: str) -> List[SnapshotRecord]:
        with self._lock:
            return [s for s in self._snapshots.values() if s.disk_cid == disk_cid]

    def delete_snapshot(self, snapshot_cid: str) -> None:
        with self._lock:
            self._snapshots.pop(snapshot_cid, None)

    def snapshot_count(self) -> int:
        with self._lock:
            return len(self._snapshots)

    # DNS

    def add_dns_record(self, record: DnsRecord) -> DnsRecord:
        with self._lock:
            self._dns_records.append(record)
        return record

    def dns_records(self) -> List[DnsRecord]:
        with self._lock:
            return list(self._dns_records)

    def delete_dns_records(self, records: List[DnsRecord]) -> int:
        """
        Remove the given DNS records.

        Returns:
            Number of records removed
        """
        with self._lock:
            before = len(self._dns_records)
            self._dns_records = [r for r in self._dns_records if r not in records]
            return before - len(self._dns_records)
