"""
Snapshot teardown for the persistent disks of an instance.
"""

import logging
from typing import Iterable, List

from collaborators import Cloud
from models import InstanceRecord, SnapshotRecord, SnapshotRetention
from store import RecordStore

logger = logging.getLogger(__name__)


def snapshots_for_instance(
    store: RecordStore, instance_model: InstanceRecord
) -> List[SnapshotRecord]:
    """Collect the snapshots of every disk owned by the instance."""
    snapshots: List[SnapshotRecord] = []
    for disk in store.persistent_disks_for(instance_model.uuid):
        snapshots.extend(store.snapshots_for_disk(disk.disk_cid))
    return snapshots


def delete_snapshots(
    cloud: Cloud,
    store: RecordStore,
    snapshots: Iterable[SnapshotRecord],
    retention: SnapshotRetention = SnapshotRetention.DELETE_FROM_CLOUD,
) -> None:
    """
    Remove snapshot records, deleting the cloud snapshot first unless kept.

    Args:
        cloud: Cloud backend
        store: Record store holding the snapshots
        snapshots: Snapshots to delete
        retention: Whether the cloud snapshot survives its record

    Raises:
        CloudError: If a cloud deletion fails (that record is kept)
    """
    for snapshot in snapshots:
        if retention is SnapshotRetention.DELETE_FROM_CLOUD:
            logger.info(f"Deleting snapshot {snapshot.snapshot_cid} of disk {snapshot.disk_cid}")
            cloud.delete_snapshot(snapshot.snapshot_cid)
        else:
            logger.info(
                f"Keeping snapshot {snapshot.snapshot_cid} in the cloud, removing record"
            )
        store.delete_snapshot(snapshot.snapshot_cid)


def delete_instance_snapshots(
    cloud: Cloud,
    store: RecordStore,
    instance_model: InstanceRecord,
    retention: SnapshotRetention = SnapshotRetention.DELETE_FROM_CLOUD,
) -> None:
    """Delete the snapshots of all disks owned by an instance."""
    delete_snapshots(cloud, store, snapshots_for_instance(store, instance_model), retention)
