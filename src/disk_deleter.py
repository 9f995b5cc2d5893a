"""
Persistent disk teardown.
"""

import logging
from typing import Iterable, Optional

from collaborators import Cloud
from errors import DiskNotFound
from models import DiskNotFoundPolicy, PersistentDiskRecord
from store import RecordStore

logger = logging.getLogger(__name__)


def delete_persistent_disk(
    cloud: Cloud,
    store: RecordStore,
    disk: PersistentDiskRecord,
    policy: Optional[DiskNotFoundPolicy] = None,
) -> None:
    """
    Delete a disk in the cloud, then drop its record.

    Args:
        cloud: Cloud backend
        store: Record store holding the disk
        disk: Disk to delete
        policy: Not-found handling; derived from disk.active when omitted

    Raises:
        DiskNotFound: If the disk is gone and the policy is RAISE
        CloudError: On any other cloud failure (record is kept)
    """
    if policy is None:
        policy = DiskNotFoundPolicy.for_disk(disk)

    logger.info(f"Deleting persistent disk {disk.disk_cid} (active={disk.active})")
    try:
        cloud.delete_disk(disk.disk_cid)
    except DiskNotFound as e:
        if policy is DiskNotFoundPolicy.RAISE:
            raise
        logger.warning(f"Disk {disk.disk_cid} already gone, removing record: {e}")

    store.delete_persistent_disk(disk.disk_cid)


def delete_persistent_disks(
    cloud: Cloud, store: RecordStore, disks: Iterable[PersistentDiskRecord]
) -> None:
    """Delete every disk in order; the first failure propagates."""
    for disk in disks:
        delete_persistent_disk(cloud, store, disk)
