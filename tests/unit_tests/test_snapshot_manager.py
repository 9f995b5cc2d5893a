"""
Unit tests for snapshot teardown.
"""

import unittest
from unittest.mock import MagicMock

from errors import CloudError, SnapshotNotFound
from models import InstanceRecord, PersistentDiskRecord, SnapshotRecord, SnapshotRetention
from snapshot_manager import (
    delete_instance_snapshots,
    delete_snapshots,
    snapshots_for_instance,
)
from store import RecordStore


class TestSnapshotManager(unittest.TestCase):
    """Test snapshot deletion with both retention policies."""

    def setUp(self):
        """Set up test fixtures."""
        self.cloud = MagicMock()
        self.store = RecordStore()
        self.instance = self.store.add_instance(
            InstanceRecord(uuid="uuid-1", job="db", index=0, deployment="dep")
        )
        for cid in ("disk-a", "disk-b"):
            self.store.add_persistent_disk(PersistentDiskRecord(disk_cid=cid, instance_uuid="uuid-1"))
        self.store.add_persistent_disk(PersistentDiskRecord(disk_cid="disk-other", instance_uuid="uuid-2"))

        self.store.add_snapshot(SnapshotRecord(snapshot_cid="snap-a1", disk_cid="disk-a"))
        self.store.add_snapshot(SnapshotRecord(snapshot_cid="snap-a2", disk_cid="disk-a"))
        self.store.add_snapshot(SnapshotRecord(snapshot_cid="snap-b1", disk_cid="disk-b"))
        self.store.add_snapshot(SnapshotRecord(snapshot_cid="snap-other", disk_cid="disk-other"))

    def test_snapshots_for_instance(self):
        """Test snapshots of all the instance's disks, and only those, are collected."""
        cids = sorted(s.snapshot_cid for s in snapshots_for_instance(self.store, self.instance))
        self.assertEqual(cids, ["snap-a1", "snap-a2", "snap-b1"])

    def test_deletes_from_cloud_by_default(self):
        """Test cloud snapshots are deleted before their records."""
        delete_instance_snapshots(self.cloud, self.store, self.instance)

        deleted = sorted(c.args[0] for c in self.cloud.delete_snapshot.call_args_list)
        self.assertEqual(deleted, ["snap-a1", "snap-a2", "snap-b1"])
        self.assertEqual(self.store.snapshot_count(), 1)

    def test_keep_in_cloud_only_removes_records(self):
        """Test KEEP_IN_CLOUD never touches the cloud."""
        delete_instance_snapshots(
            self.cloud, self.store, self.instance, SnapshotRetention.KEEP_IN_CLOUD
        )

        self.cloud.delete_snapshot.assert_not_called()
        self.assertEqual(self.store.snapshot_count(), 1)
        self.assertEqual(self.store.snapshots_for_disk("disk-a"), [])

    def test_cloud_failure_keeps_record(self):
        """Test a failed cloud deletion propagates and leaves its record."""
        snapshot = self.store.snapshots_for_disk("disk-b")[0]
        self.cloud.delete_snapshot.side_effect = CloudError("boom")

        with self.assertRaises(CloudError):
            delete_snapshots(self.cloud, self.store, [snapshot])

        self.assertEqual(len(self.store.snapshots_for_disk("disk-b")), 1)

    def test_not_found_is_not_ignored(self):
        """Test a missing cloud snapshot is an error."""
        snapshot = self.store.snapshots_for_disk("disk-b")[0]
        self.cloud.delete_snapshot.side_effect = SnapshotNotFound("snap-b1")

        with self.assertRaises(SnapshotNotFound):
            delete_snapshots(self.cloud, self.store, [snapshot])

    def test_retention_from_flag(self):
        """Test the boolean flag maps to the retention policy."""
        self.assertIs(SnapshotRetention.from_flag(True), SnapshotRetention.KEEP_IN_CLOUD)
        self.assertIs(SnapshotRetention.from_flag(False), SnapshotRetention.DELETE_FROM_CLOUD)


if __name__ == "__main__":
    unittest.main()
