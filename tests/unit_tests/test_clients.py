"""
Unit tests for ComputeRestClient and StorageBlobstore.
"""

import unittest
from unittest.mock import MagicMock, patch
from clients import ComputeRestClient, StorageBlobstore
from errors import (
    BlobNotFound,
    BlobstoreError,
    CloudError,
    DiskNotFound,
    SnapshotNotFound,
    VmNotFound,
)


def _response(status_code, payload=None, headers=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload or {}
    resp.headers = headers or {}
    resp.text = str(payload)
    return resp


class TestComputeRestClient(unittest.TestCase):
    """Test ComputeRestClient REST API interactions."""

    def setUp(self):
        """Set up test fixtures."""
        with patch("google.auth.default") as mock_auth:
            mock_creds = MagicMock()
            mock_auth.return_value = (mock_creds, None)
            self.client = ComputeRestClient(
                project_id="test-project", poll_interval=0, base_delay=0
            )
        self.session = MagicMock()
        self.client.session = self.session

    def test_client_initialization(self):
        """Test client is properly initialised."""
        self.assertEqual(self.client.project_id, "test-project")
        self.assertEqual(self.client.timeout_s, 60)
        self.assertEqual(self.client.max_retries, 5)

    def test_url_construction(self):
        """Test API URL construction."""
        url = self.client._url("zones/europe-west2-a/instances/vm-1")
        self.assertEqual(
            url,
            "https://compute.googleapis.com/compute/v1/projects/test-project/zones/europe-west2-a/instances/vm-1",
        )

    def test_invalid_cid(self):
        """Test zonal cids must name a zone."""
        with self.assertRaises(ValueError):
            self.client.delete_vm("vm-without-zone")

    def test_delete_vm_waits_for_operation(self):
        """Test VM deletion polls the operation until DONE."""
        self.session.delete.return_value = _response(
            200, {"name": "op-1", "status": "RUNNING", "selfLink": "https://op/1"}
        )
        self.session.get.return_value = _response(200, {"name": "op-1", "status": "DONE"})

        self.client.delete_vm("europe-west2-a/vm-1")

        self.assertIn("zones/europe-west2-a/instances/vm-1", self.session.delete.call_args[0][0])
        self.session.get.assert_called_once()

    def test_delete_vm_not_found(self):
        """Test a 404 becomes VmNotFound."""
        self.session.delete.return_value = _response(404)
        with self.assertRaises(VmNotFound):
            self.client.delete_vm("europe-west2-a/vm-1")

    def test_delete_disk_not_found(self):
        """Test a 404 becomes DiskNotFound."""
        self.session.delete.return_value = _response(404)
        with self.assertRaises(DiskNotFound) as ctx:
            self.client.delete_disk("europe-west2-a/disk-1")
        self.assertEqual(ctx.exception.resource_id, "europe-west2-a/disk-1")

    def test_delete_snapshot_not_found(self):
        """Test a 404 becomes SnapshotNotFound."""
        self.session.delete.return_value = _response(404)
        with self.assertRaises(SnapshotNotFound):
            self.client.delete_snapshot("snap-1")
        self.assertIn("global/snapshots/snap-1", self.session.delete.call_args[0][0])

    def test_operation_error(self):
        """Test an operation finishing with an error raises CloudError."""
        self.session.delete.return_value = _response(
            200,
            {
                "name": "op-1",
                "status": "DONE",
                "error": {"errors": [{"message": "disk in use"}]},
            },
        )
        with self.assertRaises(CloudError) as ctx:
            self.client.delete_disk("europe-west2-a/disk-1")
        self.assertIn("disk in use", str(ctx.exception))

    def test_unexpected_status(self):
        """Test non-retryable errors raise CloudError."""
        self.session.delete.return_value = _response(403, {"error": {"message": "denied"}})
        with self.assertRaises(CloudError):
            self.client.delete_vm("europe-west2-a/vm-1")

    @patch("clients.time.sleep")
    def test_retries_transient_errors(self, mock_sleep):
        """Test retryable status codes are retried."""
        self.session.delete.side_effect = [
            _response(503, {"error": {"message": "unavailable"}}),
            _response(200, {"name": "op-1", "status": "DONE"}),
        ]

        self.client.delete_snapshot("snap-1")

        self.assertEqual(self.session.delete.call_count, 2)
        mock_sleep.assert_called_once()

    @patch("clients.time.sleep")
    def test_max_retries_exceeded(self, mock_sleep):
        """Test CloudError after all retries fail."""
        self.client.max_retries = 2
        self.session.delete.return_value = _response(429)

        with self.assertRaises(CloudError):
            self.client.delete_snapshot("snap-1")

        self.assertEqual(self.session.delete.call_count, 3)

    def test_retry_after_header(self):
        """Test Retry-After header drives the delay."""
        resp = _response(429, headers={"Retry-After": "7"})
        self.assertEqual(self.client._calculate_delay(0, resp), 7.0)


class TestStorageBlobstore(unittest.TestCase):
    """Test StorageBlobstore."""

    def setUp(self):
        """Set up test fixtures."""
        with patch("google.auth.default") as mock_auth:
            mock_auth.return_value = (MagicMock(), None)
            self.blobstore = StorageBlobstore(bucket="bucket", prefix="rendered", base_delay=0)
        self.session = MagicMock()
        self.blobstore.session = self.session

    def test_delete(self):
        """Test objects are deleted by URL-encoded name."""
        self.session.delete.return_value = _response(204)

        self.blobstore.delete("abc/123")

        url = self.session.delete.call_args[0][0]
        self.assertTrue(url.endswith("/b/bucket/o/rendered%2Fabc%2F123"))

    def test_delete_not_found(self):
        """Test a 404 becomes BlobNotFound."""
        self.session.delete.return_value = _response(404)
        with self.assertRaises(BlobNotFound):
            self.blobstore.delete("missing")

    def test_delete_failure(self):
        """Test other errors become BlobstoreError."""
        self.session.delete.return_value = _response(403)
        with self.assertRaises(BlobstoreError):
            self.blobstore.delete("forbidden")


if __name__ == "__main__":
    unittest.main()
