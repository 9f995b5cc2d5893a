"""
REST API clients for Compute Engine (v1) and Cloud Storage (v1).
"""

import logging
import time
from typing import Dict, Optional, Tuple, Type
from urllib.parse import quote

import google.auth
from google.auth.transport.requests import AuthorizedSession

from errors import (
    BlobNotFound,
    BlobstoreError,
    CloudError,
    DiskNotFound,
    ResourceNotFound,
    SnapshotNotFound,
    VmNotFound,
)

logger = logging.getLogger(__name__)

COMPUTE_API_BASE = "https://compute.googleapis.com/compute/v1"
STORAGE_API_BASE = "https://storage.googleapis.com/storage/v1"


class _RestClient:
    """Authorized session with retry and exponential backoff."""

    RETRYABLE_STATUS_CODES = {409, 429, 500, 502, 503, 504}

    def __init__(
        self,
        timeout_s: int = 60,
        max_retries: int = 5,
        base_delay: float = 5.0,
    ):
        """
        Initialize the REST client.

        Args:
            timeout_s: Request timeout in seconds
            max_retries: Maximum number of retries for transient errors
            base_delay: Base delay for exponential backoff
        """
        self.timeout_s = timeout_s
        self.max_retries = max_retries
        self.base_delay = base_delay

        creds, _ = google.auth.default(
            scopes=["https://www.googleapis.com/auth/cloud-platform"]
        )
        self.session = AuthorizedSession(creds)

    def _request_with_retry(self, method: str, url: str, **kwargs):
        """
        Execute HTTP request with exponential backoff retry for transient errors.

        Args:
            method: HTTP method (GET, DELETE)
            url: Request URL
            **kwargs: Additional request parameters

        Returns:
            Response object

        Raises:
            CloudError: If max retries exceeded
        """
        method = method.upper()
        if method not in ("GET", "DELETE"):
            raise ValueError(f"Unsupported method: {method}")
        last_error = None

        for attempt in range(self.max_retries + 1):
            try:
                if method == "GET":
                    resp = self.session.get(url, timeout=self.timeout_s, **kwargs)
                else:
                    resp = self.session.delete(url, timeout=self.timeout_s, **kwargs)
            except Exception as e:
                delay = self._calculate_delay(attempt)
                logger.warning(
                    f"Request error: {e}, attempt {attempt + 1}/{self.max_retries + 1}, waiting {delay:.1f}s..."
                )
                last_error = str(e)
                time.sleep(delay)
                continue

            if resp.status_code in self.RETRYABLE_STATUS_CODES:
                delay = self._calculate_delay(attempt, resp)
                error_info = self._error_message(resp)
                logger.warning(
                    f"Retryable error {resp.status_code} ({error_info}), attempt {attempt + 1}/{self.max_retries + 1}, waiting {delay:.1f}s..."
                )
                last_error = f"HTTP {resp.status_code}: {error_info or resp.text[:200]}"
                time.sleep(delay)
                continue

            return resp

        raise CloudError(f"Max retries exceeded. Last error: {last_error}")

    @staticmethod
    def _error_message(resp) -> str:
        try:
            return resp.json().get("error", {}).get("message", "")
        except ValueError:
            return ""

    def _calculate_delay(self, attempt: int, resp=None) -> float:
        """
        Calculate delay with exponential backoff and jitter.

        Args:
            attempt: Current attempt number
            resp: Optional response object (to check Retry-After header)

        Returns:
            Delay in seconds
        """
        if resp is not None and "Retry-After" in resp.headers:
            try:
                return float(resp.headers["Retry-After"])
            except ValueError:
                pass

        delay = self.base_delay * (2**attempt)
        jitter = delay * 0.2 * (0.5 - time.time() % 1)
        return min(delay + jitter, 180.0)


class ComputeRestClient(_RestClient):
    """
    Cloud backend on top of the Compute Engine v1 API.

    VM and disk cids are "<zone>/<name>"; snapshot cids are global names.
    """

    def __init__(
        self,
        project_id: str,
        poll_interval: float = 5.0,
        operation_timeout: int = 900,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.project_id = project_id
        self.poll_interval = poll_interval
        self.operation_timeout = operation_timeout

    def _url(self, path: str) -> str:
        """Construct full API URL from project-relative path."""
        return f"{COMPUTE_API_BASE}/projects/{self.project_id}/{path.lstrip('/')}"

    @staticmethod
    def _split_cid(cid: str) -> Tuple[str, str]:
        zone, sep, name = cid.partition("/")
        if not sep or not zone or not name:
            raise ValueError(f"Expected '<zone>/<name>' cid, got '{cid}'")
        return zone, name

    def delete_vm(self, vm_cid: str) -> None:
        zone, name = self._split_cid(vm_cid)
        self._delete(self._url(f"zones/{zone}/instances/{name}"), vm_cid, VmNotFound)

    def delete_disk(self, disk_cid: str) -> None:
        zone, name = self._split_cid(disk_cid)
        self._delete(self._url(f"zones/{zone}/disks/{name}"), disk_cid, DiskNotFound)

    def delete_snapshot(self, snapshot_cid: str) -> None:
        self._delete(
            self._url(f"global/snapshots/{snapshot_cid}"), snapshot_cid, SnapshotNotFound
        )

    def _delete(
        self, url: str, cid: str, not_found: Type[ResourceNotFound]
    ) -> None:
        """
        Delete a resource and wait for the operation to finish.

        Raises:
            ResourceNotFound: Subclass given by not_found on HTTP 404
            CloudError: On any other failure
        """
        resp = self._request_with_retry("DELETE", url)
        if resp.status_code == 404:
            raise not_found(cid)
        if resp.status_code not in (200, 202):
            raise CloudError(f"Delete {cid} failed ({resp.status_code}): {resp.text}")

        op = resp.json()
        logger.debug(f"Delete of {cid} started (op={op.get('name')})")
        self._wait_for_operation(op, cid)

    def _wait_for_operation(self, op: Dict, cid: str) -> None:
        """
        Poll a zonal or global operation until it is DONE.

        Raises:
            CloudError: If the operation reports an error or times out
        """
        start = time.time()
        while op.get("status") != "DONE":
            if time.time() - start > self.operation_timeout:
                raise CloudError(
                    f"Timeout waiting for operation {op.get('name')} on {cid} after {self.operation_timeout}s"
                )
            time.sleep(self.poll_interval)
            resp = self._request_with_retry("GET", op["selfLink"])
            if resp.status_code != 200:
                raise CloudError(
                    f"Get operation failed ({resp.status_code}): {resp.text}"
                )
            op = resp.json()

        if "error" in op:
            errors = op["error"].get("errors", [])
            message = "; ".join(e.get("message", "") for e in errors) or str(op["error"])
            raise CloudError(f"Operation on {cid} failed: {message}")


class StorageBlobstore(_RestClient):
    """Blobstore backed by a Cloud Storage bucket."""

    def __init__(self, bucket: str, prefix: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.bucket = bucket
        self.prefix = prefix

    def _object_url(self, blobstore_id: str) -> str:
        name = f"{self.prefix.rstrip('/')}/{blobstore_id}" if self.prefix else blobstore_id
        return f"{STORAGE_API_BASE}/b/{self.bucket}/o/{quote(name, safe='')}"

    def delete(self, blobstore_id: str) -> None:
        """
        Delete an object from the bucket.

        Raises:
            BlobNotFound: If the object does not exist
            BlobstoreError: On any other failure
        """
        try:
            resp = self._request_with_retry("DELETE", self._object_url(blobstore_id))
        except CloudError as e:
            raise BlobstoreError(f"Delete blob {blobstore_id} failed: {e}") from e
        if resp.status_code == 404:
            raise BlobNotFound(f"Blob '{blobstore_id}' not found")
        if resp.status_code not in (200, 204):
            raise BlobstoreError(
                f"Delete blob {blobstore_id} failed ({resp.status_code}): {resp.text}"
            )
