"""
Cleanup of rendered job template archives stored in the blobstore.
"""

import logging

from collaborators import Blobstore
from errors import BlobNotFound
from models import InstanceRecord

logger = logging.getLogger(__name__)


class RenderedTemplatesCleaner:
    """Deletes an instance's rendered template archives."""

    def __init__(self, instance_model: InstanceRecord, blobstore: Blobstore):
        self.instance_model = instance_model
        self.blobstore = blobstore

    def clean_all(self) -> None:
        """
        Delete every archive blob and drop it from the instance record.

        A blob that is already missing counts as deleted.

        Raises:
            BlobstoreError: If a blob cannot be deleted (remaining archives are kept)
        """
        while self.instance_model.rendered_templates:
            archive = self.instance_model.rendered_templates[0]
            try:
                self.blobstore.delete(archive.blobstore_id)
            except BlobNotFound:
                logger.warning(f"Rendered templates blob {archive.blobstore_id} already gone")
            self.instance_model.rendered_templates.pop(0)
            logger.debug(f"Deleted rendered templates blob {archive.blobstore_id}")
