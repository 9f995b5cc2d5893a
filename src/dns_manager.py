"""
DNS record cleanup for deleted instances.
"""

import logging
import re
from typing import List, Optional

from models import DnsRecord, InstanceRecord
from store import RecordStore

logger = logging.getLogger(__name__)


def canonical(name: str) -> str:
    """DNS-safe form of a job or deployment name."""
    return re.sub(r"[^a-z0-9-]", "-", name.lower()).strip("-")


class DnsManager:
    """Removes the A and PTR records published for an instance."""

    def __init__(self, store: RecordStore, domain_name: Optional[str]):
        """
        Args:
            store: Record store holding the DNS records
            domain_name: DNS domain; None disables DNS cleanup
        """
        self.store = store
        self.domain_name = domain_name

    @property
    def enabled(self) -> bool:
        return self.domain_name is not None

    def records_for_instance(self, instance_model: InstanceRecord) -> List[DnsRecord]:
        """A records named after the instance index or uuid, plus their PTR records."""
        job = canonical(instance_model.job)
        prefixes = (f"{instance_model.index}.{job}.", f"{instance_model.uuid}.{job}.")
        suffix = f".{canonical(instance_model.deployment)}.{self.domain_name}"

        records = self.store.dns_records()
        a_records = [
            r
            for r in records
            if r.type == "A" and r.name.startswith(prefixes) and r.name.endswith(suffix)
        ]
        names = {r.name for r in a_records}
        ptr_records = [r for r in records if r.type == "PTR" and r.content in names]
        return a_records + ptr_records

    def delete_dns_records(self, instance_model: InstanceRecord) -> None:
        if not self.enabled:
            logger.debug(f"DNS disabled, nothing to delete for {instance_model.uuid}")
            return

        records = self.records_for_instance(instance_model)
        removed = self.store.delete_dns_records(records)
        logger.info(
            f"Deleted {removed} DNS record(s) for {instance_model.job}/{instance_model.index}"
        )
