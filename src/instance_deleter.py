"""
Instance teardown for deployments.

Each instance is drained, its VM deleted, then its snapshots and persistent
disks, DNS records, network reservations and rendered templates are removed,
in that order. Many instances are deleted at once on a bounded thread pool.

Without ``force`` the first failing step aborts that instance and the error
reaches the caller, leaving the remaining resources in place for a retry.
With ``force`` every step is attempted and failures are only logged.
"""

import logging
from typing import Any, Callable, Iterable, List, Mapping, Optional

from clients import ComputeRestClient, StorageBlobstore
from collaborators import (
    Blobstore,
    Cloud,
    DnsRecordsDeleter,
    IpReleaser,
    ProgressTracker,
    SkipDrainDecider,
    StopperFactory,
    TemplatesCleaner,
)
from config import DeleterConfig
from disk_deleter import delete_persistent_disks
from dns_manager import DnsManager
from drain import SkipDrain
from errors import InstanceDeletionError
from log_utils import setup_logging
from models import (
    DeploymentInstance,
    InstanceDeletionReport,
    InstancePlan,
    InstanceRecord,
    NetworkReservation,
    PersistentDiskRecord,
    SnapshotRetention,
    StepResult,
)
from snapshot_manager import delete_instance_snapshots
from store import RecordStore
from templates_cleaner import RenderedTemplatesCleaner
from thread_pool import ThreadPool

logger = logging.getLogger(__name__)

STOPPED = "stopped"


class InstanceDeleter:
    """Deletes deployment instances and everything they own."""

    def __init__(
        self,
        ip_provider: IpReleaser,
        skip_drain_decider: SkipDrainDecider,
        dns_manager: DnsRecordsDeleter,
        *,
        cloud: Cloud,
        store: RecordStore,
        blobstore: Blobstore,
        stopper_factory: StopperFactory,
        config: Optional[DeleterConfig] = None,
        force: bool = False,
        keep_snapshots_in_the_cloud: bool = False,
        templates_cleaner_factory: Callable[
            [InstanceRecord, Blobstore], TemplatesCleaner
        ] = RenderedTemplatesCleaner,
    ):
        """
        Initialize the instance deleter.

        Args:
            ip_provider: Allocator the network reservations are released to
            skip_drain_decider: Decides per job whether draining is skipped
            dns_manager: Removes the DNS records of an instance
            cloud: Cloud backend deleting VMs, disks and snapshots
            store: Record store for instance, VM, disk and snapshot records
            blobstore: Blobstore holding rendered templates
            stopper_factory: Builds the stopper that drains an instance
            config: Process-wide settings (defaults to DeleterConfig())
            force: Attempt every step even if earlier ones fail
            keep_snapshots_in_the_cloud: Only remove snapshot records
            templates_cleaner_factory: Builds the rendered templates cleaner
        """
        self.ip_provider = ip_provider
        self.skip_drain_decider = skip_drain_decider
        self.dns_manager = dns_manager
        self.cloud = cloud
        self.store = store
        self.blobstore = blobstore
        self.stopper_factory = stopper_factory
        self.config = config or DeleterConfig()
        self.force = force
        self.snapshot_retention = SnapshotRetention.from_flag(keep_snapshots_in_the_cloud)
        self.templates_cleaner_factory = templates_cleaner_factory

    @classmethod
    def from_config(
        cls,
        config: DeleterConfig,
        *,
        store: RecordStore,
        ip_provider: IpReleaser,
        stopper_factory: StopperFactory,
        project_id: str,
        bucket: str,
        blobstore_prefix: Optional[str] = None,
        force: bool = False,
        keep_snapshots_in_the_cloud: bool = False,
    ) -> "InstanceDeleter":
        """
        Build a deleter backed by Compute Engine and Cloud Storage.

        Args:
            config: Settings; skip_drain and dns_domain_name pick the drain
                decider and DNS manager
            store: Record store shared with the DNS manager
            ip_provider: Allocator the network reservations are released to
            stopper_factory: Builds the stopper that drains an instance
            project_id: GCP project owning the VMs, disks and snapshots
            bucket: Bucket holding rendered templates
            blobstore_prefix: Object name prefix inside the bucket
            force: Attempt every step even if earlier ones fail
            keep_snapshots_in_the_cloud: Only remove snapshot records
        """
        logger.debug(
            f"Building deleter for project {project_id} "
            f"(dns={config.dns_domain_name}, skip_drain={config.skip_drain})"
        )
        return cls(
            ip_provider,
            SkipDrain.from_param(config.skip_drain),
            DnsManager(store, config.dns_domain_name),
            cloud=ComputeRestClient(project_id=project_id),
            store=store,
            blobstore=StorageBlobstore(bucket=bucket, prefix=blobstore_prefix),
            stopper_factory=stopper_factory,
            config=config,
            force=force,
            keep_snapshots_in_the_cloud=keep_snapshots_in_the_cloud,
        )

    @classmethod
    def from_env(
        cls,
        *,
        store: RecordStore,
        ip_provider: IpReleaser,
        stopper_factory: StopperFactory,
        project_id: str,
        bucket: str,
        environ: Optional[Mapping[str, str]] = None,
        **kwargs: Any,
    ) -> "InstanceDeleter":
        """
        Read DeleterConfig from the environment, set up logging and build a deleter.

        Remaining keyword arguments are passed to from_config.
        """
        config = DeleterConfig.from_env(environ)
        setup_logging(verbose=config.verbose, log_file=config.log_file)
        return cls.from_config(
            config,
            store=store,
            ip_provider=ip_provider,
            stopper_factory=stopper_factory,
            project_id=project_id,
            bucket=bucket,
            **kwargs,
        )

    def delete_instances(
        self,
        instances: Iterable[DeploymentInstance],
        event_log_stage: ProgressTracker,
        max_threads: Optional[int] = None,
    ) -> List[InstanceDeletionReport]:
        """
        Delete instances concurrently.

        Args:
            instances: Instances to delete; must not share resources
            event_log_stage: Progress tracker advanced once per instance
            max_threads: Overrides config.max_threads

        Returns:
            One report per instance, in input order

        Raises:
            InstanceDeletionError: If an instance fails without force. Queued
                instances are not started after the first failure; running
                ones finish.
        """
        instances = list(instances)
        threads = max_threads if max_threads is not None else self.config.max_threads
        reports: List[Optional[InstanceDeletionReport]] = [None] * len(instances)

        logger.info(
            f"Deleting {len(instances)} instance(s) with {threads} thread(s) "
            f"(force={self.force}, snapshots={self.snapshot_retention.value})"
        )

        def delete_at(position: int, instance: DeploymentInstance) -> None:
            reports[position] = self.delete_instance(instance, event_log_stage)

        with ThreadPool(max_threads=threads, name="instance-deleter") as pool:
            for position, instance in enumerate(instances):
                pool.process(delete_at, position, instance)

        self._log_summary(reports)
        return reports

    def delete_instance(
        self, instance: DeploymentInstance, event_log_stage: ProgressTracker
    ) -> InstanceDeletionReport:
        """
        Tear down one instance.

        Returns:
            Report listing every attempted step

        Raises:
            InstanceDeletionError: On the first failing step, unless force
        """
        report = InstanceDeletionReport(identifier=instance.identifier)
        model = instance.model

        with event_log_stage.advance_and_track(instance.identifier):
            logger.info(f"Deleting instance {instance.identifier} ({model.uuid})")

            self._run_step(report, "drain", self._drain, instance)
            self._run_step(report, "delete_vm", self._delete_vm, model)
            self._run_step(report, "delete_snapshots", self.delete_snapshots, model)
            self._run_for_each(
                report,
                "delete_persistent_disk",
                self.delete_persistent_disks,
                self.store.persistent_disks_for(model.uuid),
                key=lambda disk: disk.disk_cid,
            )
            self._run_step(
                report, "delete_dns_records", self.dns_manager.delete_dns_records, model
            )
            self._run_for_each(
                report,
                "release_network_reservation",
                self._release_network_reservations,
                [r for r in instance.network_reservations if r.reserved],
                key=lambda reservation: reservation.ip,
            )
            self._run_step(
                report, "clean_rendered_templates", self._clean_rendered_templates, model
            )
            self._run_step(
                report, "delete_instance_record", self.store.delete_instance, model.uuid
            )

        if not report.succeeded:
            logger.warning(
                f"Force deleted {instance.identifier}, failed steps: {', '.join(report.failed_steps)}"
            )
        return report

    def delete_persistent_disks(self, disks: Iterable[PersistentDiskRecord]) -> None:
        """Delete disks in the cloud and drop their records; the first failure propagates."""
        delete_persistent_disks(self.cloud, self.store, disks)

    def delete_snapshots(self, instance_model: InstanceRecord) -> None:
        """Remove the snapshots of all of the instance's disks."""
        delete_instance_snapshots(
            self.cloud, self.store, instance_model, self.snapshot_retention
        )

    def _run_step(
        self,
        report: InstanceDeletionReport,
        step: str,
        fn: Callable[..., Any],
        *args: Any,
    ) -> None:
        try:
            fn(*args)
        except Exception as e:
            report.steps.append(StepResult(step=step, succeeded=False, error=str(e)))
            if not self.force:
                logger.error(f"Deleting {report.identifier} failed at {step}: {e}")
                raise InstanceDeletionError(report.identifier, step, e) from e
            logger.warning(f"Ignoring failure of {step} for {report.identifier}: {e}")
            return
        report.steps.append(StepResult(step=step, succeeded=True))

    def _run_for_each(
        self,
        report: InstanceDeletionReport,
        step: str,
        fn: Callable[[List[Any]], None],
        items: List[Any],
        key: Callable[[Any], str],
    ) -> None:
        """Run fn over all items at once, or item by item when forcing."""
        if not items:
            return
        if not self.force:
            self._run_step(report, f"{step}s", fn, items)
            return
        for item in items:
            self._run_step(report, f"{step}:{key(item)}", fn, [item])

    def _drain(self, instance: DeploymentInstance) -> None:
        skip_drain = self.skip_drain_decider.for_job(instance.job_name)
        plan = InstancePlan(instance=instance, existing_instance=instance.model)
        stopper = self.stopper_factory(plan, STOPPED, skip_drain, self.config, logger)
        stopper.stop()

    def _delete_vm(self, instance_model: InstanceRecord) -> None:
        vm_cid = instance_model.vm_cid
        if vm_cid is None:
            logger.debug(f"Instance {instance_model.uuid} has no VM")
            return

        logger.info(f"Deleting VM {vm_cid}")
        try:
            self.cloud.delete_vm(vm_cid)
        except Exception as e:
            if self.force:
                # the VM is orphaned in the cloud; its record must not block teardown
                logger.warning(f"Failed to delete VM {vm_cid}, removing its record: {e}")
                self._forget_vm(instance_model)
            raise
        self._forget_vm(instance_model)

    def _forget_vm(self, instance_model: InstanceRecord) -> None:
        self.store.delete_vm(instance_model.vm_cid)
        instance_model.vm_cid = None

    def _release_network_reservations(
        self, reservations: List[NetworkReservation]
    ) -> None:
        for reservation in reservations:
            self.ip_provider.release(reservation)

    def _clean_rendered_templates(self, instance_model: InstanceRecord) -> None:
        self.templates_cleaner_factory(instance_model, self.blobstore).clean_all()

    def _log_summary(self, reports: List[Optional[InstanceDeletionReport]]) -> None:
        done = [r for r in reports if r is not None]
        partial = [r for r in done if not r.succeeded]
        logger.info(f"Deleted {len(done)} instance(s), {len(partial)} with ignored failures")
        for r in partial:
            logger.info(f"  {r.identifier:<30} {', '.join(r.failed_steps)}")
