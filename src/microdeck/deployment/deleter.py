"""Deployment deletion.

Removes every resource recorded in the deployment state: the VM (after a
graceful shutdown when its agent answers), the current and orphaned disks,
and the current and orphaned stemcells. The state file is updated after each
successful removal, so re-running after a failure only touches what is left.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

from microdeck.agent.client import AgentClientFactory
from microdeck.agent.retry import PingRetryPolicy
from microdeck.cloud.base import Cloud
from microdeck.config.loader import ManifestParser
from microdeck.cpi.installer import CPIInstaller
from microdeck.cpi.release import ReleaseValidator
from microdeck.deployment.instance import (
    UNKNOWN_INSTANCE,
    shutdown_instance,
    wait_for_agent_step,
)
from microdeck.lib.errors import (
    AgentUnreachableError,
    CloudOperationError,
    CPIUninstallError,
    NoDeploymentTargetError,
)
from microdeck.lib.ui.stage import EventLogger, Stage
from microdeck.models.deployment_state import DiskRecord, StemcellRecord
from microdeck.models.manifest import DeploymentManifest
from microdeck.state.repos import DiskRepo, StemcellRepo, VMRepo
from microdeck.state.service import DeploymentStateService

logger = logging.getLogger(__name__)


def cpi_context(uuid: str, manifest: DeploymentManifest) -> dict[str, Any]:
    """Request context sent with every CPI call for a deployment."""
    return {
        "director_uuid": uuid,
        "properties": manifest.cloud_provider.model_dump(mode="json")["properties"],
    }


def uninstall_after_failure(installer: CPIInstaller) -> None:
    """Uninstall the CPI while another error is already propagating."""
    try:
        installer.uninstall()
    except CPIUninstallError as exc:
        logger.warning(f"Failed to uninstall CPI after an earlier error: {exc}")


class DeploymentDeleter:
    """Deletes the deployment described by a manifest and its state file."""

    def __init__(
        self,
        manifest_path: Path | None,
        event_logger: EventLogger,
        manifest_parser: ManifestParser,
        release_validator: ReleaseValidator,
        cpi_installer: CPIInstaller,
        agent_client_factory: AgentClientFactory,
        ping_policy: PingRetryPolicy,
        state_service: DeploymentStateService,
        vm_repo: VMRepo,
        disk_repo: DiskRepo,
        stemcell_repo: StemcellRepo,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Wire the deleter to its collaborators.

        Args:
            manifest_path: Current deployment manifest, or None when no
                deployment has been set
            event_logger: Stage reporter for user-facing progress
            manifest_parser: Parses the deployment manifest
            release_validator: Validates the CPI release tarball
            cpi_installer: Installs the CPI and yields the Cloud
            agent_client_factory: Builds the agent client for the VM
            ping_policy: Bounded wait for the VM's agent
            state_service: Deployment state file
            vm_repo: Current VM pointer
            disk_repo: Disk records
            stemcell_repo: Stemcell records
            clock: Monotonic clock used by the agent wait
            sleep: Sleep used by the agent wait
        """
        self.manifest_path = manifest_path
        self._event_logger = event_logger
        self._manifest_parser = manifest_parser
        self._release_validator = release_validator
        self._cpi_installer = cpi_installer
        self._agent_client_factory = agent_client_factory
        self._ping_policy = ping_policy
        self._state_service = state_service
        self._vm_repo = vm_repo
        self._disk_repo = disk_repo
        self._stemcell_repo = stemcell_repo
        self._clock = clock
        self._sleep = sleep

    def delete(self, cpi_release_path: Path) -> None:
        """Delete every resource of the deployment.

        Args:
            cpi_release_path: CPI release tarball used to talk to the cloud

        Raises:
            NoDeploymentTargetError: If no deployment manifest is set
            ValidationError: If the manifest or CPI release is invalid
            CPIInstallError: If the CPI cannot be installed
            CloudOperationError: If a cloud resource cannot be deleted
            StatePersistenceError: If the state file cannot be updated
            CPIUninstallError: If the CPI cannot be cleaned up afterwards
        """
        if self.manifest_path is None:
            raise NoDeploymentTargetError()
        manifest_path = self.manifest_path

        stage = self._event_logger.new_stage()
        manifest = stage.perform_complex(
            "validating",
            lambda s: self._validate(s, manifest_path, cpi_release_path),
        )

        if not self._state_service.exists():
            logger.info(f"No deployment state at {self._state_service.state_path}")
            stage.perform_complex("deleting deployment", lambda s: None)
            return

        state = self._state_service.load()
        cloud = self._cpi_installer.install(
            cpi_release_path, cpi_context(state.uuid, manifest)
        )
        try:
            stage.perform_complex(
                "deleting deployment",
                lambda s: self._delete_resources(s, cloud, manifest),
            )
        except Exception:
            uninstall_after_failure(self._cpi_installer)
            raise
        self._cpi_installer.uninstall()

    def _validate(
        self, stage: Stage, manifest_path: Path, cpi_release_path: Path
    ) -> DeploymentManifest:
        manifest = stage.perform(
            "Validating deployment manifest",
            lambda: self._manifest_parser.parse(manifest_path),
        )
        stage.perform(
            "Validating cpi release",
            lambda: self._release_validator.validate(cpi_release_path),
        )
        return manifest

    def _delete_resources(
        self, stage: Stage, cloud: Cloud, manifest: DeploymentManifest
    ) -> None:
        vm_cid = self._vm_repo.find_current()
        if vm_cid is not None:
            self._delete_vm(stage, cloud, manifest, vm_cid)

        current_disk = self._disk_repo.find_current()
        if current_disk is not None:
            stage.perform(
                f"Deleting disk '{current_disk.cid}'",
                lambda: self._delete_disk(cloud, current_disk),
            )

        self._delete_batch(
            stage,
            "Deleting unused disk",
            self._disk_repo.all(),
            lambda record: self._delete_disk(cloud, record),
            "delete_disk",
        )

        current_stemcell = self._stemcell_repo.find_current()
        if current_stemcell is not None:
            stage.perform(
                f"Deleting stemcell '{current_stemcell.cid}'",
                lambda: self._delete_stemcell(cloud, current_stemcell),
            )

        self._delete_batch(
            stage,
            "Deleting unused stemcell",
            self._stemcell_repo.all(),
            lambda record: self._delete_stemcell(cloud, record),
            "delete_stemcell",
        )

    def _delete_vm(
        self, stage: Stage, cloud: Cloud, manifest: DeploymentManifest, vm_cid: str
    ) -> None:
        mbus_url = manifest.cloud_provider.mbus
        agent = self._agent_client_factory.create(mbus_url)
        try:
            wait_for_agent_step(
                stage,
                agent,
                vm_cid,
                mbus_url,
                self._ping_policy,
                clock=self._clock,
                sleep=self._sleep,
            )
        except AgentUnreachableError as exc:
            logger.warning(
                f"Agent on VM '{vm_cid}' is unreachable, deleting the VM "
                f"without stopping it: {exc}"
            )
        else:
            shutdown_instance(stage, agent, UNKNOWN_INSTANCE)

        def delete() -> None:
            cloud.delete_vm(vm_cid)
            self._vm_repo.clear_current()

        stage.perform(f"Deleting VM '{vm_cid}'", delete)

    def _delete_disk(self, cloud: Cloud, record: DiskRecord) -> None:
        cloud.delete_disk(record.cid)
        self._disk_repo.delete(record.id)

    def _delete_stemcell(self, cloud: Cloud, record: StemcellRecord) -> None:
        cloud.delete_stemcell(record.cid)
        self._stemcell_repo.delete(record.id)

    def _delete_batch(
        self,
        stage: Stage,
        step_name: str,
        records: Sequence[DiskRecord] | Sequence[StemcellRecord],
        delete: Callable[[Any], None],
        method: str,
    ) -> None:
        """Delete orphaned records, continuing past individual failures.

        Raises:
            CloudOperationError: Naming every record that could not be
                deleted, once the whole batch has been attempted
        """
        failures: list[str] = []
        for record in records:
            try:
                stage.perform(
                    f"{step_name} '{record.cid}'", lambda r=record: delete(r)
                )
            except CloudOperationError as exc:
                failures.append(f"'{record.cid}' ({exc.message})")

        if failures:
            raise CloudOperationError(
                method, f"{step_name} failed for {', '.join(failures)}"
            )
