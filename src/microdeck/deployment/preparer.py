"""Deployment provisioning.

Uploads the stemcell, replaces the deployment's VM and attaches its
persistent disk. Resources that are superseded (an older stemcell, a disk of
the wrong size) stay recorded as orphans until the next delete.
"""

from __future__ import annotations

import logging
import tempfile
import time
import uuid
from collections.abc import Callable
from pathlib import Path

from microdeck.agent.client import AgentClient, AgentClientFactory
from microdeck.agent.retry import PingRetryPolicy
from microdeck.cloud.base import Cloud
from microdeck.config.loader import ManifestParser
from microdeck.cpi.installer import CPIInstaller
from microdeck.cpi.release import ReleaseValidator
from microdeck.deployment.deleter import cpi_context, uninstall_after_failure
from microdeck.deployment.instance import (
    agent_operation,
    shutdown_instance,
    wait_for_agent_step,
)
from microdeck.deployment.stemcell import StemcellReader
from microdeck.lib.errors import (
    AgentUnreachableError,
    DeploymentError,
    NoDeploymentTargetError,
)
from microdeck.lib.ui.stage import EventLogger, SkipStageError, Stage
from microdeck.models.deployment_state import DiskRecord, StemcellRecord
from microdeck.models.manifest import DeploymentManifest, PersistentDiskConfig
from microdeck.models.release import StemcellManifest
from microdeck.state.repos import DiskRepo, StemcellRepo, VMRepo
from microdeck.state.service import DeploymentStateService

logger = logging.getLogger(__name__)


class DeploymentPreparer:
    """Creates or updates the deployment described by a manifest."""

    def __init__(
        self,
        manifest_path: Path | None,
        event_logger: EventLogger,
        manifest_parser: ManifestParser,
        release_validator: ReleaseValidator,
        stemcell_reader: StemcellReader,
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
        self.manifest_path = manifest_path
        self._event_logger = event_logger
        self._manifest_parser = manifest_parser
        self._release_validator = release_validator
        self._stemcell_reader = stemcell_reader
        self._cpi_installer = cpi_installer
        self._agent_client_factory = agent_client_factory
        self._ping_policy = ping_policy
        self._state_service = state_service
        self._vm_repo = vm_repo
        self._disk_repo = disk_repo
        self._stemcell_repo = stemcell_repo
        self._clock = clock
        self._sleep = sleep

    def deploy(self, cpi_release_path: Path, stemcell_path: Path) -> None:
        """Deploy the manifest's single instance.

        Args:
            cpi_release_path: CPI release tarball
            stemcell_path: Stemcell tarball to boot the VM from

        Raises:
            NoDeploymentTargetError: If no deployment manifest is set
            ValidationError: If the manifest, CPI release or stemcell is
                invalid
            DeploymentError: If a provisioning step fails
        """
        if self.manifest_path is None:
            raise NoDeploymentTargetError()
        manifest_path = self.manifest_path

        stage = self._event_logger.new_stage()
        manifest, stemcell_manifest = stage.perform_complex(
            "validating",
            lambda s: self._validate(s, manifest_path, cpi_release_path, stemcell_path),
        )

        # The deployment uuid is assigned on first save
        state = self._state_service.save(self._state_service.load())
        cloud = self._cpi_installer.install(
            cpi_release_path, cpi_context(state.uuid, manifest)
        )
        try:
            stemcell = stage.perform_complex(
                "uploading stemcell",
                lambda s: self._upload_stemcell(
                    s, cloud, stemcell_path, stemcell_manifest
                ),
            )
            stage.perform_complex(
                "deploying", lambda s: self._deploy(s, cloud, manifest, stemcell)
            )
        except Exception:
            uninstall_after_failure(self._cpi_installer)
            raise
        self._cpi_installer.uninstall()

    def _validate(
        self,
        stage: Stage,
        manifest_path: Path,
        cpi_release_path: Path,
        stemcell_path: Path,
    ) -> tuple[DeploymentManifest, StemcellManifest]:
        manifest = stage.perform(
            "Validating deployment manifest",
            lambda: self._manifest_parser.parse(manifest_path),
        )
        stage.perform(
            "Validating cpi release",
            lambda: self._release_validator.validate(cpi_release_path),
        )
        stemcell_manifest = stage.perform(
            "Validating stemcell",
            lambda: self._stemcell_reader.validate(stemcell_path),
        )
        return manifest, stemcell_manifest

    def _upload_stemcell(
        self,
        stage: Stage,
        cloud: Cloud,
        stemcell_path: Path,
        stemcell_manifest: StemcellManifest,
    ) -> StemcellRecord:
        name, version = stemcell_manifest.name, stemcell_manifest.version
        existing = self._stemcell_repo.find(name, version)
        step_name = f"Uploading stemcell '{name}/{version}'"

        if existing is not None:

            def skip() -> None:
                raise SkipStageError("already uploaded")

            stage.perform(step_name, skip)
            self._stemcell_repo.update_current(existing.id)
            return existing

        def upload() -> StemcellRecord:
            with tempfile.TemporaryDirectory(prefix="stemcell-") as work_dir:
                extracted = self._stemcell_reader.extract(stemcell_path, Path(work_dir))
                cid = cloud.create_stemcell(
                    extracted.image_path,
                    stemcell_manifest.model_dump(mode="json")["cloud_properties"],
                )
            record = self._stemcell_repo.save(name, version, cid)
            self._stemcell_repo.update_current(record.id)
            return record

        return stage.perform(step_name, upload)

    def _deploy(
        self,
        stage: Stage,
        cloud: Cloud,
        manifest: DeploymentManifest,
        stemcell: StemcellRecord,
    ) -> None:
        mbus_url = manifest.cloud_provider.mbus

        existing_vm = self._vm_repo.find_current()
        if existing_vm is not None:
            self._delete_existing_vm(stage, cloud, manifest, existing_vm)

        agent_id = str(uuid.uuid4())
        vm_config = manifest.vm.model_dump(mode="json")

        def create_vm() -> str:
            cid = cloud.create_vm(
                agent_id,
                stemcell.cid,
                vm_config["cloud_properties"],
                vm_config["env"],
            )
            self._vm_repo.update_current(cid)
            return cid

        vm_cid = stage.perform(f"Creating VM from stemcell '{stemcell.cid}'", create_vm)

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
            raise DeploymentError(
                operation=f"Waiting for the agent on VM '{vm_cid}'",
                message=exc.message,
            ) from exc

        if manifest.persistent_disk is not None:
            self._attach_persistent_disk(
                stage, cloud, agent, vm_cid, manifest.persistent_disk
            )

    def _delete_existing_vm(
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
                f"Agent on VM '{vm_cid}' is unreachable, replacing the VM "
                f"without stopping it: {exc}"
            )
        else:
            shutdown_instance(stage, agent, manifest.instance_name)

        current_disk = self._disk_repo.find_current()
        if current_disk is not None:
            stage.perform(
                f"Detaching disk '{current_disk.cid}'",
                lambda: cloud.detach_disk(vm_cid, current_disk.cid),
            )

        def delete() -> None:
            cloud.delete_vm(vm_cid)
            self._vm_repo.clear_current()

        stage.perform(f"Deleting VM '{vm_cid}'", delete)

    def _attach_persistent_disk(
        self,
        stage: Stage,
        cloud: Cloud,
        agent: AgentClient,
        vm_cid: str,
        desired: PersistentDiskConfig,
    ) -> None:
        disk = self._disk_repo.find_current()
        if disk is None or disk.size != desired.size:
            if disk is not None:
                logger.info(
                    f"Disk '{disk.cid}' is {disk.size} MiB, manifest asks for "
                    f"{desired.size} MiB; creating a new disk"
                )

            disk_properties = desired.model_dump(mode="json")["cloud_properties"]

            def create_disk() -> DiskRecord:
                cid = cloud.create_disk(desired.size, disk_properties, vm_cid)
                record = self._disk_repo.save(cid, desired.size, disk_properties)
                self._disk_repo.update_current(record.id)
                return record

            disk = stage.perform("Creating disk", create_disk)

        attached = disk
        stage.perform(
            f"Attaching disk '{attached.cid}' to VM '{vm_cid}'",
            lambda: cloud.attach_disk(vm_cid, attached.cid),
        )
        mount_step = f"Mounting disk '{attached.cid}'"
        stage.perform(
            mount_step,
            lambda: agent_operation(
                mount_step, lambda: agent.mount_disk(attached.cid)
            ),
        )
