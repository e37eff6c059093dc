"""Object graph for one CLI invocation.

Everything is built eagerly from ``Settings`` and the UI. Orchestrators bound
to a deployment manifest are created per command, because the state file
lives beside the manifest.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from microdeck.agent.client import AgentClientFactory
from microdeck.agent.retry import PingRetryPolicy
from microdeck.config.defaults import DEPLOYMENT_STATE_FILE
from microdeck.config.loader import ManifestParser
from microdeck.config.settings import Settings
from microdeck.cpi.installer import CPIInstaller
from microdeck.cpi.processes import SupportProcessManager
from microdeck.cpi.release import ReleaseValidator
from microdeck.deployment.deleter import DeploymentDeleter
from microdeck.deployment.preparer import DeploymentPreparer
from microdeck.deployment.stemcell import StemcellReader
from microdeck.lib.ui.console import UI
from microdeck.lib.ui.stage import EventLogger
from microdeck.state.repos import DiskRepo, StemcellRepo, VMRepo
from microdeck.state.service import DeploymentStateService


@dataclass
class DeploymentRepos:
    """State service and repositories for one deployment."""

    state_service: DeploymentStateService
    vm_repo: VMRepo
    disk_repo: DiskRepo
    stemcell_repo: StemcellRepo

    @classmethod
    def for_manifest(cls, manifest_path: Path) -> DeploymentRepos:
        service = DeploymentStateService(manifest_path.parent / DEPLOYMENT_STATE_FILE)
        return cls(
            state_service=service,
            vm_repo=VMRepo(service),
            disk_repo=DiskRepo(service),
            stemcell_repo=StemcellRepo(service),
        )


@dataclass
class Dependencies:
    """Shared collaborators built once per process."""

    settings: Settings
    event_logger: EventLogger
    manifest_parser: ManifestParser
    release_validator: ReleaseValidator
    stemcell_reader: StemcellReader
    cpi_installer: CPIInstaller
    agent_client_factory: AgentClientFactory
    ping_policy: PingRetryPolicy
    clock: Callable[[], float] = field(default=time.monotonic)
    sleep: Callable[[float], None] = field(default=time.sleep)

    def new_deleter(self, manifest_path: Path) -> DeploymentDeleter:
        """Build a deleter for the given deployment manifest."""
        repos = DeploymentRepos.for_manifest(manifest_path)
        return DeploymentDeleter(
            manifest_path=manifest_path,
            event_logger=self.event_logger,
            manifest_parser=self.manifest_parser,
            release_validator=self.release_validator,
            cpi_installer=self.cpi_installer,
            agent_client_factory=self.agent_client_factory,
            ping_policy=self.ping_policy,
            state_service=repos.state_service,
            vm_repo=repos.vm_repo,
            disk_repo=repos.disk_repo,
            stemcell_repo=repos.stemcell_repo,
            clock=self.clock,
            sleep=self.sleep,
        )

    def new_preparer(self, manifest_path: Path) -> DeploymentPreparer:
        """Build a preparer for the given deployment manifest."""
        repos = DeploymentRepos.for_manifest(manifest_path)
        return DeploymentPreparer(
            manifest_path=manifest_path,
            event_logger=self.event_logger,
            manifest_parser=self.manifest_parser,
            release_validator=self.release_validator,
            stemcell_reader=self.stemcell_reader,
            cpi_installer=self.cpi_installer,
            agent_client_factory=self.agent_client_factory,
            ping_policy=self.ping_policy,
            state_service=repos.state_service,
            vm_repo=repos.vm_repo,
            disk_repo=repos.disk_repo,
            stemcell_repo=repos.stemcell_repo,
            clock=self.clock,
            sleep=self.sleep,
        )


def build_dependencies(settings: Settings, ui: UI) -> Dependencies:
    """Construct the collaborators every command shares."""
    release_validator = ReleaseValidator()
    return Dependencies(
        settings=settings,
        event_logger=EventLogger(ui),
        manifest_parser=ManifestParser(),
        release_validator=release_validator,
        stemcell_reader=StemcellReader(),
        cpi_installer=CPIInstaller(
            settings.installations_dir,
            validator=release_validator,
            process_manager=SupportProcessManager(),
            cpi_timeout=settings.cpi_timeout,
        ),
        agent_client_factory=AgentClientFactory(
            timeout=settings.agent_timeout,
            task_timeout=settings.agent_task_timeout,
        ),
        ping_policy=PingRetryPolicy(
            timeout=settings.ping_timeout, delay=settings.ping_delay
        ),
    )
