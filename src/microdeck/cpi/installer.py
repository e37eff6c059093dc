"""CPI installation lifecycle.

``CPIInstaller.install`` extracts a CPI release into a private working
directory, starts its support processes and returns a ``Cloud`` bound to the
release's CPI executable. ``uninstall`` stops the processes and removes the
working directory.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any

from microdeck.cloud.base import Cloud
from microdeck.cloud.cpi_cloud import CPICloud
from microdeck.config.defaults import DEFAULT_CPI_TIMEOUT
from microdeck.cpi.processes import ProcessStartError, SupportProcessManager
from microdeck.cpi.release import ReleaseValidator, extract_release
from microdeck.lib.errors import CPIInstallError, CPIUninstallError, ValidationError
from microdeck.lib.tarball import TarballError
from microdeck.models.release import CPIRelease

logger = logging.getLogger(__name__)

CloudFactory = Callable[[Path, dict[str, Any]], Cloud]


class CPIInstaller:
    """Installs and uninstalls one CPI release at a time."""

    def __init__(
        self,
        installations_dir: Path,
        validator: ReleaseValidator | None = None,
        process_manager: SupportProcessManager | None = None,
        cloud_factory: CloudFactory | None = None,
        cpi_timeout: float = DEFAULT_CPI_TIMEOUT,
    ) -> None:
        """Create an installer.

        Args:
            installations_dir: Parent directory for extracted releases
            validator: Release validator (default: ReleaseValidator())
            process_manager: Support process manager
            cloud_factory: Builds the Cloud for an installed CPI executable
                (default: CPICloud)
            cpi_timeout: Per-call timeout passed to the default CPICloud
        """
        self.installations_dir = installations_dir
        self._validator = validator or ReleaseValidator()
        self._process_manager = process_manager or SupportProcessManager()
        self._cloud_factory = cloud_factory or (
            lambda executable, context: CPICloud(
                executable, context=context, timeout=cpi_timeout
            )
        )
        self._release: CPIRelease | None = None

    @property
    def installed_release(self) -> CPIRelease | None:
        """The release currently installed, if any."""
        return self._release

    def install(
        self, tarball_path: Path, context: dict[str, Any] | None = None
    ) -> Cloud:
        """Extract, install and start a CPI release.

        Args:
            tarball_path: CPI release tarball
            context: Request context for every CPI call

        Returns:
            A Cloud bound to the installed CPI.

        Raises:
            CPIInstallError: If any step fails; nothing is left running
        """
        if self._release is not None:
            logger.debug("A CPI is already installed, uninstalling it first")
            self.uninstall()

        try:
            self.installations_dir.mkdir(parents=True, exist_ok=True)
            work_dir = Path(tempfile.mkdtemp(prefix="cpi-", dir=self.installations_dir))
        except OSError as exc:
            raise CPIInstallError(
                f"Cannot create installation directory under "
                f"{self.installations_dir}: {exc}"
            ) from exc

        try:
            release = extract_release(tarball_path, work_dir, self._validator)
            logger.info(
                f"Installing CPI release {release.name}/{release.version} in {work_dir}"
            )
            self._process_manager.start(release)
            cloud = self._cloud_factory(release.cpi_executable, context or {})
        except (ValidationError, TarballError, ProcessStartError, OSError) as exc:
            self._process_manager.stop()
            shutil.rmtree(work_dir, ignore_errors=True)
            raise CPIInstallError(str(exc)) from exc

        self._release = release
        return cloud

    def uninstall(self) -> None:
        """Stop support processes and delete the extracted release.

        Does nothing when no CPI is installed.

        Raises:
            CPIUninstallError: If a process could not be stopped or the
                directory could not be removed
        """
        release = self._release
        if release is None:
            return
        self._release = None

        problems: list[str] = []
        failed = self._process_manager.stop()
        if failed:
            problems.append(f"could not stop support processes: {', '.join(failed)}")

        try:
            shutil.rmtree(release.extracted_path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            problems.append(f"could not remove {release.extracted_path}: {exc}")

        if problems:
            raise CPIUninstallError("; ".join(problems))
        logger.info(f"Uninstalled CPI release {release.name}/{release.version}")
