"""Unit tests for CPIInstaller."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from microdeck.cloud.cpi_cloud import CPICloud
from microdeck.cpi.installer import CPIInstaller
from microdeck.cpi.processes import ProcessStartError, SupportProcessManager
from microdeck.lib.errors import CPIInstallError, CPIUninstallError


@pytest.fixture
def process_manager() -> MagicMock:
    manager = MagicMock(spec=SupportProcessManager)
    manager.stop.return_value = []
    return manager


@pytest.fixture
def installations_dir(tmp_path: Path) -> Path:
    return tmp_path / "installations"


class RecordingCloudFactory:
    def __init__(self) -> None:
        self.calls: list[tuple[Path, dict[str, Any]]] = []
        self.cloud = MagicMock()

    def __call__(self, executable: Path, context: dict[str, Any]) -> Any:
        self.calls.append((executable, context))
        return self.cloud


@pytest.mark.unit
class TestCPIInstallerInstall:
    """Tests for installing a CPI release."""

    def test_install_extracts_and_starts(
        self,
        installations_dir: Path,
        process_manager: MagicMock,
        cpi_release_path: Path,
    ) -> None:
        factory = RecordingCloudFactory()
        installer = CPIInstaller(
            installations_dir, process_manager=process_manager, cloud_factory=factory
        )

        cloud = installer.install(cpi_release_path, {"director_uuid": "u-1"})

        assert cloud is factory.cloud
        release = installer.installed_release
        assert release is not None
        assert release.extracted_path.parent == installations_dir
        assert os.access(release.cpi_executable, os.X_OK)
        process_manager.start.assert_called_once_with(release)
        assert factory.calls == [(release.cpi_executable, {"director_uuid": "u-1"})]

    def test_default_cloud_is_cpi_cloud(
        self,
        installations_dir: Path,
        process_manager: MagicMock,
        cpi_release_path: Path,
    ) -> None:
        installer = CPIInstaller(
            installations_dir, process_manager=process_manager, cpi_timeout=42.0
        )

        cloud = installer.install(cpi_release_path, {"director_uuid": "u-1"})

        assert isinstance(cloud, CPICloud)
        assert cloud.context == {"director_uuid": "u-1"}
        assert cloud.timeout == 42.0

    def test_invalid_release_leaves_nothing(
        self,
        installations_dir: Path,
        process_manager: MagicMock,
        tmp_path: Path,
    ) -> None:
        installer = CPIInstaller(installations_dir, process_manager=process_manager)

        with pytest.raises(CPIInstallError, match="Installing CPI"):
            installer.install(tmp_path / "missing.tgz")

        assert list(installations_dir.iterdir()) == []
        assert installer.installed_release is None

    def test_process_failure_cleans_up(
        self,
        installations_dir: Path,
        process_manager: MagicMock,
        cpi_release_path: Path,
    ) -> None:
        process_manager.start.side_effect = ProcessStartError("registry failed")
        installer = CPIInstaller(installations_dir, process_manager=process_manager)

        with pytest.raises(CPIInstallError, match="registry failed"):
            installer.install(cpi_release_path)

        process_manager.stop.assert_called_once()
        assert list(installations_dir.iterdir()) == []

    def test_reinstall_replaces_previous(
        self,
        installations_dir: Path,
        process_manager: MagicMock,
        cpi_release_path: Path,
    ) -> None:
        installer = CPIInstaller(
            installations_dir,
            process_manager=process_manager,
            cloud_factory=RecordingCloudFactory(),
        )
        installer.install(cpi_release_path)
        first = installer.installed_release
        assert first is not None

        installer.install(cpi_release_path)

        assert not first.extracted_path.exists()
        assert len(list(installations_dir.iterdir())) == 1


@pytest.mark.unit
class TestCPIInstallerUninstall:
    """Tests for uninstalling a CPI release."""

    def test_uninstall_removes_directory(
        self,
        installations_dir: Path,
        process_manager: MagicMock,
        cpi_release_path: Path,
    ) -> None:
        installer = CPIInstaller(
            installations_dir,
            process_manager=process_manager,
            cloud_factory=RecordingCloudFactory(),
        )
        installer.install(cpi_release_path)

        installer.uninstall()

        process_manager.stop.assert_called_once()
        assert installer.installed_release is None
        assert list(installations_dir.iterdir()) == []

    def test_uninstall_without_install_is_noop(
        self, installations_dir: Path, process_manager: MagicMock
    ) -> None:
        CPIInstaller(installations_dir, process_manager=process_manager).uninstall()

        process_manager.stop.assert_not_called()

    def test_unstoppable_process_raises(
        self,
        installations_dir: Path,
        process_manager: MagicMock,
        cpi_release_path: Path,
    ) -> None:
        installer = CPIInstaller(
            installations_dir,
            process_manager=process_manager,
            cloud_factory=RecordingCloudFactory(),
        )
        installer.install(cpi_release_path)
        process_manager.stop.return_value = ["registry"]

        with pytest.raises(CPIUninstallError, match="registry"):
            installer.uninstall()

        assert list(installations_dir.iterdir()) == []
