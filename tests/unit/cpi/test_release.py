"""Unit tests for CPI release validation and extraction."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import pytest
import yaml

from microdeck.cpi.release import ReleaseValidator, extract_release
from microdeck.lib.errors import ValidationError


@pytest.mark.unit
class TestReleaseValidator:
    """Tests for ReleaseValidator.validate."""

    def test_valid_release(self, cpi_release_path: Path) -> None:
        manifest = ReleaseValidator().validate(cpi_release_path)

        assert manifest.name == "fake-cpi"
        assert manifest.version == "7"
        assert manifest.cpi_job == "cpi"

    def test_missing_tarball(self, tmp_path: Path) -> None:
        with pytest.raises(ValidationError, match="does not exist") as exc_info:
            ReleaseValidator().validate(tmp_path / "missing.tgz")

        assert exc_info.value.field == "cpi_release"

    def test_missing_release_manifest(
        self, tarball_builder: Any, tmp_path: Path
    ) -> None:
        path = tarball_builder.tarball(
            tmp_path / "r.tgz", {"jobs/cpi/bin/cpi": "#!/bin/sh\n"}
        )

        with pytest.raises(ValidationError, match="release.MF not found"):
            ReleaseValidator().validate(path)

    def test_missing_cpi_executable(self, tarball_builder: Any, tmp_path: Path) -> None:
        path = tarball_builder.cpi_release(
            tmp_path / "r.tgz", include_executable=False
        )

        with pytest.raises(ValidationError, match="has no bin/cpi"):
            ReleaseValidator().validate(path)

    def test_cpi_job_not_in_jobs(self, tarball_builder: Any, tmp_path: Path) -> None:
        manifest = {
            "name": "r",
            "version": "1",
            "cpi_job": "aws_cpi",
            "jobs": [{"name": "other"}],
        }
        path = tarball_builder.tarball(
            tmp_path / "r.tgz",
            {"release.MF": yaml.safe_dump(manifest), "jobs/aws_cpi/bin/cpi": "x"},
        )

        with pytest.raises(ValidationError, match="aws_cpi"):
            ReleaseValidator().validate(path)

    def test_duplicate_support_process_names(
        self, tarball_builder: Any, tmp_path: Path
    ) -> None:
        """Two processes with one name could not both be stopped."""
        process = {"name": "registry", "command": ["bin/registry"]}
        path = tarball_builder.cpi_release(
            tmp_path / "r.tgz", processes=[process, dict(process)]
        )

        with pytest.raises(ValidationError, match="duplicate support process"):
            ReleaseValidator().validate(path)

    def test_not_a_tarball(self, tmp_path: Path) -> None:
        path = tmp_path / "r.tgz"
        path.write_text("plain text")

        with pytest.raises(ValidationError, match="Cannot read tarball"):
            ReleaseValidator().validate(path)

    def test_release_manifest_not_mapping(
        self, tarball_builder: Any, tmp_path: Path
    ) -> None:
        path = tarball_builder.tarball(tmp_path / "r.tgz", {"release.MF": "- a\n- b\n"})

        with pytest.raises(ValidationError, match="not a YAML mapping"):
            ReleaseValidator().validate(path)


@pytest.mark.unit
class TestExtractRelease:
    """Tests for extract_release."""

    def test_extracts_and_marks_executable(
        self, cpi_release_path: Path, tmp_path: Path
    ) -> None:
        """bin/cpi is made executable even if the tarball lost the bit."""
        destination = tmp_path / "installed"

        release = extract_release(cpi_release_path, destination, ReleaseValidator())

        assert release.extracted_path == destination
        assert release.cpi_executable == destination / "jobs" / "cpi" / "bin" / "cpi"
        assert os.access(release.cpi_executable, os.X_OK)
        assert (destination / "release.MF").exists()

    def test_invalid_release_is_not_extracted(self, tmp_path: Path) -> None:
        destination = tmp_path / "installed"

        with pytest.raises(ValidationError):
            extract_release(tmp_path / "missing.tgz", destination, ReleaseValidator())

        assert not destination.exists()
