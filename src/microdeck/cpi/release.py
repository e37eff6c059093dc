"""CPI release validation and extraction.

A CPI release is a tarball containing ``release.MF`` and, for the job named
by ``cpi_job``, an executable at ``jobs/<cpi_job>/bin/cpi``.
"""

from __future__ import annotations

import logging
import stat
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from microdeck.config.validator import flatten_pydantic_errors
from microdeck.lib.errors import ValidationError
from microdeck.lib.tarball import TarballError, extract, list_members, read_yaml_member
from microdeck.models.release import CPIRelease, ReleaseManifest

logger = logging.getLogger(__name__)

RELEASE_MANIFEST = "release.MF"


class ReleaseValidator:
    """Checks that a tarball is a usable CPI release."""

    def validate(self, tarball_path: Path) -> ReleaseManifest:
        """Validate a CPI release tarball without extracting it.

        Args:
            tarball_path: Path to the release tarball

        Returns:
            The parsed release manifest.

        Raises:
            ValidationError: If the tarball is missing, unreadable, or not a
                CPI release
        """
        if not tarball_path.is_file():
            raise ValidationError(
                field="cpi_release",
                message="CPI release tarball does not exist",
                expected="path to a release tarball",
                actual=str(tarball_path),
            )

        try:
            raw = read_yaml_member(tarball_path, RELEASE_MANIFEST)
            members = list_members(tarball_path)
        except TarballError as exc:
            raise ValidationError(
                field="cpi_release",
                message=str(exc),
                expected=f"a tarball containing {RELEASE_MANIFEST}",
                actual=str(tarball_path),
            ) from exc

        try:
            manifest = ReleaseManifest.model_validate(raw)
        except PydanticValidationError as exc:
            raise ValidationError(
                field="cpi_release",
                message="; ".join(flatten_pydantic_errors(exc)),
                expected="a valid release.MF",
                actual=str(tarball_path),
            ) from exc

        executable = f"jobs/{manifest.cpi_job}/bin/cpi"
        if executable not in members:
            raise ValidationError(
                field="cpi_release",
                message=f"CPI job '{manifest.cpi_job}' has no bin/cpi",
                expected=executable,
                actual="missing",
            )

        logger.debug(f"Validated CPI release {manifest.name}/{manifest.version}")
        return manifest


def extract_release(
    tarball_path: Path, destination: Path, validator: ReleaseValidator
) -> CPIRelease:
    """Validate and extract a CPI release into ``destination``.

    Raises:
        ValidationError: If the tarball is not a valid CPI release
        TarballError: If extraction fails
    """
    manifest = validator.validate(tarball_path)
    extract(tarball_path, destination)
    release = CPIRelease(manifest=manifest, extracted_path=destination)

    executable = release.cpi_executable
    mode = executable.stat().st_mode
    executable.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return release
