"""Stemcell tarball validation and extraction.

A stemcell tarball holds ``stemcell.MF`` (``name``, ``version``,
``cloud_properties``) and the OS ``image`` the CPI uploads.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from microdeck.config.validator import flatten_pydantic_errors
from microdeck.lib.errors import ValidationError
from microdeck.lib.tarball import TarballError, extract, list_members, read_yaml_member
from microdeck.models.release import ExtractedStemcell, StemcellManifest

logger = logging.getLogger(__name__)

STEMCELL_MANIFEST = "stemcell.MF"
STEMCELL_IMAGE = "image"


class StemcellReader:
    """Validates and extracts stemcell tarballs."""

    def validate(self, tarball_path: Path) -> StemcellManifest:
        """Validate a stemcell tarball without extracting it.

        Raises:
            ValidationError: If the tarball is missing, unreadable, or lacks
                a valid manifest or image
        """
        if not tarball_path.is_file():
            raise ValidationError(
                field="stemcell",
                message="Stemcell tarball does not exist",
                expected="path to a stemcell tarball",
                actual=str(tarball_path),
            )

        try:
            raw = read_yaml_member(tarball_path, STEMCELL_MANIFEST)
            members = list_members(tarball_path)
        except TarballError as exc:
            raise ValidationError(
                field="stemcell",
                message=str(exc),
                expected=f"a tarball containing {STEMCELL_MANIFEST}",
                actual=str(tarball_path),
            ) from exc

        try:
            manifest = StemcellManifest.model_validate(raw)
        except PydanticValidationError as exc:
            raise ValidationError(
                field="stemcell",
                message="; ".join(flatten_pydantic_errors(exc)),
                expected="a valid stemcell.MF",
                actual=str(tarball_path),
            ) from exc

        if STEMCELL_IMAGE not in members:
            raise ValidationError(
                field="stemcell",
                message="Stemcell tarball has no image",
                expected=STEMCELL_IMAGE,
                actual="missing",
            )

        logger.debug(f"Validated stemcell {manifest.name}/{manifest.version}")
        return manifest

    def extract(self, tarball_path: Path, destination: Path) -> ExtractedStemcell:
        """Validate and extract a stemcell into ``destination``.

        Raises:
            ValidationError: If the tarball is not a valid stemcell
            TarballError: If extraction fails
        """
        manifest = self.validate(tarball_path)
        extract(tarball_path, destination)
        return ExtractedStemcell(manifest=manifest, extracted_path=destination)
