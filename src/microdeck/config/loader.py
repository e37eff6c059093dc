"""Deployment manifest loader.

Parses the deployment manifest YAML, substitutes ``${VAR}`` references from
the environment and validates the result against ``DeploymentManifest``.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from microdeck.config.validator import flatten_pydantic_errors
from microdeck.lib.errors import ValidationError
from microdeck.models.manifest import DeploymentManifest

logger = logging.getLogger(__name__)

ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def substitute_env_vars(text: str, env: Mapping[str, str] | None = None) -> str:
    """Replace ``${NAME}`` with the value of environment variable NAME.

    Raises:
        ValidationError: If a referenced variable is not set
    """
    env = os.environ if env is None else env

    def replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in env:
            raise ValidationError(
                field="manifest",
                message=f"Environment variable '{name}' is not set",
                expected=f"{name} to be defined",
                actual="undefined",
            )
        return env[name]

    return ENV_VAR_PATTERN.sub(replace, text)


class ManifestParser:
    """Loads and validates deployment manifests."""

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        self._env = env

    def parse(self, path: Path) -> DeploymentManifest:
        """Parse a deployment manifest.

        Args:
            path: Manifest file path

        Returns:
            Validated DeploymentManifest

        Raises:
            ValidationError: If the file is missing, not YAML, or invalid
        """
        try:
            raw_text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ValidationError(
                field="manifest",
                message=f"Cannot read deployment manifest: {exc}",
                expected="a readable YAML file",
                actual=str(path),
            ) from exc

        try:
            content: Any = yaml.safe_load(substitute_env_vars(raw_text, self._env))
        except yaml.YAMLError as exc:
            raise ValidationError(
                field="manifest",
                message=f"Failed to parse YAML: {exc}",
                expected="valid YAML",
                actual=str(path),
            ) from exc

        if not isinstance(content, dict):
            raise ValidationError(
                field="manifest",
                message="Deployment manifest must be a YAML mapping",
                expected="mapping",
                actual=type(content).__name__,
            )

        try:
            manifest = DeploymentManifest.model_validate(content)
        except PydanticValidationError as exc:
            raise ValidationError(
                field="manifest",
                message="; ".join(flatten_pydantic_errors(exc)),
                expected="a valid deployment manifest",
                actual=str(path),
            ) from exc

        logger.debug(f"Parsed deployment manifest '{manifest.name}' from {path}")
        return manifest
