"""User configuration: which deployment manifest commands operate on."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from microdeck.config.defaults import DEPLOYMENT_STATE_FILE
from microdeck.lib.errors import ConfigError, NoDeploymentTargetError


class UserConfig(BaseModel):
    """Persisted CLI selection."""

    model_config = ConfigDict(extra="ignore")

    deployment_file: str | None = Field(
        default=None, description="Absolute path of the current deployment manifest"
    )

    def require_deployment_file(self) -> Path:
        """Return the deployment manifest path or raise when none is set."""
        if not self.deployment_file:
            raise NoDeploymentTargetError()
        return Path(self.deployment_file)

    def deployment_state_path(self) -> Path:
        """State file path for the current deployment (sits beside the manifest)."""
        return self.require_deployment_file().parent / DEPLOYMENT_STATE_FILE


def load_user_config(path: Path) -> UserConfig:
    """Load the user config, returning an empty one when the file is missing."""
    if not path.exists():
        return UserConfig()

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError("user_config", f"Failed to read {path}: {exc}") from exc

    if not content.strip():
        return UserConfig()

    try:
        return UserConfig.model_validate_json(content)
    except PydanticValidationError as exc:
        raise ConfigError(
            "user_config", f"Invalid user config in {path}: {exc}"
        ) from exc


def save_user_config(path: Path, config: UserConfig) -> None:
    """Persist the user config."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(config.model_dump(mode="json"), indent=2, sort_keys=True)
        path.write_text(payload, encoding="utf-8")
    except OSError as exc:
        raise ConfigError("user_config", f"Failed to write {path}: {exc}") from exc
