"""Runtime settings for microdeck.

Settings are resolved from defaults, then ``MICRODECK_*`` environment
variables. The CLI loads a ``.env`` file (python-dotenv) before resolving.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from microdeck.config import defaults
from microdeck.config.validator import first_error_field, flatten_pydantic_errors
from microdeck.lib.errors import ConfigError

logger = logging.getLogger(__name__)

# Environment variable to field name mapping
ENV_VAR_MAP = {
    "home_dir": "MICRODECK_HOME",
    "ping_timeout": "MICRODECK_PING_TIMEOUT",
    "ping_delay": "MICRODECK_PING_DELAY",
    "agent_timeout": "MICRODECK_AGENT_TIMEOUT",
    "cpi_timeout": "MICRODECK_CPI_TIMEOUT",
}


class Settings(BaseModel):
    """Process-wide settings.

    Attributes:
        home_dir: Directory holding the user config and CPI installations
        ping_timeout: Seconds to wait for an agent to answer a ping
        ping_delay: Seconds between ping attempts
        agent_timeout: HTTP timeout for a single agent request
        agent_task_timeout: Ceiling for polling a long-running agent task
        cpi_timeout: Ceiling for a single CPI method invocation
    """

    model_config = ConfigDict(extra="forbid")

    home_dir: Path = Field(
        default=Path(defaults.DEFAULT_HOME_DIR).expanduser(),
        description="microdeck home directory",
    )
    ping_timeout: float = Field(
        default=defaults.DEFAULT_PING_TIMEOUT, gt=0, description="Agent ping timeout"
    )
    ping_delay: float = Field(
        default=defaults.DEFAULT_PING_DELAY, gt=0, description="Agent ping interval"
    )
    agent_timeout: float = Field(
        default=defaults.DEFAULT_AGENT_TIMEOUT, gt=0, description="Agent HTTP timeout"
    )
    agent_task_timeout: float = Field(
        default=defaults.DEFAULT_AGENT_TASK_TIMEOUT,
        gt=0,
        description="Agent task polling ceiling",
    )
    cpi_timeout: float = Field(
        default=defaults.DEFAULT_CPI_TIMEOUT, gt=0, description="CPI call timeout"
    )

    @property
    def user_config_path(self) -> Path:
        """Path of the file recording the current deployment manifest."""
        return self.home_dir / defaults.USER_CONFIG_FILE

    @property
    def installations_dir(self) -> Path:
        """Directory that extracted CPI releases are installed under."""
        return self.home_dir / "installations"

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Settings:
        """Build settings from environment variables.

        Args:
            env: Environment mapping (defaults to ``os.environ``)

        Returns:
            Validated Settings instance

        Raises:
            ConfigError: If an environment value is not acceptable
        """
        env = os.environ if env is None else env
        values: dict[str, Any] = {}
        for field_name, env_var in ENV_VAR_MAP.items():
            raw = env.get(env_var)
            if raw is None or raw == "":
                continue
            values[field_name] = (
                Path(raw).expanduser() if field_name == "home_dir" else raw
            )
            logger.debug(f"Setting {field_name} from {env_var}")

        try:
            return cls(**values)
        except PydanticValidationError as exc:
            field = first_error_field(exc)
            raise ConfigError(
                ENV_VAR_MAP.get(field, field),
                "; ".join(flatten_pydantic_errors(exc)),
            ) from exc
