"""Deployment state file handling.

The state file has a single writer. Two microdeck processes operating on the
same deployment at once are not supported; there is no file locking.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import uuid
from pathlib import Path

from pydantic import ValidationError

from microdeck.lib.errors import StatePersistenceError
from microdeck.models.deployment_state import DeploymentState

logger = logging.getLogger(__name__)


class DeploymentStateService:
    """Loads and atomically saves the deployment state file."""

    def __init__(self, state_path: Path) -> None:
        """Bind the service to a state file path.

        Args:
            state_path: Location of the JSON state file
        """
        self.state_path = state_path

    def exists(self) -> bool:
        """Return True when a state file has been written."""
        return self.state_path.exists()

    def load(self) -> DeploymentState:
        """Load deployment state from disk.

        A missing or blank file yields an empty state.

        Raises:
            StatePersistenceError: If the file cannot be read or is invalid
        """
        if not self.state_path.exists():
            return DeploymentState()

        try:
            content = self.state_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StatePersistenceError(
                f"Failed to read deployment state at {self.state_path}: {exc}"
            ) from exc

        if not content.strip():
            return DeploymentState()

        try:
            return DeploymentState.model_validate_json(content)
        except ValidationError as exc:
            raise StatePersistenceError(
                f"Invalid deployment state format in {self.state_path}: {exc}"
            ) from exc

    def save(self, state: DeploymentState) -> DeploymentState:
        """Persist deployment state, replacing the file atomically.

        The payload is written to a temporary file in the same directory and
        moved over the old file, so a crash leaves either the old or the new
        state, never a truncated one.

        Returns:
            The state as saved (with a generated uuid on first save).

        Raises:
            StatePersistenceError: If the state cannot be written
        """
        if not state.uuid:
            state = state.model_copy(update={"uuid": str(uuid.uuid4())})

        tmp_name: str | None = None
        try:
            payload = json.dumps(
                state.model_dump(mode="json"), indent=2, sort_keys=True
            )
            self.state_path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.state_path.parent,
                prefix=f".{self.state_path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                tmp_name = handle.name
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.state_path)
            tmp_name = None
        except (OSError, TypeError, ValueError) as exc:
            raise StatePersistenceError(
                f"Failed to write deployment state to {self.state_path}: {exc}"
            ) from exc
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)

        logger.debug(f"Saved deployment state to {self.state_path}")
        return state
