"""Cloud implementation backed by an installed CPI executable.

Each method runs the CPI once. The request is a JSON document on stdin::

    {"method": "delete_vm", "arguments": ["i-123"], "context": {...}}

and the CPI answers on stdout with::

    {"result": ..., "error": null, "log": "..."}
"""

from __future__ import annotations

import json
import logging
import subprocess  # nosec B404
from pathlib import Path
from typing import Any

from microdeck.cloud.base import Cloud
from microdeck.config.defaults import DEFAULT_CPI_TIMEOUT
from microdeck.lib.errors import CloudOperationError

logger = logging.getLogger(__name__)


class CPICloud(Cloud):
    """Invoke CPI methods through the release's ``bin/cpi`` executable."""

    def __init__(
        self,
        executable: Path,
        context: dict[str, Any] | None = None,
        timeout: float = DEFAULT_CPI_TIMEOUT,
    ) -> None:
        """Bind to a CPI executable.

        Args:
            executable: Path of the installed CPI entry point
            context: Request context sent with every call (deployment uuid,
                cloud provider properties)
            timeout: Seconds a single call may take
        """
        self.executable = executable
        self.context = context or {}
        self.timeout = timeout

    def create_stemcell(
        self, image_path: Path, cloud_properties: dict[str, Any]
    ) -> str:
        return str(self._call("create_stemcell", str(image_path), cloud_properties))

    def delete_stemcell(self, stemcell_cid: str) -> None:
        self._call("delete_stemcell", stemcell_cid)

    def create_vm(
        self,
        agent_id: str,
        stemcell_cid: str,
        cloud_properties: dict[str, Any],
        env: dict[str, Any],
    ) -> str:
        cid = self._call(
            "create_vm", agent_id, stemcell_cid, cloud_properties, {}, [], env
        )
        return str(cid)

    def delete_vm(self, vm_cid: str) -> None:
        self._call("delete_vm", vm_cid)

    def create_disk(
        self, size: int, cloud_properties: dict[str, Any], vm_cid: str
    ) -> str:
        return str(self._call("create_disk", size, cloud_properties, vm_cid))

    def attach_disk(self, vm_cid: str, disk_cid: str) -> None:
        self._call("attach_disk", vm_cid, disk_cid)

    def detach_disk(self, vm_cid: str, disk_cid: str) -> None:
        self._call("detach_disk", vm_cid, disk_cid)

    def delete_disk(self, disk_cid: str) -> None:
        self._call("delete_disk", disk_cid)

    def _call(self, method: str, *arguments: Any) -> Any:
        """Run one CPI method and return its result.

        Raises:
            CloudOperationError: If the CPI cannot be run, exits non-zero,
                prints something that is not a response, or reports an error
        """
        try:
            request = json.dumps(
                {
                    "method": method,
                    "arguments": list(arguments),
                    "context": self.context,
                }
            )
        except (TypeError, ValueError) as exc:
            raise CloudOperationError(
                method, f"Request cannot be encoded as JSON: {exc}"
            ) from exc
        logger.debug(f"CPI request: {method} {list(arguments)!r}")

        try:
            completed = subprocess.run(  # noqa: S603  # nosec B603
                [str(self.executable)],
                input=request,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise CloudOperationError(
                method, f"CPI did not answer within {self.timeout:g}s"
            ) from exc
        except OSError as exc:
            raise CloudOperationError(
                method, f"Failed to run CPI {self.executable}: {exc}"
            ) from exc

        if completed.stderr:
            logger.debug(f"CPI stderr ({method}): {completed.stderr.strip()}")

        if completed.returncode != 0:
            detail = completed.stderr.strip() or completed.stdout.strip()
            raise CloudOperationError(
                method, f"CPI exited with status {completed.returncode}: {detail}"
            )

        try:
            response = json.loads(completed.stdout)
        except json.JSONDecodeError as exc:
            raise CloudOperationError(
                method, f"CPI returned an invalid response: {completed.stdout!r}"
            ) from exc

        if not isinstance(response, dict):
            raise CloudOperationError(
                method, f"CPI returned an invalid response: {completed.stdout!r}"
            )

        if response.get("log"):
            logger.debug(f"CPI log ({method}): {response['log']}")

        error = response.get("error")
        if error:
            if isinstance(error, dict):
                message = error.get("message") or json.dumps(error)
                error_type = error.get("type")
                if error_type:
                    message = f"{error_type}: {message}"
            else:
                message = str(error)
            raise CloudOperationError(method, message)

        return response.get("result")
