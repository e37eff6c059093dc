"""Support processes started alongside an installed CPI."""

from __future__ import annotations

import logging
import os
import subprocess  # nosec B404
from pathlib import Path

from microdeck.config.defaults import DEFAULT_PROCESS_STOP_TIMEOUT
from microdeck.models.release import CPIRelease, SupportProcess

logger = logging.getLogger(__name__)


class ProcessStartError(Exception):
    """Raised when a support process cannot be launched."""


class SupportProcessManager:
    """Starts and stops the helper processes a CPI release declares."""

    def __init__(self, stop_timeout: float = DEFAULT_PROCESS_STOP_TIMEOUT) -> None:
        self.stop_timeout = stop_timeout
        self._handles: dict[str, subprocess.Popen[bytes]] = {}

    @property
    def running(self) -> list[str]:
        """Names of the processes that were started and not yet stopped."""
        return list(self._handles)

    def start(self, release: CPIRelease) -> None:
        """Launch every support process declared by the release.

        Raises:
            ProcessStartError: If a process cannot be launched
        """
        for process in release.manifest.processes:
            self._start_one(process, release.extracted_path)

    def _start_one(self, process: SupportProcess, release_dir: Path) -> None:
        command = list(process.command)
        if not os.path.isabs(command[0]):
            command[0] = str(release_dir / command[0])

        env = {**os.environ, **process.env}
        logger.info(f"Starting CPI support process '{process.name}'")
        try:
            handle = subprocess.Popen(  # noqa: S603  # nosec B603
                command,
                cwd=release_dir,
                env=env,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as exc:
            raise ProcessStartError(
                f"Failed to start support process '{process.name}': {exc}"
            ) from exc
        self._handles[process.name] = handle

    def stop(self) -> list[str]:
        """Stop all running support processes.

        Each process gets SIGTERM and ``stop_timeout`` seconds before it is
        killed.

        Returns:
            Names of processes that could not be stopped.
        """
        failures: list[str] = []
        for name, handle in list(self._handles.items()):
            logger.info(f"Stopping CPI support process '{name}'")
            try:
                if handle.poll() is None:
                    handle.terminate()
                    try:
                        handle.wait(timeout=self.stop_timeout)
                    except subprocess.TimeoutExpired:
                        logger.warning(
                            f"Process {name} didn't stop gracefully, killing"
                        )
                        handle.kill()
                        handle.wait(timeout=self.stop_timeout)
            except (OSError, subprocess.TimeoutExpired) as exc:
                logger.error(f"Failed to stop support process '{name}': {exc}")
                failures.append(name)
                continue
            del self._handles[name]
        return failures
