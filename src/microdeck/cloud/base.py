"""Base interface for cloud backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any


class Cloud(ABC):
    """Abstract capability for managing VMs, disks and stemcells."""

    @abstractmethod
    def create_stemcell(
        self, image_path: Path, cloud_properties: dict[str, Any]
    ) -> str:
        """Upload a stemcell image.

        Args:
            image_path: Path of the extracted stemcell image
            cloud_properties: Stemcell cloud properties from stemcell.MF

        Returns:
            Provider-assigned stemcell cid.

        Raises:
            CloudOperationError: If the upload fails.
        """

    @abstractmethod
    def delete_stemcell(self, stemcell_cid: str) -> None:
        """Delete an uploaded stemcell.

        Raises:
            CloudOperationError: If the deletion fails.
        """

    @abstractmethod
    def create_vm(
        self,
        agent_id: str,
        stemcell_cid: str,
        cloud_properties: dict[str, Any],
        env: dict[str, Any],
    ) -> str:
        """Create a VM from a stemcell.

        Returns:
            Provider-assigned VM cid.

        Raises:
            CloudOperationError: If the VM cannot be created.
        """

    @abstractmethod
    def delete_vm(self, vm_cid: str) -> None:
        """Delete a VM.

        Raises:
            CloudOperationError: If the deletion fails.
        """

    @abstractmethod
    def create_disk(
        self, size: int, cloud_properties: dict[str, Any], vm_cid: str
    ) -> str:
        """Create a persistent disk near a VM.

        Returns:
            Provider-assigned disk cid.

        Raises:
            CloudOperationError: If the disk cannot be created.
        """

    @abstractmethod
    def attach_disk(self, vm_cid: str, disk_cid: str) -> None:
        """Attach a disk to a VM."""

    @abstractmethod
    def detach_disk(self, vm_cid: str, disk_cid: str) -> None:
        """Detach a disk from a VM."""

    @abstractmethod
    def delete_disk(self, disk_cid: str) -> None:
        """Delete a persistent disk.

        Raises:
            CloudOperationError: If the deletion fails.
        """
