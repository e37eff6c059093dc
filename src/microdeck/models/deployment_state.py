"""Deployment state models persisted between runs."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class DiskRecord(BaseModel):
    """A persistent disk created through the CPI."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., description="Internal record identifier")
    cid: str = Field(..., description="Provider-assigned disk identifier")
    size: int = Field(..., ge=0, description="Disk size in MiB")
    cloud_properties: dict[str, Any] = Field(
        default_factory=dict, description="Opaque CPI cloud properties"
    )


class StemcellRecord(BaseModel):
    """A stemcell uploaded through the CPI."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., description="Internal record identifier")
    name: str = Field(..., description="Stemcell name")
    version: str = Field(..., description="Stemcell version")
    cid: str = Field(..., description="Provider-assigned stemcell identifier")


class DeploymentState(BaseModel):
    """Top-level deployment state stored on disk.

    Only one VM is tracked, by its provider id. Disks and stemcells keep
    every record until it is deleted, so superseded records stay visible as
    orphans.
    """

    model_config = ConfigDict(extra="forbid")

    uuid: str = Field(default="", description="Deployment identifier")
    current_vm_cid: str | None = Field(default=None, description="Current VM cid")
    current_disk_id: str | None = Field(
        default=None, description="Record id of the current disk"
    )
    current_stemcell_id: str | None = Field(
        default=None, description="Record id of the current stemcell"
    )
    disks: list[DiskRecord] = Field(default_factory=list)
    stemcells: list[StemcellRecord] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_current_pointers(self) -> DeploymentState:
        """Reject pointers that do not name exactly one record."""
        for pointer, records, kind in (
            (self.current_disk_id, self.disks, "disk"),
            (self.current_stemcell_id, self.stemcells, "stemcell"),
        ):
            if pointer is None:
                continue
            matches = [record for record in records if record.id == pointer]
            if len(matches) != 1:
                raise ValueError(
                    f"current {kind} id '{pointer}' matches {len(matches)} records"
                )
        return self
