"""Models for CPI release and stemcell tarball manifests."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


def _stringify_version(data: Any) -> Any:
    if isinstance(data, dict) and isinstance(data.get("version"), (int, float)):
        return {**data, "version": str(data["version"])}
    return data


class ReleaseJob(BaseModel):
    """A job shipped inside a release."""

    model_config = ConfigDict(extra="ignore")

    name: str
    version: str | None = None


class SupportProcess(BaseModel):
    """A long-running helper the CPI needs while it is installed.

    ``command`` is relative to the extracted release directory when it does
    not start with ``/``.
    """

    model_config = ConfigDict(extra="forbid")

    name: str
    command: list[str] = Field(..., min_length=1)
    env: dict[str, str] = Field(default_factory=dict)


class ReleaseManifest(BaseModel):
    """Contents of ``release.MF``."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1)
    version: str = Field(..., min_length=1)
    cpi_job: str = Field(default="cpi", description="Job providing bin/cpi")
    jobs: list[ReleaseJob] = Field(default_factory=list)
    processes: list[SupportProcess] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def coerce_version(cls, data: Any) -> Any:
        """Release versions are often written as bare numbers in YAML."""
        return _stringify_version(data)

    @model_validator(mode="after")
    def validate_cpi_job(self) -> ReleaseManifest:
        """The CPI job must be one of the release's jobs."""
        if self.cpi_job not in {job.name for job in self.jobs}:
            raise ValueError(f"release does not contain CPI job '{self.cpi_job}'")
        return self

    @model_validator(mode="after")
    def validate_unique_processes(self) -> ReleaseManifest:
        """Support processes are stopped by name, so names must be unique."""
        seen: set[str] = set()
        for process in self.processes:
            if process.name in seen:
                raise ValueError(f"duplicate support process '{process.name}'")
            seen.add(process.name)
        return self


class StemcellManifest(BaseModel):
    """Contents of ``stemcell.MF``."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1)
    version: str = Field(..., min_length=1)
    cloud_properties: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def coerce_version(cls, data: Any) -> Any:
        """Stemcell versions are often written as bare numbers in YAML."""
        return _stringify_version(data)


@dataclass
class CPIRelease:
    """A validated CPI release extracted on disk.

    Attributes:
        manifest: Parsed release.MF
        extracted_path: Directory the tarball was extracted into
    """

    manifest: ReleaseManifest
    extracted_path: Path

    @property
    def name(self) -> str:
        return self.manifest.name

    @property
    def version(self) -> str:
        return self.manifest.version

    @property
    def cpi_executable(self) -> Path:
        """Path of the CPI entry point inside the extracted release."""
        return self.extracted_path / "jobs" / self.manifest.cpi_job / "bin" / "cpi"


@dataclass
class ExtractedStemcell:
    """A stemcell tarball extracted on disk."""

    manifest: StemcellManifest
    extracted_path: Path

    @property
    def image_path(self) -> Path:
        return self.extracted_path / "image"
