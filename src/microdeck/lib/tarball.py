"""Helpers for reading and extracting release and stemcell tarballs."""

from __future__ import annotations

import tarfile
from pathlib import Path
from typing import Any

import yaml


class TarballError(Exception):
    """Raised when a tarball cannot be read or does not contain a member."""


def _normalise(name: str) -> str:
    return name[2:] if name.startswith("./") else name


def list_members(tarball_path: Path) -> set[str]:
    """Return the normalised member names of a tarball."""
    try:
        with tarfile.open(tarball_path, "r:*") as archive:
            return {_normalise(member.name) for member in archive.getmembers()}
    except (OSError, tarfile.TarError) as exc:
        raise TarballError(f"Cannot read tarball {tarball_path}: {exc}") from exc


def read_yaml_member(tarball_path: Path, member_name: str) -> dict[str, Any]:
    """Read and parse a YAML file stored in a tarball.

    Raises:
        TarballError: If the tarball is unreadable, the member is missing, or
            its content is not a YAML mapping
    """
    try:
        with tarfile.open(tarball_path, "r:*") as archive:
            for member in archive.getmembers():
                if _normalise(member.name) != member_name or not member.isfile():
                    continue
                handle = archive.extractfile(member)
                if handle is None:
                    break
                content = yaml.safe_load(handle.read().decode("utf-8"))
                if not isinstance(content, dict):
                    raise TarballError(f"{member_name} is not a YAML mapping")
                return content
    except (OSError, tarfile.TarError, UnicodeDecodeError) as exc:
        raise TarballError(f"Cannot read tarball {tarball_path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise TarballError(f"Cannot parse {member_name}: {exc}") from exc
    raise TarballError(f"{member_name} not found in {tarball_path}")


def extract(tarball_path: Path, destination: Path) -> None:
    """Extract a tarball, refusing members that escape ``destination``."""
    try:
        destination.mkdir(parents=True, exist_ok=True)
        with tarfile.open(tarball_path, "r:*") as archive:
            archive.extractall(destination, filter="data")  # nosec B202
    except (OSError, tarfile.TarError) as exc:
        raise TarballError(
            f"Cannot extract {tarball_path} to {destination}: {exc}"
        ) from exc
