"""Persisted deployment state and the repositories over it."""

from microdeck.state.repos import DiskRepo, StemcellRepo, VMRepo, new_record_id
from microdeck.state.service import DeploymentStateService

__all__ = [
    "DeploymentStateService",
    "DiskRepo",
    "StemcellRepo",
    "VMRepo",
    "new_record_id",
]
