"""Repositories over the persisted deployment state.

Every mutation reloads the state file and saves it again, so each
successful step is durable on its own and a later run sees exactly the
records that are still left.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, ClassVar, Generic, TypeVar

from ulid import ULID

from microdeck.lib.errors import StatePersistenceError
from microdeck.models.deployment_state import (
    DeploymentState,
    DiskRecord,
    StemcellRecord,
)
from microdeck.state.service import DeploymentStateService

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", DiskRecord, StemcellRecord)


def new_record_id() -> str:
    """Generate a sortable, unique record identifier."""
    return str(ULID())


class VMRepo:
    """Tracks the current VM by its provider id."""

    def __init__(self, state_service: DeploymentStateService) -> None:
        self._state_service = state_service

    def find_current(self) -> str | None:
        """Return the current VM cid, or None when no VM is recorded."""
        return self._state_service.load().current_vm_cid

    def update_current(self, cid: str) -> None:
        state = self._state_service.load()
        self._state_service.save(state.model_copy(update={"current_vm_cid": cid}))

    def clear_current(self) -> None:
        state = self._state_service.load()
        if state.current_vm_cid is None:
            return
        self._state_service.save(state.model_copy(update={"current_vm_cid": None}))


class _RecordRepo(Generic[RecordT]):
    """Shared current-pointer and orphan handling for disks and stemcells."""

    collection: ClassVar[str]
    pointer: ClassVar[str]
    kind: ClassVar[str]

    def __init__(
        self,
        state_service: DeploymentStateService,
        id_factory: Callable[[], str] = new_record_id,
    ) -> None:
        self._state_service = state_service
        self._id_factory = id_factory

    def _records(self, state: DeploymentState) -> list[RecordT]:
        return list(getattr(state, self.collection))

    def all(self) -> list[RecordT]:
        """Return every record, current and orphaned."""
        return self._records(self._state_service.load())

    def find_current(self) -> RecordT | None:
        """Return the current record, or None when no pointer is set."""
        state = self._state_service.load()
        current_id = getattr(state, self.pointer)
        if current_id is None:
            return None
        for record in self._records(state):
            if record.id == current_id:
                return record
        return None

    def update_current(self, record_id: str) -> None:
        """Point the current pointer at an existing record.

        The previously current record stays in the collection as an orphan.

        Raises:
            StatePersistenceError: If no record has this id
        """
        state = self._state_service.load()
        if not any(record.id == record_id for record in self._records(state)):
            raise StatePersistenceError(
                f"Cannot mark {self.kind} '{record_id}' current: no such record"
            )
        self._state_service.save(state.model_copy(update={self.pointer: record_id}))

    def delete(self, record_id: str) -> None:
        """Remove a record, clearing the pointer if it was current.

        Deleting an unknown id does nothing.
        """
        state = self._state_service.load()
        records = self._records(state)
        remaining = [record for record in records if record.id != record_id]
        if len(remaining) == len(records):
            logger.debug(f"No {self.kind} record '{record_id}' to delete")
            return

        update: dict[str, Any] = {self.collection: remaining}
        if getattr(state, self.pointer) == record_id:
            update[self.pointer] = None
        self._state_service.save(state.model_copy(update=update))

    def _append(self, record: RecordT) -> RecordT:
        state = self._state_service.load()
        records = self._records(state)
        records.append(record)
        self._state_service.save(state.model_copy(update={self.collection: records}))
        logger.debug(f"Saved {self.kind} record {record.id} (cid {record.cid})")
        return record


class DiskRepo(_RecordRepo[DiskRecord]):
    """Persistent disk records."""

    collection = "disks"
    pointer = "current_disk_id"
    kind = "disk"

    def save(
        self, cid: str, size: int, cloud_properties: dict[str, Any] | None = None
    ) -> DiskRecord:
        """Record a newly created disk. It does not become current."""
        return self._append(
            DiskRecord(
                id=self._id_factory(),
                cid=cid,
                size=size,
                cloud_properties=cloud_properties or {},
            )
        )

    def find(self, cid: str) -> DiskRecord | None:
        for record in self.all():
            if record.cid == cid:
                return record
        return None


class StemcellRepo(_RecordRepo[StemcellRecord]):
    """Uploaded stemcell records."""

    collection = "stemcells"
    pointer = "current_stemcell_id"
    kind = "stemcell"

    def save(self, name: str, version: str, cid: str) -> StemcellRecord:
        """Record a newly uploaded stemcell. It does not become current."""
        return self._append(
            StemcellRecord(id=self._id_factory(), name=name, version=version, cid=cid)
        )

    def find(self, name: str, version: str) -> StemcellRecord | None:
        for record in self.all():
            if record.name == name and record.version == version:
                return record
        return None
