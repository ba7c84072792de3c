"""In-memory deployment ledger, optionally bound to a persistent store."""

from typing import Dict, Iterator, List, Optional, TYPE_CHECKING

from .models import DeploymentRecord, RecordStatus
from strata_deploy.utils.errors import ErrorContext, StateError

if TYPE_CHECKING:
    from .manager import LedgerStore


class DeploymentLedger:
    """Mapping of resource name to its latest DeploymentRecord.

    Success records are append-only: once a resource has been recorded as
    deployed, its record is never replaced. When bound to a LedgerStore,
    every ``record`` call is persisted before it returns.
    """

    def __init__(
        self,
        records: Optional[Dict[str, DeploymentRecord]] = None,
        store: Optional["LedgerStore"] = None
    ):
        self._records: Dict[str, DeploymentRecord] = dict(records or {})
        self.store = store

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, resource_name: object) -> bool:
        return resource_name in self._records

    def __iter__(self) -> Iterator[DeploymentRecord]:
        return iter(self._records.values())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DeploymentLedger):
            return NotImplemented
        return self._records == other._records

    def lookup(self, resource_name: str) -> Optional[DeploymentRecord]:
        """Get the latest record for a resource, if any."""
        return self._records.get(resource_name)

    def is_deployed(self, resource_name: str) -> bool:
        record = self._records.get(resource_name)
        return record is not None and record.is_success()

    def deployed_identifier(self, resource_name: str) -> Optional[str]:
        """Identifier of a successfully deployed resource, or None."""
        record = self._records.get(resource_name)
        if record is None or not record.is_success():
            return None
        return record.deployed_identifier

    def records(self) -> List[DeploymentRecord]:
        """All records in first-recorded order."""
        return list(self._records.values())

    def by_status(self, status: RecordStatus) -> List[DeploymentRecord]:
        return [record for record in self._records.values() if record.status == status]

    def record(self, record: DeploymentRecord) -> None:
        """Upsert a record and persist it if the ledger is bound to a store.

        Args:
            record: Record to add or replace

        Raises:
            StateError: If the resource already has a success record, or the
                store fails to persist
        """
        existing = self._records.get(record.resource_name)
        if existing is not None and existing.is_success():
            raise StateError(
                f"Resource '{record.resource_name}' is already recorded as deployed "
                f"({existing.deployed_identifier}); success records are never replaced",
                context=ErrorContext(resource_id=record.resource_name, operation='record')
            )

        records = dict(self._records)
        records[record.resource_name] = record

        # Persist first so memory never runs ahead of disk
        if self.store is not None:
            self.store.write(list(records.values()))

        self._records = records

    def copy(self) -> "DeploymentLedger":
        """Detached copy that is not bound to any store."""
        return DeploymentLedger(self._records)
