"""Ledger store for loading, persisting, and locking the deployment ledger."""

import fcntl
import json
import os
import time
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import ValidationError

from .ledger import DeploymentLedger
from .models import DeploymentRecord
from strata_deploy.utils.errors import LedgerCorrupt, LedgerLocked, StateError
from strata_deploy.utils.logging import get_logger

logger = get_logger(__name__)


class LedgerStore:
    """Persists a DeploymentLedger as JSON Lines with exclusive run locking.

    Every write replaces the whole file through a temp file and an atomic
    rename, so each record upsert is all-or-nothing on disk.
    """

    def __init__(self, ledger_path: str, lock_timeout: float = 0.0):
        """
        Initialize LedgerStore.

        Args:
            ledger_path: Path to the ledger file
            lock_timeout: Seconds to wait for the lock; 0 fails immediately
        """
        self.ledger_path = Path(ledger_path)
        self.lock_path = self.ledger_path.with_name(self.ledger_path.name + ".lock")
        self.lock_timeout = lock_timeout
        self._lock_file: Optional[int] = None
        self._ledger: Optional[DeploymentLedger] = None

    def exists(self) -> bool:
        """Check if the ledger file exists."""
        return self.ledger_path.exists()

    @property
    def is_locked(self) -> bool:
        """Whether this store currently holds the lock."""
        return self._lock_file is not None

    def load(self) -> DeploymentLedger:
        """
        Load the ledger from disk.

        Returns:
            Ledger bound to this store; empty if nothing has been persisted

        Raises:
            LedgerCorrupt: If any line fails to parse or validate
            StateError: If the file cannot be read
        """
        records: Dict[str, DeploymentRecord] = {}

        if self.ledger_path.exists():
            try:
                with open(self.ledger_path, "r", encoding="utf-8") as f:
                    lines = f.readlines()
            except OSError as e:
                raise StateError(f"Failed to read ledger file: {e}", cause=e)

            for line_number, line in enumerate(lines, start=1):
                if not line.strip():
                    continue
                record = self._parse_line(line, line_number)
                if record.resource_name in records:
                    raise LedgerCorrupt(
                        str(self.ledger_path),
                        line_number,
                        f"duplicate record for '{record.resource_name}'"
                    )
                records[record.resource_name] = record

        logger.debug(f"Loaded {len(records)} ledger records from {self.ledger_path}")
        self._ledger = DeploymentLedger(records, store=self)
        return self._ledger

    def _parse_line(self, line: str, line_number: int) -> DeploymentRecord:
        try:
            data = json.loads(line)
        except json.JSONDecodeError as e:
            raise LedgerCorrupt(str(self.ledger_path), line_number, f"invalid JSON ({e.msg})", cause=e)

        if not isinstance(data, dict):
            raise LedgerCorrupt(str(self.ledger_path), line_number, "record is not a JSON object")

        try:
            return DeploymentRecord.from_dict(data)
        except ValidationError as e:
            raise LedgerCorrupt(
                str(self.ledger_path),
                line_number,
                f"invalid record ({e.error_count()} validation errors)",
                cause=e
            )

    def write(self, records: List[DeploymentRecord]) -> None:
        """
        Persist the full set of records.

        Args:
            records: Records in the order they should appear in the file

        Raises:
            StateError: If the ledger cannot be written
        """
        self.ledger_path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.ledger_path.with_name(self.ledger_path.name + ".tmp")

        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                for record in records:
                    f.write(json.dumps(record.to_dict(), sort_keys=True))
                    f.write("\n")
                f.flush()
                os.fsync(f.fileno())

            # Atomic rename
            temp_path.replace(self.ledger_path)
        except OSError as e:
            raise StateError(f"Failed to write ledger file: {e}", cause=e)
        finally:
            if temp_path.exists():
                temp_path.unlink()

    def record(self, record: DeploymentRecord) -> None:
        """Upsert one record into the loaded ledger and persist it."""
        ledger = self._ledger if self._ledger is not None else self.load()
        ledger.record(record)

    def lookup(self, resource_name: str) -> Optional[DeploymentRecord]:
        """Get the latest record for a resource from the loaded ledger."""
        ledger = self._ledger if self._ledger is not None else self.load()
        return ledger.lookup(resource_name)

    def lock(self) -> None:
        """
        Acquire the exclusive run lock on the ledger.

        Raises:
            LedgerLocked: If another run holds the lock
        """
        if self._lock_file is not None:
            return

        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        lock_fd = os.open(str(self.lock_path), os.O_CREAT | os.O_RDWR)
        start_time = time.monotonic()

        while True:
            try:
                fcntl.flock(lock_fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except BlockingIOError:
                if time.monotonic() - start_time >= self.lock_timeout:
                    os.close(lock_fd)
                    raise LedgerLocked(str(self.ledger_path))
                time.sleep(0.1)

        self._lock_file = lock_fd
        logger.debug(f"Acquired ledger lock {self.lock_path}")

    def unlock(self) -> None:
        """Release the run lock."""
        if self._lock_file is not None:
            try:
                fcntl.flock(self._lock_file, fcntl.LOCK_UN)
                os.close(self._lock_file)
            finally:
                self._lock_file = None

    def __enter__(self):
        """Context manager entry - acquire lock and load the ledger."""
        self.lock()
        try:
            self.load()
        except Exception:
            self.unlock()
            raise
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - release lock."""
        self.unlock()

    @property
    def ledger(self) -> DeploymentLedger:
        """The loaded ledger.

        Raises:
            StateError: If the ledger has not been loaded
        """
        if self._ledger is None:
            raise StateError("Ledger not loaded. Call load() first.")
        return self._ledger
