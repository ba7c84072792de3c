"""State module for tracking deployed resources."""

from .models import DeploymentRecord, RecordStatus
from .ledger import DeploymentLedger
from .manager import LedgerStore

__all__ = [
    "DeploymentRecord",
    "RecordStatus",
    "DeploymentLedger",
    "LedgerStore",
]
