"""Ledger record data models."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, model_validator


class RecordStatus(str, Enum):
    """Lifecycle state of a single resource deployment."""

    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DeploymentRecord(BaseModel):
    """Outcome of deploying one resource."""

    resource_name: str = Field(..., min_length=1, description="Resource name from the graph")
    status: RecordStatus = Field(RecordStatus.PENDING, description="Deployment status")
    deployed_identifier: Optional[str] = Field(
        None, description="Identifier assigned at deployment (e.g. contract address)"
    )
    timestamp: datetime = Field(default_factory=_utcnow, description="When the status was set")
    args: List[Any] = Field(default_factory=list, description="Resolved constructor arguments")
    error: Optional[str] = Field(None, description="Failure message")

    @model_validator(mode="after")
    def validate_identifier(self):
        """Only successful records carry an identifier, and they must."""
        if self.status == RecordStatus.SUCCESS and not self.deployed_identifier:
            raise ValueError("a success record requires deployed_identifier")
        if self.status != RecordStatus.SUCCESS and self.deployed_identifier:
            raise ValueError(f"a {self.status.value} record cannot carry deployed_identifier")
        return self

    @classmethod
    def pending(cls, resource_name: str, args: List[Any]) -> "DeploymentRecord":
        return cls(resource_name=resource_name, status=RecordStatus.PENDING, args=args)

    def succeeded(self, deployed_identifier: str) -> "DeploymentRecord":
        """Finalize this record as a success."""
        return self.model_copy(update={
            "status": RecordStatus.SUCCESS,
            "deployed_identifier": deployed_identifier,
            "timestamp": _utcnow(),
            "error": None,
        })

    def failed(self, error: str) -> "DeploymentRecord":
        """Finalize this record as a failure."""
        return self.model_copy(update={
            "status": RecordStatus.FAILED,
            "deployed_identifier": None,
            "timestamp": _utcnow(),
            "error": error,
        })

    def is_success(self) -> bool:
        return self.status == RecordStatus.SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return self.model_dump(mode="json")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeploymentRecord":
        """Create a record from its serialized form."""
        return cls.model_validate(data)
