"""Pydantic models for the resource graph file."""

import re
from typing import Any, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class LiteralArg(BaseModel):
    """Constructor argument passed through unchanged."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    value: Any = Field(..., description="Literal value handed to the deployer as-is")

    @property
    def kind(self) -> str:
        return "literal"


class ReferenceArg(BaseModel):
    """Constructor argument replaced by another resource's deployed identifier."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    ref: str = Field(..., min_length=1, description="Name of the referenced resource")

    @property
    def kind(self) -> str:
        return "reference"


ArgBinding = Union[ReferenceArg, LiteralArg]


class ResourceSpec(BaseModel):
    """A single resource to deploy and the bindings for its constructor."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1, description="Unique resource name")
    args: List[ArgBinding] = Field(
        default_factory=list, description="Ordered constructor argument bindings"
    )
    artifact: Optional[str] = Field(
        None, description="Artifact handed to the deployer (e.g. ./KittyCore.sol)"
    )
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Reject names that are blank or padded with whitespace."""
        if v.strip() != v or not v.strip():
            raise ValueError("resource name must be non-blank and must not have surrounding whitespace")
        return v

    @field_validator("args", mode="before")
    @classmethod
    def coerce_bare_literals(cls, v: Any) -> Any:
        """Treat bare scalars and lists as literal bindings."""
        if v is None:
            return []
        if not isinstance(v, list):
            raise ValueError("args must be a list")
        coerced = []
        for item in v:
            if isinstance(item, (LiteralArg, ReferenceArg)):
                coerced.append(item)
            elif isinstance(item, dict):
                coerced.append(item)
            else:
                coerced.append({"value": item})
        return coerced

    @property
    def references(self) -> List[str]:
        """Names this resource references, in first-use order."""
        seen: List[str] = []
        for binding in self.args:
            if isinstance(binding, ReferenceArg) and binding.ref not in seen:
                seen.append(binding.ref)
        return seen


class DeployerConfig(BaseModel):
    """Which ResourceDeployer the CLI builds and how."""

    type: Literal["command", "dry-run"] = "dry-run"
    command: List[str] = Field(default_factory=list, description="argv template")
    timeout: float = Field(300.0, gt=0, description="Per-resource timeout in seconds")
    retries: int = Field(0, ge=0, le=10, description="Retries for transient failures")
    retry_exit_codes: List[int] = Field(
        default_factory=list, description="Command exit statuses that count as transient"
    )
    identifier_pattern: Optional[str] = Field(
        None, description="Regex locating the deployed identifier in stdout"
    )
    cwd: Optional[str] = None

    @field_validator("identifier_pattern")
    @classmethod
    def validate_pattern(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            try:
                re.compile(v)
            except re.error as e:
                raise ValueError(f"invalid identifier_pattern: {e}")
        return v

    @model_validator(mode="after")
    def validate_command(self):
        """A command deployer needs something to run."""
        if self.type == "command" and not self.command:
            raise ValueError("command is required when deployer type is 'command'")
        if self.type == "command" and self.retries and not self.retry_exit_codes:
            raise ValueError("retries needs retry_exit_codes naming the exit statuses worth retrying")
        return self


class LedgerConfig(BaseModel):
    """Where the ledger lives and how its lock behaves."""

    path: Optional[str] = None
    lock_timeout: float = Field(0.0, ge=0, description="Seconds to wait for the lock; 0 fails fast")


class GraphFile(BaseModel):
    """Top level of a resource graph file."""

    project: Optional[str] = None
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    deployer: DeployerConfig = Field(default_factory=DeployerConfig)
    resources: List[ResourceSpec]
