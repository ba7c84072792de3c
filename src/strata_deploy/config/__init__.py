"""Resource graph configuration."""

from .models import (
    ArgBinding,
    DeployerConfig,
    GraphFile,
    LedgerConfig,
    LiteralArg,
    ReferenceArg,
    ResourceSpec,
)

__all__ = [
    "ArgBinding",
    "DeployerConfig",
    "GraphFile",
    "LedgerConfig",
    "LiteralArg",
    "ReferenceArg",
    "ResourceSpec",
]
