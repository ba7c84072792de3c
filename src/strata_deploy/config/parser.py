"""YAML parser for resource graph files."""

from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import ValidationError

from .models import DeployerConfig, GraphFile, LedgerConfig, ResourceSpec
from strata_deploy.orchestrator.dependency_graph import ResourceGraph

DEFAULT_LEDGER_DIR = Path(".strata") / "ledger"


class ConfigValidationError(Exception):
    """Exception raised when graph file validation fails."""

    def __init__(self, message: str, errors: Optional[List[Dict]] = None):
        self.message = message
        self.errors = errors or []
        super().__init__(self.message)

    def __str__(self) -> str:
        """Format validation errors for display."""
        if not self.errors:
            return self.message

        error_lines = [self.message, ""]
        for error in self.errors:
            location = " -> ".join(str(loc) for loc in error.get("loc", []))
            msg = error.get("msg", "Unknown error")
            error_lines.append(f"  - {location}: {msg}")

        return "\n".join(error_lines)


class Config:
    """Loads a resource graph file and everything configured alongside it."""

    def __init__(self, config_path: str):
        """Initialize configuration manager.

        Args:
            config_path: Path to the graph YAML file
        """
        self.config_path = Path(config_path)
        self.data: Dict = {}
        self.project: Optional[str] = None
        self.resources: List[ResourceSpec] = []
        self.ledger: LedgerConfig = LedgerConfig()
        self.deployer: DeployerConfig = DeployerConfig()

    def load(self) -> "Config":
        """Load and validate configuration from YAML file.

        Returns:
            Self for method chaining

        Raises:
            ConfigValidationError: If the file is invalid
            FileNotFoundError: If the file doesn't exist
        """
        if not self.config_path.exists():
            raise FileNotFoundError(f"Graph file not found: {self.config_path}")

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                self.data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigValidationError(f"Failed to parse YAML: {e}")

        if not isinstance(self.data, dict):
            raise ConfigValidationError("Graph file must contain a mapping at the top level")

        validation_errors = self.validate()
        if validation_errors:
            raise ConfigValidationError(
                f"Graph file validation failed with {len(validation_errors)} error(s)",
                validation_errors,
            )

        parsed = GraphFile(**self.data)
        self.project = parsed.project
        self.resources = list(parsed.resources)
        self.ledger = parsed.ledger
        self.deployer = parsed.deployer

        return self

    def validate(self) -> List[Dict]:
        """Validate the raw data against the schema.

        References and cycles are left to the planner.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if "resources" not in self.data:
            errors.append({"loc": ["resources"], "msg": "Required field 'resources' is missing"})
            return errors

        try:
            GraphFile(**self.data)
        except ValidationError as e:
            for error in e.errors():
                errors.append({"loc": list(error["loc"]), "msg": error["msg"]})
            return errors

        seen = set()
        for idx, resource in enumerate(self.data["resources"]):
            name = resource.get("name")
            if name in seen:
                errors.append(
                    {
                        "loc": ["resources", idx, "name"],
                        "msg": f"Duplicate resource name '{name}'",
                    }
                )
            seen.add(name)

        return errors

    def build_graph(self) -> ResourceGraph:
        """Build the resource graph in declaration order."""
        return ResourceGraph(self.resources)

    def get_artifacts(self) -> Dict[str, str]:
        """Map resource names to their artifacts, where declared."""
        return {
            spec.name: spec.artifact
            for spec in self.resources
            if spec.artifact
        }

    def resolve_ledger_path(self, override: Optional[str] = None) -> Path:
        """Pick the ledger path: explicit override, then the file's setting, then a default.

        Relative paths from the graph file are resolved against its directory.
        """
        if override:
            return Path(override)
        if self.ledger.path:
            path = Path(self.ledger.path)
            return path if path.is_absolute() else self.config_path.parent / path
        stem = self.project or self.config_path.stem
        return DEFAULT_LEDGER_DIR / f"{stem}.jsonl"
