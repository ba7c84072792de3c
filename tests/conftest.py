"""Shared fixtures and test doubles."""

import logging
from typing import Any, Dict, List, Optional, Tuple

import pytest

from strata_deploy.config.models import LiteralArg, ReferenceArg, ResourceSpec
from strata_deploy.deployers.base import ResourceDeployer
from strata_deploy.orchestrator.dependency_graph import ResourceGraph
from strata_deploy.state.ledger import DeploymentLedger
from strata_deploy.state.manager import LedgerStore
from strata_deploy.utils.logging import ConsoleFormatter, JSONFormatter


def ref(name: str) -> ReferenceArg:
    return ReferenceArg(ref=name)


def lit(value: Any) -> LiteralArg:
    return LiteralArg(value=value)


def spec(name: str, *args) -> ResourceSpec:
    return ResourceSpec(name=name, args=list(args))


def graph(*specs: ResourceSpec) -> ResourceGraph:
    return ResourceGraph(specs)


class RecordingDeployer(ResourceDeployer):
    """Returns canned identifiers and remembers every call."""

    def __init__(
        self,
        identifiers: Optional[Dict[str, str]] = None,
        fail_on: Optional[Dict[str, BaseException]] = None,
        ledger: Optional[DeploymentLedger] = None
    ):
        self.identifiers = dict(identifiers or {})
        self.fail_on = dict(fail_on or {})
        self.ledger = ledger
        self.calls: List[Tuple[str, List[Any]]] = []
        self.status_during_deploy: Dict[str, Any] = {}

    @property
    def names(self) -> List[str]:
        return [name for name, _ in self.calls]

    def deploy(self, name: str, args: List[Any]) -> str:
        self.calls.append((name, list(args)))
        if self.ledger is not None:
            record = self.ledger.lookup(name)
            self.status_during_deploy[name] = record.status if record else None
        if name in self.fail_on:
            raise self.fail_on[name]
        return self.identifiers.get(name, f"0x{name}")


@pytest.fixture
def deployer() -> RecordingDeployer:
    return RecordingDeployer(identifiers={"A": "0xAA", "B": "0xBB", "C": "0xCC"})


@pytest.fixture
def ledger_path(tmp_path):
    return tmp_path / "ledger" / "deploy.jsonl"


@pytest.fixture
def ledger_store(ledger_path) -> LedgerStore:
    return LedgerStore(str(ledger_path))


@pytest.fixture(autouse=True)
def reset_root_logging():
    """Drop handlers the CLI installs so later tests never log to closed streams."""
    yield
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if isinstance(handler.formatter, (ConsoleFormatter, JSONFormatter)):
            root_logger.removeHandler(handler)
            handler.close()
