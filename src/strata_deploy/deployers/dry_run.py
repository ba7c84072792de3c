"""Deployer that fabricates deterministic identifiers without side effects."""

import hashlib
import json
from typing import Any, List, Tuple

from .base import ResourceDeployer
from strata_deploy.utils.logging import get_logger

logger = get_logger(__name__)


class DryRunDeployer(ResourceDeployer):
    """Returns a stable 0x-prefixed 40-hex identifier per (name, args)."""

    def __init__(self):
        self.calls: List[Tuple[str, List[Any]]] = []

    @staticmethod
    def identifier_for(name: str, args: List[Any]) -> str:
        payload = json.dumps([name, args], sort_keys=True, default=str)
        return "0x" + hashlib.sha256(payload.encode("utf-8")).hexdigest()[:40]

    def deploy(self, name: str, args: List[Any]) -> str:
        self.calls.append((name, list(args)))
        identifier = self.identifier_for(name, args)
        logger.info(f"[dry-run] would deploy {name}({', '.join(map(str, args))}) -> {identifier}")
        return identifier
