"""Deployer wrapper that retries transient failures."""

from typing import Any, List, Optional

from .base import ResourceDeployer
from strata_deploy.utils.retry import RetryStrategy


class RetryingDeployer(ResourceDeployer):
    """Retries the wrapped deployer with exponential backoff.

    Only the deployer retries; the executor never does.
    """

    def __init__(self, inner: ResourceDeployer, strategy: Optional[RetryStrategy] = None):
        self.inner = inner
        self.strategy = strategy or RetryStrategy()

    def deploy(self, name: str, args: List[Any]) -> str:
        return self.strategy.execute_with_retry(self.inner.deploy, name, args)
