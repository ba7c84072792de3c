"""Deployers that turn a resource name and arguments into a deployed identifier."""

from typing import Dict, Optional

from .base import ResourceDeployer
from .command import CommandDeployer
from .dry_run import DryRunDeployer
from .retrying import RetryingDeployer
from strata_deploy.config.models import DeployerConfig
from strata_deploy.utils.retry import RetryStrategy


def create_deployer(
    config: DeployerConfig,
    artifacts: Optional[Dict[str, str]] = None,
    dry_run: bool = False
) -> ResourceDeployer:
    """Build the deployer described by a graph file's deployer section.

    Args:
        config: Deployer configuration
        artifacts: Resource name -> artifact mapping
        dry_run: Force a DryRunDeployer regardless of configuration

    Returns:
        Configured deployer, wrapped for retries when configured
    """
    if dry_run or config.type == "dry-run":
        return DryRunDeployer()

    deployer: ResourceDeployer = CommandDeployer(
        command=config.command,
        artifacts=artifacts,
        timeout=config.timeout,
        identifier_pattern=config.identifier_pattern,
        cwd=config.cwd,
        retry_exit_codes=config.retry_exit_codes
    )

    if config.retries > 0:
        deployer = RetryingDeployer(deployer, RetryStrategy(max_retries=config.retries))

    return deployer


__all__ = [
    'ResourceDeployer',
    'CommandDeployer',
    'DryRunDeployer',
    'RetryingDeployer',
    'create_deployer',
]
