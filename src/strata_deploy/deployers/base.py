"""Base deployer interface."""

from abc import ABC, abstractmethod
from typing import Any, List


class ResourceDeployer(ABC):
    """Capability that actually deploys one resource.

    Compilation, network submission and confirmation waiting all live behind
    this interface; the executor only sees a name, resolved constructor
    arguments and the identifier that comes back.
    """

    @abstractmethod
    def deploy(self, name: str, args: List[Any]) -> str:
        """Deploy a resource.

        Args:
            name: Resource name from the graph
            args: Resolved constructor arguments, in order

        Returns:
            Identifier assigned to the deployed resource (e.g. an address)

        Raises:
            DeployError: If the deployment fails
        """
        pass
