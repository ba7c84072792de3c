"""Deployment planner that turns a resource graph into an ordered plan."""

from typing import Dict, Iterator, List, TYPE_CHECKING
from dataclasses import dataclass, field
from datetime import datetime, timezone

from strata_deploy.config.models import ResourceSpec
from strata_deploy.orchestrator.dependency_graph import ResourceGraph
from strata_deploy.state.models import RecordStatus
from strata_deploy.utils.logging import get_logger

if TYPE_CHECKING:
    from strata_deploy.state.ledger import DeploymentLedger

logger = get_logger(__name__)


@dataclass
class DeploymentPlan:
    """Topologically ordered sequence of resources to deploy."""

    steps: List[ResourceSpec]
    dependency_graph: ResourceGraph
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __iter__(self) -> Iterator[ResourceSpec]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    @property
    def resource_names(self) -> List[str]:
        return [spec.name for spec in self.steps]

    def pending(self, ledger: "DeploymentLedger") -> List[str]:
        """Names that a run against this ledger would still deploy, in plan order."""
        return [
            spec.name for spec in self.steps
            if not ledger.is_deployed(spec.name)
        ]

    def summarize(self, ledger: "DeploymentLedger") -> Dict[str, int]:
        """Count plan resources by their ledger status."""
        summary = {
            'deployed': 0,
            'pending': 0,
            'failed': 0,
            'interrupted': 0,
        }

        for spec in self.steps:
            record = ledger.lookup(spec.name)
            if record is None:
                summary['pending'] += 1
            elif record.status == RecordStatus.SUCCESS:
                summary['deployed'] += 1
            elif record.status == RecordStatus.FAILED:
                summary['failed'] += 1
            else:
                summary['interrupted'] += 1

        return summary


class DeploymentPlanner:
    """Creates deployment plans."""

    def __init__(self):
        """Initialize deployment planner."""
        self.logger = get_logger(__name__)

    def plan(self, graph: ResourceGraph) -> DeploymentPlan:
        """Order the graph for deployment.

        Args:
            graph: Resource graph to plan

        Returns:
            DeploymentPlan whose steps respect every reference edge

        Raises:
            UnresolvedReference: If a reference names a resource absent from the graph
            CycleDetected: If the reference relation is not acyclic
        """
        self.logger.info(f"Planning deployment of {len(graph)} resources...")

        order = graph.topological_sort()
        steps = [graph.get(name) for name in order]

        self.logger.info(f"Deployment plan created: {' -> '.join(order) or '(empty)'}")

        return DeploymentPlan(steps=steps, dependency_graph=graph)
