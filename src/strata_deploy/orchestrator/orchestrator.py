"""Main orchestrator that coordinates deployment planning and execution."""

from typing import Dict, Optional

from strata_deploy.deployers.base import ResourceDeployer
from strata_deploy.orchestrator.dependency_graph import ResourceGraph
from strata_deploy.orchestrator.planner import DeploymentPlanner, DeploymentPlan
from strata_deploy.orchestrator.executor import (
    DeploymentExecutor,
    DeploymentReport,
    ProgressCallback
)
from strata_deploy.state.ledger import DeploymentLedger
from strata_deploy.state.manager import LedgerStore
from strata_deploy.utils.logging import get_logger

logger = get_logger(__name__)


class DeploymentOrchestrator:
    """Coordinates planning, ledger locking, and execution for one graph."""

    def __init__(
        self,
        graph: ResourceGraph,
        ledger_store: LedgerStore,
        deployer: ResourceDeployer,
        progress_callback: Optional[ProgressCallback] = None
    ):
        """Initialize deployment orchestrator.

        Args:
            graph: Resources to deploy
            ledger_store: Persistent ledger for idempotence and resume
            deployer: Capability performing each deployment
            progress_callback: Optional progress callback
        """
        self.graph = graph
        self.ledger_store = ledger_store
        self.deployer = deployer

        self.planner = DeploymentPlanner()
        self.executor = DeploymentExecutor(progress_callback=progress_callback)

        self.logger = get_logger(__name__)

    def plan_deployment(self) -> DeploymentPlan:
        """Create a deployment plan.

        Raises:
            UnresolvedReference, CycleDetected: Before any side effect
        """
        return self.planner.plan(self.graph)

    def preview(self) -> tuple[DeploymentPlan, DeploymentLedger, Dict[str, int]]:
        """Plan and read the ledger without locking or deploying anything."""
        plan = self.plan_deployment()
        ledger = self.ledger_store.load().copy()
        return plan, ledger, plan.summarize(ledger)

    def rehearse(self) -> DeploymentReport:
        """Execute the plan against a detached copy of the ledger.

        Already deployed resources are skipped and their identifiers feed
        references as in a real run, but nothing is locked or written.
        """
        plan = self.plan_deployment()
        ledger = self.ledger_store.load().copy()
        self.logger.info("Rehearsal: the persisted ledger will not be modified")
        return self.executor.run(plan, ledger, self.deployer)

    def deploy(self) -> DeploymentReport:
        """Plan, lock the ledger, and execute in one step.

        Returns:
            DeploymentReport

        Raises:
            UnresolvedReference, CycleDetected: Planning failed; nothing touched
            LedgerLocked: Another run holds the ledger
            LedgerCorrupt: The persisted ledger could not be parsed
            DeploymentFailed: A resource failed; earlier successes are kept
        """
        plan = self.plan_deployment()

        with self.ledger_store as store:
            pending = plan.pending(store.ledger)
            if not pending:
                self.logger.info("All resources already deployed; nothing to do")
            else:
                self.logger.info(f"Resources to deploy: {', '.join(pending)}")

            return self.executor.run(plan, store.ledger, self.deployer)
