"""Deployment executor with checkpointed, sequential execution."""

from typing import Any, Callable, List, Optional
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from strata_deploy.config.models import ReferenceArg, ResourceSpec
from strata_deploy.deployers.base import ResourceDeployer
from strata_deploy.orchestrator.planner import DeploymentPlan
from strata_deploy.state.ledger import DeploymentLedger
from strata_deploy.state.models import DeploymentRecord
from strata_deploy.utils.logging import get_logger, LogContext
from strata_deploy.utils.errors import (
    DeployError,
    DeploymentFailed,
    ErrorContext,
    UnresolvedReference,
    error_handler
)

logger = get_logger(__name__)


class ExecutionStatus(Enum):
    """Status of execution."""
    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class ResourceExecutionResult:
    """Result of handling a single plan step."""

    resource_name: str
    status: ExecutionStatus
    deployed_identifier: Optional[str] = None
    args: List[Any] = field(default_factory=list)
    error: Optional[str] = None
    cause: Optional[BaseException] = None
    duration: float = 0.0  # seconds

    def is_success(self) -> bool:
        return self.status == ExecutionStatus.SUCCESS

    def is_skipped(self) -> bool:
        return self.status == ExecutionStatus.SKIPPED


@dataclass
class DeploymentReport:
    """What one executor run did."""

    ledger: DeploymentLedger
    results: List[ResourceExecutionResult] = field(default_factory=list)
    start_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    end_time: Optional[datetime] = None
    duration: float = 0.0  # seconds

    @property
    def deployed(self) -> List[str]:
        return [r.resource_name for r in self.results if r.is_success()]

    @property
    def skipped(self) -> List[str]:
        return [r.resource_name for r in self.results if r.is_skipped()]

    @property
    def failed(self) -> Optional[str]:
        for r in self.results:
            if r.status == ExecutionStatus.FAILED:
                return r.resource_name
        return None

    def is_success(self) -> bool:
        return self.failed is None

    def finish(self) -> None:
        self.end_time = datetime.now(timezone.utc)
        self.duration = (self.end_time - self.start_time).total_seconds()


# Type alias for progress callback
ProgressCallback = Callable[[str, ExecutionStatus, Optional[str]], None]


def resolve_args(spec: ResourceSpec, ledger: DeploymentLedger) -> List[Any]:
    """Resolve a resource's bindings against the ledger.

    Args:
        spec: Resource whose args to resolve
        ledger: Ledger holding identifiers of deployed resources

    Returns:
        Constructor args with references replaced by deployed identifiers

    Raises:
        UnresolvedReference: If a referenced resource has no success record
    """
    resolved = []
    for binding in spec.args:
        if isinstance(binding, ReferenceArg):
            identifier = ledger.deployed_identifier(binding.ref)
            if identifier is None:
                raise UnresolvedReference(spec.name, binding.ref)
            resolved.append(identifier)
        else:
            resolved.append(binding.value)
    return resolved


class DeploymentExecutor:
    """Walks a plan one resource at a time, checkpointing each into the ledger."""

    def __init__(self, progress_callback: Optional[ProgressCallback] = None):
        """Initialize deployment executor.

        Args:
            progress_callback: Optional callback for progress updates
        """
        self.progress_callback = progress_callback
        self.logger = get_logger(__name__)

    def execute(
        self,
        plan: DeploymentPlan,
        ledger: DeploymentLedger,
        deployer: ResourceDeployer
    ) -> DeploymentLedger:
        """Execute a plan and return the updated ledger.

        Raises:
            DeploymentFailed: If a resource fails to deploy; prior successes
                stay in the ledger
            UnresolvedReference: If the plan is out of order for the ledger
        """
        return self.run(plan, ledger, deployer).ledger

    def run(
        self,
        plan: DeploymentPlan,
        ledger: DeploymentLedger,
        deployer: ResourceDeployer
    ) -> DeploymentReport:
        """Execute a plan.

        Args:
            plan: Deployment plan to execute
            ledger: Ledger to skip against and record into
            deployer: Capability performing each deployment

        Returns:
            DeploymentReport for the run

        Raises:
            DeploymentFailed: Carrying the partial report in ``report``
            UnresolvedReference: If the plan is out of order for the ledger
        """
        pending = plan.pending(ledger)
        self.logger.info(
            f"Starting deployment execution: {len(plan)} resources, "
            f"{len(plan) - len(pending)} already deployed"
        )

        report = DeploymentReport(ledger=ledger)

        for spec in plan:
            record = ledger.lookup(spec.name)
            if record is not None and record.is_success():
                self.logger.info(
                    f"Skipping {spec.name}: already deployed at {record.deployed_identifier}"
                )
                report.results.append(ResourceExecutionResult(
                    resource_name=spec.name,
                    status=ExecutionStatus.SKIPPED,
                    deployed_identifier=record.deployed_identifier,
                    args=list(record.args)
                ))
                self._notify(spec.name, ExecutionStatus.SKIPPED, record.deployed_identifier)
                continue

            if record is not None:
                self.logger.warning(
                    f"Retrying {spec.name}: previous attempt ended {record.status.value}"
                    + (f" ({record.error})" if record.error else "")
                )

            result = self._deploy_resource(spec, ledger, deployer)
            report.results.append(result)

            if not result.is_success():
                report.finish()
                self.logger.error(f"Deployment halted at {spec.name}: {result.error}")
                raise DeploymentFailed(spec.name, result.cause, report=report)

        report.finish()
        self.logger.info(
            f"Deployment completed successfully: {len(report.deployed)} deployed, "
            f"{len(report.skipped)} skipped in {report.duration:.1f}s"
        )
        return report

    def _deploy_resource(
        self,
        spec: ResourceSpec,
        ledger: DeploymentLedger,
        deployer: ResourceDeployer
    ) -> ResourceExecutionResult:
        """Deploy a single resource and record its outcome."""
        args = resolve_args(spec, ledger)
        start_time = datetime.now(timezone.utc)

        with LogContext(self.logger, resource_id=spec.name, operation='deploy'):
            pending = DeploymentRecord.pending(spec.name, args)
            ledger.record(pending)
            self._notify(spec.name, ExecutionStatus.IN_PROGRESS, None)

            self.logger.info(f"Deploying {spec.name} with args {args}")

            try:
                identifier = deployer.deploy(spec.name, list(args))
                if not isinstance(identifier, str) or not identifier:
                    raise DeployError(
                        f"Deployer returned an invalid identifier: {identifier!r}",
                        resource_name=spec.name
                    )
            except Exception as e:
                duration = (datetime.now(timezone.utc) - start_time).total_seconds()
                error = error_handler.handle_exception(
                    e, ErrorContext(resource_id=spec.name, operation='deploy')
                )
                ledger.record(pending.failed(error.message))
                self.logger.error(
                    f"Failed to deploy {spec.name}: {error.message}",
                    extra={'duration': duration}
                )
                self._notify(spec.name, ExecutionStatus.FAILED, error.message)
                return ResourceExecutionResult(
                    resource_name=spec.name,
                    status=ExecutionStatus.FAILED,
                    args=args,
                    error=error.message,
                    cause=e,
                    duration=duration
                )

            ledger.record(pending.succeeded(identifier))
            duration = (datetime.now(timezone.utc) - start_time).total_seconds()
            self.logger.info(
                f"Successfully deployed {spec.name} at {identifier} in {duration:.1f}s",
                extra={'duration': duration, 'deployed_identifier': identifier}
            )
            self._notify(spec.name, ExecutionStatus.SUCCESS, identifier)

        return ResourceExecutionResult(
            resource_name=spec.name,
            status=ExecutionStatus.SUCCESS,
            deployed_identifier=identifier,
            args=args,
            duration=duration
        )

    def _notify(self, name: str, status: ExecutionStatus, message: Optional[str]) -> None:
        if self.progress_callback:
            self.progress_callback(name, status, message)
