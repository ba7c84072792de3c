"""Error taxonomy for planning, ledger, and deployment failures."""

from typing import Optional, Dict, Any, List
from enum import Enum
from dataclasses import dataclass, asdict
from strata_deploy.utils.logging import get_logger

logger = get_logger(__name__)


class ErrorCategory(Enum):
    """Which part of a run an error came from."""
    CONFIGURATION = "configuration"
    NETWORK = "network"
    STATE = "state"
    DEPENDENCY = "dependency"
    PROVISIONING = "provisioning"
    EXECUTION = "execution"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    CRITICAL = "critical"  # Nothing was or can be deployed
    ERROR = "error"  # A resource failed and the run halted
    WARNING = "warning"
    INFO = "info"


@dataclass
class ErrorContext:
    """Where an error happened."""
    resource_id: Optional[str] = None
    operation: Optional[str] = None
    additional_info: Optional[Dict[str, Any]] = None


class DeploymentError(Exception):
    """Base exception for everything strata raises on purpose.

    Attributes:
        message: Human-readable error message
        category: Error category
        severity: Error severity
        context: Resource and operation the error belongs to
        cause: Underlying exception, if any
        suggestions: Fixes to show the user, most likely first
    """

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: Optional[ErrorContext] = None,
        cause: Optional[BaseException] = None,
        suggestions: Optional[List[str]] = None
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.cause = cause
        self.suggestions = list(suggestions or [])

    def to_user_message(self) -> str:
        """Render the error, its context and suggestions for a terminal."""
        lines = [f"{self.severity.value.upper()}: {self.message}"]

        details = (
            ("Resource", self.context.resource_id),
            ("Operation", self.context.operation),
            ("Cause", self.cause),
        )
        lines.extend(f"   {label}: {value}" for label, value in details if value)

        if self.suggestions:
            lines.append("")
            lines.append("Suggested fixes:")
            lines.extend(f"   {i}. {s}" for i, s in enumerate(self.suggestions, 1))

        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """Serializable form for structured logs."""
        return {
            'type': type(self).__name__,
            'message': self.message,
            'category': self.category.value,
            'severity': self.severity.value,
            'context': asdict(self.context),
            'cause': str(self.cause) if self.cause else None,
            'suggestions': self.suggestions,
        }


class ConfigurationError(DeploymentError):
    """Error in the resource graph file or settings."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.CRITICAL,
            **kwargs
        )


class DuplicateResource(ConfigurationError):
    """Two resources in one graph share a name."""

    def __init__(self, resource_name: str, **kwargs):
        self.resource_name = resource_name
        super().__init__(
            f"Resource '{resource_name}' is declared more than once",
            context=ErrorContext(resource_id=resource_name, operation='build_graph'),
            suggestions=['Give every resource a unique name'],
            **kwargs
        )


class NetworkError(DeploymentError):
    """Network-related error."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.NETWORK,
            severity=ErrorSeverity.ERROR,
            **kwargs
        )


class StateError(DeploymentError):
    """Error related to ledger management."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault('severity', ErrorSeverity.CRITICAL)
        super().__init__(
            message,
            category=ErrorCategory.STATE,
            **kwargs
        )


class LedgerLocked(StateError):
    """Another run holds the ledger's lock."""

    def __init__(self, path: str, **kwargs):
        self.path = path
        super().__init__(
            f"Ledger is locked by another deployment run: {path}",
            context=ErrorContext(operation='lock', additional_info={'path': path}),
            suggestions=[
                'Wait for the other run to finish',
                f'Remove {path}.lock only if no other run is active'
            ],
            **kwargs
        )


class LedgerCorrupt(StateError):
    """A persisted ledger record could not be parsed."""

    def __init__(self, path: str, line_number: int, reason: str, **kwargs):
        self.path = path
        self.line_number = line_number
        super().__init__(
            f"Ledger {path} is corrupt at line {line_number}: {reason}",
            context=ErrorContext(
                operation='load',
                additional_info={'path': path, 'line': line_number}
            ),
            suggestions=['Inspect and repair the ledger file by hand; it is never repaired automatically'],
            **kwargs
        )


class DependencyError(DeploymentError):
    """Error related to resource dependencies."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.DEPENDENCY,
            severity=ErrorSeverity.CRITICAL,
            **kwargs
        )


class CycleDetected(DependencyError):
    """The reference relation between resources is not acyclic."""

    def __init__(self, involved_names: List[str], **kwargs):
        self.involved_names = list(involved_names)
        super().__init__(
            f"Circular dependency detected: {' -> '.join(self.involved_names)}",
            context=ErrorContext(
                resource_id=self.involved_names[0] if self.involved_names else None,
                operation='plan'
            ),
            suggestions=['Remove one of the references on the cycle'],
            **kwargs
        )


class UnresolvedReference(DependencyError):
    """A reference binding names a resource that cannot be resolved."""

    def __init__(self, resource_name: str, missing_name: str, **kwargs):
        self.resource_name = resource_name
        self.missing_name = missing_name
        super().__init__(
            f"Resource '{resource_name}' references '{missing_name}' which does not exist",
            context=ErrorContext(resource_id=resource_name, operation='plan'),
            suggestions=[f"Declare '{missing_name}' or fix the reference in '{resource_name}'"],
            **kwargs
        )


class DeployError(DeploymentError):
    """Raised by a ResourceDeployer when a single deployment fails."""

    def __init__(
        self,
        message: str,
        resource_name: Optional[str] = None,
        retryable: bool = False,
        **kwargs
    ):
        self.resource_name = resource_name
        self.retryable = retryable
        kwargs.setdefault('context', ErrorContext(resource_id=resource_name, operation='deploy'))
        super().__init__(
            message,
            category=ErrorCategory.PROVISIONING,
            severity=ErrorSeverity.ERROR,
            **kwargs
        )


class DeploymentFailed(DeploymentError):
    """A resource failed to deploy and the run was halted."""

    def __init__(self, resource_name: str, cause: BaseException, report: Any = None):
        self.resource_name = resource_name
        self.report = report
        super().__init__(
            f"Deployment of '{resource_name}' failed: {cause}",
            category=ErrorCategory.EXECUTION,
            severity=ErrorSeverity.ERROR,
            context=ErrorContext(resource_id=resource_name, operation='deploy'),
            cause=cause,
            suggestions=[
                'Fix the underlying problem and re-run the same command',
                'Resources already deployed are kept in the ledger and will be skipped'
            ]
        )


class ErrorHandler:
    """Converts whatever a deployer raised into a categorized DeploymentError."""

    LOG_LEVELS = {
        ErrorSeverity.CRITICAL: 'error',
        ErrorSeverity.ERROR: 'error',
        ErrorSeverity.WARNING: 'warning',
        ErrorSeverity.INFO: 'info',
    }

    def __init__(self):
        self.logger = get_logger(__name__)

    def handle_exception(
        self,
        error: BaseException,
        context: Optional[ErrorContext] = None
    ) -> DeploymentError:
        """Categorize an exception.

        DeploymentErrors are returned unchanged. Connection and timeout errors
        become NetworkErrors; anything else is wrapped as an unknown error that
        keeps the original message.

        Args:
            error: The exception to handle
            context: Where the error occurred

        Returns:
            DeploymentError with categorization and suggestions
        """
        if isinstance(error, DeploymentError):
            return error

        context = context or ErrorContext()

        if isinstance(error, (ConnectionError, TimeoutError)):
            return NetworkError(
                f'Network error: {error}',
                context=context,
                cause=error,
                suggestions=[
                    'Check connectivity to the target network endpoint',
                    'Re-run the deployment; completed resources are skipped'
                ]
            )

        return DeploymentError(
            str(error) or type(error).__name__,
            category=ErrorCategory.UNKNOWN,
            context=context,
            cause=error,
            suggestions=['Check the JSON log file for details']
        )

    def log_error(self, error: DeploymentError):
        """Log an error at the level its severity calls for."""
        log = getattr(self.logger, self.LOG_LEVELS[error.severity])
        log(error.to_user_message())
        self.logger.debug(f"Error details: {error.to_dict()}")


# Global error handler instance
error_handler = ErrorHandler()
