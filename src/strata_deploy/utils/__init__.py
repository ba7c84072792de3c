"""Utility modules for logging, errors, and retries."""

from strata_deploy.utils.errors import (
    ErrorCategory,
    ErrorSeverity,
    ErrorContext,
    DeploymentError,
    ConfigurationError,
    DuplicateResource,
    NetworkError,
    StateError,
    LedgerLocked,
    LedgerCorrupt,
    DependencyError,
    CycleDetected,
    UnresolvedReference,
    DeployError,
    DeploymentFailed,
    ErrorHandler,
    error_handler
)
from strata_deploy.utils.logging import get_logger, setup_logging, LogContext
from strata_deploy.utils.retry import RetryStrategy, is_transient

__all__ = [
    # Retry
    'RetryStrategy',
    'is_transient',

    # Errors
    'ErrorCategory',
    'ErrorSeverity',
    'ErrorContext',
    'DeploymentError',
    'ConfigurationError',
    'DuplicateResource',
    'NetworkError',
    'StateError',
    'LedgerLocked',
    'LedgerCorrupt',
    'DependencyError',
    'CycleDetected',
    'UnresolvedReference',
    'DeployError',
    'DeploymentFailed',
    'ErrorHandler',
    'error_handler',

    # Logging
    'get_logger',
    'setup_logging',
    'LogContext',
]
