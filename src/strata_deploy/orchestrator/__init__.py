"""Orchestrator module for deployment planning and execution."""

from strata_deploy.orchestrator.dependency_graph import ResourceGraph, DependencyNode
from strata_deploy.orchestrator.planner import DeploymentPlanner, DeploymentPlan
from strata_deploy.orchestrator.executor import (
    DeploymentExecutor,
    DeploymentReport,
    ExecutionStatus,
    ResourceExecutionResult,
    ProgressCallback,
    resolve_args
)
from strata_deploy.orchestrator.orchestrator import DeploymentOrchestrator

__all__ = [
    # Dependency graph
    'ResourceGraph',
    'DependencyNode',

    # Planning
    'DeploymentPlanner',
    'DeploymentPlan',

    # Execution
    'DeploymentExecutor',
    'DeploymentReport',
    'ExecutionStatus',
    'ResourceExecutionResult',
    'ProgressCallback',
    'resolve_args',

    # Main orchestrator
    'DeploymentOrchestrator',
]
