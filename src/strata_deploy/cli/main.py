"""Main CLI entry point."""

import sys
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TaskProgressColumn

from strata_deploy.cli.output import render_ledger, render_plan, render_report
from strata_deploy.config.parser import Config, ConfigValidationError
from strata_deploy.deployers import create_deployer
from strata_deploy.orchestrator.executor import ExecutionStatus
from strata_deploy.orchestrator.orchestrator import DeploymentOrchestrator
from strata_deploy.state.manager import LedgerStore
from strata_deploy.utils.errors import (
    DeploymentError,
    DeploymentFailed,
    DependencyError,
    StateError,
    error_handler
)
from strata_deploy.utils.logging import setup_logging, get_logger

console = Console()
logger = get_logger(__name__)


@click.group()
@click.option('--log-level', default='info', type=click.Choice(['debug', 'info', 'warning', 'error']))
@click.option('--log-dir', default=None, type=click.Path(file_okay=False), help='Directory for JSON log files')
@click.pass_context
def cli(ctx, log_level, log_dir):
    """Ordered resource deployment with resume."""
    ctx.ensure_object(dict)
    ctx.obj['log_level'] = log_level

    setup_logging(log_level, log_dir)


def load_config(config_path: str) -> Config:
    """Load and validate a graph file, exiting with a message on failure."""
    try:
        config = Config(config_path)
        config.load()
        return config
    except FileNotFoundError:
        console.print(f"[red]Error:[/red] Graph file not found: {escape(config_path)}")
        sys.exit(1)
    except ConfigValidationError as e:
        console.print("[red]Graph file validation failed:[/red]\n")
        console.print(escape(str(e)))
        sys.exit(1)


class RichProgressCallback:
    """Progress callback that displays updates using Rich."""

    def __init__(self, progress: Progress, task_id, total: int):
        self.progress = progress
        self.task_id = task_id
        self.completed = 0
        self.progress.update(self.task_id, total=total)

    def __call__(self, resource_name: str, status: ExecutionStatus, message: Optional[str]):
        name = escape(resource_name)
        if status == ExecutionStatus.IN_PROGRESS:
            self.progress.update(self.task_id, description=f"[cyan]Deploying:[/cyan] {name}")
            return

        self.completed += 1
        marks = {
            ExecutionStatus.SUCCESS: "[green]+[/green]",
            ExecutionStatus.SKIPPED: "[dim]=[/dim]",
            ExecutionStatus.FAILED: "[red]x[/red]",
        }
        self.progress.update(
            self.task_id,
            completed=self.completed,
            description=f"{marks.get(status, '')} {name}"
        )


@cli.command()
@click.argument('graph', type=click.Path(dir_okay=False))
@click.option('--ledger', 'ledger_path', help='Ledger file (defaults to the graph file setting)')
@click.option('--dry-run', is_flag=True, help='Fabricate identifiers and leave the ledger untouched')
def deploy(graph, ledger_path, dry_run):
    """Deploy every resource in GRAPH, resuming from the ledger.

    Dry runs (the flag or a dry-run deployer) never lock or write the ledger.
    """
    cfg = load_config(graph)
    store = LedgerStore(str(cfg.resolve_ledger_path(ledger_path)), lock_timeout=cfg.ledger.lock_timeout)
    rehearsal = dry_run or cfg.deployer.type == "dry-run"

    try:
        resource_graph = cfg.build_graph()
        deployer = create_deployer(cfg.deployer, artifacts=cfg.get_artifacts(), dry_run=rehearsal)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console,
            transient=True
        ) as progress:
            task_id = progress.add_task("[cyan]Starting deployment...", total=None)
            orchestrator = DeploymentOrchestrator(
                graph=resource_graph,
                ledger_store=store,
                deployer=deployer,
                progress_callback=RichProgressCallback(progress, task_id, len(resource_graph))
            )
            report = orchestrator.rehearse() if rehearsal else orchestrator.deploy()

        render_report(console, report)
        if rehearsal:
            console.print("[yellow]Dry run:[/yellow] ledger not modified")
        else:
            console.print(f"Ledger: {escape(str(store.ledger_path))}")

    except DeploymentFailed as e:
        error_handler.log_error(e)
        if e.report is not None:
            render_report(console, e.report)
        console.print(f"[red]Deployment failed at resource:[/red] {escape(e.resource_name)}")
        console.print(f"[dim]Re-run the same command to resume from {escape(e.resource_name)}.[/dim]")
        sys.exit(1)
    except DependencyError as e:
        console.print(f"[red]Planning failed:[/red] {escape(e.message)}")
        sys.exit(1)
    except StateError as e:
        console.print(f"[red]Ledger error:[/red] {escape(e.message)}")
        sys.exit(1)
    except DeploymentError as e:
        error_handler.log_error(e)
        console.print(f"[red]Deployment error:[/red] {escape(e.message)}")
        sys.exit(1)


@cli.command()
@click.argument('graph', type=click.Path(dir_okay=False))
@click.option('--ledger', 'ledger_path', help='Ledger file (defaults to the graph file setting)')
def plan(graph, ledger_path):
    """Show the deployment order for GRAPH and what a run would still deploy."""
    cfg = load_config(graph)
    store = LedgerStore(str(cfg.resolve_ledger_path(ledger_path)))

    try:
        orchestrator = DeploymentOrchestrator(
            graph=cfg.build_graph(),
            ledger_store=store,
            deployer=create_deployer(cfg.deployer, dry_run=True)
        )
        deployment_plan, current_ledger, _ = orchestrator.preview()
    except DependencyError as e:
        console.print(f"[red]Planning failed:[/red] {escape(e.message)}")
        sys.exit(1)
    except DeploymentError as e:
        console.print(f"[red]Error:[/red] {escape(e.message)}")
        sys.exit(1)

    render_plan(console, deployment_plan, current_ledger)


@cli.command()
@click.argument('graph', type=click.Path(dir_okay=False))
def validate(graph):
    """Check GRAPH for schema errors, unresolved references and cycles."""
    cfg = load_config(graph)

    try:
        resource_graph = cfg.build_graph()
        resource_graph.validate()
    except DeploymentError as e:
        console.print(f"[red]Invalid graph:[/red] {escape(e.message)}")
        sys.exit(1)

    console.print(f"[green]Graph is valid:[/green] {len(resource_graph)} resources")


@cli.command()
@click.argument('path', type=click.Path(dir_okay=False))
@click.option('--format', 'output_format', type=click.Choice(['table', 'json']), default='table', help='Output format')
def ledger(path, output_format):
    """Show the records in the ledger at PATH."""
    store = LedgerStore(path)
    if not store.exists():
        console.print(f"[red]Error:[/red] Ledger not found: {escape(path)}")
        sys.exit(1)

    try:
        records = store.load()
    except StateError as e:
        console.print(f"[red]Ledger error:[/red] {escape(e.message)}")
        sys.exit(1)

    render_ledger(console, records, output_format)


def main():
    cli(obj={})


if __name__ == '__main__':
    main()
